"""chatcompat.config.defaults
=========================

Central place for small, stable default values used across the package. These
defaults can be overridden through environment variables or an external config
file (see :mod:`chatcompat.config`), but provide sensible fallbacks for local
development and tests.

This module imports nothing from the rest of the package to avoid circular
dependencies. Only plain constants live here.
"""

from __future__ import annotations

# ---- Wire format ----
# Every streamed fragment is a line beginning with this prefix.
SSE_DATA_PREFIX = "data:"
# Literal end-of-stream payload.
SSE_DONE_SENTINEL = "[DONE]"
CHAT_COMPLETIONS_PATH = "chat/completions"
MODELS_PATH = "models"


# ---- Streaming ----
# Bounded delivery channel between the producer thread and the consumer.
STREAM_CHANNEL_CAPACITY = 16
# Poll interval (seconds) used while the producer waits for channel capacity.
STREAM_SEND_POLL_SECONDS = 0.05


# ---- HTTP ----
USER_AGENT = "chatcompat/0.1.0"
# Per pooled client; one streaming request holds one connection until closed.
HTTP_MAX_CONNECTIONS = 32
HTTP_MAX_KEEPALIVE_CONNECTIONS = 8


# ---- Auth schemes ----
AUTH_BEARER = "bearer"
AUTH_HEADER_KEY = "api-key"
AUTH_NONE = "none"


# ---- Vendor defaults ----
OPENAI_DEFAULT_MODEL = "gpt-4o-mini"
OPENAI_DEFAULT_BASE_URL = "https://api.openai.com"

DEEPSEEK_DEFAULT_MODEL = "deepseek-chat"
DEEPSEEK_DEFAULT_BASE_URL = "https://api.deepseek.com"

XAI_DEFAULT_MODEL = "grok-4"
XAI_DEFAULT_BASE_URL = "https://api.x.ai"

OPENROUTER_DEFAULT_MODEL = "openrouter/auto"
OPENROUTER_DEFAULT_BASE_URL = "https://openrouter.ai/api"

STEPFUN_DEFAULT_MODEL = "step-1-8k"
STEPFUN_DEFAULT_BASE_URL = "https://api.stepfun.com"

OLLAMA_DEFAULT_MODEL = "llama3.1"
OLLAMA_DEFAULT_BASE_URL = "http://localhost:11434"


DEFAULT_API_VERSION = "v1"


__all__ = [
    "SSE_DATA_PREFIX",
    "SSE_DONE_SENTINEL",
    "CHAT_COMPLETIONS_PATH",
    "MODELS_PATH",
    "STREAM_CHANNEL_CAPACITY",
    "STREAM_SEND_POLL_SECONDS",
    "USER_AGENT",
    "HTTP_MAX_CONNECTIONS",
    "HTTP_MAX_KEEPALIVE_CONNECTIONS",
    "AUTH_BEARER",
    "AUTH_HEADER_KEY",
    "AUTH_NONE",
    "OPENAI_DEFAULT_MODEL",
    "OPENAI_DEFAULT_BASE_URL",
    "DEEPSEEK_DEFAULT_MODEL",
    "DEEPSEEK_DEFAULT_BASE_URL",
    "XAI_DEFAULT_MODEL",
    "XAI_DEFAULT_BASE_URL",
    "OPENROUTER_DEFAULT_MODEL",
    "OPENROUTER_DEFAULT_BASE_URL",
    "STEPFUN_DEFAULT_MODEL",
    "STEPFUN_DEFAULT_BASE_URL",
    "OLLAMA_DEFAULT_MODEL",
    "OLLAMA_DEFAULT_BASE_URL",
    "DEFAULT_API_VERSION",
]
