"""chatcompat package

Typed client for OpenAI-compatible chat completion services (OpenAI,
DeepSeek, xAI, OpenRouter, StepFun, Ollama and any other server speaking the
same ``/chat/completions`` protocol).

Purpose:
    Provide a small, stable API for assembling validated requests, sending
    them, and consuming either the full response or a merged stream
    (packaging is configured via the repository root ``pyproject.toml``).

Public API (re-exported):
    - Version: ``__version__``
    - Exceptions: :class:`ChatError` and its subclasses, :class:`ErrorCode`
    - Builders: ``Message``, ``Tool``, ``ChatCompletionRequest`` and friends
    - Client: :class:`ChatClient`, :func:`call`, :func:`connect`
"""

from typing import Any

from .base import *  # noqa: F401,F403 - curated by base.__all__
from .base import __all__ as _base_all
from .base.client import ChatClient

__version__ = "0.1.0"


def connect(vendor: str, **overrides: Any) -> ChatClient:
    """Return a :class:`ChatClient` configured for ``vendor``.

    Shorthand for :meth:`ChatClient.from_config`; ``overrides`` take
    precedence over file and environment configuration.
    """
    return ChatClient.from_config(vendor, **overrides)


__all__ = ["__version__", "connect", *_base_all]
