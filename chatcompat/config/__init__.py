"""Unified configuration layer for vendor connections.

Goals
-----
* Centralize defaults (base URLs, API version segment, default models, auth
  scheme) for each OpenAI-compatible vendor.
* Merge sources in a predictable order (later wins):
    1. Built-in defaults
    2. Optional external config file (JSON or YAML) named by CHATCOMPAT_CONFIG_FILE
    3. Environment variables (e.g. OPENAI_MODEL, DEEPSEEK_BASE_URL)
    4. In-code overrides passed to the helper
* Provide a single call site: ``get_vendor_config(vendor)``.

Environment Variable Conventions
--------------------------------
<VENDOR>_API_KEY, <VENDOR>_BASE_URL, <VENDOR>_MODEL, <VENDOR>_API_VERSION,
<VENDOR>_AUTH. API keys also honour the aliases in :mod:`chatcompat.config.env`.

External Config File
--------------------
If CHATCOMPAT_CONFIG_FILE points to a file it is parsed as JSON first, then as
YAML. Structure example:

```
deepseek:
  model: deepseek-reasoner
openrouter:
  base_url: https://openrouter.ai/api
  headers:
    HTTP-Referer: https://example.com
    X-Title: my-app
```
"""
from __future__ import annotations

import json
import os
from pathlib import Path
from typing import Any, Dict, Optional

import yaml

from .defaults import (
    AUTH_BEARER,
    AUTH_NONE,
    DEFAULT_API_VERSION,
    DEEPSEEK_DEFAULT_BASE_URL,
    DEEPSEEK_DEFAULT_MODEL,
    OLLAMA_DEFAULT_BASE_URL,
    OLLAMA_DEFAULT_MODEL,
    OPENAI_DEFAULT_BASE_URL,
    OPENAI_DEFAULT_MODEL,
    OPENROUTER_DEFAULT_BASE_URL,
    OPENROUTER_DEFAULT_MODEL,
    STEPFUN_DEFAULT_BASE_URL,
    STEPFUN_DEFAULT_MODEL,
    XAI_DEFAULT_BASE_URL,
    XAI_DEFAULT_MODEL,
)
from .env import is_placeholder, resolve_vendor_key

CONFIG_FILE_ENV = "CHATCOMPAT_CONFIG_FILE"
DOTENV_FILE_ENV = "CHATCOMPAT_DOTENV_FILE"


# -------------------- Defaults --------------------

DEFAULTS: Dict[str, Dict[str, Any]] = {
    "openai": {
        "base_url": OPENAI_DEFAULT_BASE_URL,
        "version": DEFAULT_API_VERSION,
        "model": OPENAI_DEFAULT_MODEL,
        "auth": AUTH_BEARER,
    },
    "deepseek": {
        "base_url": DEEPSEEK_DEFAULT_BASE_URL,
        "version": DEFAULT_API_VERSION,
        "model": DEEPSEEK_DEFAULT_MODEL,
        "auth": AUTH_BEARER,
    },
    "xai": {
        "base_url": XAI_DEFAULT_BASE_URL,
        "version": DEFAULT_API_VERSION,
        "model": XAI_DEFAULT_MODEL,
        "auth": AUTH_BEARER,
    },
    "openrouter": {
        "base_url": OPENROUTER_DEFAULT_BASE_URL,
        "version": DEFAULT_API_VERSION,
        "model": OPENROUTER_DEFAULT_MODEL,
        "auth": AUTH_BEARER,
    },
    "stepfun": {
        "base_url": STEPFUN_DEFAULT_BASE_URL,
        "version": DEFAULT_API_VERSION,
        "model": STEPFUN_DEFAULT_MODEL,
        "auth": AUTH_BEARER,
    },
    "ollama": {
        "base_url": OLLAMA_DEFAULT_BASE_URL,
        "version": DEFAULT_API_VERSION,
        "model": OLLAMA_DEFAULT_MODEL,
        "auth": AUTH_NONE,
    },
}


ENV_FIELD_MAP = {
    "api_key": "API_KEY",  # pragma: allowlist secret - env suffix name, not a secret
    "base_url": "BASE_URL",
    "model": "MODEL",
    "version": "API_VERSION",
    "auth": "AUTH",
}


_FILE_CACHE: Optional[Dict[str, Any]] = None
_DOTENV_LOADED = False


def _load_dotenv_once() -> None:
    """Load KEY=VALUE lines from a .env file into the environment, once.

    Comments and blank lines are ignored. Existing variables are only replaced
    when their current value looks like a placeholder.
    """
    global _DOTENV_LOADED
    if _DOTENV_LOADED:
        return
    _DOTENV_LOADED = True
    path = os.getenv(DOTENV_FILE_ENV, ".env")
    if not os.path.isfile(path):
        return
    with open(path, "r", encoding="utf-8") as fh:
        for line in fh:
            line = line.strip()
            if not line or line.startswith("#") or "=" not in line:
                continue
            k, v = line.split("=", 1)
            k = k.strip()
            v = v.strip().strip('"').strip("'")
            if k and (k not in os.environ or is_placeholder(os.environ.get(k))):
                os.environ[k] = v


def _load_external_config() -> Dict[str, Any]:
    """Parse the CHATCOMPAT_CONFIG_FILE once (JSON first, then YAML)."""
    global _FILE_CACHE
    if _FILE_CACHE is not None:
        return _FILE_CACHE
    path = os.getenv(CONFIG_FILE_ENV)
    if not path or not Path(path).is_file():
        _FILE_CACHE = {}
        return _FILE_CACHE
    text = Path(path).read_text(encoding="utf-8")
    try:
        data = json.loads(text)
    except ValueError:
        data = yaml.safe_load(text) or {}
    _FILE_CACHE = data if isinstance(data, dict) else {}
    return _FILE_CACHE


def _env_overrides(vendor: str) -> Dict[str, Any]:
    out: Dict[str, Any] = {}
    prefix = vendor.upper()
    for field, suffix in ENV_FIELD_MAP.items():
        val = os.getenv(f"{prefix}_{suffix}")
        if val is not None and not (field == "api_key" and is_placeholder(val)):
            out[field] = val
    if "api_key" not in out:
        key, _ = resolve_vendor_key(vendor)
        if key:
            out["api_key"] = key
    return out


def get_vendor_config(vendor: str, overrides: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
    """Return merged connection settings for a vendor.

    Merge order (later wins): defaults -> external config -> env vars -> overrides.
    Unknown vendors start from an empty mapping, so a fully custom endpoint can
    be described through the file, the environment or ``overrides`` alone.
    """
    _load_dotenv_once()
    name = (vendor or "").lower().strip()
    cfg: Dict[str, Any] = {"vendor": name}

    cfg |= DEFAULTS.get(name, {})

    file_cfg = _load_external_config().get(name)
    if isinstance(file_cfg, dict):
        cfg |= file_cfg

    cfg |= _env_overrides(name)

    if overrides:
        cfg |= {k: v for k, v in overrides.items() if v is not None}

    return cfg


def reset_config_cache() -> None:
    """Forget the parsed config file and .env state (tests and reloads)."""
    global _FILE_CACHE, _DOTENV_LOADED
    _FILE_CACHE = None
    _DOTENV_LOADED = False


__all__ = [
    "get_vendor_config",
    "reset_config_cache",
    "DEFAULTS",
    "CONFIG_FILE_ENV",
    "DOTENV_FILE_ENV",
]
