"""chatcompat.config.env
=====================

Environment variable mapping for vendor credentials.

Purpose
-------
- Single source of truth mapping vendor identifiers to the environment
  variables holding their API keys (canonical name plus aliases).
- Small lookup helpers shared by the config layer and the client facade.

Failure Modes
-------------
Helpers return ``None`` when a vendor is unknown or nothing is set; they never
raise. The client facade decides whether a missing key is fatal (it is not for
``NoAuth`` vendors such as a local Ollama daemon).
"""

from __future__ import annotations

import os
from typing import Dict, Iterable, Optional, Tuple

# Canonical vendor -> env var mapping
ENV_MAP: Dict[str, str] = {
    "openai": "OPENAI_API_KEY",
    "deepseek": "DEEPSEEK_API_KEY",
    "xai": "XAI_API_KEY",
    "openrouter": "OPENROUTER_API_KEY",
    "stepfun": "STEPFUN_API_KEY",
}


# Vendor -> ordered tuple of acceptable env var names (canonical first)
ENV_ALIASES: Dict[str, Tuple[str, ...]] = {
    "xai": ("XAI_API_KEY", "GROK_API_KEY"),
}


def is_placeholder(val: Optional[str]) -> bool:
    """Return True if the value looks like a placeholder rather than a key.

    Heuristics: contains 'placeholder', 'changeme' or 'your-api-key', or starts
    with 'test_'. Case-insensitive, surrounding whitespace ignored.
    """
    if val is None:
        return False
    v = str(val).strip().lower()
    return (
        "placeholder" in v
        or "changeme" in v
        or "your-api-key" in v
        or v.startswith("test_")
    )


def get_env_var_name(vendor: str) -> Optional[str]:
    """Return the canonical API-key environment variable for a vendor."""
    return ENV_MAP.get(vendor.lower()) if vendor else None


def get_env_var_candidates(vendor: str) -> Iterable[str]:
    """Yield acceptable environment variable names, canonical first."""
    v = (vendor or "").lower()
    canonical = ENV_MAP.get(v)
    if canonical:
        yield canonical
    for alias in ENV_ALIASES.get(v, ()):
        if alias != canonical:
            yield alias


def resolve_vendor_key(vendor: str) -> Tuple[Optional[str], Optional[str]]:
    """Resolve an API key for a vendor from the process environment.

    Returns
    -------
    Tuple[Optional[str], Optional[str]]
        ``(value, env_var_used)`` for the first non-empty, non-placeholder
        candidate, or ``(None, None)`` when nothing usable is set.
    """
    for name in get_env_var_candidates(vendor):
        val = os.environ.get(name)
        if val and not is_placeholder(val):
            return val, name
    return None, None


__all__ = [
    "ENV_MAP",
    "ENV_ALIASES",
    "is_placeholder",
    "get_env_var_name",
    "get_env_var_candidates",
    "resolve_vendor_key",
]
