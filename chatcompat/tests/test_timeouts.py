from __future__ import annotations

import httpx

from chatcompat.base.timeouts import TimeoutConfig, get_timeout_config


def test_defaults_without_env(monkeypatch):
    monkeypatch.delenv("CHATCOMPAT_HTTP_TIMEOUT_SECONDS", raising=False)
    monkeypatch.delenv("CHATCOMPAT_CONNECT_TIMEOUT_SECONDS", raising=False)
    cfg = get_timeout_config()
    assert cfg == TimeoutConfig()


def test_env_overrides_refresh_cache(monkeypatch):
    monkeypatch.setenv("CHATCOMPAT_HTTP_TIMEOUT_SECONDS", "5")
    first = get_timeout_config()
    assert first.http_timeout_seconds == 5.0
    assert get_timeout_config() is first
    monkeypatch.setenv("CHATCOMPAT_HTTP_TIMEOUT_SECONDS", "7.5")
    assert get_timeout_config().http_timeout_seconds == 7.5


def test_invalid_or_non_positive_values_fall_back(monkeypatch):
    monkeypatch.setenv("CHATCOMPAT_HTTP_TIMEOUT_SECONDS", "abc")
    monkeypatch.setenv("CHATCOMPAT_CONNECT_TIMEOUT_SECONDS", "-1")
    cfg = get_timeout_config()
    assert cfg.http_timeout_seconds == 60.0
    assert cfg.connect_timeout_seconds == 10.0


def test_to_httpx():
    t = TimeoutConfig(http_timeout_seconds=30.0, connect_timeout_seconds=2.0).to_httpx()
    assert isinstance(t, httpx.Timeout)
    assert t.read == 30.0 and t.write == 30.0 and t.connect == 2.0
