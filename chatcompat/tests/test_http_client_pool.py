"""Unit tests for shared httpx client pool.

Covers:
- Same key (base_url, purpose) returns the same instance.
- Different purpose yields different instances.
- Different base_url yields different instances.
- A closed client is replaced on the next lookup.
- The User-Agent header is applied.
"""
from __future__ import annotations

from chatcompat.base.http import close_all_clients, get_httpx_client, pooled_keys
from chatcompat.config.defaults import USER_AGENT


def setup_function(_):
    # Ensure a clean slate for each test
    close_all_clients()


def teardown_function(_):
    close_all_clients()


def test_same_key_returns_same_instance():
    c1 = get_httpx_client("https://api.example.com", purpose="chat")
    c2 = get_httpx_client("https://api.example.com", purpose="chat")
    assert c1 is c2, "Expected pooled client instances to be identical for same key"


def test_different_purpose_returns_different_instances():
    c1 = get_httpx_client("https://api.example.com", purpose="chat")
    c2 = get_httpx_client("https://api.example.com", purpose="models")
    assert c1 is not c2, "Different purposes should not share the same client instance"


def test_different_base_url_returns_different_instances():
    c1 = get_httpx_client("https://api.example.com", purpose="chat")
    c2 = get_httpx_client("https://api.other.com", purpose="chat")
    assert c1 is not c2, "Different base URLs should not share the same client instance"


def test_closed_client_is_replaced():
    c1 = get_httpx_client("https://api.example.com", purpose="chat")
    c1.close()
    c2 = get_httpx_client("https://api.example.com", purpose="chat")
    assert c2 is not c1 and not c2.is_closed


def test_pooled_client_uses_configured_timeouts(monkeypatch):
    monkeypatch.setenv("CHATCOMPAT_HTTP_TIMEOUT_SECONDS", "12")
    monkeypatch.setenv("CHATCOMPAT_CONNECT_TIMEOUT_SECONDS", "3")
    client = get_httpx_client("https://api.timeouts.example", purpose="chat")
    assert client.timeout.read == 12.0
    assert client.timeout.connect == 3.0


def test_pooled_client_sends_user_agent():
    client = get_httpx_client("https://api.example.com", purpose="chat")
    assert client.headers["User-Agent"] == USER_AGENT
    assert pooled_keys() == (("https://api.example.com", "chat"),)


def test_close_all_clients_empties_pool():
    c1 = get_httpx_client("https://api.example.com", purpose="chat")
    close_all_clients()
    assert c1.is_closed
    assert pooled_keys() == ()
