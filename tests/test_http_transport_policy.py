"""
Tests for the unified HTTP transport policy.
"""

import asyncio

import httpx

from http_transport import create_async_client, get_transport_policy
from config import config


def test_transport_policy_uses_single_config_source():
    policy = get_transport_policy()
    assert policy.connect_timeout == config.api.connect_timeout
    assert policy.read_timeout == config.api.read_timeout
    assert policy.write_timeout == config.api.write_timeout
    assert policy.pool_timeout == config.api.pool_timeout
    assert policy.max_connections == config.api.max_connections
    assert policy.max_keepalive_connections == config.api.max_keepalive_connections


def test_total_timeout_caps_every_phase():
    timeout = get_transport_policy().timeout(total=2.5)
    assert timeout == httpx.Timeout(2.5)


def test_phase_timeouts_default_to_policy():
    timeout = get_transport_policy(read_timeout=7.0).timeout()
    assert timeout.read == 7.0
    assert timeout.connect == config.api.connect_timeout
    assert timeout.pool == config.api.pool_timeout


def test_limits_override_policy():
    limits = get_transport_policy(max_connections=3).limits()
    assert limits.max_connections == 3
    assert limits.max_keepalive_connections == config.api.max_keepalive_connections


def test_transport_client_defaults_to_policy_trust_env_false(monkeypatch):
    previous = config.api.trust_env
    config.api.trust_env = False
    try:
        monkeypatch.setenv("HTTP_PROXY", "http://127.0.0.1:2080")
        monkeypatch.setenv("HTTPS_PROXY", "http://127.0.0.1:2080")
        client = create_async_client(max_connections=5, max_keepalive_connections=2)
        try:
            # Proxy env must not be consumed when policy trust_env is false.
            assert getattr(client, "_trust_env", True) is False
        finally:
            asyncio.run(client.aclose())
    finally:
        config.api.trust_env = previous


def test_transport_client_can_opt_in_trust_env(monkeypatch):
    previous = config.api.trust_env
    config.api.trust_env = False
    try:
        monkeypatch.setenv("HTTP_PROXY", "http://127.0.0.1:2080")
        client = create_async_client(max_connections=5, max_keepalive_connections=2, trust_env=True)
        try:
            assert getattr(client, "_trust_env", False) is True
        finally:
            asyncio.run(client.aclose())
    finally:
        config.api.trust_env = previous


def test_transport_client_carries_default_headers():
    client = create_async_client(headers=config.load.default_headers)
    try:
        assert client.headers["User-Agent"] == config.load.user_agent
        assert client.headers["Accept"] == "application/json"
    finally:
        asyncio.run(client.aclose())


def test_none_override_keeps_policy_value():
    assert get_transport_policy(trust_env=None) == get_transport_policy()
