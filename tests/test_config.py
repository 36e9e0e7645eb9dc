"""
Tests for environment-driven settings.
"""

import pytest
from pydantic import ValidationError

from resumable_gateway.config import Settings
from resumable_gateway.core.eviction import EvictFinishedAfter, RetainForever, policy_from_ttl


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in (
        "GATEWAY_UPSTREAM_API_KEY",
        "OPEN_ROUTER_API_KEY",
        "GATEWAY_PORT",
        "GATEWAY_SESSION_TTL_SECONDS",
        "GATEWAY_UPSTREAM_MODEL",
    ):
        monkeypatch.delenv(name, raising=False)


def test_defaults():
    settings = Settings(_env_file=None)

    assert settings.port == 3001
    assert settings.cors_origin == "http://localhost:3000"
    assert settings.upstream_base_url == "https://openrouter.ai/api/v1"
    assert settings.upstream_model == "gpt-3.5-turbo"
    assert settings.upstream_api_key is None
    assert settings.session_ttl_seconds is None
    assert isinstance(policy_from_ttl(settings.session_ttl_seconds), RetainForever)


def test_open_router_key_is_accepted(monkeypatch):
    monkeypatch.setenv("OPEN_ROUTER_API_KEY", "sk-or-test")

    assert Settings(_env_file=None).upstream_api_key == "sk-or-test"


def test_prefixed_key_is_accepted(monkeypatch):
    monkeypatch.setenv("GATEWAY_UPSTREAM_API_KEY", "sk-gw-test")

    assert Settings(_env_file=None).upstream_api_key == "sk-gw-test"


def test_prefixed_overrides(monkeypatch):
    monkeypatch.setenv("GATEWAY_PORT", "8080")
    monkeypatch.setenv("GATEWAY_UPSTREAM_MODEL", "openai/gpt-4o-mini")
    monkeypatch.setenv("GATEWAY_SESSION_TTL_SECONDS", "300")

    settings = Settings(_env_file=None)

    assert settings.port == 8080
    assert settings.upstream_model == "openai/gpt-4o-mini"
    policy = policy_from_ttl(settings.session_ttl_seconds)
    assert isinstance(policy, EvictFinishedAfter)
    assert policy.ttl_seconds == 300


def test_ttl_must_be_positive(monkeypatch):
    monkeypatch.setenv("GATEWAY_SESSION_TTL_SECONDS", "0")

    with pytest.raises(ValidationError):
        Settings(_env_file=None)
