"""Tests for runtime configuration checks."""

import pytest

from assembly_stage.core.errors import ConfigurationError
from assembly_stage.core.settings import Settings

BASE = {"SECRET_KEY": "k", "PRESENCE_BACKEND": "memory"}


def test_memory_backend_validates() -> None:
    Settings(**BASE).validate_runtime()


def test_redis_backend_requires_url() -> None:
    config = Settings(**{**BASE, "PRESENCE_BACKEND": "redis", "REDIS_URL": ""})

    with pytest.raises(ConfigurationError, match="REDIS_URL"):
        config.validate_runtime()


def test_required_vote_secret_must_be_set() -> None:
    config = Settings(
        **{**BASE, "REQUIRE_VOTE_SERVER_SECRET": True, "VOTE_SERVER_SECRET": None}
    )

    with pytest.raises(ConfigurationError, match="VOTE_SERVER_SECRET"):
        config.validate_runtime()


def test_secret_key_must_be_set() -> None:
    config = Settings(**{**BASE, "SECRET_KEY": None})

    with pytest.raises(ConfigurationError, match="SECRET_KEY"):
        config.validate_runtime()


def test_heartbeat_interval_must_be_shorter_than_ttl() -> None:
    config = Settings(
        **{**BASE, "HEARTBEAT_TTL_SECONDS": 30, "HEARTBEAT_INTERVAL_SECONDS": 30}
    )

    with pytest.raises(ConfigurationError, match="HEARTBEAT_INTERVAL_SECONDS"):
        config.validate_runtime()
