"""Presence store: a key/value store with per-key expiry.

Heartbeats and assembly session flags live here. Two backends are provided:

- ``RedisPresenceStore`` for production, backed by ``redis-py``; the client is
  created on first use and reused for the lifetime of the store.
- ``InMemoryPresenceStore`` for tests and single-process development, with an
  injectable clock so expiry can be driven deterministically.

Every backend failure surfaces as ``StoreUnavailable``. A ``None`` from
``get`` or an empty set from ``keys_matching`` only ever means "no record".
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable
from threading import Lock
from typing import Protocol

import redis
from redis.exceptions import RedisError

from assembly_stage.core.errors import ConfigurationError, StoreUnavailable
from assembly_stage.core.settings import Settings, settings

logger = logging.getLogger(__name__)

Clock = Callable[[], float]

_GLOB_SPECIAL = ("\\", "*", "?", "[", "]")


class PresenceStore(Protocol):
    """Contract shared by all presence store backends."""

    def set(self, key: str, value: str, ttl_seconds: int) -> None: ...

    def get(self, key: str) -> str | None: ...

    def keys_matching(self, prefix: str) -> set[str]: ...

    def delete(self, *keys: str) -> int: ...

    def ping(self) -> bool: ...


def _escape_glob(prefix: str) -> str:
    for char in _GLOB_SPECIAL:
        prefix = prefix.replace(char, f"\\{char}")
    return prefix


class RedisPresenceStore:
    """Presence store backed by Redis ``SET ... EX`` keys."""

    def __init__(
        self,
        url: str,
        *,
        socket_timeout: float = 2.0,
        client: redis.Redis | None = None,
    ) -> None:
        self._url = url
        self._socket_timeout = socket_timeout
        self._client = client
        self._client_lock = Lock()

    @property
    def client(self) -> redis.Redis:
        """Return the Redis client, constructing it on first use."""
        if self._client is None:
            with self._client_lock:
                if self._client is None:
                    self._client = redis.from_url(  # type: ignore[no-untyped-call]
                        self._url,
                        decode_responses=True,
                        socket_timeout=self._socket_timeout,
                        socket_connect_timeout=self._socket_timeout,
                    )
        return self._client

    def set(self, key: str, value: str, ttl_seconds: int) -> None:
        if ttl_seconds <= 0:
            raise ValueError("ttl_seconds must be positive")
        try:
            self.client.set(key, value, ex=int(ttl_seconds))
        except RedisError as err:
            logger.warning("Presence store SET failed for %s: %s", key, err)
            raise StoreUnavailable(f"presence store unavailable: {err}") from err

    def get(self, key: str) -> str | None:
        try:
            value = self.client.get(key)
        except RedisError as err:
            logger.warning("Presence store GET failed for %s: %s", key, err)
            raise StoreUnavailable(f"presence store unavailable: {err}") from err
        return None if value is None else str(value)

    def keys_matching(self, prefix: str) -> set[str]:
        # SCAN instead of KEYS so large keyspaces do not block the server.
        pattern = f"{_escape_glob(prefix)}*"
        try:
            return {str(key) for key in self.client.scan_iter(match=pattern, count=500)}
        except RedisError as err:
            logger.warning("Presence store SCAN failed for %s: %s", prefix, err)
            raise StoreUnavailable(f"presence store unavailable: {err}") from err

    def delete(self, *keys: str) -> int:
        if not keys:
            return 0
        try:
            return int(self.client.delete(*keys))
        except RedisError as err:
            logger.warning("Presence store DEL failed: %s", err)
            raise StoreUnavailable(f"presence store unavailable: {err}") from err

    def ping(self) -> bool:
        try:
            return bool(self.client.ping())
        except RedisError as err:
            raise StoreUnavailable(f"presence store unavailable: {err}") from err


class InMemoryPresenceStore:
    """Process-local presence store with lazy expiry.

    An entry written at ``t`` with ``ttl`` is live while ``now < t + ttl``.
    """

    def __init__(self, clock: Clock | None = None) -> None:
        self._clock: Clock = clock or time.monotonic
        self._entries: dict[str, tuple[str, float]] = {}
        self._lock = Lock()

    def _live(self, key: str, now: float) -> str | None:
        entry = self._entries.get(key)
        if entry is None:
            return None
        value, expires_at = entry
        if now >= expires_at:
            self._entries.pop(key, None)
            return None
        return value

    def set(self, key: str, value: str, ttl_seconds: int) -> None:
        if ttl_seconds <= 0:
            raise ValueError("ttl_seconds must be positive")
        with self._lock:
            self._entries[key] = (value, self._clock() + ttl_seconds)

    def get(self, key: str) -> str | None:
        with self._lock:
            return self._live(key, self._clock())

    def keys_matching(self, prefix: str) -> set[str]:
        now = self._clock()
        with self._lock:
            candidates = [key for key in self._entries if key.startswith(prefix)]
            return {key for key in candidates if self._live(key, now) is not None}

    def delete(self, *keys: str) -> int:
        now = self._clock()
        removed = 0
        with self._lock:
            for key in keys:
                if self._live(key, now) is not None:
                    removed += 1
                self._entries.pop(key, None)
        return removed

    def ping(self) -> bool:
        return True

    def ttl(self, key: str) -> float | None:
        """Return the remaining lifetime of a key in seconds, if it is live."""
        with self._lock:
            now = self._clock()
            if self._live(key, now) is None:
                return None
            return self._entries[key][1] - now


def build_presence_store(config: Settings) -> PresenceStore:
    """Construct the presence store selected by configuration.

    Raises:
        ConfigurationError: If the Redis backend is selected without a URL.
    """
    if config.presence_backend == "memory":
        return InMemoryPresenceStore()
    if config.presence_backend == "redis":
        url = (config.redis_url or "").strip()
        if not url:
            raise ConfigurationError("REDIS_URL is required for the redis presence backend")
        return RedisPresenceStore(url, socket_timeout=config.redis_socket_timeout_seconds)
    raise ConfigurationError(f"Unknown presence backend: {config.presence_backend!r}")


class _PresenceStoreSingleton:
    """Lazily constructed, process-wide presence store."""

    _instance: PresenceStore | None = None
    _lock = Lock()

    @classmethod
    def get_instance(cls) -> PresenceStore:
        if cls._instance is None:
            with cls._lock:
                if cls._instance is None:
                    cls._instance = build_presence_store(settings)
        return cls._instance

    @classmethod
    def reset(cls) -> None:
        with cls._lock:
            cls._instance = None


def get_presence_store() -> PresenceStore:
    """Return the shared presence store, constructing it on first use."""
    return _PresenceStoreSingleton.get_instance()


def reset_presence_store() -> None:
    """Forget the shared presence store so the next call rebuilds it."""
    _PresenceStoreSingleton.reset()
