"""
Key-value store adapters.

RedisKVStore talks to the shared remote store; MemoryKVStore keeps entries in
process and is used for local development and tests. Both expose the same
get/set/delete/pop_if_equals contract and never retry: callers own any retry
policy.
"""

from __future__ import annotations

import logging
import threading
import time
from typing import Dict, Optional, Protocol, Tuple

import redis

logger = logging.getLogger(__name__)


class StoreUnavailable(Exception):
    """Raised when the backing store cannot be reached or fails a call."""


class KVStore(Protocol):
    def get(self, key: str) -> Optional[str]:
        ...

    def set(self, key: str, value: str, ttl_seconds: Optional[int] = None) -> None:
        ...

    def delete(self, key: str) -> None:
        ...

    def pop_if_equals(self, key: str, expected: str) -> bool:
        """Delete key only when its current value is expected. True if deleted."""
        ...


# KEYS[1] is removed only when it still holds ARGV[1].
_POP_IF_EQUALS = """
if redis.call('GET', KEYS[1]) == ARGV[1] then
    return redis.call('DEL', KEYS[1])
end
return 0
"""


class RedisKVStore:
    """Thin wrapper over redis-py mapping transport errors to StoreUnavailable."""

    def __init__(self, client: "redis.Redis") -> None:
        self._client = client
        self._pop_script = client.register_script(_POP_IF_EQUALS)

    @classmethod
    def from_url(cls, url: str, *, socket_timeout: float = 5.0) -> "RedisKVStore":
        client = redis.Redis.from_url(
            url,
            decode_responses=True,
            socket_timeout=socket_timeout,
            socket_connect_timeout=socket_timeout,
        )
        return cls(client)

    def get(self, key: str) -> Optional[str]:
        try:
            return self._client.get(key)
        except redis.RedisError as exc:
            raise StoreUnavailable(f"get failed for {key!r}") from exc

    def set(self, key: str, value: str, ttl_seconds: Optional[int] = None) -> None:
        try:
            if ttl_seconds and ttl_seconds > 0:
                self._client.set(key, value, ex=int(ttl_seconds))
            else:
                self._client.set(key, value)
        except redis.RedisError as exc:
            raise StoreUnavailable(f"set failed for {key!r}") from exc

    def delete(self, key: str) -> None:
        try:
            self._client.delete(key)
        except redis.RedisError as exc:
            raise StoreUnavailable(f"delete failed for {key!r}") from exc

    def pop_if_equals(self, key: str, expected: str) -> bool:
        try:
            return bool(self._pop_script(keys=[key], args=[expected]))
        except redis.RedisError as exc:
            raise StoreUnavailable(f"pop_if_equals failed for {key!r}") from exc


class MemoryKVStore:
    """In-process store with the same contract; entries may carry a TTL."""

    def __init__(self) -> None:
        self._data: Dict[str, Tuple[str, Optional[float]]] = {}
        self._lock = threading.Lock()

    def _live(self, key: str, now: float) -> Optional[str]:
        entry = self._data.get(key)
        if entry is None:
            return None
        value, expires = entry
        if expires is not None and now >= expires:
            self._data.pop(key, None)
            return None
        return value

    def get(self, key: str) -> Optional[str]:
        with self._lock:
            return self._live(key, time.time())

    def set(self, key: str, value: str, ttl_seconds: Optional[int] = None) -> None:
        expires = time.time() + ttl_seconds if ttl_seconds and ttl_seconds > 0 else None
        with self._lock:
            self._data[key] = (str(value), expires)

    def delete(self, key: str) -> None:
        with self._lock:
            self._data.pop(key, None)

    def pop_if_equals(self, key: str, expected: str) -> bool:
        with self._lock:
            if self._live(key, time.time()) != expected:
                return False
            del self._data[key]
            return True


def build_kv_store(url: str, *, socket_timeout: float = 5.0) -> KVStore:
    """Redis when a URL is configured, otherwise the in-memory store."""
    if url:
        return RedisKVStore.from_url(url, socket_timeout=socket_timeout)
    logger.warning("KV_URL not configured; using in-memory key-value store")
    return MemoryKVStore()
