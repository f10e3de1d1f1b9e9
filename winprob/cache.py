import hashlib
import json
import logging
import threading
import time
from collections import OrderedDict
from typing import Any, Callable, Optional

import redis

from winprob.config import CACHE_ENABLED, CACHE_MAX_ENTRIES, CACHE_NAMESPACE, CACHE_VERSION, REDIS_URL

logger = logging.getLogger(__name__)


def result_cache_key(payload: dict) -> str:
    """Stable key for a request payload; identical snapshots share a cached result."""
    digest = hashlib.sha1(json.dumps(payload, sort_keys=True, default=str).encode("utf-8")).hexdigest()
    return f"result:{digest}"


class _ResultStore:
    """In-process results keyed by snapshot, bounded in both age and size.

    Live polling produces a fresh key for nearly every request, so expired
    entries are swept on each write rather than waiting for a repeat read.
    """

    def __init__(self, max_entries: int = CACHE_MAX_ENTRIES) -> None:
        self._entries: "OrderedDict[str, tuple[float, Any]]" = OrderedDict()
        self._max_entries = max(1, max_entries)
        self._lock = threading.Lock()

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def _sweep(self, now: float) -> None:
        stale = [key for key, (expires_at, _) in self._entries.items() if expires_at and expires_at <= now]
        for key in stale:
            del self._entries[key]
        while len(self._entries) >= self._max_entries:
            self._entries.popitem(last=False)

    def lookup(self, key: str) -> Optional[Any]:
        now = time.time()
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None
            expires_at, result = entry
            if expires_at and expires_at <= now:
                del self._entries[key]
                return None
            return result

    def store(self, key: str, result: Any, ttl: int) -> None:
        now = time.time()
        with self._lock:
            self._entries.pop(key, None)
            self._sweep(now)
            self._entries[key] = (now + ttl if ttl else 0, result)


class CacheClient:
    """Win probability results, in Redis when reachable and in process otherwise."""

    def __init__(self, enabled: bool = CACHE_ENABLED, redis_url: Optional[str] = REDIS_URL,
                 max_entries: int = CACHE_MAX_ENTRIES) -> None:
        self._enabled = enabled
        self._local = _ResultStore(max_entries)
        self._redis = None
        if enabled and redis_url:
            try:
                client = redis.Redis.from_url(redis_url, decode_responses=True)
                client.ping()
                self._redis = client
            except redis.RedisError as exc:
                logger.warning("Redis at %s unavailable (%s); caching results in process", redis_url, exc)

    def _full_key(self, key: str) -> str:
        return f"{CACHE_NAMESPACE}:{CACHE_VERSION}:{key}"

    def get(self, key: str) -> Optional[Any]:
        if not self._enabled:
            return None
        if self._redis is not None:
            raw = self._redis.get(self._full_key(key))
            return None if raw is None else json.loads(raw)
        return self._local.lookup(self._full_key(key))

    def set(self, key: str, value: Any, ttl: int) -> None:
        if not self._enabled:
            return
        if self._redis is not None:
            self._redis.set(self._full_key(key), json.dumps(value), ex=ttl)
        else:
            self._local.store(self._full_key(key), value, ttl)

    def get_or_set(self, key: str, ttl: int, loader: Callable[[], Any]) -> Any:
        """Return the cached result for ``key``, computing and storing it on a miss."""
        result = self.get(key)
        if result is None:
            result = loader()
            self.set(key, result, ttl)
        return result


cache = CacheClient()
