"""Cache Service - key/value cache with per-entry expiry (Redis or in-process)."""
import hashlib
import json
import logging
import threading
import time
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from typing import Any, Callable, Dict, Optional, Tuple
from urllib.parse import urlparse

from redis import Redis

logger = logging.getLogger(__name__)

DEFAULT_TTL_SECONDS = 60 * 60


def _sanitize_url(url: str) -> str:
    """Remove credentials from URL for safe logging."""
    try:
        parsed = urlparse(url)
        if parsed.password:
            sanitized = parsed._replace(
                netloc=f"{parsed.username or ''}:*@{parsed.hostname}:{parsed.port or 6379}"
            )
            return sanitized.geturl()
        return url
    except Exception:
        return url


def make_cache_key(namespace: str, *parts: Any) -> str:
    """Build a cache key: a readable namespace plus a digest of the parts."""
    raw = "|".join("" if part is None else str(part) for part in parts)
    digest = hashlib.sha256(raw.encode("utf-8")).hexdigest()[:32]
    return f"{namespace}:{digest}"


def _envelope(value: Any, ttl: int) -> str:
    return json.dumps({
        "data": value,
        "cached_at": datetime.now(timezone.utc).isoformat(),
        "ttl_seconds": ttl,
    })


class CacheService(ABC):
    """
    Shared cache used by the search client, the AI service and the display
    repository.

    Values must be JSON-serializable. Reads never raise: a miss, an expired
    entry or a backend problem all come back as None.
    """

    def __init__(self, default_ttl_seconds: int = DEFAULT_TTL_SECONDS):
        self.default_ttl_seconds = default_ttl_seconds

    @abstractmethod
    def try_get(self, key: str) -> Optional[Any]:
        """Return the cached value, or None on miss."""
        pass

    @abstractmethod
    def put(self, key: str, value: Any, ttl_seconds: Optional[int] = None) -> bool:
        """Store a value; returns False when it could not be written."""
        pass

    @abstractmethod
    def delete(self, key: str) -> bool:
        pass

    @property
    def is_available(self) -> bool:
        return True

    def get_or_set(self, key: str, factory: Callable[[], Any], ttl_seconds: Optional[int] = None) -> Any:
        """Read-through helper. ``None`` results from the factory are not cached."""
        cached = self.try_get(key)
        if cached is not None:
            return cached
        value = factory()
        if value is not None:
            self.put(key, value, ttl_seconds)
        return value

    def _ttl(self, ttl_seconds: Optional[int]) -> int:
        return int(ttl_seconds or self.default_ttl_seconds)


class MemoryCacheService(CacheService):
    """In-process cache guarded by a lock. Entries are stored as JSON text."""

    def __init__(
        self,
        default_ttl_seconds: int = DEFAULT_TTL_SECONDS,
        clock: Callable[[], float] = time.monotonic
    ):
        super().__init__(default_ttl_seconds)
        self._clock = clock
        self._entries: Dict[str, Tuple[float, str]] = {}
        self._lock = threading.Lock()

    def try_get(self, key: str) -> Optional[Any]:
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                logger.debug(f"Cache miss for {key}")
                return None
            expires_at, payload = entry
            if self._clock() >= expires_at:
                del self._entries[key]
                logger.debug(f"Cache entry expired for {key}")
                return None
        try:
            return json.loads(payload).get("data")
        except (ValueError, AttributeError) as e:
            logger.warning(f"Error reading from memory cache: {e}")
            return None

    def put(self, key: str, value: Any, ttl_seconds: Optional[int] = None) -> bool:
        ttl = self._ttl(ttl_seconds)
        try:
            payload = _envelope(value, ttl)
        except (TypeError, ValueError) as e:
            logger.warning(f"Value for {key} is not cacheable: {e}")
            return False
        with self._lock:
            now = self._clock()
            self._purge_expired(now)
            self._entries[key] = (now + ttl, payload)
        logger.debug(f"Cached {key} (TTL: {ttl}s)")
        return True

    def delete(self, key: str) -> bool:
        with self._lock:
            self._entries.pop(key, None)
        return True

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def _purge_expired(self, now: float) -> None:
        # caller holds self._lock
        expired = [key for key, (expires_at, _) in self._entries.items() if now >= expires_at]
        for key in expired:
            del self._entries[key]
        if expired:
            logger.debug(f"Purged {len(expired)} expired cache entries")


class RedisCacheService(CacheService):
    """
    Redis-backed cache shared between processes.

    Degrades to always-miss when Redis cannot be reached.
    """

    def __init__(
        self,
        redis_url: str = "redis://localhost:6379/0",
        password: Optional[str] = None,
        default_ttl_seconds: int = DEFAULT_TTL_SECONDS
    ):
        super().__init__(default_ttl_seconds)
        self.redis_url = redis_url
        self._redis: Optional[Redis] = None
        self._available = False

        try:
            self._redis = Redis.from_url(
                redis_url,
                password=password,
                decode_responses=True,
                socket_connect_timeout=5,
                socket_timeout=5
            )
            self._redis.ping()
            self._available = True
            logger.info(f"Cache connected to Redis at {_sanitize_url(redis_url)}")
        except Exception as e:
            logger.warning(f"Cache Redis unavailable: {e}")
            self._redis = None
            self._available = False

    @property
    def is_available(self) -> bool:
        """Check if cache is available."""
        if not self._available or not self._redis:
            return False
        try:
            return self._redis.ping()
        except Exception:
            return False

    def try_get(self, key: str) -> Optional[Any]:
        if not self._available or not self._redis:
            return None

        try:
            data = self._redis.get(key)
            if data:
                logger.debug(f"Cache hit for {key}")
                return json.loads(data).get("data")
            logger.debug(f"Cache miss for {key}")
            return None
        except Exception as e:
            logger.warning(f"Error reading from cache: {e}")
            return None

    def put(self, key: str, value: Any, ttl_seconds: Optional[int] = None) -> bool:
        if not self._available or not self._redis:
            return False

        try:
            ttl = self._ttl(ttl_seconds)
            self._redis.setex(key, ttl, _envelope(value, ttl))
            logger.debug(f"Cached {key} (TTL: {ttl}s)")
            return True
        except Exception as e:
            logger.warning(f"Error writing to cache: {e}")
            return False

    def delete(self, key: str) -> bool:
        if not self._available or not self._redis:
            return False

        try:
            self._redis.delete(key)
            return True
        except Exception as e:
            logger.warning(f"Error deleting from cache: {e}")
            return False


def init_cache(
    backend: str = "memory",
    redis_url: Optional[str] = None,
    password: Optional[str] = None,
    default_ttl_seconds: int = DEFAULT_TTL_SECONDS
) -> CacheService:
    """Build the cache backend named by ``backend`` ("memory" or "redis")."""
    if backend == "redis":
        return RedisCacheService(
            redis_url or "redis://localhost:6379/0",
            password=password,
            default_ttl_seconds=default_ttl_seconds
        )
    if backend == "memory":
        return MemoryCacheService(default_ttl_seconds=default_ttl_seconds)
    raise ValueError(f"Unknown cache backend: {backend!r}")
