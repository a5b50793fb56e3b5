"""Cache Module - Caching services."""
from core.cache.cache_service import (
    CacheService,
    MemoryCacheService,
    RedisCacheService,
    init_cache,
    make_cache_key,
    DEFAULT_TTL_SECONDS
)

__all__ = [
    'CacheService',
    'MemoryCacheService',
    'RedisCacheService',
    'init_cache',
    'make_cache_key',
    'DEFAULT_TTL_SECONDS'
]
