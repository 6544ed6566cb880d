# Cache module
from stylist_service.cache.cache_manager import CacheManager, fast_hash, CACHE_LAYERS
from stylist_service.cache.cache_store import CacheStore
