"""
Cache Manager for the DX Cluster app.

Named in-process caches with per-entry TTL and LRU eviction. The app
factory owns the single instance: it is created in ``create_app``, stored on
``app.extensions['cache_manager']`` and shut down when the process exits.
"""

import time
import threading
import logging
from collections import OrderedDict
from typing import Any, Dict, Optional

logger = logging.getLogger(__name__)


class CacheEntry:
    """A cached value with its creation time and TTL."""

    __slots__ = ('value', 'created_at', 'max_age', 'hits')

    def __init__(self, value: Any, max_age: float, now: Optional[float] = None):
        self.value = value
        self.created_at = time.time() if now is None else now
        self.max_age = max_age
        self.hits = 0

    def is_expired(self, now: Optional[float] = None) -> bool:
        now = time.time() if now is None else now
        return now - self.created_at > self.max_age

    def get_age(self, now: Optional[float] = None) -> float:
        now = time.time() if now is None else now
        return now - self.created_at


class CacheManager:
    """Named TTL caches guarded by one lock."""

    def __init__(self, cleanup_interval: Optional[int] = 300):
        self.caches: Dict[str, 'OrderedDict[str, CacheEntry]'] = {}
        self.cache_configs: Dict[str, Dict[str, Any]] = {}
        self.counters: Dict[str, Dict[str, int]] = {}
        self.lock = threading.RLock()
        self.cleanup_interval = cleanup_interval
        self._stop = threading.Event()
        self.cleanup_thread: Optional[threading.Thread] = None

        if cleanup_interval:
            self._start_cleanup_thread()

    def _start_cleanup_thread(self):
        self.cleanup_thread = threading.Thread(target=self._cleanup_worker,
                                               name='cache-cleanup', daemon=True)
        self.cleanup_thread.start()
        logger.debug("Cache cleanup thread started")

    def _cleanup_worker(self):
        while not self._stop.wait(self.cleanup_interval):
            try:
                self.cleanup_expired()
            except Exception as e:
                logger.error(f"Error in cache cleanup worker: {e}")

    def register_cache(self, cache_name: str, max_age: int = 300, max_size: int = 100):
        """Register (or reconfigure) a named cache."""
        with self.lock:
            self.caches.setdefault(cache_name, OrderedDict())
            self.counters.setdefault(cache_name, {'hits': 0, 'misses': 0})
            self.cache_configs[cache_name] = {'max_age': max_age, 'max_size': max_size}
            logger.debug(f"Registered cache: {cache_name} (ttl {max_age}s, size {max_size})")

    def get(self, cache_name: str, key: str) -> Optional[Any]:
        with self.lock:
            cache = self.caches.get(cache_name)
            if cache is None:
                logger.warning(f"Cache {cache_name} not found")
                return None

            entry = cache.get(key)
            if entry is None or entry.is_expired():
                if entry is not None:
                    del cache[key]
                self.counters[cache_name]['misses'] += 1
                return None

            cache.move_to_end(key)
            entry.hits += 1
            self.counters[cache_name]['hits'] += 1
            return entry.value

    def set(self, cache_name: str, key: str, value: Any, max_age: Optional[int] = None) -> bool:
        with self.lock:
            cache = self.caches.get(cache_name)
            if cache is None:
                logger.warning(f"Cache {cache_name} not found")
                return False

            config = self.cache_configs[cache_name]
            ttl = config['max_age'] if max_age is None else max_age

            cache[key] = CacheEntry(value, ttl)
            cache.move_to_end(key)
            while len(cache) > config['max_size']:
                cache.popitem(last=False)
            return True

    def delete(self, cache_name: str, key: str) -> bool:
        with self.lock:
            cache = self.caches.get(cache_name)
            if cache is None or key not in cache:
                return False
            del cache[key]
            return True

    def clear(self, cache_name: Optional[str] = None) -> int:
        """Empty one cache, or all of them. Returns the number of entries removed."""
        with self.lock:
            names = [cache_name] if cache_name else list(self.caches)
            removed = 0
            for name in names:
                cache = self.caches.get(name)
                if cache is not None:
                    removed += len(cache)
                    cache.clear()
            logger.info(f"Cleared {removed} cache entries ({cache_name or 'all caches'})")
            return removed

    def cleanup_expired(self) -> int:
        with self.lock:
            now = time.time()
            expired = 0
            for cache in self.caches.values():
                for key in [k for k, entry in cache.items() if entry.is_expired(now)]:
                    del cache[key]
                    expired += 1
            if expired:
                logger.debug(f"Cleaned up {expired} expired cache entries")
            return expired

    def get_stats(self) -> Dict[str, Any]:
        with self.lock:
            now = time.time()
            caches = {}
            for name, cache in self.caches.items():
                ages = [entry.get_age(now) for entry in cache.values()]
                counters = self.counters[name]
                lookups = counters['hits'] + counters['misses']
                caches[name] = {
                    'entries': len(cache),
                    'max_size': self.cache_configs[name]['max_size'],
                    'max_age': self.cache_configs[name]['max_age'],
                    'hits': counters['hits'],
                    'misses': counters['misses'],
                    'hit_rate': round(counters['hits'] / lookups, 2) if lookups else 0.0,
                    'oldest_entry_age': round(max(ages), 2) if ages else 0.0,
                    'newest_entry_age': round(min(ages), 2) if ages else 0.0,
                }
            return {
                'total_caches': len(caches),
                'total_entries': sum(c['entries'] for c in caches.values()),
                'caches': caches,
            }

    def shutdown(self):
        self._stop.set()
        if self.cleanup_thread and self.cleanup_thread.is_alive():
            self.cleanup_thread.join(timeout=5)
        logger.info("Cache manager shutdown complete")


def create_cache_manager(config, cleanup_interval: Optional[int] = 300) -> CacheManager:
    """Build the app's cache manager with its named caches registered."""
    manager = CacheManager(cleanup_interval=cleanup_interval)
    manager.register_cache('propagation', max_age=config.PROPAGATION_CACHE_TTL, max_size=200)
    manager.register_cache('solar', max_age=config.SOLAR_CACHE_TTL, max_size=10)
    return manager
