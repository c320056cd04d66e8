"""Centralized cache extension."""

from __future__ import annotations

import logging
import os
import threading
from typing import Any, Callable, Dict, Iterable, List, Optional, Tuple

from flask_caching import Cache

from finwage.constants import CacheDuration
from finwage.services.cache_registry import CacheOptions

logger = logging.getLogger(__name__)

cache = Cache()

# Same format Flask-Caching's ``cached()`` uses for view keys.
PAGE_KEY_PREFIX = "view/%s"
TAG_INDEX_PREFIX = "tag-index/"
# Longer than any entry an index can list.
TAG_INDEX_TIMEOUT = 2 * CacheDuration.STATIC


def init_cache(app) -> None:
    """Initialize the cache backing store based on environment configuration."""
    default_timeout = int(os.getenv("CACHE_DEFAULT_TIMEOUT", "300"))
    redis_url = os.getenv("REDIS_URL")
    config: Dict[str, Any] = {
        "CACHE_DEFAULT_TIMEOUT": default_timeout,
        "CACHE_KEY_PREFIX": os.getenv("CACHE_KEY_PREFIX", "finwage"),
        "CACHE_THRESHOLD": int(os.getenv("CACHE_THRESHOLD", "5000")),
    }

    if redis_url:
        config.update(
            {
                "CACHE_TYPE": "RedisCache",
                "CACHE_REDIS_URL": redis_url,
            }
        )
    else:
        # SimpleCache keeps everything in-process; suitable as a development fallback.
        config.update({"CACHE_TYPE": "SimpleCache"})

    app.config.setdefault("CACHE_TYPE", config["CACHE_TYPE"])
    app.config.setdefault("CACHE_DEFAULT_TIMEOUT", config["CACHE_DEFAULT_TIMEOUT"])
    app.config.setdefault("CACHE_KEY_PREFIX", config["CACHE_KEY_PREFIX"])
    app.config.setdefault("CACHE_THRESHOLD", config["CACHE_THRESHOLD"])

    if redis_url:
        app.config.setdefault("CACHE_REDIS_URL", config["CACHE_REDIS_URL"])

    cache.init_app(app)


def page_cache_key(path: str) -> str:
    return PAGE_KEY_PREFIX % path


class TaggedCache:
    """Tag index on top of the Flask-Caching store.

    Every tag owns an index entry listing the cache keys annotated with it.
    Invalidating a tag deletes those keys and the index itself, so a second
    invalidation finds nothing to do.

    Each tag (and each directly invalidated key) also carries an in-process
    generation counter. ``fetch`` snapshots the generations before calling the
    producer and drops the write when any of them moved, so a value read
    before an invalidation is never stored after it.
    """

    def __init__(self, store: Cache) -> None:
        self.store = store
        self._lock = threading.RLock()
        self._generations: Dict[str, int] = {}

    def _snapshot(self, names: Iterable[str]) -> Tuple[int, ...]:
        return tuple(self._generations.get(name, 0) for name in names)

    def _bump(self, name: str) -> None:
        self._generations[name] = self._generations.get(name, 0) + 1

    def fetch(self, key: str, producer: Callable[[], Any], options: CacheOptions) -> Any:
        """Return the cached value for ``key`` or produce, store and tag it."""
        if not options.cacheable:
            return producer()

        try:
            cached = self.store.get(key)
        except Exception as exc:  # pylint: disable=broad-except
            logger.warning("Cache read failed for %s: %s", key, exc)
            cached = None
        if cached is not None:
            return cached

        watched = (key,) + tuple(options.tags)
        with self._lock:
            before = self._snapshot(watched)
        value = producer()
        try:
            with self._lock:
                if self._snapshot(watched) != before:
                    logger.info("Skipping cache write for %s: invalidated while it was produced", key)
                    return value
                self.store.set(key, value, timeout=options.revalidate)
                self.tag_key(key, options.tags, options.revalidate)
        except Exception as exc:  # pylint: disable=broad-except
            logger.warning("Cache write failed for %s: %s", key, exc)
        return value

    def tag_key(self, key: str, tags: Iterable[str], timeout: int = 0) -> None:
        """Record ``key`` under each tag's index.

        The index outlives every entry it lists and its expiry is refreshed
        on each write. SimpleCache prunes entries without expiry first.
        """
        index_timeout = max(timeout, TAG_INDEX_TIMEOUT)
        with self._lock:
            for tag in tags:
                index_key = TAG_INDEX_PREFIX + tag
                keys: List[str] = self.store.get(index_key) or []
                if key not in keys:
                    # drop keys that already expired on their own
                    keys = [k for k in keys if self.store.has(k)]
                    keys.append(key)
                self.store.set(index_key, keys, timeout=index_timeout)

    def tagged_keys(self, tag: str) -> List[str]:
        return list(self.store.get(TAG_INDEX_PREFIX + tag) or [])

    def invalidate_tag(self, tag: str) -> int:
        """Drop every entry annotated with ``tag``; returns how many keys were indexed."""
        with self._lock:
            self._bump(tag)
            index_key = TAG_INDEX_PREFIX + tag
            keys: Optional[List[str]] = self.store.get(index_key)
            if keys:
                self.store.delete_many(*keys)
            self.store.delete(index_key)
        return len(keys or [])

    def invalidate_path(self, path: str) -> bool:
        """Drop the cached rendered output for ``path``; False when nothing was cached."""
        key = page_cache_key(path)
        with self._lock:
            self._bump(key)
            return bool(self.store.delete(key))


tagged_cache = TaggedCache(cache)
