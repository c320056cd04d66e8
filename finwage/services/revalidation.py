"""On-demand cache revalidation.

Called after a successful mutation (or a backend webhook) to drop the cached
reads and rendered pages that depend on the changed content. Failures of the
cache store are logged as warnings and never raised: stale content until the
natural expiry is an accepted degradation.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Mapping, Optional

from finwage.extensions.cache import TaggedCache
from finwage.services.cache_registry import CacheRegistry

logger = logging.getLogger(__name__)


@dataclass
class RevalidationResult:
    """What a revalidation call dropped."""

    tags: List[str] = field(default_factory=list)
    paths: List[str] = field(default_factory=list)
    failed: List[str] = field(default_factory=list)
    collection: Optional[str] = None
    domain: Optional[str] = None

    @property
    def ok(self) -> bool:
        return not self.failed

    def to_dict(self) -> Dict[str, Any]:
        return {
            "collection": self.collection,
            "domain": self.domain,
            "tags": list(self.tags),
            "paths": list(self.paths),
            "failed": list(self.failed),
        }


class Revalidator:
    """Maps content changes to tag/path invalidations on the cache store."""

    def __init__(self, store: TaggedCache, registry: CacheRegistry) -> None:
        self.store = store
        self.registry = registry

    # ------------------------------------------------------------------
    # primitives
    def invalidate_by_tag(self, tag: str) -> bool:
        try:
            dropped = self.store.invalidate_tag(tag)
        except Exception as exc:  # pylint: disable=broad-except
            logger.warning("Cache tag revalidation failed for %s: %s", tag, exc)
            return False
        logger.debug("Revalidated tag %s (%s entries)", tag, dropped)
        return True

    def invalidate_by_path(self, path: str) -> bool:
        try:
            self.store.invalidate_path(path)
        except Exception as exc:  # pylint: disable=broad-except
            logger.warning("Cache path revalidation failed for %s: %s", path, exc)
            return False
        logger.debug("Revalidated path %s", path)
        return True

    def invalidate_tags(self, tags: Iterable[str], result: Optional[RevalidationResult] = None) -> RevalidationResult:
        result = result or RevalidationResult()
        for tag in dict.fromkeys(tags):
            if self.invalidate_by_tag(tag):
                result.tags.append(tag)
            else:
                result.failed.append(f"tag:{tag}")
        return result

    def invalidate_paths(self, paths: Iterable[str], result: Optional[RevalidationResult] = None) -> RevalidationResult:
        result = result or RevalidationResult()
        for path in dict.fromkeys(paths):
            if self.invalidate_by_path(path):
                result.paths.append(path)
            else:
                result.failed.append(f"path:{path}")
        return result

    # ------------------------------------------------------------------
    # domain-level helpers
    def revalidate_domain(self, name: str, slug: Optional[str] = None) -> RevalidationResult:
        tags, paths = self.registry.invalidation_set(name, slug)
        result = RevalidationResult(domain=name, collection=self.registry.domain(name).collection)
        self.invalidate_tags(tags, result)
        self.invalidate_paths(paths, result)
        return result

    def handle_collection_change(
        self,
        collection: str,
        record: Optional[Mapping[str, Any]] = None,
        action: Optional[str] = None,
    ) -> RevalidationResult:
        """Revalidate after a record in ``collection`` was created, updated or deleted."""
        domain = self.registry.resolve_collection(collection)
        if domain is None:
            logger.warning("No revalidation handler for collection %s", collection)
            return RevalidationResult(collection=collection)

        slug = None
        if record and domain.slug_field:
            slug = record.get(domain.slug_field) or None
        result = self.revalidate_domain(domain.name, slug)
        result.collection = collection
        logger.info(
            "Revalidated %s: tags=%s paths=%s action=%s record=%s",
            collection,
            result.tags,
            result.paths,
            action,
            (record or {}).get("id"),
        )
        return result

    def revalidate_all(self) -> RevalidationResult:
        result = self.invalidate_tags(self.registry.all_tags())
        return self.invalidate_paths(self.registry.all_paths(), result)

    def revalidate_by_frequency(self, frequency: str) -> RevalidationResult:
        return self.invalidate_tags(self.registry.frequency_tags(frequency))
