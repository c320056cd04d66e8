"""Read-side wrappers around the PocketBase collections.

One :class:`ContentService` per content domain. Every read is routed through
the tagged cache with the domain's :class:`CacheOptions`, so the revalidation
side can drop it by tag later.
"""

from __future__ import annotations

import logging
import math
import re
from dataclasses import dataclass, field
from typing import Any, Dict, Iterator, List, Optional

from finwage.extensions.cache import TaggedCache
from finwage.services.cache_registry import CacheRegistry, ContentDomain
from integrations.pocketbase.client import (
    PocketBaseClient,
    build_filter,
    quote_value,
    request_fingerprint,
)

logger = logging.getLogger(__name__)

# PocketBase generates 15 character lowercase alphanumeric ids.
RECORD_ID_RE = re.compile(r"^[a-z0-9]{15}$")


@dataclass
class ListOptions:
    page: int = 1
    per_page: int = 20
    sort: Optional[str] = None
    filter: Optional[str] = None
    expand: Optional[str] = None
    category: Optional[str] = None


@dataclass
class ListResult:
    items: List[Dict[str, Any]] = field(default_factory=list)
    page: int = 1
    per_page: int = 20
    total_items: int = 0
    total_pages: int = 0

    @classmethod
    def from_payload(cls, payload: Dict[str, Any], options: ListOptions) -> "ListResult":
        items = list(payload.get("items") or [])
        per_page = int(payload.get("perPage") or options.per_page)
        total_items = int(payload.get("totalItems", len(items)))
        total_pages = payload.get("totalPages")
        if total_pages is None:
            total_pages = math.ceil(total_items / per_page) if per_page else 0
        return cls(
            items=items,
            page=int(payload.get("page") or options.page),
            per_page=per_page,
            total_items=total_items,
            total_pages=int(total_pages),
        )

    def __iter__(self) -> Iterator[Dict[str, Any]]:
        return iter(self.items)

    def __len__(self) -> int:
        return len(self.items)


def is_record_id(key: str) -> bool:
    return bool(RECORD_ID_RE.match(key or ""))


class ContentService:
    """Cached reads for a single content domain."""

    def __init__(
        self,
        domain_name: str,
        registry: CacheRegistry,
        client: PocketBaseClient,
        cache: TaggedCache,
    ) -> None:
        self.registry = registry
        self.domain: ContentDomain = registry.domain(domain_name)
        self.client = client
        self.cache = cache

    def __repr__(self) -> str:
        return f"ContentService({self.domain.name!r})"

    @property
    def collection(self) -> str:
        return self.domain.collection

    def _list_params(self, options: ListOptions) -> Dict[str, Any]:
        category_clause = None
        if options.category:
            category_clause = f"{self.domain.category_field} = {quote_value(options.category)}"
        return {
            "page": options.page,
            "per_page": options.per_page,
            "sort": options.sort or self.domain.default_sort,
            "filter": build_filter(self.domain.default_filter, options.filter, category_clause),
            "expand": options.expand if options.expand is not None else self.domain.expand,
        }

    def list(self, options: Optional[ListOptions] = None) -> ListResult:
        options = options or ListOptions()
        params = self._list_params(options)
        extra_tags = []
        if options.category:
            extra_tags.append(f"{self.domain.tag}-category-{options.category}")
        cache_options = self.registry.cache_options(self.domain.name, *extra_tags)
        key = request_fingerprint("list", self.collection, params)

        payload = self.cache.fetch(
            key,
            lambda: self.client.list_records(self.collection, **params),
            cache_options,
        )
        return ListResult.from_payload(payload, options)

    def get_by_slug_or_id(self, key: str) -> Dict[str, Any]:
        """Fetch one record by slug, or by id when ``key`` looks like a record id.

        Raises ``RecordNotFoundError`` when nothing matches; misses are not cached.
        """
        domain = self.domain
        by_slug = bool(domain.slug_field) and not is_record_id(key)
        cache_options = self.registry.cache_options(
            domain.name, self.registry.record_tag(domain.name, key)
        )

        if by_slug:
            record_filter = build_filter(
                domain.default_filter, f"{domain.slug_field} = {quote_value(key)}"
            )
            fingerprint = request_fingerprint(
                "first", self.collection, {"filter": record_filter, "expand": domain.expand}
            )
            producer = lambda: self.client.get_first(  # noqa: E731
                self.collection, record_filter, expand=domain.expand
            )
        else:
            fingerprint = request_fingerprint(
                "get", self.collection, {"id": key, "expand": domain.expand}
            )
            producer = lambda: self.client.get_record(  # noqa: E731
                self.collection, key, expand=domain.expand
            )

        return self.cache.fetch(fingerprint, producer, cache_options)

    def featured(self, limit: int = 3) -> List[Dict[str, Any]]:
        if not self.domain.featured_filter:
            return self.list(ListOptions(per_page=limit)).items
        return self.list(ListOptions(per_page=limit, filter=self.domain.featured_filter)).items

    def by_category(self, category: str, limit: int = 50) -> List[Dict[str, Any]]:
        return self.list(ListOptions(per_page=limit, category=category)).items

    def all(self, limit: int = 200) -> List[Dict[str, Any]]:
        return self.list(ListOptions(per_page=limit)).items


# Attribute names that differ from the domain name.
SERVICE_ATTRIBUTES = {
    "contact": "contact_options",
}


class ContentServices:
    """One :class:`ContentService` attribute per registered domain."""

    def __init__(self, registry: CacheRegistry, client: PocketBaseClient, cache: TaggedCache) -> None:
        self._by_domain: Dict[str, ContentService] = {}
        for name in registry.domains:
            service = ContentService(name, registry, client, cache)
            self._by_domain[name] = service
            attribute = SERVICE_ATTRIBUTES.get(name, name.replace("-", "_"))
            setattr(self, attribute, service)

    def __getitem__(self, domain_name: str) -> ContentService:
        return self._by_domain[domain_name]

    def __iter__(self) -> Iterator[ContentService]:
        return iter(self._by_domain.values())
