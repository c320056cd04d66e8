"""Registry mapping content domains to cache tags, durations and paths.

A single :class:`CacheRegistry` is built at startup and handed to both the
read path (content services) and the write path (revalidation), so a domain
always resolves to the same tag string everywhere.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from types import MappingProxyType
from typing import Dict, Iterable, List, Mapping, Optional, Tuple

from finwage.constants import CACHE_TAGS, FREQUENCY_DOMAINS, SITE_PATHS, CacheDuration


class UnknownDomainError(KeyError):
    """Raised when a domain name is not registered."""


@dataclass(frozen=True)
class CacheOptions:
    """Cache settings attached to a read: ``{revalidate: seconds, tags: [...]}``."""

    revalidate: int
    tags: Tuple[str, ...] = ()

    @property
    def cacheable(self) -> bool:
        return self.revalidate > 0


@dataclass(frozen=True)
class ContentDomain:
    """A content category backed by one PocketBase collection."""

    name: str
    collection: str
    tag: str
    duration: int
    paths: Tuple[str, ...] = ()
    related: Tuple[str, ...] = ()
    aliases: Tuple[str, ...] = ()
    record_prefix: Optional[str] = None
    record_path: Optional[str] = None
    default_filter: Optional[str] = None
    default_sort: str = "-created"
    expand: Optional[str] = None
    slug_field: Optional[str] = None
    category_field: str = "category"
    featured_filter: Optional[str] = "featured = true"


def normalize_collection_name(name: str) -> str:
    return re.sub(r"[_\s\-]+", "_", name.strip().lower())


class CacheRegistry:
    """Immutable domain -> tag/path map."""

    __slots__ = ("_domains", "_lookup")

    def __init__(self, domains: Iterable[ContentDomain]) -> None:
        by_name: Dict[str, ContentDomain] = {}
        seen_tags: Dict[str, str] = {}
        for domain in domains:
            if domain.name in by_name:
                raise ValueError(f"Duplicate content domain: {domain.name}")
            if domain.tag in seen_tags:
                raise ValueError(
                    f"Cache tag {domain.tag!r} is shared by {seen_tags[domain.tag]!r} and {domain.name!r}"
                )
            by_name[domain.name] = domain
            seen_tags[domain.tag] = domain.name

        for domain in by_name.values():
            missing = [name for name in domain.related if name not in by_name]
            if missing:
                raise ValueError(f"Domain {domain.name!r} relates to unknown domains {missing}")

        lookup: Dict[str, str] = {}
        for domain in by_name.values():
            for key in (domain.name, domain.collection, *domain.aliases):
                lookup.setdefault(normalize_collection_name(key), domain.name)

        object.__setattr__(self, "_domains", MappingProxyType(by_name))
        object.__setattr__(self, "_lookup", MappingProxyType(lookup))

    def __setattr__(self, name, value):
        raise AttributeError("CacheRegistry is immutable")

    def __repr__(self) -> str:
        return f"CacheRegistry({sorted(self._domains)})"

    @property
    def domains(self) -> Mapping[str, ContentDomain]:
        return self._domains

    # ------------------------------------------------------------------
    # lookups
    def domain(self, name: str) -> ContentDomain:
        try:
            return self.domains[name]
        except KeyError:
            raise UnknownDomainError(name) from None

    def tag_for(self, name: str) -> str:
        return self.domain(name).tag

    def record_tag(self, name: str, identifier: str) -> str:
        domain = self.domain(name)
        prefix = domain.record_prefix or domain.tag
        return f"{prefix}-{identifier}"

    def cache_options(self, name: str, *extra_tags: str, revalidate: Optional[int] = None) -> CacheOptions:
        domain = self.domain(name)
        tags: List[str] = [domain.tag]
        for tag in extra_tags:
            if tag and tag not in tags:
                tags.append(tag)
        return CacheOptions(
            revalidate=domain.duration if revalidate is None else revalidate,
            tags=tuple(tags),
        )

    def resolve_collection(self, collection: str) -> Optional[ContentDomain]:
        name = self._lookup.get(normalize_collection_name(collection))
        return self.domains[name] if name else None

    def invalidation_set(self, name: str, slug: Optional[str] = None) -> Tuple[Tuple[str, ...], Tuple[str, ...]]:
        """Tags and paths to drop when a record in ``name`` changes."""
        domain = self.domain(name)
        tags: List[str] = [domain.tag]
        paths: List[str] = list(domain.paths)
        for related in domain.related:
            related_tag = self.domains[related].tag
            if related_tag not in tags:
                tags.append(related_tag)
        if slug:
            tags.append(self.record_tag(name, slug))
            if domain.record_path:
                paths.append(domain.record_path.format(slug=slug))
        return tuple(tags), tuple(dict.fromkeys(paths))

    def frequency_tags(self, frequency: str) -> Tuple[str, ...]:
        try:
            names = FREQUENCY_DOMAINS[frequency]
        except KeyError:
            raise ValueError(
                f"Invalid frequency {frequency!r}; expected one of {sorted(FREQUENCY_DOMAINS)}"
            ) from None
        return tuple(self.tag_for(name) for name in names)

    def all_tags(self) -> Tuple[str, ...]:
        return tuple(domain.tag for domain in self.domains.values())

    def all_paths(self) -> Tuple[str, ...]:
        paths: List[str] = list(SITE_PATHS)
        for domain in self.domains.values():
            paths.extend(domain.paths)
        return tuple(dict.fromkeys(paths))


def _domain(name: str, collection: str, duration: int, **kwargs) -> ContentDomain:
    return ContentDomain(name=name, collection=collection, tag=CACHE_TAGS[name], duration=duration, **kwargs)


def build_default_registry() -> CacheRegistry:
    """Registry for every collection the marketing site reads."""
    return CacheRegistry([
        # Content
        _domain(
            "blogs", "blogs", CacheDuration.MEDIUM,
            paths=("/blog",), related=("authors", "categories"),
            aliases=("Blogs",), record_prefix="blog", record_path="/blog/{slug}",
            default_filter="published = true", default_sort="-published_date",
            expand="author,category", slug_field="slug",
            featured_filter="featured = true",
        ),
        _domain(
            "authors", "authors", CacheDuration.LONG,
            paths=("/blog",), related=("blogs",), aliases=("Authors",),
            record_prefix="author", default_filter="active = true", default_sort="name",
            slug_field="slug", featured_filter=None,
        ),
        _domain(
            "categories", "category", CacheDuration.LONG,
            paths=("/blog",), related=("blogs",), aliases=("Category", "categories"),
            record_prefix="category", default_sort="name", slug_field="slug", featured_filter=None,
        ),
        # Marketing
        _domain(
            "testimonials", "testimonials", CacheDuration.LONG,
            paths=("/", "/for-employees"), aliases=("Testimonials",), default_sort="-created",
        ),
        _domain(
            "partners", "partners", CacheDuration.LONG,
            paths=("/",), aliases=("Partners",), default_filter="active = true", default_sort="order",
        ),
        _domain(
            "press", "press", CacheDuration.SHORT,
            paths=("/resources",), aliases=("Press", "press_releases"),
            default_filter="published = true", default_sort="-published_date",
        ),
        # Product
        _domain(
            "features", "features", CacheDuration.LONG,
            paths=("/",), aliases=("Features",), default_filter="active = true", default_sort="order",
        ),
        _domain(
            "integrations", "integrations", CacheDuration.LONG,
            paths=("/", "/for-employers"), aliases=("Integrations",), default_filter="active = true", default_sort="order",
        ),
        _domain(
            "pricing", "pricing_plans", CacheDuration.LONG,
            paths=("/pricing", "/"), aliases=("Pricing_Plans",),
            default_filter="active = true", default_sort="order",
            featured_filter="is_popular = true",
        ),
        # Company
        _domain(
            "leadership", "leadership", CacheDuration.STATIC,
            paths=("/about",), aliases=("Leadership",), default_sort="order",
        ),
        _domain(
            "values", "values", CacheDuration.STATIC,
            paths=("/about",), aliases=("Values", "company_values"), default_sort="order",
        ),
        _domain(
            "milestones", "company_milestones", CacheDuration.STATIC,
            paths=("/about",), aliases=("Company_Milestones", "milestones"), default_sort="order",
        ),
        _domain(
            "stats", "status", CacheDuration.MEDIUM,
            paths=("/about", "/"), aliases=("Stats", "company_stats"), default_sort="order",
            featured_filter=None,
        ),
        # Careers
        _domain(
            "jobs", "jobs", CacheDuration.SHORT,
            paths=("/careers",), related=("benefits", "locations"),
            aliases=("Jobs", "job_positions"), record_prefix="job",
            default_filter='status = "open"', default_sort="-created", category_field="department",
        ),
        _domain(
            "benefits", "employee_benefits", CacheDuration.LONG,
            paths=("/careers", "/for-employees", "/for-employers", "/how-it-works"),
            aliases=("Employee_Benefits",), default_sort="order",
            featured_filter=None,
        ),
        _domain(
            "locations", "locations", CacheDuration.STATIC,
            paths=("/careers", "/contact"), aliases=("Locations", "office_locations"),
            default_sort="city", category_field="city", featured_filter=None,
        ),
        # Support
        _domain(
            "support", "support", CacheDuration.LONG,
            paths=("/resources", "/contact"), aliases=("Support", "support_resources"), default_sort="order",
            featured_filter=None,
        ),
        _domain(
            "faqs", "faqs", CacheDuration.LONG,
            paths=("/resources", "/pricing"), related=("faq-topics",), aliases=("Faqs", "faq_items"),
            default_sort="order",
        ),
        _domain(
            "faq-topics", "faq_topics", CacheDuration.LONG,
            paths=("/resources",), related=("faqs",), aliases=("Faq_Topics", "faq_categories"),
            default_sort="order", featured_filter=None,
        ),
        _domain(
            "contact", "contact_options", CacheDuration.LONG,
            paths=("/contact",), aliases=("Contacts", "contact_options"),
            default_sort="-is_featured", featured_filter="is_featured = true",
        ),
        # User data; never cached
        _domain(
            "enquiries", "enquiries", CacheDuration.DYNAMIC,
            aliases=("Enquiries",), featured_filter=None,
        ),
        # Marketing pages
        _domain(
            "compliance", "compliance_items", CacheDuration.LONG,
            paths=("/compliance",), aliases=("Compliance_Items",), default_sort="order", featured_filter=None,
        ),
        _domain(
            "security", "security_features", CacheDuration.LONG,
            paths=("/compliance",), aliases=("Security_Features",), default_sort="order", featured_filter=None,
        ),
        _domain(
            "process-steps", "process_steps", CacheDuration.LONG,
            paths=("/how-it-works",), aliases=("Process_Steps",), default_sort="order", featured_filter=None,
        ),
        _domain(
            "employer-stats", "employer_stats", CacheDuration.MEDIUM,
            paths=("/for-employers",), aliases=("Employer_Stats",), default_sort="order", featured_filter=None,
        ),
        _domain(
            "cta-cards", "cta_cards", CacheDuration.LONG,
            paths=("/",), aliases=("CTA_Cards",), default_sort="order", featured_filter=None,
        ),
    ])
