"""
Route decorators.

    - cached_page: render-level caching tagged with the page's content domains
    - require_secret: shared-secret check for revalidation, cron and webhook calls
"""

import hmac
import logging
from functools import wraps
from typing import Callable, Optional

from flask import current_app, request

from finwage.controllers._error_handlers import api_error_response
from finwage.extensions.cache import page_cache_key
from finwage.services.cache_registry import CacheOptions

logger = logging.getLogger(__name__)


def _services():
    return current_app.extensions["finwage"]


def page_options(*domain_names: str, record: Optional[tuple] = None) -> CacheOptions:
    """Merge the cache options of every domain a page renders.

    The page lives as long as its shortest-lived domain and carries all of
    their tags, plus a per-record tag when ``record`` is ``(domain, key)``.
    """
    registry = _services()["registry"]
    options = [registry.cache_options(name) for name in domain_names]
    tags = []
    for option in options:
        tags.extend(t for t in option.tags if t not in tags)
    if record:
        tags.append(registry.record_tag(*record))
    return CacheOptions(revalidate=min(o.revalidate for o in options), tags=tuple(tags))


def cached_page(*domain_names: str, record_arg: Optional[str] = None):
    """Cache the rendered view under ``view/<path>`` with its domains' tags.

    Only plain GET requests are cached. Exceptions from the view propagate,
    so error pages are never stored.
    """

    def decorator(view: Callable):
        @wraps(view)
        def wrapper(*args, **kwargs):
            if request.method != "GET" or request.query_string:
                return view(*args, **kwargs)
            record = (domain_names[0], kwargs[record_arg]) if record_arg else None
            options = page_options(*domain_names, record=record)
            return _services()["cache"].fetch(
                page_cache_key(request.path),
                lambda: view(*args, **kwargs),
                options,
            )

        return wrapper

    return decorator


def extract_bearer(header_value: Optional[str]) -> Optional[str]:
    if header_value and header_value.startswith("Bearer "):
        return header_value[len("Bearer "):].strip()
    return None


def require_secret(config_attr: str, *header_names: str, bearer: bool = True, label: str = "request"):
    """Reject the request unless it carries the secret configured in ``Config.<config_attr>``.

    When the secret is not configured the request is allowed and a warning logged.
    """

    def decorator(view: Callable):
        @wraps(view)
        def wrapper(*args, **kwargs):
            from config import Config

            expected = getattr(Config, config_attr, None)
            if not expected:
                logger.warning("%s not configured; accepting unauthenticated %s", config_attr, label)
                return view(*args, **kwargs)

            provided = None
            for header in header_names:
                provided = request.headers.get(header)
                if provided:
                    break
            if not provided and bearer:
                provided = extract_bearer(request.headers.get("Authorization"))

            if not provided or not hmac.compare_digest(provided, expected):
                logger.warning("Rejected %s from %s: invalid credentials", label, request.remote_addr)
                return api_error_response("unauthorized", 401, "Invalid or missing credentials")
            return view(*args, **kwargs)

        return wrapper

    return decorator
