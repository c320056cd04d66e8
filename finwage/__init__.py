"""Flask application and shared service wiring."""

import logging
import os
import secrets
import time
from datetime import datetime, timezone

from dotenv import load_dotenv
from flask import Flask, g, request
from flask_limiter import Limiter
from flask_limiter.util import get_remote_address

load_dotenv()

from config import Config  # noqa: E402  (reads the environment loaded above)
from finwage.extensions.cache import cache, init_cache, tagged_cache  # noqa: E402
from finwage.logging_config import log_request_info, setup_logging  # noqa: E402
from finwage.services.cache_registry import build_default_registry  # noqa: E402
from finwage.services.contact import ContactService  # noqa: E402
from finwage.services.content import ContentServices  # noqa: E402
from finwage.services.revalidation import Revalidator  # noqa: E402
from integrations.pocketbase.client import PocketBaseClient  # noqa: E402

app = Flask(__name__)

logger = logging.getLogger(__name__)

secret_key = os.getenv("SECRET_KEY")
if not secret_key:
    secret_key = secrets.token_urlsafe(32)
    logger.warning("SECRET_KEY not set; generating a temporary value for local use.")
app.config["SECRET_KEY"] = secret_key
app.config["MAX_CONTENT_LENGTH"] = 1024 * 1024
app.config["CONTACT_RATE_LIMIT"] = os.getenv("CONTACT_RATE_LIMIT", "5 per minute")
app.config["RATELIMIT_ENABLED"] = os.getenv("RATELIMIT_ENABLED", "1") != "0"

init_cache(app)

rate_limit_storage = os.getenv("RATELIMIT_STORAGE_URI")
if not rate_limit_storage:
    redis_url = os.getenv("REDIS_URL")
    rate_limit_storage = redis_url if redis_url else "memory://"

raw_default_limits = os.getenv("RATELIMIT_DEFAULT_LIMITS", "").strip()
default_limits = [limit.strip() for limit in raw_default_limits.split(",") if limit.strip()]

limiter = Limiter(
    app=app,
    key_func=get_remote_address,
    default_limits=default_limits or None,
    storage_uri=rate_limit_storage,
    strategy="fixed-window",
    headers_enabled=True,
)

if os.getenv("LOG_TO_FILE", "1") != "0":
    setup_logging(app)

Config.validate()

# The registry is built once and shared by the read side (content services)
# and the write side (revalidator).
registry = build_default_registry()
pocketbase = PocketBaseClient(
    Config.POCKETBASE_URL,
    timeout=Config.POCKETBASE_TIMEOUT,
    retries=Config.POCKETBASE_RETRIES,
)
revalidator = Revalidator(tagged_cache, registry)
content = ContentServices(registry, pocketbase, tagged_cache)
contact_service = ContactService(pocketbase, revalidator)

app.extensions["finwage"] = {
    "registry": registry,
    "pocketbase": pocketbase,
    "cache": tagged_cache,
    "revalidator": revalidator,
    "content": content,
    "contact": contact_service,
}


@app.before_request
def _start_request_timer():
    """Store the high-resolution start time for slow request logging."""
    g.request_started_at = time.perf_counter()


@app.after_request
def _log_requests(response):
    started_at = getattr(g, "request_started_at", None)
    if started_at is not None:
        log_request_info(request, response, (time.perf_counter() - started_at) * 1000)
    return response


@app.after_request
def _set_security_headers(response):
    """Apply security-related HTTP headers to responses."""
    response.headers.setdefault("X-Content-Type-Options", "nosniff")
    response.headers.setdefault("X-Frame-Options", "DENY")
    response.headers.setdefault("Referrer-Policy", "strict-origin-when-cross-origin")
    response.headers.setdefault("Permissions-Policy", "geolocation=(), microphone=(), camera=()")
    return response


@app.context_processor
def inject_now():
    return {"now": lambda: datetime.now(timezone.utc)}


from finwage.controllers import api, health, pages  # noqa: E402,F401
from finwage.controllers._error_handlers import register_error_handlers  # noqa: E402

app.register_blueprint(pages.bp_pages)
app.register_blueprint(api.bp_api)
app.register_blueprint(health.bp_health)
register_error_handlers(app)

__all__ = ["app", "cache", "content", "contact_service", "limiter", "pocketbase", "registry", "revalidator"]
