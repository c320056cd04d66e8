"""Health check endpoint for monitoring and load balancers."""

import logging
import time
import uuid
from datetime import datetime, timezone

from flask import Blueprint, current_app, jsonify

from finwage import limiter
from finwage.extensions.cache import cache
from integrations.pocketbase.client import PocketBaseError

logger = logging.getLogger(__name__)

bp_health = Blueprint('health', __name__)

_started_at = time.time()


@bp_health.get('/health')
@limiter.exempt
def health_check():
    """Health check endpoint.

    Returns:
        JSON response with health status and checks
        - 200: healthy or degraded (cache unavailable)
        - 503: unhealthy (PocketBase unreachable)
    """
    health_status = {
        "status": "healthy",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "uptime_seconds": round(time.time() - _started_at, 1),
        "checks": {},
    }

    # 1. Content backend
    pocketbase = current_app.extensions["finwage"]["pocketbase"]
    try:
        started = time.perf_counter()
        pocketbase.health()
        health_status["checks"]["pocketbase"] = {
            "status": "ok",
            "latency_ms": round((time.perf_counter() - started) * 1000, 1),
        }
    except PocketBaseError as e:
        health_status["status"] = "unhealthy"
        health_status["checks"]["pocketbase"] = {
            "status": "error",
            "message": f"PocketBase health check failed: {e}",
        }

    # 2. Cache round trip
    probe_key = f"health/{uuid.uuid4().hex}"
    try:
        cache.set(probe_key, "ok", timeout=10)
        ok = cache.get(probe_key) == "ok"
        cache.delete(probe_key)
        health_status["checks"]["cache"] = {
            "status": "ok" if ok else "warning",
            "backend": current_app.config.get("CACHE_TYPE"),
        }
        if not ok and health_status["status"] == "healthy":
            health_status["status"] = "degraded"
    except Exception as e:  # pylint: disable=broad-except
        logger.warning("Cache health check failed: %s", e)
        health_status["checks"]["cache"] = {"status": "error", "message": str(e)}
        if health_status["status"] == "healthy":
            health_status["status"] = "degraded"

    status_code = 503 if health_status["status"] == "unhealthy" else 200
    return jsonify(health_status), status_code
