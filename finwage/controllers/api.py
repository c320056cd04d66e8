"""JSON API: enquiry submission and cache revalidation hooks.

Routes:
    - POST /api/contact: submit an enquiry
    - POST /api/revalidate/<endpoint>: manual revalidation (collection, tag, path, all)
    - GET|POST /api/cron/revalidate: scheduled revalidation by frequency
    - POST /api/webhooks/pocketbase: record change notifications from PocketBase
"""

import logging
import time
from datetime import datetime, timezone

from flask import Blueprint, current_app, jsonify, request

from finwage import limiter
from finwage.constants import FREQUENCY_DOMAINS
from finwage.controllers._decorators import require_secret
from finwage.controllers._error_handlers import api_error_response

logger = logging.getLogger(__name__)

bp_api = Blueprint('api', __name__, url_prefix='/api')

REVALIDATE_ENDPOINTS = ("collection", "tag", "path", "all")


def _services():
    return current_app.extensions["finwage"]


def _timestamp() -> str:
    return datetime.now(timezone.utc).isoformat()


def _as_list(value):
    if value is None:
        return []
    if isinstance(value, (list, tuple)):
        return [v for v in value if v and isinstance(v, str)]
    return [value] if value and isinstance(value, str) else []


def _json_object():
    """Return the JSON request body as a dict, ``{}`` when absent, or None when it is not an object."""
    body = request.get_json(silent=True)
    if body is None:
        return {}
    return body if isinstance(body, dict) else None


def _contact_rate_limit() -> str:
    return current_app.config["CONTACT_RATE_LIMIT"]


# =============================================================================
# CONTACT
# =============================================================================

@bp_api.post('/contact')
@limiter.limit(_contact_rate_limit)
def submit_contact():
    data = request.get_json(silent=True)
    if data is None:
        data = request.form
    if not hasattr(data, "items"):
        return api_error_response("invalid_body", 400, "Expected a JSON object")

    result = _services()["contact"].submit_enquiry(data)
    return jsonify({
        "success": True,
        "message": "Thank you for contacting us! We'll get back to you soon.",
        "data": {"id": result.id},
    }), 201


# =============================================================================
# MANUAL REVALIDATION
# =============================================================================

@bp_api.get('/revalidate/<endpoint>')
def revalidate_docs(endpoint):
    return jsonify({
        "name": "Manual cache revalidation API",
        "authentication": "x-api-key header or Authorization: Bearer <REVALIDATION_API_KEY>",
        "endpoints": {
            "POST /api/revalidate/collection": {"body": {"collection": "blogs", "record": {"id": "...", "slug": "..."}, "action": "update"}},
            "POST /api/revalidate/tag": {"body": {"tags": ["blogs", "authors"]}},
            "POST /api/revalidate/path": {"body": {"paths": ["/blog", "/"]}},
            "POST /api/revalidate/all": {"body": None},
        },
        "tags": list(_services()["registry"].all_tags()),
        "requested": endpoint,
    })


@bp_api.post('/revalidate/<endpoint>')
@require_secret("REVALIDATION_API_KEY", "x-api-key", label="revalidation request")
def revalidate(endpoint):
    if endpoint not in REVALIDATE_ENDPOINTS:
        return api_error_response(
            "invalid_endpoint", 400, "Invalid endpoint. Use: /collection, /tag, /path, or /all"
        )

    body = _json_object()
    if body is None:
        return api_error_response("invalid_body", 400, "Expected a JSON object")

    revalidator = _services()["revalidator"]
    started = time.perf_counter()

    if endpoint == "collection":
        collection = body.get("collection")
        if not collection or not isinstance(collection, str):
            return api_error_response("invalid_body", 400, "Collection name is required")
        record = body.get("record") or None
        if record is not None and not isinstance(record, dict):
            return api_error_response("invalid_body", 400, "record must be an object")
        result = revalidator.handle_collection_change(collection, record, body.get("action"))
        payload = {
            "type": "collection",
            "collection": collection,
            "recordId": record.get("id") if record else None,
            "recordSlug": record.get("slug") if record else None,
            "action": body.get("action"),
            "handled": result.domain is not None,
        }
    elif endpoint == "tag":
        tags = _as_list(body.get("tags") or body.get("tag"))
        if not tags:
            return api_error_response("invalid_body", 400, "Tags are required")
        result = revalidator.invalidate_tags(tags)
        payload = {"type": "tag"}
    elif endpoint == "path":
        paths = _as_list(body.get("paths") or body.get("path"))
        if not paths:
            return api_error_response("invalid_body", 400, "Paths are required")
        result = revalidator.invalidate_paths(paths)
        payload = {"type": "path"}
    else:
        result = revalidator.revalidate_all()
        payload = {"type": "all", "message": "All content caches invalidated"}

    duration_ms = (time.perf_counter() - started) * 1000
    logger.info("Manual revalidation (%s): %s", endpoint, result.to_dict())
    payload.update(result.to_dict())
    payload.update({
        "success": result.ok,
        "endpoint": endpoint,
        "duration": f"{duration_ms:.0f}ms",
        "timestamp": _timestamp(),
    })
    return jsonify(payload), 200 if result.ok else 500


# =============================================================================
# SCHEDULED REVALIDATION
# =============================================================================

@bp_api.route('/cron/revalidate', methods=['GET', 'POST'])
@require_secret("CRON_SECRET", label="cron revalidation")
def cron_revalidate():
    frequency = request.args.get("frequency")
    if not frequency and request.method == "POST":
        body = _json_object()
        if body is None:
            return api_error_response("invalid_body", 400, "Expected a JSON object")
        frequency = body.get("frequency")

    if frequency not in FREQUENCY_DOMAINS:
        return api_error_response(
            "invalid_frequency",
            400,
            "Invalid frequency parameter. Must be: " + ", ".join(FREQUENCY_DOMAINS),
        )

    started = time.perf_counter()
    result = _services()["revalidator"].revalidate_by_frequency(frequency)
    duration_ms = (time.perf_counter() - started) * 1000
    logger.info("Scheduled %s revalidation: %s", frequency, result.tags)
    return jsonify({
        "success": result.ok,
        "frequency": frequency,
        "tags": result.tags,
        "failed": result.failed,
        "duration": f"{duration_ms:.0f}ms",
        "timestamp": _timestamp(),
    }), 200 if result.ok else 500


# =============================================================================
# POCKETBASE WEBHOOK
# =============================================================================

@bp_api.get('/webhooks/pocketbase')
def pocketbase_webhook_status():
    return jsonify({
        "status": "ok",
        "message": "PocketBase webhook endpoint is active",
        "timestamp": _timestamp(),
    })


@bp_api.post('/webhooks/pocketbase')
@require_secret("POCKETBASE_WEBHOOK_SECRET", "x-webhook-secret", bearer=False, label="webhook")
def pocketbase_webhook():
    payload = _json_object()
    if payload is None:
        return api_error_response("invalid_body", 400, "Expected a JSON object")
    collection = payload.get("collection")
    if not collection or not isinstance(collection, str):
        return api_error_response("invalid_body", 400, "collection is required")

    record = payload.get("record") or {}
    if not isinstance(record, dict):
        return api_error_response("invalid_body", 400, "record must be an object")
    action = payload.get("action")
    logger.info("Webhook %s on %s:%s", action, collection, record.get("id"))

    result = _services()["revalidator"].handle_collection_change(collection, record, action)
    return jsonify({
        "success": result.ok,
        "message": f"Cache revalidated for {collection}",
        "handled": result.domain is not None,
        "tags": result.tags,
        "paths": result.paths,
        "timestamp": _timestamp(),
    }), 200 if result.ok else 500
