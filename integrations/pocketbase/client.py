import hashlib
import json
import logging
import time
from typing import Any, Dict, Optional
from urllib.parse import quote, urljoin

import requests

logger = logging.getLogger(__name__)

RETRYABLE_STATUS = {429} | set(range(500, 600))


class PocketBaseError(Exception):
    """Base error for PocketBase API calls."""

    def __init__(self, message: str, status_code: Optional[int] = None, collection: Optional[str] = None) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.collection = collection


class SourceUnavailableError(PocketBaseError):
    """The record store could not be reached or answered with a server error."""


class RecordNotFoundError(PocketBaseError):
    """The requested record does not exist (or is not visible)."""


def build_filter(*clauses: Optional[str]) -> Optional[str]:
    """AND together the non-empty filter clauses."""
    parts = [c.strip() for c in clauses if c and c.strip()]
    if not parts:
        return None
    if len(parts) == 1:
        return parts[0]
    return " && ".join(f"({p})" for p in parts)


def quote_value(value: str) -> str:
    """Quote a string literal for a PocketBase filter expression."""
    return '"' + str(value).replace("\\", "\\\\").replace('"', '\\"') + '"'


def request_fingerprint(operation: str, collection: str, params: Optional[Dict[str, Any]] = None) -> str:
    """Stable cache key for a read against a collection."""
    payload = json.dumps(
        {"op": operation, "collection": collection, "params": params or {}},
        sort_keys=True,
        default=str,
    )
    return "fetch/" + hashlib.sha1(payload.encode("utf-8")).hexdigest()


class PocketBaseClient:
    """HTTP client for the PocketBase REST API."""

    def __init__(self, base_url: str, *, token: Optional[str] = None, timeout: int = 15, retries: int = 1) -> None:
        self.base_url = base_url.rstrip('/')
        self.session = requests.Session()
        self.session.headers.update({"Content-Type": "application/json"})
        if token:
            self.session.headers.update({"Authorization": token})
        self.timeout = timeout
        self.retries = max(1, retries)

    # ------------------------------------------------------------------
    # internal helpers
    def _request(self, method: str, endpoint: str, *, collection: Optional[str] = None, **kwargs) -> requests.Response:
        url = urljoin(self.base_url + '/', endpoint.lstrip('/'))
        # mutations are never retried
        attempts = self.retries if method == "GET" else 1
        backoff = 0.5
        for attempt in range(attempts):
            start = time.time()
            try:
                resp = self.session.request(method, url, timeout=self.timeout, **kwargs)
            except requests.RequestException as exc:
                logger.warning(
                    "pocketbase_request_failed",
                    extra={"endpoint": endpoint, "error": str(exc)},
                )
                if attempt < attempts - 1:
                    time.sleep(backoff)
                    backoff *= 2
                    continue
                raise SourceUnavailableError(
                    f"PocketBase request failed: {exc}", collection=collection
                ) from exc
            latency = time.time() - start
            logger.info(
                "pocketbase_request",
                extra={
                    "method": method,
                    "endpoint": endpoint,
                    "status": resp.status_code,
                    "latency": latency,
                },
            )
            if resp.status_code in RETRYABLE_STATUS and attempt < attempts - 1:
                time.sleep(backoff)
                backoff *= 2
                continue
            return resp
        return resp

    def _check(self, resp: requests.Response, collection: Optional[str] = None) -> Dict[str, Any]:
        if resp.status_code == 404:
            raise RecordNotFoundError("Record not found", 404, collection)
        if resp.status_code in RETRYABLE_STATUS:
            raise SourceUnavailableError(
                f"PocketBase request failed with status {resp.status_code}", resp.status_code, collection
            )
        if resp.status_code >= 400:
            message = f"PocketBase request failed with status {resp.status_code}"
            try:
                detail = resp.json().get("message")
            except ValueError:
                detail = None
            if detail:
                message = f"{message}: {detail}"
            raise PocketBaseError(message, resp.status_code, collection)
        try:
            return resp.json()
        except ValueError as exc:
            raise SourceUnavailableError("PocketBase returned an invalid JSON body", resp.status_code, collection) from exc

    @staticmethod
    def _records_path(collection: str) -> str:
        return f"/api/collections/{quote(collection, safe='')}/records"

    # ------------------------------------------------------------------
    # public API
    def list_records(
        self,
        collection: str,
        *,
        page: int = 1,
        per_page: int = 20,
        sort: Optional[str] = "-created",
        filter: Optional[str] = None,
        expand: Optional[str] = None,
        fields: Optional[str] = None,
    ) -> Dict[str, Any]:
        params: Dict[str, Any] = {"page": page, "perPage": per_page}
        for key, value in (("sort", sort), ("filter", filter), ("expand", expand), ("fields", fields)):
            if value:
                params[key] = value
        resp = self._request("GET", self._records_path(collection), collection=collection, params=params)
        return self._check(resp, collection)

    def get_record(self, collection: str, record_id: str, *, expand: Optional[str] = None) -> Dict[str, Any]:
        params = {"expand": expand} if expand else None
        resp = self._request(
            "GET", f"{self._records_path(collection)}/{quote(record_id, safe='')}",
            collection=collection, params=params,
        )
        return self._check(resp, collection)

    def get_first(self, collection: str, filter: str, *, expand: Optional[str] = None) -> Dict[str, Any]:
        data = self.list_records(collection, per_page=1, sort=None, filter=filter, expand=expand)
        items = data.get("items") or []
        if not items:
            raise RecordNotFoundError(f"No {collection} record matches {filter}", 404, collection)
        return items[0]

    def create_record(self, collection: str, payload: Dict[str, Any]) -> Dict[str, Any]:
        resp = self._request("POST", self._records_path(collection), collection=collection, json=payload)
        return self._check(resp, collection)

    def get_collection(self, id_or_name: str) -> Dict[str, Any]:
        resp = self._request("GET", f"/api/collections/{quote(id_or_name, safe='')}", collection=id_or_name)
        return self._check(resp, id_or_name)

    def update_collection(self, id_or_name: str, payload: Dict[str, Any]) -> Dict[str, Any]:
        resp = self._request(
            "PATCH", f"/api/collections/{quote(id_or_name, safe='')}", collection=id_or_name, json=payload
        )
        return self._check(resp, id_or_name)

    def authenticate_superuser(self, email: str, password: str) -> str:
        resp = self._request(
            "POST",
            "/api/collections/_superusers/auth-with-password",
            json={"identity": email, "password": password},
        )
        data = self._check(resp, "_superusers")
        token = data.get("token")
        if not token:
            raise PocketBaseError("Superuser authentication returned no token", resp.status_code, "_superusers")
        self.session.headers.update({"Authorization": token})
        return token

    def health(self) -> Dict[str, Any]:
        resp = self._request("GET", "/api/health")
        return self._check(resp)
