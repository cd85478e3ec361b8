"""
Content API client.

Thin async wrapper over the CMS REST API. A call is one best-effort round
trip: no retries, no timeout, no cache. Failures never raise; they come back
in the `error` field of the usual `{"data", "meta", "error"}` envelope, so
callers check `error` before trusting `data`.
"""

import logging
import uuid
from typing import Any, Dict, Optional

import httpx

import config
from querystring import stringify

logger = logging.getLogger(__name__)


class APIError(Exception):
    """Non-2xx answer from the content API."""

    def __init__(self, status: int, status_text: str, message: Optional[str] = None):
        super().__init__(message or f"API Error: {status} {status_text}")
        self.status = status
        self.status_text = status_text
        self.message = message or f"API Error: {status} {status_text}"

    def to_dict(self) -> Dict[str, Any]:
        return {"status": self.status, "message": self.message}


def get_strapi_url(path: str = "") -> str:
    if path.startswith(("http://", "https://")):
        return path
    return f"{config.get_api_url()}{path}"


def build_url(path: str, params: Optional[Dict[str, Any]] = None) -> str:
    query = stringify(params or {})
    return f"{get_strapi_url(path)}{'?' + query if query else ''}"


def _headers(extra: Optional[Dict[str, str]] = None) -> Dict[str, str]:
    headers = {"Content-Type": "application/json"}
    token = config.get_api_token()
    if token:
        headers["Authorization"] = f"Bearer {token}"
    if extra:
        headers.update(extra)
    return headers


async def fetch_api(
    path: str,
    params: Optional[Dict[str, Any]] = None,
    *,
    method: str = "GET",
    json: Any = None,
    headers: Optional[Dict[str, str]] = None,
) -> Dict[str, Any]:
    request_id = uuid.uuid4().hex[:9]
    url = build_url(path, params)
    logger.debug("[fetch_api:%s] %s %s", request_id, method, url)

    try:
        async with httpx.AsyncClient(timeout=None) as client:
            response = await client.request(method, url, json=json, headers=_headers(headers))

        if not response.is_success:
            error = APIError(
                response.status_code,
                response.reason_phrase,
                f"HTTP {response.status_code}: {response.reason_phrase}",
            )
            logger.error("[fetch_api:%s] %s", request_id, error.message)
            return {"data": None, "error": error.to_dict()}

        body = response.json()
    except (httpx.HTTPError, ValueError) as e:
        logger.error("[fetch_api:%s] Error: %s", request_id, e)
        return {"data": None, "error": {"status": 500, "message": str(e) or "Unknown error occurred"}}

    if not isinstance(body, dict):
        return {"data": body}
    data = body.get("data")
    logger.info(
        "[fetch_api:%s] Success: %s items",
        request_id,
        len(data) if isinstance(data, list) else "N/A",
    )
    return body
