"""JSON-over-HTTP transport shared by the provider adapters.

Architectural role:
    Executes exactly one blocking HTTP call per invocation and turns the backend
    reply into a parsed JSON document.

Model invocation flow:
    `ProviderAdapter.complete` -> `post_json(url, body, headers)` -> parsed dict.
    `ProviderAdapter.list_models` -> `get_json(url, headers)` -> parsed dict.

Retry behavior:
    No retry loop is implemented and no client-side timeout is set: a call blocks
    until the transport resolves or fails.

Failure handling model:
    - Body not serializable to JSON -> `DecodeError` (before any I/O).
    - Non-2xx status -> `HTTPError` carrying the decoded response body.
    - Reply body not valid JSON -> `DecodeError`.
    - Transport failures from `requests` propagate unchanged.
"""

import json
import logging
from typing import Any

import requests

from gai.errors import DecodeError, HTTPError


logger = logging.getLogger(__name__)


def _read_body(response: requests.Response) -> str:
    try:
        return response.text or ""
    except Exception:
        logger.debug("Could not decode response body", exc_info=True)
        return ""


def _parse_response(response: requests.Response, url: str) -> dict:
    if not 200 <= response.status_code < 300:
        raise HTTPError(response.status_code, _read_body(response), url=url)

    try:
        data = response.json()
    except ValueError as err:
        raise DecodeError(f"invalid JSON response from {url}: {err}") from err

    if not isinstance(data, dict):
        raise DecodeError(f"unexpected JSON response from {url}: {type(data).__name__}")

    return data


def post_json(url: str, body: dict[str, Any], headers: dict[str, str] | None = None) -> dict:
    """POST `body` as JSON to `url` and return the parsed JSON reply.

    Args:
        url: Full endpoint URL.
        body: Request document.
        headers: Extra headers (authorization); `Content-Type` is always JSON.
    """
    try:
        payload = json.dumps(body, ensure_ascii=False)
    except (TypeError, ValueError) as err:
        raise DecodeError(f"could not serialize request for {url}: {err}") from err

    request_headers = {"Content-Type": "application/json"}
    request_headers.update(headers or {})

    logger.debug("POST %s (%d bytes)", url, len(payload))
    response = requests.post(url, data=payload.encode("utf-8"), headers=request_headers)

    return _parse_response(response, url)


def get_json(url: str, headers: dict[str, str] | None = None) -> dict:
    """GET `url` and return the parsed JSON reply."""
    logger.debug("GET %s", url)
    response = requests.get(url, headers=headers or {})

    return _parse_response(response, url)
