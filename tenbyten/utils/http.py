"""Helpers for Vercel-style ``handler(request)`` functions."""

import base64
import binascii
import json
from typing import Any, Optional


def json_response(status_code: int, body: Any) -> dict:
    """Build a serverless JSON response dict."""
    return {
        "statusCode": status_code,
        "headers": {"Content-Type": "application/json"},
        "body": json.dumps(body, default=str),
    }


def error_response(status_code: int, message: str) -> dict:
    return json_response(status_code, {"success": False, "error": message})


def get_query(request: dict) -> dict:
    return request.get("query", {}) or {}


def get_json_body(request: dict) -> dict:
    """Parse the request body as a JSON object; anything else becomes {}."""
    raw = request.get("body")
    if isinstance(raw, dict):
        return raw
    if not raw:
        return {}
    try:
        body = json.loads(raw)
    except (TypeError, json.JSONDecodeError):
        return {}
    return body if isinstance(body, dict) else {}


def data_url_size(data_url: Optional[str]) -> int:
    """Decoded byte size of a base64 ``data:`` URL, 0 when absent or not base64."""
    if not data_url or "," not in data_url:
        return 0
    header, payload = data_url.split(",", 1)
    if not header.endswith(";base64"):
        return len(payload.encode("utf-8"))
    try:
        return len(base64.b64decode(payload, validate=True))
    except (binascii.Error, ValueError):
        return 0
