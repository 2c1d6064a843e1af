"""
dependencies.py — Shared FastAPI Dependencies

Boundary checks for the CRM webhook and access to the application state.

Business Rules:
- require_webhook_secret compares X-Webhook-Token in constant time; when
  WEBHOOK_SECRET is configured a missing or wrong token is 401, before the
  body is read. When unset the check is skipped (warned at startup)
- enforce_payload_limit rejects a declared Content-Length above
  MAX_PAYLOAD_BYTES with 413; read_limited_body enforces the same limit on
  the bytes actually received
- get_state returns the AppState built in the lifespan

Called by: routers/webhooks.py, routers/health.py
Depends on: config, errors, app_state
"""

import hmac

from fastapi import Request

from .app_state import AppState
from .config import settings
from .errors import PayloadTooLargeError, UnauthorizedError, ValidationError

WEBHOOK_TOKEN_HEADER = "X-Webhook-Token"


def get_state(request: Request) -> AppState:
    return request.app.state.leadflow


def require_webhook_secret(request: Request) -> None:
    expected = settings.webhook_secret
    if not expected:
        return
    provided = request.headers.get(WEBHOOK_TOKEN_HEADER)
    if not provided:
        raise UnauthorizedError("Missing webhook token")
    if not hmac.compare_digest(provided.encode("utf-8"), expected.encode("utf-8")):
        raise UnauthorizedError("Invalid webhook token")


def enforce_payload_limit(request: Request) -> None:
    declared = request.headers.get("content-length")
    if declared is None:
        return
    try:
        size = int(declared)
    except ValueError:
        raise ValidationError("Invalid Content-Length header")
    if size > settings.max_payload_bytes:
        raise PayloadTooLargeError(f"Payload exceeds {settings.max_payload_bytes} bytes")


async def read_limited_body(request: Request) -> bytes:
    body = bytearray()
    async for chunk in request.stream():
        body.extend(chunk)
        if len(body) > settings.max_payload_bytes:
            raise PayloadTooLargeError(f"Payload exceeds {settings.max_payload_bytes} bytes")
    return bytes(body)
