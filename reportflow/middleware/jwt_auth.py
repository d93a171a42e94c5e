"""
Identity Middleware — resolves the caller for every /api/v1/ request, sets g.identity.

Resolution order:
  1. JWT (Authorization: Bearer <token>)                 →  always honoured
  2. X-User-Id / X-User-Role / X-User-Name headers       →  only when API_AUTH_ENABLED is false

The middleware never blocks: an absent or invalid token leaves g.identity
as None and the endpoint decides (see services/identity.current_user).
"""

import logging

import jwt as pyjwt
from flask import current_app, g, request

from reportflow.services.jwt_service import decode_access_token

logger = logging.getLogger(__name__)

# Paths that skip identity resolution entirely
IDENTITY_SKIP_PREFIXES = (
    "/api/v1/health",
)


def _auth_enabled() -> bool:
    return str(current_app.config.get("API_AUTH_ENABLED", "true")).lower() in ("1", "true", "yes")


def _identity_from_token(token: str) -> dict | None:
    try:
        payload = decode_access_token(token)
    except pyjwt.ExpiredSignatureError:
        logger.info("Expired access token", extra={"path": request.path})
        return None
    except pyjwt.InvalidTokenError:
        logger.warning("Invalid access token", extra={"path": request.path})
        return None
    try:
        user_id = int(payload.get("sub"))
    except (TypeError, ValueError):
        return None
    return {"id": user_id, "role": payload.get("role"), "name": payload.get("name")}


def _identity_from_headers() -> dict | None:
    raw_id = request.headers.get("X-User-Id", "").strip()
    if not raw_id:
        return None
    try:
        user_id = int(raw_id)
    except ValueError:
        return None
    return {
        "id": user_id,
        "role": request.headers.get("X-User-Role") or None,
        "name": request.headers.get("X-User-Name") or None,
    }


def init_jwt_middleware(app):
    """Register identity middleware as a before_request hook."""

    @app.before_request
    def _resolve_identity():
        g.identity = None

        path = request.path
        if not path.startswith("/api/v1/"):
            return
        for prefix in IDENTITY_SKIP_PREFIXES:
            if path.startswith(prefix):
                return

        auth_header = request.headers.get("Authorization", "")
        if auth_header.startswith("Bearer "):
            g.identity = _identity_from_token(auth_header[7:])
            return

        if not _auth_enabled():
            g.identity = _identity_from_headers()
