"""
Identity Provider — who is calling, and may they do this?

    current_user()          → {"id", "role", "name"}; AuthenticationRequired if anonymous
    require_role(*roles)    → view decorator; PermissionDenied on role mismatch

The middleware (middleware/jwt_auth.py) fills ``g.identity`` from a Bearer
JWT, or from X-User-* headers when API auth is disabled. Missing role or
name is completed from the User row when one exists.
"""

from __future__ import annotations

from functools import wraps

from flask import g

from reportflow.core.exceptions import AuthenticationRequired, PermissionDenied
from reportflow.models import db
from reportflow.models.user import User


def current_user() -> dict:
    identity = getattr(g, "identity", None)
    if not identity:
        raise AuthenticationRequired("Authentication required")

    if identity.get("role") is None or identity.get("name") is None:
        user = db.session.get(User, identity["id"])
        if user is not None:
            identity = {
                "id": identity["id"],
                "role": identity.get("role") or user.role,
                "name": identity.get("name") or user.full_name,
            }
            g.identity = identity
    if not identity.get("role"):
        raise AuthenticationRequired("Caller role could not be resolved")
    return identity


def require_role(*roles: str):
    """Reject the request with PermissionDenied unless the caller has one of ``roles``."""
    allowed = frozenset(roles)

    def decorator(fn):
        @wraps(fn)
        def wrapper(*args, **kwargs):
            user = current_user()
            if user["role"] not in allowed:
                raise PermissionDenied(
                    f"Role '{user['role']}' may not perform this operation",
                    user_id=user["id"],
                )
            return fn(*args, **kwargs)
        return wrapper
    return decorator
