"""
Daily Report Review Platform
Blueprint registry and shared HTTP helpers.
"""

import logging

from flask import request
from werkzeug.exceptions import HTTPException

from reportflow.core.exceptions import (
    AuthenticationRequired,
    ConflictError,
    NotFoundError,
    PermissionDenied,
    StateConflictError,
    ValidationError,
)
from reportflow.models import db
from reportflow.utils.errors import E, api_error

logger = logging.getLogger(__name__)


def paginate_items(items, default_limit=200, max_limit=1000):
    """Apply limit/offset pagination to an already-loaded list.

    Query params:
        limit  — max items (default 200, capped at max_limit)
        offset — starting position (default 0)

    Returns:
        (page_items, total_count)
    """
    total = len(items)
    try:
        limit = min(int(request.args.get("limit", default_limit)), max_limit)
    except (ValueError, TypeError):
        limit = default_limit
    try:
        offset = max(int(request.args.get("offset", 0)), 0)
    except (ValueError, TypeError):
        offset = 0
    return items[offset:offset + max(limit, 0)], total


def register_error_handlers(bp):
    """Map service-layer exceptions to the standard error envelope for ``bp``."""

    @bp.errorhandler(ValidationError)
    def _handle_validation(error: ValidationError):
        code = E.VALIDATION_REQUIRED if "required" in error.details.values() else E.VALIDATION_INVALID
        return api_error(code, str(error), details=error.details)

    @bp.errorhandler(NotFoundError)
    def _handle_not_found(error: NotFoundError):
        return api_error(E.NOT_FOUND, str(error))

    @bp.errorhandler(StateConflictError)
    def _handle_state_conflict(error: StateConflictError):
        return api_error(
            E.CONFLICT_STATE,
            str(error),
            details={"action": error.action, "current_status": error.current_status},
        )

    @bp.errorhandler(ConflictError)
    def _handle_conflict(error: ConflictError):
        return api_error(E.CONFLICT_STALE, str(error), details={"field": error.field})

    @bp.errorhandler(PermissionDenied)
    def _handle_forbidden(error: PermissionDenied):
        return api_error(E.FORBIDDEN, str(error))

    @bp.errorhandler(AuthenticationRequired)
    def _handle_unauthenticated(error: AuthenticationRequired):
        return api_error(E.UNAUTHORIZED, str(error))

    @bp.errorhandler(Exception)
    def _handle_unexpected(error: Exception):
        if isinstance(error, HTTPException):
            return error
        db.session.rollback()
        logger.exception("Unexpected error in %s endpoint=%s", bp.name, request.endpoint)
        return api_error(E.INTERNAL, "Internal server error")
