"""
Platform-wide exception hierarchy.

Services raise these types; blueprints register handlers against them once
and get consistent HTTP status codes everywhere.

Usage:
    from reportflow.core.exceptions import NotFoundError, ValidationError

    raise NotFoundError(resource="Report", resource_id=42)
    raise ValidationError("reason is required", details={"reason": "required"})
"""


class NotFoundError(Exception):
    """Raised when a requested resource does not exist.

    Args:
        resource: Human-readable model/entity name (e.g. "Report", "User").
        resource_id: The PK that was looked up. Included in logs and the message.
    """

    def __init__(self, resource: str, resource_id: int | str | None = None) -> None:
        self.resource = resource
        self.resource_id = resource_id
        msg = f"{resource}"
        if resource_id is not None:
            msg += f" id={resource_id}"
        msg += " not found"
        super().__init__(msg)


class ValidationError(Exception):
    """Raised when input fails business-rule validation in the service layer.

    Raised before any mutation, so the target entity is left untouched.

    Args:
        message: Human-readable explanation of what failed.
        details: Optional field-level breakdown for structured API responses.
                 Keys are field names; values are error descriptions.
    """

    def __init__(self, message: str, details: dict | None = None) -> None:
        self.details = details or {}
        super().__init__(message)


class ConflictError(Exception):
    """Raised when a write loses a race against a concurrent writer.

    Covers a stale optimistic-concurrency version and a duplicate
    clarification thread slot. Maps to HTTP 409.

    Args:
        resource: Model name.
        field: The guarded field (e.g. "version", "sequence").
        value: The conflicting value, if known.
        message: Optional override of the generated message.
    """

    def __init__(
        self,
        resource: str,
        field: str,
        value: str | int | None = None,
        message: str | None = None,
    ) -> None:
        self.resource = resource
        self.field = field
        self.value = value
        msg = message or f"{resource} {field}={value!r} was modified concurrently"
        super().__init__(msg)


class StateConflictError(ConflictError):
    """Raised when an action is not legal from the report's current state.

    Subclass of ConflictError: a caller catching the generic conflict also
    catches illegal transitions.

    Args:
        action: The attempted lifecycle action.
        current_status: Status the report was in.
        message: Human-readable reason.
    """

    def __init__(self, action: str, current_status: str, message: str) -> None:
        self.action = action
        self.current_status = current_status
        super().__init__("Report", "status", current_status, message=message)


class AuthenticationRequired(Exception):
    """Raised when a request carries no usable identity. Maps to HTTP 401."""


class PermissionDenied(Exception):
    """Raised when the acting user may not perform the requested operation.

    Maps to HTTP 403.
    """

    def __init__(self, message: str, user_id: int | None = None) -> None:
        self.user_id = user_id
        super().__init__(message)
