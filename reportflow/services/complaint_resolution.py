"""
Complaint resolution — front-office follow-up on guest complaint reports.

Resolution is tracked inside the complaint payload and is independent of
the BDM review status:

    pending ──► in_progress ──► resolved
    pending ──────────────────► resolved

resolved is final. Resolving requires non-empty resolution details and
stamps ``resolved_at``. Only the front office manager who filed the
complaint moves it; every save goes through the ReportStore version guard.

Usage:
    from reportflow.services.complaint_resolution import update_complaint_resolution

    update_complaint_resolution(
        report_id=12,
        new_status="resolved",
        actor={"id": 4, "role": "front_office_manager", "name": "Femi Front"},
        details="Moved guest to a quieter room",
    )
"""

from __future__ import annotations

import logging
from datetime import datetime

from reportflow.core.exceptions import PermissionDenied, StateConflictError, ValidationError
from reportflow.models.report import ReportKind
from reportflow.services.report_payloads import COMPLAINT_RESOLUTION_STATUSES
from reportflow.services.report_store import ReportStore
from reportflow.utils.helpers import utcnow

logger = logging.getLogger(__name__)

RESOLUTION_PENDING = "pending"
RESOLUTION_IN_PROGRESS = "in_progress"
RESOLUTION_RESOLVED = "resolved"

OPEN_RESOLUTIONS = (RESOLUTION_PENDING, RESOLUTION_IN_PROGRESS)

RESOLUTION_TRANSITIONS = {
    RESOLUTION_PENDING: [RESOLUTION_IN_PROGRESS, RESOLUTION_RESOLVED],
    RESOLUTION_IN_PROGRESS: [RESOLUTION_RESOLVED],
    RESOLUTION_RESOLVED: [],
}

ACTION_UPDATE_RESOLUTION = "update_resolution"


def resolution_status(complaint) -> str:
    """Resolution status of a complaint report or payload dict."""
    payload = complaint if isinstance(complaint, dict) else complaint.payload
    return (payload or {}).get("resolution_status") or RESOLUTION_PENDING


def is_unresolved(complaint) -> bool:
    return resolution_status(complaint) != RESOLUTION_RESOLVED


def stamp_resolution(payload: dict, now: datetime) -> dict:
    """Set ``resolved_at`` on a freshly submitted complaint payload."""
    payload["resolved_at"] = now.isoformat() if payload.get("resolution_status") == RESOLUTION_RESOLVED else None
    return payload


def update_complaint_resolution(
    report_id: int,
    new_status: str,
    actor: dict,
    *,
    details: str | None = None,
    now: datetime | None = None,
    store: ReportStore | None = None,
) -> dict:
    """
    Move a complaint to ``in_progress`` or ``resolved``.

    Returns:
        {"report_id", "previous_resolution", "resolution_status", "report"}

    Raises:
        ValidationError: Unknown status, not a complaint, or missing details on resolve.
        PermissionDenied: Caller did not file the complaint.
        StateConflictError: Transition not allowed from the current resolution.
        NotFoundError, ConflictError: From the ReportStore.
    """
    if new_status not in COMPLAINT_RESOLUTION_STATUSES:
        raise ValidationError(
            f"Unknown resolution status: {new_status}",
            details={"resolution_status": f"must be one of: {', '.join(COMPLAINT_RESOLUTION_STATUSES)}"},
        )

    store = store or ReportStore()
    report = store.get(report_id)
    if report.kind != ReportKind.COMPLAINT:
        raise ValidationError(
            f"Report {report_id} is not a complaint report",
            details={"kind": "must be complaint"},
        )
    if actor["id"] != report.submitter_id:
        raise PermissionDenied(
            f"Only the submitter of complaint {report_id} may update its resolution",
            user_id=actor["id"],
        )

    previous = resolution_status(report)
    if new_status not in RESOLUTION_TRANSITIONS[previous]:
        raise StateConflictError(
            ACTION_UPDATE_RESOLUTION,
            previous,
            f"Cannot move complaint resolution from '{previous}' to '{new_status}'",
        )

    text = details.strip() if isinstance(details, str) else ""
    if new_status == RESOLUTION_RESOLVED and not text:
        raise ValidationError(
            "resolution_details is required to resolve a complaint",
            details={"resolution_details": "required"},
        )

    now = now or utcnow()
    payload = dict(report.payload or {})
    payload["resolution_status"] = new_status
    if new_status == RESOLUTION_RESOLVED:
        payload["resolution_details"] = text
        payload["resolved_at"] = now.isoformat()
    else:
        # Existing notes are kept when work starts
        payload["resolution_details"] = payload.get("resolution_details") or text or None
        payload["resolved_at"] = None
    report.payload = payload
    report.updated_at = now
    store.save(report)

    logger.info(
        "Complaint resolution %s -> %s",
        previous,
        new_status,
        extra={
            "report_id": report.id,
            "report_kind": report.kind,
            "submitter_id": report.submitter_id,
            "user_id": actor["id"],
            "action": ACTION_UPDATE_RESOLUTION,
            "from_status": previous,
            "to_status": new_status,
            "version": report.version,
        },
    )
    return {
        "report_id": report.id,
        "previous_resolution": previous,
        "resolution_status": new_status,
        "report": report.to_dict(),
    }


def list_complaints(
    submitter_id: int | None = None,
    resolved: bool = False,
    store: ReportStore | None = None,
) -> list:
    """Open complaints newest first, or resolved ones by most recent resolution."""
    complaints = (store or ReportStore()).find(submitter_id=submitter_id, kind=ReportKind.COMPLAINT)
    if resolved:
        selected = [c for c in complaints if not is_unresolved(c)]
        selected.sort(key=lambda c: (c.payload or {}).get("resolved_at") or "", reverse=True)
    else:
        selected = [c for c in complaints if is_unresolved(c)]
        selected.sort(key=lambda c: (c.created_at, c.id), reverse=True)
    return selected
