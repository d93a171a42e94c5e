"""
Report Service — submission and read-side queries for daily reports.

Blueprints stay HTTP-only: they parse input, call these functions and map
the raised exceptions to status codes. Every commit goes through the
ReportStore.
"""

from __future__ import annotations

import logging
from datetime import date, datetime

from sqlalchemy import select

from reportflow.core.exceptions import PermissionDenied, ValidationError
from reportflow.models import db
from reportflow.models.report import KINDS_BY_ROLE, Report, ReportKind, ReportStatus
from reportflow.models.user import SUBMITTER_ROLES, User
from reportflow.services import clarification_thread as thread
from reportflow.services.complaint_resolution import stamp_resolution
from reportflow.services.report_payloads import normalize_payload
from reportflow.services.report_store import ReportStore
from reportflow.utils.helpers import utcnow

logger = logging.getLogger(__name__)


def submit_report(
    submitter: dict,
    kind: str,
    report_date: date | None,
    payload: dict | None,
    notes: str | None = None,
    now: datetime | None = None,
    store: ReportStore | None = None,
) -> Report:
    """File a new report in ``pending`` status.

    Args:
        submitter: {"id", "role", "name"} of the acting user.
        kind: One of ReportKind.ALL, and one the submitter's role files.
        report_date: Calendar date covered; today or earlier.
        payload: Kind-specific figures, validated by report_payloads.
        notes: Free text.

    Raises:
        PermissionDenied: Caller's role does not file this kind.
        ValidationError: Unknown kind, bad date, or invalid payload.
    """
    now = now or utcnow()
    role = submitter.get("role")
    if role not in SUBMITTER_ROLES:
        raise PermissionDenied(f"Role '{role}' does not submit reports", user_id=submitter.get("id"))
    if kind not in ReportKind.ALL:
        raise ValidationError(
            f"Unknown report kind: {kind}",
            details={"kind": f"must be one of: {', '.join(sorted(ReportKind.ALL))}"},
        )
    if kind not in KINDS_BY_ROLE[role]:
        raise PermissionDenied(f"A {role} does not file {kind} reports", user_id=submitter.get("id"))
    if report_date is None:
        raise ValidationError("report_date is required", details={"report_date": "required"})
    if report_date > now.date():
        raise ValidationError("report_date cannot be in the future", details={"report_date": "future date"})

    clean_payload = normalize_payload(kind, payload)
    if kind == ReportKind.COMPLAINT:
        stamp_resolution(clean_payload, now)

    report = Report(
        kind=kind,
        submitter_id=submitter["id"],
        submitter_role=role,
        report_date=report_date,
        status=ReportStatus.PENDING,
        payload=clean_payload,
        notes=(notes or "").strip() or None,
        created_at=now,
        updated_at=now,
    )
    (store or ReportStore()).add(report)

    logger.info(
        "Report submitted",
        extra={
            "report_id": report.id,
            "report_kind": kind,
            "submitter_id": submitter["id"],
            "action": "submit",
        },
    )
    return report


def get_report(report_id: int, store: ReportStore | None = None) -> Report:
    return (store or ReportStore()).get(report_id)


def ensure_can_view(report: Report, user: dict) -> None:
    """Submitters see only their own reports; reviewers see all."""
    if user["role"] in SUBMITTER_ROLES and report.submitter_id != user["id"]:
        raise PermissionDenied(f"Report {report.id} belongs to another submitter", user_id=user["id"])


def list_reports(
    submitter_id: int | None = None,
    kind: str | None = None,
    statuses=None,
    date_from: date | None = None,
    date_to: date | None = None,
    store: ReportStore | None = None,
) -> list[Report]:
    date_range = (date_from, date_to) if (date_from or date_to) else None
    return (store or ReportStore()).find(
        submitter_id=submitter_id,
        kind=kind,
        date_range=date_range,
        statuses=statuses,
    )


def pending_review_queue(store: ReportStore | None = None) -> dict:
    """Reports waiting on the reviewer.

    ``pending`` reports plus clarified ones whose latest message is a response.
    Clarified reports still waiting on the submitter are counted separately.
    """
    open_reports = (store or ReportStore()).find(statuses=ReportStatus.REVIEWABLE)
    awaiting_review = []
    awaiting_submitter = 0
    for report in open_reports:
        if report.status == ReportStatus.PENDING:
            awaiting_review.append(report)
        elif thread.awaiting_party(report) == thread.AWAITING_REVIEWER:
            awaiting_review.append(report)
        else:
            awaiting_submitter += 1
    return {
        "items": [r.to_dict(include_thread=False) for r in awaiting_review],
        "total": len(awaiting_review),
        "awaiting_submitter": awaiting_submitter,
    }


def list_submitters(role: str | None = None) -> list[User]:
    """Active submitting users, optionally narrowed to one role, ordered by name."""
    stmt = select(User).where(User.is_active.is_(True), User.role.in_(list(SUBMITTER_ROLES)))
    if role:
        stmt = stmt.where(User.role == role)
    stmt = stmt.order_by(User.full_name.asc(), User.id.asc())
    return list(db.session.execute(stmt).scalars().all())
