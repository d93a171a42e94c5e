"""
Report Lifecycle Service.

Manages report status transitions with:
  - Transition validation (REPORT_TRANSITIONS + thread turn guards)
  - Ownership check for submitter responses
  - Required-field checks before any mutation
  - Structured transition logging

4 actions:
  approve, reject, request_clarification, respond

The engine functions (approve / reject / request_clarification /
respond_to_clarification) are single synchronous transforms of one Report.
They validate everything first and only then mutate, so a raised
ValidationError or StateConflictError leaves the report untouched. They
never commit; ``transition_report`` loads the report through the
ReportStore, applies the action and saves with the version guard.

Usage:
    from reportflow.services.report_lifecycle import transition_report

    result = transition_report(
        report_id=7,
        action="approve",
        actor={"id": 2, "role": "bdm", "name": "Bola BDM"},
    )
"""

from __future__ import annotations

import logging
from datetime import date, datetime

from reportflow.core.exceptions import PermissionDenied, StateConflictError, ValidationError
from reportflow.models.report import MESSAGE_QUESTION, MESSAGE_RESPONSE, Report, ReportStatus
from reportflow.services import clarification_thread as thread
from reportflow.services.report_store import ReportStore
from reportflow.utils.helpers import utcnow

logger = logging.getLogger(__name__)

ACTION_APPROVE = "approve"
ACTION_REJECT = "reject"
ACTION_REQUEST_CLARIFICATION = "request_clarification"
ACTION_RESPOND = "respond"

REPORT_TRANSITIONS = {
    ACTION_APPROVE: {
        "from": [ReportStatus.PENDING, ReportStatus.CLARIFICATION_REQUESTED],
        "to": ReportStatus.APPROVED,
    },
    ACTION_REJECT: {
        "from": [ReportStatus.PENDING, ReportStatus.CLARIFICATION_REQUESTED],
        "to": ReportStatus.REJECTED,
    },
    ACTION_REQUEST_CLARIFICATION: {
        "from": [ReportStatus.PENDING, ReportStatus.CLARIFICATION_REQUESTED],
        "to": ReportStatus.CLARIFICATION_REQUESTED,
    },
    ACTION_RESPOND: {
        "from": [ReportStatus.CLARIFICATION_REQUESTED],
        "to": ReportStatus.CLARIFICATION_REQUESTED,
    },
}

REVIEWER_ACTIONS = frozenset({ACTION_APPROVE, ACTION_REJECT, ACTION_REQUEST_CLARIFICATION})
SUBMITTER_ACTIONS = frozenset({ACTION_RESPOND})


def validate_transition(report: Report, action: str) -> dict:
    """
    Validate whether an action is legal for the report's current state.

    Besides the status table, two thread guards apply while a clarification
    is open: approve needs the submitter to have answered, and respond needs
    an unanswered question. An empty thread satisfies neither guard.

    Returns:
        {"valid": bool, "from": str, "to": str|None, "reason": str|None}
    """
    rule = REPORT_TRANSITIONS.get(action)
    if not rule:
        return {"valid": False, "from": report.status, "to": None,
                "reason": f"Unknown action: {action}"}

    if report.status not in rule["from"]:
        return {"valid": False, "from": report.status, "to": rule["to"],
                "reason": f"Cannot '{action}' from status '{report.status}'"}

    last = thread.last_message(report)
    if report.status == ReportStatus.CLARIFICATION_REQUESTED:
        if action == ACTION_APPROVE and (last is None or last.type != MESSAGE_RESPONSE):
            return {"valid": False, "from": report.status, "to": rule["to"],
                    "reason": "Awaiting the submitter's response to the open question"}
        if action == ACTION_RESPOND and (last is None or last.type != MESSAGE_QUESTION):
            return {"valid": False, "from": report.status, "to": rule["to"],
                    "reason": "No unanswered question to respond to"}

    return {"valid": True, "from": report.status, "to": rule["to"], "reason": None}


def get_available_actions(report: Report) -> list[str]:
    """Get list of legal actions for a report's current state and thread."""
    return [action for action in REPORT_TRANSITIONS if validate_transition(report, action)["valid"]]


def _ensure_valid(report: Report, action: str) -> str:
    validation = validate_transition(report, action)
    if not validation["valid"]:
        raise StateConflictError(action, report.status, validation["reason"])
    return validation["to"]


# ── Engine operations ─────────────────────────────────────────────────────────


def approve(report: Report, reviewer_id: int, now: datetime | None = None) -> Report:
    """Approve a pending report, or a clarified one whose question was answered."""
    new_status = _ensure_valid(report, ACTION_APPROVE)
    now = now or utcnow()

    report.status = new_status
    report.reviewer_id = reviewer_id
    report.reviewed_at = now
    report.updated_at = now
    return report


def reject(
    report: Report,
    reviewer_id: int,
    reason: str,
    feedback: str,
    deadline: date | None = None,
    now: datetime | None = None,
) -> Report:
    """Reject a report. Final for this report instance; a correction is a new Report."""
    new_status = _ensure_valid(report, ACTION_REJECT)

    errors = {}
    if not isinstance(reason, str) or not reason.strip():
        errors["reason"] = "must be a non-empty string"
    if not isinstance(feedback, str) or not feedback.strip():
        errors["feedback"] = "must be a non-empty string"
    if errors:
        raise ValidationError("reason and feedback are required to reject a report", details=errors)

    now = now or utcnow()
    report.status = new_status
    report.reviewer_id = reviewer_id
    report.reviewed_at = now
    report.rejection_reason = reason.strip()
    report.rejection_feedback = feedback.strip()
    report.resubmission_deadline = deadline
    report.updated_at = now
    return report


def request_clarification(
    report: Report,
    reviewer_id: int,
    question: str,
    now: datetime | None = None,
    reviewer_name: str | None = None,
) -> Report:
    """Append a reviewer question and move the report to clarification_requested.

    May be repeated any number of times; each call is another question.
    """
    new_status = _ensure_valid(report, ACTION_REQUEST_CLARIFICATION)
    thread.require_text(question, "question")
    now = now or utcnow()

    thread.append_message(report, MESSAGE_QUESTION, reviewer_id, question, now, author_name=reviewer_name)
    report.status = new_status
    report.reviewer_id = reviewer_id
    report.reviewed_at = now
    report.updated_at = now
    return report


def respond_to_clarification(
    report: Report,
    submitter_id: int,
    response: str,
    now: datetime | None = None,
    submitter_name: str | None = None,
) -> Report:
    """Append the owner's answer to the open question. Status stays clarification_requested.

    A second response to an already-answered question raises StateConflictError.
    """
    if submitter_id != report.submitter_id:
        raise PermissionDenied(
            f"Only the submitter of report {report.id} may respond to its clarifications",
            user_id=submitter_id,
        )
    _ensure_valid(report, ACTION_RESPOND)
    thread.require_text(response, "response")
    now = now or utcnow()

    thread.append_message(report, MESSAGE_RESPONSE, submitter_id, response, now, author_name=submitter_name)
    report.updated_at = now
    return report


# ── Store-backed dispatcher ───────────────────────────────────────────────────


def transition_report(
    report_id: int,
    action: str,
    actor: dict,
    *,
    reason: str | None = None,
    feedback: str | None = None,
    deadline: date | None = None,
    content: str | None = None,
    now: datetime | None = None,
    store: ReportStore | None = None,
) -> dict:
    """
    Execute a report lifecycle action against the persisted report.

    Args:
        report_id: PK of the report
        action: One of REPORT_TRANSITIONS
        actor: {"id", "role", "name"} of the acting user
        reason, feedback, deadline: For 'reject'
        content: Question text for 'request_clarification', answer for 'respond'
        now: Clock value; defaults to utcnow()
        store: ReportStore; defaults to one bound to db.session

    Returns:
        {"report_id", "previous_status", "new_status", "action", "report"}

    Raises:
        NotFoundError, ValidationError, StateConflictError, ConflictError, PermissionDenied
    """
    if action not in REPORT_TRANSITIONS:
        raise ValidationError(f"Unknown action: {action}", details={"action": "unknown"})

    store = store or ReportStore()
    now = now or utcnow()
    report = store.get(report_id)
    previous_status = report.status
    actor_id = actor["id"]
    actor_name = actor.get("name")

    if action == ACTION_APPROVE:
        approve(report, actor_id, now)
    elif action == ACTION_REJECT:
        reject(report, actor_id, reason, feedback, deadline, now)
    elif action == ACTION_REQUEST_CLARIFICATION:
        request_clarification(report, actor_id, content, now, reviewer_name=actor_name)
    else:
        respond_to_clarification(report, actor_id, content, now, submitter_name=actor_name)

    store.save(report)

    logger.info(
        "Report %s",
        action,
        extra={
            "report_id": report.id,
            "report_kind": report.kind,
            "submitter_id": report.submitter_id,
            "reviewer_id": report.reviewer_id,
            "user_id": actor_id,
            "action": action,
            "from_status": previous_status,
            "to_status": report.status,
            "version": report.version,
        },
    )
    return {
        "report_id": report.id,
        "previous_status": previous_status,
        "new_status": report.status,
        "action": action,
        "report": report.to_dict(),
    }
