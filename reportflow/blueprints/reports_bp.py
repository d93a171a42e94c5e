"""
Reports Blueprint — daily report submission and the review workflow.

Endpoints:
    POST   /api/v1/reports                          submit (store / front office manager)
    GET    /api/v1/reports                          list; filters: submitter_id, kind, status, from, to
    GET    /api/v1/reports/pending                  reviewer queue
    GET    /api/v1/reports/<id>                     one report with its clarification thread
    GET    /api/v1/reports/<id>/thread              clarification thread only
    GET    /api/v1/reports/<id>/actions             actions currently available
    POST   /api/v1/reports/<id>/approve             BDM
    POST   /api/v1/reports/<id>/reject              BDM; body: reason, feedback, resubmission_deadline?
    POST   /api/v1/reports/<id>/clarifications      BDM; body: question
    POST   /api/v1/reports/<id>/responses           owning submitter; body: response
    GET    /api/v1/reports/complaints               complaints; ?resolution=open|resolved
    POST   /api/v1/reports/<id>/resolution          owning front office manager; body: resolution_status, resolution_details

Layer contract:
    - Blueprint: parse input, resolve caller, call service, return JSON.
    - NO db.session calls here; report_service / report_lifecycle own writes.
    - Service exceptions map to HTTP through register_error_handlers.
"""

import logging

from flask import Blueprint, jsonify, request

from reportflow.blueprints import paginate_items, register_error_handlers
from reportflow.core.exceptions import ValidationError
from reportflow.models.report import ReportKind, ReportStatus
from reportflow.models.user import ROLE_BDM, ROLE_FRONT_OFFICE_MANAGER, SUBMITTER_ROLES
from reportflow.services import clarification_thread as thread
from reportflow.services import complaint_resolution
from reportflow.services import report_lifecycle as lifecycle
from reportflow.services import report_service
from reportflow.services.identity import current_user, require_role
from reportflow.utils.helpers import parse_date_input

logger = logging.getLogger(__name__)

reports_bp = Blueprint("reports", __name__, url_prefix="/api/v1/reports")
register_error_handlers(reports_bp)


# ── Input helpers ──────────────────────────────────────────────────────────────


def _json_body() -> dict:
    data = request.get_json(silent=True)
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValidationError("Request body must be a JSON object")
    return data


def _date_field(value, field: str):
    try:
        return parse_date_input(value)
    except ValueError:
        raise ValidationError(f"Invalid {field}: {value}", details={field: "invalid date"})


def _int_arg(name: str):
    raw = request.args.get(name)
    if raw in (None, ""):
        return None
    try:
        return int(raw)
    except ValueError:
        raise ValidationError(f"Invalid {name}: {raw}", details={name: "must be an integer"})


# ── Submission & queries ───────────────────────────────────────────────────────


@reports_bp.route("", methods=["POST"])
@require_role(*SUBMITTER_ROLES)
def submit_report():
    """Submit a new daily report. Returns 201 with the pending report."""
    data = _json_body()
    report = report_service.submit_report(
        submitter=current_user(),
        kind=(data.get("kind") or "").strip(),
        report_date=_date_field(data.get("report_date"), "report_date"),
        payload=data.get("payload"),
        notes=data.get("notes"),
    )
    return jsonify(report.to_dict()), 201


@reports_bp.route("", methods=["GET"])
def list_reports():
    """List reports; submitters always see only their own."""
    user = current_user()
    submitter_id = _int_arg("submitter_id")
    if user["role"] in SUBMITTER_ROLES:
        submitter_id = user["id"]

    kind = request.args.get("kind") or None
    if kind and kind not in ReportKind.ALL:
        raise ValidationError(f"Unknown report kind: {kind}", details={"kind": "invalid"})

    statuses = None
    raw_status = request.args.get("status")
    if raw_status:
        statuses = [s.strip() for s in raw_status.split(",") if s.strip()]
        unknown = [s for s in statuses if s not in ReportStatus.ALL]
        if unknown:
            raise ValidationError(f"Unknown status: {', '.join(unknown)}", details={"status": "invalid"})

    reports = report_service.list_reports(
        submitter_id=submitter_id,
        kind=kind,
        statuses=statuses,
        date_from=_date_field(request.args.get("from"), "from"),
        date_to=_date_field(request.args.get("to"), "to"),
    )
    page, total = paginate_items(reports)
    return jsonify({
        "items": [r.to_dict(include_thread=False) for r in page],
        "total": total,
    }), 200


@reports_bp.route("/pending", methods=["GET"])
@require_role(ROLE_BDM)
def pending_reports():
    """Reports waiting on the reviewer: pending, or clarified with the submitter's answer in."""
    return jsonify(report_service.pending_review_queue()), 200


@reports_bp.route("/<int:report_id>", methods=["GET"])
def get_report(report_id: int):
    user = current_user()
    report = report_service.get_report(report_id)
    report_service.ensure_can_view(report, user)
    return jsonify(report.to_dict()), 200


@reports_bp.route("/<int:report_id>/thread", methods=["GET"])
def get_thread(report_id: int):
    user = current_user()
    report = report_service.get_report(report_id)
    report_service.ensure_can_view(report, user)
    return jsonify({
        "report_id": report.id,
        "status": report.status,
        "awaiting": thread.awaiting_party(report),
        "messages": thread.thread_to_list(report),
    }), 200


@reports_bp.route("/<int:report_id>/actions", methods=["GET"])
def available_actions(report_id: int):
    """Actions the caller could take on the report right now."""
    user = current_user()
    report = report_service.get_report(report_id)
    report_service.ensure_can_view(report, user)

    actions = lifecycle.get_available_actions(report)
    if user["role"] == ROLE_BDM:
        actions = [a for a in actions if a in lifecycle.REVIEWER_ACTIONS]
    elif report.submitter_id == user["id"]:
        actions = [a for a in actions if a in lifecycle.SUBMITTER_ACTIONS]
    else:
        actions = []
    return jsonify({"report_id": report.id, "status": report.status, "actions": actions}), 200


# ── Lifecycle actions ──────────────────────────────────────────────────────────


def _transition(report_id: int, action: str, **kwargs):
    result = lifecycle.transition_report(report_id, action, current_user(), **kwargs)
    return jsonify(result), 200


@reports_bp.route("/<int:report_id>/approve", methods=["POST"])
@require_role(ROLE_BDM)
def approve_report(report_id: int):
    return _transition(report_id, lifecycle.ACTION_APPROVE)


@reports_bp.route("/<int:report_id>/reject", methods=["POST"])
@require_role(ROLE_BDM)
def reject_report(report_id: int):
    """Reject with a reason and feedback; an optional resubmission deadline."""
    data = _json_body()
    return _transition(
        report_id,
        lifecycle.ACTION_REJECT,
        reason=data.get("reason"),
        feedback=data.get("feedback"),
        deadline=_date_field(data.get("resubmission_deadline"), "resubmission_deadline"),
    )


@reports_bp.route("/<int:report_id>/clarifications", methods=["POST"])
@require_role(ROLE_BDM)
def request_clarification(report_id: int):
    data = _json_body()
    return _transition(report_id, lifecycle.ACTION_REQUEST_CLARIFICATION, content=data.get("question"))


@reports_bp.route("/<int:report_id>/responses", methods=["POST"])
@require_role(*SUBMITTER_ROLES)
def respond_to_clarification(report_id: int):
    data = _json_body()
    return _transition(report_id, lifecycle.ACTION_RESPOND, content=data.get("response"))


# ── Complaint resolution ───────────────────────────────────────────────────────


@reports_bp.route("/complaints", methods=["GET"])
@require_role(ROLE_FRONT_OFFICE_MANAGER, ROLE_BDM)
def list_complaints():
    """Open (pending / in progress) or resolved complaints; front office managers see their own."""
    user = current_user()
    resolution = request.args.get("resolution", "open")
    if resolution not in ("open", "resolved"):
        raise ValidationError(f"Unknown resolution filter: {resolution}", details={"resolution": "invalid"})

    submitter_id = user["id"] if user["role"] == ROLE_FRONT_OFFICE_MANAGER else _int_arg("submitter_id")
    complaints = complaint_resolution.list_complaints(
        submitter_id=submitter_id, resolved=resolution == "resolved"
    )
    page, total = paginate_items(complaints)
    return jsonify({
        "items": [c.to_dict(include_thread=False) for c in page],
        "total": total,
    }), 200


@reports_bp.route("/<int:report_id>/resolution", methods=["POST"])
@require_role(ROLE_FRONT_OFFICE_MANAGER)
def update_resolution(report_id: int):
    data = _json_body()
    result = complaint_resolution.update_complaint_resolution(
        report_id,
        (data.get("resolution_status") or "").strip(),
        current_user(),
        details=data.get("resolution_details"),
    )
    return jsonify(result), 200
