"""
Analytics Blueprint — compliance scores, leaderboard and organisation KPIs.

Endpoints (all read-only, BDM only unless noted):
    GET /api/v1/analytics/managers                    leaderboard; ?days=30&role=
    GET /api/v1/analytics/managers/<id>/score         one submitter's score (BDM, or the submitter)
    GET /api/v1/analytics/reports                     processing intelligence; ?days=30
    GET /api/v1/analytics/dashboard                   KPIs, insights, alerts; ?days=30
    GET /api/v1/analytics/revenue                     breakdown, forecast, weekday, peaks; ?days=30

``today`` defaults to the current UTC date; ``?today=YYYY-MM-DD`` pins it.
"""

import logging

from flask import Blueprint, jsonify, request

from reportflow.blueprints import register_error_handlers
from reportflow.core.exceptions import PermissionDenied, ValidationError
from reportflow.models.user import ROLE_BDM
from reportflow.services import analytics_service
from reportflow.services.identity import current_user, require_role
from reportflow.utils.helpers import parse_date_input, utcnow

logger = logging.getLogger(__name__)

analytics_bp = Blueprint("analytics", __name__, url_prefix="/api/v1/analytics")
register_error_handlers(analytics_bp)


def _days() -> int:
    raw = request.args.get("days", analytics_service.DEFAULT_PERIOD_DAYS)
    try:
        return int(raw)
    except (TypeError, ValueError):
        raise ValidationError(f"Invalid days: {raw}", details={"days": "must be an integer"})


def _today():
    raw = request.args.get("today")
    if not raw:
        return utcnow().date()
    try:
        return parse_date_input(raw)
    except ValueError:
        raise ValidationError(f"Invalid today: {raw}", details={"today": "invalid date"})


@analytics_bp.route("/managers", methods=["GET"])
@require_role(ROLE_BDM)
def manager_leaderboard():
    board = analytics_service.manager_leaderboard(
        _days(), _today(), role=request.args.get("role") or None
    )
    return jsonify(board), 200


@analytics_bp.route("/managers/<int:submitter_id>/score", methods=["GET"])
def manager_score(submitter_id: int):
    """Compliance score for one submitter; submitters may read only their own."""
    user = current_user()
    if user["role"] != ROLE_BDM and user["id"] != submitter_id:
        raise PermissionDenied("Submitters may only view their own score", user_id=user["id"])
    return jsonify(analytics_service.submitter_score(submitter_id, _days(), _today())), 200


@analytics_bp.route("/reports", methods=["GET"])
@require_role(ROLE_BDM)
def report_intelligence():
    return jsonify(analytics_service.processing_intelligence(_days(), _today())), 200


@analytics_bp.route("/dashboard", methods=["GET"])
@require_role(ROLE_BDM)
def dashboard():
    return jsonify(analytics_service.dashboard(_days(), _today())), 200


@analytics_bp.route("/revenue", methods=["GET"])
@require_role(ROLE_BDM)
def revenue():
    return jsonify(analytics_service.revenue_analysis(_days(), _today())), 200
