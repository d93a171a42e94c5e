"""
Analytics Service — loads report snapshots and hands them to the pure
scorer, insight engine and aggregator.

Scoring settings come from app config (REPORTS_PER_DAY, SCORING_THRESHOLDS).
Nothing here writes to the database.
"""

from __future__ import annotations

import logging
from datetime import date, timedelta

from flask import current_app

from reportflow.core.exceptions import NotFoundError, ValidationError
from reportflow.models import db
from reportflow.models.report import ReportKind
from reportflow.models.user import SUBMITTER_ROLES, User
from reportflow.services import aggregator
from reportflow.services import insight_engine as insights
from reportflow.services.compliance_scorer import compute_compliance_score
from reportflow.services.report_service import list_submitters
from reportflow.services.report_store import ReportStore

logger = logging.getLogger(__name__)

DEFAULT_PERIOD_DAYS = 30
MAX_PERIOD_DAYS = 366


def _period(days: int, today: date) -> tuple[date, date]:
    if days < 1 or days > MAX_PERIOD_DAYS:
        raise ValidationError(
            f"days must be between 1 and {MAX_PERIOD_DAYS}",
            details={"days": "out of range"},
        )
    return today - timedelta(days=days - 1), today


def _scoring_settings() -> dict:
    return {
        "reports_per_day": current_app.config.get("REPORTS_PER_DAY"),
        "thresholds": current_app.config.get("SCORING_THRESHOLDS"),
    }


def score_submitter(
    submitter: User,
    days: int,
    today: date,
    store: ReportStore | None = None,
    with_previous: bool = True,
):
    """ComplianceScore for one submitter over the ``days`` ending ``today``.

    With ``with_previous`` the preceding period of equal length is scored
    too and its overall score drives score_change and the trend.
    """
    store = store or ReportStore()
    start, end = _period(days, today)
    settings = _scoring_settings()

    previous_score = None
    if with_previous:
        prev_start, prev_end = start - timedelta(days=days), start - timedelta(days=1)
        prev_reports = store.find(submitter_id=submitter.id, date_range=(prev_start, prev_end))
        if prev_reports:
            previous_score = compute_compliance_score(
                submitter.id, submitter.role, prev_reports, prev_start, prev_end, days, **settings
            ).overall_score

    reports = store.find(submitter_id=submitter.id, date_range=(start, end))
    return compute_compliance_score(
        submitter.id,
        submitter.role,
        reports,
        start,
        end,
        days,
        previous_score=previous_score,
        submitter_name=submitter.full_name,
        **settings,
    )


def submitter_score(submitter_id: int, days: int, today: date, store: ReportStore | None = None) -> dict:
    submitter = db.session.get(User, submitter_id)
    if submitter is None or submitter.role not in SUBMITTER_ROLES:
        raise NotFoundError(resource="Submitter", resource_id=submitter_id)
    return score_submitter(submitter, days, today, store=store).to_dict()


def manager_leaderboard(
    days: int,
    today: date,
    role: str | None = None,
    store: ReportStore | None = None,
) -> dict:
    """Scores for every active submitter, ranked, with top performers and needs-attention lists."""
    if role is not None and role not in SUBMITTER_ROLES:
        raise ValidationError(f"Unknown submitter role: {role}", details={"role": "invalid"})
    store = store or ReportStore()
    scores = [score_submitter(s, days, today, store=store) for s in list_submitters(role)]
    board = aggregator.build_leaderboard(scores)
    logger.info(
        "Leaderboard computed for %d submitters",
        len(scores),
        extra={"action": "leaderboard"},
    )
    return board.to_dict()


def processing_intelligence(days: int, today: date, store: ReportStore | None = None) -> dict:
    """Organisation-wide review metrics with insights and recommendations."""
    start, end = _period(days, today)
    reports = (store or ReportStore()).find(date_range=(start, end))
    metrics = aggregator.report_intelligence(reports, days, today)
    return {
        **metrics,
        "review_summary": aggregator.review_summary(reports),
        "insights": insights.report_processing_insights(metrics),
        "recommendations": insights.report_processing_recommendations(metrics),
    }


def dashboard(days: int, today: date, store: ReportStore | None = None) -> dict:
    """KPIs for the period, KPI insights and recommendations, and today's alerts."""
    store = store or ReportStore()
    start, end = _period(days, today)
    reports = store.find(date_range=(start, end))
    previous = store.find(date_range=(start - timedelta(days=days), start - timedelta(days=1)))
    submitters = list_submitters()

    kpis = aggregator.organisation_kpis(reports, submitters, today, previous_reports=previous)
    complaints_today = [
        r for r in reports if r.kind == ReportKind.COMPLAINT and r.report_date == today
    ]
    return {
        "period": {"start": start.isoformat(), "end": end.isoformat(), "days": days},
        "kpis": kpis,
        "insights": insights.kpi_insights(kpis),
        "recommendations": insights.kpi_recommendations(kpis),
        "alerts": aggregator.dashboard_alerts(
            kpis["submission_compliance"], kpis["rejection_rate"], complaints_today
        ),
    }


def revenue_analysis(days: int, today: date, store: ReportStore | None = None) -> dict:
    """Revenue breakdown, forecast, weekday pattern, peak/low days and insights."""
    start, end = _period(days, today)
    reports = (store or ReportStore()).find(date_range=(start, end))
    daily = aggregator.daily_revenue(reports)
    occupancies = aggregator.occupancy_series(reports)
    return {
        "period": {"start": start.isoformat(), "end": end.isoformat(), "days": days},
        "total_revenue": sum(d["total"] for d in daily),
        "daily": [{**d, "date": d["date"].isoformat()} for d in daily],
        "breakdown": aggregator.revenue_breakdown(daily),
        "forecast": aggregator.revenue_forecast(daily),
        "weekday_analysis": aggregator.weekday_analysis(daily),
        **aggregator.peak_and_low_days(daily, occupancies),
        "insights": insights.revenue_insights(daily, occupancies),
    }
