"""
Compliance Scorer — grades one submitter over a reporting period (0-100).

    submission_rate  0-30   volume against days × reports-per-day for the role
    approval_rate    0-35   share of reports approved
    timeliness       0-20   share filed within 24h of report_date 00:00 UTC
    response_time    0-15   first question → first response, step function

Pure function over a snapshot of reports; never raises for "no data". With
zero reports every component is 0 except response_time, which reports its
neutral 15 in the breakdown; the overall score stays 0.

Usage:
    from reportflow.services.compliance_scorer import compute_compliance_score

    score = compute_compliance_score(
        submitter_id=4,
        role="front_office_manager",
        reports=reports,
        period_start=date(2024, 1, 1),
        period_end=date(2024, 1, 30),
    )
    score.overall_score   # 96.5
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date

from reportflow.config import DEFAULT_REPORTS_PER_DAY, DEFAULT_SCORING_THRESHOLDS
from reportflow.models.report import ReportStatus
from reportflow.services import clarification_thread as thread
from reportflow.services.insight_engine import POSITIVE_RECOMMENDATION, recommendations_for
from reportflow.utils.helpers import hours_between, start_of_day_utc

logger = logging.getLogger(__name__)

SUBMISSION_WEIGHT = 30
APPROVAL_WEIGHT = 35
TIMELINESS_WEIGHT = 20
RESPONSE_WEIGHT = 15

TREND_IMPROVING = "improving"
TREND_STABLE = "stable"
TREND_DECLINING = "declining"

# Score change (points) beyond which a period-over-period comparison moves the trend
TREND_DELTA_POINTS = 5

GRADES = (
    (90, "A+", "Outstanding"),
    (85, "A", "Excellent"),
    (75, "B", "Good"),
    (60, "C", "Fair"),
    (50, "D", "Needs Improvement"),
)


@dataclass
class ScoreBreakdown:
    submission_rate: float = 0.0
    approval_rate: float = 0.0
    timeliness: float = 0.0
    response_time: float = 0.0

    @property
    def total(self) -> float:
        return self.submission_rate + self.approval_rate + self.timeliness + self.response_time

    def to_dict(self) -> dict:
        return {
            "submission_rate": round(self.submission_rate, 2),
            "approval_rate": round(self.approval_rate, 2),
            "timeliness": round(self.timeliness, 2),
            "response_time": round(self.response_time, 2),
        }


@dataclass
class ComplianceScore:
    """Derived performance grade for one submitter. Never persisted."""
    submitter_id: int
    submitter_role: str
    period_start: date | None
    period_end: date | None
    period_days: int
    overall_score: float
    breakdown: ScoreBreakdown
    total_reports: int = 0
    expected_reports: int = 0
    approved_reports: int = 0
    rejected_reports: int = 0
    clarification_reports: int = 0
    on_time_submissions: int = 0
    late_submissions: int = 0
    avg_submission_delay: float = 0.0
    first_time_approval_rate: float = 0.0
    avg_clarification_response_time: float = 0.0
    score_change: float = 0.0
    trend: str = TREND_STABLE
    top_performer: bool = False
    needs_attention: bool = False
    grade: str = "F"
    grade_label: str = "Critical"
    submitter_name: str | None = None
    recommendations: list[str] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "submitter_id": self.submitter_id,
            "submitter_name": self.submitter_name,
            "submitter_role": self.submitter_role,
            "period": {
                "start": self.period_start.isoformat() if self.period_start else None,
                "end": self.period_end.isoformat() if self.period_end else None,
                "days": self.period_days,
            },
            "overall_score": round(self.overall_score, 2),
            "breakdown": self.breakdown.to_dict(),
            "total_reports": self.total_reports,
            "expected_reports": self.expected_reports,
            "approved_reports": self.approved_reports,
            "rejected_reports": self.rejected_reports,
            "clarification_reports": self.clarification_reports,
            "on_time_submissions": self.on_time_submissions,
            "late_submissions": self.late_submissions,
            "avg_submission_delay": round(self.avg_submission_delay, 2),
            "first_time_approval_rate": round(self.first_time_approval_rate, 2),
            "avg_clarification_response_time": round(self.avg_clarification_response_time, 2),
            "score_change": round(self.score_change, 2),
            "trend": self.trend,
            "top_performer": self.top_performer,
            "needs_attention": self.needs_attention,
            "grade": self.grade,
            "grade_label": self.grade_label,
            "recommendations": list(self.recommendations),
        }


# ── Component scores ─────────────────────────────────────────────────────────


def submission_score(total: int, expected: int) -> float:
    if expected <= 0:
        return 0.0
    return min(total / expected * SUBMISSION_WEIGHT, float(SUBMISSION_WEIGHT))


def approval_score(approved: int, total: int) -> float:
    return approved / total * APPROVAL_WEIGHT if total else 0.0


def response_score(avg_response_hours: float) -> float:
    """Step function over the mean first-response time.

    0 means no measurable clarification and earns the full 15.
    """
    if avg_response_hours < 4:
        return 15.0
    if avg_response_hours < 8:
        return 12.0
    if avg_response_hours < 24:
        return 8.0
    return 3.0


def analyze_timeliness(reports, on_time_max_hours: int = 24) -> dict:
    """Classify each report as on time (≤ max hours after report_date 00:00 UTC) or late.

    Returns:
        {"on_time", "late", "avg_delay", "on_time_rate", "score"}
        avg_delay is the mean delay in hours of late reports only.
    """
    on_time = 0
    late = 0
    total_delay = 0
    for report in reports:
        delay = hours_between(start_of_day_utc(report.report_date), report.created_at)
        if delay <= on_time_max_hours:
            on_time += 1
        else:
            late += 1
            total_delay += delay

    total = len(reports)
    on_time_rate = on_time / total * 100 if total else 0.0
    return {
        "on_time": on_time,
        "late": late,
        "avg_delay": total_delay / late if late else 0.0,
        "on_time_rate": on_time_rate,
        "score": on_time_rate / 100 * TIMELINESS_WEIGHT,
    }


def avg_clarification_response_hours(reports) -> float:
    """Mean first-question → first-response hours over reports that have both; 0 if none."""
    samples = [
        hours
        for hours in (thread.first_response_hours(r) for r in reports if thread.has_messages(r))
        if hours is not None
    ]
    return sum(samples) / len(samples) if samples else 0.0


def grade_for(score: float) -> tuple[str, str]:
    for minimum, grade, label in GRADES:
        if score >= minimum:
            return grade, label
    return "F", "Critical"


def _trend(overall: float, previous_score: float | None, thresholds: dict) -> tuple[str, float]:
    if previous_score is not None:
        change = overall - previous_score
        if change >= TREND_DELTA_POINTS:
            return TREND_IMPROVING, change
        if change <= -TREND_DELTA_POINTS:
            return TREND_DECLINING, change
        return TREND_STABLE, change
    if overall >= thresholds["trend_improving_min"]:
        return TREND_IMPROVING, 0.0
    if overall < thresholds["trend_declining_below"]:
        return TREND_DECLINING, 0.0
    return TREND_STABLE, 0.0


# ── Public API ───────────────────────────────────────────────────────────────


def compute_compliance_score(
    submitter_id: int,
    role: str,
    reports,
    period_start: date | None = None,
    period_end: date | None = None,
    days: int | None = None,
    *,
    reports_per_day: dict | None = None,
    thresholds: dict | None = None,
    previous_score: float | None = None,
    submitter_name: str | None = None,
) -> ComplianceScore:
    """Score one submitter's reports for a period.

    Args:
        submitter_id: Whose score this is.
        role: store_manager | front_office_manager; selects reports-per-day.
        reports: The submitter's reports whose report_date falls in the period.
        period_start, period_end: Inclusive period bounds (informational).
        days: Period length; defaults to the inclusive length of the bounds.
        reports_per_day: Role → distinct kinds owed per day (app config REPORTS_PER_DAY).
        thresholds: Flag / trend cut-offs (app config SCORING_THRESHOLDS).
        previous_score: Prior period's overall score; enables score_change and a
                        delta-based trend.
        submitter_name: Display name carried into the result.
    """
    per_day = reports_per_day if reports_per_day is not None else DEFAULT_REPORTS_PER_DAY
    limits = {**DEFAULT_SCORING_THRESHOLDS, **(thresholds or {})}
    reports = list(reports)

    if days is None:
        days = (period_end - period_start).days + 1 if period_start and period_end else 0
    days = max(days, 0)

    total = len(reports)
    expected = days * per_day.get(role, 0)
    approved = sum(1 for r in reports if r.status == ReportStatus.APPROVED)
    rejected = sum(1 for r in reports if r.status == ReportStatus.REJECTED)
    clarified = sum(
        1 for r in reports
        if r.status == ReportStatus.CLARIFICATION_REQUESTED or thread.has_messages(r)
    )
    first_time = sum(
        1 for r in reports if r.status == ReportStatus.APPROVED and not thread.has_messages(r)
    )

    timeliness = analyze_timeliness(reports, limits["on_time_max_hours"])
    avg_response = avg_clarification_response_hours(reports)

    breakdown = ScoreBreakdown(
        submission_rate=submission_score(total, expected),
        approval_rate=approval_score(approved, total),
        timeliness=timeliness["score"],
        response_time=response_score(avg_response),
    )
    # No submissions: nothing is credited, including the neutral response points
    overall = breakdown.total if total else 0.0

    trend, change = _trend(overall, previous_score, limits)
    grade, grade_label = grade_for(overall)

    if total:
        recommendations = recommendations_for({
            "submission_rate": total / expected * 100 if expected else 0.0,
            "approval_rate": approved / total * 100,
            "timeliness": timeliness["on_time_rate"],
            "clarification_rate": clarified / total * 100,
            "avg_response_time": avg_response,
        })
    else:
        recommendations = [POSITIVE_RECOMMENDATION]

    score = ComplianceScore(
        submitter_id=submitter_id,
        submitter_name=submitter_name,
        submitter_role=role,
        period_start=period_start,
        period_end=period_end,
        period_days=days,
        overall_score=overall,
        breakdown=breakdown,
        total_reports=total,
        expected_reports=expected,
        approved_reports=approved,
        rejected_reports=rejected,
        clarification_reports=clarified,
        on_time_submissions=timeliness["on_time"],
        late_submissions=timeliness["late"],
        avg_submission_delay=timeliness["avg_delay"],
        first_time_approval_rate=first_time / total * 100 if total else 0.0,
        avg_clarification_response_time=avg_response,
        score_change=change,
        trend=trend,
        top_performer=overall >= limits["top_performer_min"],
        needs_attention=(
            overall < limits["needs_attention_below"] or timeliness["late"] > timeliness["on_time"]
        ),
        grade=grade,
        grade_label=grade_label,
        recommendations=recommendations,
    )

    logger.debug(
        "Compliance score computed: %.1f",
        overall,
        extra={"submitter_id": submitter_id, "action": "score"},
    )
    return score
