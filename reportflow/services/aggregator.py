"""
Aggregator — combines many reports and compliance scores into organisation views.

    build_leaderboard      sorted scores, top performers, needs-attention, averages
    dashboard_alerts       critical complaints, submission gaps, rejection rate
    review_summary         status totals and review queue counts
    report_intelligence    approval-time stats, quality rates, per-kind breakdown, daily trend
    organisation_kpis      revenue, occupancy, ADR, RevPAR, compliance, processing KPIs
    daily_revenue          sales + front-office revenue combined per date
    revenue_breakdown      room / laundry / other shares
    revenue_forecast       7-day moving average projection
    weekday_analysis       best / worst weekday by average revenue
    peak_and_low_days      top and bottom three revenue days with reasons

All functions are pure: callers load reports through the ReportStore and
pass them in.
"""

from __future__ import annotations

import calendar
from dataclasses import dataclass, field
from datetime import date, timedelta

from reportflow.models.report import ReportKind, ReportStatus
from reportflow.services import clarification_thread as thread
from reportflow.services import complaint_resolution
from reportflow.utils.helpers import hours_between

TOP_PERFORMERS_CAP = 5

KIND_LABELS = {
    ReportKind.STOCK: "Stock Reports",
    ReportKind.SALES: "Sales Reports",
    ReportKind.EXPENSE: "Expense Reports",
    ReportKind.OCCUPANCY: "Occupancy Reports",
    ReportKind.GUEST_ACTIVITY: "Guest Activity",
    ReportKind.REVENUE: "Revenue Reports",
    ReportKind.COMPLAINT: "Complaints",
}
KIND_ORDER = (
    ReportKind.STOCK,
    ReportKind.SALES,
    ReportKind.EXPENSE,
    ReportKind.OCCUPANCY,
    ReportKind.GUEST_ACTIVITY,
    ReportKind.REVENUE,
    ReportKind.COMPLAINT,
)

ALERT_COMPLIANCE_BELOW_PCT = 70
ALERT_REJECTION_ABOVE_PCT = 20

FORECAST_MIN_DAYS = 7
FORECAST_TREND_THRESHOLD = 0.05


def _pct(numerator: float, denominator: float) -> float:
    """Zero-safe percentage."""
    return numerator / denominator * 100 if denominator else 0.0


def _mean(values) -> float:
    values = list(values)
    return sum(values) / len(values) if values else 0.0


def _num(payload: dict | None, key: str) -> float:
    value = (payload or {}).get(key)
    return float(value) if isinstance(value, (int, float)) and not isinstance(value, bool) else 0.0


# ═════════════════════════════════════════════════════════════════════════════
# Leaderboard
# ═════════════════════════════════════════════════════════════════════════════


@dataclass
class Leaderboard:
    entries: list = field(default_factory=list)
    top_performers: list = field(default_factory=list)
    needs_attention: list = field(default_factory=list)
    average_score: float = 0.0
    total_reports: int = 0

    def to_dict(self) -> dict:
        return {
            "leaderboard": [s.to_dict() for s in self.entries],
            "top_performers": [s.to_dict() for s in self.top_performers],
            "needs_attention": [s.to_dict() for s in self.needs_attention],
            "average_score": round(self.average_score, 2),
            "total_reports": self.total_reports,
        }


def build_leaderboard(scores, top_n: int = TOP_PERFORMERS_CAP, total_reports: int | None = None) -> Leaderboard:
    """Rank ComplianceScores by overall score (descending, ties keep input order).

    Top performers are the flagged entries in rank order, capped at ``top_n``
    (never more than 5). Needs-attention entries are uncapped.
    """
    ranked = sorted(scores, key=lambda s: s.overall_score, reverse=True)
    cap = max(0, min(top_n, TOP_PERFORMERS_CAP))
    return Leaderboard(
        entries=ranked,
        top_performers=[s for s in ranked if s.top_performer][:cap],
        needs_attention=[s for s in ranked if s.needs_attention],
        average_score=_mean(s.overall_score for s in ranked),
        total_reports=total_reports if total_reports is not None else sum(s.total_reports for s in ranked),
    )


# ═════════════════════════════════════════════════════════════════════════════
# Alerts & review summary
# ═════════════════════════════════════════════════════════════════════════════


def submission_compliance(submitter_ids, reports, day: date) -> float:
    """Percentage of submitters with at least one report dated ``day``."""
    submitter_ids = set(submitter_ids)
    if not submitter_ids:
        return 0.0
    active = {r.submitter_id for r in reports if r.report_date == day} & submitter_ids
    return _pct(len(active), len(submitter_ids))


def rejection_rate(reports) -> float:
    reports = list(reports)
    return _pct(sum(1 for r in reports if r.status == ReportStatus.REJECTED), len(reports))


def dashboard_alerts(compliance_pct: float, rejection_pct: float, complaints_today=()) -> list[dict]:
    """Alerts derived from raw counts, independent of individual scores.

    ``complaints_today`` are complaint reports (or their payload dicts) filed today;
    only unresolved critical ones raise the alert.
    """
    alerts: list[dict] = []

    critical = [
        c for c in complaints_today
        if _severity(c) == "critical" and complaint_resolution.is_unresolved(c)
    ]
    if critical:
        plural = "s" if len(critical) > 1 else ""
        alerts.append({
            "id": "critical_complaints",
            "type": "critical",
            "title": "Critical Guest Complaints",
            "message": f"{len(critical)} critical complaint{plural} logged today requiring immediate attention.",
        })

    if compliance_pct < ALERT_COMPLIANCE_BELOW_PCT:
        alerts.append({
            "id": "low_submission",
            "type": "warning",
            "title": "Low Report Submission",
            "message": f"{100 - compliance_pct:.0f}% of managers haven't submitted today's reports.",
        })

    if rejection_pct > ALERT_REJECTION_ABOVE_PCT:
        alerts.append({
            "id": "high_rejection",
            "type": "warning",
            "title": "High Rejection Rate",
            "message": "More than 20% of reports are being rejected. Quality issues detected.",
        })

    return alerts


def _severity(complaint) -> str | None:
    payload = complaint if isinstance(complaint, dict) else complaint.payload
    return (payload or {}).get("severity")


def review_summary(reports) -> dict:
    """Status totals plus who the open reports are waiting on."""
    reports = list(reports)
    by_status = {status: 0 for status in sorted(ReportStatus.ALL)}
    awaiting_reviewer = 0
    awaiting_submitter = 0
    for r in reports:
        by_status[r.status] = by_status.get(r.status, 0) + 1
        if r.status == ReportStatus.PENDING:
            awaiting_reviewer += 1
        elif r.status == ReportStatus.CLARIFICATION_REQUESTED:
            if thread.awaiting_party(r) == thread.AWAITING_REVIEWER:
                awaiting_reviewer += 1
            else:
                awaiting_submitter += 1
    return {
        "total": len(reports),
        "by_status": by_status,
        "awaiting_reviewer": awaiting_reviewer,
        "awaiting_submitter": awaiting_submitter,
    }


# ═════════════════════════════════════════════════════════════════════════════
# Report processing intelligence
# ═════════════════════════════════════════════════════════════════════════════


def _approval_hours(reports) -> list[int]:
    return [
        hours_between(r.created_at, r.reviewed_at)
        for r in reports
        if r.status == ReportStatus.APPROVED and r.reviewed_at is not None and r.created_at is not None
    ]


def daily_trend(reports, days: int, today: date) -> list[dict]:
    """Per-day totals for the ``days`` calendar days ending ``today``, oldest first."""
    trend = []
    for offset in range(days - 1, -1, -1):
        day = today - timedelta(days=offset)
        day_reports = [r for r in reports if r.report_date == day]
        trend.append({
            "date": day.isoformat(),
            "total": len(day_reports),
            "approved": sum(1 for r in day_reports if r.status == ReportStatus.APPROVED),
            "rejected": sum(1 for r in day_reports if r.status == ReportStatus.REJECTED),
        })
    return trend


def report_intelligence(reports, days: int, today: date) -> dict:
    """Organisation-wide review metrics over a period of reports."""
    reports = list(reports)
    total = len(reports)
    approved = [r for r in reports if r.status == ReportStatus.APPROVED]
    rejected = [r for r in reports if r.status == ReportStatus.REJECTED]
    clarified = [
        r for r in reports
        if r.status == ReportStatus.CLARIFICATION_REQUESTED or thread.has_messages(r)
    ]
    first_time = [r for r in approved if not thread.has_messages(r)]

    approval_times = _approval_hours(reports)

    by_kind = []
    for kind in KIND_ORDER:
        kind_reports = [r for r in reports if r.kind == kind]
        if not kind_reports:
            continue
        kind_approved = sum(1 for r in kind_reports if r.status == ReportStatus.APPROVED)
        by_kind.append({
            "kind": kind,
            "label": KIND_LABELS[kind],
            "total": len(kind_reports),
            "approved": kind_approved,
            "rejected": sum(1 for r in kind_reports if r.status == ReportStatus.REJECTED),
            "avg_time": _mean(_approval_hours(kind_reports)),
            "approval_rate": _pct(kind_approved, len(kind_reports)),
        })

    return {
        "total_reports": total,
        "approved_reports": len(approved),
        "rejected_reports": len(rejected),
        "clarification_reports": len(clarified),
        "avg_approval_time": _mean(approval_times),
        "fastest_approval_time": min(approval_times) if approval_times else 0,
        "slowest_approval_time": max(approval_times) if approval_times else 0,
        "approval_rate": _pct(len(approved), total),
        "rejection_rate": _pct(len(rejected), total),
        "first_time_approval_rate": _pct(len(first_time), total),
        "clarification_rate": _pct(len(clarified), total),
        "by_kind": by_kind,
        "daily_trend": daily_trend(reports, days, today),
    }


# ═════════════════════════════════════════════════════════════════════════════
# Organisation KPIs
# ═════════════════════════════════════════════════════════════════════════════


def occupancy_series(reports) -> list[dict]:
    """Occupancy reports as {date, rate, occupied, total}, oldest first."""
    rows = [
        {
            "date": r.report_date,
            "rate": _num(r.payload, "occupancy_percentage"),
            "occupied": _num(r.payload, "occupied_rooms"),
            "total": _num(r.payload, "total_rooms"),
        }
        for r in reports
        if r.kind == ReportKind.OCCUPANCY
    ]
    return sorted(rows, key=lambda o: o["date"])


def _revenue_total(reports) -> float:
    return sum(_num(r.payload, "total_revenue") for r in reports if r.kind == ReportKind.REVENUE)


def organisation_kpis(reports, submitters, today: date, previous_reports=()) -> dict:
    """Dashboard KPIs for the current period.

    Args:
        reports: All reports in the current period.
        submitters: Active submitting users (objects with ``id`` and ``full_name``).
        today: Day used for submission compliance.
        previous_reports: Reports of the preceding period of equal length,
                          used for revenue growth.
    """
    reports = list(reports)
    submitters = list(submitters)

    total_revenue = _revenue_total(reports)
    previous_revenue = _revenue_total(previous_reports)
    revenue_growth = _pct(total_revenue - previous_revenue, previous_revenue)

    occupancies = occupancy_series(reports)
    avg_occupancy = _mean(o["rate"] for o in occupancies)
    earlier_avg = _mean(o["rate"] for o in occupancies[:3])
    recent_avg = _mean(o["rate"] for o in occupancies[-3:])
    occupancy_trend = _pct(recent_avg - earlier_avg, earlier_avg)

    room_revenue = sum(_num(r.payload, "room_revenue") for r in reports if r.kind == ReportKind.REVENUE)
    room_nights = sum(o["occupied"] for o in occupancies)
    available_rooms = sum(o["total"] for o in occupancies)
    adr = room_revenue / room_nights if room_nights else 0.0
    revpar = total_revenue / available_rooms if available_rooms else 0.0

    compliance = submission_compliance([s.id for s in submitters], reports, today)

    top_name, top_score = None, 0.0
    ranked = sorted(
        (
            (s.full_name, _pct(
                sum(1 for r in reports if r.submitter_id == s.id and r.status == ReportStatus.APPROVED),
                sum(1 for r in reports if r.submitter_id == s.id),
            ))
            for s in submitters
        ),
        key=lambda pair: pair[1],
        reverse=True,
    )
    if ranked:
        top_name, top_score = ranked[0]

    return {
        "total_revenue": total_revenue,
        "revenue_growth": revenue_growth,
        "avg_occupancy": avg_occupancy,
        "occupancy_trend": occupancy_trend,
        "adr": adr,
        "revpar": revpar,
        "submission_compliance": compliance,
        "avg_approval_time": _mean(_approval_hours(reports)),
        "rejection_rate": rejection_rate(reports),
        "top_performer_name": top_name,
        "top_performer_score": top_score,
        "total_reports": len(reports),
        "pending_reports": sum(1 for r in reports if r.status == ReportStatus.PENDING),
    }


# ═════════════════════════════════════════════════════════════════════════════
# Revenue
# ═════════════════════════════════════════════════════════════════════════════


def daily_revenue(reports) -> list[dict]:
    """Approved sales and front-office revenue combined per report_date, oldest first.

    Sales totals are folded into ``other``; food & beverage and other
    services revenue are folded into ``other`` as well.
    """
    by_date: dict[date, dict] = {}
    for r in reports:
        if r.status != ReportStatus.APPROVED or r.kind not in (ReportKind.SALES, ReportKind.REVENUE):
            continue
        bucket = by_date.setdefault(
            r.report_date, {"date": r.report_date, "total": 0.0, "room": 0.0, "laundry": 0.0, "other": 0.0}
        )
        if r.kind == ReportKind.SALES:
            amount = _num(r.payload, "total_amount")
            bucket["other"] += amount
            bucket["total"] += amount
        else:
            bucket["room"] += _num(r.payload, "room_revenue")
            bucket["laundry"] += _num(r.payload, "laundry_revenue")
            bucket["other"] += _num(r.payload, "food_beverage_revenue") + _num(r.payload, "other_services_revenue")
            bucket["total"] += _num(r.payload, "total_revenue")
    return [by_date[d] for d in sorted(by_date)]


def revenue_breakdown(daily: list[dict]) -> dict:
    total = sum(d["total"] for d in daily)
    result = {}
    for stream in ("room", "laundry", "other"):
        amount = sum(d[stream] for d in daily)
        result[stream] = {"amount": amount, "percentage": _pct(amount, total)}
    return result


def revenue_forecast(daily: list[dict]) -> dict:
    """Next-week projection from a 7-day moving average and week-over-week growth.

    Fewer than 7 days of data yields a zero forecast flagged as insufficient.
    Confidence: 85 with ≥30 days, 70 with ≥14, else 55.
    """
    if len(daily) < FORECAST_MIN_DAYS:
        return {
            "next_week_revenue": 0.0,
            "confidence": 0,
            "trend": "stable",
            "reasoning": "Insufficient data for forecasting",
        }

    avg_last7 = sum(d["total"] for d in daily[-7:]) / 7
    previous7 = daily[-14:-7]
    avg_prev7 = _mean(d["total"] for d in previous7) if previous7 else avg_last7

    growth = (avg_last7 - avg_prev7) / avg_prev7 if avg_prev7 > 0 else 0.0
    next_week = avg_last7 * 7 * (1 + growth)

    trend = "stable"
    if growth > FORECAST_TREND_THRESHOLD:
        trend = "up"
    elif growth < -FORECAST_TREND_THRESHOLD:
        trend = "down"

    if len(daily) >= 30:
        confidence = 85
    elif len(daily) >= 14:
        confidence = 70
    else:
        confidence = 55

    if trend == "up":
        reasoning = f"Based on recent {growth * 100:.1f}% growth trend, revenue is expected to increase next week."
    elif trend == "down":
        reasoning = (f"Recent {abs(growth) * 100:.1f}% decline suggests lower revenue next week "
                     "unless corrective actions are taken.")
    else:
        reasoning = "Revenue is stable. Expected to maintain current levels next week."

    return {
        "next_week_revenue": next_week,
        "confidence": confidence,
        "trend": trend,
        "reasoning": reasoning,
    }


def weekday_analysis(daily: list[dict]) -> dict:
    """Average revenue per weekday (Monday first) with the best and worst day."""
    by_day = []
    for index, name in enumerate(calendar.day_name):
        values = [d["total"] for d in daily if d["date"].weekday() == index]
        by_day.append({"day": name, "avg_revenue": _mean(values)})
    ranked = sorted(by_day, key=lambda d: d["avg_revenue"], reverse=True)
    return {"best_day": ranked[0], "worst_day": ranked[-1], "by_day": by_day}


def peak_and_low_days(daily: list[dict], occupancies: list[dict]) -> dict:
    """Top three and bottom three revenue days, each with a short reason."""
    occupancy_by_date = {o["date"]: o["rate"] for o in occupancies}
    ranked = sorted(daily, key=lambda d: d["total"], reverse=True)

    peak_days = []
    for d in ranked[:3]:
        rate = occupancy_by_date.get(d["date"])
        # Friday=4, Saturday=5
        if d["date"].weekday() in (4, 5):
            reason = "Weekend demand"
        elif rate is not None and rate > 85:
            reason = "High occupancy"
        else:
            reason = "Strong performance"
        peak_days.append({"date": d["date"].isoformat(), "revenue": d["total"], "reason": reason})

    low_days = []
    for d in reversed(ranked[-3:]):
        rate = occupancy_by_date.get(d["date"])
        reason = "Low occupancy" if rate is not None and rate < 40 else "Below average performance"
        low_days.append({"date": d["date"].isoformat(), "revenue": d["total"], "reason": reason})

    return {"peak_days": peak_days, "low_days": low_days}
