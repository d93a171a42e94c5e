"""
Insight Engine — threshold rules turning metrics into recommendations and insights.

Pure functions, no I/O. Every rule is independent: all applicable rules fire,
in declaration order (not severity order). When nothing fires, the
submitter-level and processing-level recommenders emit a single positive
message instead of an empty list.

Usage:
    from reportflow.services.insight_engine import recommendations_for

    recommendations_for({
        "submission_rate": 72.0,
        "approval_rate": 90.0,
        "timeliness": 95.0,
        "clarification_rate": 5.0,
        "avg_response_time": 3.0,
    })
    # -> ["Submit reports daily to maintain compliance and avoid backlogs."]
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable

# ═════════════════════════════════════════════════════════════════════════════
# Submitter recommendations
# ═════════════════════════════════════════════════════════════════════════════

THRESHOLDS: dict[str, Any] = {
    # Submitter-level (percentages / hours)
    "submission_rate_min_pct": 80,
    "approval_rate_min_pct": 70,
    "timeliness_min_pct": 70,
    "clarification_rate_max_pct": 20,
    "avg_response_max_hours": 12,

    # Report processing (organisation-level)
    "processing_fast_hours": 12,
    "processing_slow_hours": 48,
    "processing_sla_hours": 24,
    "first_time_high_pct": 80,
    "first_time_low_pct": 50,
    "first_time_training_pct": 70,
    "processing_rejection_insight_pct": 15,
    "processing_rejection_recommend_pct": 10,
    "kind_approval_low_pct": 70,
    "kind_slow_hours": 36,

    # Dashboard KPIs
    "revenue_growth_strong_pct": 10,
    "revenue_growth_decline_pct": -5,
    "occupancy_high_pct": 75,
    "occupancy_low_pct": 50,
    "occupancy_boost_pct": 60,
    "submission_compliance_min_pct": 80,
    "adr_min": 15000,
    "kpi_rejection_max_pct": 15,
    "kpi_approval_time_max_hours": 24,

    # Revenue analysis
    "revenue_momentum_up_pct": 15,
    "revenue_momentum_down_pct": -10,
    "room_dependency_pct": 85,
    "revenue_occupancy_high_pct": 70,
    "revenue_occupancy_low_pct": 50,
    "weekend_surge_ratio": 1.3,
    "weekday_strength_ratio": 1.2,
}

POSITIVE_RECOMMENDATION = "Excellent performance! Keep maintaining these high standards."
POSITIVE_PROCESSING_RECOMMENDATION = "Excellent report processing performance! Maintain current standards."


@dataclass(frozen=True)
class RecommendationRule:
    """One independent threshold rule over a metrics mapping."""
    rule_id: str
    applies: Callable[[dict], bool]
    message: str


RECOMMENDATION_RULES: tuple[RecommendationRule, ...] = (
    RecommendationRule(
        "submit_daily",
        lambda m: m.get("submission_rate", 0) < THRESHOLDS["submission_rate_min_pct"],
        "Submit reports daily to maintain compliance and avoid backlogs.",
    ),
    RecommendationRule(
        "review_quality",
        lambda m: m.get("approval_rate", 0) < THRESHOLDS["approval_rate_min_pct"],
        "Review rejected reports to understand quality issues. Focus on accuracy and completeness.",
    ),
    RecommendationRule(
        "same_day_submission",
        lambda m: m.get("timeliness", 0) < THRESHOLDS["timeliness_min_pct"],
        "Submit reports on the same day as the report date. Late submissions affect overall score.",
    ),
    RecommendationRule(
        "double_check",
        lambda m: m.get("clarification_rate", 0) > THRESHOLDS["clarification_rate_max_pct"],
        "High clarification rate detected. Double-check reports before submission to reduce back-and-forth.",
    ),
    RecommendationRule(
        "faster_response",
        lambda m: m.get("avg_response_time", 0) > THRESHOLDS["avg_response_max_hours"],
        "Respond to BDM clarifications within 4-8 hours to speed up the approval process.",
    ),
)


def recommendations_for(metrics: dict) -> list[str]:
    """Return every applicable recommendation, in rule declaration order.

    ``metrics`` keys (all percentages 0-100 except the hours value):
    submission_rate, approval_rate, timeliness, clarification_rate,
    avg_response_time.
    """
    recs = [rule.message for rule in RECOMMENDATION_RULES if rule.applies(metrics)]
    return recs or [POSITIVE_RECOMMENDATION]


# ═════════════════════════════════════════════════════════════════════════════
# Report processing (reviewer side)
# ═════════════════════════════════════════════════════════════════════════════


def report_processing_insights(metrics: dict) -> list[dict]:
    """Insights over organisation-wide review metrics.

    ``metrics``: avg_approval_time (hours), first_time_approval_rate,
    rejection_rate, by_kind (list of {label, approval_rate, avg_time}).
    """
    insights: list[dict] = []
    avg_time = metrics.get("avg_approval_time", 0)
    first_time = metrics.get("first_time_approval_rate", 0)
    rejection = metrics.get("rejection_rate", 0)

    if avg_time < THRESHOLDS["processing_fast_hours"]:
        insights.append({
            "id": "fast_processing",
            "type": "positive",
            "title": "Fast Processing Time",
            "description": f"Reports are reviewed in {avg_time:.1f} hours on average. "
                           "This quick turnaround keeps managers productive.",
        })
    elif avg_time > THRESHOLDS["processing_slow_hours"]:
        insights.append({
            "id": "slow_review",
            "type": "negative",
            "title": "Slow Review Process",
            "description": f"Average approval time of {avg_time / 24:.1f} days is too long. "
                           "Managers are waiting for feedback.",
        })

    if first_time > THRESHOLDS["first_time_high_pct"]:
        insights.append({
            "id": "high_quality",
            "type": "positive",
            "title": "High Quality Submissions",
            "description": f"{first_time:.0f}% of reports are approved without clarification or rejection. "
                           "Managers understand requirements well.",
        })
    elif first_time < THRESHOLDS["first_time_low_pct"]:
        insights.append({
            "id": "quality_issues",
            "type": "negative",
            "title": "Quality Issues Detected",
            "description": f"Only {first_time:.0f}% of reports are approved on first submission. "
                           "Consider training on report standards.",
        })

    if rejection > THRESHOLDS["processing_rejection_insight_pct"]:
        insights.append({
            "id": "high_rejection",
            "type": "negative",
            "title": "High Rejection Rate",
            "description": f"{rejection:.1f}% rejection rate indicates systemic quality issues. "
                           "Review common rejection reasons and provide guidance.",
        })

    problem_kinds = [
        k for k in metrics.get("by_kind", []) if k["approval_rate"] < THRESHOLDS["kind_approval_low_pct"]
    ]
    if problem_kinds:
        labels = ", ".join(k["label"] for k in problem_kinds)
        insights.append({
            "id": "kind_issues",
            "type": "neutral",
            "title": "Report Type Issues",
            "description": f"{labels} have lower approval rates. "
                           "Focus coaching on these specific report types.",
        })

    return insights


def report_processing_recommendations(metrics: dict) -> list[str]:
    recs: list[str] = []

    if metrics.get("avg_approval_time", 0) > THRESHOLDS["processing_sla_hours"]:
        recs.append("Set a 24-hour SLA for report reviews to improve manager satisfaction "
                    "and workflow efficiency.")

    if metrics.get("rejection_rate", 0) > THRESHOLDS["processing_rejection_recommend_pct"]:
        recs.append("Create a report quality checklist and share common rejection reasons with managers.")

    if metrics.get("first_time_approval_rate", 0) < THRESHOLDS["first_time_training_pct"]:
        recs.append("Conduct monthly training sessions on report standards and best practices.")

    slow_kinds = [k for k in metrics.get("by_kind", []) if k["avg_time"] > THRESHOLDS["kind_slow_hours"]]
    if slow_kinds:
        labels = ", ".join(k["label"] for k in slow_kinds)
        recs.append(f"Prioritize {labels} for faster processing; these currently take over 36 hours.")

    return recs or [POSITIVE_PROCESSING_RECOMMENDATION]


# ═════════════════════════════════════════════════════════════════════════════
# Dashboard KPIs
# ═════════════════════════════════════════════════════════════════════════════


def kpi_insights(kpis: dict) -> list[dict]:
    """Insights over dashboard KPIs (see aggregator.organisation_kpis)."""
    insights: list[dict] = []
    growth = kpis.get("revenue_growth", 0)
    occupancy = kpis.get("avg_occupancy", 0)
    compliance = kpis.get("submission_compliance", 0)

    if growth > THRESHOLDS["revenue_growth_strong_pct"]:
        insights.append({
            "id": "revenue_growth",
            "impact": "positive",
            "title": "Strong Revenue Growth",
            "description": f"Revenue increased by {growth:.1f}% compared to the previous period. "
                           "This indicates healthy business momentum.",
        })
    elif growth < THRESHOLDS["revenue_growth_decline_pct"]:
        insights.append({
            "id": "revenue_decline",
            "impact": "negative",
            "title": "Revenue Declining",
            "description": f"Revenue decreased by {abs(growth):.1f}%. "
                           "Consider reviewing pricing strategy and promotional activities.",
        })

    if occupancy > THRESHOLDS["occupancy_high_pct"]:
        insights.append({
            "id": "high_occupancy",
            "impact": "positive",
            "title": "High Occupancy Rate",
            "description": f"Average occupancy at {occupancy:.1f}% suggests strong demand. "
                           "Consider dynamic pricing to maximize revenue.",
        })
    elif occupancy < THRESHOLDS["occupancy_low_pct"]:
        insights.append({
            "id": "low_occupancy",
            "impact": "negative",
            "title": "Low Occupancy",
            "description": f"Occupancy at {occupancy:.1f}% is below optimal. "
                           "Focus on marketing and promotional campaigns.",
        })

    if compliance < THRESHOLDS["submission_compliance_min_pct"]:
        insights.append({
            "id": "submission_gaps",
            "impact": "negative",
            "title": "Report Submission Gaps",
            "description": f"Only {compliance:.0f}% of managers submitted reports today. "
                           "Follow up with inactive managers.",
        })

    return insights


def kpi_recommendations(kpis: dict) -> list[dict]:
    recs: list[dict] = []
    adr = kpis.get("adr", 0)
    rejection = kpis.get("rejection_rate", 0)
    approval_time = kpis.get("avg_approval_time", 0)

    if adr < THRESHOLDS["adr_min"]:
        recs.append({
            "id": "increase_adr",
            "category": "Revenue",
            "title": "Increase Average Daily Rate",
            "description": f"Your ADR (₦{adr:.0f}) is below industry standards. "
                           "Consider value-added packages, room upgrades, and seasonal pricing.",
            "priority": "high",
        })

    if rejection > THRESHOLDS["kpi_rejection_max_pct"]:
        recs.append({
            "id": "reduce_rejections",
            "category": "Operations",
            "title": "Reduce Report Rejection Rate",
            "description": f"{rejection:.1f}% of reports are rejected. "
                           "Conduct training sessions on report quality and accuracy.",
            "priority": "high",
        })

    if approval_time > THRESHOLDS["kpi_approval_time_max_hours"]:
        recs.append({
            "id": "speed_up_processing",
            "category": "Efficiency",
            "title": "Speed Up Report Processing",
            "description": f"Average approval time is {approval_time / 24:.1f} days. "
                           "Set SLA targets and streamline review workflows.",
            "priority": "medium",
        })

    if kpis.get("avg_occupancy", 0) < THRESHOLDS["occupancy_boost_pct"]:
        recs.append({
            "id": "boost_occupancy",
            "category": "Marketing",
            "title": "Boost Room Occupancy",
            "description": "Launch targeted campaigns on social media, partner with travel agencies, "
                           "and offer weekend packages.",
            "priority": "high",
        })

    return recs


# ═════════════════════════════════════════════════════════════════════════════
# Revenue analysis
# ═════════════════════════════════════════════════════════════════════════════


def _mean(values: list[float]) -> float:
    return sum(values) / len(values) if values else 0.0


def revenue_insights(daily_revenue: list[dict], occupancies: list[dict]) -> list[dict]:
    """Insights over the combined daily revenue series.

    Args:
        daily_revenue: [{"date": date, "total", "room", "laundry", "other"}], oldest first.
        occupancies:   [{"date": date, "rate", "occupied", "total"}].
    """
    insights: list[dict] = []

    totals = [d["total"] for d in daily_revenue]
    avg_revenue = _mean(totals)
    avg_occupancy = _mean([o["rate"] for o in occupancies])

    recent_avg = _mean(totals[-7:])
    growth = ((recent_avg - avg_revenue) / avg_revenue) * 100 if avg_revenue > 0 else 0.0

    if growth > THRESHOLDS["revenue_momentum_up_pct"]:
        insights.append({
            "id": "revenue_momentum",
            "type": "positive",
            "title": "Strong Revenue Momentum",
            "description": f"Recent revenue trend shows {growth:.1f}% increase. Keep up the excellent "
                           "work with current pricing and marketing strategies.",
            "metric": f"+{growth:.1f}%",
        })
    elif growth < THRESHOLDS["revenue_momentum_down_pct"]:
        insights.append({
            "id": "revenue_decline",
            "type": "negative",
            "title": "Revenue Decline Detected",
            "description": f"Revenue has dropped by {abs(growth):.1f}% in recent days. "
                           "Review pricing strategy and launch promotional campaigns.",
            "metric": f"{growth:.1f}%",
        })

    total_revenue = sum(totals)
    room_revenue = sum(d["room"] for d in daily_revenue)
    room_pct = (room_revenue / total_revenue) * 100 if total_revenue > 0 else 0.0

    if room_pct > THRESHOLDS["room_dependency_pct"]:
        insights.append({
            "id": "room_dependency",
            "type": "neutral",
            "title": "Revenue Highly Dependent on Rooms",
            "description": f"{room_pct:.0f}% of revenue comes from rooms. Consider promoting laundry "
                           "and other services to diversify income streams.",
            "metric": f"{room_pct:.0f}%",
        })

    occupied_nights = sum(o["occupied"] for o in occupancies)
    if avg_occupancy > THRESHOLDS["revenue_occupancy_high_pct"] and avg_revenue > 0:
        adr = room_revenue / occupied_nights if occupied_nights else 0.0
        insights.append({
            "id": "occupancy_with_adr",
            "type": "positive",
            "title": "High Occupancy With Good ADR",
            "description": f"Occupancy at {avg_occupancy:.1f}% with ADR of ₦{adr:.0f}. "
                           "This is optimal performance.",
            "metric": f"{avg_occupancy:.0f}% occupancy",
        })
    elif avg_occupancy < THRESHOLDS["revenue_occupancy_low_pct"]:
        insights.append({
            "id": "low_occupancy_impact",
            "type": "negative",
            "title": "Low Occupancy Impact",
            "description": f"Occupancy at {avg_occupancy:.1f}% is affecting revenue potential. "
                           "Focus on increasing bookings through targeted marketing.",
            "metric": f"{avg_occupancy:.0f}% occupancy",
        })

    # Saturday=5, Sunday=6
    weekend_avg = _mean([d["total"] for d in daily_revenue if d["date"].weekday() >= 5])
    weekday_avg = _mean([d["total"] for d in daily_revenue if d["date"].weekday() < 5])

    if weekday_avg > 0 and weekend_avg > weekday_avg * THRESHOLDS["weekend_surge_ratio"]:
        insights.append({
            "id": "weekend_surge",
            "type": "neutral",
            "title": "Weekend Revenue Surge",
            "description": f"Weekends generate {(weekend_avg / weekday_avg - 1) * 100:.0f}% more revenue "
                           "than weekdays. Consider weekend packages and promotions.",
        })
    elif weekday_avg > weekend_avg * THRESHOLDS["weekday_strength_ratio"]:
        insights.append({
            "id": "weekday_strength",
            "type": "neutral",
            "title": "Strong Weekday Performance",
            "description": "Business travelers are driving weekday revenue. "
                           "Partner with corporate clients for long-term contracts.",
        })

    return insights
