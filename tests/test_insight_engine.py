"""Tests: insight engine threshold rules."""

from datetime import date, timedelta

from reportflow.services import insight_engine as ie


def _ids(items):
    return [i["id"] for i in items]


# ── Submitter recommendations ────────────────────────────────────────────────


def test_no_rule_fires_gives_single_positive_message():
    recs = ie.recommendations_for({
        "submission_rate": 100,
        "approval_rate": 90,
        "timeliness": 95,
        "clarification_rate": 5,
        "avg_response_time": 3,
    })

    assert recs == [ie.POSITIVE_RECOMMENDATION]


def test_every_rule_fires_in_declaration_order():
    recs = ie.recommendations_for({
        "submission_rate": 50,
        "approval_rate": 40,
        "timeliness": 30,
        "clarification_rate": 35,
        "avg_response_time": 20,
    })

    assert recs == [rule.message for rule in ie.RECOMMENDATION_RULES]
    assert len(recs) == 5
    assert recs[-1] == "Respond to BDM clarifications within 4-8 hours to speed up the approval process."


def test_thresholds_are_strict():
    recs = ie.recommendations_for({
        "submission_rate": 80,
        "approval_rate": 70,
        "timeliness": 70,
        "clarification_rate": 20,
        "avg_response_time": 12,
    })

    assert recs == [ie.POSITIVE_RECOMMENDATION]


# ── Report processing ────────────────────────────────────────────────────────


def test_processing_insights_fast_and_high_quality():
    insights = ie.report_processing_insights({
        "avg_approval_time": 6,
        "first_time_approval_rate": 85,
        "rejection_rate": 5,
        "by_kind": [],
    })

    assert _ids(insights) == ["fast_processing", "high_quality"]


def test_processing_insights_flag_slow_review_and_problem_kinds():
    insights = ie.report_processing_insights({
        "avg_approval_time": 72,
        "first_time_approval_rate": 40,
        "rejection_rate": 25,
        "by_kind": [
            {"label": "Stock Reports", "approval_rate": 50, "avg_time": 10},
            {"label": "Revenue Reports", "approval_rate": 95, "avg_time": 10},
        ],
    })

    assert _ids(insights) == ["slow_review", "quality_issues", "high_rejection", "kind_issues"]
    assert "3.0 days" in insights[0]["description"]
    assert insights[-1]["description"].startswith("Stock Reports have lower approval rates.")


def test_processing_recommendations():
    healthy = ie.report_processing_recommendations({
        "avg_approval_time": 5, "rejection_rate": 2, "first_time_approval_rate": 90, "by_kind": [],
    })
    struggling = ie.report_processing_recommendations({
        "avg_approval_time": 30,
        "rejection_rate": 12,
        "first_time_approval_rate": 60,
        "by_kind": [{"label": "Complaints", "approval_rate": 80, "avg_time": 40}],
    })

    assert healthy == [ie.POSITIVE_PROCESSING_RECOMMENDATION]
    assert len(struggling) == 4
    assert struggling[-1] == "Prioritize Complaints for faster processing; these currently take over 36 hours."


# ── Dashboard KPIs ───────────────────────────────────────────────────────────


def test_kpi_insights_growth_occupancy_and_gaps():
    insights = ie.kpi_insights({"revenue_growth": 12, "avg_occupancy": 80, "submission_compliance": 50})

    assert _ids(insights) == ["revenue_growth", "high_occupancy", "submission_gaps"]
    assert all("impact" in i for i in insights)


def test_kpi_insights_decline():
    insights = ie.kpi_insights({"revenue_growth": -8, "avg_occupancy": 40, "submission_compliance": 100})

    assert _ids(insights) == ["revenue_decline", "low_occupancy"]
    assert "8.0%" in insights[0]["description"]


def test_kpi_recommendations():
    recs = ie.kpi_recommendations({
        "adr": 10000, "rejection_rate": 20, "avg_approval_time": 48, "avg_occupancy": 55,
    })
    none = ie.kpi_recommendations({
        "adr": 20000, "rejection_rate": 5, "avg_approval_time": 10, "avg_occupancy": 80,
    })

    assert _ids(recs) == ["increase_adr", "reduce_rejections", "speed_up_processing", "boost_occupancy"]
    assert none == []


# ── Revenue ──────────────────────────────────────────────────────────────────


def _daily(days, weekday_total, weekend_total, room_share=0.5):
    start = date(2024, 1, 1)  # Monday
    rows = []
    for offset in range(days):
        day = start + timedelta(days=offset)
        total = weekend_total if day.weekday() >= 5 else weekday_total
        rows.append({
            "date": day,
            "total": total,
            "room": total * room_share,
            "laundry": 0.0,
            "other": total * (1 - room_share),
        })
    return rows


def test_revenue_insights_weekend_surge_and_low_occupancy():
    insights = ie.revenue_insights(_daily(14, 100.0, 200.0), occupancies=[])

    assert _ids(insights) == ["low_occupancy_impact", "weekend_surge"]


def test_revenue_insights_room_dependency_and_high_occupancy():
    occupancies = [{"date": date(2024, 1, 1), "rate": 80.0, "occupied": 40, "total": 50}]

    insights = ie.revenue_insights(_daily(14, 100.0, 100.0, room_share=0.9), occupancies)

    assert _ids(insights) == ["room_dependency", "occupancy_with_adr"]


def test_revenue_insights_weekday_strength():
    insights = ie.revenue_insights(
        _daily(14, 150.0, 100.0),
        occupancies=[{"date": date(2024, 1, 1), "rate": 60.0, "occupied": 30, "total": 50}],
    )

    assert _ids(insights) == ["weekday_strength"]


def test_revenue_insights_empty_series():
    assert _ids(ie.revenue_insights([], [{"date": date(2024, 1, 1), "rate": 60.0, "occupied": 1, "total": 2}])) == []
