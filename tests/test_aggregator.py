"""Tests: aggregator — leaderboard, alerts, processing metrics, KPIs and revenue analytics."""

from datetime import date, datetime, timedelta, timezone
from types import SimpleNamespace

import pytest

from reportflow.models.report import MESSAGE_QUESTION, Report, ReportStatus
from reportflow.services import aggregator
from reportflow.services import clarification_thread as thread
from reportflow.services.compliance_scorer import ComplianceScore, ScoreBreakdown

TODAY = date(2024, 1, 10)


def _score(submitter_id, overall, total_reports=10):
    return ComplianceScore(
        submitter_id=submitter_id,
        submitter_role="store_manager",
        period_start=None,
        period_end=None,
        period_days=30,
        overall_score=overall,
        breakdown=ScoreBreakdown(),
        total_reports=total_reports,
        top_performer=overall >= 85,
        needs_attention=overall < 60,
    )


def _report(kind, report_date, status=ReportStatus.APPROVED, payload=None, submitter_id=1,
            created_hours=0, reviewed_hours=None):
    created = datetime.combine(report_date, datetime.min.time(), tzinfo=timezone.utc) + timedelta(hours=created_hours)
    return Report(
        kind=kind,
        submitter_id=submitter_id,
        submitter_role="front_office_manager",
        report_date=report_date,
        status=status,
        payload=payload or {},
        created_at=created,
        updated_at=created,
        reviewed_at=created + timedelta(hours=reviewed_hours) if reviewed_hours is not None else None,
    )


# ── Leaderboard ──────────────────────────────────────────────────────────────


def test_leaderboard_sorted_with_capped_top_performers():
    scores = [_score(i, s) for i, s in enumerate([70, 99, 88, 91, 86, 95, 90, 40, 55])]

    board = aggregator.build_leaderboard(scores)

    assert [s.overall_score for s in board.entries] == [99, 95, 91, 90, 88, 86, 70, 55, 40]
    assert [s.overall_score for s in board.top_performers] == [99, 95, 91, 90, 88]
    assert [s.overall_score for s in board.needs_attention] == [55, 40]
    assert board.average_score == pytest.approx(sum([70, 99, 88, 91, 86, 95, 90, 40, 55]) / 9)
    assert board.total_reports == 90


def test_leaderboard_top_n_never_exceeds_five():
    scores = [_score(i, 90) for i in range(8)]

    assert len(aggregator.build_leaderboard(scores, top_n=10).top_performers) == 5
    assert len(aggregator.build_leaderboard(scores, top_n=2).top_performers) == 2


def test_empty_leaderboard():
    data = aggregator.build_leaderboard([]).to_dict()

    assert data == {
        "leaderboard": [],
        "top_performers": [],
        "needs_attention": [],
        "average_score": 0,
        "total_reports": 0,
    }


# ── Alerts ───────────────────────────────────────────────────────────────────


def test_dashboard_alerts_all_conditions():
    complaints = [{"severity": "critical"}, {"severity": "critical"}, {"severity": "low"}]

    alerts = aggregator.dashboard_alerts(40, 25, complaints)

    assert [a["id"] for a in alerts] == ["critical_complaints", "low_submission", "high_rejection"]
    assert alerts[0]["message"] == "2 critical complaints logged today requiring immediate attention."
    assert alerts[1]["message"] == "60% of managers haven't submitted today's reports."
    assert alerts[2]["message"] == "More than 20% of reports are being rejected. Quality issues detected."


def test_dashboard_alerts_quiet_day():
    assert aggregator.dashboard_alerts(70, 20, []) == []


def test_dashboard_alerts_accepts_complaint_reports():
    complaint = _report("complaint", TODAY, ReportStatus.PENDING, payload={"severity": "critical"})

    alerts = aggregator.dashboard_alerts(100, 0, [complaint])

    assert alerts[0]["message"] == "1 critical complaint logged today requiring immediate attention."


def test_resolved_critical_complaints_do_not_raise_alert():
    resolved = _report(
        "complaint", TODAY, ReportStatus.PENDING,
        payload={"severity": "critical", "resolution_status": "resolved", "resolution_details": "Refunded"},
    )
    in_progress = {"severity": "critical", "resolution_status": "in_progress"}

    alerts = aggregator.dashboard_alerts(100, 0, [resolved, in_progress])

    assert [a["id"] for a in alerts] == ["critical_complaints"]
    assert alerts[0]["message"] == "1 critical complaint logged today requiring immediate attention."
    assert aggregator.dashboard_alerts(100, 0, [resolved]) == []


def test_submission_compliance_counts_distinct_submitters_today():
    reports = [
        _report("occupancy", TODAY, submitter_id=1),
        _report("revenue", TODAY, submitter_id=1),
        _report("stock", TODAY - timedelta(days=1), submitter_id=2),
    ]

    assert aggregator.submission_compliance([1, 2, 3, 4], reports, TODAY) == 25
    assert aggregator.submission_compliance([], reports, TODAY) == 0


# ── Review summary & processing intelligence ─────────────────────────────────


def test_review_summary_splits_open_reports_by_turn():
    waiting_on_submitter = _report("occupancy", TODAY, ReportStatus.CLARIFICATION_REQUESTED)
    thread.append_message(waiting_on_submitter, MESSAGE_QUESTION, 2, "Why?", datetime(2024, 1, 10, tzinfo=timezone.utc))
    reports = [
        _report("occupancy", TODAY, ReportStatus.PENDING),
        waiting_on_submitter,
        _report("revenue", TODAY, ReportStatus.APPROVED),
        _report("revenue", TODAY, ReportStatus.REJECTED),
    ]

    summary = aggregator.review_summary(reports)

    assert summary["total"] == 4
    assert summary["by_status"] == {
        "approved": 1, "clarification_requested": 1, "pending": 1, "rejected": 1,
    }
    assert summary["awaiting_reviewer"] == 1
    assert summary["awaiting_submitter"] == 1


def test_report_intelligence_metrics():
    clarified = _report("stock", TODAY, ReportStatus.APPROVED, created_hours=2, reviewed_hours=30)
    thread.append_message(clarified, MESSAGE_QUESTION, 2, "Count?", datetime(2024, 1, 10, 5, tzinfo=timezone.utc))
    reports = [
        _report("occupancy", TODAY, ReportStatus.APPROVED, created_hours=1, reviewed_hours=4),
        _report("occupancy", TODAY - timedelta(days=1), ReportStatus.APPROVED, created_hours=1, reviewed_hours=8),
        clarified,
        _report("revenue", TODAY, ReportStatus.REJECTED, reviewed_hours=3),
    ]

    metrics = aggregator.report_intelligence(reports, days=7, today=TODAY)

    assert metrics["total_reports"] == 4
    assert metrics["avg_approval_time"] == pytest.approx(14)
    assert metrics["fastest_approval_time"] == 4
    assert metrics["slowest_approval_time"] == 30
    assert metrics["approval_rate"] == pytest.approx(75)
    assert metrics["rejection_rate"] == pytest.approx(25)
    assert metrics["first_time_approval_rate"] == pytest.approx(50)
    assert metrics["clarification_rate"] == pytest.approx(25)
    assert [k["label"] for k in metrics["by_kind"]] == ["Stock Reports", "Occupancy Reports", "Revenue Reports"]
    occupancy = metrics["by_kind"][1]
    assert occupancy["approval_rate"] == pytest.approx(100)
    assert occupancy["avg_time"] == pytest.approx(6)

    trend = metrics["daily_trend"]
    assert len(trend) == 7
    assert trend[0]["date"] == "2024-01-04"
    assert trend[-1] == {"date": "2024-01-10", "total": 3, "approved": 2, "rejected": 1}


def test_report_intelligence_with_no_reports():
    metrics = aggregator.report_intelligence([], days=3, today=TODAY)

    assert metrics["avg_approval_time"] == 0
    assert metrics["approval_rate"] == 0
    assert metrics["by_kind"] == []
    assert [d["total"] for d in metrics["daily_trend"]] == [0, 0, 0]


# ── Organisation KPIs ────────────────────────────────────────────────────────


def test_organisation_kpis():
    submitters = [SimpleNamespace(id=1, full_name="Femi Front"), SimpleNamespace(id=2, full_name="Sade Store")]
    reports = [
        _report("revenue", TODAY, payload={"room_revenue": 60000.0, "total_revenue": 80000.0}, submitter_id=1),
        _report("occupancy", TODAY, payload={"occupancy_percentage": 80.0, "occupied_rooms": 4, "total_rooms": 5},
                submitter_id=1),
        _report("stock", TODAY - timedelta(days=1), ReportStatus.REJECTED, submitter_id=2),
        _report("sales", TODAY - timedelta(days=1), ReportStatus.PENDING, submitter_id=2),
    ]
    previous = [_report("revenue", TODAY - timedelta(days=30), payload={"total_revenue": 64000.0})]

    kpis = aggregator.organisation_kpis(reports, submitters, TODAY, previous_reports=previous)

    assert kpis["total_revenue"] == pytest.approx(80000)
    assert kpis["revenue_growth"] == pytest.approx(25)
    assert kpis["avg_occupancy"] == pytest.approx(80)
    assert kpis["adr"] == pytest.approx(15000)
    assert kpis["revpar"] == pytest.approx(16000)
    assert kpis["submission_compliance"] == pytest.approx(50)
    assert kpis["rejection_rate"] == pytest.approx(25)
    assert kpis["top_performer_name"] == "Femi Front"
    assert kpis["top_performer_score"] == pytest.approx(100)
    assert kpis["pending_reports"] == 1


def test_organisation_kpis_without_data():
    kpis = aggregator.organisation_kpis([], [], TODAY)

    assert kpis["revenue_growth"] == 0
    assert kpis["adr"] == 0
    assert kpis["revpar"] == 0
    assert kpis["top_performer_name"] is None


# ── Revenue ──────────────────────────────────────────────────────────────────


def test_daily_revenue_combines_approved_sales_and_revenue():
    day = date(2024, 1, 5)
    reports = [
        _report("revenue", day, payload={
            "room_revenue": 100.0, "laundry_revenue": 20.0, "food_beverage_revenue": 30.0,
            "other_services_revenue": 10.0, "total_revenue": 160.0,
        }),
        _report("sales", day, payload={"total_amount": 40.0}),
        _report("sales", day, ReportStatus.PENDING, payload={"total_amount": 999.0}),
        _report("revenue", day - timedelta(days=1), payload={"room_revenue": 50.0, "total_revenue": 50.0}),
        _report("expense", day, payload={"total_amount": 70.0}),
    ]

    daily = aggregator.daily_revenue(reports)

    assert [d["date"] for d in daily] == [day - timedelta(days=1), day]
    assert daily[1] == {"date": day, "total": 200.0, "room": 100.0, "laundry": 20.0, "other": 80.0}

    breakdown = aggregator.revenue_breakdown(daily)
    assert breakdown["room"]["amount"] == pytest.approx(150)
    assert breakdown["room"]["percentage"] == pytest.approx(60)


def _series(values, start=date(2024, 1, 1)):
    return [
        {"date": start + timedelta(days=i), "total": v, "room": v, "laundry": 0.0, "other": 0.0}
        for i, v in enumerate(values)
    ]


def test_forecast_needs_seven_days():
    forecast = aggregator.revenue_forecast(_series([100.0] * 6))

    assert forecast == {
        "next_week_revenue": 0.0,
        "confidence": 0,
        "trend": "stable",
        "reasoning": "Insufficient data for forecasting",
    }


def test_forecast_growth_trend():
    forecast = aggregator.revenue_forecast(_series([100.0] * 7 + [120.0] * 7))

    assert forecast["trend"] == "up"
    assert forecast["confidence"] == 70
    assert forecast["next_week_revenue"] == pytest.approx(1008)
    assert forecast["reasoning"].startswith("Based on recent 20.0% growth trend")


def test_forecast_stable_and_confidence_tiers():
    stable = aggregator.revenue_forecast(_series([100.0] * 30))
    short = aggregator.revenue_forecast(_series([100.0] * 7))
    down = aggregator.revenue_forecast(_series([100.0] * 7 + [80.0] * 7))

    assert stable["trend"] == "stable"
    assert stable["confidence"] == 85
    assert stable["next_week_revenue"] == pytest.approx(700)
    assert short["confidence"] == 55
    assert down["trend"] == "down"


def test_weekday_analysis_and_peaks():
    # 2024-01-01 is a Monday; Saturday (index 5) earns most, Tuesday least
    values = [100.0, 50.0, 100.0, 100.0, 150.0, 300.0, 120.0]
    daily = _series(values)
    occupancies = [{"date": date(2024, 1, 2), "rate": 30.0, "occupied": 3, "total": 10}]

    analysis = aggregator.weekday_analysis(daily)
    peaks = aggregator.peak_and_low_days(daily, occupancies)

    assert analysis["best_day"]["day"] == "Saturday"
    assert analysis["worst_day"]["day"] == "Tuesday"
    assert [p["date"] for p in peaks["peak_days"]] == ["2024-01-06", "2024-01-05", "2024-01-07"]
    assert [p["reason"] for p in peaks["peak_days"]] == ["Weekend demand", "Weekend demand", "Strong performance"]
    assert peaks["low_days"][0] == {"date": "2024-01-02", "revenue": 50.0, "reason": "Low occupancy"}
    assert peaks["low_days"][1]["reason"] == "Below average performance"
