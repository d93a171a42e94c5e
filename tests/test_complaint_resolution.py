"""
Tests: complaint resolution — pending → in_progress → resolved, plus the
complaint lists and the /resolution endpoint.
"""

from datetime import date, datetime, timezone

import pytest

from reportflow.core.exceptions import PermissionDenied, StateConflictError, ValidationError
from reportflow.models.report import ReportKind
from reportflow.services import complaint_resolution as resolution
from reportflow.services.report_service import submit_report
from reportflow.services.report_store import ReportStore

NOW = datetime(2024, 1, 3, 15, 30, tzinfo=timezone.utc)
COMPLAINT = {"complaint_type": "noise", "description": "Loud music after midnight", "severity": "high"}


def _actor(user) -> dict:
    return {"id": user.id, "role": user.role, "name": user.full_name}


def _complaint(report_factory, owner, report_date=date(2024, 1, 3), **payload):
    return report_factory(owner, ReportKind.COMPLAINT, report_date, payload={**COMPLAINT, **payload})


# ── Service ──────────────────────────────────────────────────────────────────


def test_complaint_moves_through_in_progress_to_resolved(front_office_manager, report_factory):
    complaint = _complaint(report_factory, front_office_manager)

    started = resolution.update_complaint_resolution(
        complaint.id, "in_progress", _actor(front_office_manager), details="Spoke with the guest", now=NOW
    )
    assert started["previous_resolution"] == "pending"
    assert started["report"]["payload"]["resolution_details"] == "Spoke with the guest"
    assert started["report"]["payload"]["resolved_at"] is None

    done = resolution.update_complaint_resolution(
        complaint.id, "resolved", _actor(front_office_manager), details="  Moved to room 12  ", now=NOW
    )
    payload = done["report"]["payload"]
    assert done["previous_resolution"] == "in_progress"
    assert payload["resolution_status"] == "resolved"
    assert payload["resolution_details"] == "Moved to room 12"
    assert payload["resolved_at"] == NOW.isoformat()
    assert done["report"]["version"] == 3
    assert done["report"]["status"] == "pending"


def test_pending_complaint_can_be_resolved_directly(front_office_manager, report_factory):
    complaint = _complaint(report_factory, front_office_manager)

    result = resolution.update_complaint_resolution(
        complaint.id, "resolved", _actor(front_office_manager), details="Refunded one night", now=NOW
    )

    assert result["resolution_status"] == "resolved"


def test_starting_work_keeps_existing_notes(front_office_manager, report_factory):
    complaint = _complaint(report_factory, front_office_manager, resolution_details="Called maintenance")

    result = resolution.update_complaint_resolution(
        complaint.id, "in_progress", _actor(front_office_manager), details="Second note", now=NOW
    )

    assert result["report"]["payload"]["resolution_details"] == "Called maintenance"


@pytest.mark.parametrize("details", [None, "", "   "])
def test_resolving_requires_details_and_changes_nothing(front_office_manager, report_factory, details):
    complaint = _complaint(report_factory, front_office_manager)

    with pytest.raises(ValidationError) as exc_info:
        resolution.update_complaint_resolution(
            complaint.id, "resolved", _actor(front_office_manager), details=details, now=NOW
        )

    assert exc_info.value.details == {"resolution_details": "required"}
    fresh = ReportStore().get(complaint.id)
    assert resolution.resolution_status(fresh) == "pending"
    assert fresh.version == 1


def test_resolved_complaint_is_final(front_office_manager, report_factory):
    complaint = _complaint(report_factory, front_office_manager)
    resolution.update_complaint_resolution(complaint.id, "resolved", _actor(front_office_manager), details="Done")

    for target in ("in_progress", "resolved", "pending"):
        with pytest.raises(StateConflictError) as exc_info:
            resolution.update_complaint_resolution(
                complaint.id, target, _actor(front_office_manager), details="Again"
            )
        assert exc_info.value.current_status == "resolved"


def test_in_progress_cannot_go_back_to_pending(front_office_manager, report_factory):
    complaint = _complaint(report_factory, front_office_manager, resolution_status="in_progress")

    with pytest.raises(StateConflictError):
        resolution.update_complaint_resolution(complaint.id, "pending", _actor(front_office_manager))


def test_only_the_filing_manager_updates_resolution(front_office_manager, user_factory, report_factory):
    other = user_factory("other@example.com", "Other Front", "front_office_manager")
    complaint = _complaint(report_factory, front_office_manager)

    with pytest.raises(PermissionDenied):
        resolution.update_complaint_resolution(complaint.id, "in_progress", _actor(other))


def test_only_complaints_have_a_resolution(front_office_manager, report_factory):
    revenue = report_factory(front_office_manager, ReportKind.REVENUE, date(2024, 1, 3), payload={"room_revenue": 10.0})

    with pytest.raises(ValidationError) as exc_info:
        resolution.update_complaint_resolution(revenue.id, "in_progress", _actor(front_office_manager))
    assert "kind" in exc_info.value.details

    with pytest.raises(ValidationError) as exc_info:
        resolution.update_complaint_resolution(revenue.id, "closed", _actor(front_office_manager))
    assert "resolution_status" in exc_info.value.details


def test_list_complaints_splits_open_and_resolved(front_office_manager, report_factory):
    older = _complaint(report_factory, front_office_manager, report_date=date(2024, 1, 1))
    newer = _complaint(report_factory, front_office_manager, report_date=date(2024, 1, 2))
    first_resolved = _complaint(report_factory, front_office_manager, report_date=date(2024, 1, 3))
    last_resolved = _complaint(report_factory, front_office_manager, report_date=date(2024, 1, 3))
    actor = _actor(front_office_manager)
    resolution.update_complaint_resolution(
        first_resolved.id, "resolved", actor, details="A", now=datetime(2024, 1, 3, 9, tzinfo=timezone.utc)
    )
    resolution.update_complaint_resolution(
        last_resolved.id, "resolved", actor, details="B", now=datetime(2024, 1, 3, 18, tzinfo=timezone.utc)
    )

    open_ids = [c.id for c in resolution.list_complaints(front_office_manager.id)]
    resolved_ids = [c.id for c in resolution.list_complaints(front_office_manager.id, resolved=True)]

    assert open_ids == [newer.id, older.id]
    assert resolved_ids == [last_resolved.id, first_resolved.id]


def test_submitting_a_resolved_complaint_stamps_resolved_at(front_office_manager):
    actor = _actor(front_office_manager)

    with pytest.raises(ValidationError) as exc_info:
        submit_report(actor, "complaint", date(2024, 1, 3), {**COMPLAINT, "resolution_status": "resolved"}, now=NOW)
    assert exc_info.value.details == {"resolution_details": "required"}

    report = submit_report(
        actor, "complaint", date(2024, 1, 3),
        {**COMPLAINT, "resolution_status": "resolved", "resolution_details": "Fixed on the spot"},
        now=NOW,
    )
    assert report.payload["resolved_at"] == NOW.isoformat()

    pending = submit_report(actor, "complaint", date(2024, 1, 3), COMPLAINT, now=NOW)
    assert pending.payload["resolution_status"] == "pending"
    assert pending.payload["resolved_at"] is None


# ── HTTP ─────────────────────────────────────────────────────────────────────


def test_resolution_endpoint_and_lists(client, front_office_manager, bdm, report_factory, as_user):
    complaint = _complaint(report_factory, front_office_manager)
    owner = as_user(front_office_manager)

    res = client.post(
        f"/api/v1/reports/{complaint.id}/resolution",
        json={"resolution_status": "resolved"},
        headers=owner,
    )
    assert res.status_code == 400
    assert res.get_json()["code"] == "ERR_VALIDATION_REQUIRED"

    res = client.post(
        f"/api/v1/reports/{complaint.id}/resolution",
        json={"resolution_status": "resolved", "resolution_details": "Moved to a quiet room"},
        headers=owner,
    )
    assert res.status_code == 200
    assert res.get_json()["report"]["payload"]["resolution_status"] == "resolved"

    res = client.post(
        f"/api/v1/reports/{complaint.id}/resolution",
        json={"resolution_status": "in_progress"},
        headers=owner,
    )
    assert res.status_code == 409
    assert res.get_json()["details"] == {"action": "update_resolution", "current_status": "resolved"}

    open_list = client.get("/api/v1/reports/complaints", headers=owner).get_json()
    resolved_list = client.get("/api/v1/reports/complaints?resolution=resolved", headers=as_user(bdm)).get_json()
    assert open_list["total"] == 0
    assert [c["id"] for c in resolved_list["items"]] == [complaint.id]


def test_resolution_endpoint_permissions(client, front_office_manager, store_manager, bdm, report_factory, as_user):
    complaint = _complaint(report_factory, front_office_manager)
    body = {"resolution_status": "in_progress"}

    assert client.post(f"/api/v1/reports/{complaint.id}/resolution", json=body, headers=as_user(bdm)).status_code == 403
    assert client.get("/api/v1/reports/complaints", headers=as_user(store_manager)).status_code == 403
    assert client.get("/api/v1/reports/complaints?resolution=closed", headers=as_user(bdm)).status_code == 400
    assert client.post("/api/v1/reports/999/resolution", json=body,
                       headers=as_user(front_office_manager)).status_code == 404
