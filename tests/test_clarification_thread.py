"""Tests: clarification thread helpers (turn-taking, first-response time)."""

from datetime import date, datetime, timezone

import pytest

from reportflow.core.exceptions import ValidationError
from reportflow.models.report import MESSAGE_QUESTION, MESSAGE_RESPONSE, Report
from reportflow.services import clarification_thread as thread


def _report() -> Report:
    return Report(
        kind="revenue",
        submitter_id=4,
        submitter_role="front_office_manager",
        report_date=date(2024, 1, 1),
        status="clarification_requested",
        payload={},
    )


def test_empty_thread_awaits_submitter_while_clarification_is_open():
    report = _report()

    assert thread.awaiting_party(report) == thread.AWAITING_SUBMITTER
    assert report.to_dict()["review"]["awaiting"] == thread.AWAITING_SUBMITTER
    assert thread.has_messages(report) is False
    assert thread.first_response_hours(report) is None


def test_empty_thread_outside_clarification_awaits_nobody():
    report = _report()
    report.status = "pending"

    assert thread.awaiting_party(report) is None


def test_turn_follows_last_message():
    report = _report()
    t = datetime(2024, 1, 1, 8, tzinfo=timezone.utc)

    thread.append_message(report, MESSAGE_QUESTION, 2, "Where is the laundry figure?", t)
    assert thread.awaiting_party(report) == thread.AWAITING_SUBMITTER

    thread.append_message(report, MESSAGE_RESPONSE, 4, "Included in other services.", t)
    assert thread.awaiting_party(report) == thread.AWAITING_REVIEWER


def test_append_strips_content_and_numbers_sequentially():
    report = _report()
    t = datetime(2024, 1, 1, 8, tzinfo=timezone.utc)

    first = thread.append_message(report, MESSAGE_QUESTION, 2, "  Why?  ", t, author_name="Bola")
    second = thread.append_message(report, MESSAGE_RESPONSE, 4, "Because", t)

    assert (first.sequence, second.sequence) == (0, 1)
    assert first.content == "Why?"
    assert first.author_name == "Bola"
    assert second.author_role == "submitter"


def test_first_response_hours_uses_first_pair_and_truncates():
    report = _report()
    thread.append_message(report, MESSAGE_QUESTION, 2, "Q1", datetime(2024, 1, 1, 8, 0, tzinfo=timezone.utc))
    thread.append_message(report, MESSAGE_RESPONSE, 4, "A1", datetime(2024, 1, 1, 13, 59, tzinfo=timezone.utc))
    thread.append_message(report, MESSAGE_QUESTION, 2, "Q2", datetime(2024, 1, 2, 8, 0, tzinfo=timezone.utc))
    thread.append_message(report, MESSAGE_RESPONSE, 4, "A2", datetime(2024, 1, 3, 8, 0, tzinfo=timezone.utc))

    assert thread.first_response_hours(report) == 5


def test_first_response_hours_accepts_naive_timestamps():
    report = _report()
    thread.append_message(report, MESSAGE_QUESTION, 2, "Q", datetime(2024, 1, 1, 8, 0))
    thread.append_message(report, MESSAGE_RESPONSE, 4, "A", datetime(2024, 1, 1, 10, 0, tzinfo=timezone.utc))

    assert thread.first_response_hours(report) == 2


@pytest.mark.parametrize("value", ["", "   ", None, 42])
def test_require_text_rejects_blank_or_non_string(value):
    with pytest.raises(ValidationError) as exc_info:
        thread.require_text(value, "question")

    assert "question" in exc_info.value.details
