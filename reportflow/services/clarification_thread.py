"""
Clarification thread — ordered, append-only question/response log of one report.

The thread never mutates or removes an entry. Turn-taking is derived from
the last message (see Report.awaiting_party):

    empty thread         → the submitter while a clarification is open, else nobody
    last is "question"   → awaiting the submitter
    last is "response"   → awaiting the reviewer
"""

from __future__ import annotations

from reportflow.core.exceptions import ValidationError
from reportflow.models.report import (
    AUTHOR_REVIEWER,
    AUTHOR_SUBMITTER,
    MESSAGE_QUESTION,
    MESSAGE_RESPONSE,
    ClarificationMessage,
)
from reportflow.utils.helpers import hours_between

AWAITING_SUBMITTER = AUTHOR_SUBMITTER
AWAITING_REVIEWER = AUTHOR_REVIEWER


def last_message(report) -> ClarificationMessage | None:
    thread = report.clarification_thread
    return thread[-1] if thread else None


def awaiting_party(report) -> str | None:
    """Return whose turn it is in the thread (submitter, reviewer or None)."""
    return report.awaiting_party


def has_messages(report) -> bool:
    return bool(report.clarification_thread)


def require_text(value, field: str) -> str:
    """Return ``value`` stripped, or raise ValidationError if it is blank."""
    if not isinstance(value, str) or not value.strip():
        raise ValidationError(f"{field} is required", details={field: "must be a non-empty string"})
    return value.strip()


def append_message(
    report,
    message_type: str,
    author_id: int,
    content: str,
    now,
    author_name: str | None = None,
) -> ClarificationMessage:
    """Append one message at the next sequence slot and return it.

    The author role follows the message type: questions come from the
    reviewer, responses from the submitter.
    """
    text = require_text(content, "content")
    author_role = AUTHOR_REVIEWER if message_type == MESSAGE_QUESTION else AUTHOR_SUBMITTER
    message = ClarificationMessage(
        sequence=len(report.clarification_thread),
        type=message_type,
        author_id=author_id,
        author_name=author_name,
        author_role=author_role,
        content=text,
        timestamp=now,
    )
    report.clarification_thread.append(message)
    return message


def first_response_hours(report) -> int | None:
    """Hours from the first question to the first response, or None if either is missing."""
    first_question = next(
        (m for m in report.clarification_thread if m.type == MESSAGE_QUESTION), None
    )
    first_response = next(
        (m for m in report.clarification_thread if m.type == MESSAGE_RESPONSE), None
    )
    if first_question is None or first_response is None:
        return None
    return hours_between(first_question.timestamp, first_response.timestamp)


def thread_to_list(report) -> list[dict]:
    return [m.to_dict() for m in report.clarification_thread]
