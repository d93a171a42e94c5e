"""
Daily operational report and its clarification thread.

Report lifecycle:
    pending ──► approved | rejected | clarification_requested
    clarification_requested ──► clarification_requested | approved | rejected

approved and rejected are terminal. A rejected report is never reopened;
the submitter files a new Report instead.

Concurrency:
    ``version`` is the SQLAlchemy ``version_id_col``: every UPDATE carries
    ``WHERE version = :expected`` and a lost race raises StaleDataError on
    flush. Thread messages are append-only and ``(report_id, sequence)`` is
    unique, so two writers appending to the same slot collide on insert.
"""

from datetime import datetime, timezone

from reportflow.models import db
from reportflow.models.user import ROLE_FRONT_OFFICE_MANAGER, ROLE_STORE_MANAGER

# ── Constants ─────────────────────────────────────────────────────────────────


class ReportStatus:
    PENDING = "pending"
    CLARIFICATION_REQUESTED = "clarification_requested"
    APPROVED = "approved"
    REJECTED = "rejected"

    ALL = frozenset({PENDING, CLARIFICATION_REQUESTED, APPROVED, REJECTED})
    TERMINAL = frozenset({APPROVED, REJECTED})
    REVIEWABLE = frozenset({PENDING, CLARIFICATION_REQUESTED})


class ReportKind:
    STOCK = "stock"
    SALES = "sales"
    EXPENSE = "expense"
    OCCUPANCY = "occupancy"
    GUEST_ACTIVITY = "guest_activity"
    REVENUE = "revenue"
    COMPLAINT = "complaint"

    ALL = frozenset({STOCK, SALES, EXPENSE, OCCUPANCY, GUEST_ACTIVITY, REVENUE, COMPLAINT})


# Which role files which kinds
KINDS_BY_ROLE = {
    ROLE_STORE_MANAGER: (ReportKind.STOCK, ReportKind.SALES, ReportKind.EXPENSE),
    ROLE_FRONT_OFFICE_MANAGER: (
        ReportKind.OCCUPANCY,
        ReportKind.GUEST_ACTIVITY,
        ReportKind.REVENUE,
        ReportKind.COMPLAINT,
    ),
}

MESSAGE_QUESTION = "question"
MESSAGE_RESPONSE = "response"
VALID_MESSAGE_TYPES = frozenset({MESSAGE_QUESTION, MESSAGE_RESPONSE})

AUTHOR_REVIEWER = "reviewer"
AUTHOR_SUBMITTER = "submitter"


def _iso(value):
    if value is None:
        return None
    if isinstance(value, datetime) and value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.isoformat()


# ═══════════════════════════════════════════════════════════════
# REPORT
# ═══════════════════════════════════════════════════════════════
class Report(db.Model):
    """
    One daily report of a given kind, filed by a submitter for a calendar date.

    Business rules:
    - Duplicates per (submitter, kind, report_date) are tolerated.
    - Rejection fields are written only by the reject transition.
    - ``payload`` holds the kind-specific figures (amounts, counts, items).
    """

    __tablename__ = "reports"

    id = db.Column(db.Integer, primary_key=True)
    kind = db.Column(
        db.String(30),
        nullable=False,
        comment="stock | sales | expense | occupancy | guest_activity | revenue | complaint",
    )
    submitter_id = db.Column(
        db.Integer,
        db.ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    submitter_role = db.Column(
        db.String(30),
        nullable=False,
        comment="store_manager | front_office_manager",
    )
    report_date = db.Column(db.Date, nullable=False, comment="Calendar date the report covers")
    status = db.Column(
        db.String(30),
        nullable=False,
        default=ReportStatus.PENDING,
        comment="pending | clarification_requested | approved | rejected",
    )
    payload = db.Column(db.JSON, nullable=False, default=dict)
    notes = db.Column(db.Text, nullable=True)

    # Review metadata
    reviewer_id = db.Column(
        db.Integer,
        db.ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
    )
    reviewed_at = db.Column(db.DateTime(timezone=True), nullable=True)
    rejection_reason = db.Column(db.Text, nullable=True)
    rejection_feedback = db.Column(db.Text, nullable=True)
    resubmission_deadline = db.Column(db.Date, nullable=True)

    created_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
        comment="Submission timestamp",
    )
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )
    version = db.Column(db.Integer, nullable=False, comment="Optimistic-concurrency token")

    clarification_thread = db.relationship(
        "ClarificationMessage",
        back_populates="report",
        order_by="ClarificationMessage.sequence",
        cascade="all, delete-orphan",
        lazy="selectin",
    )

    __mapper_args__ = {"version_id_col": version}

    __table_args__ = (
        db.Index("ix_reports_submitter_date", "submitter_id", "report_date"),
        db.Index("ix_reports_status", "status"),
        db.Index("ix_reports_kind_date", "kind", "report_date"),
    )

    @property
    def is_terminal(self) -> bool:
        return self.status in ReportStatus.TERMINAL

    @property
    def awaiting_party(self) -> str | None:
        """Whose turn it is in the clarification thread.

        The last message decides. An open clarification with no messages
        awaits the submitter; any other report with an empty thread awaits
        nobody.
        """
        if self.clarification_thread:
            last = self.clarification_thread[-1]
            return AUTHOR_REVIEWER if last.type == MESSAGE_RESPONSE else AUTHOR_SUBMITTER
        if self.status == ReportStatus.CLARIFICATION_REQUESTED:
            return AUTHOR_SUBMITTER
        return None

    def _review_block(self) -> dict | None:
        """Status-tagged review metadata; only the fields valid for the status."""
        if self.status == ReportStatus.APPROVED:
            return {
                "state": ReportStatus.APPROVED,
                "reviewer_id": self.reviewer_id,
                "reviewed_at": _iso(self.reviewed_at),
            }
        if self.status == ReportStatus.REJECTED:
            return {
                "state": ReportStatus.REJECTED,
                "reviewer_id": self.reviewer_id,
                "reviewed_at": _iso(self.reviewed_at),
                "reason": self.rejection_reason,
                "feedback": self.rejection_feedback,
                "resubmission_deadline": _iso(self.resubmission_deadline),
            }
        if self.status == ReportStatus.CLARIFICATION_REQUESTED:
            return {
                "state": ReportStatus.CLARIFICATION_REQUESTED,
                "reviewer_id": self.reviewer_id,
                "reviewed_at": _iso(self.reviewed_at),
                "awaiting": self.awaiting_party,
            }
        return None

    def to_dict(self, include_thread: bool = True) -> dict:
        result = {
            "id": self.id,
            "kind": self.kind,
            "submitter_id": self.submitter_id,
            "submitter_role": self.submitter_role,
            "report_date": _iso(self.report_date),
            "status": self.status,
            "payload": self.payload or {},
            "notes": self.notes,
            "review": self._review_block(),
            "created_at": _iso(self.created_at),
            "updated_at": _iso(self.updated_at),
            "version": self.version,
        }
        if include_thread:
            result["clarification_thread"] = [m.to_dict() for m in self.clarification_thread]
        return result

    def __repr__(self) -> str:
        return f"<Report #{self.id} {self.kind} {self.report_date} {self.status}>"


# ═══════════════════════════════════════════════════════════════
# CLARIFICATION MESSAGE
# ═══════════════════════════════════════════════════════════════
class ClarificationMessage(db.Model):
    """
    Immutable question/response entry in a report's clarification thread.

    Records are never updated or deleted. ``sequence`` is the 0-based
    position in the thread; the last message's type decides whose turn it is.
    """

    __tablename__ = "clarification_messages"

    id = db.Column(db.Integer, primary_key=True)
    report_id = db.Column(
        db.Integer,
        db.ForeignKey("reports.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    sequence = db.Column(db.Integer, nullable=False, comment="0-based position within the thread")
    type = db.Column(db.String(20), nullable=False, comment="question | response")
    author_id = db.Column(
        db.Integer,
        db.ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
    )
    author_name = db.Column(
        db.String(200),
        nullable=True,
        comment="Author display name captured at posting time",
    )
    author_role = db.Column(db.String(20), nullable=False, comment="reviewer | submitter")
    content = db.Column(db.Text, nullable=False)
    timestamp = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )

    report = db.relationship("Report", back_populates="clarification_thread")

    __table_args__ = (
        db.UniqueConstraint("report_id", "sequence", name="uq_clarification_report_sequence"),
    )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "report_id": self.report_id,
            "sequence": self.sequence,
            "type": self.type,
            "author_id": self.author_id,
            "author_name": self.author_name,
            "author_role": self.author_role,
            "content": self.content,
            "timestamp": _iso(self.timestamp),
        }

    def __repr__(self) -> str:
        return f"<ClarificationMessage report={self.report_id} #{self.sequence} {self.type}>"
