"""
ReportStore — persistence boundary for reports and their clarification threads.

    find(submitter_id=None, kind=None, date_range=None, statuses=None)
    get(report_id)         → Report, NotFoundError if missing
    add(report)            → Report (committed, version 1)
    save(report)           → Report, ConflictError on a lost race

``save`` relies on the Report ``version_id_col``: SQLAlchemy issues
``UPDATE ... WHERE id = :id AND version = :loaded`` and raises StaleDataError
when another writer got there first. A duplicate thread slot surfaces as an
IntegrityError on the ``(report_id, sequence)`` unique constraint. Both are
rolled back and re-raised as ConflictError; nothing is retried here.
"""

from __future__ import annotations

import logging
from datetime import date

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm.exc import StaleDataError

from reportflow.core.exceptions import ConflictError, NotFoundError
from reportflow.models import db
from reportflow.models.report import Report

logger = logging.getLogger(__name__)


class ReportStore:
    """SQLAlchemy-backed report repository bound to a session (default: ``db.session``)."""

    def __init__(self, session=None):
        self._session = session if session is not None else db.session

    def find(
        self,
        submitter_id: int | None = None,
        kind: str | None = None,
        date_range: tuple[date | None, date | None] | None = None,
        statuses=None,
        submitter_role: str | None = None,
    ) -> list[Report]:
        """Return reports matching every given filter, oldest report_date first.

        ``date_range`` is an inclusive ``(start, end)`` on report_date; either
        bound may be None.
        """
        stmt = select(Report)
        if submitter_id is not None:
            stmt = stmt.where(Report.submitter_id == submitter_id)
        if kind:
            stmt = stmt.where(Report.kind == kind)
        if submitter_role:
            stmt = stmt.where(Report.submitter_role == submitter_role)
        if date_range:
            start, end = date_range
            if start is not None:
                stmt = stmt.where(Report.report_date >= start)
            if end is not None:
                stmt = stmt.where(Report.report_date <= end)
        if statuses:
            stmt = stmt.where(Report.status.in_(list(statuses)))
        stmt = stmt.order_by(Report.report_date.asc(), Report.created_at.asc(), Report.id.asc())
        return list(self._session.execute(stmt).scalars().all())

    def get(self, report_id: int) -> Report:
        report = self._session.get(Report, report_id)
        if report is None:
            raise NotFoundError(resource="Report", resource_id=report_id)
        return report

    def add(self, report: Report) -> Report:
        self._session.add(report)
        self._commit(report)
        return report

    def save(self, report: Report) -> Report:
        self._commit(report)
        return report

    def _commit(self, report: Report) -> None:
        report_id = report.id
        try:
            self._session.commit()
        except StaleDataError:
            self._session.rollback()
            logger.warning(
                "Stale report version on save",
                extra={"report_id": report_id, "action": "save"},
            )
            raise ConflictError("Report", "version", report_id,
                                message=f"Report id={report_id} was modified by another request; reload and retry")
        except IntegrityError as exc:
            self._session.rollback()
            logger.warning(
                "Integrity error on report save: %s",
                exc.orig,
                extra={"report_id": report_id, "action": "save"},
            )
            raise ConflictError("ClarificationMessage", "sequence", report_id,
                                message=f"Report id={report_id} conflicts with a concurrent write (duplicate thread slot); reload and retry")
        except Exception:
            self._session.rollback()
            raise
