"""
Shared pytest fixtures for the Daily Report Review Platform test suite.

Provides:
    - app: Flask application (session-scoped)
    - _setup_db: Database table creation/teardown (session-scoped)
    - session: Per-test DB cleanup w/ rollback + recreate (autouse)
    - client: Flask test client (function-scoped)
    - store_manager / front_office_manager / bdm: pre-created users
    - as_user: X-User-* headers for a user (API auth is off under testing)
"""

from datetime import date, datetime, timezone

import pytest

from reportflow import create_app
from reportflow.models import db as _db
from reportflow.models.report import Report, ReportStatus
from reportflow.models.user import (
    ROLE_BDM,
    ROLE_FRONT_OFFICE_MANAGER,
    ROLE_STORE_MANAGER,
    User,
)


# ── App & DB fixtures ────────────────────────────────────────────────────


@pytest.fixture(scope="session")
def app():
    """Create the Flask application once per test session."""
    application = create_app("testing")
    return application


@pytest.fixture(scope="session")
def _setup_db(app):
    """Create all tables at session start, drop at end."""
    with app.app_context():
        _db.create_all()
    yield
    with app.app_context():
        _db.drop_all()


@pytest.fixture(autouse=True)
def session(app, _setup_db):
    """Per-test: open app context, rollback after test, recreate tables."""
    with app.app_context():
        yield
        _db.session.rollback()
        _db.drop_all()
        _db.create_all()


@pytest.fixture()
def client(app):
    """Flask test client."""
    return app.test_client()


# ── Helpers ──────────────────────────────────────────────────────────────


def make_user(email: str, full_name: str, role: str) -> User:
    user = User(email=email, full_name=full_name, role=role)
    _db.session.add(user)
    _db.session.commit()
    return user


def make_report(
    submitter: User,
    kind: str,
    report_date: date,
    created_at: datetime | None = None,
    status: str = ReportStatus.PENDING,
    payload: dict | None = None,
) -> Report:
    """Persist a report directly, bypassing submission checks."""
    created_at = created_at or datetime.combine(report_date, datetime.min.time(), tzinfo=timezone.utc)
    report = Report(
        kind=kind,
        submitter_id=submitter.id,
        submitter_role=submitter.role,
        report_date=report_date,
        status=status,
        payload=payload or {},
        created_at=created_at,
        updated_at=created_at,
    )
    _db.session.add(report)
    _db.session.commit()
    return report


def headers_for(user: User) -> dict:
    return {
        "X-User-Id": str(user.id),
        "X-User-Role": user.role,
        "X-User-Name": user.full_name,
    }


# ── Convenience fixtures ─────────────────────────────────────────────────


@pytest.fixture()
def store_manager():
    return make_user("store@example.com", "Sade Store", ROLE_STORE_MANAGER)


@pytest.fixture()
def front_office_manager():
    return make_user("frontoffice@example.com", "Femi Front", ROLE_FRONT_OFFICE_MANAGER)


@pytest.fixture()
def bdm():
    return make_user("bdm@example.com", "Bola BDM", ROLE_BDM)


@pytest.fixture()
def as_user():
    """Return a function building identity headers for a user."""
    return headers_for


@pytest.fixture()
def report_factory():
    """Return a function persisting a report: (submitter, kind, report_date, ...)."""
    return make_report


@pytest.fixture()
def user_factory():
    """Return a function persisting a user: (email, full_name, role)."""
    return make_user
