"""
User model — field staff who submit reports and reviewers (BDM) who review them.
"""

from datetime import datetime, timezone

from reportflow.models import db

ROLE_STORE_MANAGER = "store_manager"
ROLE_FRONT_OFFICE_MANAGER = "front_office_manager"
ROLE_BDM = "bdm"

SUBMITTER_ROLES = frozenset({ROLE_STORE_MANAGER, ROLE_FRONT_OFFICE_MANAGER})
REVIEWER_ROLES = frozenset({ROLE_BDM})
VALID_ROLES = SUBMITTER_ROLES | REVIEWER_ROLES


class User(db.Model):
    __tablename__ = "users"

    id = db.Column(db.Integer, primary_key=True)
    email = db.Column(db.String(200), unique=True, nullable=False)
    full_name = db.Column(db.String(200), nullable=False)
    role = db.Column(
        db.String(30),
        nullable=False,
        comment="store_manager | front_office_manager | bdm",
    )
    is_active = db.Column(db.Boolean, nullable=False, default=True)
    created_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )

    @property
    def is_submitter(self) -> bool:
        return self.role in SUBMITTER_ROLES

    @property
    def is_reviewer(self) -> bool:
        return self.role in REVIEWER_ROLES

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "email": self.email,
            "full_name": self.full_name,
            "role": self.role,
            "is_active": self.is_active,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }

    def __repr__(self) -> str:
        return f"<User #{self.id} {self.email} ({self.role})>"
