from __future__ import annotations

from ..extensions import db
from duka.time_utils import to_utc_z

ROLE_ADMIN = "admin"
ROLE_STAFF_ADMIN = "staff-admin"
ROLE_STAFF = "staff"

ROLES = (ROLE_ADMIN, ROLE_STAFF_ADMIN, ROLE_STAFF)
STAFF_ROLES = (ROLE_STAFF, ROLE_STAFF_ADMIN)


class User(db.Model):
    """
    User accounts for attribution and role resolution.

    Authentication happens upstream; this table is where the role claim
    and store affiliation for an authenticated id are looked up.

    MULTI-TENANT: Users belong to exactly one business. Username and email
    are unique within a business, not globally.
    """
    __tablename__ = "users"
    __table_args__ = (
        db.UniqueConstraint("business_id", "username", name="uq_users_business_username"),
        db.UniqueConstraint("business_id", "email", name="uq_users_business_email"),
        db.Index("ix_users_business_id", "business_id"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    business_id = db.Column(db.Integer, db.ForeignKey("businesses.id"), nullable=False)

    username = db.Column(db.String(64), nullable=False, index=True)
    email = db.Column(db.String(255), nullable=False)

    # admin, staff-admin, staff
    role = db.Column(db.String(16), nullable=False, default=ROLE_STAFF, index=True)

    # Store association (nullable for business-level admins)
    store_id = db.Column(db.Integer, db.ForeignKey("stores.id"), nullable=True, index=True)

    is_active = db.Column(db.Boolean, nullable=False, default=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    business = db.relationship("Business", backref=db.backref("users", lazy=True))
    store = db.relationship("Store", backref=db.backref("users", lazy=True))

    def __repr__(self) -> str:
        return f"<User id={self.id} username={self.username!r} role={self.role!r}>"

    @property
    def is_admin(self) -> bool:
        return self.role == ROLE_ADMIN

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "business_id": self.business_id,
            "username": self.username,
            "email": self.email,
            "role": self.role,
            "store_id": self.store_id,
            "is_active": self.is_active,
            "created_at": to_utc_z(self.created_at),
        }
