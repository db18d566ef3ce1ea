from __future__ import annotations

from ..extensions import db
from duka.time_utils import to_utc_z

class Business(db.Model):
    """
    Multi-tenant root: every tenant is a Business.

    All stores (dukas), users and inventory belong to exactly one business.
    No data may cross business boundaries.
    """
    __tablename__ = "businesses"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(255), nullable=False)

    is_active = db.Column(db.Boolean, nullable=False, default=True, index=True)

    created_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
    )

    def __repr__(self) -> str:
        return f"<Business id={self.id} name={self.name!r}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "is_active": self.is_active,
            "created_at": to_utc_z(self.created_at),
        }

class Store(db.Model):
    """
    Store location (duka) within a business.

    Store names are unique within a business, not globally.
    """
    __tablename__ = "stores"
    __table_args__ = (
        db.UniqueConstraint("business_id", "name", name="uq_stores_business_name"),
        db.Index("ix_stores_business_id", "business_id"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    business_id = db.Column(db.Integer, db.ForeignKey("businesses.id"), nullable=False)
    # Location label shown to staff, e.g. "Moi Avenue"
    name = db.Column(db.String(120), nullable=False)
    code = db.Column(db.String(32), nullable=True)

    created_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
    )

    business = db.relationship("Business", backref=db.backref("stores", lazy=True))

    def __repr__(self) -> str:
        return f"<Store id={self.id} name={self.name!r} business_id={self.business_id}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "business_id": self.business_id,
            "name": self.name,
            "code": self.code,
            "created_at": to_utc_z(self.created_at),
        }
