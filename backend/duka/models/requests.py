from __future__ import annotations

from ..extensions import db
from duka.time_utils import to_utc_z

REQUEST_STATUS_PENDING = "pending"
REQUEST_STATUS_PROCESSED = "processed"


class ShoeRequest(db.Model):
    """
    Staff request for a shoe a customer asked for but the store lacks.

    Raised from the shop floor, processed by an admin or staff-admin.
    """
    __tablename__ = "shoe_requests"
    __table_args__ = (
        db.Index("ix_shoe_requests_status_created", "status", "created_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    store_id = db.Column(db.Integer, db.ForeignKey("stores.id"), nullable=False, index=True)
    staff_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False)

    shoe_name = db.Column(db.String(255), nullable=False)
    size = db.Column(db.String(16), nullable=True)
    quantity = db.Column(db.Integer, nullable=False, default=1)
    customer_contact = db.Column(db.String(120), nullable=True)

    status = db.Column(db.String(16), nullable=False, default=REQUEST_STATUS_PENDING, index=True)
    processed_at = db.Column(db.DateTime(timezone=True), nullable=True)
    processed_by_user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    staff = db.relationship("User", foreign_keys=[staff_id])

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "store_id": self.store_id,
            "staff_id": self.staff_id,
            "staff_name": self.staff.username if self.staff else None,
            "shoe_name": self.shoe_name,
            "size": self.size,
            "quantity": self.quantity,
            "customer_contact": self.customer_contact,
            "status": self.status,
            "processed_at": to_utc_z(self.processed_at) if self.processed_at else None,
            "processed_by_user_id": self.processed_by_user_id,
            "created_at": to_utc_z(self.created_at),
        }
