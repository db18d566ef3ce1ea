from __future__ import annotations

from ..extensions import db
from duka.time_utils import to_utc_z

LEND_TYPE_PAIR = "pair"
LEND_TYPE_SINGLE = "single"
LEND_TYPES = (LEND_TYPE_PAIR, LEND_TYPE_SINGLE)

LENT_STATUS_LENT = "lent"
LENT_STATUS_RETURNED = "returned"
LENT_STATUS_UPDATED = "updated"


class LentShoe(db.Model):
    """
    Ledger entry for inventory lent from one store to another.

    LIFECYCLE:
    1. lent: source decremented, destination credited
    2. returned (terminal): inverse deltas applied to both lines
    3. updated (terminal): destination acknowledged via its own edit, no stock change

    item_snapshot keeps the source attributes at lend time so history still
    renders after the source line changes or is deleted.
    """
    __tablename__ = "lent_shoes"
    __table_args__ = (
        db.Index("ix_lent_shoes_from_status", "from_store_id", "status"),
        db.Index("ix_lent_shoes_to_status", "to_store_id", "status"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)

    item_id = db.Column(
        db.Integer, db.ForeignKey("inventory_items.id", ondelete="SET NULL"), nullable=True, index=True
    )
    destination_item_id = db.Column(
        db.Integer, db.ForeignKey("inventory_items.id", ondelete="SET NULL"), nullable=True, index=True
    )
    at_no = db.Column(db.String(64), nullable=False)
    item_snapshot = db.Column(db.JSON, nullable=False, default=dict)

    from_store_id = db.Column(db.Integer, db.ForeignKey("stores.id"), nullable=False)
    to_store_id = db.Column(db.Integer, db.ForeignKey("stores.id"), nullable=False)
    from_staff_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False)
    to_staff_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False)

    lend_type = db.Column(db.String(8), nullable=False)
    quantity = db.Column(db.Integer, nullable=False, default=1)
    # split_pair / used_incomplete; null for pair lends
    single_mode = db.Column(db.String(16), nullable=True)

    status = db.Column(db.String(16), nullable=False, default=LENT_STATUS_LENT, index=True)

    lent_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    returned_at = db.Column(db.DateTime(timezone=True), nullable=True)
    returned_by_user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)
    processed_at = db.Column(db.DateTime(timezone=True), nullable=True)
    processed_by_user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)

    version_id = db.Column(db.Integer, nullable=False, default=1)

    item = db.relationship("InventoryItem", foreign_keys=[item_id])
    destination_item = db.relationship("InventoryItem", foreign_keys=[destination_item_id])
    from_store = db.relationship("Store", foreign_keys=[from_store_id])
    to_store = db.relationship("Store", foreign_keys=[to_store_id])
    from_staff = db.relationship("User", foreign_keys=[from_staff_id])
    to_staff = db.relationship("User", foreign_keys=[to_staff_id])
    __mapper_args__ = {"version_id_col": version_id}

    def __repr__(self) -> str:
        return f"<LentShoe id={self.id} at_no={self.at_no!r} type={self.lend_type} status={self.status}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "item_id": self.item_id,
            "destination_item_id": self.destination_item_id,
            "at_no": self.at_no,
            "item_snapshot": self.item_snapshot,
            "from_store_id": self.from_store_id,
            "from_store_name": self.from_store.name if self.from_store else None,
            "to_store_id": self.to_store_id,
            "to_store_name": self.to_store.name if self.to_store else None,
            "from_staff_id": self.from_staff_id,
            "from_staff_name": self.from_staff.username if self.from_staff else None,
            "to_staff_id": self.to_staff_id,
            "to_staff_name": self.to_staff.username if self.to_staff else None,
            "lend_type": self.lend_type,
            "quantity": self.quantity,
            "single_mode": self.single_mode,
            "status": self.status,
            "lent_at": to_utc_z(self.lent_at),
            "returned_at": to_utc_z(self.returned_at) if self.returned_at else None,
            "returned_by_user_id": self.returned_by_user_id,
            "processed_at": to_utc_z(self.processed_at) if self.processed_at else None,
            "processed_by_user_id": self.processed_by_user_id,
            "version_id": self.version_id,
        }
