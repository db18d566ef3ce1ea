from __future__ import annotations

from ..extensions import db
from ..services.pairs import PairState, complete_pairs, total_shoes
from duka.time_utils import to_utc_z

AGE_GROUPS = ("Kids", "Teens", "Adult")
GENDERS = ("Men", "Women", "Unisex")


class InventoryItem(db.Model):
    """
    One stock line: a product code (@No) held at one store.

    PAIR MODEL:
    - stock counts pairs on hand, complete or not
    - incomplete_pairs counts pairs missing exactly one shoe
    - invariant: 0 <= incomplete_pairs <= stock

    AT_NO DESIGN DECISION:
    at_no is the business's own product code. It is NOT globally unique;
    the same code exists once per store: UniqueConstraint("store_id", "at_no").
    Lending resolves the destination line by (at_no, destination store).
    """
    __tablename__ = "inventory_items"
    __table_args__ = (
        db.UniqueConstraint("store_id", "at_no", name="uq_inventory_store_at_no"),
        db.Index("ix_inventory_store_name", "store_id", "name"),
        db.Index("ix_inventory_store_stock", "store_id", "stock"),
        db.CheckConstraint("stock >= 0", name="ck_inventory_stock_nonneg"),
        db.CheckConstraint(
            "incomplete_pairs >= 0 AND incomplete_pairs <= stock",
            name="ck_inventory_incomplete_within_stock",
        ),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    store_id = db.Column(db.Integer, db.ForeignKey("stores.id"), nullable=False, index=True)

    at_no = db.Column(db.String(64), nullable=False)
    name = db.Column(db.String(255), nullable=False)
    brand = db.Column(db.String(120), nullable=True)
    category = db.Column(db.String(120), nullable=True)
    age_group = db.Column(db.String(16), nullable=True)
    gender = db.Column(db.String(16), nullable=True)

    # Display order preserved as entered
    sizes = db.Column(db.JSON, nullable=False, default=list)
    colors = db.Column(db.JSON, nullable=False, default=list)

    # Authoritative storage in cents
    price_cents = db.Column(db.Integer, nullable=False, default=0)

    stock = db.Column(db.Integer, nullable=False, default=0)
    incomplete_pairs = db.Column(db.Integer, nullable=False, default=0)
    # Which shoes are missing from the incomplete pairs
    notes = db.Column(db.Text, nullable=True)

    version_id = db.Column(db.Integer, nullable=False, default=1)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    store = db.relationship("Store", backref=db.backref("inventory_items", lazy=True))
    __mapper_args__ = {"version_id_col": version_id}

    def __repr__(self) -> str:
        return (
            f"<InventoryItem id={self.id} at_no={self.at_no!r} store_id={self.store_id} "
            f"stock={self.stock} incomplete={self.incomplete_pairs}>"
        )

    @property
    def pair_state(self) -> PairState:
        return PairState(self.stock, self.incomplete_pairs)

    def apply_pair_state(self, state: PairState) -> None:
        self.stock = state.stock
        self.incomplete_pairs = state.incomplete_pairs

    @property
    def complete_pairs(self) -> int:
        return complete_pairs(self.stock, self.incomplete_pairs)

    @property
    def total_shoes(self) -> int:
        return total_shoes(self.stock, self.incomplete_pairs)

    def snapshot(self) -> dict:
        """Descriptive attributes copied onto ledger rows and new destination lines."""
        return {
            "at_no": self.at_no,
            "name": self.name,
            "brand": self.brand,
            "category": self.category,
            "age_group": self.age_group,
            "gender": self.gender,
            "sizes": list(self.sizes or []),
            "colors": list(self.colors or []),
            "price_cents": self.price_cents,
        }

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "store_id": self.store_id,
            "at_no": self.at_no,
            "name": self.name,
            "brand": self.brand,
            "category": self.category,
            "age_group": self.age_group,
            "gender": self.gender,
            "sizes": list(self.sizes or []),
            "colors": list(self.colors or []),
            "price_cents": self.price_cents,
            "stock": self.stock,
            "incomplete_pairs": self.incomplete_pairs,
            "complete_pairs": self.complete_pairs,
            "total_shoes": self.total_shoes,
            "notes": self.notes,
            "version_id": self.version_id,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }
