from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from sqlalchemy import JSON, Boolean, Integer, String, Text
from sqlalchemy.orm import DeclarativeMeta

from .errors import ValidationError
from .models.inventory import AGE_GROUPS, GENDERS, InventoryItem
from .models.sales import PAYMENT_METHODS


# Maximum price: 9,999,999.99 (999,999,999 cents)
MAX_PRICE_CENTS = 999_999_999


@dataclass(frozen=True)
class ModelValidationPolicy:
    """
    Central policy layer:
    - writable_fields: what clients are allowed to set (security boundary)
    - required_on_create: fields required for POST
    """
    writable_fields: set[str]
    required_on_create: set[str] = None  # type: ignore


INVENTORY_POLICY = ModelValidationPolicy(
    writable_fields={
        "at_no", "name", "brand", "category", "age_group", "gender",
        "sizes", "colors", "price_cents", "stock", "incomplete_pairs", "notes",
    },
    required_on_create={"at_no", "name", "sizes", "colors", "price_cents", "stock"},
)

# Staff-admins edit stock lines at their own store but cannot re-key or re-price them
STAFF_INVENTORY_POLICY = ModelValidationPolicy(
    writable_fields={"brand", "category", "sizes", "colors", "stock", "incomplete_pairs", "notes"},
)


def parse_label_list(value: Any, field: str) -> list[str]:
    """
    Normalize sizes/colors to a list of labels, preserving entry order.

    Accepts a list, or a legacy comma-joined string ("40, 41,42"). Blank
    entries are dropped; duplicates keep their first position.
    """
    if value is None:
        return []
    if isinstance(value, str):
        raw = value.split(",")
    elif isinstance(value, (list, tuple)):
        raw = value
    else:
        raise ValidationError(f"{field} must be a list or a comma-separated string")

    labels: list[str] = []
    for entry in raw:
        if entry is None or isinstance(entry, bool):
            continue
        if isinstance(entry, float) and entry.is_integer():
            entry = int(entry)
        label = str(entry).strip()
        if label and label not in labels:
            labels.append(label)
    return labels


def _columns_by_key(model: DeclarativeMeta) -> dict[str, Any]:
    mapper = model.__mapper__
    return {c.key: c for c in mapper.columns}


def _coerce_value(col, value: Any):
    coltype = col.type

    if value is None:
        return None

    # Integers - strict validation to reject floats and scientific notation
    if isinstance(coltype, Integer):
        if isinstance(value, int) and not isinstance(value, bool):
            return value
        if isinstance(value, str):
            stripped = value.strip()
            if not stripped:
                raise ValidationError(f"{col.key} must be an integer")
            if 'e' in stripped.lower():
                raise ValidationError(f"{col.key} must be a plain integer (scientific notation not allowed)")
            if '.' in stripped:
                raise ValidationError(f"{col.key} must be an integer (no decimals)")
            try:
                return int(stripped)
            except ValueError:
                raise ValidationError(f"{col.key} must be an integer")
        if isinstance(value, float):
            raise ValidationError(f"{col.key} must be an integer, not a decimal")
        raise ValidationError(f"{col.key} must be an integer")

    if isinstance(coltype, Boolean):
        if isinstance(value, bool):
            return value
        return bool(value)

    # Label lists (sizes, colors)
    if isinstance(coltype, JSON):
        return parse_label_list(value, col.key)

    if isinstance(coltype, (String, Text)):
        return str(value).strip()

    return value


def validate_payload(
    *,
    model: DeclarativeMeta,
    payload: dict,
    policy: ModelValidationPolicy,
    partial: bool,
) -> dict:
    """
    Validates + normalizes incoming JSON against:
    - SQLAlchemy column metadata (nullable, type, String length)
    - a policy allowlist (writable_fields)
    - required_on_create (if partial=False)
    Returns a cleaned patch dict with only writable fields.
    """
    if payload is None:
        payload = {}
    if not isinstance(payload, dict):
        raise ValidationError("Invalid JSON payload")

    required = policy.required_on_create or set()
    if not partial:
        missing = sorted(f for f in required if f not in payload)
        if missing:
            raise ValidationError(f"Missing required fields: {', '.join(missing)}")

    cols = _columns_by_key(model)

    for k in payload.keys():
        if k not in policy.writable_fields:
            raise ValidationError(f"Field not allowed: {k}")
        if k not in cols:
            raise ValidationError(f"Unknown field: {k}")

    patch: dict = {}

    for k, raw in payload.items():
        col = cols[k]

        if raw is None:
            if not col.nullable:
                raise ValidationError(f"{k} cannot be null")
            patch[k] = None
            continue

        val = _coerce_value(col, raw)

        if isinstance(col.type, (String, Text)) and not col.nullable:
            if isinstance(val, str) and val == "":
                raise ValidationError(f"{k} cannot be blank")

        if isinstance(col.type, String) and col.type.length and isinstance(val, str):
            if len(val) > col.type.length:
                raise ValidationError(f"{k} exceeds max length {col.type.length}")

        patch[k] = val

    return patch


def enforce_rules_inventory(patch: dict, current: InventoryItem | None = None) -> None:
    """
    Stock-line rules not captured by column metadata.

    On update, rules are checked against the merged result of the current row
    and the patch, so lowering stock below existing incomplete pairs fails.
    """
    def merged(field, default=None):
        if field in patch:
            return patch[field]
        if current is not None:
            return getattr(current, field)
        return default

    stock = merged("stock", 0)
    incomplete = merged("incomplete_pairs", 0)
    if incomplete is None:
        incomplete = 0
        patch["incomplete_pairs"] = 0

    if stock < 0:
        raise ValidationError("stock must be >= 0")
    if incomplete < 0:
        raise ValidationError("incomplete_pairs must be >= 0")
    if incomplete > stock:
        raise ValidationError(
            "Incomplete pairs cannot exceed total stock",
            details={"stock": stock, "incomplete_pairs": incomplete},
        )

    for field in ("sizes", "colors"):
        if field in patch or current is None:
            if not merged(field):
                raise ValidationError(f"{field} must contain at least one entry")

    price = merged("price_cents", 0)
    if price < 0:
        raise ValidationError("price_cents must be >= 0")
    if price > MAX_PRICE_CENTS:
        raise ValidationError(f"price_cents cannot exceed {MAX_PRICE_CENTS}")

    age_group = patch.get("age_group")
    if age_group and age_group not in AGE_GROUPS:
        raise ValidationError(f"age_group must be one of: {', '.join(AGE_GROUPS)}")
    gender = patch.get("gender")
    if gender and gender not in GENDERS:
        raise ValidationError(f"gender must be one of: {', '.join(GENDERS)}")


def validate_inventory_payload(payload: dict, *, partial: bool, current: InventoryItem | None = None,
                               policy: ModelValidationPolicy = INVENTORY_POLICY) -> dict:
    patch = validate_payload(model=InventoryItem, payload=payload, policy=policy, partial=partial)
    enforce_rules_inventory(patch, current)
    return patch


def require_int(value: Any, field: str, *, minimum: int | None = None) -> int:
    """Coerce a scalar request field to int with the same strictness as columns."""
    if value is None or isinstance(value, bool):
        raise ValidationError(f"{field} is required")
    if isinstance(value, float):
        raise ValidationError(f"{field} must be an integer, not a decimal")
    if isinstance(value, str):
        stripped = value.strip()
        if not stripped or not stripped.isascii() or "_" in stripped:
            raise ValidationError(f"{field} must be an integer")
        try:
            value = int(stripped)
        except ValueError:
            raise ValidationError(f"{field} must be an integer")
    if not isinstance(value, int):
        raise ValidationError(f"{field} must be an integer")
    if minimum is not None and value < minimum:
        raise ValidationError(f"{field} must be >= {minimum}")
    return value


def parse_payments(payments: Any) -> list[tuple[str, int]]:
    """Normalize a payments list to [(method, amount_cents), ...]."""
    if not isinstance(payments, list) or not payments:
        raise ValidationError("At least one payment is required")

    parsed = []
    for entry in payments:
        if not isinstance(entry, dict):
            raise ValidationError("Each payment must be an object with method and amount_cents")
        method = str(entry.get("method") or "").strip().lower()
        if method not in PAYMENT_METHODS:
            raise ValidationError(f"payment method must be one of: {', '.join(PAYMENT_METHODS)}")
        amount = require_int(entry.get("amount_cents"), "amount_cents", minimum=0)
        parsed.append((method, amount))
    return parsed
