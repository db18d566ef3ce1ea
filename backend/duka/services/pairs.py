# Overview: Pair-consistency rules for moving shoe units between stock lines.

"""
Pure arithmetic for the complete/incomplete pair stock model.

A stock line holds `stock` pairs, `incomplete_pairs` of which are missing one
shoe. Every operation here takes a PairState and returns a new one; nothing
touches the database. Callers apply the result inside their own transaction.

INVARIANT: 0 <= incomplete_pairs <= stock after every operation. A result that
breaks it raises InvariantViolationError; it is never clamped into range.
The only clamping is max(0, ...) when taking returned units back off a line
that was edited after the lend, as documented per function.

SINGLE SHOE CONVENTION:
A lone shoe arriving at a store is booked as one incomplete pair
(stock + 1, incomplete + 1). Stock is always a whole number of pairs.
"""

from __future__ import annotations

from typing import NamedTuple

from ..errors import InsufficientStockError, InvariantViolationError, ValidationError

# Which source branch a single-shoe lend took, recorded so the return can
# apply the exact inverse.
SINGLE_SPLIT_PAIR = "split_pair"
SINGLE_USED_INCOMPLETE = "used_incomplete"
SINGLE_MODES = (SINGLE_SPLIT_PAIR, SINGLE_USED_INCOMPLETE)


class PairState(NamedTuple):
    stock: int
    incomplete_pairs: int


def complete_pairs(stock: int, incomplete_pairs: int) -> int:
    return stock - incomplete_pairs


def total_shoes(stock: int, incomplete_pairs: int) -> int:
    """Individual shoes on hand: two per complete pair, one per incomplete pair."""
    return complete_pairs(stock, incomplete_pairs) * 2 + incomplete_pairs


def settle(stock: int, incomplete_pairs: int) -> PairState:
    """Build a PairState, rejecting anything outside the invariant."""
    if stock < 0 or incomplete_pairs < 0 or incomplete_pairs > stock:
        raise InvariantViolationError(
            "Stock update would break 0 <= incomplete_pairs <= stock",
            details={"stock": stock, "incomplete_pairs": incomplete_pairs},
        )
    return PairState(stock, incomplete_pairs)


def _require_positive(quantity: int) -> None:
    if isinstance(quantity, bool) or not isinstance(quantity, int) or quantity < 1:
        raise ValidationError("quantity must be a positive whole number of pairs")


def _require_stock(state: PairState, quantity: int) -> None:
    if state.stock < quantity:
        raise InsufficientStockError(
            f"Insufficient stock. On hand: {state.stock}, requested: {quantity}",
            details={"on_hand": state.stock, "requested": quantity},
        )


# =============================================================================
# LENDING
# =============================================================================

def lend_pair(state: PairState, quantity: int) -> PairState:
    """Source side of a pair lend: stock - q."""
    _require_positive(quantity)
    _require_stock(state, quantity)
    return settle(state.stock - quantity, state.incomplete_pairs)


def receive_pair(state: PairState | None, quantity: int) -> PairState:
    """Destination side of a pair lend. None means the line does not exist yet."""
    _require_positive(quantity)
    if state is None:
        return settle(quantity, 0)
    return settle(state.stock + quantity, state.incomplete_pairs)


def lend_single(state: PairState) -> tuple[PairState, str]:
    """
    Source side of a single-shoe lend.

    - An incomplete pair exists: its remaining shoe leaves, so that pair is
      gone from stock entirely (stock - 1, incomplete - 1).
    - Otherwise a complete pair is split: stock is unchanged and one more pair
      becomes incomplete (stock, incomplete + 1).
    """
    _require_stock(state, 1)
    if state.incomplete_pairs > 0:
        return settle(state.stock - 1, state.incomplete_pairs - 1), SINGLE_USED_INCOMPLETE
    return settle(state.stock, state.incomplete_pairs + 1), SINGLE_SPLIT_PAIR


def receive_single(state: PairState | None) -> PairState:
    """Destination side of a single-shoe lend: one more incomplete pair."""
    if state is None:
        return settle(1, 1)
    return settle(state.stock + 1, state.incomplete_pairs + 1)


# =============================================================================
# RETURNS OF LENT ITEMS
# =============================================================================

def return_pair_to_source(state: PairState, quantity: int) -> PairState:
    _require_positive(quantity)
    return settle(state.stock + quantity, state.incomplete_pairs)


def take_back_pair(state: PairState, quantity: int) -> PairState:
    """Destination side of a pair return. Clamped at zero if the line was edited since."""
    _require_positive(quantity)
    return settle(max(0, state.stock - quantity), state.incomplete_pairs)


def return_single_to_source(state: PairState, mode: str) -> PairState:
    """Inverse of lend_single for the branch that was taken."""
    if mode == SINGLE_USED_INCOMPLETE:
        return settle(state.stock + 1, state.incomplete_pairs + 1)
    if mode == SINGLE_SPLIT_PAIR:
        return settle(state.stock, max(0, state.incomplete_pairs - 1))
    raise ValidationError(f"Unknown single lend mode: {mode!r}")


def take_back_single(state: PairState) -> PairState:
    """Destination side of a single return. Clamped at zero if the line was edited since."""
    return settle(max(0, state.stock - 1), max(0, state.incomplete_pairs - 1))


# =============================================================================
# SALES
# =============================================================================

def sell(state: PairState, quantity: int) -> PairState:
    """Sales are always whole pairs: stock - q, incomplete pairs untouched."""
    _require_positive(quantity)
    _require_stock(state, quantity)
    return settle(state.stock - quantity, state.incomplete_pairs)


def restock(state: PairState, quantity: int) -> PairState:
    """A returned sale goes back on the shelf: stock + q."""
    _require_positive(quantity)
    return settle(state.stock + quantity, state.incomplete_pairs)
