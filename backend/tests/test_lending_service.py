# Overview: Pytest coverage for the inter-store lending workflow.

"""
Lending workflow tests.

Scenarios A-C from the stock model, round-trip conservation through the
database, terminal states, and all-or-nothing behaviour when a lend or
return fails part way.
"""

import pytest

from duka.errors import (
    InsufficientStockError,
    InvariantViolationError,
    NotFoundError,
    PermissionDeniedError,
    RecordNotFoundError,
    TerminalStateError,
    ValidationError,
)
from duka.models import ActivityEvent, InventoryItem, LentShoe
from duka.services import inventory_service, lending_service, pairs


def state(item):
    return (item.stock, item.incomplete_pairs)


def destination(db_session, store, at_no="AT-100"):
    return db_session.query(InventoryItem).filter_by(store_id=store.id, at_no=at_no).first()


class TestLendScenarios:

    def test_scenario_a_single_from_complete_stock(self, db_session, staff_a, staff_b, store_b, item_a):
        lent = lending_service.lend_item(item_a.id, store_b.id, staff_b.id, "single", None, staff_a)

        assert state(item_a) == (10, 1)
        assert lent.single_mode == "split_pair"
        assert lent.quantity == 1
        assert state(destination(db_session, store_b)) == (1, 1)

    def test_scenario_b_single_uses_incomplete_pair(self, db_session, staff_a, staff_b, store_a, store_b, make_item):
        item = make_item(store_a, stock=10, incomplete_pairs=1)
        lent = lending_service.lend_item(item.id, store_b.id, staff_b.id, "single", 1, staff_a)

        assert state(item) == (9, 0)
        assert lent.single_mode == "used_incomplete"

    def test_scenario_c_pair_creates_destination(self, db_session, staff_a, staff_b, store_a, store_b, make_item):
        item = make_item(store_a, stock=5, incomplete_pairs=0)
        assert destination(db_session, store_b) is None

        lent = lending_service.lend_item(item.id, store_b.id, staff_b.id, "pair", 2, staff_a)

        assert state(item) == (3, 0)
        dest = destination(db_session, store_b)
        assert state(dest) == (2, 0)
        assert dest.name == item.name
        assert dest.sizes == item.sizes
        assert lent.destination_item_id == dest.id
        assert lent.status == "lent"
        assert lent.item_snapshot["name"] == "Air Force 1"

    def test_pair_credits_existing_destination(self, db_session, staff_a, staff_b, store_b, item_a, make_item):
        existing = make_item(store_b, stock=4, incomplete_pairs=1)
        lending_service.lend_item(item_a.id, store_b.id, staff_b.id, "pair", 3, staff_a)

        assert state(existing) == (7, 1)
        assert db_session.query(InventoryItem).filter_by(store_id=store_b.id).count() == 1

    def test_lend_writes_activity_event(self, db_session, staff_a, staff_b, store_b, item_a):
        lent = lending_service.lend_item(item_a.id, store_b.id, staff_b.id, "pair", 1, staff_a)
        event = db_session.query(ActivityEvent).filter_by(event_type="lend.created", entity_id=lent.id).one()
        assert event.payload["destination_created"] is True


class TestLendValidation:

    def test_insufficient_stock_changes_nothing(self, db_session, staff_a, staff_b, store_a, store_b, make_item):
        item = make_item(store_a, stock=1)
        with pytest.raises(InsufficientStockError):
            lending_service.lend_item(item.id, store_b.id, staff_b.id, "pair", 2, staff_a)

        db_session.refresh(item)
        assert state(item) == (1, 0)
        assert destination(db_session, store_b) is None
        assert db_session.query(LentShoe).count() == 0

    def test_same_store_rejected(self, db_session, staff_a, store_a, item_a):
        with pytest.raises(ValidationError):
            lending_service.lend_item(item_a.id, store_a.id, staff_a.id, "pair", 1, staff_a)

    @pytest.mark.parametrize("missing", ["item_id", "to_store_id", "to_staff_id"])
    def test_all_selections_required(self, db_session, staff_a, staff_b, store_b, item_a, missing):
        args = {"item_id": item_a.id, "to_store_id": store_b.id, "to_staff_id": staff_b.id}
        args[missing] = None
        with pytest.raises(ValidationError):
            lending_service.lend_item(args["item_id"], args["to_store_id"], args["to_staff_id"], "pair", 1, staff_a)

    def test_receiving_staff_must_work_at_destination(self, db_session, staff_a, staff_admin_a, store_b, item_a):
        with pytest.raises(ValidationError):
            lending_service.lend_item(item_a.id, store_b.id, staff_admin_a.id, "pair", 1, staff_a)

    def test_inactive_receiving_staff_rejected(self, db_session, staff_a, staff_b, store_b, item_a):
        staff_b.is_active = False
        db_session.commit()
        with pytest.raises(ValidationError):
            lending_service.lend_item(item_a.id, store_b.id, staff_b.id, "pair", 1, staff_a)

    def test_unknown_lend_type(self, db_session, staff_a, staff_b, store_b, item_a):
        with pytest.raises(ValidationError):
            lending_service.lend_item(item_a.id, store_b.id, staff_b.id, "half", 1, staff_a)

    def test_foreign_destination_store(self, db_session, staff_a, staff_b, foreign_store, item_a):
        with pytest.raises(NotFoundError):
            lending_service.lend_item(item_a.id, foreign_store.id, staff_b.id, "pair", 1, staff_a)

    def test_cannot_lend_from_other_store(self, db_session, staff_a, store_a, store_b, make_item):
        item = make_item(store_b)
        with pytest.raises(PermissionDeniedError):
            lending_service.lend_item(item.id, store_a.id, staff_a.id, "pair", 1, staff_a)

    def test_destination_failure_rolls_back_source(
        self, db_session, staff_a, staff_b, store_b, item_a, monkeypatch
    ):
        def refuse(prior, quantity):
            raise InvariantViolationError("destination refused")

        monkeypatch.setattr(pairs, "receive_pair", refuse)

        with pytest.raises(InvariantViolationError):
            lending_service.lend_item(item_a.id, store_b.id, staff_b.id, "pair", 2, staff_a)

        db_session.refresh(item_a)
        assert state(item_a) == (10, 0)
        assert destination(db_session, store_b) is None
        assert db_session.query(LentShoe).count() == 0


class TestReturnLentItem:

    def test_single_round_trip_restores_both_stores(self, db_session, staff_a, staff_b, store_a, store_b, make_item):
        item = make_item(store_a, stock=10, incomplete_pairs=1)
        existing = make_item(store_b, stock=2, incomplete_pairs=0)

        lent = lending_service.lend_item(item.id, store_b.id, staff_b.id, "single", 1, staff_a)
        assert state(item) == (9, 0)
        assert state(existing) == (3, 1)

        returned = lending_service.return_lent_item(lent.id, staff_b)

        assert returned.status == "returned"
        assert returned.returned_at is not None
        assert returned.returned_by_user_id == staff_b.id
        assert state(item) == (10, 1)
        assert state(existing) == (2, 0)

    def test_pair_round_trip(self, db_session, staff_a, staff_b, store_b, item_a):
        lent = lending_service.lend_item(item_a.id, store_b.id, staff_b.id, "pair", 4, staff_a)
        lending_service.return_lent_item(lent.id, staff_a)

        assert state(item_a) == (10, 0)
        assert state(destination(db_session, store_b)) == (0, 0)

    def test_split_pair_round_trip(self, db_session, staff_a, staff_b, store_b, item_a):
        lent = lending_service.lend_item(item_a.id, store_b.id, staff_b.id, "single", 1, staff_a)
        lending_service.return_lent_item(lent.id, staff_a)
        assert state(item_a) == (10, 0)

    def test_return_twice_is_terminal(self, db_session, staff_a, staff_b, store_b, item_a):
        lent = lending_service.lend_item(item_a.id, store_b.id, staff_b.id, "pair", 1, staff_a)
        lending_service.return_lent_item(lent.id, staff_a)

        with pytest.raises(TerminalStateError):
            lending_service.return_lent_item(lent.id, staff_a)
        assert state(item_a) == (10, 0)

    def test_deleted_source_blocks_return(self, db_session, admin, staff_a, staff_b, store_b, item_a):
        lent = lending_service.lend_item(item_a.id, store_b.id, staff_b.id, "pair", 2, staff_a)
        dest = destination(db_session, store_b)
        inventory_service.delete_item(item_a.id, admin)

        with pytest.raises(RecordNotFoundError):
            lending_service.return_lent_item(lent.id, staff_b)

        db_session.refresh(dest)
        assert state(dest) == (2, 0)
        db_session.refresh(lent)
        assert lent.status == "lent"

    def test_deleted_destination_blocks_return(self, db_session, admin, staff_a, staff_b, store_b, item_a):
        lent = lending_service.lend_item(item_a.id, store_b.id, staff_b.id, "pair", 2, staff_a)
        inventory_service.delete_item(destination(db_session, store_b).id, admin)

        with pytest.raises(RecordNotFoundError):
            lending_service.return_lent_item(lent.id, staff_a)
        db_session.refresh(item_a)
        assert state(item_a) == (8, 0)

    def test_uninvolved_store_cannot_return(
        self, db_session, business, staff_a, staff_b, store_b, item_a
    ):
        from duka.models import Store, User

        store_c = Store(business_id=business.id, name="Kenyatta Avenue")
        db_session.add(store_c)
        db_session.commit()
        staff_c = User(business_id=business.id, username="kamau", email="kamau@duka.local",
                       role="staff", store_id=store_c.id, is_active=True)
        db_session.add(staff_c)
        db_session.commit()

        lent = lending_service.lend_item(item_a.id, store_b.id, staff_b.id, "pair", 1, staff_a)
        with pytest.raises(PermissionDeniedError):
            lending_service.return_lent_item(lent.id, staff_c)


class TestMarkUpdated:

    def test_mark_updated_leaves_stock_alone(self, db_session, staff_a, staff_b, store_b, item_a):
        lent = lending_service.lend_item(item_a.id, store_b.id, staff_b.id, "pair", 2, staff_a)
        dest = destination(db_session, store_b)

        updated = lending_service.mark_updated(lent.id, staff_b)

        assert updated.status == "updated"
        assert updated.processed_at is not None
        assert state(item_a) == (8, 0)
        assert state(dest) == (2, 0)

    def test_mark_updated_twice_fails(self, db_session, staff_a, staff_b, store_b, item_a):
        lent = lending_service.lend_item(item_a.id, store_b.id, staff_b.id, "pair", 1, staff_a)
        lending_service.mark_updated(lent.id, staff_b)

        with pytest.raises(TerminalStateError):
            lending_service.mark_updated(lent.id, staff_b)

    def test_updated_record_cannot_be_returned(self, db_session, staff_a, staff_b, store_b, item_a):
        lent = lending_service.lend_item(item_a.id, store_b.id, staff_b.id, "pair", 1, staff_a)
        lending_service.mark_updated(lent.id, staff_b)

        with pytest.raises(TerminalStateError):
            lending_service.return_lent_item(lent.id, staff_a)
        assert state(item_a) == (9, 0)

    def test_only_receiving_store_acknowledges(self, db_session, staff_a, staff_b, store_b, item_a):
        lent = lending_service.lend_item(item_a.id, store_b.id, staff_b.id, "pair", 1, staff_a)
        with pytest.raises(PermissionDeniedError):
            lending_service.mark_updated(lent.id, staff_a)


class TestListLentItems:

    def test_directions_and_status(self, db_session, admin, staff_a, staff_b, store_a, store_b, item_a):
        first = lending_service.lend_item(item_a.id, store_b.id, staff_b.id, "pair", 1, staff_a)
        second = lending_service.lend_item(item_a.id, store_b.id, staff_b.id, "single", 1, staff_a)
        lending_service.return_lent_item(first.id, staff_a)

        outgoing = lending_service.list_lent_items(staff_a, direction="outgoing")
        incoming = lending_service.list_lent_items(staff_b, direction="incoming")
        still_lent = lending_service.list_lent_items(staff_b, status="lent")

        assert {r.id for r in outgoing} == {first.id, second.id}
        assert {r.id for r in incoming} == {first.id, second.id}
        assert [r.id for r in still_lent] == [second.id]
        assert lending_service.list_lent_items(staff_a, direction="incoming") == []
        assert len(lending_service.list_lent_items(admin)) == 2

    def test_bad_direction(self, db_session, staff_a):
        with pytest.raises(ValidationError):
            lending_service.list_lent_items(staff_a, direction="sideways")
