# Overview: Concurrency tests for stock writes and the retry wrapper.

"""
Two terminals selling or lending the last pair of a line must not both succeed.

Runs against a file-backed SQLite database so each thread gets its own
connection; the in-memory test database shares a single connection.
"""

import threading

import pytest
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm.exc import StaleDataError

from duka import create_app
from duka.config import TestConfig
from duka.errors import InsufficientStockError, TransientIOError, ValidationError
from duka.extensions import db
from duka.models import Business, InventoryItem, LentShoe, Sale, Store, User
from duka.services import lending_service, sales_service
from duka.services.concurrency import run_with_retry


@pytest.fixture
def file_app(tmp_path):
    class FileConfig(TestConfig):
        SQLALCHEMY_DATABASE_URI = f"sqlite:///{tmp_path / 'concurrency.sqlite3'}"
        RETRY_ATTEMPTS = 5

    app = create_app(FileConfig)
    with app.app_context():
        db.create_all()
        yield app
        db.session.remove()
        db.drop_all()
        db.engine.dispose()


def _seed(stock):
    business = Business(name="Duka Shoes", is_active=True)
    db.session.add(business)
    db.session.flush()
    store = Store(business_id=business.id, name="Moi Avenue")
    db.session.add(store)
    db.session.flush()
    cashiers = [
        User(business_id=business.id, username=name, email=f"{name}@duka.local",
             role="staff", store_id=store.id, is_active=True)
        for name in ("wanjiru", "otieno")
    ]
    db.session.add_all(cashiers)
    item = InventoryItem(
        store_id=store.id, at_no="AT-1", name="Air Force 1", sizes=["41"], colors=["white"],
        price_cents=350000, stock=stock, incomplete_pairs=0,
    )
    db.session.add(item)
    db.session.commit()
    return item.id, [u.id for u in cashiers]


def _race(file_app, user_ids, action):
    """Run action(actor) once per user on its own thread and session; collect outcomes."""
    barrier = threading.Barrier(len(user_ids))
    outcomes = []
    lock = threading.Lock()

    def run(user_id):
        with file_app.app_context():
            actor = db.session.get(User, user_id)
            barrier.wait()
            try:
                action(actor)
                result = "ok"
            except InsufficientStockError:
                result = "insufficient"
            with lock:
                outcomes.append(result)

    threads = [threading.Thread(target=run, args=(uid,)) for uid in user_ids]
    for t in threads:
        t.start()
    for t in threads:
        t.join(timeout=30)
    return sorted(outcomes)


def test_last_pair_sold_once(file_app):
    item_id, cashier_ids = _seed(stock=1)

    def sell(actor):
        sales_service.record_sale(
            item_id, "41", 1, 350000, [{"method": "cash", "amount_cents": 350000}], actor
        )

    assert _race(file_app, cashier_ids, sell) == ["insufficient", "ok"]
    db.session.expire_all()
    assert db.session.get(InventoryItem, item_id).stock == 0
    assert db.session.query(Sale).count() == 1


def test_last_pair_lent_once(file_app):
    item_id, lender_ids = _seed(stock=1)
    source = db.session.get(InventoryItem, item_id)
    branch = Store(business_id=source.store.business_id, name="Tom Mboya")
    db.session.add(branch)
    db.session.flush()
    receiver = User(business_id=branch.business_id, username="akinyi", email="akinyi@duka.local",
                    role="staff", store_id=branch.id, is_active=True)
    db.session.add(receiver)
    db.session.commit()
    source_store_id, branch_id, receiver_id = source.store_id, branch.id, receiver.id

    def lend(actor):
        lending_service.lend_item(item_id, branch_id, receiver_id, "pair", 1, actor)

    assert _race(file_app, lender_ids, lend) == ["insufficient", "ok"]
    db.session.expire_all()
    lines = db.session.query(InventoryItem).filter_by(at_no="AT-1").all()
    by_store = {line.store_id: line for line in lines}
    assert by_store[source_store_id].stock == 0
    assert by_store[branch_id].stock == 1
    assert len(lines) == 2
    assert sum(line.total_shoes for line in lines) == 2
    assert db.session.query(LentShoe).count() == 1


class TestRunWithRetry:

    def test_retries_stale_data_then_succeeds(self, db_session):
        calls = []

        def op():
            calls.append(1)
            if len(calls) < 3:
                raise StaleDataError("version mismatch")
            return "done"

        assert run_with_retry(op, attempts=3, backoff_base=0) == "done"
        assert len(calls) == 3

    def test_exhausted_retries_raise_transient_error(self, db_session):
        def op():
            raise OperationalError("UPDATE inventory_items", {}, Exception("database is locked"))

        with pytest.raises(TransientIOError) as exc:
            run_with_retry(op, attempts=2, backoff_base=0)
        assert exc.value.http_status == 503
        assert exc.value.details == {"attempts": 2}

    def test_business_errors_are_not_retried(self, db_session):
        calls = []

        def op():
            calls.append(1)
            raise ValidationError("bad input")

        with pytest.raises(ValidationError):
            run_with_retry(op, attempts=3, backoff_base=0)
        assert len(calls) == 1
