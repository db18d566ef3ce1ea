# Overview: Pytest coverage for customer returns.

import pytest

from duka.errors import AlreadyReturnedError, NotFoundError, PermissionDeniedError, ValidationError
from duka.models import ActivityEvent, SaleReturn
from duka.services import inventory_service, return_service, sales_service


@pytest.fixture
def sale(db_session, staff_a, item_a):
    """Two pairs of AT-100 sold at store A (stock 10 -> 8)."""
    return sales_service.record_sale(
        item_a.id, "41", 2, 320000, [{"method": "mpesa", "amount_cents": 640000}], staff_a,
        customer_name="Njeri", customer_phone="0712345678",
    )


class TestRecordReturn:

    def test_scenario_e_restocks_sale_quantity(self, db_session, staff_a, item_a, sale):
        assert item_a.stock == 8

        ret = return_service.record_return(sale.id, "Wrong size", staff_a)

        assert item_a.stock == 10
        assert ret.inventory_restored is True
        assert ret.quantity == 2
        assert ret.price_cents == 320000
        assert ret.customer_name == "Njeri"
        assert ret.processed_by_user_id == staff_a.id
        assert db_session.query(ActivityEvent).filter_by(event_type="sale.returned").count() == 1

    def test_second_return_rejected(self, db_session, staff_a, item_a, sale):
        return_service.record_return(sale.id, "Wrong size", staff_a)

        with pytest.raises(AlreadyReturnedError):
            return_service.record_return(sale.id, "Changed mind", staff_a)

        db_session.refresh(item_a)
        assert item_a.stock == 10
        assert db_session.query(SaleReturn).count() == 1

    def test_deleted_item_records_unrestored_return(self, db_session, admin, staff_a, item_a, sale):
        inventory_service.delete_item(item_a.id, admin)

        ret = return_service.record_return(sale.id, "Defective sole", staff_a)

        assert ret.inventory_restored is False
        assert ret.product_id is None
        assert ret.product_name == "Air Force 1"

    @pytest.mark.parametrize("reason", ["", "   ", None])
    def test_reason_required(self, db_session, staff_a, sale, reason):
        with pytest.raises(ValidationError):
            return_service.record_return(sale.id, reason, staff_a)

    def test_missing_sale(self, db_session, staff_a):
        with pytest.raises(NotFoundError):
            return_service.record_return(777, "Wrong size", staff_a)

    def test_other_business_reads_as_missing(self, db_session, foreign_admin, sale):
        with pytest.raises(NotFoundError):
            return_service.record_return(sale.id, "Wrong size", foreign_admin)

    def test_other_store_staff_refused(self, db_session, staff_b, sale):
        with pytest.raises(PermissionDeniedError):
            return_service.record_return(sale.id, "Wrong size", staff_b)


class TestListReturns:

    def test_scoped_to_store(self, db_session, admin, staff_a, staff_b, sale, store_b):
        return_service.record_return(sale.id, "Wrong size", staff_a)

        assert len(return_service.list_returns(staff_a)) == 1
        assert return_service.list_returns(staff_b) == []
        assert return_service.list_returns(admin, store_id=store_b.id) == []
        assert len(return_service.list_returns(admin)) == 1
