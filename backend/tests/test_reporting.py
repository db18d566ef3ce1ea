# Overview: Pytest coverage for stock-level and sales summary reports.

import pytest

from duka.errors import PermissionDeniedError
from duka.services import reporting_service, return_service, sales_service


def pay(method, amount):
    return [{"method": method, "amount_cents": amount}]


class TestStockBucket:

    @pytest.mark.parametrize("stock,expected", [
        (0, "out_of_stock"),
        (1, "low"),
        (10, "low"),
        (11, "medium"),
        (50, "medium"),
        (51, "high"),
    ])
    def test_thresholds(self, stock, expected):
        assert reporting_service.stock_bucket(stock, 10, 50) == expected


class TestStockLevels:

    def test_buckets_and_totals_per_store(self, db_session, admin, store_a, store_b, make_item):
        make_item(store_a, at_no="AT-1", stock=0)
        make_item(store_a, at_no="AT-2", stock=5, incomplete_pairs=1)
        make_item(store_a, at_no="AT-3", stock=60)
        make_item(store_b, at_no="AT-1", stock=20)

        report = reporting_service.stock_levels(admin)

        assert report["thresholds"] == {"low": 10, "high": 50}
        by_name = {s["store_name"]: s for s in report["stores"]}
        moi = by_name["Moi Avenue"]
        assert moi["buckets"] == {"out_of_stock": 1, "low": 1, "medium": 0, "high": 1}
        assert moi["total_pairs"] == 65
        assert moi["incomplete_pairs"] == 1
        assert moi["total_shoes"] == 129
        assert by_name["Tom Mboya"]["buckets"]["medium"] == 1
        assert [i["at_no"] for i in report["low_stock_items"]] == ["AT-1", "AT-2"]

    def test_staff_admin_cannot_view_reports(self, db_session, staff_admin_a, store_a, make_item):
        make_item(store_a)
        with pytest.raises(PermissionDeniedError):
            reporting_service.stock_levels(staff_admin_a)

    def test_other_business_not_included(self, db_session, foreign_admin, store_a, make_item):
        make_item(store_a)
        assert reporting_service.stock_levels(foreign_admin)["stores"] == []


class TestSalesSummary:

    def test_totals_haggling_and_methods(self, db_session, admin, staff_a, item_a):
        sales_service.record_sale(item_a.id, "41", 1, 350000, pay("cash", 350000), staff_a)
        sales_service.record_sale(item_a.id, "41", 2, 300000, pay("mpesa", 600000), staff_a)
        haggled = sales_service.record_sale(item_a.id, "42", 1, 330000, pay("mpesa", 330000), staff_a)
        return_service.record_return(haggled.id, "Too tight", staff_a)

        summary = reporting_service.sales_summary(admin)

        assert summary["sales_count"] == 3
        assert summary["units_sold"] == 4
        assert summary["revenue_cents"] == 1280000
        assert summary["average_sale_cents"] == 426666
        assert summary["haggled_count"] == 2
        assert summary["haggle_rate"] == 66.67
        assert summary["total_discount_cents"] == 120000
        assert summary["payments_by_method_cents"] == {"cash": 350000, "mpesa": 930000}
        assert summary["popular_payment_method"] == "mpesa"
        assert summary["by_size"]["41"] == {"sales_count": 2, "units": 3, "revenue_cents": 950000}
        assert summary["by_brand"]["Nike"]["units"] == 4
        assert summary["by_staff"][staff_a.id]["sales_count"] == 3
        assert summary["returns_count"] == 1
        assert summary["returned_cents"] == 330000

    def test_empty_window(self, db_session, admin, staff_a, item_a):
        sales_service.record_sale(item_a.id, "41", 1, 350000, pay("cash", 350000), staff_a)

        summary = reporting_service.sales_summary(admin, start="2000-01-01", end="2000-12-31")

        assert summary["sales_count"] == 0
        assert summary["average_sale_cents"] == 0
        assert summary["haggle_rate"] == 0.0
        assert summary["popular_payment_method"] is None

    def test_staff_cannot_view_reports(self, db_session, staff_a):
        with pytest.raises(PermissionDeniedError):
            reporting_service.sales_summary(staff_a)
