# Overview: Pytest coverage for shoe requests, staff accounts and store setup.

import pytest

from duka.errors import NotFoundError, PermissionDeniedError, TerminalStateError, ValidationError
from duka.models.auth import ROLE_ADMIN, ROLE_STAFF, ROLE_STAFF_ADMIN
from duka.services import request_service, staff_service, tenant_service


class TestShoeRequests:

    def test_staff_raises_for_own_store(self, db_session, staff_a, store_a):
        req = request_service.create_request(
            {"shoe_name": "Jordan 4 Retro", "size": "43", "customer_contact": "0722000111"}, staff_a
        )
        assert req.store_id == store_a.id
        assert req.status == "pending"
        assert req.quantity == 1

    def test_shoe_name_required(self, db_session, staff_a):
        with pytest.raises(ValidationError):
            request_service.create_request({"shoe_name": "  "}, staff_a)

    def test_admin_must_name_store(self, db_session, admin):
        with pytest.raises(ValidationError):
            request_service.create_request({"shoe_name": "Yeezy 350"}, admin)

    def test_staff_cannot_raise_for_other_store(self, db_session, staff_a, store_b):
        with pytest.raises(PermissionDeniedError):
            request_service.create_request({"shoe_name": "Yeezy 350", "store_id": store_b.id}, staff_a)

    def test_process_once(self, db_session, staff_a, staff_admin_a):
        req = request_service.create_request({"shoe_name": "Samba OG"}, staff_a)

        processed = request_service.process_request(req.id, staff_admin_a)
        assert processed.status == "processed"
        assert processed.processed_by_user_id == staff_admin_a.id

        with pytest.raises(TerminalStateError):
            request_service.process_request(req.id, staff_admin_a)

    def test_staff_cannot_process(self, db_session, staff_a):
        req = request_service.create_request({"shoe_name": "Samba OG"}, staff_a)
        with pytest.raises(PermissionDeniedError):
            request_service.process_request(req.id, staff_a)

    def test_list_pending_by_default(self, db_session, admin, staff_a):
        first = request_service.create_request({"shoe_name": "Samba OG"}, staff_a)
        second = request_service.create_request({"shoe_name": "Gazelle"}, staff_a)
        request_service.process_request(first.id, admin)

        assert [r.id for r in request_service.list_requests(admin)] == [second.id]
        assert len(request_service.list_requests(admin, status=None)) == 2

    def test_other_business_request_reads_as_missing(self, db_session, staff_a, foreign_admin):
        req = request_service.create_request({"shoe_name": "Samba OG"}, staff_a)
        with pytest.raises(NotFoundError):
            request_service.process_request(req.id, foreign_admin)


class TestStaffAccounts:

    def test_admin_creates_staff(self, db_session, admin, business, store_b):
        user = staff_service.create_user(
            business.id, "mwangi", "Mwangi@Duka.Local", ROLE_STAFF, store_b.id, actor=admin
        )
        assert user.email == "mwangi@duka.local"
        assert user.store_id == store_b.id
        assert user.is_active is True

    def test_staff_needs_store(self, db_session, admin, business):
        with pytest.raises(ValidationError):
            staff_service.create_user(business.id, "mwangi", "m@duka.local", ROLE_STAFF, actor=admin)

    def test_api_cannot_create_admin(self, db_session, admin, business):
        with pytest.raises(ValidationError):
            staff_service.create_user(business.id, "boss", "boss@duka.local", ROLE_ADMIN, actor=admin)

    def test_duplicate_username(self, db_session, admin, business, store_a, staff_a):
        with pytest.raises(ValidationError):
            staff_service.create_user(
                business.id, staff_a.username, "other@duka.local", ROLE_STAFF, store_a.id, actor=admin
            )

    def test_store_from_other_business(self, db_session, admin, business, foreign_store):
        with pytest.raises(NotFoundError):
            staff_service.create_user(
                business.id, "mwangi", "m@duka.local", ROLE_STAFF, foreign_store.id, actor=admin
            )

    def test_staff_admin_cannot_manage_users(self, db_session, staff_admin_a, business, store_a):
        with pytest.raises(PermissionDeniedError):
            staff_service.create_user(
                business.id, "mwangi", "m@duka.local", ROLE_STAFF, store_a.id, actor=staff_admin_a
            )

    def test_promote_and_demote(self, db_session, admin, staff_a):
        assert staff_service.set_role(staff_a.id, ROLE_STAFF_ADMIN, admin).role == ROLE_STAFF_ADMIN
        assert staff_service.set_role(staff_a.id, ROLE_STAFF, admin).role == ROLE_STAFF

    def test_admin_role_is_fixed(self, db_session, admin, business):
        other_admin = staff_service.create_user(business.id, "owner", "owner@duka.local", ROLE_ADMIN)
        with pytest.raises(ValidationError):
            staff_service.set_role(other_admin.id, ROLE_STAFF, admin)

    def test_deactivate(self, db_session, admin, staff_a):
        staff_service.deactivate_user(staff_a.id, admin)
        assert staff_a.is_active is False
        assert staff_a not in staff_service.list_users(admin)
        assert staff_a in staff_service.list_users(admin, include_inactive=True)

    def test_cannot_deactivate_self(self, db_session, admin):
        with pytest.raises(ValidationError):
            staff_service.deactivate_user(admin.id, admin)

    def test_cannot_touch_other_business_user(self, db_session, foreign_admin, staff_a):
        with pytest.raises(NotFoundError):
            staff_service.deactivate_user(staff_a.id, foreign_admin)


class TestStores:

    def test_admin_adds_store(self, db_session, admin, business):
        store = tenant_service.add_store(business.id, "Kenyatta Avenue", "KEN", actor=admin)
        assert store.business_id == business.id
        assert [s.name for s in tenant_service.list_stores(business.id)] == ["Kenyatta Avenue"]

    def test_duplicate_name(self, db_session, admin, business, store_a):
        with pytest.raises(ValidationError):
            tenant_service.add_store(business.id, store_a.name, actor=admin)

    def test_other_business_refused(self, db_session, admin, other_business):
        with pytest.raises(NotFoundError):
            tenant_service.add_store(other_business.id, "Biashara Street", actor=admin)

    def test_staff_cannot_add_store(self, db_session, staff_admin_a, business):
        with pytest.raises(PermissionDeniedError):
            tenant_service.add_store(business.id, "Biashara Street", actor=staff_admin_a)

    def test_bootstrap_without_actor(self, db_session):
        business = tenant_service.create_business("Kicks Ltd")
        store = tenant_service.add_store(business.id, "Main")
        assert store.id is not None
        with pytest.raises(ValidationError):
            tenant_service.create_business("  ")
