"""Tests for query scoping and list parameter parsing."""

from datetime import datetime

import pytest

from tipqr.core.errors import ValidationError
from tipqr.core.policy import Action, Resource
from tipqr.core.rbac import UserRole
from tipqr.core.scoping import (
    MAX_OFFSET,
    ListQuery,
    parse_bool_param,
    parse_date_param,
    parse_enum_param,
    scoped_query,
)
from tipqr.models.restaurant import Restaurant
from tipqr.models.staff import StaffMember, StaffStatus
from tipqr.models.tip import Tip

SORTABLE = {"createdAt": None, "name": None}


def _query(page=None, page_size=None, sort_by=None, sort_dir=None, search=None) -> ListQuery:
    return ListQuery(page=page, page_size=page_size, sort_by=sort_by, sort_dir=sort_dir, search=search)


class TestListQuery:
    def test_defaults(self):
        params = _query().resolve(SORTABLE)
        assert (params.page, params.page_size, params.sort_by, params.sort_dir) == (1, 20, "createdAt", "desc")

    def test_page_below_one_becomes_one(self):
        assert _query(page="0").resolve(SORTABLE).page == 1
        assert _query(page="-3").resolve(SORTABLE).page == 1

    def test_page_size_is_clamped(self):
        assert _query(page_size="500").resolve(SORTABLE).page_size == 100
        assert _query(page_size="0").resolve(SORTABLE).page_size == 1

    def test_unparseable_numbers_use_defaults(self):
        params = _query(page="abc", page_size="lots").resolve(SORTABLE)
        assert params.page == 1
        assert params.page_size == 20

    def test_offset(self):
        assert _query(page="3", page_size="10").resolve(SORTABLE).offset == 20

    def test_huge_page_is_capped(self):
        params = _query(page="99999999999999999999", page_size="20").resolve(SORTABLE)
        assert params.page == MAX_OFFSET // 20 + 1
        assert params.offset <= MAX_OFFSET

    def test_unknown_sort_field_rejected(self):
        with pytest.raises(ValidationError) as exc_info:
            _query(sort_by="password").resolve(SORTABLE)
        assert exc_info.value.code == "INVALID_SORT_FIELD"

    def test_unknown_sort_dir_rejected(self):
        with pytest.raises(ValidationError) as exc_info:
            _query(sort_dir="sideways").resolve(SORTABLE)
        assert exc_info.value.code == "INVALID_SORT_DIR"

    def test_sort_dir_case_insensitive(self):
        assert _query(sort_dir="ASC").resolve(SORTABLE).sort_dir == "asc"


class TestParamParsers:
    def test_bare_end_date_covers_whole_day(self):
        end = parse_date_param("2024-03-01", "dateTo", end_of_range=True)
        assert end.date() == datetime(2024, 3, 1).date()
        assert end.hour == 23

    def test_offset_datetime_normalised_to_utc(self):
        parsed = parse_date_param("2024-03-01T10:00:00+05:30", "dateFrom")
        assert parsed == datetime(2024, 3, 1, 4, 30)

    def test_bad_date(self):
        with pytest.raises(ValidationError) as exc_info:
            parse_date_param("yesterday", "dateFrom")
        assert exc_info.value.code == "INVALID_DATE"

    def test_bool(self):
        assert parse_bool_param("true", "approved") is True
        assert parse_bool_param("0", "approved") is False
        assert parse_bool_param(None, "approved") is None
        with pytest.raises(ValidationError) as exc_info:
            parse_bool_param("maybe", "approved")
        assert exc_info.value.code == "INVALID_APPROVED"

    def test_enum(self):
        assert parse_enum_param("active", "status", StaffStatus) == "active"
        with pytest.raises(ValidationError) as exc_info:
            parse_enum_param("retired", "status", StaffStatus)
        assert exc_info.value.code == "INVALID_STATUS"


class TestScopedQuery:
    @pytest.fixture
    def two_tenants(self, owner, other_owner, worker, make_restaurant, make_staff, make_tip):
        mine = make_restaurant(owner.id, name="Mine")
        theirs = make_restaurant(other_owner.id, name="Theirs")
        own_staff = make_staff(mine, "Asha", user_id=worker.id)
        other_staff = make_staff(mine, "Ravi")
        foreign_staff = make_staff(theirs, "Meera")
        for staff in (own_staff, other_staff, foreign_staff):
            make_tip(staff)
        return mine, theirs, own_staff, foreign_staff

    def test_admin_sees_all_restaurants(self, db_session, admin, two_tenants):
        assert scoped_query(db_session, admin.actor, Resource.RESTAURANT).count() == 2

    def test_owner_sees_own_restaurants(self, db_session, owner, two_tenants):
        rows = scoped_query(db_session, owner.actor, Resource.RESTAURANT).all()
        assert [r.name for r in rows] == ["Mine"]

    def test_owner_sees_own_staff_and_tips(self, db_session, owner, two_tenants):
        assert scoped_query(db_session, owner.actor, Resource.STAFF).count() == 2
        assert scoped_query(db_session, owner.actor, Resource.TIP).count() == 2

    def test_worker_sees_only_linked_staff(self, db_session, worker, two_tenants):
        _, _, own_staff, _ = two_tenants
        rows = scoped_query(db_session, worker.actor, Resource.STAFF).all()
        assert [s.id for s in rows] == [own_staff.id]

    def test_worker_tip_reads_are_self_scoped(self, db_session, worker, two_tenants):
        _, _, own_staff, _ = two_tenants
        rows = scoped_query(db_session, worker.actor, Resource.TIP, Action.READ).all()
        assert {t.staff_member_id for t in rows} == {own_staff.id}

    def test_denied_role_gets_empty_result(self, db_session, worker, two_tenants):
        assert scoped_query(db_session, worker.actor, Resource.RESTAURANT).count() == 0

    def test_anonymous_gets_empty_result(self, db_session, two_tenants):
        assert scoped_query(db_session, None, Resource.TIP).count() == 0

    def test_filters_cannot_widen_scope(self, db_session, owner, two_tenants):
        _, theirs, _, foreign_staff = two_tenants
        query = scoped_query(db_session, owner.actor, Resource.STAFF)
        assert query.filter(StaffMember.restaurant_id == theirs.id).count() == 0
        tips = scoped_query(db_session, owner.actor, Resource.TIP).filter(Tip.staff_member_id == foreign_staff.id)
        assert tips.count() == 0

    def test_new_owner_sees_only_new_restaurant(self, db_session, make_account, make_restaurant):
        account = make_account(UserRole.OWNER)
        make_restaurant(account.id, name="Fresh")
        names = [r.name for r in scoped_query(db_session, account.actor, Resource.RESTAURANT)]
        assert names == ["Fresh"]
        assert db_session.query(Restaurant).count() == 1
