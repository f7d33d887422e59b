"""
Shared infrastructure tests.

Verifies:
- EntityCache loads once per key and forgets entries only on invalidate
- camelCase <-> snake_case translation leaves data keys alone
- run_in_transaction rolls back and maps database failures to DatastoreError
"""

from datetime import datetime

import pytest

from thumma.errors import DatastoreError, NotFoundError
from thumma.extensions import db
from thumma.models import Customer
from thumma.serialization import camelize, snakify, to_camel, to_snake
from thumma.services import cache, customer_service
from thumma.services.cache import EntityCache
from thumma.services.concurrency import run_in_transaction
from thumma.time_utils import day_key, days_after, epoch_ms, parse_iso_datetime, start_of_day, to_utc_z


# =============================================================================
# CACHE
# =============================================================================


class TestEntityCache:
    def test_loader_runs_once(self):
        calls = []
        store = EntityCache()

        def loader():
            calls.append(1)
            return ["cement"]

        assert store.get_or_load(cache.PRODUCTS, "all", loader) == ["cement"]
        assert store.get_or_load(cache.PRODUCTS, "all", loader) == ["cement"]
        assert len(calls) == 1

    def test_invalidate_is_per_entity_type(self):
        store = EntityCache()
        store.get_or_load(cache.PRODUCTS, "all", lambda: [1])
        store.get_or_load(cache.CUSTOMERS, "all", lambda: [2])

        store.invalidate(cache.PRODUCTS)

        assert store.peek(cache.PRODUCTS, "all") is None
        assert store.peek(cache.CUSTOMERS, "all") == [2]
        assert store.stats() == {cache.CUSTOMERS: 1}

    def test_invalidate_all(self):
        store = EntityCache()
        store.get_or_load(cache.USERS, "all", lambda: [])
        store.invalidate_all()
        assert store.stats() == {}

    def test_committed_write_invalidates(self, admin):
        assert customer_service.list_customers() == []
        customer_service.create_customer({"name": "Wichai Shop"}, admin)
        assert [c["name"] for c in customer_service.list_customers()] == ["Wichai Shop"]

    def test_failed_write_keeps_cached_value(self, admin):
        customer_service.create_customer({"name": "Wichai Shop"}, admin)
        before = customer_service.list_customers()
        with pytest.raises(NotFoundError):
            customer_service.update_customer(999, {"name": "Ghost"}, admin)
        assert cache.get_cache().peek(cache.CUSTOMERS, "all") == before


# =============================================================================
# SERIALIZATION
# =============================================================================


class TestCaseTranslation:
    @pytest.mark.parametrize(
        "snake,camel",
        [
            ("total_cents", "totalCents"),
            ("price_walk_in_cents", "priceWalkInCents"),
            ("id", "id"),
        ],
    )
    def test_key_names(self, snake, camel):
        assert to_camel(snake) == camel
        assert to_snake(camel) == snake

    def test_nested_structures(self):
        payload = {"customer_id": 1, "lines": [{"unit_price_cents": 100}]}
        assert camelize(payload) == {"customerId": 1, "lines": [{"unitPriceCents": 100}]}
        assert snakify(camelize(payload)) == payload

    def test_localized_values_untouched(self):
        payload = {"store_name": {"en": "Shop", "th": "ร้าน"}, "dashboard_widget_visibility": {"lowStock": True}}
        assert camelize(payload) == {
            "storeName": {"en": "Shop", "th": "ร้าน"},
            "dashboardWidgetVisibility": {"lowStock": True},
        }
        assert snakify({"dashboardWidgetVisibility": {"lowStock": True}}) == {
            "dashboard_widget_visibility": {"lowStock": True}
        }


# =============================================================================
# UNIT OF WORK
# =============================================================================


class TestRunInTransaction:
    def test_commit_and_return(self, db_session):
        def _op():
            customer = Customer(name="Somsak")
            db.session.add(customer)
            return customer

        customer = run_in_transaction(_op)
        db.session.expire_all()
        assert db.session.get(Customer, customer.id).name == "Somsak"

    def test_database_error_becomes_datastore_error(self, db_session):
        def _op():
            db.session.add(Customer(name=None))
            db.session.flush()

        with pytest.raises(DatastoreError) as excinfo:
            run_in_transaction(_op)
        assert excinfo.value.http_status == 503
        assert db.session.query(Customer).count() == 0

    def test_service_error_rolls_back(self, db_session):
        def _op():
            db.session.add(Customer(name="Half written"))
            db.session.flush()
            raise NotFoundError("missing")

        with pytest.raises(NotFoundError):
            run_in_transaction(_op)
        assert db.session.query(Customer).count() == 0


# =============================================================================
# TIME
# =============================================================================


class TestTimeUtils:
    def test_parse_date_only(self):
        assert parse_iso_datetime("2026-03-31") == datetime(2026, 3, 31)
        assert parse_iso_datetime("  ") is None

    def test_parse_offset_normalizes_to_utc(self):
        assert parse_iso_datetime("2026-03-31T07:00:00+07:00") == datetime(2026, 3, 31, 0, 0)
        assert parse_iso_datetime("2026-03-31T00:00:00Z") == datetime(2026, 3, 31)

    def test_formatting(self):
        stamp = datetime(2026, 3, 1, 9, 5, 7, 123456)
        assert to_utc_z(stamp) == "2026-03-01T09:05:07Z"
        assert day_key(stamp) == "2026-03-01"
        assert epoch_ms(stamp) == 1772355907123
        assert epoch_ms(datetime(1970, 1, 1, 0, 0, 1, 500000)) == 1500
        assert days_after(start_of_day(stamp), 30) == datetime(2026, 3, 31)
