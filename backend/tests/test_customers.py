"""
Customer tests.

Verifies:
- Create/update validation and the walk-in default type
- Customers with history cannot be deleted
- Bulk import is all-or-nothing
"""

import pytest

from thumma.errors import ConflictError, NotFoundError, ValidationError
from thumma.extensions import db
from thumma.models import ActivityLog, Customer
from thumma.services import customer_service, sales_service
from thumma.services.cart_service import CartItem
from thumma.services.sales_service import CustomerInfo


class TestCustomers:
    def test_create_defaults(self, admin):
        customer = customer_service.create_customer({"name": "  Wichai Shop ", "phone": ""}, admin)
        assert customer.name == "Wichai Shop"
        assert customer.type == "walkIn"
        assert customer.phone is None
        assert db.session.query(ActivityLog).filter_by(action="Added new customer: Wichai Shop").count() == 1

    @pytest.mark.parametrize(
        "payload",
        [
            {},
            {"name": ""},
            {"name": "X", "type": "vip"},
            {"name": "X", "credit_limit": 100},
        ],
    )
    def test_invalid(self, admin, payload):
        with pytest.raises(ValidationError):
            customer_service.create_customer(payload, admin)

    def test_update(self, admin, contractor):
        updated = customer_service.update_customer(contractor.id, {"type": "government"}, admin)
        assert updated.type == "government"
        assert updated.name == "Somchai Construction"

    def test_search(self, admin, contractor):
        customer_service.create_customer({"name": "Somsak Hardware"}, admin)
        assert [c.name for c in customer_service.search_customers("soms")] == ["Somsak Hardware"]
        assert len(customer_service.search_customers("som")) == 2
        assert customer_service.search_customers("  ") == []

    def test_delete(self, admin, contractor):
        customer_service.delete_customer(contractor.id, admin)
        with pytest.raises(NotFoundError):
            customer_service.get_customer(contractor.id)

    def test_delete_refused_with_history(self, admin, cement, contractor):
        sales_service.checkout(
            items=[CartItem.from_variant(cement, cement.variants[0], 1)],
            customer=CustomerInfo(customer_id=contractor.id),
            customer_type="contractor",
            vat_included=False,
            payment_method="Cash",
            operator=admin,
        )
        with pytest.raises(ConflictError):
            customer_service.delete_customer(contractor.id, admin)


class TestCustomerImport:
    def test_import(self, admin):
        created = customer_service.import_customers(
            [{"name": "A Shop", "type": "contractor"}, {"name": "B Office", "type": "government"}], admin
        )
        assert [c.type for c in created] == ["contractor", "government"]
        assert len(customer_service.list_customers()) == 2

    def test_bad_row_rejects_all(self, admin):
        with pytest.raises(ValidationError, match="Row 3"):
            customer_service.import_customers([{"name": "A Shop"}, {"name": "B", "type": "vip"}], admin)
        assert db.session.query(Customer).count() == 0

    def test_empty(self, admin):
        with pytest.raises(ValidationError):
            customer_service.import_customers([], admin)
