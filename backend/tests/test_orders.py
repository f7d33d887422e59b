"""
Order tests.

Verifies:
- Pickup orders start Pending, delivery orders Processing; stock leaves at creation
- Delivery orders need an address
- Cancelled orders stay cancelled
- An unpaid order converts to exactly one invoice with VAT recovered from its total
"""

from datetime import timedelta

import pytest

from thumma.errors import ConflictError, ValidationError
from thumma.extensions import db
from thumma.models import Order, ProductVariant
from thumma.services import order_service
from thumma.services.cart_service import CartItem
from thumma.services.order_service import OrderError


def place(operator, cement, quantity=2, **overrides):
    kwargs = dict(
        items=[CartItem.from_variant(cement, cement.variants[0], quantity)],
        order_type="Pickup",
        customer_type="contractor",
        payment_status="Unpaid",
        operator=operator,
        customer_name="Prasert",
        customer_phone="086-123-4567",
    )
    kwargs.update(overrides)
    return order_service.create_order(**kwargs)


class TestCreateOrder:
    def test_pickup_order(self, manager, cement):
        variant_id = cement.variants[0].id
        order = place(manager, cement)

        assert order.status == "Pending"
        assert order.total_cents == 28000
        assert order.payment_method is None
        assert len(order.lines) == 1
        assert db.session.get(ProductVariant, variant_id).stock_quantity == 18

    def test_delivery_needs_address(self, manager, cement):
        with pytest.raises(ValidationError, match="address"):
            place(manager, cement, order_type="Delivery")
        assert db.session.query(Order).count() == 0

    def test_delivery_uses_customer_address(self, manager, cement, contractor):
        order = place(
            manager,
            cement,
            order_type="Delivery",
            customer_id=contractor.id,
            customer_name=None,
            transportation_fee_cents=3000,
        )
        assert order.status == "Processing"
        assert order.address == "99 Sukhumvit Rd, Bangkok"
        assert order.customer_name == "Somchai Construction"
        assert order.total_cents == 28000 + 3000

    def test_paid_order_keeps_method(self, manager, cement):
        order = place(manager, cement, payment_status="Paid", payment_method="Card")
        assert order.payment_method == "Card"

    def test_empty_order(self, manager):
        with pytest.raises(ValidationError):
            order_service.create_order(
                items=[], order_type="Pickup", customer_type="walkIn",
                payment_status="Unpaid", operator=manager, customer_name="X",
            )

    def test_name_required(self, manager, cement):
        with pytest.raises(ValidationError):
            place(manager, cement, customer_name="  ")

    def test_invalid_type(self, manager, cement):
        with pytest.raises(ValidationError):
            place(manager, cement, order_type="Courier")


class TestOrderStatus:
    def test_status_flow(self, manager, cement):
        order = place(manager, cement)
        order = order_service.update_order_status(order.id, "Ready for Pickup", manager)
        assert order.status == "Ready for Pickup"
        assert [o.id for o in order_service.list_orders("Ready for Pickup")] == [order.id]

    def test_cancelled_cannot_reopen(self, manager, cement):
        order = place(manager, cement)
        order_service.update_order_status(order.id, "Cancelled", manager)
        with pytest.raises(OrderError):
            order_service.update_order_status(order.id, "Processing", manager)

    def test_invalid_status(self, manager, cement):
        order = place(manager, cement)
        with pytest.raises(ValidationError):
            order_service.update_order_status(order.id, "Shipped", manager)

    def test_mark_paid(self, manager, cement):
        order = place(manager, cement)
        order = order_service.update_order_payment_status(order.id, "Paid", manager, payment_method="Bank Transfer")
        assert order.payment_status == "Paid"
        assert order.payment_method == "Bank Transfer"


class TestConvertToInvoice:
    def test_convert(self, manager, cement, contractor):
        order = place(manager, cement, customer_id=contractor.id)
        order_id = order.id

        invoice = order_service.convert_order_to_invoice(order_id, manager)

        assert invoice.id.startswith("INV-FROM-ORD-")
        assert invoice.payment_status == "Unpaid"
        assert invoice.total_cents == 28000
        assert invoice.subtotal_cents == 28000
        assert invoice.tax_cents == 0
        assert invoice.customer_id == contractor.id
        assert (invoice.due_date - invoice.date).days == 30
        assert len(invoice.lines) == 1

        order = db.session.get(Order, order_id)
        assert order.invoice_id == invoice.id
        assert order.status == "Completed"
        assert order.payment_status == "Paid"

    def test_convert_does_not_move_stock_again(self, manager, cement):
        variant_id = cement.variants[0].id
        order = place(manager, cement)
        order_service.convert_order_to_invoice(order.id, manager)
        assert db.session.get(ProductVariant, variant_id).stock_quantity == 18

    def test_vat_is_recovered(self, manager, cement):
        order = place(manager, cement, vat_included=True, transportation_fee_cents=5000)
        assert order.total_cents == 29960 + 5000
        assert order_service.derive_invoice_amounts(order) == (28000, 1960)

    def test_government_split(self, manager, cement):
        order = place(manager, cement, quantity=1, customer_type="government")
        assert order_service.derive_invoice_amounts(order) == (15000, 1050)

    def test_second_conversion_refused(self, manager, cement):
        order = place(manager, cement)
        order_service.convert_order_to_invoice(order.id, manager)
        with pytest.raises(OrderError):
            order_service.convert_order_to_invoice(order.id, manager)

    def test_cancelled_refused(self, manager, cement):
        order = place(manager, cement)
        order_service.update_order_status(order.id, "Cancelled", manager)
        with pytest.raises(OrderError):
            order_service.convert_order_to_invoice(order.id, manager)

    def test_paid_refused(self, manager, cement):
        order = place(manager, cement, payment_status="Paid", payment_method="Cash")
        with pytest.raises(OrderError):
            order_service.convert_order_to_invoice(order.id, manager)

    def test_invoiced_order_cannot_become_unpaid(self, manager, cement):
        order = place(manager, cement)
        order_service.convert_order_to_invoice(order.id, manager)
        with pytest.raises(ConflictError):
            order_service.update_order_payment_status(order.id, "Unpaid", manager)

    def test_custom_due_date(self, manager, cement):
        order = place(manager, cement)
        from thumma.time_utils import utcnow
        due = utcnow() + timedelta(days=7)
        invoice = order_service.convert_order_to_invoice(order.id, manager, due_date=due)
        assert invoice.due_date == due
