"""
Return tests.

Verifies:
- Refunds equal what the customer paid per unit, tax included
- Catalog units go back into stock; outsourced units do not
- A line can never be returned more times than it was sold
- The refund is issued as a redeemable store credit
"""

import pytest

from thumma.errors import NotFoundError, ValidationError
from thumma.extensions import db
from thumma.models import ProductVariant, ReturnedItem, StoreCredit
from thumma.services import return_service, sales_service
from thumma.services.cart_service import CartItem
from thumma.services.return_service import ReturnError
from thumma.services.sales_service import CustomerInfo
from thumma.services.stock_resolution_service import build_outsourced_item


@pytest.fixture
def vat_sale(cashier, cement, contractor):
    """Contractor buys 2 bags with VAT: 280.00 + 19.60 = 299.60."""
    return sales_service.checkout(
        items=[CartItem.from_variant(cement, cement.variants[0], 2)],
        customer=CustomerInfo(customer_id=contractor.id),
        customer_type="contractor",
        vat_included=True,
        payment_method="Cash",
        operator=cashier,
    )


def return_payload(line_id, quantity=1, reason="Damaged Product"):
    return [{"line_id": line_id, "quantity": quantity, "reason": reason}]


class TestRefundAmounts:
    def test_unit_refund_includes_tax(self, vat_sale):
        assert vat_sale.total_cents == 29960
        line = vat_sale.lines[0]
        assert return_service.unit_refund_cents(vat_sale, line) == 14980

    def test_calculate_refund(self, vat_sale):
        requests = return_service.parse_return_items(return_payload(vat_sale.lines[0].id, 2))
        assert return_service.calculate_refund(vat_sale, requests) == 29960

    def test_government_refund_is_catalog_price(self, cashier, cement):
        tx = sales_service.checkout(
            items=[CartItem.from_variant(cement, cement.variants[0], 1)],
            customer=CustomerInfo(name="District Office", address="1 Din So Rd", phone="02-111-2222"),
            customer_type="government",
            vat_included=True,
            payment_method="Cash",
            operator=cashier,
        )
        assert return_service.unit_refund_cents(tx, tx.lines[0]) == 16050


class TestProcessReturn:
    def test_return_restocks_and_issues_credit(self, vat_sale, cashier, cement):
        variant_id = cement.variants[0].id
        assert db.session.get(ProductVariant, variant_id).stock_quantity == 18

        credit = return_service.process_return(vat_sale.id, return_payload(vat_sale.lines[0].id), cashier)

        assert credit.amount_cents == 14980
        assert credit.is_used is False
        assert credit.original_transaction_id == vat_sale.id
        assert db.session.get(ProductVariant, variant_id).stock_quantity == 19
        item = db.session.query(ReturnedItem).one()
        assert item.reason == "Damaged Product"
        assert item.unit_refund_cents == 14980
        assert item.store_credit_id == credit.id

    def test_over_return_rejected(self, vat_sale, cashier):
        line_id = vat_sale.lines[0].id
        return_service.process_return(vat_sale.id, return_payload(line_id, 1), cashier)
        with pytest.raises(ReturnError):
            return_service.process_return(vat_sale.id, return_payload(line_id, 2), cashier)
        assert db.session.query(StoreCredit).count() == 1

    def test_duplicate_lines_in_one_request_are_summed(self, vat_sale, cashier):
        line_id = vat_sale.lines[0].id
        payload = return_payload(line_id, 2) + return_payload(line_id, 1, "Wrong Item")
        with pytest.raises(ReturnError):
            return_service.process_return(vat_sale.id, payload, cashier)

    def test_invalid_reason(self, vat_sale, cashier):
        with pytest.raises(ValidationError):
            return_service.process_return(vat_sale.id, return_payload(vat_sale.lines[0].id, 1, "Changed mind"), cashier)

    def test_unknown_line(self, vat_sale, cashier):
        with pytest.raises(NotFoundError):
            return_service.process_return(vat_sale.id, return_payload(999999), cashier)

    def test_unknown_transaction(self, cashier):
        with pytest.raises(NotFoundError):
            return_service.process_return("missing", return_payload(1), cashier)

    def test_outsourced_return_has_no_stock_effect(self, cashier, pipe):
        sold_out = pipe.variants[0]
        tx = sales_service.checkout(
            items=[build_outsourced_item(pipe, sold_out, 6500, markup_pct=20, quantity=1)],
            customer=CustomerInfo(),
            customer_type="walkIn",
            vat_included=False,
            payment_method="Cash",
            operator=cashier,
        )
        credit = return_service.process_return(tx.id, return_payload(tx.lines[0].id, 1, "Wrong Item"), cashier)
        assert credit.amount_cents == 7800
        assert db.session.get(ProductVariant, sold_out.id).stock_quantity == 0

    def test_credit_redeemable_on_next_sale(self, vat_sale, cashier, cement):
        credit = return_service.process_return(vat_sale.id, return_payload(vat_sale.lines[0].id), cashier)
        tx = sales_service.checkout(
            items=[CartItem.from_variant(cement, cement.variants[0], 1)],
            customer=CustomerInfo(),
            customer_type="walkIn",
            vat_included=False,
            payment_method="Cash",
            operator=cashier,
            store_credit_code=credit.id,
        )
        assert tx.total_cents == 15000 - 14980
