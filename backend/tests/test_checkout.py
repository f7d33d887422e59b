"""
Checkout and invoice tests.

Verifies:
- A paid checkout writes the transaction, its payment and the stock decrement together
- Any failure leaves stock, credits and customers untouched
- VAT invoices need the customer's address and phone
- Store credits are single use
- Carrying a balance forward folds older open invoices into the new sale
"""

from datetime import timedelta

import pytest

from thumma.errors import ValidationError
from thumma.extensions import db
from thumma.models import Customer, StockMovement, StoreCredit, Transaction, TransactionPayment
from thumma.models.lines import LINE_KIND_BALANCE_FORWARD, LINE_KIND_CATALOG, LINE_KIND_OUTSOURCED
from thumma.services import sales_service, store_credit_service
from thumma.services.cart_service import CartItem
from thumma.services.inventory_service import InventoryError
from thumma.services.pricing_service import StoreCreditError
from thumma.services.sales_service import CheckoutError, CustomerInfo
from thumma.services.stock_resolution_service import build_outsourced_item
from thumma.time_utils import utcnow


def cement_items(cement, quantity=2):
    return [CartItem.from_variant(cement, cement.variants[0], quantity)]


def sell(operator, items, **overrides):
    kwargs = dict(
        items=items,
        customer=CustomerInfo(),
        customer_type="walkIn",
        vat_included=False,
        payment_method="Cash",
        operator=operator,
    )
    kwargs.update(overrides)
    return sales_service.checkout(**kwargs)


def stock_of(variant_id):
    from thumma.models import ProductVariant
    return db.session.get(ProductVariant, variant_id).stock_quantity


# =============================================================================
# CHECKOUT
# =============================================================================


class TestCheckout:
    def test_walk_in_cash_sale(self, cashier, cement):
        variant_id = cement.variants[0].id
        tx = sell(cashier, cement_items(cement))

        assert tx.total_cents == 30000
        assert tx.tax_cents == 0
        assert tx.payment_status == "Paid"
        assert tx.paid_amount_cents == 30000
        assert tx.customer_name == "Guest"
        assert tx.operator == "Cashier"
        assert len(tx.id) == 16 and tx.id.isdigit()
        assert [line.line_kind for line in tx.lines] == [LINE_KIND_CATALOG]

        assert stock_of(variant_id) == 18
        payments = db.session.query(TransactionPayment).filter_by(transaction_id=tx.id).all()
        assert [p.amount_cents for p in payments] == [30000]
        movement = db.session.query(StockMovement).filter_by(reason=f"Sale {tx.id}").one()
        assert movement.change == -2

    def test_vat_sale_needs_address_and_phone(self, cashier, cement):
        with pytest.raises(CheckoutError, match="address"):
            sell(cashier, cement_items(cement), vat_included=True)
        assert db.session.query(Transaction).count() == 0

    def test_vat_sale_with_details(self, cashier, cement):
        tx = sell(
            cashier,
            cement_items(cement),
            vat_included=True,
            customer=CustomerInfo(name="Niran", address="12 Rama IV Rd", phone="089-000-1111"),
        )
        assert tx.subtotal_cents == 30000
        assert tx.tax_cents == 2100
        assert tx.total_cents == 32100
        assert tx.customer_id is None

    def test_government_prices_include_vat(self, cashier, cement):
        tx = sell(
            cashier,
            cement_items(cement, 1),
            customer_type="government",
            customer=CustomerInfo(name="Bangkok District Office", address="1 Din So Rd", phone="02-111-2222"),
        )
        assert tx.vat_included is True
        assert tx.total_cents == 16050
        assert tx.subtotal_cents == 15000
        assert tx.tax_cents == 1050

    def test_empty_cart(self, cashier):
        with pytest.raises(CheckoutError, match="empty"):
            sell(cashier, [])

    def test_invalid_payment_method(self, cashier, cement):
        with pytest.raises(ValidationError):
            sell(cashier, cement_items(cement), payment_method="IOU")

    def test_insufficient_stock_is_atomic(self, cashier, cement, pipe):
        one_inch = pipe.variants[1]
        items = cement_items(cement) + [CartItem.from_variant(pipe, one_inch, 6)]
        cement_id, pipe_id = cement.variants[0].id, one_inch.id

        with pytest.raises(InventoryError) as exc:
            sell(cashier, items)

        assert exc.value.details["available"] == 5
        assert stock_of(cement_id) == 20
        assert stock_of(pipe_id) == 5
        assert db.session.query(Transaction).count() == 0
        assert db.session.query(TransactionPayment).count() == 0

    def test_outsourced_line_leaves_stock_alone(self, cashier, pipe):
        sold_out = pipe.variants[0]
        item = build_outsourced_item(pipe, sold_out, 6500, markup_pct=20, quantity=3)
        tx = sell(cashier, [item])

        assert tx.total_cents == 7800 * 3
        assert tx.lines[0].line_kind == LINE_KIND_OUTSOURCED
        assert tx.lines[0].outsourced_cost_cents == 6500
        assert stock_of(sold_out.id) == 0

    def test_transportation_fee_is_untaxed(self, cashier, cement):
        tx = sell(
            cashier,
            cement_items(cement, 1),
            vat_included=True,
            transportation_fee_cents=5000,
            customer=CustomerInfo(name="Niran", address="12 Rama IV Rd", phone="089-000-1111"),
        )
        assert tx.tax_cents == 1050
        assert tx.total_cents == 15000 + 1050 + 5000


class TestCheckoutCustomers:
    def test_new_customer_created_inline(self, cashier, cement):
        tx = sell(
            cashier,
            cement_items(cement, 1),
            customer_type="contractor",
            customer=CustomerInfo(new_customer={"name": "Mana Builders", "phone": "081-555-0000"}),
        )
        customer = db.session.get(Customer, tx.customer_id)
        assert customer.name == "Mana Builders"
        assert customer.type == "contractor"
        assert tx.total_cents == 14000

    def test_guest_name_does_not_create_customer(self, cashier, cement):
        tx = sell(cashier, cement_items(cement, 1), customer=CustomerInfo(new_customer={"name": "Guest"}))
        assert tx.customer_id is None
        assert db.session.query(Customer).count() == 0

    def test_failed_checkout_does_not_create_customer(self, cashier, pipe):
        items = [CartItem.from_variant(pipe, pipe.variants[1], 99)]
        with pytest.raises(InventoryError):
            sell(cashier, items, customer=CustomerInfo(new_customer={"name": "Mana Builders"}))
        assert db.session.query(Customer).count() == 0

    def test_existing_customer_snapshot(self, cashier, cement, contractor):
        tx = sell(
            cashier,
            cement_items(cement, 1),
            customer_type="contractor",
            vat_included=True,
            customer=CustomerInfo(customer_id=contractor.id),
        )
        assert tx.customer_name == "Somchai Construction"
        assert tx.customer_address == "99 Sukhumvit Rd, Bangkok"
        assert tx.total_cents == 14980


class TestStoreCredit:
    def test_credit_applied_once(self, cashier, cement):
        first = sell(cashier, cement_items(cement, 1))
        credit = store_credit_service.create_store_credit(5000, first.id)
        assert credit.id.startswith("CREDIT-")

        tx = sell(cashier, cement_items(cement, 1), store_credit_code=credit.id.lower())
        assert tx.total_cents == 10000
        assert tx.applied_store_credit_cents == 5000
        stored = db.session.get(StoreCredit, credit.id)
        assert stored.is_used is True
        assert stored.used_by_transaction_id == tx.id

        with pytest.raises(StoreCreditError):
            sell(cashier, cement_items(cement, 1), store_credit_code=credit.id)

    def test_credit_larger_than_sale_is_kept(self, cashier, cement, pipe):
        first = sell(cashier, cement_items(cement, 1))
        credit = store_credit_service.create_store_credit(20000, first.id)
        with pytest.raises(StoreCreditError):
            sell(cashier, [CartItem.from_variant(pipe, pipe.variants[1], 1)], store_credit_code=credit.id)
        assert db.session.get(StoreCredit, credit.id).is_used is False

    def test_unknown_code(self, cashier, cement):
        with pytest.raises(StoreCreditError):
            sell(cashier, cement_items(cement, 1), store_credit_code="CREDIT-0")

    def test_list_unused_credits(self, cashier, cement):
        first = sell(cashier, cement_items(cement, 1))
        store_credit_service.create_store_credit(5000, first.id)
        unused = store_credit_service.list_store_credits(include_used=False)
        assert [c["amount_cents"] for c in unused] == [5000]


class TestCarryForward:
    def test_balance_folded_into_sale(self, admin, cashier, cement, contractor):
        old = sales_service.create_invoice(
            items=cement_items(cement, 1),
            customer=CustomerInfo(customer_id=contractor.id),
            customer_type="contractor",
            vat_included=False,
            due_date=utcnow() + timedelta(days=30),
            operator=admin,
        )
        old_id = old.id

        tx = sell(
            cashier,
            cement_items(cement, 2),
            customer_type="contractor",
            customer=CustomerInfo(customer_id=contractor.id),
            carry_forward=True,
        )

        assert tx.total_cents == 14000 + 28000
        assert tx.payment_status == "Paid"
        forward = [line for line in tx.lines if line.line_kind == LINE_KIND_BALANCE_FORWARD]
        assert len(forward) == 1
        assert forward[0].price_walk_in_cents == 14000

        old = db.session.get(Transaction, old_id)
        assert old.payment_status == "Consolidated"
        assert old.consolidated_into_id == tx.id

    def test_nothing_to_carry(self, cashier, cement, contractor):
        with pytest.raises(CheckoutError, match="no outstanding balance"):
            sell(
                cashier,
                cement_items(cement, 1),
                customer_type="contractor",
                customer=CustomerInfo(customer_id=contractor.id),
                carry_forward=True,
            )

    def test_guest_cannot_carry(self, cashier, cement):
        with pytest.raises(CheckoutError, match="saved customer"):
            sell(cashier, cement_items(cement, 1), carry_forward=True)


# =============================================================================
# INVOICES
# =============================================================================


class TestCreateInvoice:
    def test_unpaid_invoice_takes_stock(self, admin, cement, contractor):
        variant_id = cement.variants[0].id
        due = utcnow() + timedelta(days=15)
        tx = sales_service.create_invoice(
            items=cement_items(cement, 3),
            customer=CustomerInfo(customer_id=contractor.id),
            customer_type="contractor",
            vat_included=True,
            due_date=due,
            operator=admin,
        )
        assert tx.payment_status == "Unpaid"
        assert tx.paid_amount_cents == 0
        assert tx.total_cents == 42000 + 2940
        assert tx.payments == []
        assert stock_of(variant_id) == 17

    def test_walk_in_cannot_be_invoiced(self, admin, cement):
        with pytest.raises(CheckoutError):
            sales_service.create_invoice(
                items=cement_items(cement, 1),
                customer=CustomerInfo(),
                customer_type="walkIn",
                vat_included=False,
                due_date=utcnow(),
                operator=admin,
            )

    def test_due_date_required(self, admin, cement, contractor):
        with pytest.raises(ValidationError):
            sales_service.create_invoice(
                items=cement_items(cement, 1),
                customer=CustomerInfo(customer_id=contractor.id),
                customer_type="contractor",
                vat_included=False,
                due_date=None,
                operator=admin,
            )


class TestTransactionRecords:
    def test_delete_refused_after_credit(self, admin, cashier, cement):
        tx = sell(cashier, cement_items(cement, 1))
        store_credit_service.create_store_credit(1000, tx.id)
        from thumma.errors import ConflictError
        with pytest.raises(ConflictError):
            sales_service.delete_transaction(tx.id, admin)

    def test_delete_and_attach(self, admin, cashier, cement):
        tx = sell(cashier, cement_items(cement, 1))
        sales_service.attach_file(tx.id, "/uploads/receipts/1-r.pdf", admin)
        assert sales_service.get_transaction(tx.id).file_url == "/uploads/receipts/1-r.pdf"
        sales_service.delete_transaction(tx.id, admin)
        assert db.session.get(Transaction, tx.id) is None
