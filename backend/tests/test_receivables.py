"""
Accounts receivable tests.

Verifies:
- Open / overdue / paid filters and per-customer balances
- Past invoices back-derive VAT and carry their opening payment
- Past invoice edits are refused once payments went through the system
- CSV import skips rows for unknown customers
"""

from datetime import datetime, timedelta

import pytest

from thumma.errors import ConflictError, ValidationError
from thumma.extensions import db
from thumma.models import Customer, Transaction
from thumma.services import payment_service, receivables_service, sales_service
from thumma.services.cart_service import CartItem
from thumma.services.sales_service import CustomerInfo
from thumma.time_utils import utcnow


def past_invoice_payload(customer_id, **overrides):
    payload = {
        "original_invoice_id": "OLD-1",
        "invoice_date": "2026-01-15",
        "total_amount_cents": 107000,
        "amount_already_paid_cents": 7000,
        "customer_id": customer_id,
    }
    payload.update(overrides)
    return payload


@pytest.fixture
def open_invoice(admin, cement, contractor):
    return sales_service.create_invoice(
        items=[CartItem.from_variant(cement, cement.variants[0], 1)],
        customer=CustomerInfo(customer_id=contractor.id),
        customer_type="contractor",
        vat_included=False,
        due_date=utcnow() + timedelta(days=10),
        operator=admin,
    )


class TestPastInvoices:
    def test_record_past_invoice(self, admin, contractor):
        tx = receivables_service.record_past_invoice(past_invoice_payload(contractor.id), admin)

        assert tx.id.startswith("PAST-")
        assert tx.subtotal_cents == 100000
        assert tx.tax_cents == 7000
        assert tx.vat_included is True
        assert tx.payment_status == "Partially Paid"
        assert tx.balance_cents == 100000
        assert tx.due_date == datetime(2026, 1, 15)
        assert tx.paid_amount_cents == 7000
        assert tx.payments == []
        assert tx.lines[0].source_transaction_id == "OLD-1"

    def test_fully_paid_past_invoice(self, admin, contractor):
        tx = receivables_service.record_past_invoice(
            past_invoice_payload(contractor.id, amount_already_paid_cents=107000), admin
        )
        assert tx.payment_status == "Paid"

    def test_inline_customer(self, admin):
        tx = receivables_service.record_past_invoice(
            past_invoice_payload(None, new_customer_name="Wichai Shop", amount_already_paid_cents=0), admin
        )
        customer = db.session.get(Customer, tx.customer_id)
        assert customer.name == "Wichai Shop"
        assert tx.payment_status == "Unpaid"
        assert tx.payments == []

    def test_paid_more_than_total(self, admin, contractor):
        with pytest.raises(ValidationError):
            receivables_service.record_past_invoice(
                past_invoice_payload(contractor.id, amount_already_paid_cents=107001), admin
            )

    def test_customer_required(self, admin):
        with pytest.raises(ValidationError):
            receivables_service.record_past_invoice(past_invoice_payload(None), admin)

    def test_edit_replaces_details(self, admin, contractor):
        tx = receivables_service.record_past_invoice(past_invoice_payload(contractor.id), admin)
        edited = receivables_service.edit_past_invoice(
            tx.id,
            past_invoice_payload(contractor.id, total_amount_cents=53500, amount_already_paid_cents=0),
            admin,
        )
        assert edited.total_cents == 53500
        assert edited.subtotal_cents == 50000
        assert edited.payment_status == "Unpaid"
        assert edited.payments == []
        assert len(edited.lines) == 1

    def test_edit_refused_after_system_payment(self, admin, contractor):
        tx = receivables_service.record_past_invoice(past_invoice_payload(contractor.id), admin)
        payment_service.record_transaction_payment(tx.id, 1000, "Cash", user=admin)
        with pytest.raises(ConflictError):
            receivables_service.edit_past_invoice(tx.id, past_invoice_payload(contractor.id), admin)

    def test_edit_keeps_payment_history(self, admin, contractor):
        tx = receivables_service.record_past_invoice(past_invoice_payload(contractor.id), admin)
        payment_service.record_transaction_payment(
            tx.id, 1000, "Cash", reference="Paid before import of #OLD-1", user=admin
        )
        with pytest.raises(ConflictError):
            receivables_service.edit_past_invoice(
                tx.id, past_invoice_payload(contractor.id, amount_already_paid_cents=0), admin
            )
        stored = db.session.get(Transaction, tx.id)
        assert len(stored.payments) == 1
        assert stored.payments[0].amount_cents == 1000
        assert stored.paid_amount_cents == 8000

    def test_edit_regular_invoice_refused(self, admin, contractor, open_invoice):
        with pytest.raises(ConflictError):
            receivables_service.edit_past_invoice(open_invoice.id, past_invoice_payload(contractor.id), admin)

    def test_import_skips_unknown_customers(self, admin, contractor):
        rows = [
            {
                "customer_name": "Somchai Construction",
                "original_invoice_id": "A-100",
                "invoice_date": "2026-02-01",
                "total_amount": "1,070.00",
                "amount_already_paid": "",
            },
            {
                "customer_name": "Nobody Ltd",
                "original_invoice_id": "A-101",
                "invoice_date": "2026-02-02",
                "total_amount": "500",
            },
        ]
        created = receivables_service.import_past_invoices(rows, admin)
        assert len(created) == 1
        assert created[0].total_cents == 107000
        assert created[0].customer_id == contractor.id

    def test_import_with_nothing_valid(self, admin, contractor):
        with pytest.raises(ValidationError):
            receivables_service.import_past_invoices([{"customer_name": "Nobody Ltd"}], admin)


class TestReceivableViews:
    def test_filters(self, admin, contractor, open_invoice):
        past = receivables_service.record_past_invoice(past_invoice_payload(contractor.id), admin)
        now = utcnow()

        open_ids = [t.id for t in receivables_service.list_receivables("open", now=now)]
        assert set(open_ids) == {open_invoice.id, past.id}
        overdue_ids = [t.id for t in receivables_service.list_receivables("overdue", now=now)]
        assert overdue_ids == [past.id]
        assert receivables_service.list_receivables("paid", now=now) == []

    def test_invalid_filter(self, db_session):
        with pytest.raises(ValidationError):
            receivables_service.list_receivables("late")

    def test_customer_balance(self, admin, contractor, open_invoice):
        past = receivables_service.record_past_invoice(past_invoice_payload(contractor.id), admin)
        balance = receivables_service.customer_balance(contractor.id)

        assert balance["customer_name"] == "Somchai Construction"
        assert balance["balance_cents"] == 14000 + 100000
        assert balance["overdue_cents"] == 100000
        assert balance["open_invoice_count"] == 2
        assert set(balance["transaction_ids"]) == {open_invoice.id, past.id}

    def test_summary(self, admin, contractor, open_invoice):
        receivables_service.record_past_invoice(past_invoice_payload(contractor.id), admin)
        summary = receivables_service.receivables_summary()
        assert summary == {
            "total_receivables_cents": 114000,
            "open_count": 2,
            "overdue_cents": 100000,
            "overdue_count": 1,
        }

    def test_paid_invoice_leaves_open_list(self, admin, open_invoice):
        payment_service.record_transaction_payment(open_invoice.id, 14000, "Card", user=admin)
        assert receivables_service.list_receivables("open") == []
        assert [t.id for t in receivables_service.list_receivables("paid")] == [open_invoice.id]
