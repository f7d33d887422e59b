"""
Invoice consolidation tests.

Verifies:
- Open balances roll into one untaxed C-INV- invoice due in 30 days
- Consolidated sources are frozen against payments
- Undo restores every source from its own paid amount
- Undo is refused once the consolidated invoice has been paid
"""

from datetime import timedelta

import pytest

from thumma.errors import NotFoundError, ValidationError
from thumma.extensions import db
from thumma.models import Customer, Transaction
from thumma.models.lines import LINE_KIND_CONSOLIDATED
from thumma.services import consolidation_service, payment_service, sales_service
from thumma.services.cart_service import CartItem
from thumma.services.consolidation_service import ConsolidationError
from thumma.services.payment_service import PaymentError
from thumma.services.sales_service import CustomerInfo
from thumma.time_utils import utcnow


def invoice_for(customer, cement, quantity, operator):
    return sales_service.create_invoice(
        items=[CartItem.from_variant(cement, cement.variants[0], quantity)],
        customer=CustomerInfo(customer_id=customer.id),
        customer_type="contractor",
        vat_included=False,
        due_date=utcnow() + timedelta(days=14),
        operator=operator,
    )


@pytest.fixture
def two_invoices(admin, cement, contractor):
    """14,000 + 28,000 satang, with 4,000 already paid on the first."""
    first = invoice_for(contractor, cement, 1, admin)
    second = invoice_for(contractor, cement, 2, admin)
    payment_service.record_transaction_payment(first.id, 4000, "Cash", user=admin)
    return first.id, second.id


class TestConsolidate:
    def test_consolidated_invoice(self, admin, contractor, two_invoices):
        invoice = consolidation_service.consolidate_invoices(contractor.id, list(two_invoices), admin)

        assert invoice.id.startswith("C-INV-")
        assert invoice.total_cents == 10000 + 28000
        assert invoice.tax_cents == 0
        assert invoice.payment_status == "Unpaid"
        assert (invoice.due_date - invoice.date).days == 30
        assert [line.line_kind for line in invoice.lines] == [LINE_KIND_CONSOLIDATED] * 2
        assert {line.source_transaction_id for line in invoice.lines} == set(two_invoices)

        for source_id in two_invoices:
            source = db.session.get(Transaction, source_id)
            assert source.payment_status == "Consolidated"
            assert source.consolidated_into_id == invoice.id

        sources = consolidation_service.consolidated_sources(invoice)
        assert [s.id for s in sources] == list(two_invoices)

    def test_source_refuses_payment(self, admin, contractor, two_invoices):
        consolidation_service.consolidate_invoices(contractor.id, list(two_invoices), admin)
        with pytest.raises(PaymentError, match="consolidated"):
            payment_service.record_transaction_payment(two_invoices[1], 100, "Cash", user=admin)

    def test_needs_two_invoices(self, admin, contractor, two_invoices):
        with pytest.raises(ValidationError):
            consolidation_service.consolidate_invoices(contractor.id, [two_invoices[0]], admin)

    def test_duplicates_rejected(self, admin, contractor, two_invoices):
        with pytest.raises(ValidationError):
            consolidation_service.consolidate_invoices(contractor.id, [two_invoices[0], two_invoices[0]], admin)

    def test_unknown_invoice(self, admin, contractor, two_invoices):
        with pytest.raises(NotFoundError):
            consolidation_service.consolidate_invoices(contractor.id, [two_invoices[0], "missing"], admin)

    def test_other_customers_invoice(self, admin, cement, contractor, two_invoices):
        other = Customer(name="Other Co", type="contractor", phone="02-000-0000", address="1 Silom")
        db.session.add(other)
        db.session.commit()
        foreign = invoice_for(other, cement, 1, admin)

        with pytest.raises(ConsolidationError):
            consolidation_service.consolidate_invoices(contractor.id, [two_invoices[0], foreign.id], admin)
        assert db.session.get(Transaction, two_invoices[0]).payment_status == "Partially Paid"

    def test_paid_invoice_cannot_be_consolidated(self, admin, contractor, two_invoices):
        payment_service.record_transaction_payment(two_invoices[0], 10000, "Cash", user=admin)
        with pytest.raises(ConsolidationError):
            consolidation_service.consolidate_invoices(contractor.id, list(two_invoices), admin)


class TestUndo:
    def test_undo_restores_sources(self, admin, contractor, two_invoices):
        invoice = consolidation_service.consolidate_invoices(contractor.id, list(two_invoices), admin)
        invoice_id = invoice.id

        restored = consolidation_service.undo_consolidation(invoice_id, admin)

        assert {t.id for t in restored} == set(two_invoices)
        first = db.session.get(Transaction, two_invoices[0])
        second = db.session.get(Transaction, two_invoices[1])
        assert first.payment_status == "Partially Paid"
        assert second.payment_status == "Unpaid"
        assert first.consolidated_into_id is None
        assert db.session.get(Transaction, invoice_id) is None

    def test_undo_refused_after_payment(self, admin, contractor, two_invoices):
        invoice = consolidation_service.consolidate_invoices(contractor.id, list(two_invoices), admin)
        payment_service.record_transaction_payment(invoice.id, 1000, "Cash", user=admin)

        with pytest.raises(ConsolidationError):
            consolidation_service.undo_consolidation(invoice.id, admin)
        assert db.session.get(Transaction, two_invoices[0]).payment_status == "Consolidated"

    def test_undo_of_regular_invoice(self, admin, two_invoices):
        with pytest.raises(ConsolidationError):
            consolidation_service.undo_consolidation(two_invoices[0], admin)

    def test_undo_unknown(self, admin):
        with pytest.raises(NotFoundError):
            consolidation_service.undo_consolidation("C-INV-0", admin)

    def test_sources_can_be_paid_again_after_undo(self, admin, contractor, two_invoices):
        invoice = consolidation_service.consolidate_invoices(contractor.id, list(two_invoices), admin)
        consolidation_service.undo_consolidation(invoice.id, admin)
        tx = payment_service.record_transaction_payment(two_invoices[0], 10000, "Cash", user=admin)
        assert tx.payment_status == "Paid"
