# Overview: Merge a customer's open invoices into one consolidated invoice, and undo it.

"""
Invoice consolidation

consolidate_invoices() freezes the selected open invoices (status
Consolidated, consolidated_into_id set) and creates one C-INV- invoice with
a CONSOLIDATED line per source carrying that source's open balance. The
new invoice is untaxed (tax was already charged on the sources) and due in
30 days.

undo_consolidation() restores every source to Partially Paid / Unpaid from
its own paid amount and deletes the consolidated invoice. It is refused when
the consolidated invoice already received payments, or when a source no
longer points at it; in both cases the sources changed after consolidation
and there is no safe automatic answer.

Both operations are a single unit of work.
"""

from __future__ import annotations

from ..errors import NotFoundError, ThummaError, ValidationError
from ..extensions import db
from ..models import Order, Transaction, TransactionLine, User
from ..models.lines import LINE_KIND_CONSOLIDATED
from ..models.sales import (
    OPEN_PAYMENT_STATUSES,
    PAYMENT_METHOD_CASH,
    PAYMENT_STATUS_CONSOLIDATED,
    PAYMENT_STATUS_UNPAID,
)
from thumma.time_utils import day_key, days_after, utcnow
from .activity_service import format_baht, log_activity
from .concurrency import lock_for_update, run_in_transaction
from .customer_service import get_customer
from .payment_service import status_for_paid_amount
from .sales_service import PREFIX_CONSOLIDATED, new_transaction_id


CONSOLIDATED_DUE_DAYS = 30


class ConsolidationError(ThummaError):
    """Raised when invoices cannot be consolidated or a consolidation cannot be undone."""
    http_status = 409


def _consolidated_line(source: Transaction) -> TransactionLine:
    balance = source.balance_cents
    return TransactionLine(
        line_kind=LINE_KIND_CONSOLIDATED,
        product_id=None,
        variant_id=None,
        name={"en": f"Invoice #{source.id}", "th": f"ใบแจ้งหนี้ #{source.id}"},
        size=day_key(source.date),
        sku=f"INV-{source.id}",
        quantity=1,
        price_walk_in_cents=balance,
        price_contractor_cents=balance,
        price_government_cents=balance,
        cost_price_cents=0,
        source_transaction_id=source.id,
    )


def consolidate_invoices(customer_id: int, transaction_ids: list[str], user: User) -> Transaction:
    """
    Roll the open balances of transaction_ids into one new invoice.

    Raises:
        ValidationError: fewer than two ids, or duplicates
        NotFoundError: unknown customer or transaction
        ConsolidationError: a transaction belongs to another customer or is not open
        DatastoreError: the write was rejected; nothing was changed
    """
    if not isinstance(transaction_ids, list) or not transaction_ids:
        raise ValidationError("transaction_ids must be a non-empty list")
    ids = [str(t) for t in transaction_ids]
    if len(set(ids)) != len(ids):
        raise ValidationError("transaction_ids contains duplicates")
    if len(ids) < 2:
        raise ValidationError("Select at least two invoices to consolidate")

    def _op():
        customer = get_customer(customer_id)
        sources = (
            lock_for_update(db.session.query(Transaction).filter(Transaction.id.in_(ids)))
            .order_by(Transaction.date.asc(), Transaction.id.asc())
            .all()
        )
        found = {t.id for t in sources}
        missing = [t for t in ids if t not in found]
        if missing:
            raise NotFoundError(f"Transaction {missing[0]} not found", {"missing": missing})

        for source in sources:
            if source.customer_id != customer.id:
                raise ConsolidationError(f"Invoice {source.id} belongs to another customer")
            if source.payment_status not in OPEN_PAYMENT_STATUSES:
                raise ConsolidationError(
                    f"Invoice {source.id} is {source.payment_status} and cannot be consolidated"
                )

        balance_due = sum(s.balance_cents for s in sources)
        now = utcnow()
        invoice = Transaction(
            id=new_transaction_id(PREFIX_CONSOLIDATED),
            date=now,
            subtotal_cents=balance_due,
            tax_cents=0,
            transportation_fee_cents=0,
            total_cents=balance_due,
            vat_included=False,
            customer_id=customer.id,
            customer_name=customer.name,
            customer_address=customer.address,
            customer_phone=customer.phone,
            customer_type=customer.type,
            operator=user.name,
            payment_method=PAYMENT_METHOD_CASH,
            payment_status=PAYMENT_STATUS_UNPAID,
            paid_amount_cents=0,
            due_date=days_after(now, CONSOLIDATED_DUE_DAYS),
            applied_store_credit_cents=0,
        )
        db.session.add(invoice)
        for source in sources:
            invoice.lines.append(_consolidated_line(source))
        db.session.flush()

        for source in sources:
            source.payment_status = PAYMENT_STATUS_CONSOLIDATED
            source.consolidated_into_id = invoice.id

        log_activity(
            user,
            f"Created consolidated invoice {invoice.id} for {customer.name} ({format_baht(balance_due)}).",
        )
        return invoice

    return run_in_transaction(_op)


def consolidated_sources(invoice: Transaction) -> list[Transaction]:
    return (
        db.session.query(Transaction)
        .filter(Transaction.consolidated_into_id == invoice.id)
        .order_by(Transaction.date.asc(), Transaction.id.asc())
        .all()
    )


def undo_consolidation(consolidated_id: str, user: User) -> list[Transaction]:
    """
    Restore the invoices rolled into consolidated_id and delete it.

    Returns the restored transactions.
    """
    def _op():
        invoice = lock_for_update(db.session.query(Transaction).filter_by(id=consolidated_id)).first()
        if not invoice:
            raise NotFoundError(f"Transaction {consolidated_id} not found")

        source_ids = [
            line.source_transaction_id
            for line in invoice.lines
            if line.line_kind == LINE_KIND_CONSOLIDATED and line.source_transaction_id
        ]
        if not source_ids:
            raise ConsolidationError(f"Transaction {invoice.id} is not a consolidated invoice")
        if invoice.paid_amount_cents > 0 or invoice.payments:
            raise ConsolidationError(
                "Consolidated invoice has received payments and cannot be undone",
                {"paid_amount_cents": invoice.paid_amount_cents},
            )
        if invoice.payment_status == PAYMENT_STATUS_CONSOLIDATED:
            raise ConsolidationError("Consolidated invoice was itself consolidated; undo the later consolidation first")

        sources = (
            lock_for_update(db.session.query(Transaction).filter(Transaction.id.in_(source_ids)))
            .all()
        )
        by_id = {s.id: s for s in sources}
        for source_id in source_ids:
            source = by_id.get(source_id)
            if source is None:
                raise ConsolidationError(f"Original invoice {source_id} no longer exists")
            if source.payment_status != PAYMENT_STATUS_CONSOLIDATED or source.consolidated_into_id != invoice.id:
                raise ConsolidationError(
                    f"Original invoice {source_id} was modified after consolidation",
                    {"status": source.payment_status, "consolidated_into_id": source.consolidated_into_id},
                )

        for source in sources:
            source.payment_status = status_for_paid_amount(source.paid_amount_cents, source.total_cents)
            source.consolidated_into_id = None
        db.session.flush()

        db.session.query(Order).filter_by(invoice_id=invoice.id).update({"invoice_id": None}, synchronize_session=False)
        db.session.delete(invoice)
        log_activity(user, f"Undid consolidation for invoice {consolidated_id}")
        return sources

    return run_in_transaction(_op)
