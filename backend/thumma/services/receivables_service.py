# Overview: Accounts receivable: open invoices, customer balances and past invoices.

"""
Accounts receivable

Open invoices are transactions in Unpaid or Partially Paid. Consolidated
transactions are excluded: their balance lives on the consolidated invoice.

Past invoices record debts that predate the system. Their total is
VAT-inclusive, so subtotal and tax are back-derived exactly like the
government tier, and the status follows from the amount already paid.
"""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from ..errors import ConflictError, NotFoundError, ValidationError
from ..extensions import db
from ..models import Customer, Transaction, TransactionLine, User
from ..models.customers import CUSTOMER_TYPE_WALK_IN
from ..models.lines import LINE_KIND_PAST_INVOICE
from ..models.sales import OPEN_PAYMENT_STATUSES, PAYMENT_METHOD_CASH, PAYMENT_STATUS_PAID
from ..validation import baht_to_cents, coerce_int, require_amount
from thumma.time_utils import parse_iso_datetime, utcnow
from . import cache
from .activity_service import log_activity
from .concurrency import lock_for_update, run_in_transaction
from .customer_service import add_customer, get_customer
from .payment_service import is_overdue, status_for_paid_amount
from .pricing_service import split_vat_inclusive
from .sales_service import PREFIX_PAST_INVOICE, new_transaction_id


PAST_INVOICE_SKU = "PAST-DUE"

RECEIVABLE_FILTER_OPEN = "open"
RECEIVABLE_FILTER_OVERDUE = "overdue"
RECEIVABLE_FILTER_PAID = "paid"
RECEIVABLE_FILTERS = (RECEIVABLE_FILTER_OPEN, RECEIVABLE_FILTER_OVERDUE, RECEIVABLE_FILTER_PAID)


def list_receivables(
    status: str = RECEIVABLE_FILTER_OPEN,
    customer_id: int | None = None,
    now: datetime | None = None,
) -> list[Transaction]:
    """Invoices by due date. 'open' = Unpaid/Partially Paid, 'overdue' = open past due, 'paid' = settled invoices."""
    if status not in RECEIVABLE_FILTERS:
        raise ValidationError(f"Invalid receivables filter: {status}", {"allowed": list(RECEIVABLE_FILTERS)})
    now = now or utcnow()

    query = db.session.query(Transaction)
    if customer_id is not None:
        query = query.filter(Transaction.customer_id == customer_id)
    if status == RECEIVABLE_FILTER_PAID:
        query = query.filter(Transaction.payment_status == PAYMENT_STATUS_PAID, Transaction.due_date.isnot(None))
    else:
        query = query.filter(Transaction.payment_status.in_(OPEN_PAYMENT_STATUSES))
    rows = query.order_by(Transaction.due_date.asc(), Transaction.date.asc()).all()

    if status == RECEIVABLE_FILTER_OVERDUE:
        return [t for t in rows if is_overdue(t, now)]
    return rows


def customer_balance(customer_id: int, now: datetime | None = None) -> dict:
    """Outstanding balance of one customer across all open invoices."""
    customer = get_customer(customer_id)
    now = now or utcnow()
    open_invoices = list_receivables(RECEIVABLE_FILTER_OPEN, customer_id=customer.id, now=now)
    overdue = [t for t in open_invoices if is_overdue(t, now)]
    return {
        "customer_id": customer.id,
        "customer_name": customer.name,
        "balance_cents": sum(t.balance_cents for t in open_invoices),
        "overdue_cents": sum(t.balance_cents for t in overdue),
        "open_invoice_count": len(open_invoices),
        "transaction_ids": [t.id for t in open_invoices],
    }


def receivables_summary(now: datetime | None = None) -> dict:
    now = now or utcnow()
    open_invoices = list_receivables(RECEIVABLE_FILTER_OPEN, now=now)
    overdue = [t for t in open_invoices if is_overdue(t, now)]
    return {
        "total_receivables_cents": sum(t.balance_cents for t in open_invoices),
        "open_count": len(open_invoices),
        "overdue_cents": sum(t.balance_cents for t in overdue),
        "overdue_count": len(overdue),
    }


# =============================================================================
# PAST INVOICES
# =============================================================================

def _parse_date(key: str, value) -> datetime:
    if isinstance(value, datetime):
        return value
    if value in (None, ""):
        raise ValidationError(f"{key} is required")
    try:
        return parse_iso_datetime(str(value))
    except ValueError:
        raise ValidationError(f"{key} must be an ISO-8601 date")


def _clean_past_invoice(payload: dict) -> dict:
    original_id = str(payload.get("original_invoice_id") or "").strip()
    if not original_id:
        raise ValidationError("original_invoice_id is required")
    total = require_amount("total_amount_cents", payload.get("total_amount_cents"), allow_zero=False)
    paid = require_amount("amount_already_paid_cents", payload.get("amount_already_paid_cents", 0))
    if paid > total:
        raise ValidationError("amount_already_paid_cents cannot exceed total_amount_cents")
    customer_id = payload.get("customer_id")
    new_name = str(payload.get("new_customer_name") or "").strip()
    if customer_id in (None, "") and not new_name:
        raise ValidationError("customer_id or new_customer_name is required")
    return {
        "original_invoice_id": original_id[:64],
        "invoice_date": _parse_date("invoice_date", payload.get("invoice_date")),
        "total_cents": total,
        "paid_cents": paid,
        "customer_id": coerce_int("customer_id", customer_id) if customer_id not in (None, "") else None,
        "new_customer_name": new_name or None,
        "file_url": payload.get("file_url") or None,
    }


def _past_invoice_customer(clean: dict) -> Customer:
    if clean["new_customer_name"]:
        return add_customer({"name": clean["new_customer_name"], "type": CUSTOMER_TYPE_WALK_IN})
    return get_customer(clean["customer_id"])


def _past_invoice_line(original_id: str, total_cents: int) -> TransactionLine:
    return TransactionLine(
        line_kind=LINE_KIND_PAST_INVOICE,
        product_id=None,
        variant_id=None,
        name={"en": f"Past Invoice #{original_id}", "th": f"ใบแจ้งหนี้ย้อนหลัง #{original_id}"},
        size="",
        sku=PAST_INVOICE_SKU,
        quantity=1,
        price_walk_in_cents=total_cents,
        price_contractor_cents=total_cents,
        price_government_cents=total_cents,
        cost_price_cents=total_cents,
        source_transaction_id=original_id,
    )


def _apply_past_invoice(tx: Transaction, clean: dict, customer: Customer) -> None:
    subtotal, tax = split_vat_inclusive(clean["total_cents"])
    tx.date = clean["invoice_date"]
    tx.due_date = clean["invoice_date"]
    tx.subtotal_cents = subtotal
    tx.tax_cents = tax
    tx.total_cents = clean["total_cents"]
    tx.paid_amount_cents = clean["paid_cents"]
    tx.payment_status = status_for_paid_amount(clean["paid_cents"], clean["total_cents"])
    tx.vat_included = True
    tx.customer_id = customer.id
    tx.customer_name = customer.name
    tx.customer_address = customer.address
    tx.customer_phone = customer.phone
    tx.customer_type = customer.type


def _new_past_invoice(clean: dict, user: User) -> Transaction:
    customer = _past_invoice_customer(clean)
    tx = Transaction(
        id=new_transaction_id(PREFIX_PAST_INVOICE),
        operator=user.name,
        payment_method=PAYMENT_METHOD_CASH,
        transportation_fee_cents=0,
        applied_store_credit_cents=0,
        file_url=clean["file_url"],
    )
    _apply_past_invoice(tx, clean, customer)
    db.session.add(tx)
    tx.lines.append(_past_invoice_line(clean["original_invoice_id"], clean["total_cents"]))
    return tx


def record_past_invoice(payload: dict, user: User) -> Transaction:
    """Record an invoice issued before the system; optionally creates the customer inline."""
    clean = _clean_past_invoice(payload)

    def _op():
        tx = _new_past_invoice(clean, user)
        log_activity(user, f"Recorded past invoice #{clean['original_invoice_id']} for {tx.customer_name}.")
        return tx

    return run_in_transaction(_op, invalidates=(cache.CUSTOMERS,))


def edit_past_invoice(transaction_id: str, payload: dict, user: User) -> Transaction:
    """
    Replace the details of a past invoice.

    Money received before the system lives only in paid_amount_cents; the
    payment history holds system payments alone. Once one exists the edit is
    refused, so no history row is ever rewritten.
    """
    clean = _clean_past_invoice(payload)

    def _op():
        tx = lock_for_update(db.session.query(Transaction).filter_by(id=transaction_id)).first()
        if not tx:
            raise NotFoundError(f"Transaction {transaction_id} not found")
        if not tx.id.startswith(PREFIX_PAST_INVOICE):
            raise ConflictError(f"Transaction {tx.id} is not a past invoice")
        if tx.consolidated_into_id:
            raise ConflictError("Past invoice was consolidated; undo the consolidation first")
        if tx.payments:
            raise ConflictError("Past invoice already has payments recorded and cannot be edited")

        customer = _past_invoice_customer(clean)
        for line in list(tx.lines):
            tx.lines.remove(line)
        db.session.flush()

        _apply_past_invoice(tx, clean, customer)
        if clean["file_url"]:
            tx.file_url = clean["file_url"]
        tx.lines.append(_past_invoice_line(clean["original_invoice_id"], clean["total_cents"]))
        log_activity(user, f"Edited past invoice #{clean['original_invoice_id']}.")
        return tx

    return run_in_transaction(_op, invalidates=(cache.CUSTOMERS,))


def import_past_invoices(rows: list[dict], user: User) -> list[Transaction]:
    """
    Create past invoices from parsed CSV rows.

    Columns: customer_name, original_invoice_id, invoice_date, total_amount,
    amount_already_paid (baht). Rows whose customer name does not match an
    existing customer are skipped, as are blank rows.
    """
    by_name = {c.name: c for c in db.session.query(Customer).all()}
    cleaned = []
    skipped: list[int] = []
    for index, row in enumerate(rows):
        line = index + 2
        name = str(row.get("customer_name") or "").strip()
        customer: Optional[Customer] = by_name.get(name)
        if customer is None:
            skipped.append(line)
            continue
        try:
            clean = _clean_past_invoice({
                "customer_id": customer.id,
                "original_invoice_id": row.get("original_invoice_id"),
                "invoice_date": row.get("invoice_date"),
                "total_amount_cents": baht_to_cents(row.get("total_amount")),
                "amount_already_paid_cents": baht_to_cents(row.get("amount_already_paid")) or 0,
            })
        except ValidationError as exc:
            raise ValidationError(f"Row {line}: {exc.message}", {"row": line})
        cleaned.append(clean)

    if not cleaned:
        raise ValidationError("No valid invoices found to import", {"skipped_rows": skipped})

    def _op():
        created = [_new_past_invoice(clean, user) for clean in cleaned]
        log_activity(user, f"Imported {len(created)} past invoices.")
        return created

    return run_in_transaction(_op)
