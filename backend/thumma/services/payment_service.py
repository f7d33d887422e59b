# Overview: Payment state machine for sales transactions and supplier bills.

"""
Payment Processing Service

States: Unpaid -> Partially Paid -> Paid, plus the terminal Consolidated
(set only by consolidation / carry-forward, never by a payment).

Recording a payment of amount a:
    paid' = paid + a
    status' = Paid if paid' >= total else Partially Paid
a must satisfy 0 < a <= total - paid; anything else is rejected before
any state is touched.

Bills follow the same rule against amount/paid_amount. Their stored status
is Due until fully Paid; Overdue is derived at read time from due_date and
is never persisted, for bills or for transactions.

Payment history rows are append-only.
"""

from __future__ import annotations

import logging
from datetime import datetime

from ..errors import NotFoundError, ThummaError, ValidationError
from ..extensions import db
from ..models import Bill, BillPayment, Transaction, TransactionPayment, User
from ..models.payables import BILL_STATUS_DUE, BILL_STATUS_OVERDUE, BILL_STATUS_PAID
from ..models.sales import (
    OPEN_PAYMENT_STATUSES,
    PAYMENT_METHODS,
    PAYMENT_STATUS_CONSOLIDATED,
    PAYMENT_STATUS_PAID,
    PAYMENT_STATUS_PARTIALLY_PAID,
    PAYMENT_STATUS_UNPAID,
)
from ..validation import coerce_int
from thumma.time_utils import parse_iso_datetime, start_of_day, utcnow
from .activity_service import format_baht, log_activity
from .concurrency import lock_for_update, run_in_transaction

logger = logging.getLogger(__name__)


class PaymentError(ThummaError):
    """Raised when a payment is rejected."""


# =============================================================================
# DERIVED STATUS
# =============================================================================

def status_for_paid_amount(paid_cents: int, total_cents: int) -> str:
    if paid_cents >= total_cents:
        return PAYMENT_STATUS_PAID
    if paid_cents > 0:
        return PAYMENT_STATUS_PARTIALLY_PAID
    return PAYMENT_STATUS_UNPAID


def is_overdue(entity, now: datetime | None = None) -> bool:
    """Open (unpaid / partially paid / bill Due) with a due date before today.

    Only the date counts: an entity due today is not overdue until tomorrow.
    """
    if entity.due_date is None:
        return False
    now = now or utcnow()
    if isinstance(entity, Bill):
        is_open = entity.status == BILL_STATUS_DUE
    else:
        is_open = entity.payment_status in OPEN_PAYMENT_STATUSES
    return is_open and entity.due_date < start_of_day(now)


def display_status(entity, now: datetime | None = None) -> str:
    """Stored status, with Overdue substituted for open overdue bills."""
    if isinstance(entity, Bill):
        return BILL_STATUS_OVERDUE if is_overdue(entity, now) else entity.status
    return entity.payment_status


def _check_amount(amount_cents, balance_cents: int) -> int:
    amount = coerce_int("amount_cents", amount_cents)
    if amount <= 0:
        raise PaymentError("Payment amount must be positive", {"amount_cents": amount})
    if amount > balance_cents:
        raise PaymentError(
            "Payment amount exceeds the outstanding balance",
            {"amount_cents": amount, "balance_cents": balance_cents},
        )
    return amount


def _check_method(method: str) -> str:
    if method not in PAYMENT_METHODS:
        raise ValidationError(f"Invalid payment method: {method}", {"allowed": list(PAYMENT_METHODS)})
    return method


def _parse_paid_at(value) -> datetime:
    if value in (None, ""):
        return utcnow()
    if isinstance(value, datetime):
        return value
    try:
        parsed = parse_iso_datetime(value)
    except ValueError:
        raise ValidationError("payment_date must be an ISO-8601 date")
    return parsed or utcnow()


# =============================================================================
# TRANSACTIONS (accounts receivable)
# =============================================================================

def apply_transaction_payment(
    tx: Transaction,
    amount_cents: int,
    method: str,
    *,
    reference: str | None = None,
    user: User | None = None,
    paid_at: datetime | None = None,
) -> TransactionPayment:
    """Apply a payment inside the caller's unit of work (no commit)."""
    if tx.payment_status == PAYMENT_STATUS_CONSOLIDATED:
        raise PaymentError("Invoice was consolidated; pay the consolidated invoice instead")
    if tx.payment_status == PAYMENT_STATUS_PAID:
        raise PaymentError("Invoice is already paid")
    amount = _check_amount(amount_cents, tx.balance_cents)

    payment = TransactionPayment(
        transaction_id=tx.id,
        amount_cents=amount,
        payment_method=method,
        reference=reference,
        paid_at=paid_at or utcnow(),
        recorded_by_user_id=user.id if user else None,
    )
    db.session.add(payment)
    tx.payments.append(payment)

    tx.paid_amount_cents = tx.paid_amount_cents + amount
    tx.payment_status = status_for_paid_amount(tx.paid_amount_cents, tx.total_cents)
    tx.payment_method = method
    return payment


def record_transaction_payment(
    transaction_id: str,
    amount_cents,
    method: str,
    *,
    reference: str | None = None,
    user: User | None = None,
    paid_at=None,
) -> Transaction:
    """
    Record a customer payment against an open transaction/invoice.

    Raises:
        NotFoundError: unknown transaction
        PaymentError: amount out of range, or the invoice is Paid / Consolidated
        DatastoreError: the write was rejected; nothing was changed
    """
    method = _check_method(method)
    when = _parse_paid_at(paid_at)

    def _op():
        tx = lock_for_update(db.session.query(Transaction).filter_by(id=transaction_id)).first()
        if not tx:
            raise NotFoundError(f"Transaction {transaction_id} not found")
        payment = apply_transaction_payment(tx, amount_cents, method, reference=reference, user=user, paid_at=when)
        log_activity(user, f"Received payment of {format_baht(payment.amount_cents)} for invoice {tx.id}")
        return tx

    tx = run_in_transaction(_op)
    logger.info("Payment recorded on %s: status=%s paid=%s", tx.id, tx.payment_status, tx.paid_amount_cents)
    return tx


# =============================================================================
# BILLS (accounts payable)
# =============================================================================

def record_bill_payment(
    bill_id: int,
    amount_cents,
    *,
    payment_date=None,
    method: str,
    reference_note: str | None = None,
    user: User | None = None,
) -> Bill:
    """
    Record a payment to a supplier bill.

    Stored status stays Due until the bill is fully paid, so an overdue bill
    keeps reading as Overdue after a partial payment.
    """
    method = _check_method(method)
    when = _parse_paid_at(payment_date)

    def _op():
        bill = lock_for_update(db.session.query(Bill).filter_by(id=bill_id)).first()
        if not bill:
            raise NotFoundError(f"Bill {bill_id} not found")
        if bill.status == BILL_STATUS_PAID:
            raise PaymentError("Bill is already paid")
        amount = _check_amount(amount_cents, bill.balance_cents)

        payment = BillPayment(
            bill_id=bill.id,
            amount_cents=amount,
            payment_date=when,
            payment_method=method,
            reference_note=reference_note,
            recorded_by_user_id=user.id if user else None,
        )
        db.session.add(payment)
        bill.payments.append(payment)

        bill.paid_amount_cents = bill.paid_amount_cents + amount
        bill.status = BILL_STATUS_PAID if bill.paid_amount_cents >= bill.amount_cents else BILL_STATUS_DUE
        log_activity(user, f"Recorded payment of {format_baht(amount)} for bill {bill.invoice_number}")
        return bill

    return run_in_transaction(_op)
