# Overview: Checkout, invoices and transaction records.

"""
Sales Service

checkout() and create_invoice() each run as ONE unit of work:
inline customer creation, the transaction and its lines, the initial
payment row, stock decrements with history, store credit redemption and
the carry-forward of older balances either all commit or none do.

Transaction ids follow the receipt numbering: epoch milliseconds plus three
random digits. Derived documents use a prefix:
C-INV- (consolidated), PAST- (past invoice), INV-FROM-ORD- (from an order).
"""

from __future__ import annotations

import logging
import random
from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from ..errors import ConflictError, NotFoundError, ThummaError, ValidationError
from ..extensions import db
from ..models import Customer, Order, ProductVariant, StoreCredit, Transaction, TransactionLine, User
from ..models.customers import CUSTOMER_TYPE_GOVERNMENT, CUSTOMER_TYPE_WALK_IN, CUSTOMER_TYPES
from ..models.lines import LINE_KIND_BALANCE_FORWARD
from ..models.sales import (
    OPEN_PAYMENT_STATUSES,
    PAYMENT_METHOD_CASH,
    PAYMENT_METHODS,
    PAYMENT_STATUS_CONSOLIDATED,
    PAYMENT_STATUS_PAID,
    PAYMENT_STATUS_UNPAID,
)
from thumma.time_utils import epoch_ms, utcnow
from . import cache
from .activity_service import format_baht, log_activity
from .cart_service import CartItem
from .concurrency import lock_for_update, run_in_transaction
from .customer_service import add_customer, clean_customer_payload
from .inventory_service import apply_stock_change
from .payment_service import apply_transaction_payment
from .pricing_service import Totals, compute_totals
from .settings_service import low_stock_threshold
from .store_credit_service import consume_store_credit, find_active_credit

logger = logging.getLogger(__name__)


PREFIX_CONSOLIDATED = "C-INV-"
PREFIX_PAST_INVOICE = "PAST-"
PREFIX_FROM_ORDER = "INV-FROM-ORD-"

GUEST_NAME = "Guest"


class CheckoutError(ThummaError):
    """Raised when a cart cannot be checked out or invoiced."""


@dataclass
class CustomerInfo:
    """
    Who the sale is for.

    customer_id set -> existing customer (snapshot copied onto the transaction).
    new_customer set -> customer created inside the checkout unit of work.
    neither -> guest; name/address/phone are only stored on the transaction.
    """
    customer_id: Optional[int] = None
    name: str = GUEST_NAME
    address: Optional[str] = None
    phone: Optional[str] = None
    new_customer: Optional[dict] = None


def new_transaction_id(prefix: str = "") -> str:
    while True:
        candidate = f"{prefix}{epoch_ms()}{random.randint(0, 999):03d}"
        if db.session.get(Transaction, candidate) is None:
            return candidate


def _resolve_customer(info: CustomerInfo, customer_type: str) -> tuple[Optional[Customer], str, Optional[str], Optional[str]]:
    if info.customer_id is not None:
        customer = db.session.get(Customer, info.customer_id)
        if customer is None:
            raise NotFoundError(f"Customer {info.customer_id} not found")
        return (
            customer,
            customer.name,
            info.address or customer.address,
            info.phone or customer.phone,
        )
    if info.new_customer:
        data = dict(info.new_customer)
        data.setdefault("type", customer_type)
        name = str(data.get("name") or "").strip()
        if name and name.lower() != GUEST_NAME.lower():
            customer = add_customer(clean_customer_payload(data, partial=False))
            return customer, customer.name, customer.address, customer.phone
    return None, (info.name or GUEST_NAME).strip() or GUEST_NAME, info.address, info.phone


def _check_vat_details(vat_included: bool, address: Optional[str], phone: Optional[str]) -> None:
    if vat_included and (not (address or "").strip() or not (phone or "").strip()):
        raise CheckoutError("A VAT invoice requires the customer's address and phone number")


def _check_common(customer_type: str, transportation_fee_cents: int) -> None:
    if customer_type not in CUSTOMER_TYPES:
        raise ValidationError(f"Invalid customer type: {customer_type}", {"allowed": list(CUSTOMER_TYPES)})
    if transportation_fee_cents < 0:
        raise ValidationError("transportation_fee_cents must be >= 0")


def open_transactions_for(customer_id: int, *, lock: bool = False) -> list[Transaction]:
    query = (
        db.session.query(Transaction)
        .filter(Transaction.customer_id == customer_id)
        .filter(Transaction.payment_status.in_(OPEN_PAYMENT_STATUSES))
        .order_by(Transaction.date.asc())
    )
    if lock:
        query = lock_for_update(query)
    return query.all()


def open_balance_cents(prior: list[Transaction]) -> int:
    """Outstanding balance a new sale carries forward from the given open documents."""
    return sum(t.balance_cents for t in prior)


def _add_lines(tx: Transaction, items: list[CartItem]) -> None:
    for item in items:
        line = TransactionLine(transaction_id=tx.id, **item.to_line_kwargs())
        tx.lines.append(line)


def decrement_stock(items: list[CartItem], *, reason: str, operator: str) -> None:
    """Take catalog units out of stock inside the caller's unit of work."""
    threshold = low_stock_threshold()
    for item in items:
        if not item.moves_stock or item.variant_id is None:
            continue
        variant = lock_for_update(db.session.query(ProductVariant).filter_by(id=item.variant_id)).first()
        if variant is None:
            raise NotFoundError(f"Variant {item.variant_id} not found")
        apply_stock_change(variant, -item.quantity, reason=reason, operator=operator, threshold=threshold)


def _build_transaction(
    *,
    tx_id: str,
    now: datetime,
    totals: Totals,
    customer: Optional[Customer],
    name: str,
    address: Optional[str],
    phone: Optional[str],
    customer_type: str,
    operator: User,
    payment_method: str,
    payment_status: str,
    due_date: Optional[datetime] = None,
) -> Transaction:
    tx = Transaction(
        id=tx_id,
        date=now,
        subtotal_cents=totals.subtotal_cents,
        tax_cents=totals.tax_cents,
        transportation_fee_cents=totals.transportation_fee_cents,
        total_cents=totals.total_cents,
        vat_included=totals.vat_included,
        customer_id=customer.id if customer else None,
        customer_name=name,
        customer_address=address,
        customer_phone=phone,
        customer_type=customer_type,
        operator=operator.name,
        payment_method=payment_method,
        payment_status=payment_status,
        paid_amount_cents=0,
        due_date=due_date,
        applied_store_credit_cents=0,
    )
    db.session.add(tx)
    return tx


# =============================================================================
# CHECKOUT
# =============================================================================

def checkout(
    *,
    items: list[CartItem],
    customer: CustomerInfo,
    customer_type: str,
    vat_included: bool,
    payment_method: str,
    operator: User,
    transportation_fee_cents: int = 0,
    store_credit_code: Optional[str] = None,
    carry_forward: bool = False,
) -> Transaction:
    """
    Complete an in-store sale paid in full.

    Raises:
        CheckoutError: empty cart, missing VAT details, nothing to carry forward
        StoreCreditError: invalid/used code or credit larger than the total
        InventoryError: not enough stock for a catalog line
        DatastoreError: the write was rejected; nothing was changed
    """
    _check_common(customer_type, transportation_fee_cents)
    if payment_method not in PAYMENT_METHODS:
        raise ValidationError(f"Invalid payment method: {payment_method}", {"allowed": list(PAYMENT_METHODS)})
    if not items and not carry_forward:
        raise CheckoutError("Cart is empty")

    def _op():
        cust, name, address, phone = _resolve_customer(customer, customer_type)

        prior: list[Transaction] = []
        carried = 0
        if carry_forward:
            if cust is None:
                raise CheckoutError("Carrying a balance forward requires a saved customer")
            prior = open_transactions_for(cust.id, lock=True)
            carried = open_balance_cents(prior)
            if carried <= 0:
                raise CheckoutError("Customer has no outstanding balance to carry forward")

        credit: Optional[StoreCredit] = None
        if store_credit_code:
            credit = find_active_credit(store_credit_code, lock=True)

        totals = compute_totals(
            items,
            customer_type,
            vat_included,
            transportation_fee_cents=transportation_fee_cents,
            carried_forward_cents=carried,
            store_credit_cents=credit.amount_cents if credit else 0,
        )
        _check_vat_details(totals.vat_included, address, phone)

        now = utcnow()
        tx = _build_transaction(
            tx_id=new_transaction_id(),
            now=now,
            totals=totals,
            customer=cust,
            name=name,
            address=address,
            phone=phone,
            customer_type=customer_type,
            operator=operator,
            payment_method=payment_method,
            payment_status=PAYMENT_STATUS_UNPAID,
        )
        _add_lines(tx, items)

        if carried:
            tx.lines.append(TransactionLine(
                transaction_id=tx.id,
                line_kind=LINE_KIND_BALANCE_FORWARD,
                name={"en": "Previous Balance Forwarded", "th": "ยอดยกมา"},
                size="",
                sku="BALANCE",
                quantity=1,
                price_walk_in_cents=carried,
                price_contractor_cents=carried,
                price_government_cents=carried,
                cost_price_cents=carried,
            ))
            for old in prior:
                old.payment_status = PAYMENT_STATUS_CONSOLIDATED
                old.consolidated_into_id = tx.id

        if credit is not None:
            consume_store_credit(credit, tx)
            tx.applied_store_credit_id = credit.id
            tx.applied_store_credit_cents = credit.amount_cents

        db.session.flush()

        if totals.total_cents > 0:
            apply_transaction_payment(tx, totals.total_cents, payment_method, user=operator, paid_at=now)
        else:
            tx.payment_status = PAYMENT_STATUS_PAID

        decrement_stock(items, reason=f"Sale {tx.id}", operator=operator.name)

        log_activity(operator, f"Completed transaction {tx.id} for {format_baht(tx.total_cents)}")
        return tx

    tx = run_in_transaction(
        _op,
        invalidates=(cache.PRODUCTS, cache.CUSTOMERS, cache.STORE_CREDITS),
    )
    logger.info("Checkout %s total=%s", tx.id, tx.total_cents)
    return tx


def create_invoice(
    *,
    items: list[CartItem],
    customer: CustomerInfo,
    customer_type: str,
    vat_included: bool,
    due_date: datetime,
    operator: User,
    transportation_fee_cents: int = 0,
) -> Transaction:
    """Create an unpaid invoice (accounts receivable). Stock leaves with the goods."""
    _check_common(customer_type, transportation_fee_cents)
    if not items:
        raise CheckoutError("Cart is empty")
    if customer_type == CUSTOMER_TYPE_WALK_IN:
        raise CheckoutError("Invoices can only be created for contractor, government or organization customers")
    if due_date is None:
        raise ValidationError("due_date is required")

    def _op():
        cust, name, address, phone = _resolve_customer(customer, customer_type)
        totals = compute_totals(
            items,
            customer_type,
            vat_included or customer_type == CUSTOMER_TYPE_GOVERNMENT,
            transportation_fee_cents=transportation_fee_cents,
        )
        _check_vat_details(totals.vat_included, address, phone)

        tx = _build_transaction(
            tx_id=new_transaction_id(),
            now=utcnow(),
            totals=totals,
            customer=cust,
            name=name,
            address=address,
            phone=phone,
            customer_type=customer_type,
            operator=operator,
            payment_method=PAYMENT_METHOD_CASH,
            payment_status=PAYMENT_STATUS_UNPAID,
            due_date=due_date,
        )
        _add_lines(tx, items)
        db.session.flush()

        decrement_stock(items, reason=f"Invoice {tx.id}", operator=operator.name)
        log_activity(operator, f"Created invoice {tx.id} for {format_baht(tx.total_cents)}")
        return tx

    return run_in_transaction(_op, invalidates=(cache.PRODUCTS, cache.CUSTOMERS))


# =============================================================================
# RECORDS
# =============================================================================

def get_transaction(transaction_id: str) -> Transaction:
    tx = db.session.get(Transaction, transaction_id)
    if not tx:
        raise NotFoundError(f"Transaction {transaction_id} not found")
    return tx


def attach_file(transaction_id: str, file_url: str, user: User) -> Transaction:
    def _op():
        tx = get_transaction(transaction_id)
        tx.file_url = file_url
        log_activity(user, f"Attached file to transaction {tx.id}")
        return tx

    return run_in_transaction(_op)


def delete_transaction(transaction_id: str, user: User) -> None:
    """
    Explicit admin delete.

    Refused while the transaction is part of a consolidation (either side)
    or has issued store credits.
    """
    def _op():
        tx = get_transaction(transaction_id)
        if tx.consolidated_into_id:
            raise ConflictError("Transaction was consolidated; undo the consolidation first")
        if db.session.query(Transaction).filter_by(consolidated_into_id=tx.id).first():
            raise ConflictError("Transaction consolidates other invoices; undo the consolidation first")
        if db.session.query(StoreCredit).filter_by(original_transaction_id=tx.id).first():
            raise ConflictError("Store credit was issued against this transaction")
        db.session.query(Order).filter_by(invoice_id=tx.id).update({"invoice_id": None}, synchronize_session=False)
        db.session.delete(tx)
        log_activity(user, f"Deleted transaction {transaction_id}")

    run_in_transaction(_op)
