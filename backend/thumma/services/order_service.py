# Overview: Pickup and delivery orders, their status changes and conversion to invoices.

"""
Order fulfilment

Stock leaves the shelf when the order is created. Delivery orders start in
Processing, pickup orders in Pending. An unpaid order can be turned into an
invoice once; the invoice id is kept on the order.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Optional

from ..errors import ConflictError, NotFoundError, ThummaError, ValidationError
from ..extensions import db
from ..models import Customer, Order, Transaction, TransactionLine, User
from ..models.customers import CUSTOMER_TYPE_GOVERNMENT, CUSTOMER_TYPES
from ..models.orders import (
    ORDER_PAYMENT_PAID,
    ORDER_PAYMENT_STATUSES,
    ORDER_PAYMENT_UNPAID,
    ORDER_STATUS_CANCELLED,
    ORDER_STATUS_COMPLETED,
    ORDER_STATUS_PENDING,
    ORDER_STATUS_PROCESSING,
    ORDER_STATUSES,
    ORDER_TYPE_DELIVERY,
    ORDER_TYPES,
    OrderLine,
)
from ..models.sales import PAYMENT_METHOD_CASH, PAYMENT_METHODS, PAYMENT_STATUS_UNPAID
from thumma.time_utils import days_after, utcnow
from . import cache
from .activity_service import format_baht, log_activity
from .cart_service import CartItem
from .concurrency import lock_for_update, run_in_transaction
from .pricing_service import compute_totals, price_for_tier, split_vat_inclusive, tax_on
from .sales_service import PREFIX_FROM_ORDER, decrement_stock, new_transaction_id

logger = logging.getLogger(__name__)


INVOICE_DUE_DAYS = 30


class OrderError(ThummaError):
    """Raised when an order cannot be created, changed or invoiced."""
    http_status = 409


def list_orders(status: str | None = None) -> list[Order]:
    query = db.session.query(Order)
    if status:
        if status not in ORDER_STATUSES:
            raise ValidationError(f"Invalid order status: {status}", {"allowed": list(ORDER_STATUSES)})
        query = query.filter(Order.status == status)
    return query.order_by(Order.date.desc(), Order.id.desc()).all()


def get_order(order_id: int) -> Order:
    order = db.session.get(Order, order_id)
    if not order:
        raise NotFoundError(f"Order {order_id} not found")
    return order


def create_order(
    *,
    items: list[CartItem],
    order_type: str,
    customer_type: str,
    payment_status: str,
    operator: User,
    customer_id: Optional[int] = None,
    customer_name: Optional[str] = None,
    customer_phone: Optional[str] = None,
    address: Optional[str] = None,
    notes: Optional[str] = None,
    transportation_fee_cents: int = 0,
    payment_method: Optional[str] = None,
    vat_included: bool = False,
) -> Order:
    """
    Raises:
        ValidationError: bad type, status, method or empty cart
        InventoryError: not enough stock for a catalog line
    """
    if not items:
        raise ValidationError("Order has no items")
    if order_type not in ORDER_TYPES:
        raise ValidationError(f"Invalid order type: {order_type}", {"allowed": list(ORDER_TYPES)})
    if customer_type not in CUSTOMER_TYPES:
        raise ValidationError(f"Invalid customer type: {customer_type}", {"allowed": list(CUSTOMER_TYPES)})
    if payment_status not in ORDER_PAYMENT_STATUSES:
        raise ValidationError(f"Invalid payment status: {payment_status}", {"allowed": list(ORDER_PAYMENT_STATUSES)})
    if payment_method is not None and payment_method not in PAYMENT_METHODS:
        raise ValidationError(f"Invalid payment method: {payment_method}", {"allowed": list(PAYMENT_METHODS)})
    if transportation_fee_cents < 0:
        raise ValidationError("transportation_fee_cents must be >= 0")

    def _op():
        customer: Optional[Customer] = None
        if customer_id is not None:
            customer = db.session.get(Customer, customer_id)
            if customer is None:
                raise NotFoundError(f"Customer {customer_id} not found")
        name = customer.name if customer else (customer_name or "").strip()
        if not name:
            raise ValidationError("customer_name is required")
        delivery_address = address or (customer.address if customer else None)
        if order_type == ORDER_TYPE_DELIVERY and not (delivery_address or "").strip():
            raise ValidationError("Delivery orders require an address")

        totals = compute_totals(
            items,
            customer_type,
            vat_included or customer_type == CUSTOMER_TYPE_GOVERNMENT,
            transportation_fee_cents=transportation_fee_cents,
        )
        order = Order(
            date=utcnow(),
            customer_id=customer.id if customer else None,
            customer_name=name,
            customer_type=customer_type,
            customer_phone=customer_phone or (customer.phone if customer else None),
            type=order_type,
            address=delivery_address,
            notes=notes,
            total_cents=totals.total_cents,
            transportation_fee_cents=transportation_fee_cents,
            status=ORDER_STATUS_PROCESSING if order_type == ORDER_TYPE_DELIVERY else ORDER_STATUS_PENDING,
            payment_status=payment_status,
            payment_method=payment_method if payment_status == ORDER_PAYMENT_PAID else None,
        )
        db.session.add(order)
        for item in items:
            order.lines.append(OrderLine(**item.to_line_kwargs()))
        db.session.flush()

        decrement_stock(items, reason=f"Order #{order.id}", operator=operator.name)
        log_activity(operator, f"Created {order_type.lower()} order #{order.id} for {name} ({format_baht(order.total_cents)}).")
        return order

    return run_in_transaction(_op, invalidates=(cache.PRODUCTS,))


def update_order_status(order_id: int, status: str, user: User) -> Order:
    if status not in ORDER_STATUSES:
        raise ValidationError(f"Invalid order status: {status}", {"allowed": list(ORDER_STATUSES)})

    def _op():
        order = lock_for_update(db.session.query(Order).filter_by(id=order_id)).first()
        if not order:
            raise NotFoundError(f"Order {order_id} not found")
        if order.status == ORDER_STATUS_CANCELLED and status != ORDER_STATUS_CANCELLED:
            raise OrderError("Cancelled orders cannot be reopened")
        previous = order.status
        order.status = status
        log_activity(user, f"Order #{order.id} status changed from {previous} to {status}.")
        return order

    return run_in_transaction(_op)


def update_order_payment_status(order_id: int, payment_status: str, user: User, payment_method: Optional[str] = None) -> Order:
    if payment_status not in ORDER_PAYMENT_STATUSES:
        raise ValidationError(f"Invalid payment status: {payment_status}", {"allowed": list(ORDER_PAYMENT_STATUSES)})
    if payment_method is not None and payment_method not in PAYMENT_METHODS:
        raise ValidationError(f"Invalid payment method: {payment_method}", {"allowed": list(PAYMENT_METHODS)})

    def _op():
        order = lock_for_update(db.session.query(Order).filter_by(id=order_id)).first()
        if not order:
            raise NotFoundError(f"Order {order_id} not found")
        if order.invoice_id and payment_status == ORDER_PAYMENT_UNPAID:
            raise ConflictError("Order was invoiced; record payments against the invoice instead")
        order.payment_status = payment_status
        if payment_status == ORDER_PAYMENT_PAID:
            order.payment_method = payment_method or order.payment_method or PAYMENT_METHOD_CASH
        log_activity(user, f"Order #{order.id} marked {payment_status}.")
        return order

    return run_in_transaction(_op)


def derive_invoice_amounts(order: Order) -> tuple[int, int]:
    """
    Subtotal and tax for the invoice created from an order.

    Government orders carry VAT-inclusive prices and are back-derived.
    Otherwise VAT is present when the goods part of the total equals the
    line amounts plus 7% (within one satang).
    """
    goods_cents = order.total_cents - order.transportation_fee_cents
    if order.customer_type == CUSTOMER_TYPE_GOVERNMENT:
        return split_vat_inclusive(goods_cents)

    items_cents = sum(
        price_for_tier(line.price_block(), order.customer_type) * line.quantity
        for line in order.lines
    )
    with_vat = items_cents + tax_on(items_cents)
    if abs(goods_cents - with_vat) <= 1:
        return items_cents, goods_cents - items_cents
    return goods_cents, 0


def convert_order_to_invoice(order_id: int, user: User, due_date: Optional[datetime] = None) -> Transaction:
    """
    Create an unpaid INV-FROM-ORD- invoice for an order and complete the order.

    Stock is not touched again: it left when the order was created.
    """
    def _op():
        order = lock_for_update(db.session.query(Order).filter_by(id=order_id)).first()
        if not order:
            raise NotFoundError(f"Order {order_id} not found")
        if order.invoice_id:
            raise OrderError(f"Order #{order.id} was already invoiced as {order.invoice_id}")
        if order.status == ORDER_STATUS_CANCELLED:
            raise OrderError("Cancelled orders cannot be invoiced")
        if order.payment_status == ORDER_PAYMENT_PAID:
            raise OrderError("Paid orders do not need an invoice")

        subtotal, tax = derive_invoice_amounts(order)
        now = utcnow()
        customer = db.session.get(Customer, order.customer_id) if order.customer_id else None
        invoice = Transaction(
            id=new_transaction_id(PREFIX_FROM_ORDER),
            date=now,
            subtotal_cents=subtotal,
            tax_cents=tax,
            transportation_fee_cents=order.transportation_fee_cents,
            total_cents=order.total_cents,
            vat_included=tax > 0,
            customer_id=order.customer_id,
            customer_name=order.customer_name,
            customer_address=order.address or (customer.address if customer else None),
            customer_phone=order.customer_phone,
            customer_type=order.customer_type,
            operator=user.name,
            payment_method=order.payment_method or PAYMENT_METHOD_CASH,
            payment_status=PAYMENT_STATUS_UNPAID,
            paid_amount_cents=0,
            due_date=due_date or days_after(now, INVOICE_DUE_DAYS),
            applied_store_credit_cents=0,
        )
        db.session.add(invoice)
        for line in order.lines:
            invoice.lines.append(TransactionLine(
                line_kind=line.line_kind,
                product_id=line.product_id,
                variant_id=line.variant_id,
                name=dict(line.name),
                size=line.size,
                sku=line.sku,
                quantity=line.quantity,
                price_walk_in_cents=line.price_walk_in_cents,
                price_contractor_cents=line.price_contractor_cents,
                price_government_cents=line.price_government_cents,
                cost_price_cents=line.cost_price_cents,
                is_outsourced=line.is_outsourced,
                outsourced_cost_cents=line.outsourced_cost_cents,
            ))
        db.session.flush()

        order.invoice_id = invoice.id
        order.status = ORDER_STATUS_COMPLETED
        order.payment_status = ORDER_PAYMENT_PAID
        log_activity(user, f"Converted order #{order.id} to invoice {invoice.id}.")
        return invoice

    invoice = run_in_transaction(_op, invalidates=(cache.CUSTOMERS,))
    logger.info("Order %s invoiced as %s", order_id, invoice.id)
    return invoice
