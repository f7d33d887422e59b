# Overview: Item returns against a past transaction, refunded as store credit.

"""
Returns

The refund for a returned unit is what the customer actually paid for it:
the line subtotal plus its proportional share of the transaction's tax,
divided by the units sold. Government prices already include VAT, so a
government unit refunds at its catalog price.

    unit_paid = (line_subtotal + tax * line_subtotal / tx.subtotal) / qty

Returned catalog units go back into stock. Outsourced and misc lines are
refunded without any stock effect. The whole return (stock, returned-item
rows, store credit) is one unit of work.
"""

from __future__ import annotations

from dataclasses import dataclass

from ..errors import NotFoundError, ThummaError, ValidationError
from ..extensions import db
from ..models import ProductVariant, ReturnedItem, StoreCredit, Transaction, TransactionLine, User
from ..models.customers import CUSTOMER_TYPE_GOVERNMENT
from ..models.lines import LINE_KIND_CATALOG, LINE_KIND_MISC, LINE_KIND_OUTSOURCED
from ..models.sales import RETURN_REASONS
from ..validation import coerce_int
from thumma.time_utils import utcnow
from . import cache
from .activity_service import format_baht, log_activity
from .concurrency import lock_for_update, run_in_transaction
from .pricing_service import div_round_half_up, price_for_tier
from .settings_service import low_stock_threshold
from .inventory_service import apply_stock_change
from .store_credit_service import issue_store_credit


RETURNABLE_LINE_KINDS = (LINE_KIND_CATALOG, LINE_KIND_OUTSOURCED, LINE_KIND_MISC)


class ReturnError(ThummaError):
    """Raised when a return request is invalid."""


@dataclass(frozen=True)
class ReturnRequest:
    line_id: int
    quantity: int
    reason: str


def returned_quantity(tx: Transaction, line_id: int) -> int:
    return sum(r.quantity for r in tx.returned_items if r.line_id == line_id)


def unit_refund_cents(tx: Transaction, line: TransactionLine) -> int:
    """Tax-inclusive price the customer paid per unit of this line."""
    if line.quantity <= 0:
        return 0
    unit_price = price_for_tier(line.price_block(), tx.customer_type)
    if tx.customer_type == CUSTOMER_TYPE_GOVERNMENT:
        # Government prices already include VAT
        return unit_price
    line_subtotal = unit_price * line.quantity
    if tx.subtotal_cents > 0:
        tax_share = div_round_half_up(tx.tax_cents * line_subtotal, tx.subtotal_cents)
    else:
        tax_share = 0
    return div_round_half_up(line_subtotal + tax_share, line.quantity)


def parse_return_items(raw_items) -> list[ReturnRequest]:
    if not isinstance(raw_items, list) or not raw_items:
        raise ValidationError("items must be a non-empty list")
    requests = []
    for index, raw in enumerate(raw_items):
        if not isinstance(raw, dict):
            raise ValidationError(f"items[{index}] must be an object")
        reason = raw.get("reason")
        if reason not in RETURN_REASONS:
            raise ValidationError(f"items[{index}].reason is invalid", {"allowed": list(RETURN_REASONS)})
        quantity = coerce_int(f"items[{index}].quantity", raw.get("quantity"))
        if quantity <= 0:
            raise ValidationError(f"items[{index}].quantity must be positive")
        requests.append(ReturnRequest(
            line_id=coerce_int(f"items[{index}].line_id", raw.get("line_id")),
            quantity=quantity,
            reason=reason,
        ))
    return requests


def _line_for(tx: Transaction, line_id: int) -> TransactionLine:
    for line in tx.lines:
        if line.id == line_id:
            if line.line_kind not in RETURNABLE_LINE_KINDS:
                raise ReturnError(f"Line {line_id} cannot be returned")
            return line
    raise NotFoundError(f"Line {line_id} not found on transaction {tx.id}")


def calculate_refund(tx: Transaction, requests: list[ReturnRequest]) -> int:
    """Total refund for the requested units. Validates returnable quantities."""
    pending: dict[int, int] = {}
    total = 0
    for request in requests:
        line = _line_for(tx, request.line_id)
        already = returned_quantity(tx, line.id) + pending.get(line.id, 0)
        if request.quantity > line.quantity - already:
            raise ReturnError(
                f"Cannot return {request.quantity} of line {line.id}",
                {"sold": line.quantity, "already_returned": already},
            )
        pending[line.id] = pending.get(line.id, 0) + request.quantity
        total += unit_refund_cents(tx, line) * request.quantity
    return total


def process_return(transaction_id: str, raw_items, user: User) -> StoreCredit:
    """Return items, restock catalog units and issue a store credit for the refund."""
    requests = parse_return_items(raw_items)

    def _op():
        tx = lock_for_update(db.session.query(Transaction).filter_by(id=transaction_id)).first()
        if not tx:
            raise NotFoundError(f"Transaction {transaction_id} not found")

        refund = calculate_refund(tx, requests)
        if refund <= 0:
            raise ReturnError("Nothing to refund")

        credit = issue_store_credit(refund, tx.id)
        threshold = low_stock_threshold()

        for request in requests:
            line = _line_for(tx, request.line_id)
            if line.line_kind == LINE_KIND_CATALOG and not line.is_outsourced and line.variant_id is not None:
                variant = lock_for_update(db.session.query(ProductVariant).filter_by(id=line.variant_id)).first()
                if variant is not None:
                    apply_stock_change(
                        variant,
                        request.quantity,
                        reason=f"Return from {tx.id} ({request.reason})",
                        operator=user.name,
                        threshold=threshold,
                    )
            item = ReturnedItem(
                transaction_id=tx.id,
                line_id=line.id,
                product_id=line.product_id,
                variant_id=line.variant_id,
                name=dict(line.name),
                size=line.size,
                quantity=request.quantity,
                reason=request.reason,
                unit_refund_cents=unit_refund_cents(tx, line),
                store_credit_id=credit.id,
                created_at=utcnow(),
            )
            db.session.add(item)
            tx.returned_items.append(item)

        log_activity(
            user,
            f"Processed return for transaction {tx.id}, issued credit {credit.id} for {format_baht(refund)}",
        )
        return credit

    return run_in_transaction(_op, invalidates=(cache.PRODUCTS, cache.STORE_CREDITS))
