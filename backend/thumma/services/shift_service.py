# Overview: End-of-day shift close: sales, profit, payment breakdown and best sellers.

from __future__ import annotations

import logging
import time
from collections import OrderedDict
from datetime import datetime
from typing import Optional

from ..errors import ConflictError, NotFoundError
from ..extensions import db
from ..models import ShiftReport, Transaction, User
from ..models.lines import LINE_KIND_CATALOG, LINE_KIND_MISC, LINE_KIND_OUTSOURCED
from ..models.sales import (
    PAYMENT_METHOD_BANK_TRANSFER,
    PAYMENT_METHOD_CARD,
    PAYMENT_METHOD_CASH,
    PAYMENT_STATUS_PAID,
)
from thumma.time_utils import epoch_ms, to_utc_z, utcnow
from .activity_service import format_baht, log_activity
from .concurrency import lock_for_update, run_in_transaction
from .pricing_service import div_round_half_up, price_for_tier

logger = logging.getLogger(__name__)


TOP_SELLING_LIMIT = 10

# Lines that represent goods sold in the shift
GOODS_LINE_KINDS = (LINE_KIND_CATALOG, LINE_KIND_OUTSOURCED, LINE_KIND_MISC)


class ShiftError(ConflictError):
    """Raised when a shift cannot be closed."""


def last_shift() -> Optional[ShiftReport]:
    return db.session.query(ShiftReport).order_by(ShiftReport.end_time.desc()).first()


def open_shift_transactions(*, lock: bool = False) -> list[Transaction]:
    """Transactions not yet assigned to a shift, created after the last shift ended."""
    query = db.session.query(Transaction).filter(Transaction.shift_id.is_(None))
    previous = last_shift()
    if previous is not None:
        query = query.filter(Transaction.date > previous.end_time)
    query = query.order_by(Transaction.date.asc())
    if lock:
        query = lock_for_update(query)
    return query.all()


def line_profit_cents(tx: Transaction, line) -> int:
    """
    Revenue of the line scaled by total/subtotal, minus its cost.

    Cost is the outsourced purchase price when present, else the catalog cost.
    """
    revenue = price_for_tier(line.price_block(), tx.customer_type) * line.quantity
    if tx.subtotal_cents > 0:
        revenue = div_round_half_up(revenue * tx.total_cents, tx.subtotal_cents)
    unit_cost = line.outsourced_cost_cents if line.outsourced_cost_cents is not None else line.cost_price_cents
    return revenue - unit_cost * line.quantity


def summarize(transactions: list[Transaction]) -> dict:
    total_sales = 0
    total_profit = 0
    breakdown = {
        PAYMENT_METHOD_CASH: 0,
        PAYMENT_METHOD_CARD: 0,
        PAYMENT_METHOD_BANK_TRANSFER: 0,
    }
    sold: "OrderedDict[tuple, dict]" = OrderedDict()

    for tx in transactions:
        total_sales += tx.total_cents
        if tx.payment_status == PAYMENT_STATUS_PAID and tx.payment_method in breakdown:
            breakdown[tx.payment_method] += tx.total_cents

        for line in tx.lines:
            if line.line_kind not in GOODS_LINE_KINDS:
                continue
            total_profit += line_profit_cents(tx, line)
            key = (line.variant_id, line.sku, line.name.get("en"))
            entry = sold.get(key)
            if entry is None:
                sold[key] = {"name": line.name, "sku": line.sku, "size": line.size, "quantity": line.quantity}
            else:
                entry["quantity"] += line.quantity

    top = sorted(sold.values(), key=lambda item: item["quantity"], reverse=True)[:TOP_SELLING_LIMIT]
    return {
        "total_sales_cents": total_sales,
        "total_profit_cents": total_profit,
        "total_transactions": len(transactions),
        "payment_breakdown": {
            "cash_cents": breakdown[PAYMENT_METHOD_CASH],
            "card_cents": breakdown[PAYMENT_METHOD_CARD],
            "bank_transfer_cents": breakdown[PAYMENT_METHOD_BANK_TRANSFER],
        },
        "top_selling_items": top,
        "transaction_ids": [tx.id for tx in transactions],
    }


def preview_shift() -> dict:
    """Running totals of the current shift; nothing is written."""
    transactions = open_shift_transactions()
    previous = last_shift()
    data = summarize(transactions)
    start = previous.end_time if previous else (transactions[0].date if transactions else None)
    data["start_time"] = to_utc_z(start)
    return data


def _new_shift_id() -> str:
    while True:
        candidate = f"SHIFT-{epoch_ms()}"
        if db.session.get(ShiftReport, candidate) is None:
            return candidate
        time.sleep(0.001)


def close_shift(user: User, now: Optional[datetime] = None) -> ShiftReport:
    """
    Close the current shift and stamp its transactions.

    Raises:
        ShiftError: there are no transactions in the current shift
    """
    def _op():
        transactions = open_shift_transactions(lock=True)
        if not transactions:
            raise ShiftError("No transactions in the current shift to close")

        end_time = now or utcnow()
        previous = last_shift()
        data = summarize(transactions)
        breakdown = data["payment_breakdown"]
        report = ShiftReport(
            id=_new_shift_id(),
            start_time=previous.end_time if previous else transactions[0].date,
            end_time=end_time,
            closed_by_user_id=user.id,
            closed_by_name=user.name,
            total_sales_cents=data["total_sales_cents"],
            total_profit_cents=data["total_profit_cents"],
            total_transactions=data["total_transactions"],
            cash_cents=breakdown["cash_cents"],
            card_cents=breakdown["card_cents"],
            bank_transfer_cents=breakdown["bank_transfer_cents"],
            top_selling_items=data["top_selling_items"],
        )
        db.session.add(report)
        db.session.flush()
        for tx in transactions:
            tx.shift_id = report.id

        log_activity(
            user,
            f"Closed shift {report.id}: {report.total_transactions} transactions, {format_baht(report.total_sales_cents)}.",
        )
        return report

    report = run_in_transaction(_op)
    logger.info("Shift %s closed with %s transactions", report.id, report.total_transactions)
    return report


def list_shifts(limit: int = 100) -> list[ShiftReport]:
    return (
        db.session.query(ShiftReport)
        .order_by(ShiftReport.end_time.desc())
        .limit(limit)
        .all()
    )


def get_shift(shift_id: str) -> ShiftReport:
    report = db.session.get(ShiftReport, shift_id)
    if not report:
        raise NotFoundError(f"Shift {shift_id} not found")
    return report
