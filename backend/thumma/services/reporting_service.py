# Overview: CEO dashboard figures and filtered sales history.

from __future__ import annotations

from datetime import datetime
from typing import Optional

from sqlalchemy import func, or_

from ..errors import ValidationError
from ..extensions import db
from ..models import Transaction, User
from ..models.auth import WAGE_TYPE_DAILY
from ..models.sales import (
    OPEN_PAYMENT_STATUSES,
    PAYMENT_METHOD_BANK_TRANSFER,
    PAYMENT_METHOD_CARD,
    PAYMENT_METHOD_CASH,
    PAYMENT_METHOD_CHEQUE,
    PAYMENT_STATUS_PAID,
    PAYMENT_STATUSES,
)
from ..validation import coerce_int
from thumma.time_utils import days_after, parse_iso_datetime, start_of_day, to_utc_z, utcnow
from .inventory_service import list_low_stock
from .payables_service import payables_summary
from .payment_service import is_overdue
from .receivables_service import receivables_summary
from .sales_service import PREFIX_CONSOLIDATED


MAX_HISTORY_LIMIT = 1000


def _sales_query():
    # Consolidated invoices re-bill earlier sales and are not new revenue
    return db.session.query(Transaction).filter(~Transaction.id.startswith(PREFIX_CONSOLIDATED))


def _sales_since(since: datetime) -> int:
    total = (
        _sales_query()
        .with_entities(func.coalesce(func.sum(Transaction.total_cents), 0))
        .filter(Transaction.date >= since)
        .scalar()
    )
    return int(total or 0)


def _today_breakdown(today: datetime) -> dict:
    todays = _sales_query().filter(Transaction.date >= today).all()
    paid_by_method = {
        PAYMENT_METHOD_CASH: 0,
        PAYMENT_METHOD_CARD: 0,
        PAYMENT_METHOD_BANK_TRANSFER: 0,
        PAYMENT_METHOD_CHEQUE: 0,
    }
    unpaid = 0
    for tx in todays:
        if tx.payment_status in OPEN_PAYMENT_STATUSES:
            unpaid += tx.balance_cents
        elif tx.payment_status == PAYMENT_STATUS_PAID and tx.payment_method in paid_by_method:
            paid_by_method[tx.payment_method] += tx.total_cents
    return {
        "accounts_receivable_cents": unpaid,
        "paid_cents": sum(paid_by_method.values()),
        "cash_cents": paid_by_method[PAYMENT_METHOD_CASH],
        "card_cents": paid_by_method[PAYMENT_METHOD_CARD],
        "bank_transfer_cents": paid_by_method[PAYMENT_METHOD_BANK_TRANSFER],
        "cheque_cents": paid_by_method[PAYMENT_METHOD_CHEQUE],
    }


def daily_wages_cents() -> int:
    total = (
        db.session.query(func.coalesce(func.sum(User.salary_cents), 0))
        .filter(User.wage_type == WAGE_TYPE_DAILY, User.is_active.is_(True))
        .scalar()
    )
    return int(total or 0)


def overdue_receivables(now: datetime) -> list[Transaction]:
    """Open invoices whose due date is before the start of today."""
    today = start_of_day(now)
    rows = (
        db.session.query(Transaction)
        .filter(Transaction.payment_status.in_(OPEN_PAYMENT_STATUSES))
        .filter(Transaction.due_date.isnot(None))
        .order_by(Transaction.due_date.asc())
        .all()
    )
    return [t for t in rows if is_overdue(t, today)]


def dashboard_summary(now: Optional[datetime] = None) -> dict:
    now = now or utcnow()
    today = start_of_day(now)
    month_start = today.replace(day=1)
    year_start = today.replace(month=1, day=1)

    overdue = overdue_receivables(now)
    return {
        "generated_at": to_utc_z(now),
        "sales": {
            "today_cents": _sales_since(today),
            "month_cents": _sales_since(month_start),
            "year_cents": _sales_since(year_start),
        },
        "today": _today_breakdown(today),
        "payables": payables_summary(now),
        "receivables": receivables_summary(now),
        "overdue_receivables": [
            {
                "id": t.id,
                "customer_name": t.customer_name,
                "due_date": to_utc_z(t.due_date),
                "balance_cents": t.balance_cents,
            }
            for t in overdue
        ],
        "low_stock": list_low_stock(),
        "daily_wages_cents": daily_wages_cents(),
    }


def _filter_date(key: str, value) -> Optional[datetime]:
    if value in (None, ""):
        return None
    try:
        return parse_iso_datetime(str(value))
    except ValueError:
        raise ValidationError(f"{key} must be an ISO-8601 date")


def sales_history(filters: Optional[dict] = None) -> list[Transaction]:
    """
    Transactions newest first.

    filters: date_from, date_to (inclusive day), customer_id, payment_status,
    search (matches id or customer name), limit.
    """
    filters = filters or {}
    query = db.session.query(Transaction)

    date_from = _filter_date("date_from", filters.get("date_from"))
    date_to = _filter_date("date_to", filters.get("date_to"))
    if date_from:
        query = query.filter(Transaction.date >= date_from)
    if date_to:
        if date_to == start_of_day(date_to):
            date_to = days_after(date_to, 1)
            query = query.filter(Transaction.date < date_to)
        else:
            query = query.filter(Transaction.date <= date_to)

    if filters.get("customer_id") not in (None, ""):
        query = query.filter(Transaction.customer_id == coerce_int("customer_id", filters["customer_id"]))

    status = filters.get("payment_status")
    if status:
        if status not in PAYMENT_STATUSES:
            raise ValidationError(f"Invalid payment status: {status}", {"allowed": list(PAYMENT_STATUSES)})
        query = query.filter(Transaction.payment_status == status)

    search = str(filters.get("search") or "").strip()
    if search:
        pattern = f"%{search}%"
        query = query.filter(or_(Transaction.id.ilike(pattern), Transaction.customer_name.ilike(pattern)))

    limit = coerce_int("limit", filters.get("limit", 200))
    if limit <= 0 or limit > MAX_HISTORY_LIMIT:
        raise ValidationError(f"limit must be between 1 and {MAX_HISTORY_LIMIT}")
    return query.order_by(Transaction.date.desc(), Transaction.id.desc()).limit(limit).all()
