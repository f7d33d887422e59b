# Overview: Store credit issue, lookup and single-use redemption.

from __future__ import annotations

from sqlalchemy import func

from ..errors import NotFoundError
from ..extensions import db
from ..models import StoreCredit, Transaction
from thumma.time_utils import epoch_ms, utcnow
from . import cache
from .concurrency import lock_for_update, run_in_transaction
from .pricing_service import StoreCreditError


CREDIT_PREFIX = "CREDIT-"


def _new_credit_code() -> str:
    stamp = epoch_ms()
    code = f"{CREDIT_PREFIX}{stamp}"
    while db.session.get(StoreCredit, code) is not None:
        stamp += 1
        code = f"{CREDIT_PREFIX}{stamp}"
    return code


def issue_store_credit(amount_cents: int, original_transaction_id: str) -> StoreCredit:
    """Add a new credit to the caller's unit of work (no commit)."""
    if amount_cents <= 0:
        raise StoreCreditError("Store credit amount must be positive")
    if db.session.get(Transaction, original_transaction_id) is None:
        raise NotFoundError(f"Transaction {original_transaction_id} not found")
    credit = StoreCredit(
        id=_new_credit_code(),
        amount_cents=amount_cents,
        is_used=False,
        original_transaction_id=original_transaction_id,
        date_issued=utcnow(),
    )
    db.session.add(credit)
    db.session.flush()
    return credit


def create_store_credit(amount_cents: int, original_transaction_id: str) -> StoreCredit:
    """Create a StoreCredit atomically and return the stored record."""
    return run_in_transaction(
        lambda: issue_store_credit(amount_cents, original_transaction_id),
        invalidates=(cache.STORE_CREDITS,),
    )


def find_active_credit(code: str, *, lock: bool = False) -> StoreCredit:
    """Unused credit by code, case-insensitive. Raises StoreCreditError otherwise."""
    normalized = (code or "").strip().upper()
    if not normalized:
        raise StoreCreditError("Store credit code is required")
    query = db.session.query(StoreCredit).filter(
        func.upper(StoreCredit.id) == normalized,
        StoreCredit.is_used.is_(False),
    )
    if lock:
        query = lock_for_update(query)
    credit = query.first()
    if credit is None:
        raise StoreCreditError("Invalid or used store credit code", {"code": code})
    return credit


def consume_store_credit(credit: StoreCredit, transaction: Transaction) -> None:
    """Mark the credit used by transaction, inside the caller's unit of work."""
    if credit.is_used:
        raise StoreCreditError("Store credit has already been used", {"code": credit.id})
    credit.is_used = True
    credit.used_by_transaction_id = transaction.id
    credit.used_at = utcnow()


def list_store_credits(include_used: bool = True) -> list[dict]:
    def _load():
        rows = db.session.query(StoreCredit).order_by(StoreCredit.date_issued.desc()).all()
        return [c.to_dict() for c in rows]
    credits = cache.get_or_load(cache.STORE_CREDITS, "all", _load)
    if include_used:
        return credits
    return [c for c in credits if not c["is_used"]]
