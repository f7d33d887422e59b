# Overview: Accounts payable: suppliers and the bills the store owes them.

"""
Accounts payable

Bills are created Due with nothing paid. Payments go through
payment_service.record_bill_payment(); this module never touches
paid_amount_cents except to refuse edits that would drop the amount below
what was already paid.

Overdue is a read-time view (payment_service.display_status); the status
filter on list_bills() applies the same derivation.
"""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import func

from ..errors import ConflictError, NotFoundError, ValidationError
from ..extensions import db
from ..models import Bill, Supplier, User
from ..models.payables import BILL_STATUS_DUE, BILL_STATUS_OVERDUE, BILL_STATUS_PAID, BILL_STATUSES
from ..validation import ModelValidationPolicy, baht_to_cents, coerce_int, require_amount, validate_payload
from thumma.time_utils import days_after, parse_iso_datetime, start_of_day, utcnow
from . import cache
from .activity_service import log_activity
from .concurrency import run_in_transaction
from .payment_service import is_overdue


SUPPLIER_POLICY = ModelValidationPolicy(
    writable_fields={"name", "contact_person", "email", "phone", "address", "logo_url"},
    required_on_create={"name"},
)


# =============================================================================
# SUPPLIERS
# =============================================================================

def clean_supplier_payload(payload: dict, *, partial: bool) -> dict:
    patch = validate_payload(model=Supplier, payload=payload, policy=SUPPLIER_POLICY, partial=partial)
    for key in ("contact_person", "email", "phone", "address", "logo_url"):
        if key in patch and patch[key] == "":
            patch[key] = None
    return patch


def list_suppliers() -> list[dict]:
    def _load():
        rows = db.session.query(Supplier).order_by(Supplier.name.asc(), Supplier.id.asc()).all()
        return [s.to_dict() for s in rows]
    return cache.get_or_load(cache.SUPPLIERS, "all", _load)


def get_supplier(supplier_id: int) -> Supplier:
    supplier = db.session.get(Supplier, supplier_id)
    if not supplier:
        raise NotFoundError(f"Supplier {supplier_id} not found")
    return supplier


def create_supplier(payload: dict, user: User) -> Supplier:
    patch = clean_supplier_payload(payload, partial=False)

    def _op():
        supplier = Supplier(**patch)
        db.session.add(supplier)
        db.session.flush()
        log_activity(user, f"Added new supplier: {supplier.name}")
        return supplier

    return run_in_transaction(_op, invalidates=(cache.SUPPLIERS,))


def update_supplier(supplier_id: int, payload: dict, user: User) -> Supplier:
    patch = clean_supplier_payload(payload, partial=True)

    def _op():
        supplier = get_supplier(supplier_id)
        for key, value in patch.items():
            setattr(supplier, key, value)
        log_activity(user, f"Edited supplier: {supplier.name}")
        return supplier

    return run_in_transaction(_op, invalidates=(cache.SUPPLIERS,))


def delete_supplier(supplier_id: int, user: User) -> None:
    def _op():
        supplier = get_supplier(supplier_id)
        bill_count = db.session.query(Bill).filter_by(supplier_id=supplier.id).count()
        if bill_count:
            raise ConflictError("Supplier has bills and cannot be deleted", {"bill_count": bill_count})
        name = supplier.name
        db.session.delete(supplier)
        log_activity(user, f"Deleted supplier: {name}")

    run_in_transaction(_op, invalidates=(cache.SUPPLIERS,))


def import_suppliers(rows: list[dict], user: User) -> list[Supplier]:
    """Create suppliers from parsed CSV rows. All rows succeed or none do."""
    patches = []
    for index, row in enumerate(rows):
        try:
            patches.append(clean_supplier_payload(row, partial=False))
        except ValidationError as exc:
            raise ValidationError(f"Row {index + 2}: {exc.message}", {"row": index + 2})
    if not patches:
        raise ValidationError("No suppliers found to import")

    def _op():
        created = []
        for patch in patches:
            supplier = Supplier(**patch)
            db.session.add(supplier)
            created.append(supplier)
        db.session.flush()
        log_activity(user, f"Imported {len(created)} suppliers.")
        return created

    return run_in_transaction(_op, invalidates=(cache.SUPPLIERS,))


# =============================================================================
# BILLS
# =============================================================================

def _require_date(key: str, value) -> datetime:
    if isinstance(value, datetime):
        return value
    if value in (None, ""):
        raise ValidationError(f"{key} is required")
    try:
        parsed = parse_iso_datetime(str(value))
    except ValueError:
        raise ValidationError(f"{key} must be an ISO-8601 date")
    return parsed


def _clean_bill(payload: dict, *, partial: bool) -> dict:
    allowed = {"supplier_id", "invoice_number", "bill_date", "due_date", "amount_cents", "notes", "file_url"}
    unknown = sorted(k for k in payload if k not in allowed)
    if unknown:
        raise ValidationError(f"Field not allowed: {', '.join(unknown)}")
    if not partial:
        missing = sorted(k for k in ("supplier_id", "invoice_number", "bill_date", "due_date", "amount_cents") if payload.get(k) in (None, ""))
        if missing:
            raise ValidationError(f"Missing required fields: {', '.join(missing)}")

    clean: dict = {}
    if "supplier_id" in payload:
        clean["supplier_id"] = get_supplier(coerce_int("supplier_id", payload["supplier_id"])).id
    if "invoice_number" in payload:
        number = str(payload["invoice_number"] or "").strip()
        if not number:
            raise ValidationError("invoice_number cannot be blank")
        clean["invoice_number"] = number[:128]
    for key in ("bill_date", "due_date"):
        if key in payload:
            clean[key] = _require_date(key, payload[key])
    if "amount_cents" in payload:
        clean["amount_cents"] = require_amount("amount_cents", payload["amount_cents"], allow_zero=False)
    if "notes" in payload:
        clean["notes"] = (payload["notes"] or "").strip() or None
    if "file_url" in payload:
        clean["file_url"] = payload["file_url"] or None

    bill_date = clean.get("bill_date")
    due_date = clean.get("due_date")
    if bill_date and due_date and due_date < bill_date:
        raise ValidationError("due_date cannot be before bill_date")
    return clean


def get_bill(bill_id: int) -> Bill:
    bill = db.session.get(Bill, bill_id)
    if not bill:
        raise NotFoundError(f"Bill {bill_id} not found")
    return bill


def list_bills(status: str | None = None, supplier_id: int | None = None, now: datetime | None = None) -> list[Bill]:
    """Bills ordered by due date. status filters on the displayed status (Due / Overdue / Paid)."""
    if status is not None and status not in BILL_STATUSES:
        raise ValidationError(f"Invalid bill status: {status}", {"allowed": list(BILL_STATUSES)})
    now = now or utcnow()

    query = db.session.query(Bill)
    if supplier_id is not None:
        query = query.filter(Bill.supplier_id == supplier_id)
    if status == BILL_STATUS_PAID:
        query = query.filter(Bill.status == BILL_STATUS_PAID)
    elif status in (BILL_STATUS_DUE, BILL_STATUS_OVERDUE):
        query = query.filter(Bill.status == BILL_STATUS_DUE)
    bills = query.order_by(Bill.due_date.asc(), Bill.id.asc()).all()

    if status == BILL_STATUS_OVERDUE:
        return [b for b in bills if is_overdue(b, now)]
    if status == BILL_STATUS_DUE:
        return [b for b in bills if not is_overdue(b, now)]
    return bills


def create_bill(payload: dict, user: User) -> Bill:
    clean = _clean_bill(payload, partial=False)

    def _op():
        bill = Bill(status=BILL_STATUS_DUE, paid_amount_cents=0, **clean)
        db.session.add(bill)
        db.session.flush()
        log_activity(user, f"Added new bill #{bill.invoice_number} from supplier ID {bill.supplier_id}.")
        return bill

    return run_in_transaction(_op)


def update_bill(bill_id: int, payload: dict, user: User) -> Bill:
    clean = _clean_bill(payload, partial=True)

    def _op():
        bill = get_bill(bill_id)
        bill_date = clean.get("bill_date", bill.bill_date)
        due_date = clean.get("due_date", bill.due_date)
        if due_date < bill_date:
            raise ValidationError("due_date cannot be before bill_date")
        if "amount_cents" in clean:
            amount = clean["amount_cents"]
            if amount < bill.paid_amount_cents:
                raise ConflictError(
                    "Bill amount cannot be less than the amount already paid",
                    {"paid_amount_cents": bill.paid_amount_cents},
                )
        for key, value in clean.items():
            setattr(bill, key, value)
        bill.status = BILL_STATUS_PAID if bill.paid_amount_cents >= bill.amount_cents else BILL_STATUS_DUE
        log_activity(user, f"Edited bill #{bill.invoice_number}")
        return bill

    return run_in_transaction(_op)


def delete_bill(bill_id: int, user: User) -> None:
    def _op():
        bill = get_bill(bill_id)
        number = bill.invoice_number
        db.session.delete(bill)
        log_activity(user, f"Deleted bill #{number}")

    run_in_transaction(_op)


def import_bills(rows: list[dict], user: User) -> dict:
    """
    Create bills from parsed CSV rows.

    Each row names its supplier; suppliers that do not exist yet (matched
    case-insensitively by name) are created in the same unit of work.
    Columns: supplier_name, invoice_number, bill_date, due_date, amount, notes.
    Amounts are in baht.
    """
    parsed = []
    for index, row in enumerate(rows):
        line = index + 2
        name = str(row.get("supplier_name") or "").strip()
        if not name:
            raise ValidationError(f"Row {line}: supplier_name is required", {"row": line})
        try:
            bill = _clean_bill(
                {
                    "invoice_number": row.get("invoice_number"),
                    "bill_date": row.get("bill_date"),
                    "due_date": row.get("due_date"),
                    "amount_cents": baht_to_cents(row.get("amount")),
                    "notes": row.get("notes"),
                },
                partial=True,
            )
        except ValidationError as exc:
            raise ValidationError(f"Row {line}: {exc.message}", {"row": line})
        for key in ("invoice_number", "bill_date", "due_date", "amount_cents"):
            if key not in bill:
                raise ValidationError(f"Row {line}: {key} is required", {"row": line})
        parsed.append((name, bill))
    if not parsed:
        raise ValidationError("No bills found to import")

    def _op():
        by_name = {
            s.name.lower(): s
            for s in db.session.query(Supplier).filter(
                func.lower(Supplier.name).in_(sorted({name.lower() for name, _ in parsed}))
            )
        }
        created_suppliers = []
        for name, _ in parsed:
            if name.lower() not in by_name:
                supplier = Supplier(name=name)
                db.session.add(supplier)
                by_name[name.lower()] = supplier
                created_suppliers.append(supplier)
        db.session.flush()

        bills = []
        for name, clean in parsed:
            bill = Bill(
                supplier_id=by_name[name.lower()].id,
                status=BILL_STATUS_DUE,
                paid_amount_cents=0,
                **clean,
            )
            db.session.add(bill)
            bills.append(bill)
        db.session.flush()
        log_activity(user, f"Imported {len(bills)} bills and created {len(created_suppliers)} suppliers.")
        return {"bills": bills, "suppliers": created_suppliers}

    return run_in_transaction(_op, invalidates=(cache.SUPPLIERS,))


def payables_summary(now: datetime | None = None) -> dict:
    """Total owed and what falls due today / in the next seven days."""
    now = now or utcnow()
    today = start_of_day(now)
    tomorrow = days_after(today, 1)
    week_end = days_after(today, 8)

    open_bills = db.session.query(Bill).filter(Bill.status != BILL_STATUS_PAID).all()
    due_today = [b for b in open_bills if today <= b.due_date < tomorrow]
    due_week = [b for b in open_bills if tomorrow <= b.due_date < week_end]
    overdue = [b for b in open_bills if is_overdue(b, now)]
    return {
        "total_owed_cents": sum(b.balance_cents for b in open_bills),
        "due_today_cents": sum(b.balance_cents for b in due_today),
        "due_today_count": len(due_today),
        "due_next_7_days_cents": sum(b.balance_cents for b in due_week),
        "due_next_7_days_count": len(due_week),
        "overdue_cents": sum(b.balance_cents for b in overdue),
        "overdue_count": len(overdue),
    }
