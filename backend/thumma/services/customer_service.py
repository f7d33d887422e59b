# Overview: Customer master data.

from __future__ import annotations

from sqlalchemy import func

from ..errors import ConflictError, NotFoundError, ValidationError
from ..extensions import db
from ..models import Customer, Order, Transaction, User
from ..models.customers import CUSTOMER_TYPE_WALK_IN, CUSTOMER_TYPES
from ..validation import ModelValidationPolicy, validate_payload
from . import cache
from .activity_service import log_activity
from .concurrency import run_in_transaction


CUSTOMER_POLICY = ModelValidationPolicy(
    writable_fields={"name", "type", "phone", "address"},
    required_on_create={"name"},
)


def clean_customer_payload(payload: dict, *, partial: bool) -> dict:
    patch = validate_payload(model=Customer, payload=payload, policy=CUSTOMER_POLICY, partial=partial)
    if not partial:
        patch.setdefault("type", CUSTOMER_TYPE_WALK_IN)
    if "type" in patch and patch["type"] not in CUSTOMER_TYPES:
        raise ValidationError(f"Invalid customer type: {patch['type']}", {"allowed": list(CUSTOMER_TYPES)})
    for key in ("phone", "address"):
        if key in patch and patch[key] == "":
            patch[key] = None
    return patch


def list_customers() -> list[dict]:
    def _load():
        rows = db.session.query(Customer).order_by(Customer.name.asc(), Customer.id.asc()).all()
        return [c.to_dict() for c in rows]
    return cache.get_or_load(cache.CUSTOMERS, "all", _load)


def search_customers(term: str, limit: int = 20) -> list[Customer]:
    term = (term or "").strip()
    if not term:
        return []
    return (
        db.session.query(Customer)
        .filter(func.lower(Customer.name).contains(term.lower()))
        .order_by(Customer.name.asc())
        .limit(limit)
        .all()
    )


def get_customer(customer_id: int) -> Customer:
    customer = db.session.get(Customer, customer_id)
    if not customer:
        raise NotFoundError(f"Customer {customer_id} not found")
    return customer


def add_customer(patch: dict) -> Customer:
    """Add a validated customer to the caller's unit of work (no commit)."""
    customer = Customer(**patch)
    db.session.add(customer)
    db.session.flush()
    return customer


def create_customer(payload: dict, user: User) -> Customer:
    patch = clean_customer_payload(payload, partial=False)

    def _op():
        customer = add_customer(patch)
        log_activity(user, f"Added new customer: {customer.name}")
        return customer

    return run_in_transaction(_op, invalidates=(cache.CUSTOMERS,))


def update_customer(customer_id: int, payload: dict, user: User) -> Customer:
    patch = clean_customer_payload(payload, partial=True)

    def _op():
        customer = get_customer(customer_id)
        for key, value in patch.items():
            setattr(customer, key, value)
        log_activity(user, f"Edited customer: {customer.name}")
        return customer

    return run_in_transaction(_op, invalidates=(cache.CUSTOMERS,))


def delete_customer(customer_id: int, user: User) -> None:
    def _op():
        customer = get_customer(customer_id)
        has_history = (
            db.session.query(Transaction).filter_by(customer_id=customer.id).first()
            or db.session.query(Order).filter_by(customer_id=customer.id).first()
        )
        if has_history:
            raise ConflictError("Customer has transactions or orders and cannot be deleted")
        name = customer.name
        db.session.delete(customer)
        log_activity(user, f"Deleted customer: {name}")

    run_in_transaction(_op, invalidates=(cache.CUSTOMERS,))


def import_customers(rows: list[dict], user: User) -> list[Customer]:
    """Create customers from parsed CSV rows. All rows succeed or none do."""
    patches = []
    for index, row in enumerate(rows):
        try:
            patches.append(clean_customer_payload(row, partial=False))
        except ValidationError as exc:
            raise ValidationError(f"Row {index + 2}: {exc.message}", {"row": index + 2})

    if not patches:
        raise ValidationError("No customers found to import")

    def _op():
        created = [add_customer(p) for p in patches]
        log_activity(user, f"Imported {len(created)} customers.")
        return created

    return run_in_transaction(_op, invalidates=(cache.CUSTOMERS,))
