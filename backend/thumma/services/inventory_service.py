# Overview: Stock levels, stock status derivation and the stock movement history.

"""
Inventory invariants

- stock_quantity never drops below zero (checked here and by a DB constraint).
- status always matches stock_quantity: 0 -> Out of Stock,
  below the store's low-stock threshold -> Low Stock, else In Stock.
- Every stock change appends a StockMovement row in the same unit of work.
"""

from __future__ import annotations

from ..errors import ConflictError, NotFoundError, ValidationError
from ..extensions import db
from ..models import Product, ProductVariant, StockMovement, User
from ..models.catalog import (
    PRODUCT_STATUS_IN_STOCK,
    PRODUCT_STATUS_LOW_STOCK,
    PRODUCT_STATUS_OUT_OF_STOCK,
)
from ..validation import coerce_int
from thumma.time_utils import utcnow
from . import cache
from .activity_service import log_activity
from .concurrency import lock_for_update, run_in_transaction
from .settings_service import low_stock_threshold


class InventoryError(ConflictError):
    """Raised when a stock change would break an inventory rule."""


def derive_status(stock: int, threshold: int) -> str:
    if stock <= 0:
        return PRODUCT_STATUS_OUT_OF_STOCK
    if stock < threshold:
        return PRODUCT_STATUS_LOW_STOCK
    return PRODUCT_STATUS_IN_STOCK


def refresh_status(variant: ProductVariant, threshold: int | None = None) -> None:
    if threshold is None:
        threshold = low_stock_threshold()
    variant.status = derive_status(variant.stock_quantity, threshold)


def get_variant(variant_id: int, *, lock: bool = False) -> ProductVariant:
    query = db.session.query(ProductVariant).filter_by(id=variant_id)
    if lock:
        query = lock_for_update(query)
    variant = query.first()
    if not variant:
        raise NotFoundError(f"Variant {variant_id} not found")
    return variant


def apply_stock_change(
    variant: ProductVariant,
    change: int,
    *,
    reason: str,
    operator: str,
    threshold: int | None = None,
) -> StockMovement:
    """
    Change stock inside the caller's unit of work (no commit).

    Raises InventoryError if the change would take stock below zero.
    """
    if change == 0:
        raise ValidationError("Stock change cannot be zero")
    new_quantity = variant.stock_quantity + change
    if new_quantity < 0:
        raise InventoryError(
            f"Insufficient stock for {variant.sku}",
            {"sku": variant.sku, "available": variant.stock_quantity, "requested": -change},
        )
    variant.stock_quantity = new_quantity
    refresh_status(variant, threshold)

    movement = StockMovement(
        variant_id=variant.id,
        change=change,
        reason=reason,
        operator=operator,
        created_at=utcnow(),
    )
    db.session.add(movement)
    return movement


def adjust_stock(variant_id: int, change, reason: str, user: User) -> ProductVariant:
    """Manual stock correction (restock, count fix, damage)."""
    change = coerce_int("change", change)
    reason = (reason or "").strip()
    if not reason:
        raise ValidationError("reason is required")

    def _op():
        variant = get_variant(variant_id, lock=True)
        apply_stock_change(variant, change, reason=reason, operator=user.name)
        log_activity(user, f"Adjusted stock for {variant.sku} by {change:+d} ({reason})")
        return variant

    return run_in_transaction(_op, invalidates=(cache.PRODUCTS,))


def list_low_stock(threshold: int | None = None) -> list[dict]:
    """Variants below the low-stock threshold (including out of stock), lowest first."""
    if threshold is None:
        threshold = low_stock_threshold()
    rows = (
        db.session.query(ProductVariant, Product)
        .join(Product, Product.id == ProductVariant.product_id)
        .filter(ProductVariant.stock_quantity < threshold)
        .order_by(ProductVariant.stock_quantity.asc(), ProductVariant.id.asc())
        .all()
    )
    return [
        {
            "product_id": product.id,
            "variant_id": variant.id,
            "name": product.name,
            "size": variant.size,
            "sku": variant.sku,
            "stock": variant.stock_quantity,
            "status": variant.status,
        }
        for variant, product in rows
    ]


def find_by_barcode(code: str) -> tuple[Product, ProductVariant]:
    code = (code or "").strip()
    if not code:
        raise ValidationError("barcode is required")
    variant = db.session.query(ProductVariant).filter_by(barcode=code).first()
    if not variant:
        raise NotFoundError(f"No product with barcode {code}")
    return variant.product, variant


def rederive_statuses(threshold: int) -> int:
    """Re-derive every variant status inside the caller's unit of work. Returns how many changed."""
    changed = 0
    for variant in db.session.query(ProductVariant).all():
        status = derive_status(variant.stock_quantity, threshold)
        if variant.status != status:
            variant.status = status
            changed += 1
    return changed


def recompute_all_statuses() -> int:
    """Re-derive every variant status against the current threshold setting."""
    threshold = low_stock_threshold()
    return run_in_transaction(lambda: rederive_statuses(threshold), invalidates=(cache.PRODUCTS,))
