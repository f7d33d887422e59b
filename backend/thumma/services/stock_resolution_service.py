# Overview: Decide how a selected product is sold: from stock or outsourced.

"""
Stock / outsourcing resolution

A sale is never blocked by a stockout. When the chosen variant has no stock
the operator buys it from a third party and enters the supplier cost; the
selling price is cost * (1 + markup%), rounded UP to the next whole baht.
Outsourced lines collapse all three tiers to that one price.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import ROUND_CEILING, Decimal
from typing import Optional

from ..errors import ValidationError
from ..models.lines import LINE_KIND_MISC, LINE_KIND_OUTSOURCED
from .cart_service import CartItem, PriceBlock, localized_name
from .settings_service import default_outsource_markup_pct


RESOLUTION_IN_STOCK = "IN_STOCK"
RESOLUTION_CHOOSE_VARIANT = "CHOOSE_VARIANT"
RESOLUTION_OUTSOURCE = "OUTSOURCE"

MISC_SKU = "MISC"


@dataclass(frozen=True)
class Resolution:
    action: str
    product_id: int
    variant_id: Optional[int] = None
    available: int = 0

    def to_dict(self) -> dict:
        return {
            "action": self.action,
            "product_id": self.product_id,
            "variant_id": self.variant_id,
            "available": self.available,
        }


def resolve_selection(product, variant=None) -> Resolution:
    """
    - chosen variant with stock -> IN_STOCK (decremented at checkout)
    - chosen variant without stock -> OUTSOURCE
    - no variant chosen: one stocked variant -> IN_STOCK with it,
      several -> CHOOSE_VARIANT, none stocked -> OUTSOURCE
    """
    if variant is not None:
        if variant.product_id != product.id:
            raise ValidationError("Variant does not belong to product")
        if variant.stock_quantity > 0:
            return Resolution(RESOLUTION_IN_STOCK, product.id, variant.id, variant.stock_quantity)
        return Resolution(RESOLUTION_OUTSOURCE, product.id, variant.id, 0)

    stocked = [v for v in product.variants if v.stock_quantity > 0]
    if not stocked:
        only = product.variants[0].id if len(product.variants) == 1 else None
        return Resolution(RESOLUTION_OUTSOURCE, product.id, only, 0)
    if len(product.variants) == 1:
        chosen = stocked[0]
        return Resolution(RESOLUTION_IN_STOCK, product.id, chosen.id, chosen.stock_quantity)
    return Resolution(RESOLUTION_CHOOSE_VARIANT, product.id, None, sum(v.stock_quantity for v in stocked))


def outsourced_selling_price(cost_cents: int, markup_pct) -> int:
    """
    cost * (1 + markup/100), rounded up to a whole currency unit.

    100.00 at 20% -> 120.00; 99.00 at 15% -> 113.85 -> 114.00.
    """
    if cost_cents <= 0:
        raise ValidationError("Supplier cost must be positive")
    markup = Decimal(str(markup_pct))
    if markup < 0:
        raise ValidationError("Markup cannot be negative")
    baht = (Decimal(cost_cents) / 100) * (1 + markup / 100)
    return int(baht.to_integral_value(rounding=ROUND_CEILING)) * 100


def build_outsourced_item(
    product,
    variant,
    cost_cents: int,
    *,
    markup_pct=None,
    selling_price_cents: int | None = None,
    quantity: int = 1,
) -> CartItem:
    """
    Outsourced cart line. The operator may override the markup or the final
    selling price; otherwise the store default markup applies.
    """
    if cost_cents <= 0:
        raise ValidationError("Supplier cost must be positive")
    if selling_price_cents is None:
        if markup_pct is None:
            markup_pct = default_outsource_markup_pct()
        selling_price_cents = outsourced_selling_price(cost_cents, markup_pct)
    if selling_price_cents <= 0:
        raise ValidationError("Selling price must be positive")
    if quantity <= 0:
        raise ValidationError("Quantity must be positive")

    return CartItem(
        name=dict(product.name),
        quantity=quantity,
        price=PriceBlock.flat(selling_price_cents, cost_cents),
        kind=LINE_KIND_OUTSOURCED,
        product_id=product.id,
        variant_id=variant.id if variant is not None else None,
        size=(variant.size if variant is not None else "") or "",
        sku=variant.sku if variant is not None else "",
        is_outsourced=True,
        outsourced_cost_cents=cost_cents,
    )


def build_misc_item(description, cost_cents: int, price_cents: int, quantity: int = 1) -> CartItem:
    """
    Free-text service line. No product, no stock effect.

    Flagged as outsourced so its entered cost is used for profit.
    """
    name = localized_name(description, "description")
    if price_cents <= 0:
        raise ValidationError("Price must be positive")
    if cost_cents < 0:
        raise ValidationError("Cost cannot be negative")
    if quantity <= 0:
        raise ValidationError("Quantity must be positive")
    return CartItem(
        name=name,
        quantity=quantity,
        price=PriceBlock.flat(price_cents, cost_cents),
        kind=LINE_KIND_MISC,
        sku=MISC_SKU,
        is_outsourced=True,
        outsourced_cost_cents=cost_cents,
    )
