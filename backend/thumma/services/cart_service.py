# Overview: Ephemeral checkout lines (CartItem) and the cart that holds them.

from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import Optional

from ..errors import ConflictError, ValidationError
from ..extensions import db
from ..models import ProductVariant
from ..models.lines import (
    LINE_KIND_CATALOG,
    LINE_KIND_MISC,
    LINE_KIND_OUTSOURCED,
)
from ..validation import coerce_int, require_amount, require_localized


@dataclass(frozen=True)
class PriceBlock:
    walk_in: int
    contractor: int
    government: int
    cost: int

    @classmethod
    def flat(cls, price_cents: int, cost_cents: int) -> "PriceBlock":
        """All three tiers at one price (outsourced and misc lines)."""
        return cls(walk_in=price_cents, contractor=price_cents, government=price_cents, cost=cost_cents)

    def to_dict(self) -> dict:
        return {
            "walk_in": self.walk_in,
            "contractor": self.contractor,
            "government": self.government,
            "cost": self.cost,
        }


@dataclass(frozen=True)
class CartItem:
    """
    One line in a cart. The price block is a snapshot taken when the item
    was added; later catalog edits do not change it.
    """
    name: dict
    quantity: int
    price: PriceBlock
    kind: str = LINE_KIND_CATALOG
    product_id: Optional[int] = None
    variant_id: Optional[int] = None
    size: str = ""
    sku: str = ""
    is_outsourced: bool = False
    outsourced_cost_cents: Optional[int] = None

    @classmethod
    def from_variant(cls, product, variant, quantity: int = 1) -> "CartItem":
        return cls(
            name=dict(product.name),
            quantity=quantity,
            price=PriceBlock(
                walk_in=variant.price_walk_in_cents,
                contractor=variant.price_contractor_cents,
                government=variant.price_government_cents,
                cost=variant.cost_price_cents,
            ),
            kind=LINE_KIND_CATALOG,
            product_id=product.id,
            variant_id=variant.id,
            size=variant.size or "",
            sku=variant.sku,
        )

    def price_block(self) -> dict:
        return self.price.to_dict()

    @property
    def moves_stock(self) -> bool:
        return self.kind == LINE_KIND_CATALOG and not self.is_outsourced

    def merge_key(self) -> tuple:
        if self.kind == LINE_KIND_MISC:
            return (self.kind, self.sku, self.name.get("en"), self.price)
        return (self.kind, self.variant_id, self.price if self.is_outsourced else None)

    def to_line_kwargs(self) -> dict:
        """Column values for TransactionLine / OrderLine."""
        return {
            "line_kind": self.kind,
            "product_id": self.product_id,
            "variant_id": self.variant_id,
            "name": dict(self.name),
            "size": self.size,
            "sku": self.sku,
            "quantity": self.quantity,
            "price_walk_in_cents": self.price.walk_in,
            "price_contractor_cents": self.price.contractor,
            "price_government_cents": self.price.government,
            "cost_price_cents": self.price.cost,
            "is_outsourced": self.is_outsourced,
            "outsourced_cost_cents": self.outsourced_cost_cents,
        }

    def to_dict(self) -> dict:
        return {
            "kind": self.kind,
            "product_id": self.product_id,
            "variant_id": self.variant_id,
            "name": self.name,
            "size": self.size,
            "sku": self.sku,
            "quantity": self.quantity,
            "price": self.price.to_dict(),
            "is_outsourced": self.is_outsourced,
            "outsourced_cost_cents": self.outsourced_cost_cents,
        }


@dataclass
class Cart:
    """
    Session-scoped list of CartItems.

    Catalog items are capped at the stock on hand when a stock lookup is
    supplied (variant_id -> available units).
    """
    items: list = field(default_factory=list)

    def is_empty(self) -> bool:
        return not self.items

    def _find(self, key: tuple) -> int | None:
        for index, existing in enumerate(self.items):
            if existing.merge_key() == key:
                return index
        return None

    def add(self, item: CartItem, available: int | None = None) -> CartItem:
        if item.quantity <= 0:
            raise ValidationError("Quantity must be positive")
        index = self._find(item.merge_key())
        quantity = item.quantity + (self.items[index].quantity if index is not None else 0)
        if item.moves_stock and available is not None and quantity > available:
            raise ConflictError(
                f"Only {available} units of {item.sku} in stock",
                {"sku": item.sku, "available": available},
            )
        merged = replace(item, quantity=quantity)
        if index is None:
            self.items.append(merged)
        else:
            self.items[index] = merged
        return merged

    def update_quantity(self, index: int, quantity: int, available: int | None = None) -> None:
        if index < 0 or index >= len(self.items):
            raise ValidationError("No such cart line")
        if quantity <= 0:
            self.remove(index)
            return
        item = self.items[index]
        if item.moves_stock and available is not None and quantity > available:
            raise ConflictError(
                f"Only {available} units of {item.sku} in stock",
                {"sku": item.sku, "available": available},
            )
        self.items[index] = replace(item, quantity=quantity)

    def remove(self, index: int) -> CartItem:
        if index < 0 or index >= len(self.items):
            raise ValidationError("No such cart line")
        return self.items.pop(index)

    def clear(self) -> None:
        self.items.clear()


def cart_items_from_payload(raw_items) -> list[CartItem]:
    """
    Rebuild cart items sent by a client.

    Catalog lines are re-priced from the datastore; only outsourced and misc
    lines carry operator-entered prices.
    """
    if raw_items is None:
        return []
    if not isinstance(raw_items, list):
        raise ValidationError("items must be a list")

    from .stock_resolution_service import build_misc_item, build_outsourced_item

    items: list[CartItem] = []
    for index, raw in enumerate(raw_items):
        if not isinstance(raw, dict):
            raise ValidationError(f"items[{index}] must be an object")
        quantity = coerce_int(f"items[{index}].quantity", raw.get("quantity", 1))
        if quantity <= 0:
            raise ValidationError(f"items[{index}].quantity must be positive")
        kind = raw.get("kind") or (LINE_KIND_OUTSOURCED if raw.get("is_outsourced") else LINE_KIND_CATALOG)

        if kind == LINE_KIND_MISC:
            price = raw.get("price") or {}
            items.append(
                build_misc_item(
                    description=raw.get("name"),
                    cost_cents=require_amount(f"items[{index}].price.cost", price.get("cost", 0)),
                    price_cents=require_amount(f"items[{index}].price.walk_in", price.get("walk_in"), allow_zero=False),
                    quantity=quantity,
                )
            )
            continue

        variant_id = coerce_int(f"items[{index}].variant_id", raw.get("variant_id"))
        variant = db.session.get(ProductVariant, variant_id)
        if variant is None:
            raise ValidationError(f"items[{index}]: variant {variant_id} not found")

        if kind == LINE_KIND_OUTSOURCED:
            price = raw.get("price") or {}
            cost = raw.get("outsourced_cost_cents", price.get("cost"))
            items.append(
                build_outsourced_item(
                    variant.product,
                    variant,
                    cost_cents=require_amount(f"items[{index}].outsourced_cost_cents", cost, allow_zero=False),
                    selling_price_cents=require_amount(
                        f"items[{index}].price.walk_in", price.get("walk_in"), allow_zero=False
                    ),
                    quantity=quantity,
                )
            )
        elif kind == LINE_KIND_CATALOG:
            items.append(CartItem.from_variant(variant.product, variant, quantity))
        else:
            raise ValidationError(f"items[{index}]: unsupported line kind {kind}")
    return items


def localized_name(value, field_name: str = "name") -> dict:
    return require_localized(field_name, value)
