# Overview: Pricing and totals calculator (pure functions, no database access).

"""
Pricing & totals

All amounts are integer satang. Every division that produces money rounds
half-up to the nearest satang.

Tiers:
- government: catalog prices already include VAT. The subtotal is
  back-derived (items_total / 1.07) and vat_included is forced on.
- contractor / organization: contractor price block entry.
- walk-in: walkIn price block entry.

Transportation fees and carried-forward balances are added after tax and
are never taxed. A store credit is only accepted when the pre-credit total
covers it.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable

from ..errors import ThummaError, ValidationError
from ..models.customers import (
    CUSTOMER_TYPE_CONTRACTOR,
    CUSTOMER_TYPE_GOVERNMENT,
    CUSTOMER_TYPE_ORGANIZATION,
    CUSTOMER_TYPE_WALK_IN,
    CUSTOMER_TYPES,
)


TAX_RATE_BPS = 700  # 7%
_BPS = 10_000


class StoreCreditError(ThummaError):
    """Raised when a store credit cannot be applied or consumed."""


def div_round_half_up(numerator: int, denominator: int) -> int:
    """Integer division rounded half-up (non-negative operands)."""
    if denominator <= 0:
        raise ValueError("denominator must be positive")
    return (2 * numerator + denominator) // (2 * denominator)


def tier_key(customer_type: str) -> str:
    if customer_type == CUSTOMER_TYPE_GOVERNMENT:
        return "government"
    if customer_type in (CUSTOMER_TYPE_CONTRACTOR, CUSTOMER_TYPE_ORGANIZATION):
        return "contractor"
    if customer_type == CUSTOMER_TYPE_WALK_IN:
        return "walk_in"
    raise ValidationError(f"Unknown customer type: {customer_type}", {"allowed": list(CUSTOMER_TYPES)})


def price_for_tier(price_block: dict, customer_type: str) -> int:
    """Unit price in satang for the customer's tier."""
    return int(price_block[tier_key(customer_type)])


def tax_on(subtotal_cents: int) -> int:
    """VAT on a VAT-exclusive amount."""
    return div_round_half_up(subtotal_cents * TAX_RATE_BPS, _BPS)


def split_vat_inclusive(total_cents: int) -> tuple[int, int]:
    """
    Split a VAT-inclusive amount into (subtotal, tax).

    subtotal = round(total / 1.07); tax = total - subtotal, so the parts always
    add back up to the input exactly.
    """
    subtotal = div_round_half_up(total_cents * _BPS, _BPS + TAX_RATE_BPS)
    return subtotal, total_cents - subtotal


@dataclass(frozen=True)
class Totals:
    subtotal_cents: int
    tax_cents: int
    transportation_fee_cents: int
    carried_forward_cents: int
    store_credit_cents: int
    original_total_cents: int
    total_cents: int
    vat_included: bool

    @property
    def items_total_cents(self) -> int:
        return self.subtotal_cents + self.tax_cents

    def to_dict(self) -> dict:
        return {
            "subtotal_cents": self.subtotal_cents,
            "tax_cents": self.tax_cents,
            "items_total_cents": self.items_total_cents,
            "transportation_fee_cents": self.transportation_fee_cents,
            "carried_forward_cents": self.carried_forward_cents,
            "store_credit_cents": self.store_credit_cents,
            "original_total_cents": self.original_total_cents,
            "total_cents": self.total_cents,
            "vat_included": self.vat_included,
        }


def _line_amount(line, customer_type: str) -> int:
    """Accepts CartItem-like objects or {"price": {...}, "quantity": n} dicts."""
    if isinstance(line, dict):
        price_block, quantity = line["price"], line["quantity"]
    else:
        price_block, quantity = line.price_block(), line.quantity
    if quantity <= 0:
        raise ValidationError("Line quantity must be positive")
    return price_for_tier(price_block, customer_type) * int(quantity)


def compute_totals(
    lines: Iterable,
    customer_type: str,
    vat_included: bool,
    *,
    transportation_fee_cents: int = 0,
    carried_forward_cents: int = 0,
    store_credit_cents: int = 0,
) -> Totals:
    """
    Compute subtotal, tax and payable total for a cart.

    Raises StoreCreditError when the credit exceeds the pre-credit total.
    """
    for name, value in (
        ("transportation_fee_cents", transportation_fee_cents),
        ("carried_forward_cents", carried_forward_cents),
        ("store_credit_cents", store_credit_cents),
    ):
        if value < 0:
            raise ValidationError(f"{name} must be >= 0")

    items_total = sum(_line_amount(line, customer_type) for line in lines)

    if customer_type == CUSTOMER_TYPE_GOVERNMENT:
        vat_included = True
        subtotal, tax = split_vat_inclusive(items_total)
    else:
        subtotal = items_total
        tax = tax_on(subtotal) if vat_included else 0

    original_total = subtotal + tax + transportation_fee_cents + carried_forward_cents

    if store_credit_cents and original_total < store_credit_cents:
        raise StoreCreditError(
            "Order total must be at least the store credit amount",
            {"original_total_cents": original_total, "store_credit_cents": store_credit_cents},
        )

    return Totals(
        subtotal_cents=subtotal,
        tax_cents=tax,
        transportation_fee_cents=transportation_fee_cents,
        carried_forward_cents=carried_forward_cents,
        store_credit_cents=store_credit_cents,
        original_total_cents=original_total,
        total_cents=max(0, original_total - store_credit_cents),
        vat_included=bool(vat_included),
    )
