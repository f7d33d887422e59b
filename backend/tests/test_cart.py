"""
Cart and stock resolution tests.

Verifies:
- A stockout never blocks a sale: the item is outsourced instead
- Outsourced prices round up to a whole baht
- The cart merges repeat lines and caps catalog lines at stock on hand
- Client-sent carts are re-priced from the catalog
"""

from types import SimpleNamespace

import pytest

from thumma.errors import ConflictError, ValidationError
from thumma.models.lines import LINE_KIND_CATALOG, LINE_KIND_MISC, LINE_KIND_OUTSOURCED
from thumma.services.cart_service import Cart, CartItem, PriceBlock, cart_items_from_payload
from thumma.services.stock_resolution_service import (
    RESOLUTION_CHOOSE_VARIANT,
    RESOLUTION_IN_STOCK,
    RESOLUTION_OUTSOURCE,
    build_misc_item,
    build_outsourced_item,
    outsourced_selling_price,
    resolve_selection,
)


def variant(id, stock, product_id=1, sku=None, size="50kg"):
    return SimpleNamespace(
        id=id,
        product_id=product_id,
        stock_quantity=stock,
        sku=sku or f"SKU-{id}",
        size=size,
        price_walk_in_cents=15000,
        price_contractor_cents=14000,
        price_government_cents=16050,
        cost_price_cents=12000,
    )


def product(*variants, id=1):
    return SimpleNamespace(id=id, name={"en": "Cement", "th": "ปูน"}, variants=list(variants))


# =============================================================================
# RESOLUTION
# =============================================================================


class TestResolveSelection:
    def test_chosen_variant_in_stock(self):
        v = variant(1, 4)
        result = resolve_selection(product(v), v)
        assert result.action == RESOLUTION_IN_STOCK
        assert result.available == 4

    def test_chosen_variant_out_of_stock_is_outsourced(self):
        v = variant(1, 0)
        result = resolve_selection(product(v), v)
        assert result.action == RESOLUTION_OUTSOURCE
        assert result.variant_id == 1

    def test_single_stocked_variant_is_picked(self):
        v = variant(1, 3)
        result = resolve_selection(product(v))
        assert result.action == RESOLUTION_IN_STOCK
        assert result.variant_id == 1

    def test_several_variants_need_a_choice(self):
        result = resolve_selection(product(variant(1, 0), variant(2, 5)))
        assert result.action == RESOLUTION_CHOOSE_VARIANT
        assert result.available == 5

    def test_nothing_in_stock_is_outsourced(self):
        result = resolve_selection(product(variant(1, 0), variant(2, 0)))
        assert result.action == RESOLUTION_OUTSOURCE
        assert result.variant_id is None

    def test_variant_from_other_product_rejected(self):
        with pytest.raises(ValidationError):
            resolve_selection(product(variant(1, 1)), variant(9, 1, product_id=2))


class TestOutsourcedPrice:
    @pytest.mark.parametrize(
        "cost,markup,expected",
        [
            (10000, 20, 12000),
            (9900, 15, 11400),   # 113.85 -> 114.00
            (10050, 0, 10100),   # 100.50 -> 101.00
            (10000, "12.5", 11300),
        ],
    )
    def test_rounds_up_to_whole_baht(self, cost, markup, expected):
        assert outsourced_selling_price(cost, markup) == expected

    def test_cost_must_be_positive(self):
        with pytest.raises(ValidationError):
            outsourced_selling_price(0, 20)

    def test_negative_markup_rejected(self):
        with pytest.raises(ValidationError):
            outsourced_selling_price(10000, -5)


class TestBuildItems:
    def test_outsourced_item_flattens_tiers(self):
        v = variant(2, 0, sku="PVC-050", size="1/2 inch")
        item = build_outsourced_item(product(v), v, 10000, markup_pct=20, quantity=2)
        assert item.kind == LINE_KIND_OUTSOURCED
        assert item.is_outsourced is True
        assert item.outsourced_cost_cents == 10000
        assert item.price == PriceBlock(walk_in=12000, contractor=12000, government=12000, cost=10000)
        assert item.sku == "PVC-050"
        assert item.moves_stock is False

    def test_outsourced_price_override(self):
        v = variant(2, 0)
        item = build_outsourced_item(product(v), v, 10000, selling_price_cents=13500)
        assert item.price.walk_in == 13500

    def test_misc_item(self):
        item = build_misc_item("Cutting service", 0, 5000)
        assert item.kind == LINE_KIND_MISC
        assert item.name == {"en": "Cutting service", "th": "Cutting service"}
        assert item.product_id is None
        assert item.moves_stock is False

    def test_misc_item_needs_price(self):
        with pytest.raises(ValidationError):
            build_misc_item("Cutting service", 0, 0)


# =============================================================================
# CART
# =============================================================================


class TestCart:
    def catalog_item(self, quantity=1, variant_id=1):
        return CartItem.from_variant(product(), variant(variant_id, 10), quantity)

    def test_same_variant_merges(self):
        cart = Cart()
        cart.add(self.catalog_item(2))
        cart.add(self.catalog_item(3))
        assert len(cart.items) == 1
        assert cart.items[0].quantity == 5

    def test_different_variants_stay_separate(self):
        cart = Cart()
        cart.add(self.catalog_item(1, variant_id=1))
        cart.add(self.catalog_item(1, variant_id=2))
        assert len(cart.items) == 2

    def test_stock_cap(self):
        cart = Cart()
        cart.add(self.catalog_item(2), available=4)
        with pytest.raises(ConflictError) as exc:
            cart.add(self.catalog_item(3), available=4)
        assert exc.value.details["available"] == 4
        assert cart.items[0].quantity == 2

    def test_outsourced_lines_are_not_capped(self):
        v = variant(1, 0)
        cart = Cart()
        cart.add(build_outsourced_item(product(v), v, 10000, markup_pct=20, quantity=7), available=0)
        assert cart.items[0].quantity == 7

    def test_update_quantity_to_zero_removes(self):
        cart = Cart()
        cart.add(self.catalog_item(2))
        cart.update_quantity(0, 0)
        assert cart.is_empty()

    def test_update_quantity_respects_cap(self):
        cart = Cart()
        cart.add(self.catalog_item(2))
        with pytest.raises(ConflictError):
            cart.update_quantity(0, 11, available=10)

    def test_remove_unknown_line(self):
        with pytest.raises(ValidationError):
            Cart().remove(0)

    def test_line_kwargs_snapshot_prices(self):
        kwargs = self.catalog_item(2).to_line_kwargs()
        assert kwargs["line_kind"] == LINE_KIND_CATALOG
        assert kwargs["price_contractor_cents"] == 14000
        assert kwargs["quantity"] == 2


class TestCartFromPayload:
    def test_catalog_lines_are_repriced(self, cement):
        v = cement.variants[0]
        items = cart_items_from_payload([
            {"variant_id": v.id, "quantity": 2, "price": {"walk_in": 1}},
        ])
        assert items[0].price.walk_in == 15000
        assert items[0].quantity == 2

    def test_outsourced_and_misc_lines(self, pipe):
        sold_out = pipe.variants[0]
        items = cart_items_from_payload([
            {"kind": "OUTSOURCED", "variant_id": sold_out.id, "outsourced_cost_cents": 6500, "price": {"walk_in": 8000}},
            {"kind": "MISC", "name": "Thread cutting", "price": {"walk_in": 2000, "cost": 0}},
        ])
        assert items[0].is_outsourced and items[0].price.walk_in == 8000
        assert items[1].kind == LINE_KIND_MISC

    def test_unknown_variant(self, db_session):
        with pytest.raises(ValidationError):
            cart_items_from_payload([{"variant_id": 999, "quantity": 1}])

    def test_float_quantity_rejected(self, cement):
        with pytest.raises(ValidationError):
            cart_items_from_payload([{"variant_id": cement.variants[0].id, "quantity": 1.5}])

    def test_default_markup_from_settings(self, pipe):
        sold_out = pipe.variants[0]
        item = build_outsourced_item(pipe, sold_out, 10000)
        assert item.price.walk_in == 12000
