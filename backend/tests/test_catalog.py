"""
Catalog and inventory tests.

Verifies:
- Product create/update keeps SKUs unique and records stock changes as movements
- Stock status follows the low-stock threshold
- Manual adjustments never take stock below zero
- Category nesting is limited to one level
- Spreadsheet import creates products, updates known SKUs and reports skipped rows
"""

import pytest

from thumma.errors import ConflictError, NotFoundError, ValidationError
from thumma.extensions import db
from thumma.models import Product, ProductVariant, StockMovement
from thumma.services import catalog_service, inventory_service, settings_service
from thumma.services.inventory_service import InventoryError, derive_status


# =============================================================================
# PRODUCTS
# =============================================================================


class TestProducts:
    def test_initial_stock_is_a_movement(self, cement):
        variant = cement.variants[0]
        assert variant.stock_quantity == 20
        assert variant.status == "In Stock"
        assert [(h.change, h.reason, h.operator) for h in variant.history] == [(20, "Initial stock", "Admin")]

    def test_to_dict_shape(self, cement):
        data = catalog_service.list_products()[0]
        assert data["category"] == "building-materials-cement"
        variant = data["variants"][0]
        assert variant["stock"] == 20
        assert variant["price"] == {"walk_in": 15000, "contractor": 14000, "government": 16050, "cost": 12000}
        assert variant["history"][0]["reason"] == "Initial stock"

    def test_duplicate_sku_rejected(self, admin, cement):
        with pytest.raises(ConflictError):
            catalog_service.create_product(
                {"name": "Other cement", "category": "building-materials-cement", "variants": [{"sku": "CEM-50"}]},
                admin,
            )

    def test_duplicate_sku_within_product(self, admin, categories):
        with pytest.raises(ConflictError):
            catalog_service.create_product(
                {
                    "name": "Nails",
                    "category": "building-materials",
                    "variants": [{"sku": "N-1", "size": "1in"}, {"sku": "N-1", "size": "2in"}],
                },
                admin,
            )

    @pytest.mark.parametrize(
        "payload",
        [
            {"name": "Nails", "category": "building-materials", "variants": []},
            {"name": "Nails", "category": "", "variants": [{"sku": "N-1"}]},
            {"name": "Nails", "category": "no-such-category", "variants": [{"sku": "N-1"}]},
            {"name": "Nails", "category": "building-materials", "variants": [{"sku": "N-1", "price": {"cost": -1}}]},
            {"name": "Nails", "category": "building-materials", "variants": [{"sku": "N-1", "stock": "2.5"}]},
            {"name": "Nails", "category": "building-materials", "variants": [{"sku": "N-1", "weight": 3}]},
        ],
    )
    def test_invalid_payloads(self, admin, categories, payload):
        with pytest.raises(ValidationError):
            catalog_service.create_product(payload, admin)
        assert db.session.query(Product).count() == 0

    def test_update_records_stock_edit(self, admin, cement):
        variant_id = cement.variants[0].id
        catalog_service.update_product(
            cement.id,
            {"variants": [{"id": variant_id, "stock": 8, "price": {"walk_in": 15500}}]},
            admin,
        )
        variant = db.session.get(ProductVariant, variant_id)
        assert variant.stock_quantity == 8
        assert variant.status == "Low Stock"
        assert variant.price_walk_in_cents == 15500
        assert variant.history[-1].change == -12
        assert variant.history[-1].reason == "Manual edit"

    def test_update_adds_and_removes_variants(self, admin, pipe):
        keep = pipe.variants[1].id
        catalog_service.update_product(
            pipe.id,
            {"variants": [{"id": keep}, {"sku": "PVC-200", "size": "2 inch", "stock": 12}]},
            admin,
        )
        skus = sorted(v.sku for v in db.session.get(Product, pipe.id).variants)
        assert skus == ["PVC-100", "PVC-200"]

    def test_update_unknown_variant(self, admin, cement):
        with pytest.raises(NotFoundError):
            catalog_service.update_product(cement.id, {"variants": [{"id": 999}]}, admin)

    def test_delete_removes_history(self, admin, cement):
        catalog_service.delete_product(cement.id, admin)
        assert db.session.query(ProductVariant).count() == 0
        assert db.session.query(StockMovement).count() == 0
        with pytest.raises(NotFoundError):
            catalog_service.get_product(cement.id)


# =============================================================================
# INVENTORY
# =============================================================================


class TestInventory:
    @pytest.mark.parametrize(
        "stock,expected",
        [(0, "Out of Stock"), (-1, "Out of Stock"), (1, "Low Stock"), (9, "Low Stock"), (10, "In Stock")],
    )
    def test_derive_status(self, stock, expected):
        assert derive_status(stock, 10) == expected

    def test_adjust_stock(self, admin, cement):
        variant = inventory_service.adjust_stock(cement.variants[0].id, "-15", "Damaged bags", admin)
        assert variant.stock_quantity == 5
        assert variant.status == "Low Stock"
        assert variant.history[-1].reason == "Damaged bags"

    def test_adjust_to_zero(self, admin, cement):
        variant = inventory_service.adjust_stock(cement.variants[0].id, -20, "Count", admin)
        assert variant.status == "Out of Stock"

    def test_cannot_go_negative(self, admin, cement):
        variant_id = cement.variants[0].id
        with pytest.raises(InventoryError) as excinfo:
            inventory_service.adjust_stock(variant_id, -21, "Count", admin)
        assert excinfo.value.details == {"sku": "CEM-50", "available": 20, "requested": 21}
        assert db.session.get(ProductVariant, variant_id).stock_quantity == 20

    @pytest.mark.parametrize("change,reason", [(0, "Count"), (5, " "), ("1.5", "Count")])
    def test_invalid_adjustments(self, admin, cement, change, reason):
        with pytest.raises(ValidationError):
            inventory_service.adjust_stock(cement.variants[0].id, change, reason, admin)

    def test_unknown_variant(self, admin):
        with pytest.raises(NotFoundError):
            inventory_service.adjust_stock(999, 1, "Restock", admin)

    def test_barcode_lookup(self, cement):
        product, variant = inventory_service.find_by_barcode(" 8850000000011 ")
        assert product.id == cement.id
        assert variant.sku == "CEM-50"
        with pytest.raises(NotFoundError):
            inventory_service.find_by_barcode("0000")

    def test_threshold_change_recomputes(self, admin, pipe):
        settings_service.update_store_settings({"low_stock_threshold": 3}, admin)
        assert inventory_service.recompute_all_statuses() == 1
        statuses = {v.sku: v.status for v in db.session.query(ProductVariant).all()}
        assert statuses == {"PVC-050": "Out of Stock", "PVC-100": "In Stock"}


# =============================================================================
# CATEGORIES
# =============================================================================


class TestCategories:
    def test_tree(self, categories):
        tree = catalog_service.category_tree()
        assert [c["slug"] for c in tree] == ["building-materials"]
        assert {c["slug"] for c in tree[0]["children"]} == {
            "building-materials-cement",
            "building-materials-pipes",
        }

    def test_one_level_only(self, admin, categories):
        with pytest.raises(ValidationError):
            catalog_service.create_category(
                {"name": "Grey", "slug": "grey", "parent_id": categories["cement"].id}, admin
            )

    def test_duplicate_slug(self, admin, categories):
        with pytest.raises(ConflictError):
            catalog_service.create_category({"name": "Again", "slug": "Building-Materials"}, admin)

    def test_slug_rename_moves_products(self, admin, categories, cement):
        catalog_service.update_category(categories["cement"].id, {"slug": "cement"}, admin)
        assert db.session.get(Product, cement.id).category == "cement"

    def test_delete_guards(self, admin, categories, cement):
        with pytest.raises(ConflictError):
            catalog_service.delete_category(categories["main"].id, admin)
        with pytest.raises(ConflictError):
            catalog_service.delete_category(categories["cement"].id, admin)
        catalog_service.delete_category(categories["pipes"].id, admin)
        assert len(catalog_service.list_categories()) == 2


# =============================================================================
# IMPORT
# =============================================================================


class TestProductImport:
    def test_import(self, admin, cement):
        rows = [
            {"SKU": "CEM-50", "Walk-in Price": "155", "Stock": 30.0},
            {
                "SKU": "TIL-1", "Product Name": "Floor Tile", "Main Category": "building materials",
                "Sub Category": "Cement", "Variant Size": "30x30", "Walk-in Price": "45.50", "Stock": "100",
            },
            {
                "SKU": "TIL-2", "Product Name": "Floor Tile", "Main Category": "Building Materials",
                "Sub Category": "Cement", "Variant Size": "60x60", "Walk-in Price": "90",
            },
            {"SKU": "ZZZ-1", "Product Name": "Mystery"},
            {"Product Name": "No SKU"},
            {"SKU": "", "Product Name": ""},
        ]
        result = catalog_service.import_products(rows, admin)

        assert len(result["created"]) == 1
        assert len(result["updated"]) == 1
        assert result["skipped"] == 2
        assert result["errors"][0].startswith("Row 5:")
        assert result["errors"][1].startswith("Row 6:")

        cement_variant = db.session.query(ProductVariant).filter_by(sku="CEM-50").one()
        assert cement_variant.price_walk_in_cents == 15500
        assert cement_variant.stock_quantity == 30
        assert cement_variant.history[-1].reason == "Import"

        tile = db.session.query(ProductVariant).filter_by(sku="TIL-1").one()
        assert tile.price_walk_in_cents == 4550
        assert tile.stock_quantity == 100
        assert tile.product.category == "building-materials-cement"
        assert len(tile.product.variants) == 2

    def test_nothing_usable(self, admin, categories):
        with pytest.raises(ValidationError):
            catalog_service.import_products([{"SKU": "X-1"}], admin)
