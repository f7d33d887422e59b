# Overview: Flask API routes for products and categories; parses input and returns JSON responses.

from flask import Blueprint, g

from ..decorators import require_auth, require_permission
from ..serialization import camel_response, read_json
from ..services import catalog_service, stock_resolution_service
from ..services.inventory_service import get_variant
from ..validation import coerce_int


products_bp = Blueprint("products", __name__, url_prefix="/api")


# =============================================================================
# PRODUCTS
# =============================================================================

@products_bp.get("/products")
@require_auth
@require_permission("INVENTORY_READ")
def list_products_route():
    return camel_response({"products": catalog_service.list_products()})


@products_bp.get("/products/<int:product_id>")
@require_auth
@require_permission("INVENTORY_READ")
def get_product_route(product_id: int):
    return camel_response({"product": catalog_service.get_product(product_id).to_dict()})


@products_bp.post("/products")
@require_auth
@require_permission("INVENTORY_WRITE")
def create_product_route():
    """
    Create a product with its variants.

    Request body:
    {
        "name": {"en": "Cement", "th": "ปูนซีเมนต์"},
        "category": "building-materials-cement",
        "variants": [{"sku": "CEM-50", "size": "50kg", "stock": 10,
                      "price": {"walkIn": 15000, "contractor": 14000,
                                "government": 16050, "cost": 12000}}]
    }
    """
    product = catalog_service.create_product(read_json(), g.current_user)
    return camel_response({"product": product.to_dict()}, 201)


@products_bp.put("/products/<int:product_id>")
@require_auth
@require_permission("INVENTORY_WRITE")
def update_product_route(product_id: int):
    product = catalog_service.update_product(product_id, read_json(), g.current_user)
    return camel_response({"product": product.to_dict()})


@products_bp.delete("/products/<int:product_id>")
@require_auth
@require_permission("INVENTORY_DELETE")
def delete_product_route(product_id: int):
    catalog_service.delete_product(product_id, g.current_user)
    return "", 204


@products_bp.post("/products/<int:product_id>/resolve")
@require_auth
@require_permission("POS_READ")
def resolve_product_route(product_id: int):
    """
    Decide how a POS selection is fulfilled: from stock, by choosing a
    variant first, or by outsourcing from a supplier.
    """
    data = read_json()
    product = catalog_service.get_product(product_id)
    variant = None
    if data.get("variant_id") is not None:
        variant = get_variant(coerce_int("variant_id", data["variant_id"]))
    resolution = stock_resolution_service.resolve_selection(product, variant)
    return camel_response({"resolution": resolution.to_dict()})


# =============================================================================
# CATEGORIES
# =============================================================================

@products_bp.get("/categories")
@require_auth
@require_permission("CATEGORY_MANAGEMENT_READ")
def list_categories_route():
    return camel_response({
        "categories": catalog_service.list_categories(),
        "tree": catalog_service.category_tree(),
    })


@products_bp.post("/categories")
@require_auth
@require_permission("CATEGORY_MANAGEMENT_WRITE")
def create_category_route():
    category = catalog_service.create_category(read_json(), g.current_user)
    return camel_response({"category": category.to_dict()}, 201)


@products_bp.put("/categories/<int:category_id>")
@require_auth
@require_permission("CATEGORY_MANAGEMENT_WRITE")
def update_category_route(category_id: int):
    category = catalog_service.update_category(category_id, read_json(), g.current_user)
    return camel_response({"category": category.to_dict()})


@products_bp.delete("/categories/<int:category_id>")
@require_auth
@require_permission("CATEGORY_MANAGEMENT_DELETE")
def delete_category_route(category_id: int):
    catalog_service.delete_category(category_id, g.current_user)
    return "", 204
