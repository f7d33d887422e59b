# Overview: Flask API routes for stock levels, barcode lookup and product import.

from flask import Blueprint, g, request

from ..decorators import require_auth, require_permission
from ..serialization import camel_response, read_json
from ..services import catalog_service, inventory_service
from ..validation import coerce_int
from . import upload_or_json_rows


inventory_bp = Blueprint("inventory", __name__, url_prefix="/api/inventory")


@inventory_bp.get("/low-stock")
@require_auth
@require_permission("INVENTORY_READ")
def low_stock_route():
    threshold = request.args.get("threshold")
    items = inventory_service.list_low_stock(
        coerce_int("threshold", threshold) if threshold not in (None, "") else None
    )
    return camel_response({"items": items})


@inventory_bp.get("/barcode/<string:code>")
@require_auth
@require_permission("POS_READ")
def barcode_lookup_route(code: str):
    product, variant = inventory_service.find_by_barcode(code)
    return camel_response({"product": product.to_dict(), "variantId": variant.id})


@inventory_bp.get("/variants/<int:variant_id>/history")
@require_auth
@require_permission("INVENTORY_READ")
def variant_history_route(variant_id: int):
    variant = inventory_service.get_variant(variant_id)
    return camel_response({"history": [h.to_dict() for h in variant.history]})


@inventory_bp.post("/variants/<int:variant_id>/adjust")
@require_auth
@require_permission("INVENTORY_WRITE")
def adjust_stock_route(variant_id: int):
    """
    Manual stock correction.

    Request body: {"change": -3, "reason": "Damaged"}
    """
    data = read_json()
    variant = inventory_service.adjust_stock(variant_id, data.get("change"), data.get("reason"), g.current_user)
    return camel_response({"variant": variant.to_dict()})


@inventory_bp.post("/recompute-status")
@require_auth
@require_permission("INVENTORY_WRITE")
def recompute_status_route():
    changed = inventory_service.recompute_all_statuses()
    return camel_response({"changed": changed})


@inventory_bp.post("/import")
@require_auth
@require_permission("INVENTORY_WRITE")
def import_products_route():
    """
    Import products from an uploaded CSV/Excel file (or JSON rows).

    Headers: Product Name, Main Category, Sub Category, SKU, Variant Size,
    Stock, Barcode, Walk-in Price, Contractor Price, Government Price,
    Cost Price. Existing SKUs are updated; new SKUs create products.
    """
    result = catalog_service.import_products(upload_or_json_rows(), g.current_user)
    return camel_response({
        "created": [p.to_dict() for p in result["created"]],
        "updated": [v.to_dict() for v in result["updated"]],
        "errors": result["errors"],
        "skipped": result["skipped"],
    })
