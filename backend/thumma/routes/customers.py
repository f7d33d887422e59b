# Overview: Flask API routes for customers; parses input and returns JSON responses.

from flask import Blueprint, g, request

from ..decorators import require_auth, require_permission
from ..serialization import camel_response, read_json
from ..services import customer_service
from . import snake_headers, upload_or_json_rows


customers_bp = Blueprint("customers", __name__, url_prefix="/api/customers")


@customers_bp.get("")
@require_auth
@require_permission("CUSTOMERS_READ")
def list_customers_route():
    term = request.args.get("search")
    if term:
        customers = [c.to_dict() for c in customer_service.search_customers(term)]
    else:
        customers = customer_service.list_customers()
    return camel_response({"customers": customers})


@customers_bp.get("/<int:customer_id>")
@require_auth
@require_permission("CUSTOMERS_READ")
def get_customer_route(customer_id: int):
    return camel_response({"customer": customer_service.get_customer(customer_id).to_dict()})


@customers_bp.post("")
@require_auth
@require_permission("CUSTOMERS_WRITE")
def create_customer_route():
    customer = customer_service.create_customer(read_json(), g.current_user)
    return camel_response({"customer": customer.to_dict()}, 201)


@customers_bp.put("/<int:customer_id>")
@require_auth
@require_permission("CUSTOMERS_WRITE")
def update_customer_route(customer_id: int):
    customer = customer_service.update_customer(customer_id, read_json(), g.current_user)
    return camel_response({"customer": customer.to_dict()})


@customers_bp.delete("/<int:customer_id>")
@require_auth
@require_permission("CUSTOMERS_DELETE")
def delete_customer_route(customer_id: int):
    customer_service.delete_customer(customer_id, g.current_user)
    return "", 204


@customers_bp.post("/import")
@require_auth
@require_permission("CUSTOMERS_WRITE")
def import_customers_route():
    """Columns: name, type, phone, address. All rows are created or none."""
    created = customer_service.import_customers(snake_headers(upload_or_json_rows()), g.current_user)
    return camel_response({"customers": [c.to_dict() for c in created], "count": len(created)}, 201)
