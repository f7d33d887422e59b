# Overview: Flask API routes for returns and store credits.

from flask import Blueprint, g

from ..decorators import require_auth, require_permission
from ..serialization import camel_response, read_json
from ..services import return_service, sales_service, store_credit_service
from . import query_flag


returns_bp = Blueprint("returns", __name__, url_prefix="/api")


@returns_bp.get("/returns/<string:transaction_id>")
@require_auth
@require_permission("RETURNS_READ")
def returnable_lines_route(transaction_id: str):
    """Lines of a transaction with how many units can still be returned."""
    tx = sales_service.get_transaction(transaction_id)
    lines = []
    for line in tx.lines:
        if line.line_kind not in return_service.RETURNABLE_LINE_KINDS:
            continue
        data = line.to_dict()
        data["returnable_quantity"] = line.quantity - return_service.returned_quantity(tx, line.id)
        data["unit_refund_cents"] = return_service.unit_refund_cents(tx, line)
        lines.append(data)
    return camel_response({"transaction": tx.to_dict(), "lines": lines})


@returns_bp.post("/returns/<string:transaction_id>/preview")
@require_auth
@require_permission("RETURNS_READ")
def preview_refund_route(transaction_id: str):
    tx = sales_service.get_transaction(transaction_id)
    requests = return_service.parse_return_items(read_json().get("items"))
    return camel_response({"refundCents": return_service.calculate_refund(tx, requests)})


@returns_bp.post("/returns/<string:transaction_id>")
@require_auth
@require_permission("RETURNS_WRITE")
def process_return_route(transaction_id: str):
    """
    Return items and issue a store credit.

    Request body: {"items": [{"lineId": 12, "quantity": 1, "reason": "Damaged Product"}]}
    """
    credit = return_service.process_return(transaction_id, read_json().get("items"), g.current_user)
    return camel_response({"storeCredit": credit.to_dict()}, 201)


@returns_bp.get("/store-credits")
@require_auth
@require_permission("RETURNS_READ")
def list_store_credits_route():
    credits = store_credit_service.list_store_credits(include_used=query_flag("includeUsed", True))
    return camel_response({"storeCredits": credits})


@returns_bp.get("/store-credits/<string:code>")
@require_auth
@require_permission("POS_READ")
def lookup_store_credit_route(code: str):
    """Active (unused) credit by code, case-insensitive."""
    credit = store_credit_service.find_active_credit(code)
    return camel_response({"storeCredit": credit.to_dict()})
