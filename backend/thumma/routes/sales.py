# Overview: Flask API routes for sales history and individual transactions.

from flask import Blueprint, g, request

from ..decorators import require_auth, require_permission
from ..errors import ValidationError
from ..serialization import camel_response, read_json, to_snake
from ..services import reporting_service, sales_service, storage_service
from thumma.time_utils import utcnow


sales_bp = Blueprint("sales", __name__, url_prefix="/api/transactions")

HISTORY_FILTERS = ("date_from", "date_to", "customer_id", "payment_status", "search", "limit")


@sales_bp.get("")
@require_auth
@require_permission("SALES_HISTORY_READ")
def sales_history_route():
    """
    Transactions newest first.

    Query params: dateFrom, dateTo, customerId, paymentStatus, search, limit.
    """
    filters = {to_snake(k): v for k, v in request.args.items()}
    filters = {k: v for k, v in filters.items() if k in HISTORY_FILTERS}
    now = utcnow()
    rows = reporting_service.sales_history(filters)
    return camel_response({"transactions": [t.to_dict(now) for t in rows]})


@sales_bp.get("/<string:transaction_id>")
@require_auth
@require_permission("SALES_HISTORY_READ")
def get_transaction_route(transaction_id: str):
    return camel_response({"transaction": sales_service.get_transaction(transaction_id).to_dict()})


@sales_bp.post("/<string:transaction_id>/attachment")
@require_auth
@require_permission("SALES_HISTORY_WRITE")
def attach_file_route(transaction_id: str):
    """Attach a signed invoice or receipt: multipart `file`, or JSON {"fileUrl"}."""
    if "file" in request.files:
        file_url = storage_service.upload_file(request.files["file"], "invoices")
    else:
        file_url = read_json().get("file_url")
        if not file_url:
            raise ValidationError("file or fileUrl is required")
    tx = sales_service.attach_file(transaction_id, file_url, g.current_user)
    return camel_response({"transaction": tx.to_dict()})


@sales_bp.delete("/<string:transaction_id>")
@require_auth
@require_permission("SALES_HISTORY_DELETE")
def delete_transaction_route(transaction_id: str):
    sales_service.delete_transaction(transaction_id, g.current_user)
    return "", 204
