# Overview: Flask API routes for accounts receivable: payments, consolidation and past invoices.

from flask import Blueprint, g, request

from ..decorators import require_auth, require_permission
from ..serialization import camel_response, read_json
from ..services import consolidation_service, payment_service, receivables_service, sales_service
from ..validation import coerce_int
from thumma.time_utils import utcnow
from . import form_or_json, snake_headers, upload_or_json_rows


receivables_bp = Blueprint("receivables", __name__, url_prefix="/api/receivables")


@receivables_bp.get("")
@require_auth
@require_permission("AR_READ")
def list_receivables_route():
    """Query params: status (open|overdue|paid, default open), customerId."""
    customer_id = request.args.get("customerId")
    now = utcnow()
    rows = receivables_service.list_receivables(
        request.args.get("status") or receivables_service.RECEIVABLE_FILTER_OPEN,
        customer_id=coerce_int("customerId", customer_id) if customer_id else None,
        now=now,
    )
    return camel_response({"invoices": [t.to_dict(now) for t in rows]})


@receivables_bp.get("/summary")
@require_auth
@require_permission("AR_READ")
def receivables_summary_route():
    return camel_response(receivables_service.receivables_summary())


@receivables_bp.get("/customers/<int:customer_id>/balance")
@require_auth
@require_permission("AR_READ")
def customer_balance_route(customer_id: int):
    return camel_response(receivables_service.customer_balance(customer_id))


@receivables_bp.post("/<string:transaction_id>/payments")
@require_auth
@require_permission("AR_WRITE")
def record_payment_route(transaction_id: str):
    """
    Record a customer payment against an open invoice.

    Request body:
    {
        "amountCents": 50000,
        "method": "Bank Transfer",
        "reference": "KBank 0012",   (optional)
        "paidAt": "2024-05-01"       (optional, defaults to now)
    }

    Returns:
        200: Updated invoice with its payment history
        400: Amount out of range, or the invoice is Paid / Consolidated
        404: Unknown invoice
        503: Datastore rejected the write; nothing was changed
    """
    data = read_json()
    tx = payment_service.record_transaction_payment(
        transaction_id,
        data.get("amount_cents"),
        data.get("method"),
        reference=data.get("reference"),
        user=g.current_user,
        paid_at=data.get("paid_at"),
    )
    return camel_response({"transaction": tx.to_dict()})


# =============================================================================
# CONSOLIDATION
# =============================================================================

@receivables_bp.post("/consolidate")
@require_auth
@require_permission("AR_WRITE")
def consolidate_route():
    """Request body: {"customerId": 5, "transactionIds": ["2024...", "2024..."]}"""
    data = read_json()
    invoice = consolidation_service.consolidate_invoices(
        coerce_int("customer_id", data.get("customer_id")),
        data.get("transaction_ids"),
        g.current_user,
    )
    return camel_response({"transaction": invoice.to_dict()}, 201)


@receivables_bp.get("/consolidated/<string:consolidated_id>/sources")
@require_auth
@require_permission("AR_READ")
def consolidated_sources_route(consolidated_id: str):
    invoice = sales_service.get_transaction(consolidated_id)
    sources = consolidation_service.consolidated_sources(invoice)
    return camel_response({"transactions": [t.to_dict() for t in sources]})


@receivables_bp.post("/consolidated/<string:consolidated_id>/undo")
@require_auth
@require_permission("AR_DELETE")
def undo_consolidation_route(consolidated_id: str):
    restored = consolidation_service.undo_consolidation(consolidated_id, g.current_user)
    return camel_response({"transactions": [t.to_dict() for t in restored]})


# =============================================================================
# PAST INVOICES
# =============================================================================

@receivables_bp.post("/past-invoices")
@require_auth
@require_permission("AR_WRITE")
def record_past_invoice_route():
    """
    Record an invoice issued before the system was in use.

    JSON or multipart form (with an optional scanned `file`):
    originalInvoiceId, invoiceDate, totalAmountCents (VAT inclusive),
    amountAlreadyPaidCents, customerId or newCustomerName.
    """
    tx = receivables_service.record_past_invoice(form_or_json("invoices"), g.current_user)
    return camel_response({"transaction": tx.to_dict()}, 201)


@receivables_bp.put("/past-invoices/<string:transaction_id>")
@require_auth
@require_permission("AR_WRITE")
def edit_past_invoice_route(transaction_id: str):
    tx = receivables_service.edit_past_invoice(transaction_id, form_or_json("invoices"), g.current_user)
    return camel_response({"transaction": tx.to_dict()})


@receivables_bp.post("/past-invoices/import")
@require_auth
@require_permission("AR_WRITE")
def import_past_invoices_route():
    """Columns: customer_name, original_invoice_id, invoice_date, total_amount, amount_already_paid (baht)."""
    created = receivables_service.import_past_invoices(snake_headers(upload_or_json_rows()), g.current_user)
    return camel_response({"transactions": [t.to_dict() for t in created], "count": len(created)}, 201)
