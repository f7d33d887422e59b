# Overview: Flask API routes for suppliers and supplier bills (accounts payable).

from flask import Blueprint, g, request

from ..decorators import require_auth, require_permission
from ..serialization import camel_response, read_json
from ..services import payables_service, payment_service
from ..validation import coerce_int
from thumma.time_utils import utcnow
from . import form_or_json, snake_headers, upload_or_json_rows


payables_bp = Blueprint("payables", __name__, url_prefix="/api")


# =============================================================================
# SUPPLIERS
# =============================================================================

@payables_bp.get("/suppliers")
@require_auth
@require_permission("SUPPLIERS_READ")
def list_suppliers_route():
    return camel_response({"suppliers": payables_service.list_suppliers()})


@payables_bp.get("/suppliers/<int:supplier_id>")
@require_auth
@require_permission("SUPPLIERS_READ")
def get_supplier_route(supplier_id: int):
    return camel_response({"supplier": payables_service.get_supplier(supplier_id).to_dict()})


@payables_bp.post("/suppliers")
@require_auth
@require_permission("SUPPLIERS_WRITE")
def create_supplier_route():
    supplier = payables_service.create_supplier(read_json(), g.current_user)
    return camel_response({"supplier": supplier.to_dict()}, 201)


@payables_bp.put("/suppliers/<int:supplier_id>")
@require_auth
@require_permission("SUPPLIERS_WRITE")
def update_supplier_route(supplier_id: int):
    supplier = payables_service.update_supplier(supplier_id, read_json(), g.current_user)
    return camel_response({"supplier": supplier.to_dict()})


@payables_bp.delete("/suppliers/<int:supplier_id>")
@require_auth
@require_permission("SUPPLIERS_DELETE")
def delete_supplier_route(supplier_id: int):
    payables_service.delete_supplier(supplier_id, g.current_user)
    return "", 204


@payables_bp.post("/suppliers/import")
@require_auth
@require_permission("SUPPLIERS_WRITE")
def import_suppliers_route():
    """Columns: name, contact_person, email, phone, address."""
    created = payables_service.import_suppliers(snake_headers(upload_or_json_rows()), g.current_user)
    return camel_response({"suppliers": [s.to_dict() for s in created], "count": len(created)}, 201)


# =============================================================================
# BILLS
# =============================================================================

@payables_bp.get("/bills")
@require_auth
@require_permission("AP_READ")
def list_bills_route():
    """Query params: status (Due|Overdue|Paid), supplierId."""
    supplier_id = request.args.get("supplierId")
    now = utcnow()
    bills = payables_service.list_bills(
        request.args.get("status") or None,
        supplier_id=coerce_int("supplierId", supplier_id) if supplier_id else None,
        now=now,
    )
    return camel_response({"bills": [b.to_dict(now) for b in bills]})


@payables_bp.get("/bills/summary")
@require_auth
@require_permission("AP_READ")
def payables_summary_route():
    return camel_response(payables_service.payables_summary())


@payables_bp.get("/bills/<int:bill_id>")
@require_auth
@require_permission("AP_READ")
def get_bill_route(bill_id: int):
    return camel_response({"bill": payables_service.get_bill(bill_id).to_dict()})


@payables_bp.post("/bills")
@require_auth
@require_permission("AP_WRITE")
def create_bill_route():
    """
    Create a supplier bill. JSON, or multipart form with an optional
    scanned `file`.

    Fields: supplierId, invoiceNumber, billDate, dueDate, amountCents, notes.
    """
    bill = payables_service.create_bill(form_or_json("bills"), g.current_user)
    return camel_response({"bill": bill.to_dict()}, 201)


@payables_bp.put("/bills/<int:bill_id>")
@require_auth
@require_permission("AP_WRITE")
def update_bill_route(bill_id: int):
    bill = payables_service.update_bill(bill_id, form_or_json("bills"), g.current_user)
    return camel_response({"bill": bill.to_dict()})


@payables_bp.delete("/bills/<int:bill_id>")
@require_auth
@require_permission("AP_DELETE")
def delete_bill_route(bill_id: int):
    payables_service.delete_bill(bill_id, g.current_user)
    return "", 204


@payables_bp.post("/bills/<int:bill_id>/payments")
@require_auth
@require_permission("AP_WRITE")
def record_bill_payment_route(bill_id: int):
    """
    Request body:
    {"amountCents": 100000, "paymentDate": "2024-05-01", "method": "Cheque", "referenceNote": "CHQ 118"}
    """
    data = read_json()
    bill = payment_service.record_bill_payment(
        bill_id,
        data.get("amount_cents"),
        payment_date=data.get("payment_date"),
        method=data.get("method"),
        reference_note=data.get("reference_note"),
        user=g.current_user,
    )
    return camel_response({"bill": bill.to_dict()})


@payables_bp.post("/bills/import")
@require_auth
@require_permission("AP_WRITE")
def import_bills_route():
    """Columns: supplier_name, invoice_number, bill_date, due_date, amount (baht), notes."""
    result = payables_service.import_bills(snake_headers(upload_or_json_rows()), g.current_user)
    return camel_response({
        "bills": [b.to_dict() for b in result["bills"]],
        "suppliers": [s.to_dict() for s in result["suppliers"]],
    }, 201)
