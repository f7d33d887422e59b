# Overview: Flask API routes for pickup and delivery orders.

from flask import Blueprint, g, request

from ..decorators import require_auth, require_permission
from ..errors import ValidationError
from ..models.customers import CUSTOMER_TYPE_WALK_IN
from ..models.orders import ORDER_PAYMENT_UNPAID
from ..serialization import camel_response, read_json
from ..services import order_service
from ..services.cart_service import cart_items_from_payload
from ..validation import coerce_int, require_amount
from thumma.time_utils import parse_iso_datetime


orders_bp = Blueprint("orders", __name__, url_prefix="/api/orders")


@orders_bp.get("")
@require_auth
@require_permission("ORDER_FULFILLMENT_READ")
def list_orders_route():
    orders = order_service.list_orders(request.args.get("status") or None)
    return camel_response({"orders": [o.to_dict() for o in orders]})


@orders_bp.get("/<int:order_id>")
@require_auth
@require_permission("ORDER_FULFILLMENT_READ")
def get_order_route(order_id: int):
    return camel_response({"order": order_service.get_order(order_id).to_dict()})


@orders_bp.post("")
@require_auth
@require_permission("ORDER_FULFILLMENT_WRITE")
def create_order_route():
    """
    Create a pickup or delivery order. Stock leaves when the order is taken.

    Request body:
    {
        "items": [...],                 (same shape as POS checkout)
        "type": "Delivery",
        "customerType": "contractor",
        "customerId": 5 | "customerName": "...", "customerPhone": "...",
        "address": "...",               (required for delivery unless on the customer)
        "notes": "...",
        "transportationFeeCents": 30000,
        "paymentStatus": "Unpaid",
        "paymentMethod": "Cash",        (when Paid)
        "vatIncluded": false
    }
    """
    data = read_json()
    customer_id = data.get("customer_id")
    order = order_service.create_order(
        items=cart_items_from_payload(data.get("items")),
        order_type=data.get("type"),
        customer_type=data.get("customer_type") or CUSTOMER_TYPE_WALK_IN,
        payment_status=data.get("payment_status") or ORDER_PAYMENT_UNPAID,
        operator=g.current_user,
        customer_id=coerce_int("customer_id", customer_id) if customer_id not in (None, "") else None,
        customer_name=data.get("customer_name"),
        customer_phone=data.get("customer_phone"),
        address=data.get("address"),
        notes=data.get("notes"),
        transportation_fee_cents=require_amount(
            "transportation_fee_cents", data.get("transportation_fee_cents", 0)
        ),
        payment_method=data.get("payment_method") or None,
        vat_included=bool(data.get("vat_included")),
    )
    return camel_response({"order": order.to_dict()}, 201)


@orders_bp.put("/<int:order_id>/status")
@require_auth
@require_permission("ORDER_FULFILLMENT_WRITE")
def update_status_route(order_id: int):
    order = order_service.update_order_status(order_id, read_json().get("status"), g.current_user)
    return camel_response({"order": order.to_dict()})


@orders_bp.put("/<int:order_id>/payment-status")
@require_auth
@require_permission("ORDER_FULFILLMENT_WRITE")
def update_payment_status_route(order_id: int):
    data = read_json()
    order = order_service.update_order_payment_status(
        order_id,
        data.get("payment_status"),
        g.current_user,
        payment_method=data.get("payment_method") or None,
    )
    return camel_response({"order": order.to_dict()})


@orders_bp.post("/<int:order_id>/invoice")
@require_auth
@require_permission("ORDER_FULFILLMENT_WRITE")
def convert_to_invoice_route(order_id: int):
    """Turn an unpaid order into an accounts receivable invoice (due in 30 days by default)."""
    data = read_json()
    try:
        due_date = parse_iso_datetime(data.get("due_date"))
    except (TypeError, ValueError):
        raise ValidationError("due_date must be an ISO-8601 date")
    tx = order_service.convert_order_to_invoice(order_id, g.current_user, due_date=due_date)
    return camel_response({"transaction": tx.to_dict(), "order": order_service.get_order(order_id).to_dict()}, 201)
