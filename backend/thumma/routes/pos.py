# Overview: Flask API routes for the point of sale: cart pricing, checkout and invoices.

"""
Point of sale API

The cart lives on the client. Every call sends the current lines; catalog
lines are re-priced from the datastore, outsourced and misc lines carry the
operator-entered prices.

Checkout request body:
{
    "items": [{"variantId": 1, "quantity": 2},
              {"kind": "OUTSOURCED", "variantId": 3, "quantity": 1,
               "outsourcedCostCents": 10000, "price": {"walkIn": 12000}}],
    "customer": {"customerId": 5} | {"name": "Somchai", "phone": "...", "address": "..."}
                | {"newCustomer": {"name": "...", "type": "contractor"}},
    "customerType": "walkIn",
    "vatIncluded": false,
    "paymentMethod": "Cash",
    "transportationFeeCents": 0,
    "storeCreditCode": "CREDIT-...",
    "carryForward": false
}
"""

from flask import Blueprint, g

from ..decorators import require_auth, require_permission
from ..errors import ValidationError
from ..models.customers import CUSTOMER_TYPE_GOVERNMENT, CUSTOMER_TYPE_WALK_IN
from ..serialization import camel_response, read_json
from ..services import sales_service, stock_resolution_service
from ..services.cart_service import Cart, cart_items_from_payload
from ..services.catalog_service import get_product
from ..services.inventory_service import get_variant
from ..services.pricing_service import compute_totals
from ..services.sales_service import CheckoutError, CustomerInfo
from ..services.store_credit_service import find_active_credit
from ..validation import coerce_int, require_amount
from thumma.time_utils import parse_iso_datetime


pos_bp = Blueprint("pos", __name__, url_prefix="/api/pos")


def _customer_info(raw) -> CustomerInfo:
    raw = raw or {}
    if not isinstance(raw, dict):
        raise ValidationError("customer must be an object")
    customer_id = raw.get("customer_id")
    return CustomerInfo(
        customer_id=coerce_int("customer.customer_id", customer_id) if customer_id not in (None, "") else None,
        name=str(raw.get("name") or sales_service.GUEST_NAME),
        address=raw.get("address") or None,
        phone=raw.get("phone") or None,
        new_customer=raw.get("new_customer") or None,
    )


def _fee(data: dict) -> int:
    return require_amount("transportation_fee_cents", data.get("transportation_fee_cents", 0))


@pos_bp.post("/totals")
@require_auth
@require_permission("POS_READ")
def totals_route():
    """
    Price the current cart. Nothing is written.

    With carryForward set, the saved customer's open balance is folded in
    the same way checkout folds it, so the preview matches the receipt.
    """
    data = read_json()
    items = cart_items_from_payload(data.get("items"))
    customer_type = data.get("customer_type") or CUSTOMER_TYPE_WALK_IN
    carried = 0
    if data.get("carry_forward"):
        customer = _customer_info(data.get("customer"))
        if customer.customer_id is None:
            raise CheckoutError("Carrying a balance forward requires a saved customer")
        carried = sales_service.open_balance_cents(sales_service.open_transactions_for(customer.customer_id))
    credit_cents = 0
    if data.get("store_credit_code"):
        credit_cents = find_active_credit(data["store_credit_code"]).amount_cents
    totals = compute_totals(
        items,
        customer_type,
        bool(data.get("vat_included")) or customer_type == CUSTOMER_TYPE_GOVERNMENT,
        transportation_fee_cents=_fee(data),
        carried_forward_cents=carried,
        store_credit_cents=credit_cents,
    )
    return camel_response({"items": [i.to_dict() for i in items], "totals": totals.to_dict()})


@pos_bp.post("/cart/add")
@require_auth
@require_permission("POS_READ")
def add_to_cart_route():
    """
    Merge one line into the current cart.

    Catalog lines are capped at the stock on hand; the same variant added
    twice becomes one line.
    """
    data = read_json()
    cart = Cart(items=cart_items_from_payload(data.get("items")))
    new_items = cart_items_from_payload([data.get("item")])
    item = new_items[0]
    available = get_variant(item.variant_id).stock_quantity if item.moves_stock else None
    cart.add(item, available)
    return camel_response({"items": [i.to_dict() for i in cart.items]})


@pos_bp.post("/outsource")
@require_auth
@require_permission("POS_WRITE")
def outsource_item_route():
    """
    Build an outsourced line for a product that is out of stock.

    Request body: {"productId", "variantId"?, "costCents", "markupPct"?,
    "sellingPriceCents"?, "quantity"?}. Without an override the store's
    default markup applies and the price is rounded up to a whole baht.
    """
    data = read_json()
    product = get_product(coerce_int("product_id", data.get("product_id")))
    variant = None
    if data.get("variant_id") not in (None, ""):
        variant = get_variant(coerce_int("variant_id", data["variant_id"]))
        if variant.product_id != product.id:
            raise ValidationError("Variant does not belong to product")
    selling = data.get("selling_price_cents")
    item = stock_resolution_service.build_outsourced_item(
        product,
        variant,
        require_amount("cost_cents", data.get("cost_cents"), allow_zero=False),
        markup_pct=data.get("markup_pct"),
        selling_price_cents=require_amount("selling_price_cents", selling) if selling not in (None, "") else None,
        quantity=coerce_int("quantity", data.get("quantity", 1)),
    )
    return camel_response({"item": item.to_dict()})


@pos_bp.post("/misc")
@require_auth
@require_permission("POS_WRITE")
def misc_item_route():
    """Free-text service line (cutting, delivery work). No stock effect."""
    data = read_json()
    item = stock_resolution_service.build_misc_item(
        data.get("description"),
        require_amount("cost_cents", data.get("cost_cents", 0)),
        require_amount("price_cents", data.get("price_cents"), allow_zero=False),
        coerce_int("quantity", data.get("quantity", 1)),
    )
    return camel_response({"item": item.to_dict()})


@pos_bp.post("/checkout")
@require_auth
@require_permission("POS_WRITE")
def checkout_route():
    """
    Complete an in-store sale paid in full.

    Returns:
        201: Transaction created
        400: Invalid cart, missing VAT details, bad store credit
        409: Not enough stock
        503: Datastore rejected the write; nothing was changed
    """
    data = read_json()
    tx = sales_service.checkout(
        items=cart_items_from_payload(data.get("items")),
        customer=_customer_info(data.get("customer")),
        customer_type=data.get("customer_type") or CUSTOMER_TYPE_WALK_IN,
        vat_included=bool(data.get("vat_included")),
        payment_method=data.get("payment_method"),
        operator=g.current_user,
        transportation_fee_cents=_fee(data),
        store_credit_code=data.get("store_credit_code") or None,
        carry_forward=bool(data.get("carry_forward")),
    )
    return camel_response({"transaction": tx.to_dict()}, 201)


@pos_bp.post("/invoice")
@require_auth
@require_permission("POS_WRITE")
def create_invoice_route():
    """Create an unpaid invoice for a contractor, government or organization customer."""
    data = read_json()
    try:
        due_date = parse_iso_datetime(data.get("due_date"))
    except (TypeError, ValueError):
        raise ValidationError("due_date must be an ISO-8601 date")
    tx = sales_service.create_invoice(
        items=cart_items_from_payload(data.get("items")),
        customer=_customer_info(data.get("customer")),
        customer_type=data.get("customer_type") or CUSTOMER_TYPE_WALK_IN,
        vat_included=bool(data.get("vat_included")),
        due_date=due_date,
        operator=g.current_user,
        transportation_fee_cents=_fee(data),
    )
    return camel_response({"transaction": tx.to_dict()}, 201)
