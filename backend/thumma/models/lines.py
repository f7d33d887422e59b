from __future__ import annotations

from ..extensions import db


LINE_KIND_CATALOG = "CATALOG"
LINE_KIND_OUTSOURCED = "OUTSOURCED"
LINE_KIND_MISC = "MISC"
LINE_KIND_BALANCE_FORWARD = "BALANCE_FORWARD"
LINE_KIND_CONSOLIDATED = "CONSOLIDATED"
LINE_KIND_PAST_INVOICE = "PAST_INVOICE"

# Lines that move stock when sold or returned
STOCKED_LINE_KINDS = (LINE_KIND_CATALOG,)


class LineItemMixin:
    """
    Frozen copy of a cart item.

    product_id / variant_id are plain references, not foreign keys: the line
    must survive later catalog edits and deletes unchanged.
    """
    id = db.Column(db.Integer, primary_key=True)

    line_kind = db.Column(db.String(24), nullable=False, default=LINE_KIND_CATALOG)
    product_id = db.Column(db.Integer, nullable=True)
    variant_id = db.Column(db.Integer, nullable=True, index=True)
    name = db.Column(db.JSON, nullable=False)
    size = db.Column(db.String(64), nullable=False, default="")
    sku = db.Column(db.String(64), nullable=False, default="")
    quantity = db.Column(db.Integer, nullable=False)

    # Price snapshot taken when the item entered the cart
    price_walk_in_cents = db.Column(db.Integer, nullable=False)
    price_contractor_cents = db.Column(db.Integer, nullable=False)
    price_government_cents = db.Column(db.Integer, nullable=False)
    cost_price_cents = db.Column(db.Integer, nullable=False, default=0)

    is_outsourced = db.Column(db.Boolean, nullable=False, default=False)
    outsourced_cost_cents = db.Column(db.Integer, nullable=True)

    def price_block(self) -> dict:
        return {
            "walk_in": self.price_walk_in_cents,
            "contractor": self.price_contractor_cents,
            "government": self.price_government_cents,
            "cost": self.cost_price_cents,
        }

    def line_dict(self) -> dict:
        return {
            "id": self.id,
            "line_kind": self.line_kind,
            "product_id": self.product_id,
            "variant_id": self.variant_id,
            "name": self.name,
            "size": self.size,
            "sku": self.sku,
            "quantity": self.quantity,
            "price": self.price_block(),
            "is_outsourced": self.is_outsourced,
            "outsourced_cost_cents": self.outsourced_cost_cents,
        }
