from __future__ import annotations

from ..extensions import db
from thumma.time_utils import to_utc_z
from .lines import LineItemMixin


ORDER_TYPE_PICKUP = "Pickup"
ORDER_TYPE_DELIVERY = "Delivery"
ORDER_TYPES = (ORDER_TYPE_PICKUP, ORDER_TYPE_DELIVERY)

ORDER_STATUS_PENDING = "Pending"
ORDER_STATUS_PROCESSING = "Processing"
ORDER_STATUS_READY_FOR_PICKUP = "Ready for Pickup"
ORDER_STATUS_COMPLETED = "Completed"
ORDER_STATUS_CANCELLED = "Cancelled"

ORDER_STATUSES = (
    ORDER_STATUS_PENDING,
    ORDER_STATUS_PROCESSING,
    ORDER_STATUS_READY_FOR_PICKUP,
    ORDER_STATUS_COMPLETED,
    ORDER_STATUS_CANCELLED,
)

ORDER_PAYMENT_PAID = "Paid"
ORDER_PAYMENT_UNPAID = "Unpaid"
ORDER_PAYMENT_STATUSES = (ORDER_PAYMENT_PAID, ORDER_PAYMENT_UNPAID)


class Order(db.Model):
    """
    Fulfilment order (pickup or delivery).

    An unpaid order can later be turned into an invoice; invoice_id links
    the resulting transaction.
    """
    __tablename__ = "orders"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    date = db.Column(db.DateTime(timezone=True), nullable=False, index=True)

    customer_id = db.Column(db.Integer, db.ForeignKey("customers.id"), nullable=True, index=True)
    customer_name = db.Column(db.String(255), nullable=False)
    customer_type = db.Column(db.String(16), nullable=False)
    customer_phone = db.Column(db.String(64), nullable=True)

    type = db.Column(db.String(16), nullable=False)
    address = db.Column(db.String(512), nullable=True)
    notes = db.Column(db.Text, nullable=True)

    total_cents = db.Column(db.Integer, nullable=False)
    transportation_fee_cents = db.Column(db.Integer, nullable=False, default=0)

    status = db.Column(db.String(24), nullable=False, index=True)
    payment_status = db.Column(db.String(16), nullable=False)
    payment_method = db.Column(db.String(32), nullable=True)

    invoice_id = db.Column(db.String(64), db.ForeignKey("transactions.id"), nullable=True)

    lines = db.relationship(
        "OrderLine",
        backref="order",
        lazy=True,
        cascade="all, delete-orphan",
        order_by="OrderLine.id",
    )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "date": to_utc_z(self.date),
            "customer_id": self.customer_id,
            "customer_name": self.customer_name,
            "customer_type": self.customer_type,
            "customer_phone": self.customer_phone,
            "type": self.type,
            "address": self.address,
            "notes": self.notes,
            "items": [line.to_dict() for line in self.lines],
            "total_cents": self.total_cents,
            "transportation_fee_cents": self.transportation_fee_cents,
            "status": self.status,
            "payment_status": self.payment_status,
            "payment_method": self.payment_method,
            "invoice_id": self.invoice_id,
        }


class OrderLine(LineItemMixin, db.Model):
    __tablename__ = "order_lines"
    __table_args__ = {"sqlite_autoincrement": True}

    order_id = db.Column(db.Integer, db.ForeignKey("orders.id"), nullable=False, index=True)

    def to_dict(self) -> dict:
        data = self.line_dict()
        data["order_id"] = self.order_id
        return data
