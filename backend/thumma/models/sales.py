from __future__ import annotations

from ..extensions import db
from thumma.time_utils import to_utc_z
from .lines import LineItemMixin


PAYMENT_STATUS_UNPAID = "Unpaid"
PAYMENT_STATUS_PARTIALLY_PAID = "Partially Paid"
PAYMENT_STATUS_PAID = "Paid"
PAYMENT_STATUS_CONSOLIDATED = "Consolidated"

OPEN_PAYMENT_STATUSES = (PAYMENT_STATUS_UNPAID, PAYMENT_STATUS_PARTIALLY_PAID)
PAYMENT_STATUSES = (
    PAYMENT_STATUS_UNPAID,
    PAYMENT_STATUS_PARTIALLY_PAID,
    PAYMENT_STATUS_PAID,
    PAYMENT_STATUS_CONSOLIDATED,
)

PAYMENT_METHOD_CASH = "Cash"
PAYMENT_METHOD_CARD = "Card"
PAYMENT_METHOD_BANK_TRANSFER = "Bank Transfer"
PAYMENT_METHOD_CHEQUE = "Cheque"

PAYMENT_METHODS = (
    PAYMENT_METHOD_CASH,
    PAYMENT_METHOD_CARD,
    PAYMENT_METHOD_BANK_TRANSFER,
    PAYMENT_METHOD_CHEQUE,
)


class Transaction(db.Model):
    """
    Sales transaction / invoice.

    Created at checkout (paid) or as an invoice (unpaid, with due_date).
    Mutated only by payment recording, returns, consolidation and shift close.

    INVARIANTS:
    - paid_amount_cents <= total_cents
    - payment_status agrees with paid_amount_cents vs total_cents, except
      'Consolidated' which freezes the balance
    - 'Overdue' is never stored; it is derived from due_date at read time
    """
    __tablename__ = "transactions"
    __table_args__ = (
        db.CheckConstraint("paid_amount_cents >= 0", name="ck_transactions_paid_non_negative"),
        db.CheckConstraint("paid_amount_cents <= total_cents", name="ck_transactions_paid_le_total"),
        db.Index("ix_transactions_customer_status", "customer_id", "payment_status"),
    )

    id = db.Column(db.String(64), primary_key=True)
    date = db.Column(db.DateTime(timezone=True), nullable=False, index=True)

    # Totals (all amounts in satang)
    subtotal_cents = db.Column(db.Integer, nullable=False)
    tax_cents = db.Column(db.Integer, nullable=False)
    transportation_fee_cents = db.Column(db.Integer, nullable=False, default=0)
    total_cents = db.Column(db.Integer, nullable=False)
    vat_included = db.Column(db.Boolean, nullable=False, default=False)

    # Customer snapshot
    customer_id = db.Column(db.Integer, db.ForeignKey("customers.id"), nullable=True, index=True)
    customer_name = db.Column(db.String(255), nullable=False, default="Guest")
    customer_address = db.Column(db.String(512), nullable=True)
    customer_phone = db.Column(db.String(64), nullable=True)
    customer_type = db.Column(db.String(16), nullable=False)

    operator = db.Column(db.String(128), nullable=False)
    payment_method = db.Column(db.String(32), nullable=False)

    # Payment tracking
    payment_status = db.Column(db.String(24), nullable=False, index=True)
    paid_amount_cents = db.Column(db.Integer, nullable=False, default=0)
    due_date = db.Column(db.DateTime(timezone=True), nullable=True)

    applied_store_credit_id = db.Column(db.String(64), nullable=True)
    applied_store_credit_cents = db.Column(db.Integer, nullable=False, default=0)

    # Set when the open balance was rolled into a later invoice
    consolidated_into_id = db.Column(db.String(64), db.ForeignKey("transactions.id"), nullable=True, index=True)

    shift_id = db.Column(db.String(64), db.ForeignKey("shift_reports.id"), nullable=True, index=True)
    file_url = db.Column(db.String(512), nullable=True)

    lines = db.relationship(
        "TransactionLine",
        backref="transaction",
        lazy=True,
        cascade="all, delete-orphan",
        order_by="TransactionLine.id",
    )
    payments = db.relationship(
        "TransactionPayment",
        backref="transaction",
        lazy=True,
        cascade="all, delete-orphan",
        order_by="TransactionPayment.id",
    )
    returned_items = db.relationship(
        "ReturnedItem",
        backref="transaction",
        lazy=True,
        cascade="all, delete-orphan",
        order_by="ReturnedItem.id",
    )

    @property
    def balance_cents(self) -> int:
        return self.total_cents - self.paid_amount_cents

    def to_dict(self, now=None) -> dict:
        from ..services.payment_service import is_overdue

        return {
            "id": self.id,
            "date": to_utc_z(self.date),
            "items": [line.to_dict() for line in self.lines],
            "subtotal_cents": self.subtotal_cents,
            "tax_cents": self.tax_cents,
            "transportation_fee_cents": self.transportation_fee_cents,
            "total_cents": self.total_cents,
            "vat_included": self.vat_included,
            "customer_id": self.customer_id,
            "customer_name": self.customer_name,
            "customer_address": self.customer_address,
            "customer_phone": self.customer_phone,
            "customer_type": self.customer_type,
            "operator": self.operator,
            "payment_method": self.payment_method,
            "payment_status": self.payment_status,
            "paid_amount_cents": self.paid_amount_cents,
            "balance_cents": self.balance_cents,
            "due_date": to_utc_z(self.due_date) if self.due_date else None,
            "is_overdue": is_overdue(self, now=now),
            "applied_store_credit": (
                {"id": self.applied_store_credit_id, "amount_cents": self.applied_store_credit_cents}
                if self.applied_store_credit_id else None
            ),
            "consolidated_into_id": self.consolidated_into_id,
            "shift_id": self.shift_id,
            "file_url": self.file_url,
            "payments": [p.to_dict() for p in self.payments],
            "returned_items": [r.to_dict() for r in self.returned_items],
        }


class TransactionLine(LineItemMixin, db.Model):
    """Line items on a transaction. Immutable after creation."""
    __tablename__ = "transaction_lines"
    __table_args__ = {"sqlite_autoincrement": True}

    transaction_id = db.Column(db.String(64), db.ForeignKey("transactions.id"), nullable=False, index=True)

    # For BALANCE_FORWARD / CONSOLIDATED lines: the invoice whose balance this line carries
    source_transaction_id = db.Column(db.String(64), nullable=True, index=True)

    def to_dict(self) -> dict:
        data = self.line_dict()
        data["transaction_id"] = self.transaction_id
        data["source_transaction_id"] = self.source_transaction_id
        return data


class TransactionPayment(db.Model):
    """
    Append-only payment history for a transaction.

    IMMUTABLE: Records are never updated or deleted (except with the
    transaction itself on an explicit admin delete).
    """
    __tablename__ = "transaction_payments"
    __table_args__ = (
        db.CheckConstraint("amount_cents > 0", name="ck_transaction_payments_positive"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    transaction_id = db.Column(db.String(64), db.ForeignKey("transactions.id"), nullable=False, index=True)
    amount_cents = db.Column(db.Integer, nullable=False)
    payment_method = db.Column(db.String(32), nullable=False)
    reference = db.Column(db.String(255), nullable=True)
    paid_at = db.Column(db.DateTime(timezone=True), nullable=False)
    recorded_by_user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "transaction_id": self.transaction_id,
            "amount_cents": self.amount_cents,
            "payment_method": self.payment_method,
            "reference": self.reference,
            "date": to_utc_z(self.paid_at),
            "recorded_by_user_id": self.recorded_by_user_id,
        }


RETURN_REASON_CUSTOMER_CHOICE = "Customer Choice"
RETURN_REASON_DAMAGED_PRODUCT = "Damaged Product"
RETURN_REASON_WRONG_ITEM = "Wrong Item"

RETURN_REASONS = (
    RETURN_REASON_CUSTOMER_CHOICE,
    RETURN_REASON_DAMAGED_PRODUCT,
    RETURN_REASON_WRONG_ITEM,
)


class ReturnedItem(db.Model):
    """Units returned against a transaction line."""
    __tablename__ = "returned_items"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    transaction_id = db.Column(db.String(64), db.ForeignKey("transactions.id"), nullable=False, index=True)
    line_id = db.Column(db.Integer, db.ForeignKey("transaction_lines.id"), nullable=False, index=True)
    product_id = db.Column(db.Integer, nullable=True)
    variant_id = db.Column(db.Integer, nullable=True)
    name = db.Column(db.JSON, nullable=False)
    size = db.Column(db.String(64), nullable=False, default="")
    quantity = db.Column(db.Integer, nullable=False)
    reason = db.Column(db.String(32), nullable=False)
    unit_refund_cents = db.Column(db.Integer, nullable=False)
    store_credit_id = db.Column(db.String(64), db.ForeignKey("store_credits.id"), nullable=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "line_id": self.line_id,
            "product_id": self.product_id,
            "variant_id": self.variant_id,
            "name": self.name,
            "size": self.size,
            "quantity": self.quantity,
            "reason": self.reason,
            "unit_price_cents": self.unit_refund_cents,
            "store_credit_id": self.store_credit_id,
            "created_at": to_utc_z(self.created_at),
        }


class StoreCredit(db.Model):
    """
    Redeemable balance issued for a return. Consumed at most once.
    """
    __tablename__ = "store_credits"
    __table_args__ = (
        db.CheckConstraint("amount_cents > 0", name="ck_store_credits_positive"),
    )

    id = db.Column(db.String(64), primary_key=True)  # redemption code, e.g. CREDIT-1718000000000
    amount_cents = db.Column(db.Integer, nullable=False)
    is_used = db.Column(db.Boolean, nullable=False, default=False, index=True)
    original_transaction_id = db.Column(db.String(64), db.ForeignKey("transactions.id"), nullable=False, index=True)
    used_by_transaction_id = db.Column(db.String(64), nullable=True)
    date_issued = db.Column(db.DateTime(timezone=True), nullable=False)
    used_at = db.Column(db.DateTime(timezone=True), nullable=True)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "amount_cents": self.amount_cents,
            "is_used": self.is_used,
            "original_transaction_id": self.original_transaction_id,
            "used_by_transaction_id": self.used_by_transaction_id,
            "date_issued": to_utc_z(self.date_issued),
            "used_at": to_utc_z(self.used_at) if self.used_at else None,
        }
