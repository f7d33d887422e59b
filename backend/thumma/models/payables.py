from __future__ import annotations

from ..extensions import db
from thumma.time_utils import to_utc_z


BILL_STATUS_DUE = "Due"
BILL_STATUS_PAID = "Paid"
# Display-only; derived from due_date at read time and never persisted
BILL_STATUS_OVERDUE = "Overdue"

BILL_STATUSES = (BILL_STATUS_DUE, BILL_STATUS_OVERDUE, BILL_STATUS_PAID)


class Supplier(db.Model):
    """Supplier master data (accounts payable counterparty)."""
    __tablename__ = "suppliers"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(255), nullable=False, index=True)
    contact_person = db.Column(db.String(255), nullable=True)
    email = db.Column(db.String(255), nullable=True)
    phone = db.Column(db.String(64), nullable=True)
    address = db.Column(db.String(512), nullable=True)
    logo_url = db.Column(db.String(512), nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    bills = db.relationship("Bill", backref="supplier", lazy=True)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "contact_person": self.contact_person,
            "email": self.email,
            "phone": self.phone,
            "address": self.address,
            "logo_url": self.logo_url,
            "created_at": to_utc_z(self.created_at),
        }


class Bill(db.Model):
    """
    Supplier bill (money owed by the store).

    INVARIANTS:
    - paid_amount_cents <= amount_cents
    - status is 'Due' or 'Paid'; 'Overdue' only appears in to_dict()
    """
    __tablename__ = "bills"
    __table_args__ = (
        db.CheckConstraint("amount_cents > 0", name="ck_bills_amount_positive"),
        db.CheckConstraint("paid_amount_cents >= 0", name="ck_bills_paid_non_negative"),
        db.CheckConstraint("paid_amount_cents <= amount_cents", name="ck_bills_paid_le_amount"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    supplier_id = db.Column(db.Integer, db.ForeignKey("suppliers.id"), nullable=False, index=True)
    invoice_number = db.Column(db.String(128), nullable=False)
    bill_date = db.Column(db.DateTime(timezone=True), nullable=False)
    due_date = db.Column(db.DateTime(timezone=True), nullable=False, index=True)
    amount_cents = db.Column(db.Integer, nullable=False)
    paid_amount_cents = db.Column(db.Integer, nullable=False, default=0)
    status = db.Column(db.String(16), nullable=False, default=BILL_STATUS_DUE, index=True)
    notes = db.Column(db.Text, nullable=True)
    file_url = db.Column(db.String(512), nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    payments = db.relationship(
        "BillPayment",
        backref="bill",
        lazy=True,
        cascade="all, delete-orphan",
        order_by="BillPayment.id",
    )

    @property
    def balance_cents(self) -> int:
        return self.amount_cents - self.paid_amount_cents

    def to_dict(self, now=None) -> dict:
        from ..services.payment_service import display_status, is_overdue

        return {
            "id": self.id,
            "supplier_id": self.supplier_id,
            "supplier_name": self.supplier.name if self.supplier else None,
            "invoice_number": self.invoice_number,
            "bill_date": to_utc_z(self.bill_date),
            "due_date": to_utc_z(self.due_date),
            "amount_cents": self.amount_cents,
            "paid_amount_cents": self.paid_amount_cents,
            "balance_cents": self.balance_cents,
            "status": display_status(self, now=now),
            "is_overdue": is_overdue(self, now=now),
            "notes": self.notes,
            "file_url": self.file_url,
            "payments": [p.to_dict() for p in self.payments],
        }


class BillPayment(db.Model):
    """Append-only payment history for a bill."""
    __tablename__ = "bill_payments"
    __table_args__ = (
        db.CheckConstraint("amount_cents > 0", name="ck_bill_payments_positive"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    bill_id = db.Column(db.Integer, db.ForeignKey("bills.id"), nullable=False, index=True)
    amount_cents = db.Column(db.Integer, nullable=False)
    payment_date = db.Column(db.DateTime(timezone=True), nullable=False)
    payment_method = db.Column(db.String(32), nullable=False)
    reference_note = db.Column(db.String(255), nullable=True)
    recorded_by_user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "bill_id": self.bill_id,
            "amount_cents": self.amount_cents,
            "payment_date": to_utc_z(self.payment_date),
            "payment_method": self.payment_method,
            "reference_note": self.reference_note,
        }
