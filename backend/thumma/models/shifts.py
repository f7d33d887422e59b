from __future__ import annotations

from ..extensions import db
from thumma.time_utils import to_utc_z


class ShiftReport(db.Model):
    """
    End-of-day summary. Transactions belong to a shift through Transaction.shift_id.

    IMMUTABLE: written once by close_shift.
    """
    __tablename__ = "shift_reports"

    id = db.Column(db.String(64), primary_key=True)  # SHIFT-<epoch ms>
    start_time = db.Column(db.DateTime(timezone=True), nullable=False)
    end_time = db.Column(db.DateTime(timezone=True), nullable=False, index=True)
    closed_by_user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)
    closed_by_name = db.Column(db.String(128), nullable=False)

    total_sales_cents = db.Column(db.Integer, nullable=False)
    total_profit_cents = db.Column(db.Integer, nullable=False)
    total_transactions = db.Column(db.Integer, nullable=False)

    cash_cents = db.Column(db.Integer, nullable=False, default=0)
    card_cents = db.Column(db.Integer, nullable=False, default=0)
    bank_transfer_cents = db.Column(db.Integer, nullable=False, default=0)

    top_selling_items = db.Column(db.JSON, nullable=False, default=list)

    transactions = db.relationship("Transaction", backref="shift", lazy=True)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "start_time": to_utc_z(self.start_time),
            "end_time": to_utc_z(self.end_time),
            "closed_by_user_id": self.closed_by_user_id,
            "closed_by": self.closed_by_name,
            "total_sales_cents": self.total_sales_cents,
            "total_profit_cents": self.total_profit_cents,
            "total_transactions": self.total_transactions,
            "payment_breakdown": {
                "cash_cents": self.cash_cents,
                "card_cents": self.card_cents,
                "bank_transfer_cents": self.bank_transfer_cents,
            },
            "top_selling_items": self.top_selling_items or [],
            "transaction_ids": [t.id for t in self.transactions],
        }
