from __future__ import annotations

from ..extensions import db
from thumma.time_utils import to_utc_z


CUSTOMER_TYPE_WALK_IN = "walkIn"
CUSTOMER_TYPE_CONTRACTOR = "contractor"
CUSTOMER_TYPE_GOVERNMENT = "government"
CUSTOMER_TYPE_ORGANIZATION = "organization"

CUSTOMER_TYPES = (
    CUSTOMER_TYPE_WALK_IN,
    CUSTOMER_TYPE_CONTRACTOR,
    CUSTOMER_TYPE_GOVERNMENT,
    CUSTOMER_TYPE_ORGANIZATION,
)


class Customer(db.Model):
    """
    Customer master data.

    type selects the pricing tier at the POS. 'organization' customers
    are priced at the contractor tier.
    """
    __tablename__ = "customers"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(255), nullable=False, index=True)
    type = db.Column(db.String(16), nullable=False, default=CUSTOMER_TYPE_WALK_IN)
    phone = db.Column(db.String(64), nullable=True)
    address = db.Column(db.String(512), nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "type": self.type,
            "phone": self.phone,
            "address": self.address,
            "created_at": to_utc_z(self.created_at),
        }
