from __future__ import annotations

from ..extensions import db
from thumma.time_utils import to_utc_z


DEFAULT_OUTSOURCE_MARKUP_PCT = 20
DEFAULT_LOW_STOCK_THRESHOLD = 10
DEFAULT_DELIVERY_RATE_PER_KM_CENTS = 1500

STORE_SETTINGS_ID = 1


class StoreSettings(db.Model):
    """
    Store-wide configuration. Singleton row (id=1). Reads fall back to defaults until the first save.

    Localized fields (store_name, address, phone, tax_id) are {"en": ..., "th": ...}.
    """
    __tablename__ = "store_settings"

    id = db.Column(db.Integer, primary_key=True, default=STORE_SETTINGS_ID)

    store_name = db.Column(db.JSON, nullable=False)
    address = db.Column(db.JSON, nullable=False)
    phone = db.Column(db.JSON, nullable=False)
    tax_id = db.Column(db.JSON, nullable=False)
    logo_url = db.Column(db.String(512), nullable=True)

    default_outsource_markup_pct = db.Column(db.Integer, nullable=False, default=DEFAULT_OUTSOURCE_MARKUP_PCT)
    low_stock_threshold = db.Column(db.Integer, nullable=False, default=DEFAULT_LOW_STOCK_THRESHOLD)
    delivery_rate_per_km_cents = db.Column(db.Integer, nullable=False, default=DEFAULT_DELIVERY_RATE_PER_KM_CENTS)

    dashboard_widget_visibility = db.Column(db.JSON, nullable=True)

    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), onupdate=db.func.now())

    def to_dict(self) -> dict:
        return {
            "store_name": self.store_name,
            "address": self.address,
            "phone": self.phone,
            "tax_id": self.tax_id,
            "logo_url": self.logo_url,
            "default_outsource_markup_pct": self.default_outsource_markup_pct,
            "low_stock_threshold": self.low_stock_threshold,
            "delivery_rate_per_km_cents": self.delivery_rate_per_km_cents,
            "dashboard_widget_visibility": self.dashboard_widget_visibility,
            "updated_at": to_utc_z(self.updated_at),
        }
