# Overview: Store-wide settings (singleton row); defaults apply until the first save.

from __future__ import annotations

from ..errors import ValidationError
from ..extensions import db
from ..models import StoreSettings, User
from ..models.settings import (
    DEFAULT_DELIVERY_RATE_PER_KM_CENTS,
    DEFAULT_LOW_STOCK_THRESHOLD,
    DEFAULT_OUTSOURCE_MARKUP_PCT,
    STORE_SETTINGS_ID,
)
from ..validation import coerce_int, require_amount, require_localized
from . import cache
from .activity_service import log_activity
from .concurrency import run_in_transaction


_LOCALIZED_FIELDS = ("store_name", "address", "phone", "tax_id")


def _defaults() -> StoreSettings:
    blank = {"en": "", "th": ""}
    return StoreSettings(
        id=STORE_SETTINGS_ID,
        store_name={"en": "Thumma Hardware", "th": "Thumma Hardware"},
        address=dict(blank),
        phone=dict(blank),
        tax_id=dict(blank),
        default_outsource_markup_pct=DEFAULT_OUTSOURCE_MARKUP_PCT,
        low_stock_threshold=DEFAULT_LOW_STOCK_THRESHOLD,
        delivery_rate_per_km_cents=DEFAULT_DELIVERY_RATE_PER_KM_CENTS,
    )


def get_store_settings() -> StoreSettings:
    """
    Return the settings row, or unsaved defaults when none exists yet.

    Reads never write, so a lookup inside another unit of work cannot commit it.
    """
    settings = db.session.get(StoreSettings, STORE_SETTINGS_ID)
    if settings is None:
        return _defaults()
    return settings


def ensure_store_settings() -> StoreSettings:
    """Persist the defaults row if missing (used by `flask system init`)."""
    def _op():
        settings = db.session.get(StoreSettings, STORE_SETTINGS_ID)
        if settings is None:
            settings = _defaults()
            db.session.add(settings)
            db.session.flush()
        return settings

    return run_in_transaction(_op, invalidates=(cache.STORE_SETTINGS,))


def get_store_settings_dict() -> dict:
    return cache.get_or_load(cache.STORE_SETTINGS, "current", lambda: get_store_settings().to_dict())


def update_store_settings(patch: dict, user: User | None = None) -> StoreSettings:
    """Apply a settings patch. A new low-stock threshold re-derives every variant status in the same write."""
    allowed = set(_LOCALIZED_FIELDS) | {
        "logo_url",
        "default_outsource_markup_pct",
        "low_stock_threshold",
        "delivery_rate_per_km_cents",
        "dashboard_widget_visibility",
    }
    unknown = sorted(k for k in patch if k not in allowed)
    if unknown:
        raise ValidationError(f"Field not allowed: {', '.join(unknown)}")

    clean: dict = {}
    for key in _LOCALIZED_FIELDS:
        if key in patch:
            clean[key] = require_localized(key, patch[key], required=(key == "store_name"))
    if "logo_url" in patch:
        clean["logo_url"] = (patch["logo_url"] or None)
    if "default_outsource_markup_pct" in patch:
        markup = coerce_int("default_outsource_markup_pct", patch["default_outsource_markup_pct"])
        if markup < 0 or markup > 1000:
            raise ValidationError("default_outsource_markup_pct must be between 0 and 1000")
        clean["default_outsource_markup_pct"] = markup
    if "low_stock_threshold" in patch:
        threshold = coerce_int("low_stock_threshold", patch["low_stock_threshold"])
        if threshold < 0:
            raise ValidationError("low_stock_threshold must be >= 0")
        clean["low_stock_threshold"] = threshold
    if "delivery_rate_per_km_cents" in patch:
        clean["delivery_rate_per_km_cents"] = require_amount("delivery_rate_per_km_cents", patch["delivery_rate_per_km_cents"])
    if "dashboard_widget_visibility" in patch:
        visibility = patch["dashboard_widget_visibility"]
        if visibility is not None and not isinstance(visibility, dict):
            raise ValidationError("dashboard_widget_visibility must be an object")
        clean["dashboard_widget_visibility"] = visibility

    def _op():
        settings = db.session.get(StoreSettings, STORE_SETTINGS_ID)
        if settings is None:
            settings = _defaults()
            db.session.add(settings)
        for key, value in clean.items():
            setattr(settings, key, value)
        if "low_stock_threshold" in clean:
            from .inventory_service import rederive_statuses
            rederive_statuses(settings.low_stock_threshold)
        log_activity(user, "Updated store settings.")
        return settings

    invalidates = (cache.STORE_SETTINGS, cache.PRODUCTS) if "low_stock_threshold" in clean else (cache.STORE_SETTINGS,)
    return run_in_transaction(_op, invalidates=invalidates)


def low_stock_threshold() -> int:
    return int(get_store_settings_dict()["low_stock_threshold"])


def default_outsource_markup_pct() -> int:
    return int(get_store_settings_dict()["default_outsource_markup_pct"])
