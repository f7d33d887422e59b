# Overview: Flask API routes for store settings.

from flask import Blueprint, g

from ..decorators import require_auth, require_permission
from ..serialization import camel_response, read_json
from ..services import settings_service


settings_bp = Blueprint("settings", __name__, url_prefix="/api/settings")


@settings_bp.get("")
@require_auth
def get_settings_route():
    """Every signed-in user reads the settings (receipts need the store header)."""
    return camel_response({"store_settings": settings_service.get_store_settings_dict()})


@settings_bp.put("")
@require_auth
@require_permission("STORE_SETTINGS_WRITE")
def update_settings_route():
    """
    Update store settings. Changing lowStockThreshold re-derives every
    variant status.
    """
    data = read_json()
    settings = settings_service.update_store_settings(data, g.current_user)
    return camel_response({"store_settings": settings.to_dict()})


@settings_bp.put("/dashboard-widgets")
@require_auth
@require_permission("DASHBOARD_MANAGEMENT_WRITE")
def update_dashboard_widgets_route():
    """Request body: {"dashboardWidgetVisibility": {"salesToday": true, ...}}"""
    data = read_json()
    settings = settings_service.update_store_settings(
        {"dashboard_widget_visibility": data.get("dashboard_widget_visibility")},
        g.current_user,
    )
    return camel_response({"store_settings": settings.to_dict()})
