# Overview: Flask API routes for end of day: shift preview, close and history.

from flask import Blueprint, g, request

from ..decorators import require_auth, require_permission
from ..serialization import camel_response
from ..services import shift_service
from ..validation import coerce_int


shifts_bp = Blueprint("shifts", __name__, url_prefix="/api/shifts")


@shifts_bp.get("/current")
@require_auth
@require_permission("END_OF_DAY_READ")
def current_shift_route():
    """Running totals of transactions not yet assigned to a shift."""
    return camel_response(shift_service.preview_shift())


@shifts_bp.post("/close")
@require_auth
@require_permission("END_OF_DAY_WRITE")
def close_shift_route():
    report = shift_service.close_shift(g.current_user)
    return camel_response({"shift": report.to_dict()}, 201)


@shifts_bp.get("")
@require_auth
@require_permission("SHIFT_HISTORY_READ")
def list_shifts_route():
    limit = coerce_int("limit", request.args.get("limit", 100))
    return camel_response({"shifts": [s.to_dict() for s in shift_service.list_shifts(limit)]})


@shifts_bp.get("/<string:shift_id>")
@require_auth
@require_permission("SHIFT_HISTORY_READ")
def get_shift_route(shift_id: str):
    return camel_response({"shift": shift_service.get_shift(shift_id).to_dict()})
