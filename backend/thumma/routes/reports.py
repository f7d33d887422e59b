# Overview: Flask API routes for the CEO dashboard.

from flask import Blueprint

from ..decorators import require_auth, require_permission
from ..serialization import camel_response
from ..services import reporting_service
from thumma.time_utils import utcnow


reports_bp = Blueprint("reports", __name__, url_prefix="/api/dashboard")


@reports_bp.get("")
@require_auth
@require_permission("DASHBOARD_READ")
def dashboard_route():
    """
    Sales today / month / year, today's receivables vs paid by method,
    payables due, overdue receivables, low stock and daily wages.
    """
    return camel_response(reporting_service.dashboard_summary())


@reports_bp.get("/overdue-receivables")
@require_auth
@require_permission("DASHBOARD_READ")
def overdue_receivables_route():
    now = utcnow()
    rows = reporting_service.overdue_receivables(now)
    return camel_response({"invoices": [t.to_dict(now) for t in rows]})
