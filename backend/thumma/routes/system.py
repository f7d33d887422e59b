# backend/thumma/routes/system.py
"""
System health and version endpoints.

Health checks touch the database and the upload folder so a deployment
probe notices a broken datastore before the tills do.
"""

import os
import time

from flask import Blueprint, current_app, jsonify
from sqlalchemy.exc import SQLAlchemyError

from ..extensions import db
from ..models import SessionToken, StoreSettings, User
from thumma.time_utils import to_utc_z, utcnow

system_bp = Blueprint("system", __name__)

APP_VERSION = "1.0.0"


def check_database_health() -> dict:
    """Check database connectivity with a few cheap counts."""
    start_time = time.time()
    try:
        user_count = db.session.query(User).count()
        settings_rows = db.session.query(StoreSettings).count()
        active_sessions = db.session.query(SessionToken).filter_by(is_revoked=False).count()
        elapsed_ms = (time.time() - start_time) * 1000
        return {
            "status": "healthy",
            "latency_ms": round(elapsed_ms, 2),
            "details": {
                "users": user_count,
                "settings_initialized": settings_rows > 0,
                "active_sessions": active_sessions,
            },
        }
    except SQLAlchemyError:
        elapsed_ms = (time.time() - start_time) * 1000
        current_app.logger.exception("Database health check failed")
        db.session.rollback()
        return {
            "status": "unhealthy",
            "latency_ms": round(elapsed_ms, 2),
            "error": "Database error",
        }


def check_storage_health() -> dict:
    folder = current_app.config["UPLOAD_FOLDER"]
    if os.path.isdir(folder):
        writable = os.access(folder, os.W_OK)
        return {"status": "healthy" if writable else "degraded", "details": {"writable": writable}}
    # Created on first upload
    return {"status": "healthy", "details": {"exists": False}}


@system_bp.get("/health")
def health():
    checks = {
        "database": check_database_health(),
        "storage": check_storage_health(),
    }
    statuses = {c["status"] for c in checks.values()}
    if "unhealthy" in statuses:
        overall, code = "unhealthy", 503
    elif "degraded" in statuses:
        overall, code = "degraded", 200
    else:
        overall, code = "healthy", 200
    return jsonify({
        "status": overall,
        "timestamp": to_utc_z(utcnow()),
        "checks": checks,
    }), code


@system_bp.get("/api/version")
def version():
    return jsonify({
        "version": APP_VERSION,
        "environment": os.environ.get("FLASK_ENV", "production"),
    }), 200
