# Overview: Flask API route for file uploads (bill scans, logos, product images).

from flask import Blueprint, request

from ..decorators import require_auth
from ..serialization import camel_response
from ..services import storage_service


uploads_bp = Blueprint("uploads", __name__, url_prefix="/api/uploads")


@uploads_bp.post("/<string:folder>")
@require_auth
def upload_route(folder: str):
    """
    Store a multipart `file` under one of the known folders.

    Returns:
        201: {"url": "/uploads/<folder>/<epoch-ms>-<name>"}
        400: No file, or unknown folder
        503: The file could not be written
    """
    url = storage_service.upload_file(request.files.get("file"), folder)
    return camel_response({"url": url}, 201)
