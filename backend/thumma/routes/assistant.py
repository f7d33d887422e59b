# Overview: Flask API route for the sales assistant.

from flask import Blueprint, current_app

from ..decorators import require_auth, require_permission
from ..serialization import camel_response, read_json
from ..services import assistant_service


assistant_bp = Blueprint("assistant", __name__, url_prefix="/api/assistant")


@assistant_bp.post("")
@require_auth
@require_permission("CUSTOMER_ASSIST_READ")
def ask_route():
    """
    Forward a prompt to the configured text completion service.

    Request body: {"prompt": "...", "systemInstruction": "..."}
    Returns: {"text": "..."}
    """
    data = read_json()
    text = assistant_service.ask(data.get("prompt"), data.get("system_instruction"))
    current_app.logger.info("Assistant answered %s characters", len(text))
    return camel_response({"text": text})
