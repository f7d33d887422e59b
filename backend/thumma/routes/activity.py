# Overview: Flask API routes for the activity log and the personal to-do list.

from flask import Blueprint, g, request

from ..decorators import require_auth, require_permission
from ..serialization import camel_response, read_json
from ..services import activity_service
from ..validation import coerce_int


activity_bp = Blueprint("activity", __name__, url_prefix="/api")


@activity_bp.get("/activity")
@require_auth
@require_permission("ACTIVITY_LOG_READ")
def list_activity_route():
    limit = coerce_int("limit", request.args.get("limit", 200))
    return camel_response({"activity": [a.to_dict() for a in activity_service.list_activity(limit)]})


@activity_bp.get("/todos")
@require_auth
def list_todos_route():
    return camel_response({"todos": [t.to_dict() for t in activity_service.list_todos(g.current_user)]})


@activity_bp.post("/todos")
@require_auth
def create_todo_route():
    data = read_json()
    item = activity_service.create_todo(g.current_user, data.get("text"), data.get("due_date"))
    return camel_response({"todo": item.to_dict()}, 201)


@activity_bp.put("/todos/<int:todo_id>")
@require_auth
def update_todo_route(todo_id: int):
    item = activity_service.update_todo(g.current_user, todo_id, read_json())
    return camel_response({"todo": item.to_dict()})


@activity_bp.delete("/todos/<int:todo_id>")
@require_auth
def delete_todo_route(todo_id: int):
    activity_service.delete_todo(g.current_user, todo_id)
    return "", 204
