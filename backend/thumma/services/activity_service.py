# Overview: Service-layer operations for the activity log and per-user to-do list.

"""
Activity log invariants

- Append-only; rows are never updated or deleted.
- log_activity() only adds to the session. The caller's unit of work commits
  it together with the change it describes.
"""

from __future__ import annotations

from ..errors import NotFoundError, ValidationError
from ..extensions import db
from ..models import ActivityLog, ToDoItem, User
from thumma.time_utils import parse_iso_datetime, utcnow
from .concurrency import run_in_transaction


def format_baht(cents: int) -> str:
    return f"฿{cents / 100:,.2f}"


def log_activity(user: User | None, action: str) -> ActivityLog:
    entry = ActivityLog(
        user_id=user.id if user else None,
        user_name=user.name if user else "System",
        action=action,
        timestamp=utcnow(),
    )
    db.session.add(entry)
    return entry


def list_activity(limit: int = 200) -> list[ActivityLog]:
    limit = max(1, min(int(limit), 1000))
    return (
        db.session.query(ActivityLog)
        .order_by(ActivityLog.timestamp.desc(), ActivityLog.id.desc())
        .limit(limit)
        .all()
    )


# -- to-do list --

def list_todos(user: User) -> list[ToDoItem]:
    return (
        db.session.query(ToDoItem)
        .filter_by(user_id=user.id)
        .order_by(ToDoItem.completed.asc(), ToDoItem.id.asc())
        .all()
    )


def _parse_due(value):
    if value in (None, ""):
        return None
    try:
        return parse_iso_datetime(value)
    except ValueError:
        raise ValidationError("due_date must be an ISO-8601 date")


def create_todo(user: User, text: str, due_date=None) -> ToDoItem:
    text = (text or "").strip()
    if not text:
        raise ValidationError("text is required")

    def _op():
        item = ToDoItem(user_id=user.id, text=text[:512], due_date=_parse_due(due_date), completed=False)
        db.session.add(item)
        db.session.flush()
        return item

    return run_in_transaction(_op)


def _get_own_todo(user: User, todo_id: int) -> ToDoItem:
    item = db.session.query(ToDoItem).filter_by(id=todo_id, user_id=user.id).first()
    if not item:
        raise NotFoundError("To-do item not found")
    return item


def update_todo(user: User, todo_id: int, patch: dict) -> ToDoItem:
    def _op():
        item = _get_own_todo(user, todo_id)
        if "text" in patch:
            text = (patch["text"] or "").strip()
            if not text:
                raise ValidationError("text cannot be blank")
            item.text = text[:512]
        if "completed" in patch:
            item.completed = bool(patch["completed"])
        if "due_date" in patch:
            item.due_date = _parse_due(patch["due_date"])
        return item

    return run_in_transaction(_op)


def delete_todo(user: User, todo_id: int) -> None:
    def _op():
        db.session.delete(_get_own_todo(user, todo_id))

    run_in_transaction(_op)
