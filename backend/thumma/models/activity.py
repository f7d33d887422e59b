from __future__ import annotations

from ..extensions import db
from thumma.time_utils import to_utc_z


class ActivityLog(db.Model):
    """
    Append-only record of who did what.

    Written in the same session as the change it describes, so a rolled-back
    write leaves no log row behind.
    """
    __tablename__ = "activity_log"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True, index=True)
    user_name = db.Column(db.String(128), nullable=False)
    action = db.Column(db.String(512), nullable=False)
    timestamp = db.Column(db.DateTime(timezone=True), nullable=False, index=True)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "user_id": self.user_id,
            "user_name": self.user_name,
            "action": self.action,
            "timestamp": to_utc_z(self.timestamp),
        }


class ToDoItem(db.Model):
    """Per-user dashboard to-do entry."""
    __tablename__ = "todo_items"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)
    text = db.Column(db.String(512), nullable=False)
    completed = db.Column(db.Boolean, nullable=False, default=False)
    due_date = db.Column(db.DateTime(timezone=True), nullable=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "text": self.text,
            "completed": self.completed,
            "due_date": to_utc_z(self.due_date) if self.due_date else None,
            "created_at": to_utc_z(self.created_at),
        }
