# Overview: Staff account management.

from __future__ import annotations

from ..errors import ConflictError, NotFoundError, ValidationError
from ..extensions import db
from ..models import ActivityLog, BillPayment, ShiftReport, ToDoItem, TransactionPayment, User
from ..models.auth import WAGE_TYPES
from ..permissions import ROLES, permissions_for_roles
from ..validation import ModelValidationPolicy, require_amount, validate_payload
from . import cache
from .activity_service import log_activity
from .auth_service import default_password_hash, hash_password, reset_password
from .concurrency import run_in_transaction
from .session_service import revoke_all_user_sessions


USER_POLICY = ModelValidationPolicy(
    writable_fields={"username", "name", "roles", "avatar", "settings", "salary_cents", "wage_type", "is_active"},
    required_on_create={"username", "name", "roles"},
)


def _clean_user(payload: dict, *, partial: bool) -> dict:
    payload = dict(payload or {})
    password = payload.pop("password", None)
    patch = validate_payload(model=User, payload=payload, policy=USER_POLICY, partial=partial)

    if "roles" in patch:
        roles = patch["roles"]
        if not isinstance(roles, list) or not roles:
            raise ValidationError("roles must be a non-empty list")
        unknown = [r for r in roles if r not in ROLES]
        if unknown:
            raise ValidationError(f"Unknown role: {unknown[0]}", {"allowed": list(ROLES)})
        patch["roles"] = list(dict.fromkeys(roles))
    if "wage_type" in patch and patch["wage_type"] not in WAGE_TYPES:
        raise ValidationError(f"Invalid wage type: {patch['wage_type']}", {"allowed": list(WAGE_TYPES)})
    if "salary_cents" in patch:
        patch["salary_cents"] = require_amount("salary_cents", patch["salary_cents"])
    if "settings" in patch and patch["settings"] is not None and not isinstance(patch["settings"], dict):
        raise ValidationError("settings must be an object")

    if password is not None:
        patch["password_hash"] = hash_password(password)
        patch["must_change_password"] = False
    return patch


def user_dict(user: User) -> dict:
    data = user.to_dict()
    data["permissions"] = sorted(permissions_for_roles(user.roles))
    return data


def list_users() -> list[dict]:
    def _load():
        rows = db.session.query(User).order_by(User.name.asc(), User.id.asc()).all()
        return [user_dict(u) for u in rows]
    return cache.get_or_load(cache.USERS, "all", _load)


def get_user(user_id: int) -> User:
    user = db.session.get(User, user_id)
    if not user:
        raise NotFoundError(f"User {user_id} not found")
    return user


def _ensure_username_free(username: str, exclude_user_id: int | None = None) -> None:
    query = db.session.query(User).filter(User.username == username)
    if exclude_user_id is not None:
        query = query.filter(User.id != exclude_user_id)
    if query.first():
        raise ConflictError(f"Username {username} is already taken")


def create_user(payload: dict, admin: User | None) -> User:
    """
    New accounts get the default password and must change it at first login,
    unless an explicit password is supplied (CLI bootstrap).
    """
    patch = _clean_user(payload, partial=False)
    if "password_hash" not in patch:
        patch["password_hash"] = default_password_hash()
        patch["must_change_password"] = True

    def _op():
        _ensure_username_free(patch["username"])
        user = User(**patch)
        db.session.add(user)
        db.session.flush()
        log_activity(admin or user, f"Added new user: {user.name}")
        return user

    return run_in_transaction(_op, invalidates=(cache.USERS,))


def update_user(user_id: int, payload: dict, admin: User) -> User:
    payload = dict(payload or {})
    if "password" in payload:
        raise ValidationError("Use the password change or reset endpoints to change passwords")
    patch = _clean_user(payload, partial=True)

    def _op():
        user = get_user(user_id)
        if "username" in patch:
            _ensure_username_free(patch["username"], exclude_user_id=user.id)
        if user.id == admin.id and patch.get("is_active") is False:
            raise ConflictError("You cannot deactivate your own account")
        for key, value in patch.items():
            setattr(user, key, value)
        log_activity(admin, f"Edited user: {user.name}")
        return user

    user = run_in_transaction(_op, invalidates=(cache.USERS,))
    if not user.is_active:
        revoke_all_user_sessions(user.id, reason="User account deactivated")
    return user


def delete_user(user_id: int, admin: User) -> None:
    def _op():
        user = get_user(user_id)
        if user.id == admin.id:
            raise ConflictError("You cannot delete your own account")
        name = user.name
        # History keeps the name snapshots; only the account link goes
        db.session.query(ActivityLog).filter_by(user_id=user.id).update({"user_id": None}, synchronize_session=False)
        for model in (TransactionPayment, BillPayment):
            db.session.query(model).filter_by(recorded_by_user_id=user.id).update(
                {"recorded_by_user_id": None}, synchronize_session=False
            )
        db.session.query(ShiftReport).filter_by(closed_by_user_id=user.id).update(
            {"closed_by_user_id": None}, synchronize_session=False
        )
        db.session.query(ToDoItem).filter_by(user_id=user.id).delete(synchronize_session=False)
        db.session.delete(user)
        log_activity(admin, f"Deleted user: {name}")

    run_in_transaction(_op, invalidates=(cache.USERS,))


def reset_user_password(user_id: int, admin: User) -> User:
    user = reset_password(get_user(user_id), admin)
    cache.invalidate(cache.USERS)
    return user
