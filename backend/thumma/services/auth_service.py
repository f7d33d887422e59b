# Overview: Password hashing, strength rules, login and password changes.

"""
Authentication Service

Every action must be attributable to a staff account. Passwords are hashed
with bcrypt and new passwords are checked for strength.

SECURITY NOTES:
- Passwords hashed with bcrypt (cost factor 12)
- Minimum 8 characters, with uppercase, lowercase, digit and special char
- An admin reset sets DEFAULT_PASSWORD and forces a change at next login;
  the default is the only password stored without the strength check
- Session tokens managed separately (see session_service.py)
"""

import re

import bcrypt

from ..errors import ValidationError
from ..extensions import db
from ..models import User
from thumma.time_utils import utcnow
from .activity_service import log_activity
from .concurrency import run_in_transaction
from .session_service import revoke_all_user_sessions


DEFAULT_PASSWORD = "1234567"


class PasswordValidationError(ValidationError):
    """Raised when password doesn't meet strength requirements."""
    pass


def validate_password_strength(password: str) -> None:
    """
    Validate password meets strength requirements.

    Requirements:
    - Minimum 8 characters
    - At least one uppercase letter
    - At least one lowercase letter
    - At least one digit
    - At least one special character (!@#$%^&*(),.'":{}|<>)

    Raises PasswordValidationError if requirements not met.
    """
    if not isinstance(password, str) or len(password) < 8:
        raise PasswordValidationError("Password must be at least 8 characters long")

    if not re.search(r'[A-Z]', password):
        raise PasswordValidationError("Password must contain at least one uppercase letter")

    if not re.search(r'[a-z]', password):
        raise PasswordValidationError("Password must contain at least one lowercase letter")

    if not re.search(r'\d', password):
        raise PasswordValidationError("Password must contain at least one digit")

    if not re.search(r"[!@#$%^&*(),.'\":{}|<>]", password):
        raise PasswordValidationError("Password must contain at least one special character")


def _bcrypt(password: str) -> str:
    salt = bcrypt.gensalt(rounds=12)
    return bcrypt.hashpw(password.encode('utf-8'), salt).decode('utf-8')


def hash_password(password: str) -> str:
    """Hash password using bcrypt with cost factor 12, after the strength check."""
    validate_password_strength(password)
    return _bcrypt(password)


def default_password_hash() -> str:
    return _bcrypt(DEFAULT_PASSWORD)


def verify_password(password: str, password_hash: str) -> bool:
    """
    Verify password against bcrypt hash.

    bcrypt.checkpw() compares in constant time. A malformed stored hash
    counts as a mismatch.
    """
    if not password or not password_hash:
        return False
    try:
        return bcrypt.checkpw(password.encode('utf-8'), password_hash.encode('utf-8'))
    except ValueError:
        return False


def authenticate(username: str, password: str) -> User | None:
    """
    Authenticate user with username and password.

    Returns User if credentials valid and the account is active, None otherwise.
    Updates last_login_at timestamp on successful authentication.
    """
    user = db.session.query(User).filter(
        User.username == (username or "").strip(),
        User.is_active.is_(True),
    ).first()

    if not user:
        return None

    if verify_password(password, user.password_hash):
        def _op():
            user.last_login_at = utcnow()
            log_activity(user, "Logged in.")
            return user

        return run_in_transaction(_op)

    return None


def change_password(user: User, current_password: str, new_password: str) -> User:
    """
    Change own password. Clears the forced-change flag and revokes every
    session of the user, including the current one.
    """
    if not verify_password(current_password, user.password_hash):
        raise ValidationError("Current password is incorrect")
    if current_password == new_password:
        raise ValidationError("New password must be different from the current password")
    new_hash = hash_password(new_password)

    def _op():
        user.password_hash = new_hash
        user.must_change_password = False
        log_activity(user, "Changed password.")
        return user

    run_in_transaction(_op)
    revoke_all_user_sessions(user.id, reason="Password changed")
    return user


def reset_password(target: User, admin: User) -> User:
    """Set the default password and force a change at next login."""
    new_hash = default_password_hash()

    def _op():
        target.password_hash = new_hash
        target.must_change_password = True
        log_activity(admin, f"Reset password for user {target.username}.")
        return target

    run_in_transaction(_op)
    revoke_all_user_sessions(target.id, reason="Password reset by admin")
    return target
