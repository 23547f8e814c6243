# Overview: Service-layer operations for auth; encapsulates business logic and database work.

"""
Authentication and user directory service.

SECURITY NOTES:
- Passwords hashed with bcrypt (per-password salt, cost from BCRYPT_ROUNDS)
- Minimum 6 characters required
- A failed login changes nothing: no counters, no lockout, no timestamps
- Session tokens managed separately (see session_service.py)
"""
from __future__ import annotations

import bcrypt
from flask import current_app
from sqlalchemy import func
from sqlalchemy.exc import IntegrityError

from ..errors import ConflictError, InvalidCredentialsError, NotFoundError, ValidationError
from ..extensions import db
from ..models import User
from ..permissions import ALL_ROLES, Role, role_display_name
from ..time_utils import utcnow
from ..validation import ModelValidationPolicy, validate_email, validate_payload
from .concurrency import run_with_retry

MIN_PASSWORD_LENGTH = 6

ACCESSIBILITY_FLAGS = (
    "high_contrast_mode",
    "large_text_mode",
    "screen_reader_enabled",
    "keyboard_navigation_enabled",
)

USER_UPDATE_POLICY = ModelValidationPolicy(
    writable_fields={"first_name", "last_name", "email", "role"},
    required_on_create=set(),
)

PREFERENCES_POLICY = ModelValidationPolicy(
    writable_fields=set(ACCESSIBILITY_FLAGS) | {"preferred_language"},
    required_on_create=set(),
)


class PasswordValidationError(ValidationError):
    """Raised when password doesn't meet requirements."""
    pass


def validate_password_strength(password) -> None:
    if not isinstance(password, str) or len(password) < MIN_PASSWORD_LENGTH:
        raise PasswordValidationError(
            f"Password must be at least {MIN_PASSWORD_LENGTH} characters long"
        )


def hash_password(password: str) -> str:
    """
    Hash password using bcrypt. Password is validated before hashing.
    """
    validate_password_strength(password)
    rounds = current_app.config.get("BCRYPT_ROUNDS", 12)
    salt = bcrypt.gensalt(rounds=rounds)
    hashed = bcrypt.hashpw(password.encode("utf-8"), salt)
    return hashed.decode("utf-8")  # Store as string in database


def verify_password(password: str, password_hash: str) -> bool:
    """
    Verify password against bcrypt hash. Malformed hashes never match.
    """
    if not isinstance(password, str) or not password_hash:
        return False
    try:
        return bcrypt.checkpw(password.encode("utf-8"), password_hash.encode("utf-8"))
    except ValueError:
        # Not a bcrypt hash
        return False


# One throwaway hash per cost factor. Unknown usernames are verified against
# it so they take as long to reject as a wrong password.
_DUMMY_HASHES: dict[int, str] = {}


def _dummy_hash() -> str:
    rounds = current_app.config.get("BCRYPT_ROUNDS", 12)
    if rounds not in _DUMMY_HASHES:
        _DUMMY_HASHES[rounds] = bcrypt.hashpw(b"not-a-real-password", bcrypt.gensalt(rounds=rounds)).decode("utf-8")
    return _DUMMY_HASHES[rounds]


def _normalize_role(role) -> str:
    role = (str(role).strip().upper() if role is not None else "")
    if role not in ALL_ROLES:
        raise ValidationError(f"role must be one of: {', '.join(ALL_ROLES)}")
    return role


def _normalize_username(username) -> str:
    username = (str(username).strip() if username is not None else "")
    if not username:
        raise ValidationError("username is required")
    if len(username) > 64:
        raise ValidationError("username exceeds max length 64")
    return username


def _required_name(value, field: str) -> str:
    value = (str(value).strip() if value is not None else "")
    if not value:
        raise ValidationError(f"{field} is required")
    if len(value) > 64:
        raise ValidationError(f"{field} exceeds max length 64")
    return value


def create_user(
    username: str,
    password: str,
    first_name: str,
    last_name: str,
    role: str = Role.STAFF,
    email: str | None = None,
) -> User:
    """
    Create a new user.

    Username must be unique (ConflictError). PWD_STAFF accounts start with
    every accessibility aid switched on.
    """
    username = _normalize_username(username)
    first_name = _required_name(first_name, "first_name")
    last_name = _required_name(last_name, "last_name")
    role = _normalize_role(role)
    email = validate_email(email)
    password_hash = hash_password(password)

    def _op():
        if db.session.query(User.id).filter(func.lower(User.username) == username.lower()).first():
            raise ConflictError(f"Username {username} already exists")

        user = User(
            username=username,
            password_hash=password_hash,
            first_name=first_name,
            last_name=last_name,
            email=email,
            role=role,
            is_active=True,
        )
        if role == Role.PWD_STAFF:
            for flag in ACCESSIBILITY_FLAGS:
                setattr(user, flag, True)

        db.session.add(user)
        try:
            db.session.flush()
        except IntegrityError as exc:
            db.session.rollback()
            raise ConflictError(f"Username {username} already exists") from exc
        db.session.commit()
        current_app.logger.info("User created: id=%s username=%s role=%s", user.id, username, role)
        return user

    return run_with_retry(_op)


def authenticate(username: str, password: str) -> User:
    """
    Authenticate user by username and password.

    Unknown user, inactive user and wrong password all raise the same
    InvalidCredentialsError and leave the database untouched. On success
    last_login_at is stamped.
    """
    if not username or not password:
        raise InvalidCredentialsError()

    user = db.session.query(User).filter_by(username=str(username).strip()).first()
    if user is None:
        verify_password(password, _dummy_hash())
        current_app.logger.warning("Failed login for username=%s", username)
        raise InvalidCredentialsError()
    if not user.is_active or not verify_password(password, user.password_hash):
        current_app.logger.warning("Failed login for username=%s", username)
        raise InvalidCredentialsError()

    def _op():
        user.last_login_at = utcnow()
        db.session.commit()
        return user

    run_with_retry(_op)
    current_app.logger.info("User logged in: id=%s username=%s", user.id, user.username)
    return user


def get_user(user_id: int) -> User:
    user = db.session.get(User, user_id)
    if user is None:
        raise NotFoundError("User", user_id)
    return user


def get_user_by_username(username: str) -> User:
    user = db.session.query(User).filter_by(username=username).first()
    if user is None:
        raise NotFoundError("User", username)
    return user


def list_users(role: str | None = None, include_inactive: bool = False) -> list[User]:
    q = db.session.query(User)
    if role is not None:
        q = q.filter(User.role == _normalize_role(role))
    if not include_inactive:
        q = q.filter(User.is_active.is_(True))
    return q.order_by(User.username.asc()).all()


def update_user(user_id: int, patch: dict) -> User:
    """Edit profile fields and role. Passwords change through change_password()."""
    cleaned = validate_payload(model=User, payload=patch, policy=USER_UPDATE_POLICY, partial=True)
    if "role" in cleaned:
        cleaned["role"] = _normalize_role(cleaned["role"])
    if "email" in cleaned:
        cleaned["email"] = validate_email(cleaned["email"])
    for field in ("first_name", "last_name"):
        if field in cleaned:
            cleaned[field] = _required_name(cleaned[field], field)

    def _op():
        user = get_user(user_id)
        for k, v in cleaned.items():
            setattr(user, k, v)
        db.session.commit()
        current_app.logger.info(
            "User updated: id=%s fields=%s", user.id, ", ".join(sorted(cleaned.keys()))
        )
        return user

    return run_with_retry(_op)


def change_password(user_id: int, new_password: str) -> User:
    password_hash = hash_password(new_password)

    def _op():
        user = get_user(user_id)
        user.password_hash = password_hash
        db.session.commit()
        current_app.logger.info("Password changed: user_id=%s", user.id)
        return user

    return run_with_retry(_op)


def deactivate_user(user_id: int) -> User:
    """Soft delete; the account keeps its sales attribution."""
    def _op():
        user = get_user(user_id)
        if user.is_active:
            user.is_active = False
            db.session.commit()
            current_app.logger.info("User deactivated: id=%s username=%s", user.id, user.username)
        return user

    return run_with_retry(_op)


def update_accessibility_preferences(user_id: int, **prefs) -> User:
    cleaned = validate_payload(model=User, payload=prefs, policy=PREFERENCES_POLICY, partial=True)

    def _op():
        user = get_user(user_id)
        for k, v in cleaned.items():
            setattr(user, k, v)
        db.session.commit()
        return user

    return run_with_retry(_op)


def accessibility_summary(user: User) -> str:
    """One-line description of the user's active accessibility aids."""
    features = []
    if user.high_contrast_mode:
        features.append("High contrast")
    if user.large_text_mode:
        features.append("Large text")
    if user.screen_reader_enabled:
        features.append("Screen reader")
    if user.keyboard_navigation_enabled:
        features.append("Keyboard navigation")

    text = f"{user.full_name} ({role_display_name(user.role)})"
    if features:
        text += ", Accessibility: " + ", ".join(features)
    else:
        text += ", No accessibility features enabled"
    return text
