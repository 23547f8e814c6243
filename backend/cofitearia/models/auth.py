from __future__ import annotations

from ..extensions import db
from ..permissions import role_display_name
from ..time_utils import to_utc_z


class User(db.Model):
    """
    User accounts for authentication and attribution.

    role is one of permissions.ALL_ROLES (enforced by a CHECK constraint).
    The accessibility columns are per-user UI preferences only; nothing in
    the ledger reads them.
    """
    __tablename__ = "users"
    __table_args__ = (
        db.CheckConstraint(
            "role IN ('OWNER', 'MANAGER', 'STAFF', 'PWD_STAFF')",
            name="ck_users_role",
        ),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)

    username = db.Column(db.String(64), nullable=False, unique=True, index=True)

    # Bcrypt hashed password
    password_hash = db.Column(db.String(255), nullable=False)

    first_name = db.Column(db.String(64), nullable=False)
    last_name = db.Column(db.String(64), nullable=False)
    email = db.Column(db.String(255), nullable=True)
    role = db.Column(db.String(16), nullable=False, index=True)

    is_active = db.Column(db.Boolean, nullable=False, default=True)

    # Accessibility preferences
    high_contrast_mode = db.Column(db.Boolean, nullable=False, default=False)
    large_text_mode = db.Column(db.Boolean, nullable=False, default=False)
    screen_reader_enabled = db.Column(db.Boolean, nullable=False, default=False)
    keyboard_navigation_enabled = db.Column(db.Boolean, nullable=False, default=True)
    preferred_language = db.Column(db.String(16), nullable=False, default="en")

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )
    last_login_at = db.Column(db.DateTime(timezone=True), nullable=True)

    def __repr__(self) -> str:
        return f"<User id={self.id} username={self.username!r} role={self.role}>"

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}"

    def accessibility_preferences(self) -> dict:
        return {
            "high_contrast_mode": self.high_contrast_mode,
            "large_text_mode": self.large_text_mode,
            "screen_reader_enabled": self.screen_reader_enabled,
            "keyboard_navigation_enabled": self.keyboard_navigation_enabled,
            "preferred_language": self.preferred_language,
        }

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "username": self.username,
            "first_name": self.first_name,
            "last_name": self.last_name,
            "full_name": self.full_name,
            "email": self.email,
            "role": self.role,
            "role_display_name": role_display_name(self.role),
            "is_active": self.is_active,
            "accessibility": self.accessibility_preferences(),
            "created_at": to_utc_z(self.created_at),
            "last_login_at": to_utc_z(self.last_login_at) if self.last_login_at else None,
        }


# Usernames are unique regardless of case
db.Index("uq_users_username_lower", db.func.lower(User.username), unique=True)


class SessionToken(db.Model):
    """
    API session. Only the SHA-256 hash of the bearer token is stored.
    """
    __tablename__ = "session_tokens"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)
    token_hash = db.Column(db.String(64), nullable=False, unique=True, index=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False)
    last_used_at = db.Column(db.DateTime(timezone=True), nullable=False)
    expires_at = db.Column(db.DateTime(timezone=True), nullable=False)

    is_revoked = db.Column(db.Boolean, nullable=False, default=False)
    revoked_at = db.Column(db.DateTime(timezone=True), nullable=True)
    revoked_reason = db.Column(db.String(64), nullable=True)

    user = db.relationship("User", backref=db.backref("sessions", lazy=True))

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "user_id": self.user_id,
            "created_at": to_utc_z(self.created_at),
            "last_used_at": to_utc_z(self.last_used_at),
            "expires_at": to_utc_z(self.expires_at),
            "is_revoked": self.is_revoked,
        }
