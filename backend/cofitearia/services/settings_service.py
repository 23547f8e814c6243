# Overview: Key/value system settings with typed accessors for the tax rate and currency symbol.

from __future__ import annotations

from decimal import Decimal

from flask import current_app

from ..errors import NotFoundError, ValidationError
from ..extensions import db
from ..models import SystemSetting
from ..money import to_rate
from .concurrency import run_with_retry


# key -> (default value, description)
DEFAULT_SETTINGS = {
    "tax_rate": ("0.12", "Tax rate (12%)"),
    "currency_symbol": ("₱", "Currency symbol"),
    "accessibility_enabled": ("true", "Enable accessibility features"),
}

BOOLEAN_KEYS = {"accessibility_enabled"}


def _normalize(key: str, value) -> str:
    if value is None:
        raise ValidationError(f"{key} cannot be null")

    if key == "tax_rate":
        return str(to_rate(value, "tax_rate"))

    if key in BOOLEAN_KEYS:
        if isinstance(value, bool):
            return "true" if value else "false"
        text = str(value).strip().lower()
        if text not in ("true", "false"):
            raise ValidationError(f"{key} must be true or false")
        return text

    text = str(value).strip()
    if key == "currency_symbol" and not text:
        raise ValidationError("currency_symbol cannot be blank")
    return text


def list_settings() -> list[SystemSetting]:
    return db.session.query(SystemSetting).order_by(SystemSetting.key.asc()).all()


def get_setting(key: str, default: str | None = None) -> str | None:
    row = db.session.query(SystemSetting).filter_by(key=key).first()
    if row is None or row.value is None:
        return default
    return row.value


def get_setting_row(key: str) -> SystemSetting:
    row = db.session.query(SystemSetting).filter_by(key=key).first()
    if row is None:
        raise NotFoundError("Setting", key)
    return row


def set_setting(key: str, value, description: str | None = None) -> SystemSetting:
    """Create or update a setting. Known keys are validated and normalized."""
    key = (key or "").strip()
    if not key:
        raise ValidationError("key is required")
    if len(key) > 64:
        raise ValidationError("key exceeds max length 64")

    normalized = _normalize(key, value)

    def _op():
        row = db.session.query(SystemSetting).filter_by(key=key).first()
        if row is None:
            row = SystemSetting(key=key)
            db.session.add(row)
        row.value = normalized
        if description is not None:
            row.description = description
        elif row.description is None and key in DEFAULT_SETTINGS:
            row.description = DEFAULT_SETTINGS[key][1]
        db.session.commit()
        current_app.logger.info("Setting updated: %s=%s", key, normalized)
        return row

    return run_with_retry(_op)


def get_tax_rate() -> Decimal:
    fallback = current_app.config.get("DEFAULT_TAX_RATE", DEFAULT_SETTINGS["tax_rate"][0])
    return to_rate(get_setting("tax_rate", fallback), "tax_rate")


def get_currency_symbol() -> str:
    fallback = current_app.config.get("CURRENCY_SYMBOL", DEFAULT_SETTINGS["currency_symbol"][0])
    return get_setting("currency_symbol", fallback)


def is_accessibility_enabled() -> bool:
    return get_setting("accessibility_enabled", "true") == "true"


def seed_default_settings() -> int:
    """Insert missing default settings; existing values are left alone. Returns rows added."""
    def _op():
        existing = {k for (k,) in db.session.query(SystemSetting.key).all()}
        added = 0
        for key, (value, description) in DEFAULT_SETTINGS.items():
            if key in existing:
                continue
            db.session.add(SystemSetting(key=key, value=value, description=description))
            added += 1
        db.session.commit()
        return added

    return run_with_retry(_op)
