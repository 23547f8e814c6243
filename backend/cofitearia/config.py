# backend/cofitearia/config.py
from __future__ import annotations
import os


class Config:
    # Optional "SECRET_KEY", with default dev key
    SECRET_KEY = os.environ.get("SECRET_KEY", "dev-secret-key-change-me")

    # SQLite DB stored in backend/instance/cofitearia.sqlite3
    SQLALCHEMY_DATABASE_URI = os.environ.get(
        "DATABASE_URL", #optional alternative location
        "sqlite:///cofitearia.sqlite3", #default local location
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # Used to seed the tax_rate system setting; the setting wins once it exists
    DEFAULT_TAX_RATE = os.environ.get("COFITEARIA_TAX_RATE", "0.12")
    CURRENCY_SYMBOL = os.environ.get("COFITEARIA_CURRENCY_SYMBOL", "₱")

    SESSION_ABSOLUTE_HOURS = int(os.environ.get("COFITEARIA_SESSION_HOURS", "12"))
    SESSION_IDLE_MINUTES = int(os.environ.get("COFITEARIA_SESSION_IDLE_MINUTES", "120"))

    LOG_LEVEL = os.environ.get("COFITEARIA_LOG_LEVEL", "INFO")

    # bcrypt cost factor; tests lower it to keep hashing fast
    BCRYPT_ROUNDS = int(os.environ.get("COFITEARIA_BCRYPT_ROUNDS", "12"))
