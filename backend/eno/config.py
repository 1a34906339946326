# backend/eno/config.py
from __future__ import annotations
import os


class Config:
    # Optional "SECRET_KEY", with default dev key
    SECRET_KEY = os.environ.get("SECRET_KEY", "dev-secret-key-change-me")

    # SQLite DB stored in backend/instance/eno.sqlite3
    SQLALCHEMY_DATABASE_URI = os.environ.get(
        "DATABASE_URL", #optional alternative location
        "sqlite:///eno.sqlite3", #default local location
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")

    # Partner codes look like PAT001, PAT002, ...
    ENO_PARTNER_CODE_PREFIX = os.environ.get("ENO_PARTNER_CODE_PREFIX", "PAT")

    # Dashboard client refresh period (seconds)
    ENO_REFRESH_INTERVAL = float(os.environ.get("ENO_REFRESH_INTERVAL", "60"))

    # Keep-alive comment period for /api/realtime streams
    ENO_SSE_HEARTBEAT_SECONDS = float(os.environ.get("ENO_SSE_HEARTBEAT_SECONDS", "15"))

    # Bootstrap account used by `flask users create-ceo`
    ENO_CEO_EMAIL = os.environ.get("ENO_CEO_EMAIL")
    ENO_CEO_PASSWORD = os.environ.get("ENO_CEO_PASSWORD")
    ENO_CEO_FULL_NAME = os.environ.get("ENO_CEO_FULL_NAME", "CEO Eno")

    # Browser origins allowed to call the API
    CORS_ALLOWED_ORIGINS = tuple(
        origin.strip()
        for origin in os.environ.get(
            "CORS_ALLOWED_ORIGINS",
            "http://localhost:5173,http://127.0.0.1:5173",
        ).split(",")
        if origin.strip()
    )

    # bcrypt cost factor for password hashes
    BCRYPT_LOG_ROUNDS = int(os.environ.get("BCRYPT_LOG_ROUNDS", "12"))
