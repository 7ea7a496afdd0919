"""Configuration for the tournament registration service."""
from __future__ import annotations

import os
from pathlib import Path

from dotenv import load_dotenv

load_dotenv()

# Database
DATABASE_URL = os.getenv(
    "DATABASE_URL",
    f"sqlite+aiosqlite:///{Path(__file__).parent / 'tourney.db'}",
)

# Web auth (JWT secret, initial admin seed)
JWT_SECRET = os.getenv("JWT_SECRET", "change-me-in-production-use-long-random-string")
JWT_ALGORITHM = "HS256"
JWT_EXPIRE_DAYS = int(os.getenv("JWT_EXPIRE_DAYS", "7"))
INITIAL_ADMIN_USERNAME = os.getenv("INITIAL_ADMIN_USERNAME", "admin")
INITIAL_ADMIN_PASSWORD = os.getenv("INITIAL_ADMIN_PASSWORD", "")  # Set to seed the first admin
INITIAL_ADMIN_EMAIL = os.getenv("INITIAL_ADMIN_EMAIL", "") or None
MIN_PASSWORD_LENGTH = int(os.getenv("MIN_PASSWORD_LENGTH", "6"))

# Tournaments
DEFAULT_TOURNAMENT_STATUS = os.getenv("DEFAULT_TOURNAMENT_STATUS", "registration_open")
MIN_CAPACITY = 2
MAX_CAPACITY = 100

# User-facing message language: en, fr
LOCALE = os.getenv("LOCALE", "en")

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()


def _parse_origins(value: str) -> list[str]:
    if not value:
        return ["*"]
    return [x.strip() for x in value.split(",") if x.strip()]


CORS_ORIGINS = _parse_origins(os.getenv("CORS_ORIGINS", ""))
