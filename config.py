"""Configuration for Tabroom-Core."""
from __future__ import annotations

import os
from pathlib import Path

from dotenv import load_dotenv

load_dotenv()

# Database
DATABASE_URL = os.getenv(
    "DATABASE_URL",
    f"sqlite+aiosqlite:///{Path(__file__).parent / 'tabroom.db'}",
)

# Logging
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()


def _parse_int(value: str, default: int) -> int:
    try:
        return int(value)
    except (TypeError, ValueError):
        return default


def _parse_float(value: str, default: float) -> float:
    try:
        return float(value)
    except (TypeError, ValueError):
        return default


def _parse_origins(value: str) -> list[str]:
    if not value:
        return ["*"]
    return [x.strip() for x in value.split(",") if x.strip()]


# Accepted range for a single speaker score on a ballot
SPEAKER_SCORE_MIN = _parse_float(os.getenv("SPEAKER_SCORE_MIN", "60"), 60.0)
SPEAKER_SCORE_MAX = _parse_float(os.getenv("SPEAKER_SCORE_MAX", "100"), 100.0)

# Web API
API_HOST = os.getenv("API_HOST", "0.0.0.0")
API_PORT = _parse_int(os.getenv("API_PORT", "8000"), 8000)
CORS_ORIGINS = _parse_origins(os.getenv("CORS_ORIGINS", ""))
