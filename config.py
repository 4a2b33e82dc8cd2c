"""Configuration for Bracketeer."""
from __future__ import annotations

import os
from pathlib import Path

from dotenv import load_dotenv

load_dotenv()

# Database
DATABASE_URL = os.getenv(
    "DATABASE_URL",
    f"sqlite+aiosqlite:///{Path(__file__).parent / 'bracketeer.db'}",
)

# Event broadcast (optional). Leave the URL empty to disable delivery.
EVENTS_WEBHOOK_URL = os.getenv("EVENTS_WEBHOOK_URL", "")
EVENTS_WEBHOOK_SECRET = os.getenv("EVENTS_WEBHOOK_SECRET", "")  # Sent as Bearer token
EVENTS_TIMEOUT = float(os.getenv("EVENTS_TIMEOUT", "5.0"))


# Prize split in percent for 1st, 2nd, 3rd (comma-separated).
def _parse_prize_split(value: str) -> dict[int, float]:
    if not value:
        return {}
    result = {}
    for placement, x in enumerate(value.split(","), start=1):
        try:
            result[placement] = float(x.strip()) / 100
        except ValueError:
            continue
    return result


PRIZE_SPLIT = _parse_prize_split(os.getenv("PRIZE_SPLIT", "60,30,10"))

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

# Web API
API_HOST = os.getenv("API_HOST", "0.0.0.0")
API_PORT = int(os.getenv("API_PORT", "8000"))
API_RELOAD = os.getenv("API_RELOAD", "").lower() in ("1", "true", "yes")
