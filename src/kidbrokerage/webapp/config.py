"""Configuration constants for the Kid Brokerage web frontend."""
from __future__ import annotations

import os
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

from ..pricing import DEFAULT_QUOTE_URL, DEFAULT_TIMEOUT_SECONDS, DEFAULT_USER_AGENT

load_dotenv()


def _timeout_from_env(raw: Optional[str]) -> Optional[float]:
    if raw is None or not raw.strip():
        return DEFAULT_TIMEOUT_SECONDS
    if raw.strip().lower() in {"none", "off", "0"}:
        return None
    return float(raw)


SESSION_SECRET = os.environ.get("SESSION_SECRET", "change-this-session-secret")
SQLITE_FILE_NAME = os.environ.get("KIDBROKERAGE_SQLITE", "kidbrokerage.db")
QUOTE_URL_TEMPLATE = os.environ.get("KIDBROKERAGE_QUOTE_URL", DEFAULT_QUOTE_URL)
QUOTE_USER_AGENT = os.environ.get("KIDBROKERAGE_QUOTE_USER_AGENT", DEFAULT_USER_AGENT)
QUOTE_TIMEOUT_SECONDS = _timeout_from_env(os.environ.get("KIDBROKERAGE_QUOTE_TIMEOUT"))
EVENT_LOG_PATH: Optional[Path] = (
    Path(os.environ["KIDBROKERAGE_EVENT_LOG"]) if os.environ.get("KIDBROKERAGE_EVENT_LOG") else None
)
APP_TITLE = "Kid Brokerage"

__all__ = [
    "APP_TITLE",
    "EVENT_LOG_PATH",
    "QUOTE_TIMEOUT_SECONDS",
    "QUOTE_URL_TEMPLATE",
    "QUOTE_USER_AGENT",
    "SESSION_SECRET",
    "SQLITE_FILE_NAME",
]
