"""
Configuration loaded from the environment (and an optional .env file at the
project root).
"""

import os
from pathlib import Path

from dotenv import load_dotenv

dotenv_path = Path(__file__).resolve().parent.parent / ".env"
load_dotenv(dotenv_path=dotenv_path)


def _as_bool(value: str) -> bool:
    return value.strip().lower() in ("1", "true", "yes", "on")


DATABASE_URL: str = os.getenv("DATABASE_URL", "sqlite:///./booking.db")
SQL_ECHO: bool = _as_bool(os.getenv("SQL_ECHO", "false"))
LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO").upper()
BCRYPT_ROUNDS: int = int(os.getenv("BCRYPT_ROUNDS", "12"))
