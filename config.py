"""
Runtime configuration for the ClinicFlow API.

Values are read from the environment (a local `.env` file is loaded first).
"""

from __future__ import annotations

import os

from dotenv import load_dotenv

load_dotenv()

# Default to a local SQLite database.  For production use, point this at Postgres.
DATABASE_URL: str = os.getenv("DATABASE_URL", "sqlite:///./clinicflow.db")

LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO").upper()

AUDIT_LOG_PATH: str = os.getenv("AUDIT_LOG_PATH", "audit_log.jsonl")

# Label used when rendering amounts into activity feed text
CURRENCY_LABEL: str = os.getenv("CURRENCY_LABEL", "RM")

ANALYTICS_WINDOW_DAYS: int = int(os.getenv("ANALYTICS_WINDOW_DAYS", "365"))
TOP_SUPPLIER_LIMIT: int = int(os.getenv("TOP_SUPPLIER_LIMIT", "10"))

# Archived queue sessions older than this are purged by the cleanup job
SESSION_RETENTION_DAYS: int = int(os.getenv("SESSION_RETENTION_DAYS", "30"))

CORS_ORIGINS = [o.strip() for o in os.getenv("CORS_ORIGINS", "*").split(",") if o.strip()]

# Optional override for the built-in demo keys: "key:role:staff_id,key2:role:staff_id"
API_KEYS: str = os.getenv("API_KEYS", "")
