"""
config.py
Environment-driven settings (.env supported) + logging setup.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path

from dotenv import load_dotenv

load_dotenv()

DB_FILE = Path(os.getenv("TITHE_DB_FILE") or Path(__file__).with_name("tithe.db"))

# Transaction rows per upsert during import (request-size limit of the store)
IMPORT_CHUNK_SIZE = int(os.getenv("TITHE_IMPORT_CHUNK_SIZE", "500"))

# Import warnings shown before collapsing the rest into "+N more"
WARNING_LIMIT = int(os.getenv("TITHE_WARNING_LIMIT", "10"))

LOG_LEVEL = os.getenv("TITHE_LOG_LEVEL", "INFO").upper()
CURRENCY = os.getenv("TITHE_CURRENCY", "GH₵")
DEFAULT_ADMIN_PASSWORD = os.getenv("TITHE_DEFAULT_ADMIN_PASSWORD", "admin123")

_logging_configured = False


def configure_logging() -> None:
    global _logging_configured
    if _logging_configured:
        return
    logging.basicConfig(
        level=getattr(logging, LOG_LEVEL, logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    _logging_configured = True
