"""
Configuration constants and environment setup.
"""

import os
from datetime import timedelta
from pathlib import Path

from dotenv import load_dotenv

load_dotenv()

# =============================================================================
# PATHS
# =============================================================================

PROJECT_ROOT = Path(__file__).parent.parent.parent
DB_PATH = Path(
    os.environ.get("EVENTS_DB_PATH", str(PROJECT_ROOT / "data" / "db" / "events.db"))
)

# =============================================================================
# EVENT SCHEDULING
# =============================================================================

# Zone used for "same calendar day" checks, HH:mm overlays and display end times.
# Instants are always stored in UTC.
EVENTS_TIMEZONE = os.environ.get("EVENTS_TIMEZONE", "UTC")

ALL_DAY_END_TIME = "23:59"
MAX_EVENT_DURATION = timedelta(hours=24)
END_TIME_PATTERN = r"^([01]\d|2[0-3]):([0-5]\d)$"

# =============================================================================
# IDENTIFIERS
# =============================================================================

RECORD_ID_PREFIX = "c"  # e.g. "c3f1b0d2..."
COMBO_SEPARATOR = ":"  # "<departmentCode>:<unitName>"

# =============================================================================
# AUDIT
# =============================================================================

AUDIT_SYSTEM_USER = "system"
AUDIT_UNKNOWN_NAME = "Unknown"
AUDIT_UNKNOWN_EMAIL = "unknown@example.com"
AUDIT_UNKNOWN_ROLE = "unknown"

# =============================================================================
# API CONFIGURATION
# =============================================================================

API_HOST = os.environ.get("API_HOST", "0.0.0.0")
API_PORT = int(os.environ.get("API_PORT", "8000"))
API_DEBUG = os.environ.get("API_DEBUG", "false").lower() == "true"
LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO").upper()
API_VERSION = "1.0.0"
