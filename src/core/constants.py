"""
Warden - Centralized Constants
==============================

Time units and storage constants shared across modules.
Detector thresholds live in src/services/moderation/constants.py.
"""

# =============================================================================
# Time Constants (in seconds)
# =============================================================================

SECONDS_PER_MINUTE = 60
SECONDS_PER_HOUR = 3600
SECONDS_PER_DAY = 86400
SECONDS_PER_WEEK = 604800

# =============================================================================
# Database Constants
# =============================================================================

DB_CONNECTION_TIMEOUT = 30.0          # sqlite3.connect timeout
SQLITE_BUSY_TIMEOUT = 5000            # PRAGMA busy_timeout (ms)
DB_FILENAME = "warden.db"

# =============================================================================
# Timeout Constants (in seconds)
# =============================================================================

SHUTDOWN_TIMEOUT = 10                 # Graceful shutdown timeout
DRAIN_TIMEOUT = 10.0                  # Side-effect drain timeout

# =============================================================================
# Display Limits
# =============================================================================

LOG_CONTENT_PREVIEW = 500             # Message content shown in log payloads
LOG_TRUNCATE_LENGTH = 50              # Reason/error text in log trees
