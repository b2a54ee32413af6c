"""UTC timezone enforcement.

This module sets the TZ environment variable to UTC and provides the
naive-UTC clock used for every persisted timestamp.
"""

import os
from datetime import datetime, timezone

# Set UTC timezone for the entire application
os.environ["TZ"] = "UTC"


def utcnow() -> datetime:
    """Return the current UTC time as a naive datetime.

    Timestamp columns are stored without timezone, so all values are
    normalized to naive UTC before they reach the database.
    """
    return datetime.now(timezone.utc).replace(tzinfo=None)
