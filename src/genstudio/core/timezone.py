"""UTC timezone enforcement.

Sets the TZ environment variable to UTC and provides the timezone-aware UTC
clock used for every persisted timestamp.
"""

import os
from datetime import datetime, timezone

# Set UTC timezone for the entire application
os.environ["TZ"] = "UTC"


def utcnow() -> datetime:
    """Current UTC time with tzinfo (columns are DateTime(timezone=True))."""
    return datetime.now(timezone.utc)
