"""Runtime settings for fooddesk.

Every value can be overridden through an environment variable so the CLI, the
API server and the tests can point at different data directories.
"""

import os
from pathlib import Path
from zoneinfo import ZoneInfo

# Can be overridden via FOODDESK_DATA_DIR environment variable
_default_data_dir = Path(__file__).parent.parent.parent / "data"

DEFAULT_TIMEZONE = "Asia/Bangkok"
DEFAULT_CLOSE_MESSAGE = "Sorry, the shop is closed today. Please come back tomorrow."

# Hourly delivery slots offered for scheduled orders (inclusive)
FIRST_SLOT_HOUR = 9
LAST_SLOT_HOUR = 20

# Lines with more than this quantity are bulk lines
BULK_LINE_THRESHOLD = 12

CART_NOTICE_SECONDS = 3.0
CART_NOTICE_MESSAGE = "Some items were removed because they are unavailable."

_TRUTHY = {"1", "true", "yes", "on"}


def data_dir() -> Path:
    """Directory holding the JSON store."""
    return Path(os.environ.get("FOODDESK_DATA_DIR", _default_data_dir))


def timezone_name() -> str:
    return os.environ.get("FOODDESK_TIMEZONE", DEFAULT_TIMEZONE)


def local_timezone() -> ZoneInfo:
    """Shop-local timezone used for calendar days and delivery slots."""
    return ZoneInfo(timezone_name())


def bulk_requires_next_day() -> bool:
    """Whether bulk orders must be scheduled for tomorrow or later."""
    return os.environ.get("FOODDESK_BULK_NEXT_DAY", "").strip().lower() in _TRUTHY
