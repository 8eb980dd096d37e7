# hostel_app/utils/date_utils.py
"""
Date and time helpers.

All "UTC" helpers return timezone-aware datetimes with ``timezone.utc``.
"""

from datetime import date, datetime, timezone
from typing import Optional

UTC = timezone.utc


def now_utc() -> datetime:
    """Return current UTC datetime (timezone-aware)."""
    return datetime.now(UTC)


def today_utc() -> date:
    return now_utc().date()


def calculate_age(date_of_birth: date, on: Optional[date] = None) -> int:
    """
    Whole years between ``date_of_birth`` and ``on`` (default: today, UTC).

    A birthday later in the year than ``on`` has not been reached yet.
    """
    on = on or today_utc()
    if date_of_birth > on:
        raise ValueError("Date of birth cannot be in the future")

    age = on.year - date_of_birth.year
    if (on.month, on.day) < (date_of_birth.month, date_of_birth.day):
        age -= 1
    return age


def timestamp_millis(moment: Optional[datetime] = None) -> int:
    """Milliseconds since the epoch, used in receipts and invoice numbers."""
    return int((moment or now_utc()).timestamp() * 1000)
