"""
Calendar month helpers.

Months are "YYYY-MM" strings. The format is fixed width, so sorting the
strings sorts the months chronologically.
"""

import calendar
import re
from datetime import date
from typing import Optional

from cashsafe.exceptions import ValidationError

MONTH_PATTERN = re.compile(r"^\d{4}-(0[1-9]|1[0-2])$")


def month_of(day: date) -> str:
    return day.strftime("%Y-%m")


def current_month(today: Optional[date] = None) -> str:
    return month_of(today or date.today())


def validate_month(month: str) -> str:
    """
    Check a "YYYY-MM" month string.

    Raises:
        ValidationError: If the month is blank or malformed
    """
    value = (month or "").strip()
    if not MONTH_PATTERN.match(value):
        raise ValidationError.single(
            field="month",
            issue_type="invalid_format",
            message=f"Month must be formatted YYYY-MM, got {month!r}",
            suggested_fix="Use e.g. 2024-03",
        )
    return value


def month_bounds(month: str) -> tuple[date, date]:
    """First and last calendar day of a month."""
    month = validate_month(month)
    year, mon = int(month[:4]), int(month[5:])
    last_day = calendar.monthrange(year, mon)[1]
    return date(year, mon, 1), date(year, mon, last_day)
