"""Display mappings for statuses, tiers and validation schedules.

Every function here is total: unknown input falls through to a neutral
default instead of raising.
"""

import calendar
import enum
from datetime import date, datetime
from typing import Any

UPCOMING_WINDOW_DAYS = 30
DEFAULT_VALIDATION_FREQUENCY_MONTHS = 12
NEUTRAL_BADGE = "bg-gray-100 text-gray-700"


class ValidationStatus(str, enum.Enum):
    """Schedule status of an inventory model's next validation."""
    OVERDUE = "overdue"
    UPCOMING = "upcoming"
    CURRENT = "current"


VALIDATION_STATUS_DISPLAY: dict[ValidationStatus, dict[str, str]] = {
    ValidationStatus.OVERDUE: {
        "label": "Overdue",
        "color": "bg-red-100 text-red-800 border-red-200",
        "icon": "alert-triangle",
    },
    ValidationStatus.UPCOMING: {
        "label": "Due Soon",
        "color": "bg-amber-100 text-amber-800 border-amber-200",
        "icon": "clock",
    },
    ValidationStatus.CURRENT: {
        "label": "Current",
        "color": "bg-green-100 text-green-800 border-green-200",
        "icon": "check-circle",
    },
}

VALIDATION_FREQUENCY_MONTHS = {"T3": 12, "T2": 24, "T1": 36}

USE_CASE_STATUS_COLORS = {
    "Draft": "bg-gray-100 text-gray-700",
    "Submitted": "bg-blue-100 text-blue-700",
    "Under Review": "bg-purple-100 text-purple-700",
    "Approved": "bg-green-100 text-green-700",
    "Rejected": "bg-red-100 text-red-700",
    "Sent Back": "bg-orange-100 text-orange-700",
}

TIER_BADGE_COLORS = {
    "T1": "bg-green-100 text-green-800",
    "T2": "bg-amber-100 text-amber-800",
    "T3": "bg-red-100 text-red-800",
}

SEVERITY_COLORS = {
    "Critical": "bg-red-600 text-white",
    "High": "bg-red-100 text-red-800",
    "Medium": "bg-amber-100 text-amber-800",
    "Low": "bg-blue-100 text-blue-800",
}

REMEDIATION_STATUS_COLORS = {
    "Open": "bg-red-100 text-red-700",
    "In Progress": "bg-amber-100 text-amber-700",
    "Remediated": "bg-green-100 text-green-700",
    "Accepted": "bg-blue-100 text-blue-700",
}


def _value(value: Any) -> Any:
    return getattr(value, "value", value)


def get_validation_status_display(status: Any) -> dict[str, str]:
    """
    Map a validation status to its label, color class and icon.

    Anything other than ``overdue`` or ``upcoming`` renders as current.

    Returns:
        Dict with ``label``, ``color`` and ``icon``
    """
    try:
        key = ValidationStatus(_value(status))
    except ValueError:
        key = ValidationStatus.CURRENT
    return dict(VALIDATION_STATUS_DISPLAY[key])


def calculate_validation_status(
    next_due: date | datetime | None,
    today: date | None = None,
) -> ValidationStatus:
    """
    Classify a due date as overdue, upcoming (within 30 days) or current.

    A missing due date counts as current.
    """
    if next_due is None:
        return ValidationStatus.CURRENT
    if isinstance(next_due, datetime):
        next_due = next_due.date()

    days_until = (next_due - (today or date.today())).days
    if days_until < 0:
        return ValidationStatus.OVERDUE
    if days_until <= UPCOMING_WINDOW_DAYS:
        return ValidationStatus.UPCOMING
    return ValidationStatus.CURRENT


def get_validation_frequency(tier: Any) -> int:
    """Months between validations: T3 annual, T2 every two years, T1 every three."""
    return VALIDATION_FREQUENCY_MONTHS.get(_value(tier), DEFAULT_VALIDATION_FREQUENCY_MONTHS)


def add_months(start: date, months: int) -> date:
    """Add calendar months, clamping the day to the end of the target month."""
    month_index = start.month - 1 + months
    year = start.year + month_index // 12
    month = month_index % 12 + 1
    day = min(start.day, calendar.monthrange(year, month)[1])
    return start.replace(year=year, month=month, day=day)


def calculate_next_validation_date(last_validation: date | datetime, tier: Any) -> date:
    if isinstance(last_validation, datetime):
        last_validation = last_validation.date()
    return add_months(last_validation, get_validation_frequency(tier))


def get_status_color(status: Any) -> str:
    return USE_CASE_STATUS_COLORS.get(_value(status), NEUTRAL_BADGE)


def get_tier_badge_color(tier: Any) -> str:
    return TIER_BADGE_COLORS.get(_value(tier), "bg-gray-100 text-gray-800")


def get_severity_color(severity: Any) -> str:
    return SEVERITY_COLORS.get(_value(severity), "bg-gray-100 text-gray-800")


def get_remediation_status_color(status: Any) -> str:
    return REMEDIATION_STATUS_COLORS.get(_value(status), NEUTRAL_BADGE)


def generate_inventory_number(sequence: int, year: int | None = None) -> str:
    """Format an inventory number, e.g. MDL-2026-007."""
    return f"MDL-{year or date.today().year}-{sequence:03d}"


def truncate(text: str, length: int) -> str:
    if len(text) <= length:
        return text
    return text[:length] + "..."
