"""Frequency arithmetic for recurring maintenance schedules."""

from datetime import UTC, date, datetime, timedelta

from dateutil.relativedelta import relativedelta

from src.core.errors import InvalidFrequencyError
from src.domain.schedule import Frequency


_FREQUENCY_STEPS: dict[Frequency, timedelta | relativedelta] = {
    Frequency.WEEKLY: timedelta(days=7),
    Frequency.BIWEEKLY: timedelta(days=14),
    Frequency.MONTHLY: relativedelta(months=1),
    Frequency.QUARTERLY: relativedelta(months=3),
    Frequency.SEMIANNUAL: relativedelta(months=6),
    Frequency.ANNUAL: relativedelta(years=1),
}

_FREQUENCY_DAYS: dict[Frequency, int] = {
    Frequency.WEEKLY: 7,
    Frequency.BIWEEKLY: 14,
    Frequency.MONTHLY: 30,
    Frequency.QUARTERLY: 90,
    Frequency.SEMIANNUAL: 180,
    Frequency.ANNUAL: 365,
}

_FREQUENCY_LABELS: dict[Frequency, str] = {
    Frequency.WEEKLY: "Weekly",
    Frequency.BIWEEKLY: "Every 2 weeks",
    Frequency.MONTHLY: "Monthly",
    Frequency.QUARTERLY: "Every 3 months",
    Frequency.SEMIANNUAL: "Every 6 months",
    Frequency.ANNUAL: "Annually",
}


def utc_today() -> date:
    """Current date in UTC."""
    return datetime.now(UTC).date()


def _require_custom_days(custom_days: int | None) -> int:
    if custom_days is None or custom_days <= 0:
        msg = f"Custom frequency requires a positive customDays value, got {custom_days!r}"
        raise InvalidFrequencyError(msg)
    return custom_days


def calculate_next_due_date(
    start: date | datetime,
    frequency: Frequency | str,
    custom_days: int | None = None,
) -> date:
    """Compute the next due date one frequency step after start.

    Month and year steps clamp to the last valid day of the target month,
    so 2024-01-31 + MONTHLY is 2024-02-29 and 2024-02-29 + ANNUAL is 2025-02-28.

    Args:
        start: Date to step from (a datetime is truncated to its date)
        frequency: Recurrence frequency
        custom_days: Day count, required for CUSTOM and ignored otherwise

    Returns:
        The next due date

    Raises:
        InvalidFrequencyError: If frequency is unknown, or CUSTOM without a positive day count
    """
    if isinstance(start, datetime):
        start = start.date()

    try:
        frequency = Frequency(frequency)
    except ValueError as e:
        msg = f"Unknown frequency: {frequency}"
        raise InvalidFrequencyError(msg) from e

    if frequency == Frequency.CUSTOM:
        return start + timedelta(days=_require_custom_days(custom_days))

    return start + _FREQUENCY_STEPS[frequency]


def frequency_days(frequency: Frequency | str, custom_days: int | None = None) -> int:
    """Approximate cadence in days, used for ordering templates.

    CUSTOM without a day count falls back to 30.
    """
    frequency = Frequency(frequency)
    if frequency == Frequency.CUSTOM:
        return custom_days or 30
    return _FREQUENCY_DAYS[frequency]


def format_frequency(frequency: Frequency | str, custom_days: int | None = None) -> str:
    """Human-readable label for a frequency (e.g., "Every 3 months", "Every 10 days")."""
    frequency = Frequency(frequency)
    if frequency == Frequency.CUSTOM:
        if custom_days == 1:
            return "Daily"
        return f"Every {custom_days} days" if custom_days else "Custom"
    return _FREQUENCY_LABELS[frequency]
