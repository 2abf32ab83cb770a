"""
Recovery program day arithmetic.

Single source of truth for turning a program start date into a day index.
Day 1 is the start date itself; the index advances at each local midnight
and stops at the last program day.
"""

from datetime import date
from enum import Enum

DEFAULT_PROGRAM_DAYS = 30


class ProgramStatus(str, Enum):
    NOT_STARTED = "not_started"  # start_date in the future (rejected on write, tolerated on read)
    ACTIVE = "active"
    COMPLETED = "completed"


def days_elapsed(start_date: date, today: date) -> int:
    """Whole calendar days from start_date to today (negative if start is ahead)."""
    return (today - start_date).days


def derive_current_day(start_date: date, today: date, total_days: int = DEFAULT_PROGRAM_DAYS) -> int:
    """
    Current program day, clamped to [1, total_days].

    >>> derive_current_day(date(2024, 3, 1), date(2024, 3, 1))
    1
    >>> derive_current_day(date(2024, 3, 1), date(2024, 3, 30))
    30
    >>> derive_current_day(date(2024, 3, 1), date(2024, 5, 1))
    30
    """
    return max(1, min(total_days, days_elapsed(start_date, today) + 1))


def program_status(start_date: date, today: date, total_days: int = DEFAULT_PROGRAM_DAYS) -> ProgramStatus:
    elapsed = days_elapsed(start_date, today)
    if elapsed < 0:
        return ProgramStatus.NOT_STARTED
    if elapsed >= total_days:
        return ProgramStatus.COMPLETED
    return ProgramStatus.ACTIVE


def days_remaining(start_date: date, today: date, total_days: int = DEFAULT_PROGRAM_DAYS) -> int:
    """Program days left including today; 0 once the program is completed."""
    if program_status(start_date, today, total_days) == ProgramStatus.COMPLETED:
        return 0
    return max(0, total_days - derive_current_day(start_date, today, total_days) + 1)


def completion_percentage(completed: int, total: int) -> int:
    """Whole-number percentage rounded half up; 0 when there is nothing to complete."""
    if total <= 0:
        return 0
    return min(100, (200 * completed + total) // (2 * total))
