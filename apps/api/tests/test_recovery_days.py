"""
Unit tests for recovery program day arithmetic.
"""
import pytest
from datetime import date, timedelta

from services.recovery_days import (
    ProgramStatus,
    completion_percentage,
    days_elapsed,
    days_remaining,
    derive_current_day,
    program_status,
)

START = date(2025, 3, 1)


class TestDeriveCurrentDay:
    def test_start_date_is_day_one(self):
        assert derive_current_day(START, START) == 1

    def test_advances_one_per_calendar_day(self):
        assert derive_current_day(START, START + timedelta(days=1)) == 2
        assert derive_current_day(START, START + timedelta(days=13)) == 14

    def test_last_day(self):
        assert derive_current_day(START, START + timedelta(days=29)) == 30

    def test_clamped_after_program_ends(self):
        assert derive_current_day(START, START + timedelta(days=30)) == 30
        assert derive_current_day(START, START + timedelta(days=400)) == 30

    def test_clamped_before_start(self):
        assert derive_current_day(START, START - timedelta(days=3)) == 1

    def test_custom_program_length(self):
        assert derive_current_day(START, START + timedelta(days=20), total_days=14) == 14

    def test_crosses_month_boundary(self):
        assert derive_current_day(date(2024, 2, 28), date(2024, 3, 1)) == 3  # leap year


class TestProgramStatus:
    def test_active_on_first_and_last_day(self):
        assert program_status(START, START) == ProgramStatus.ACTIVE
        assert program_status(START, START + timedelta(days=29)) == ProgramStatus.ACTIVE

    def test_completed_once_all_days_elapsed(self):
        assert program_status(START, START + timedelta(days=30)) == ProgramStatus.COMPLETED

    def test_not_started(self):
        assert program_status(START, START - timedelta(days=1)) == ProgramStatus.NOT_STARTED

    def test_days_elapsed(self):
        assert days_elapsed(START, START + timedelta(days=5)) == 5
        assert days_elapsed(START, START - timedelta(days=2)) == -2


class TestDaysRemaining:
    def test_includes_today(self):
        assert days_remaining(START, START) == 30
        assert days_remaining(START, START + timedelta(days=29)) == 1

    def test_zero_when_completed(self):
        assert days_remaining(START, START + timedelta(days=30)) == 0


class TestCompletionPercentage:
    @pytest.mark.parametrize("completed,total,expected", [
        (0, 5, 0),
        (3, 5, 60),
        (5, 5, 100),
        (1, 3, 33),
        (2, 3, 67),
        (1, 8, 13),  # 12.5 rounds half up
        (0, 0, 0),
    ])
    def test_rounding(self, completed, total, expected):
        assert completion_percentage(completed, total) == expected
