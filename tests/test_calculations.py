#!/usr/bin/env python3
"""Tests for calculation helper functions."""
from datetime import datetime, timedelta, timezone

from garage import Status, calc_due_date, calc_due_odometer, check_status
from garage.calculations import calc_days_remaining, calc_miles_remaining

NOW = datetime(2025, 6, 15, 12, 0, tzinfo=timezone.utc)


class TestCalcDueOdometer:
    """Tests for calc_due_odometer helper function."""

    def test_with_history(self):
        """last_odometer + interval when history exists."""
        assert calc_due_odometer(50000, 5000) == 55000

    def test_without_history_default_start(self):
        assert calc_due_odometer(None, 5000) == 5000

    def test_without_history_custom_start(self):
        """start_odometer + interval when the task was added later."""
        assert calc_due_odometer(None, 5000, start_odometer=48000) == 53000

    def test_with_history_ignores_start(self):
        assert calc_due_odometer(45000, 5000, start_odometer=48000) == 50000


class TestCalcDueDate:
    """Tests for calc_due_date helper function."""

    def test_months_are_thirty_days(self):
        assert calc_due_date(NOW, 6) == NOW + timedelta(days=180)

    def test_fractional_months(self):
        assert calc_due_date(NOW, 0.5) == NOW + timedelta(days=15)


class TestRemaining:
    """Tests for calc_miles_remaining and calc_days_remaining."""

    def test_miles_remaining(self):
        assert calc_miles_remaining(50000, 48000) == 2000
        assert calc_miles_remaining(50000, 50100) == -100

    def test_miles_remaining_none_without_threshold(self):
        assert calc_miles_remaining(None, 48000) is None

    def test_days_remaining_whole_days(self):
        assert calc_days_remaining(NOW + timedelta(days=10), NOW) == 10

    def test_days_remaining_floors_partial_days(self):
        assert calc_days_remaining(NOW + timedelta(days=10, hours=23), NOW) == 10
        assert calc_days_remaining(NOW - timedelta(hours=1), NOW) == -1

    def test_days_remaining_none_without_date(self):
        assert calc_days_remaining(None, NOW) is None


class TestCheckStatus:
    """Tests for check_status helper function."""

    def test_overdue_by_distance(self):
        assert check_status(-100, 100) == Status.OVERDUE
        assert check_status(0, 100) == Status.OVERDUE

    def test_overdue_by_time(self):
        assert check_status(3000, -1) == Status.OVERDUE
        assert check_status(3000, 0) == Status.OVERDUE

    def test_due_soon_by_distance(self):
        assert check_status(500, 100) == Status.DUE_SOON
        assert check_status(1, 100) == Status.DUE_SOON

    def test_due_soon_by_time(self):
        assert check_status(3000, 14) == Status.DUE_SOON

    def test_upcoming(self):
        assert check_status(501, 15) == Status.UPCOMING

    def test_unknown_triggers_are_ignored(self):
        assert check_status(None, None) == Status.UPCOMING
        assert check_status(None, 5) == Status.DUE_SOON
        assert check_status(-10, None) == Status.OVERDUE

    def test_estimated_overdue_is_due_soon(self):
        """Unconfirmed baselines never report overdue."""
        assert check_status(-100, -30, estimated=True) == Status.DUE_SOON

    def test_estimated_does_not_change_other_statuses(self):
        assert check_status(400, 100, estimated=True) == Status.DUE_SOON
        assert check_status(3000, 100, estimated=True) == Status.UPCOMING

    def test_custom_window(self):
        assert check_status(900, 100, due_soon_distance=1000) == Status.DUE_SOON
        assert check_status(3000, 25, due_soon_days=30) == Status.DUE_SOON
