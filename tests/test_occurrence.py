"""
Tests for the occurrence calculator and template stamping.

Reference week: 2026-10-05, 10-12 and 10-19 are Mondays;
2026-10-02 and 10-16 are Fridays.
"""

import pytest
from datetime import date
from decimal import Decimal

from finance_core.models.recurring import RecurringTemplate, TransactionType
from finance_core.scheduling import (
    ConfigurationError,
    ScheduleValidationError,
    as_date,
    is_due,
    iter_occurrences,
    month_bounds,
    next_occurrence,
    parse_frequency,
    previous_occurrence,
    resolve_frequency,
    stamp_next_occurrence,
    toggle_active,
)
from finance_core.scheduling.occurrence import days_in_month


def make_template(**overrides) -> RecurringTemplate:
    data = {
        "id": "t1",
        "owner_id": "u1",
        "title": "Rent",
        "amount": Decimal("100"),
        "type": TransactionType.EXPENSE,
        "frequency": "monthly",
        "start_date": date(2026, 1, 15),
    }
    data.update(overrides)
    return RecurringTemplate(**data)


class TestNextOccurrence:
    """Tests for next_occurrence."""

    def test_monthly_day_31_clamps_to_short_month(self):
        """Test that a day-31 anchor lands on the 30th in April."""
        template = make_template(day_of_month=31, start_date=date(2026, 1, 31))
        assert next_occurrence(template, date(2026, 4, 1)) == date(2026, 4, 30)

    def test_monthly_day_31_returns_to_long_month(self):
        """Test that clamping does not drift the anchor."""
        template = make_template(day_of_month=31, start_date=date(2026, 1, 31))
        assert next_occurrence(template, date(2026, 5, 1)) == date(2026, 5, 31)

    def test_daily(self):
        template = make_template(frequency="daily", start_date=date(2026, 3, 1))
        assert next_occurrence(template, date(2026, 3, 10)) == date(2026, 3, 10)

    def test_weekly_lands_on_weekday(self):
        """Test weekly on Mondays from a Wednesday."""
        template = make_template(
            frequency="weekly", day_of_week=1, start_date=date(2026, 10, 5),
        )
        assert next_occurrence(template, date(2026, 10, 14)) == date(2026, 10, 19)

    def test_biweekly_same_weekday_start(self):
        """Test that biweekly from a matching start is two weeks later."""
        template = make_template(
            frequency="biweekly", day_of_week=5, start_date=date(2026, 10, 2),
        )
        assert next_occurrence(template, date(2026, 10, 2)) == date(2026, 10, 16)

    def test_biweekly_rolls_to_weekday(self):
        """Test that biweekly lands on the anchor weekday at least 14 days out."""
        template = make_template(
            frequency="biweekly", day_of_week=5, start_date=date(2026, 10, 5),
        )
        assert next_occurrence(template, date(2026, 10, 5)) == date(2026, 10, 23)

    def test_quarterly_clamps(self):
        template = make_template(
            frequency="quarterly", day_of_month=31, start_date=date(2026, 1, 31),
        )
        assert next_occurrence(template, date(2026, 3, 1)) == date(2026, 4, 30)

    def test_yearly_leap_day(self):
        """Test that Feb 29 falls back to Feb 28 in a common year."""
        template = make_template(
            frequency="yearly", day_of_month=29, start_date=date(2024, 2, 29),
        )
        assert next_occurrence(template, date(2025, 1, 1)) == date(2025, 2, 28)

    def test_ended_template_returns_none(self):
        template = make_template(end_date=date(2026, 9, 30))
        assert next_occurrence(template, date(2026, 10, 19)) is None

    def test_candidate_past_end_returns_none(self):
        """Test that the next instance beyond the end date is not returned."""
        template = make_template(end_date=date(2026, 10, 20))
        assert next_occurrence(template, date(2026, 10, 19)) is None

    def test_last_processed_date_is_base(self):
        template = make_template(
            day_of_month=10,
            start_date=date(2026, 1, 10),
            last_processed_date=date(2026, 9, 10),
        )
        assert next_occurrence(template, date(2026, 9, 1)) == date(2026, 10, 10)

    def test_last_processed_before_start_is_ignored(self):
        template = make_template(
            day_of_month=10,
            start_date=date(2026, 3, 10),
            last_processed_date=date(2026, 1, 10),
        )
        assert next_occurrence(template, date(2026, 3, 1)) == date(2026, 4, 10)

    def test_unknown_frequency_falls_back_to_monthly(self):
        template = make_template(frequency="fortnightly", day_of_month=15)
        assert next_occurrence(template, date(2026, 3, 1)) == date(2026, 3, 15)

    def test_accepts_iso_string(self):
        template = make_template(day_of_month=15)
        assert next_occurrence(template, "2026-03-01") == date(2026, 3, 15)

    def test_missing_day_of_month_anchors_on_first(self):
        """Test that a monthly template without an anchor day falls on the 1st."""
        template = make_template(start_date=date(2026, 1, 10))
        assert next_occurrence(template, date(2026, 1, 11)) == date(2026, 2, 1)

    def test_missing_day_of_month_quarterly(self):
        template = make_template(frequency="quarterly", start_date=date(2026, 1, 10))
        assert next_occurrence(template, date(2026, 1, 11)) == date(2026, 4, 1)

    def test_missing_frequency_rejected(self):
        with pytest.raises(ScheduleValidationError):
            next_occurrence(make_template(frequency=None), date(2026, 3, 1))

    def test_missing_start_rejected(self):
        with pytest.raises(ScheduleValidationError):
            next_occurrence(make_template(start_date=None), date(2026, 3, 1))

    def test_end_before_start_rejected(self):
        template = make_template(end_date=date(2025, 12, 31))
        with pytest.raises(ScheduleValidationError):
            next_occurrence(template, date(2026, 3, 1))

    @pytest.mark.parametrize("frequency", [
        "daily", "weekly", "biweekly", "monthly", "quarterly", "yearly",
    ])
    @pytest.mark.parametrize("from_date", [
        date(2026, 1, 1), date(2026, 2, 28), date(2026, 10, 19), date(2027, 12, 31),
    ])
    def test_result_not_before_reference(self, frequency, from_date):
        """Test that the result is never before the reference or the start."""
        template = make_template(frequency=frequency, start_date=date(2025, 11, 30))
        result = next_occurrence(template, from_date)
        assert result >= from_date
        assert result >= template.start_date

    @pytest.mark.parametrize("anchor", [1, 15, 28, 29, 30, 31])
    def test_month_based_day_matches_anchor(self, anchor):
        """Test day == min(anchor, days in month) across a year."""
        template = make_template(day_of_month=anchor, start_date=date(2026, 1, anchor))
        for month in range(2, 13):
            result = next_occurrence(template, date(2026, month, 1))
            assert result.month == month
            assert result.day == min(anchor, days_in_month(2026, month))


class TestPreviousOccurrence:
    """Tests for previous_occurrence."""

    @pytest.mark.parametrize("day,frequency,day_of_month,expected", [
        (date(2026, 3, 31), "monthly", None, date(2026, 2, 28)),
        (date(2026, 4, 30), "monthly", 31, date(2026, 3, 31)),
        (date(2026, 10, 19), "weekly", None, date(2026, 10, 12)),
        (date(2026, 10, 19), "biweekly", None, date(2026, 10, 5)),
        (date(2026, 10, 19), "daily", None, date(2026, 10, 18)),
        (date(2026, 5, 31), "quarterly", 31, date(2026, 2, 28)),
        (date(2028, 2, 29), "yearly", None, date(2027, 2, 28)),
    ])
    def test_one_period_back(self, day, frequency, day_of_month, expected):
        assert previous_occurrence(day, frequency, day_of_month) == expected

    def test_round_trip_with_next(self):
        """Test that stepping back then forward returns the stamped date."""
        template = make_template(day_of_month=5, start_date=date(2026, 1, 5))
        stamped = next_occurrence(template, date(2026, 10, 19))
        previous = previous_occurrence(stamped, "monthly", 5)
        assert previous == date(2026, 10, 5)
        assert next_occurrence(template, previous) == previous


class TestFrequencyParsing:
    """Tests for strict and lenient frequency parsing."""

    def test_strict_rejects_unknown(self):
        with pytest.raises(ConfigurationError):
            parse_frequency("fortnightly")

    def test_lenient_falls_back(self):
        assert resolve_frequency("fortnightly").value == "monthly"
        assert resolve_frequency("weekly").value == "weekly"

    def test_lenient_fallback_can_be_silent(self, monkeypatch):
        """Test that log_fallback=False skips the warning."""
        from finance_core.scheduling import occurrence

        warnings = []

        class RecordingLogger:
            def warning(self, event, **kw):
                warnings.append(kw)

        monkeypatch.setattr(occurrence, "logger", RecordingLogger())

        assert resolve_frequency("fortnightly", log_fallback=False).value == "monthly"
        assert warnings == []

        resolve_frequency("fortnightly")
        assert warnings[0]["frequency"] == "fortnightly"


class TestHelpers:
    """Tests for date helpers and iteration."""

    def test_month_bounds(self):
        assert month_bounds(date(2028, 2, 10)) == (date(2028, 2, 1), date(2028, 2, 29))
        assert month_bounds("2026-10-19") == (date(2026, 10, 1), date(2026, 10, 31))

    def test_as_date(self):
        assert as_date("2026-10-19") == date(2026, 10, 19)
        assert as_date(date(2026, 10, 19)) == date(2026, 10, 19)

    def test_iter_occurrences_stops_at_end(self):
        template = make_template(day_of_month=25, end_date=date(2026, 11, 30))
        assert list(iter_occurrences(template, date(2026, 10, 25))) == [
            date(2026, 10, 25),
            date(2026, 11, 25),
        ]

    def test_is_due(self):
        template = make_template(next_occurrence=date(2026, 10, 19))
        assert is_due(template, date(2026, 10, 19))
        assert not is_due(template, date(2026, 10, 18))
        assert not is_due(template.model_copy(update={"is_active": False}), date(2026, 10, 19))


class TestTemplateStamping:
    """Tests for stamp_next_occurrence and toggle_active."""

    def test_stamp_sets_next_occurrence(self):
        template = make_template(day_of_month=5, start_date=date(2026, 1, 5))
        stamped = stamp_next_occurrence(template, date(2026, 10, 19))
        assert stamped.next_occurrence == date(2026, 11, 5)
        assert template.next_occurrence is None

    def test_stamp_exhausted_schedule(self):
        template = make_template(end_date=date(2026, 6, 30))
        assert stamp_next_occurrence(template, date(2026, 10, 19)).next_occurrence is None

    def test_pause_keeps_schedule(self):
        template = make_template(next_occurrence=date(2026, 8, 15))
        paused = toggle_active(template, date(2026, 10, 19))
        assert paused.is_active is False
        assert paused.next_occurrence == date(2026, 8, 15)

    def test_resume_restamps(self):
        """Test that resuming skips missed instances while paused."""
        template = make_template(
            is_active=False, day_of_month=15, next_occurrence=date(2026, 8, 15),
        )
        resumed = toggle_active(template, date(2026, 10, 19))
        assert resumed.is_active is True
        assert resumed.next_occurrence == date(2026, 11, 15)
