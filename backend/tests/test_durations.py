"""
Tests for duration normalization and date helpers.
"""
import pytest
from datetime import date

from app.core.exceptions import InvalidDurationError, ValidationError
from app.services.billing import ALLOWED_DURATIONS, cycle_months_for, normalize_duration
from app.services.billing.dates import add_months, month_label, parse_date, parse_month_label


class TestNormalizeDuration:
    """Free-form duration labels map onto the allowed set."""

    @pytest.mark.parametrize("raw,expected", [
        ("1 month", "1 Month"),
        ("  Monthly ", "1 Month"),
        (1, "1 Month"),
        ("3 MONTHS", "3 Months"),
        ("quarterly", "3 Months"),
        ("half   yearly", "6 Months"),
        ("Half-Yearly", "6 Months"),
        (6, "6 Months"),
        ("12 months", "1 Year"),
        ("Annual", "1 Year"),
        (12, "1 Year"),
    ])
    def test_aliases(self, raw, expected):
        assert normalize_duration(raw) == expected

    def test_canonical_labels_are_stable(self):
        for label in ALLOWED_DURATIONS:
            assert normalize_duration(label) == label

    def test_unknown_label_lists_allowed_values(self):
        with pytest.raises(InvalidDurationError) as exc_info:
            normalize_duration("2 weeks")
        assert "1 Month" in exc_info.value.message
        assert "1 Year" in exc_info.value.message

    def test_empty_rejected_by_default(self):
        with pytest.raises(InvalidDurationError):
            normalize_duration("")

    def test_empty_allowed_means_no_change(self):
        assert normalize_duration(None, allow_empty=True) is None
        assert normalize_duration("   ", allow_empty=True) is None

    def test_invalid_duration_is_a_validation_error(self):
        with pytest.raises(ValidationError):
            normalize_duration("fortnightly")


class TestCycleMonths:
    def test_canonical(self):
        assert cycle_months_for("1 Month") == 1
        assert cycle_months_for("3 Months") == 3
        assert cycle_months_for("6 Months") == 6
        assert cycle_months_for("1 Year") == 12

    def test_legacy_stored_values(self):
        """Old rows with free text fall back to a substring heuristic."""
        assert cycle_months_for("2 years plan") == 12
        assert cycle_months_for("6mo") == 6
        assert cycle_months_for("3mo") == 3
        assert cycle_months_for("whatever") == 1

    def test_missing_duration_is_one_month(self):
        assert cycle_months_for(None) == 1


class TestDates:
    def test_add_months_clamps_to_month_end(self):
        assert add_months(date(2024, 1, 31), 1) == date(2024, 2, 29)
        assert add_months(date(2023, 1, 31), 1) == date(2023, 2, 28)
        assert add_months(date(2024, 3, 31), 6) == date(2024, 9, 30)

    def test_add_months_across_year(self):
        assert add_months(date(2024, 11, 15), 3) == date(2025, 2, 15)

    @pytest.mark.parametrize("label", ["March 2024", "Mar 2024", "2024-03", " march   2024 "])
    def test_parse_month_label(self, label):
        assert parse_month_label(label) == date(2024, 3, 1)

    def test_parse_month_label_rejects_garbage(self):
        with pytest.raises(ValidationError):
            parse_month_label("Marchember 2024")

    def test_month_label(self):
        assert month_label(date(2024, 3, 9)) == "March 2024"

    def test_parse_date(self):
        assert parse_date("2024-02-10") == date(2024, 2, 10)
        assert parse_date("2024-02-10T08:30:00Z") == date(2024, 2, 10)

    def test_parse_date_invalid(self):
        with pytest.raises(ValidationError):
            parse_date("10/02/2024x", "start_date")
