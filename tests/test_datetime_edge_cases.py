"""Edge case tests for datetime helpers.

Tests cover:
- dt_parse: ISO strings, dates, free-form strings and garbage
- dt_to_iso: UTC serialization
- days_between: calendar days across midnight and DST changes
- dt_from_epoch_ms: millisecond epochs and out-of-range values
"""

from datetime import UTC, date, datetime
from zoneinfo import ZoneInfo

from custom_components.lifequest.utils.dt_utils import (
    days_between,
    dt_from_epoch_ms,
    dt_parse,
    dt_parse_date,
    dt_to_iso,
    end_of_local_day,
    set_default_timezone,
    start_of_local_day,
)

NEW_YORK = ZoneInfo("America/New_York")


class TestDtParse:
    """Test dt_parse with the input shapes stored documents carry."""

    def test_empty_and_none(self) -> None:
        assert dt_parse("") is None
        assert dt_parse(None) is None

    def test_garbage(self) -> None:
        assert dt_parse("not-a-date") is None

    def test_iso_with_offset(self) -> None:
        result = dt_parse("2025-06-15T14:30:00-04:00")
        assert result is not None
        assert result.astimezone(UTC) == datetime(2025, 6, 15, 18, 30, tzinfo=UTC)

    def test_naive_string_gets_default_timezone(self) -> None:
        result = dt_parse("2025-06-15T14:30:00")
        assert result == datetime(2025, 6, 15, 14, 30, tzinfo=UTC)

    def test_date_object(self) -> None:
        assert dt_parse(date(2025, 6, 15)) == datetime(2025, 6, 15, tzinfo=UTC)

    def test_slash_date(self) -> None:
        assert dt_parse("06/15/2025") == datetime(2025, 6, 15, tzinfo=UTC)

    def test_free_form(self) -> None:
        result = dt_parse("Sun, 15 Jun 2025 14:30:00 GMT")
        assert result is not None
        assert result.astimezone(UTC) == datetime(2025, 6, 15, 14, 30, tzinfo=UTC)

    def test_parse_date_rejects_invalid(self) -> None:
        assert dt_parse_date("2025-13-45") is None
        assert dt_parse_date(None) is None


class TestSerialization:
    """Test UTC serialization and epoch conversion."""

    def test_to_iso_converts_to_utc(self) -> None:
        local = datetime(2025, 4, 7, 9, 30, tzinfo=NEW_YORK)
        assert dt_to_iso(local) == "2025-04-07T13:30:00+00:00"

    def test_epoch_ms(self) -> None:
        assert dt_from_epoch_ms(0) == datetime(1970, 1, 1, tzinfo=UTC)
        assert dt_from_epoch_ms(1_750_000_000_000) == datetime.fromtimestamp(
            1_750_000_000, tz=UTC
        )

    def test_epoch_out_of_range(self) -> None:
        assert dt_from_epoch_ms(1e20) is None


class TestCalendarDays:
    """Test calendar-day math in a non-UTC zone."""

    def setup_method(self) -> None:
        set_default_timezone(NEW_YORK)

    def teardown_method(self) -> None:
        set_default_timezone(ZoneInfo("UTC"))

    def test_minutes_apart_across_midnight_is_one_day(self) -> None:
        late = datetime(2025, 6, 15, 23, 55, tzinfo=NEW_YORK)
        early = datetime(2025, 6, 16, 0, 5, tzinfo=NEW_YORK)
        assert days_between(late, early) == 1

    def test_same_local_day_in_utc_terms_differs(self) -> None:
        """02:00 UTC on the 16th is still the 15th in New York."""
        first = datetime(2025, 6, 15, 12, 0, tzinfo=UTC)
        second = datetime(2025, 6, 16, 2, 0, tzinfo=UTC)
        assert days_between(first, second) == 0

    def test_dst_spring_forward_counts_one_day(self) -> None:
        before = datetime(2025, 3, 8, 12, 0, tzinfo=NEW_YORK)
        after = datetime(2025, 3, 9, 12, 0, tzinfo=NEW_YORK)
        assert days_between(before, after) == 1

    def test_order_does_not_matter(self) -> None:
        first = datetime(2025, 6, 10, tzinfo=NEW_YORK)
        second = datetime(2025, 6, 13, tzinfo=NEW_YORK)
        assert days_between(second, first) == 3

    def test_day_boundaries(self) -> None:
        moment = datetime(2025, 6, 15, 14, 0, tzinfo=NEW_YORK)
        assert start_of_local_day(moment) == datetime(2025, 6, 15, tzinfo=NEW_YORK)
        assert end_of_local_day(moment) == datetime(
            2025, 6, 15, 23, 59, 59, 999999, tzinfo=NEW_YORK
        )
