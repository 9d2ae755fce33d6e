"""
Tests for halving events and epoch-millisecond helpers.
"""

from datetime import date, datetime, timedelta, timezone

from analysis.events import HalvingEvent, load_halving_events
from utils.dates import DAY_MS, date_to_ms, datetime_to_ms, ms_to_date


class TestLoadHalvingEvents:
    """Tests for building events from configuration records."""

    def test_default_events(self):
        """Test the four Bitcoin halvings are configured."""
        events = load_halving_events()

        assert [e.cycle for e in events] == [1, 2, 3, 4]
        assert [e.date for e in events] == [
            date(2012, 11, 28),
            date(2016, 7, 9),
            date(2020, 5, 11),
            date(2024, 4, 20),
        ]
        assert events[3].block_height == 840_000

    def test_custom_records_sorted_by_cycle(self):
        """Test synthetic event sets with ISO date strings."""
        events = load_halving_events(
            [
                {"date": "2030-01-01", "cycle": 2},
                {"date": "2020-01-01", "cycle": 1, "block_height": 10},
            ]
        )

        assert [e.cycle for e in events] == [1, 2]
        assert events[0].date == date(2020, 1, 1)
        assert events[0].block_height == 10
        assert events[1].block_height == 0

    def test_empty_records(self):
        """Test that no records give no events."""
        assert load_halving_events([]) == []


class TestHalvingEvent:
    """Tests for the HalvingEvent dataclass."""

    def test_timestamp_is_utc_midnight(self):
        """Test the event timestamp."""
        event = HalvingEvent(date=date(2020, 5, 11), cycle=3)

        assert event.timestamp_ms == 1_589_155_200_000

    def test_label(self):
        """Test the display label."""
        assert HalvingEvent(date=date(2024, 4, 20), cycle=4).label == "Cycle 4 (2024-04-20)"


class TestDates:
    """Tests for epoch-millisecond conversions."""

    def test_day_ms(self):
        """Test one day in milliseconds."""
        assert DAY_MS == 86_400_000

    def test_date_to_ms(self):
        """Test dates map to UTC midnight."""
        assert date_to_ms(date(1970, 1, 2)) == DAY_MS

    def test_naive_datetime_is_utc(self):
        """Test naive and UTC-aware datetimes agree."""
        naive = datetime(2024, 4, 20, 12, 0)
        aware = datetime(2024, 4, 20, 12, 0, tzinfo=timezone.utc)

        assert datetime_to_ms(naive) == datetime_to_ms(aware)

    def test_aware_datetime_other_zone(self):
        """Test non-UTC offsets are converted."""
        plus_two = timezone(timedelta(hours=2))
        dt = datetime(2024, 4, 20, 2, 0, tzinfo=plus_two)

        assert datetime_to_ms(dt) == date_to_ms(date(2024, 4, 20))

    def test_ms_to_date(self):
        """Test late-evening timestamps stay on the same UTC day."""
        ts = date_to_ms(date(2020, 5, 11)) + DAY_MS - 1

        assert ms_to_date(ts) == date(2020, 5, 11)
