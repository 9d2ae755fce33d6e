"""
Halving event records.
"""

from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from datetime import date

from config import HALVING_EVENTS
from utils.dates import date_to_ms


@dataclass(frozen=True)
class HalvingEvent:
    """A Bitcoin halving used as a time anchor."""

    date: date
    cycle: int
    block_height: int = 0

    @property
    def timestamp_ms(self) -> int:
        """Epoch milliseconds of the halving date at UTC midnight."""
        return date_to_ms(self.date)

    @property
    def label(self) -> str:
        return f"Cycle {self.cycle} ({self.date.isoformat()})"


def load_halving_events(
    records: Iterable[Mapping] = HALVING_EVENTS,
) -> list[HalvingEvent]:
    """
    Build halving events from configuration records.

    Args:
        records: Mappings with 'date', 'cycle' and optional 'block_height'
            (default: HALVING_EVENTS from config)

    Returns:
        Events sorted by ascending cycle
    """
    events = [
        HalvingEvent(
            date=_parse_date(record["date"]),
            cycle=int(record["cycle"]),
            block_height=int(record.get("block_height", 0)),
        )
        for record in records
    ]
    return sorted(events, key=lambda event: event.cycle)


def _parse_date(value: date | str) -> date:
    """Accept date objects or ISO 'YYYY-MM-DD' strings."""
    if isinstance(value, str):
        return date.fromisoformat(value)
    return value
