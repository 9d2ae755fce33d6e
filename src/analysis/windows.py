"""
Window extraction around halving events.

A price series is a DataFrame with a DatetimeIndex named 'date' and the
columns 'timestamp' (epoch milliseconds, UTC) and 'price', sorted by
timestamp. Windows are selected on the integer timestamps so that the
boundary rules below hold exactly:

- pre-halving:  T - pre_days  <= timestamp <= T   (includes the halving day)
- post-halving: T < timestamp <= min(T + post_days, next halving, now)
"""

from collections.abc import Iterable, Sequence
from dataclasses import dataclass

import numpy as np
import pandas as pd

from analysis.events import HalvingEvent
from config import POST_HALVING_DAYS, PRE_HALVING_DAYS, PRICE_MATCH_TOLERANCE_DAYS
from utils.dates import DAY_MS

PRICE_COLUMNS = ["timestamp", "price"]


def prices_from_samples(samples: Iterable[tuple[int, float]]) -> pd.DataFrame:
    """
    Build a price series from (timestamp_ms, price) pairs.

    The sort is stable, so samples sharing a timestamp keep their
    original relative order.

    Args:
        samples: Iterable of (epoch milliseconds, price) pairs

    Returns:
        DataFrame with DatetimeIndex 'date' and columns 'timestamp', 'price'
    """
    records = [(int(timestamp), float(price)) for timestamp, price in samples]
    df = pd.DataFrame(records, columns=PRICE_COLUMNS).astype(
        {"timestamp": "int64", "price": "float64"}
    )
    df = df.sort_values("timestamp", kind="mergesort")
    df.index = pd.DatetimeIndex(pd.to_datetime(df["timestamp"].to_numpy(), unit="ms"), name="date")
    return df


@dataclass
class CycleWindows:
    """Slices of the price series needed to analyse one halving."""

    halving_sample: pd.Series | None
    pre_halving: pd.DataFrame
    post_halving: pd.DataFrame
    post_halving_end_ms: int


class WindowExtractor:
    """
    Slices a price series into pre- and post-halving windows.

    Usage:
        extractor = WindowExtractor()
        windows = extractor.extract(prices, event, next_event, now_ms)
        windows.pre_halving   # up to 365 days ending on the halving day
        windows.post_halving  # up to 550 days after, capped by the next halving
    """

    def __init__(
        self,
        pre_days: int = PRE_HALVING_DAYS,
        post_days: int = POST_HALVING_DAYS,
        tolerance_ms: int = PRICE_MATCH_TOLERANCE_DAYS * DAY_MS,
    ):
        """
        Initialize the extractor.

        Args:
            pre_days: Lookback before the halving (default: PRE_HALVING_DAYS)
            post_days: Maximum range after the halving (default: POST_HALVING_DAYS)
            tolerance_ms: Maximum distance for the halving-day sample match
        """
        self.pre_days = pre_days
        self.post_days = post_days
        self.tolerance_ms = tolerance_ms

    def find_halving_sample(self, prices: pd.DataFrame, halving_ts: int) -> pd.Series | None:
        """
        Find the first sample strictly within tolerance of the halving.

        Args:
            prices: Price series
            halving_ts: Halving timestamp in epoch milliseconds

        Returns:
            The matching row, or None if the halving is not observable
        """
        timestamps = prices["timestamp"].to_numpy(dtype="int64")
        matches = np.flatnonzero(np.abs(timestamps - halving_ts) < self.tolerance_ms)
        if matches.size == 0:
            return None
        return prices.iloc[matches[0]]

    def pre_halving_window(self, prices: pd.DataFrame, halving_ts: int) -> pd.DataFrame:
        """Samples from pre_days before the halving up to and including it."""
        start_ts = halving_ts - self.pre_days * DAY_MS
        timestamps = prices["timestamp"]
        return prices[(timestamps >= start_ts) & (timestamps <= halving_ts)]

    def post_halving_end(
        self,
        halving_ts: int,
        next_halving_ts: int | None,
        now_ts: int,
    ) -> int:
        """
        Upper bound of the post-halving window.

        Without a following halving the cycle is still running and the
        current time takes its place.
        """
        if next_halving_ts is None:
            next_halving_ts = now_ts
        return min(halving_ts + self.post_days * DAY_MS, next_halving_ts, now_ts)

    def post_halving_window(
        self,
        prices: pd.DataFrame,
        halving_ts: int,
        end_ts: int,
    ) -> pd.DataFrame:
        """Samples strictly after the halving up to and including end_ts."""
        timestamps = prices["timestamp"]
        return prices[(timestamps > halving_ts) & (timestamps <= end_ts)]

    def extract(
        self,
        prices: pd.DataFrame,
        event: HalvingEvent,
        next_event: HalvingEvent | None,
        now_ts: int,
    ) -> CycleWindows:
        """
        Extract every window needed to analyse one halving.

        Args:
            prices: Full price series
            event: Halving to analyse
            next_event: Following configured halving, None for the latest cycle
            now_ts: Current time in epoch milliseconds

        Returns:
            CycleWindows for the event
        """
        halving_ts = event.timestamp_ms
        next_ts = next_event.timestamp_ms if next_event is not None else None
        end_ts = self.post_halving_end(halving_ts, next_ts, now_ts)

        return CycleWindows(
            halving_sample=self.find_halving_sample(prices, halving_ts),
            pre_halving=self.pre_halving_window(prices, halving_ts),
            post_halving=self.post_halving_window(prices, halving_ts, end_ts),
            post_halving_end_ms=end_ts,
        )


def select_cycle_prices(
    prices: pd.DataFrame,
    events: Sequence[HalvingEvent],
    cycle: int | None = None,
    pre_days: int = PRE_HALVING_DAYS,
    post_days: int = POST_HALVING_DAYS,
) -> pd.DataFrame:
    """
    Restrict the series to one cycle for charting.

    Args:
        prices: Full price series
        events: Configured halving events
        cycle: Cycle number to show, or None for the whole series
        pre_days: Days shown before the halving
        post_days: Days shown after the halving

    Returns:
        The samples within [halving - pre_days, halving + post_days], or the
        unfiltered series when no (known) cycle is selected
    """
    if cycle is None:
        return prices

    event = next((e for e in events if e.cycle == cycle), None)
    if event is None:
        return prices

    halving_ts = event.timestamp_ms
    timestamps = prices["timestamp"]
    mask = (timestamps >= halving_ts - pre_days * DAY_MS) & (
        timestamps <= halving_ts + post_days * DAY_MS
    )
    return prices[mask]
