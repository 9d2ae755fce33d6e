"""
Halving cycle analysis.

For each halving event:
- Pre-halving gain: first price of the 365-day lookback to the halving price
- Post-halving peak: highest price after the halving, earliest date on ties,
  seeded with the halving price itself
- Correction: first sample after the peak whose drawdown from the peak
  reaches the crash threshold (30% by default)

Events without a price sample on the halving day are left out of the
results rather than reported with placeholder values.
"""

import math
from collections.abc import Callable, Sequence
from dataclasses import asdict, dataclass
from datetime import date, datetime

import numpy as np
import pandas as pd

from analysis.events import HalvingEvent, load_halving_events
from analysis.windows import CycleWindows, WindowExtractor
from config import CRASH_THRESHOLD_PCT, utc_now
from utils.dates import datetime_to_ms, ms_to_date
from utils.logging import get_logger

logger = get_logger(__name__)


def percentage_change(start: float, end: float) -> float | None:
    """
    Percentage change from start to end.

    Returns:
        (end - start) / start * 100, or None when the change is undefined
        (zero or non-finite start)
    """
    if start == 0 or not math.isfinite(start):
        return None
    return (end - start) / start * 100


@dataclass(frozen=True)
class PreHalvingStats:
    """Price behaviour over the lookback window ending on the halving day."""

    start_date: date
    start_price: float
    halving_price: float
    percentage_gain: float | None
    days_analyzed: int


@dataclass(frozen=True)
class PostHalvingStats:
    """Peak and first correction after the halving."""

    peak_date: date
    peak_price: float
    percentage_gain: float
    days_to_peak: int
    crash_date: date | None = None
    crash_price: float | None = None
    percentage_from_peak: float | None = None


@dataclass(frozen=True)
class CycleAnalysis:
    """Analysis result for one halving cycle."""

    cycle: int
    halving_date: date
    pre_halving: PreHalvingStats
    post_halving: PostHalvingStats

    @property
    def has_correction(self) -> bool:
        return self.post_halving.crash_date is not None

    def to_dict(self) -> dict:
        """Convert to a JSON-ready dictionary with ISO dates."""
        return _isoformat_dates(asdict(self))


def _isoformat_dates(value):
    if isinstance(value, dict):
        return {key: _isoformat_dates(item) for key, item in value.items()}
    if isinstance(value, date):
        return value.isoformat()
    return value


class CycleAnalyzer:
    """
    Computes gains, peak and correction for a single halving.

    Usage:
        analyzer = CycleAnalyzer()
        result = analyzer.analyze(event, windows)
        result.post_halving.peak_price
    """

    def __init__(self, crash_threshold: float = CRASH_THRESHOLD_PCT):
        """
        Initialize the analyzer.

        Args:
            crash_threshold: Drawdown from peak, in percent, that marks a
                correction (default: CRASH_THRESHOLD_PCT)
        """
        self.crash_threshold = crash_threshold

    def analyze(self, event: HalvingEvent, windows: CycleWindows) -> CycleAnalysis | None:
        """
        Analyse one halving cycle.

        Args:
            event: The halving event
            windows: Windows extracted for this event

        Returns:
            CycleAnalysis, or None if no sample matches the halving day
        """
        if windows.halving_sample is None:
            return None

        halving_price = float(windows.halving_sample["price"])

        pre_halving = self._analyze_pre_halving(event, windows.pre_halving, halving_price)
        post_halving = self._analyze_post_halving(event, windows.post_halving, halving_price)

        return CycleAnalysis(
            cycle=event.cycle,
            halving_date=event.date,
            pre_halving=pre_halving,
            post_halving=post_halving,
        )

    def _analyze_pre_halving(
        self,
        event: HalvingEvent,
        window: pd.DataFrame,
        halving_price: float,
    ) -> PreHalvingStats:
        if window.empty:
            # Series starts after the lookback: no baseline, gain undefined
            start_price = 0.0
            start_date = event.date
        else:
            start_price = float(window["price"].iloc[0])
            start_date = ms_to_date(window["timestamp"].iloc[0])

        return PreHalvingStats(
            start_date=start_date,
            start_price=start_price,
            halving_price=halving_price,
            percentage_gain=percentage_change(start_price, halving_price),
            days_analyzed=len(window),
        )

    def _analyze_post_halving(
        self,
        event: HalvingEvent,
        window: pd.DataFrame,
        halving_price: float,
    ) -> PostHalvingStats:
        prices = window["price"].to_numpy(dtype=float)
        timestamps = window["timestamp"].to_numpy(dtype="int64")

        peak_price = halving_price
        peak_date = event.date
        peak_pos = 0

        # argmax returns the first occurrence, so ties keep the earliest date
        if prices.size and prices.max() > halving_price:
            peak_pos = int(np.argmax(prices))
            peak_price = float(prices[peak_pos])
            peak_date = ms_to_date(timestamps[peak_pos])

        crash_date = None
        crash_price = None
        percentage_from_peak = None

        drawdowns = (peak_price - prices[peak_pos:]) / peak_price * 100
        if drawdowns.size:
            logger.debug(
                "Cycle %d: max drawdown %.2f%% after peak on %s",
                event.cycle,
                float(drawdowns.max()),
                peak_date,
            )
            crossings = np.flatnonzero(drawdowns >= self.crash_threshold)
            if crossings.size:
                crash_pos = peak_pos + int(crossings[0])
                crash_price = float(prices[crash_pos])
                crash_date = ms_to_date(timestamps[crash_pos])
                percentage_from_peak = percentage_change(peak_price, crash_price)

        return PostHalvingStats(
            peak_date=peak_date,
            peak_price=peak_price,
            percentage_gain=percentage_change(halving_price, peak_price),
            days_to_peak=(peak_date - event.date).days,
            crash_date=crash_date,
            crash_price=crash_price,
            percentage_from_peak=percentage_from_peak,
        )


class CycleAnalysisRunner:
    """
    Runs the cycle analysis over every configured halving.

    Each event is analysed independently against the full series; the
    following event only bounds the post-halving window. The clock is read
    once per run so that a fixed clock gives reproducible results.

    Usage:
        runner = CycleAnalysisRunner()
        analyses = runner.run(prices)
    """

    def __init__(
        self,
        events: Sequence[HalvingEvent] | None = None,
        extractor: WindowExtractor | None = None,
        analyzer: CycleAnalyzer | None = None,
        clock: Callable[[], datetime] = utc_now,
    ):
        """
        Initialize the runner.

        Args:
            events: Halving events (default: load_halving_events())
            extractor: Window extractor (default: new instance)
            analyzer: Cycle analyzer (default: new instance)
            clock: Returns the current time (default: utc_now)
        """
        if events is None:
            events = load_halving_events()
        self.events = sorted(events, key=lambda event: event.cycle)
        self.extractor = extractor or WindowExtractor()
        self.analyzer = analyzer or CycleAnalyzer()
        self.clock = clock

    def run(self, prices: pd.DataFrame) -> list[CycleAnalysis]:
        """
        Analyse all halving cycles.

        Args:
            prices: Complete price series, sorted by timestamp

        Returns:
            Analyses ordered by ascending cycle; cycles without a
            halving-day sample are absent
        """
        now_ts = datetime_to_ms(self.clock())
        analyses = []

        for index, event in enumerate(self.events):
            next_event = self.events[index + 1] if index + 1 < len(self.events) else None
            windows = self.extractor.extract(prices, event, next_event, now_ts)
            analysis = self.analyzer.analyze(event, windows)

            if analysis is None:
                logger.debug(
                    "Cycle %d: no price sample within tolerance of %s", event.cycle, event.date
                )
                continue

            logger.debug(
                "Cycle %d: %d pre-halving and %d post-halving samples",
                event.cycle,
                len(windows.pre_halving),
                len(windows.post_halving),
            )
            analyses.append(analysis)

        return analyses
