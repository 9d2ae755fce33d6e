"""
Tests for halving cycle analysis.

Tests cover:
- Percentage change helper
- Pre-halving gain
- Post-halving peak and correction detection
- Runner over multiple halvings (gaps, ordering, injected clock)
- Serialization
"""

import json
import math
from datetime import date, datetime, timedelta, timezone

import pytest

from analysis.cycles import (
    CycleAnalysis,
    CycleAnalysisRunner,
    CycleAnalyzer,
    percentage_change,
)
from analysis.events import HalvingEvent, load_halving_events
from analysis.windows import WindowExtractor, prices_from_samples
from utils.dates import DAY_MS, date_to_ms

FIXED_NOW = datetime(2025, 1, 1, tzinfo=timezone.utc)

HALVING = date(2020, 5, 11)
HALVING_TS = date_to_ms(HALVING)
EVENT = HalvingEvent(date=HALVING, cycle=3)


def fixed_clock(now: datetime = FIXED_NOW):
    return lambda: now


def analyze_series(prices, event=EVENT, crash_threshold=30.0, now=FIXED_NOW):
    """Run a single event through extraction and analysis."""
    runner = CycleAnalysisRunner(
        events=[event],
        analyzer=CycleAnalyzer(crash_threshold=crash_threshold),
        clock=fixed_clock(now),
    )
    analyses = runner.run(prices)
    return analyses[0] if analyses else None


def post_halving_series(halving_price, post_prices):
    """Series with one sample on the halving day followed by daily samples."""
    samples = [(HALVING_TS, halving_price)]
    samples += [(HALVING_TS + (i + 1) * DAY_MS, p) for i, p in enumerate(post_prices)]
    return prices_from_samples(samples)


class TestPercentageChange:
    """Tests for the percentage change helper."""

    def test_gain(self):
        """Test a simple gain."""
        assert percentage_change(100, 150) == 50.0

    def test_loss(self):
        """Test a loss is negative."""
        assert percentage_change(1000, 650) == pytest.approx(-35.0)

    def test_zero_start_is_undefined(self):
        """Test that a zero start gives None instead of raising."""
        assert percentage_change(0, 100) is None

    def test_non_finite_start_is_undefined(self):
        """Test that NaN and infinite starts give None."""
        assert percentage_change(math.nan, 100) is None
        assert percentage_change(math.inf, 100) is None


class TestFlatSeries:
    """Flat $100 series around the halving."""

    @pytest.fixture
    def analysis(self, make_prices):
        prices = make_prices(HALVING - timedelta(days=400), [100.0] * 951)
        return analyze_series(prices)

    def test_pre_halving_gain_is_zero(self, analysis):
        """Test no change before the halving."""
        assert analysis.pre_halving.percentage_gain == 0.0
        assert analysis.pre_halving.start_price == 100.0
        assert analysis.pre_halving.halving_price == 100.0

    def test_peak_stays_on_halving_day(self, analysis):
        """Test that equal prices never replace the halving-day peak."""
        post = analysis.post_halving

        assert post.percentage_gain == 0.0
        assert post.peak_price == 100.0
        assert post.peak_date == HALVING
        assert post.days_to_peak == 0

    def test_no_correction(self, analysis):
        """Test no correction is reported."""
        assert analysis.post_halving.crash_date is None
        assert analysis.post_halving.crash_price is None
        assert analysis.post_halving.percentage_from_peak is None
        assert analysis.has_correction is False


class TestRallyAndCorrection:
    """Linear rally into the halving, peak at day 100, crash at day 150."""

    @pytest.fixture
    def prices(self, make_prices):
        pre = [100 + 100 * i / 365 for i in range(366)]  # T-365 .. T
        rally = [200 + 800 * d / 100 for d in range(1, 101)]  # day 1 .. 100
        plateau = [800.0] * 49  # day 101 .. 149, 20% below peak
        crash = [650.0]  # day 150
        decline = [650 - 250 * d / 50 for d in range(1, 51)]  # day 151 .. 200
        return make_prices(HALVING - timedelta(days=365), pre + rally + plateau + crash + decline)

    @pytest.fixture
    def analysis(self, prices):
        return analyze_series(prices)

    def test_pre_halving(self, analysis):
        """Test the gain from the first lookback price to the halving price."""
        pre = analysis.pre_halving

        assert pre.start_date == HALVING - timedelta(days=365)
        assert pre.start_price == pytest.approx(100.0)
        assert pre.halving_price == pytest.approx(200.0)
        assert pre.percentage_gain == pytest.approx(100.0)
        assert pre.days_analyzed == 366

    def test_peak(self, analysis):
        """Test the peak at day 100."""
        post = analysis.post_halving

        assert post.peak_price == pytest.approx(1000.0)
        assert post.peak_date == HALVING + timedelta(days=100)
        assert post.days_to_peak == 100
        assert post.percentage_gain == pytest.approx(400.0)

    def test_first_crossing_is_the_correction(self, analysis):
        """Test the correction is the first sample at least 30% below the peak."""
        post = analysis.post_halving

        assert post.crash_date == HALVING + timedelta(days=150)
        assert post.crash_price == pytest.approx(650.0)
        assert post.percentage_from_peak == pytest.approx(-35.0)
        assert analysis.has_correction is True

    def test_higher_threshold_moves_correction(self, prices):
        """Test a 50% threshold is first reached later in the decline."""
        analysis = analyze_series(prices, crash_threshold=50.0)

        # 650 - 5 * d reaches 500 on day 150 + 30
        assert analysis.post_halving.crash_date == HALVING + timedelta(days=180)

    def test_threshold_never_reached(self, prices):
        """Test no correction when the drawdown stays below the threshold."""
        analysis = analyze_series(prices, crash_threshold=70.0)

        assert analysis.post_halving.crash_date is None


class TestPeakSelection:
    """Edge cases of peak and correction detection."""

    def test_ties_keep_earliest_date(self):
        """Test that the first of equal maxima is the peak."""
        prices = post_halving_series(100.0, [150.0, 300.0, 300.0, 200.0])

        post = analyze_series(prices).post_halving

        assert post.peak_date == HALVING + timedelta(days=2)
        assert post.days_to_peak == 2

    def test_drawdown_exactly_at_threshold(self):
        """Test that a drawdown equal to the threshold counts."""
        prices = post_halving_series(100.0, [1000.0, 701.0, 700.0])

        post = analyze_series(prices).post_halving

        assert post.crash_date == HALVING + timedelta(days=3)
        assert post.crash_price == 700.0

    def test_falling_market_measures_from_halving(self):
        """Test that with no higher price the halving day is the peak."""
        prices = post_halving_series(100.0, [90.0, 60.0, 50.0])

        post = analyze_series(prices).post_halving

        assert post.peak_price == 100.0
        assert post.peak_date == HALVING
        assert post.percentage_gain == 0.0
        assert post.crash_date == HALVING + timedelta(days=2)
        assert post.percentage_from_peak == pytest.approx(-40.0)

    def test_no_post_halving_samples(self):
        """Test a series ending on the halving day."""
        prices = post_halving_series(100.0, [])

        post = analyze_series(prices).post_halving

        assert post.peak_price == 100.0
        assert post.days_to_peak == 0
        assert post.crash_date is None


class TestPreHalvingEdgeCases:
    """Series that start close to the halving."""

    def test_series_starting_on_halving_day(self):
        """Test a single-sample lookback gives zero gain."""
        prices = post_halving_series(100.0, [110.0])

        pre = analyze_series(prices).pre_halving

        assert pre.days_analyzed == 1
        assert pre.percentage_gain == 0.0

    def test_empty_lookback_has_undefined_gain(self):
        """Test that a halving matched after midnight leaves the lookback empty."""
        prices = prices_from_samples([(HALVING_TS + DAY_MS // 2, 100.0)])

        pre = analyze_series(prices).pre_halving

        assert pre.days_analyzed == 0
        assert pre.start_price == 0.0
        assert pre.start_date == HALVING
        assert pre.percentage_gain is None


class TestCycleAnalyzer:
    """Tests for CycleAnalyzer used directly."""

    def test_missing_halving_sample_returns_none(self, make_prices):
        """Test that no analysis is produced without a halving price."""
        prices = make_prices(HALVING + timedelta(days=5), [100.0] * 10)
        windows = WindowExtractor().extract(prices, EVENT, None, date_to_ms(date(2030, 1, 1)))

        assert CycleAnalyzer().analyze(EVENT, windows) is None

    def test_default_threshold(self):
        """Test the default correction threshold."""
        assert CycleAnalyzer().crash_threshold == 30.0


class TestCycleAnalysisRunner:
    """Tests for running the analysis over configured halvings."""

    @pytest.fixture
    def events(self):
        return load_halving_events()

    @pytest.fixture
    def full_prices(self, make_prices):
        # Daily, strictly rising, from 2011-11-01 through 2024-12-31
        start = date(2011, 11, 1)
        days = (date(2024, 12, 31) - start).days + 1
        return make_prices(start, [10.0 + i for i in range(days)])

    def test_all_cycles_analysed_in_order(self, events, full_prices):
        """Test every configured halving produces a result, ordered by cycle."""
        analyses = CycleAnalysisRunner(events=events, clock=fixed_clock()).run(full_prices)

        assert [a.cycle for a in analyses] == [1, 2, 3, 4]
        assert [a.halving_date for a in analyses] == [e.date for e in events]

    def test_data_gap_skips_only_that_cycle(self, events, full_prices):
        """Test a missing halving-day sample drops cycle 2 and nothing else."""
        gap_ts = date_to_ms(date(2016, 7, 9))
        timestamps = full_prices["timestamp"]
        gapped = full_prices[(timestamps < gap_ts - DAY_MS) | (timestamps > gap_ts + DAY_MS)]

        runner = CycleAnalysisRunner(events=events, clock=fixed_clock())
        with_gap = {a.cycle: a for a in runner.run(gapped)}
        without_gap = {a.cycle: a for a in runner.run(full_prices)}

        assert sorted(with_gap) == [1, 3, 4]
        for cycle in (1, 3, 4):
            assert with_gap[cycle] == without_gap[cycle]

    def test_latest_cycle_never_extends_past_now(self, events, full_prices):
        """Test the last halving is bounded by the injected clock."""
        now = datetime(2024, 10, 1, tzinfo=timezone.utc)

        analyses = CycleAnalysisRunner(events=events, clock=fixed_clock(now)).run(full_prices)
        latest = analyses[-1]

        # Prices keep rising until the end of 2024; the peak is the last sample <= now
        assert latest.cycle == 4
        assert latest.post_halving.peak_date == date(2024, 10, 1)
        assert latest.post_halving.days_to_peak == (date(2024, 10, 1) - date(2024, 4, 20)).days

    def test_next_halving_bounds_previous_cycle(self, full_prices):
        """Test that a following halving closes the previous post-halving window."""
        events = [
            HalvingEvent(date=date(2020, 5, 11), cycle=1),
            HalvingEvent(date=date(2020, 8, 19), cycle=2),
        ]

        analyses = CycleAnalysisRunner(events=events, clock=fixed_clock()).run(full_prices)

        assert analyses[0].post_halving.peak_date == date(2020, 8, 19)
        assert analyses[0].post_halving.days_to_peak == 100

    def test_events_sorted_by_cycle(self, events, full_prices):
        """Test results follow cycle order whatever the input order."""
        runner = CycleAnalysisRunner(events=list(reversed(events)), clock=fixed_clock())

        assert [a.cycle for a in runner.run(full_prices)] == [1, 2, 3, 4]

    def test_deterministic_with_fixed_clock(self, events, full_prices):
        """Test repeated runs give identical results."""
        runner = CycleAnalysisRunner(events=events, clock=fixed_clock())

        assert runner.run(full_prices) == runner.run(full_prices)

    def test_clock_read_once_per_run(self, events, full_prices):
        """Test the clock is consulted a single time per run."""
        calls = []

        def clock():
            calls.append(1)
            return FIXED_NOW

        CycleAnalysisRunner(events=events, clock=clock).run(full_prices)

        assert len(calls) == 1

    def test_empty_series(self, events):
        """Test that an empty series yields no analyses."""
        runner = CycleAnalysisRunner(events=events, clock=fixed_clock())

        assert runner.run(prices_from_samples([])) == []


class TestCycleAnalysisSerialization:
    """Tests for converting results to JSON-ready data."""

    def test_to_dict(self, make_prices):
        """Test nested stats are flattened with ISO dates."""
        prices = make_prices(HALVING - timedelta(days=400), [100.0] * 951)

        data = analyze_series(prices).to_dict()

        assert data["cycle"] == 3
        assert data["halving_date"] == "2020-05-11"
        assert data["pre_halving"]["start_date"] == "2019-05-12"
        assert data["post_halving"]["peak_date"] == "2020-05-11"
        assert data["post_halving"]["crash_date"] is None

    def test_json_serializable(self, make_prices):
        """Test the dictionary can be written as JSON."""
        prices = make_prices(HALVING - timedelta(days=400), [100.0] * 951)
        analysis = analyze_series(prices)

        assert isinstance(analysis, CycleAnalysis)
        assert json.loads(json.dumps(analysis.to_dict()))["cycle"] == 3
