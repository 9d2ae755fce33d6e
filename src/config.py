"""
Configuration constants for the Halvcycle project.

Halvcycle - Bitcoin price behaviour around halving events.
"""

import os
from datetime import date, datetime, timezone
from pathlib import Path

# =============================================================================
# Project Paths
# =============================================================================

PROJECT_ROOT = Path(__file__).parent.parent
DATA_DIR = PROJECT_ROOT / "data"
PRICES_DIR = DATA_DIR / "raw" / "prices"
OUTPUT_DIR = PROJECT_ROOT / "output"
CHARTS_DIR = OUTPUT_DIR / "charts"
REPORTS_DIR = OUTPUT_DIR / "reports"

# =============================================================================
# Bitcoin Halving Events
# =============================================================================

# Plain records so that alternative event sets can be supplied as data.
# Block height is informational only.
HALVING_EVENTS: list[dict] = [
    {"date": date(2012, 11, 28), "cycle": 1, "block_height": 210_000},
    {"date": date(2016, 7, 9), "cycle": 2, "block_height": 420_000},
    {"date": date(2020, 5, 11), "cycle": 3, "block_height": 630_000},
    {"date": date(2024, 4, 20), "cycle": 4, "block_height": 840_000},
]

# =============================================================================
# Analysis Window Configuration
# =============================================================================

# Lookback for the pre-halving gain (inclusive of the halving day)
PRE_HALVING_DAYS = 365

# Maximum post-halving search range for the cycle peak (~18 months)
POST_HALVING_DAYS = 550

# A price sample matches the halving when it is strictly closer than this
PRICE_MATCH_TOLERANCE_DAYS = 1

# Drawdown from the post-halving peak that marks a correction (percent)
CRASH_THRESHOLD_PCT = 30.0


def utc_now() -> datetime:
    """
    Get the current time in UTC.

    Read at call time; it bounds the post-halving window of the
    most recent cycle.

    Returns:
        Timezone-aware current datetime
    """
    return datetime.now(timezone.utc)


# =============================================================================
# Price Source
# =============================================================================

COIN_ID = "bitcoin"
VS_CURRENCY = "usd"

# =============================================================================
# CoinGecko API Configuration
# =============================================================================

COINGECKO_BASE_URL = "https://api.coingecko.com/api/v3"

# Optional demo key, sent as x-cg-demo-api-key when present
COINGECKO_API_KEY = os.environ.get("COINGECKO_API_KEY")

# Rate limiting (public API allows 10-30 calls/minute)
API_CALLS_PER_MINUTE = 10

# Retry configuration
API_MAX_RETRIES = 5
API_RETRY_MIN_WAIT = 1  # seconds
API_RETRY_MAX_WAIT = 60  # seconds
API_TIMEOUT = 30  # seconds

# Cached price series is refreshed after 24 hours
CACHE_EXPIRY_SECONDS = 86400

# =============================================================================
# Visualization Configuration
# =============================================================================

COLORS = {
    "price_line": "#F7931A",  # Bitcoin orange
    "halving_line": "#00FF88",
    "peak_marker": "#00FF88",
    "crash_marker": "#FF4444",
}

# One colour per cycle, lightest to darkest
CYCLE_COLORS = [
    "rgba(255, 180, 100, 0.5)",
    "rgba(255, 140, 0, 0.7)",
    "rgba(255, 100, 0, 0.85)",
    "rgba(230, 80, 0, 1.0)",
]

CHART_HEIGHT = 600

# =============================================================================
# Output Files
# =============================================================================

ANALYSIS_JSON = REPORTS_DIR / "cycle_analysis.json"
LOG_FILE = OUTPUT_DIR / "halvcycle.log"
