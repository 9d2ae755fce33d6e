"""
Price data fetching for Halvcycle.

Coordinates the CoinGecko client and the parquet cache to provide the
complete, validated price series the cycle analysis requires.

A failed fetch or malformed payload is a hard failure: the analysis needs
the whole series and never runs on partial data.
"""

import math
from numbers import Real

import pandas as pd

from analysis.windows import prices_from_samples
from api.coingecko import CoinGeckoClient, CoinGeckoError
from config import COIN_ID, VS_CURRENCY
from data.cache import CacheError, PriceDataCache
from utils.logging import get_logger

logger = get_logger(__name__)


class FetcherError(Exception):
    """Raised when a usable price series cannot be obtained."""

    pass


def build_price_frame(raw_prices: list) -> pd.DataFrame:
    """
    Validate raw [timestamp_ms, price] pairs and build a price series.

    Entries with a missing, non-finite or non-positive price are dropped.

    Args:
        raw_prices: List of [timestamp_ms, price] pairs from the API

    Returns:
        Price DataFrame sorted by timestamp

    Raises:
        FetcherError: If the payload is malformed or holds no usable price
    """
    if not isinstance(raw_prices, list):
        raise FetcherError(
            f"Malformed price payload: expected a list, got {type(raw_prices).__name__}"
        )

    samples = []
    dropped = 0

    for i, entry in enumerate(raw_prices):
        if not isinstance(entry, (list, tuple)) or len(entry) != 2:
            raise FetcherError(f"Malformed price entry at position {i}: {entry!r}")

        timestamp, price = entry
        if not isinstance(timestamp, Real) or isinstance(timestamp, bool):
            raise FetcherError(f"Malformed timestamp at position {i}: {timestamp!r}")

        if not isinstance(price, Real) or not math.isfinite(price) or price <= 0:
            dropped += 1
            continue

        samples.append((int(timestamp), float(price)))

    if dropped:
        logger.warning("Dropped %d samples without a positive price", dropped)

    if not samples:
        raise FetcherError("Price payload contains no usable samples")

    return prices_from_samples(samples)


class PriceFetcher:
    """
    Fetches the daily price series, using the cache when it is fresh.

    Usage:
        fetcher = PriceFetcher()
        prices = fetcher.fetch_prices()
    """

    def __init__(
        self,
        client: CoinGeckoClient | None = None,
        price_cache: PriceDataCache | None = None,
        coin_id: str = COIN_ID,
        vs_currency: str = VS_CURRENCY,
    ):
        """
        Initialize the fetcher.

        Args:
            client: CoinGecko API client (default: new instance)
            price_cache: Price data cache (default: new instance)
            coin_id: CoinGecko coin ID (default: COIN_ID)
            vs_currency: Quote currency (default: VS_CURRENCY)
        """
        self.client = client or CoinGeckoClient()
        self.price_cache = price_cache or PriceDataCache()
        self.coin_id = coin_id
        self.vs_currency = vs_currency

    def fetch_prices(self, use_cache: bool = True) -> pd.DataFrame:
        """
        Get the complete price series.

        Args:
            use_cache: Return the cached series if it has not expired

        Returns:
            Price DataFrame sorted by timestamp

        Raises:
            FetcherError: If the API fails or returns unusable data
        """
        if use_cache:
            cached = self.price_cache.get_prices(self.coin_id, self.vs_currency)
            if cached is not None and not cached.empty:
                logger.debug("Using cached %s-%s prices", self.coin_id, self.vs_currency)
                return cached

        logger.info(
            "Fetching %s/%s price history from CoinGecko...", self.coin_id, self.vs_currency
        )

        try:
            raw_prices = self.client.get_price_history(self.coin_id, self.vs_currency)
        except CoinGeckoError as e:
            raise FetcherError(f"Failed to fetch {self.coin_id} prices: {e}") from e

        prices = build_price_frame(raw_prices)

        try:
            self.price_cache.set_prices(self.coin_id, prices, self.vs_currency)
        except CacheError as e:
            logger.warning("Price series not cached: %s", e)

        logger.info(
            "Fetched %d samples (%s to %s)",
            len(prices),
            prices.index.min().date(),
            prices.index.max().date(),
        )
        return prices

    def load_cached_prices(self) -> pd.DataFrame | None:
        """
        Load the cached series regardless of age.

        Returns:
            Price DataFrame, or None if nothing is cached
        """
        return self.price_cache.get_prices(self.coin_id, self.vs_currency, max_age_seconds=0)
