"""
File-based caching for price series.

Stores the fetched price history as parquet so repeated analyses and chart
runs do not hit the API.
"""

import time
from pathlib import Path

import pandas as pd

from config import CACHE_EXPIRY_SECONDS, PRICES_DIR
from utils.logging import get_logger

logger = get_logger(__name__)


class CacheError(Exception):
    """Base exception for cache errors."""

    pass


class PriceDataCache:
    """
    Cache for price series, one parquet file per coin-pair.

    Files are named {coin_id}-{vs_currency}.parquet (e.g., bitcoin-usd.parquet).

    Usage:
        cache = PriceDataCache()
        cache.set_prices("bitcoin", prices, "usd")
        prices = cache.get_prices("bitcoin", "usd")
    """

    def __init__(
        self,
        prices_dir: Path = PRICES_DIR,
        expiry_seconds: int = CACHE_EXPIRY_SECONDS,
    ):
        """
        Initialize the price data cache.

        Args:
            prices_dir: Directory for price parquet files
            expiry_seconds: Age after which a file is stale (<= 0: never)
        """
        self.prices_dir = prices_dir
        self.expiry_seconds = expiry_seconds
        self.prices_dir.mkdir(parents=True, exist_ok=True)

    def _get_price_path(self, coin_id: str, vs_currency: str) -> Path:
        """Path like prices/bitcoin-usd.parquet."""
        safe_id = "".join(c if c.isalnum() else "_" for c in coin_id.lower())
        return self.prices_dir / f"{safe_id}-{vs_currency.lower()}.parquet"

    def _is_expired(self, filepath: Path, max_age_seconds: int | None = None) -> bool:
        """Check a cache file against the expiry, using its modification time."""
        if not filepath.exists():
            return True

        max_age = max_age_seconds if max_age_seconds is not None else self.expiry_seconds
        if max_age <= 0:
            return False

        age = time.time() - filepath.stat().st_mtime
        return age > max_age

    def has_prices(self, coin_id: str, vs_currency: str) -> bool:
        """Check if price data exists for a coin-pair (fresh or not)."""
        return self._get_price_path(coin_id, vs_currency).exists()

    def is_fresh(self, coin_id: str, vs_currency: str) -> bool:
        """Check if cached price data exists and has not expired."""
        return not self._is_expired(self._get_price_path(coin_id, vs_currency))

    def get_prices(
        self,
        coin_id: str,
        vs_currency: str,
        max_age_seconds: int | None = None,
    ) -> pd.DataFrame | None:
        """
        Get cached price data for a coin-pair.

        Args:
            coin_id: CoinGecko coin ID
            vs_currency: Quote currency
            max_age_seconds: Override the expiry; 0 accepts any age,
                None uses the cache default

        Returns:
            Price DataFrame, or None if missing, expired or unreadable
        """
        filepath = self._get_price_path(coin_id, vs_currency)

        if self._is_expired(filepath, max_age_seconds):
            return None

        try:
            df = pd.read_parquet(filepath)
        except (OSError, ValueError) as e:
            logger.warning("Ignoring unreadable cache file %s: %s", filepath, e)
            return None

        if not isinstance(df.index, pd.DatetimeIndex):
            df.index = pd.to_datetime(df["timestamp"], unit="ms")
            df.index.name = "date"

        return df

    def set_prices(self, coin_id: str, df: pd.DataFrame, vs_currency: str) -> Path:
        """
        Cache price data for a coin-pair.

        Args:
            coin_id: CoinGecko coin ID
            df: Price DataFrame with 'timestamp' and 'price' columns
            vs_currency: Quote currency

        Returns:
            Path to the cache file
        """
        filepath = self._get_price_path(coin_id, vs_currency)

        try:
            df.to_parquet(filepath, index=True)
        except (OSError, ValueError) as e:
            raise CacheError(f"Failed to write {filepath}: {e}") from e

        logger.debug("Cached %d samples to %s", len(df), filepath)
        return filepath

    def get_last_date(self, coin_id: str, vs_currency: str) -> pd.Timestamp | None:
        """
        Get the last date of cached price data, regardless of age.

        Returns:
            Last date as pd.Timestamp, or None
        """
        df = self.get_prices(coin_id, vs_currency, max_age_seconds=0)
        if df is None or df.empty:
            return None

        return df.index.max()

    def list_cached_pairs(self) -> list[tuple[str, str]]:
        """
        List all cached coin-pairs.

        Returns:
            Sorted list of (coin_id, vs_currency) tuples
        """
        pairs = []
        for filepath in self.prices_dir.glob("*.parquet"):
            coin_id, sep, vs_currency = filepath.stem.rpartition("-")
            if sep:
                pairs.append((coin_id, vs_currency))

        return sorted(pairs)

    def delete_prices(self, coin_id: str, vs_currency: str) -> bool:
        """
        Delete cached price data for a coin-pair.

        Returns:
            True if deleted, False if not found
        """
        filepath = self._get_price_path(coin_id, vs_currency)
        if filepath.exists():
            filepath.unlink()
            return True
        return False

    def clear(self) -> int:
        """
        Clear all cached price data.

        Returns:
            Number of files removed
        """
        count = 0
        for filepath in self.prices_dir.glob("*.parquet"):
            filepath.unlink()
            count += 1
        return count
