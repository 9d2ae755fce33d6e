"""
CoinGecko API client for Halvcycle.

Provides methods to:
- Fetch the full daily price history of a coin
- Handle rate limiting and retries

API Documentation: https://docs.coingecko.com/reference/coins-id-market-chart
"""

import time
from importlib.metadata import PackageNotFoundError, version
from typing import Any

import requests
from tenacity import (
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from config import (
    API_CALLS_PER_MINUTE,
    API_MAX_RETRIES,
    API_RETRY_MAX_WAIT,
    API_RETRY_MIN_WAIT,
    API_TIMEOUT,
    COIN_ID,
    COINGECKO_API_KEY,
    COINGECKO_BASE_URL,
    VS_CURRENCY,
)
from utils.logging import get_logger

logger = get_logger(__name__)


def get_version() -> str:
    """Get package version for User-Agent."""
    try:
        return version("halvcycle")
    except PackageNotFoundError:
        return "dev"


class CoinGeckoError(Exception):
    """Base exception for CoinGecko API errors."""

    pass


class RateLimitError(CoinGeckoError):
    """Raised when API rate limit is exceeded."""

    pass


class APIError(CoinGeckoError):
    """Raised for general API errors."""

    pass


class CoinGeckoClient:
    """
    CoinGecko API client with rate limiting and retry logic.

    Usage:
        client = CoinGeckoClient()
        samples = client.get_price_history("bitcoin", "usd")
        # [[timestamp_ms, price], ...]
    """

    def __init__(
        self,
        base_url: str = COINGECKO_BASE_URL,
        api_key: str | None = COINGECKO_API_KEY,
        calls_per_minute: int = API_CALLS_PER_MINUTE,
        timeout: float = API_TIMEOUT,
    ):
        """
        Initialize the CoinGecko client.

        Args:
            base_url: CoinGecko API base URL
            api_key: Optional demo API key
            calls_per_minute: Maximum API calls per minute (rate limiting)
            timeout: Request timeout in seconds
        """
        self.base_url = base_url.rstrip("/")
        self.api_key = api_key
        self.calls_per_minute = calls_per_minute
        self.min_interval = 60.0 / calls_per_minute
        self.timeout = timeout
        self._last_request_time: float | None = None

        self.session = requests.Session()
        headers = {
            "Accept": "application/json",
            "User-Agent": f"Halvcycle/{get_version()}",
        }
        if api_key:
            headers["x-cg-demo-api-key"] = api_key
        self.session.headers.update(headers)

    def _wait_for_rate_limit(self) -> None:
        """Wait if necessary to respect rate limits."""
        if self._last_request_time is not None:
            elapsed = time.time() - self._last_request_time
            if elapsed < self.min_interval:
                time.sleep(self.min_interval - elapsed)

    @retry(
        retry=retry_if_exception_type(RateLimitError),
        stop=stop_after_attempt(API_MAX_RETRIES),
        wait=wait_exponential(
            multiplier=1,
            min=API_RETRY_MIN_WAIT,
            max=API_RETRY_MAX_WAIT,
        ),
        reraise=True,
    )
    def _request(
        self,
        endpoint: str,
        params: dict[str, Any] | None = None,
    ) -> dict | list:
        """
        Make a rate-limited request to the CoinGecko API.

        Args:
            endpoint: API endpoint (e.g., "/coins/bitcoin/market_chart")
            params: Query parameters

        Returns:
            Parsed JSON response

        Raises:
            RateLimitError: When rate limit is exceeded (will retry)
            APIError: For other API errors
        """
        self._wait_for_rate_limit()

        url = f"{self.base_url}{endpoint}"
        logger.debug("GET %s %s", url, params or {})

        try:
            response = self.session.get(url, params=params, timeout=self.timeout)
            self._last_request_time = time.time()

            if response.status_code == 429:
                logger.warning("CoinGecko rate limit hit, backing off")
                raise RateLimitError("Rate limit exceeded")

            if response.status_code != 200:
                raise APIError(f"API error {response.status_code}: {response.text}")

            return response.json()

        except requests.RequestException as e:
            raise APIError(f"Request failed: {e}") from e
        except ValueError as e:
            raise APIError(f"Invalid JSON response: {e}") from e

    def get_coin_market_chart(
        self,
        coin_id: str = COIN_ID,
        vs_currency: str = VS_CURRENCY,
        days: int | str = "max",
        interval: str | None = "daily",
    ) -> dict[str, list]:
        """
        Fetch historical market data for a coin.

        Args:
            coin_id: CoinGecko coin ID (e.g., "bitcoin")
            vs_currency: Quote currency (default: "usd")
            days: Number of days of data, or "max" for all available
            interval: Data granularity, None to let the API choose

        Returns:
            Dictionary with 'prices', 'market_caps', 'total_volumes' keys
            Each value is a list of [timestamp_ms, value] pairs
        """
        params = {
            "vs_currency": vs_currency,
            "days": str(days),
        }
        if interval:
            params["interval"] = interval

        data = self._request(f"/coins/{coin_id}/market_chart", params=params)

        if not isinstance(data, dict):
            raise APIError(f"Unexpected market chart payload: {type(data).__name__}")

        return {
            "prices": data.get("prices", []),
            "market_caps": data.get("market_caps", []),
            "total_volumes": data.get("total_volumes", []),
        }

    def get_price_history(
        self,
        coin_id: str = COIN_ID,
        vs_currency: str = VS_CURRENCY,
    ) -> list[list]:
        """
        Fetch the complete daily price history of a coin.

        Args:
            coin_id: CoinGecko coin ID (default: "bitcoin")
            vs_currency: Quote currency (default: "usd")

        Returns:
            List of [timestamp_ms, price] pairs in chronological order
        """
        chart = self.get_coin_market_chart(coin_id, vs_currency, days="max", interval="daily")
        return chart["prices"]

    def ping(self) -> bool:
        """
        Check if the API is reachable.

        Returns:
            True if API responds successfully
        """
        try:
            self._request("/ping")
            return True
        except CoinGeckoError:
            return False
