"""
Data fetching and caching modules.
"""

from .cache import CacheError, PriceDataCache
from .fetcher import FetcherError, PriceFetcher, build_price_frame

__all__ = [
    "CacheError",
    "PriceDataCache",
    "FetcherError",
    "PriceFetcher",
    "build_price_frame",
]
