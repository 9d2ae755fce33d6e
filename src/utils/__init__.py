"""
Utility modules for Halvcycle.
"""

from .dates import DAY_MS, date_to_ms, datetime_to_ms, ms_to_date
from .logging import get_logger, setup_logging

__all__ = [
    "DAY_MS",
    "date_to_ms",
    "datetime_to_ms",
    "ms_to_date",
    "get_logger",
    "setup_logging",
]
