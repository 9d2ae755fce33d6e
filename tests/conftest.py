"""
Pytest configuration and fixtures for Halvcycle tests.
"""

import os
import sys
from datetime import date
from pathlib import Path

import pytest

# Add src directory to Python path for imports
src_path = Path(__file__).parent.parent / "src"
sys.path.insert(0, str(src_path))

from analysis.windows import prices_from_samples  # noqa: E402
from utils.dates import DAY_MS, date_to_ms  # noqa: E402


def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line(
        "markers", "integration: marks tests as integration tests (actual API calls)"
    )


def pytest_addoption(parser):
    """Add command line option for integration tests."""
    parser.addoption(
        "--run-integration",
        action="store_true",
        default=False,
        help="Run integration tests that make actual API calls",
    )


def pytest_collection_modifyitems(config, items):
    """Skip integration tests unless --run-integration is specified."""
    if config.getoption("--run-integration"):
        # Enable integration tests
        os.environ["RUN_INTEGRATION_TESTS"] = "1"
        return

    # Skip integration tests by default
    skip_integration = pytest.mark.skip(reason="Use --run-integration to run API tests")
    for item in items:
        if "integration" in item.keywords:
            item.add_marker(skip_integration)


@pytest.fixture
def make_prices():
    """Factory for daily price series at UTC midnight, starting on a date."""

    def _make(start: date, values):
        start_ts = date_to_ms(start)
        return prices_from_samples(
            (start_ts + i * DAY_MS, value) for i, value in enumerate(values)
        )

    return _make
