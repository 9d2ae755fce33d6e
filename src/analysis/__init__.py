"""
Analysis modules for halving cycle statistics.
"""

from .cycles import (
    CycleAnalysis,
    CycleAnalysisRunner,
    CycleAnalyzer,
    PostHalvingStats,
    PreHalvingStats,
    percentage_change,
)
from .events import HalvingEvent, load_halving_events
from .windows import CycleWindows, WindowExtractor, prices_from_samples, select_cycle_prices

__all__ = [
    "CycleAnalysis",
    "CycleAnalysisRunner",
    "CycleAnalyzer",
    "CycleWindows",
    "HalvingEvent",
    "PostHalvingStats",
    "PreHalvingStats",
    "WindowExtractor",
    "load_halving_events",
    "percentage_change",
    "prices_from_samples",
    "select_cycle_prices",
]
