"""
Halvcycle - Bitcoin price behaviour around halving events.

This package provides tools to:
- Retrieve the daily BTC/USD price history from CoinGecko
- Measure pre-halving gains, post-halving peaks and the first 30% correction
- Render price charts and a per-cycle HTML report
"""

__app_name__ = "halvcycle"
