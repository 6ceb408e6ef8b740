"""Market data layer -- gas monitors, pool price oracle, history and candles."""

from gastracker.market_data.candles import aggregate_candles
from gastracker.market_data.chain_monitor import ChainMonitor, ChainState
from gastracker.market_data.feed import LiveFeed
from gastracker.market_data.history import HistoryBuffer
from gastracker.market_data.price_oracle import PriceOracle, sqrt_price_x96_to_price
from gastracker.market_data.tracker import GasTracker

__all__ = [
    "ChainMonitor",
    "ChainState",
    "GasTracker",
    "HistoryBuffer",
    "LiveFeed",
    "PriceOracle",
    "aggregate_candles",
    "sqrt_price_x96_to_price",
]
