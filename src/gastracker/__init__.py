"""Multi-chain gas tracker: live fee monitoring, pool-derived fiat price, cost simulation."""

__version__ = "0.1.0"
