"""OHLC aggregation of gas history for charting.

Each observation's ``total_fee`` is assigned to the bucket starting at
``timestamp // interval * interval``. Within a bucket:
  open  = first value (after a stable sort by timestamp)
  high  = max value
  low   = min value
  close = last value
"""

from collections.abc import Iterable

from gastracker.models import Candle, GasObservation

DEFAULT_CANDLE_INTERVAL_MS = 15 * 60 * 1000


def bucket_start(timestamp: int, interval_ms: int) -> int:
    """Return the start of the bucket containing ``timestamp``."""
    return (timestamp // interval_ms) * interval_ms


def aggregate_candles(
    history: Iterable[GasObservation],
    interval_ms: int = DEFAULT_CANDLE_INTERVAL_MS,
) -> list[Candle]:
    """Bucket observations into fixed-width OHLC candles.

    The input is never mutated. Ties on timestamp keep their arrival order,
    so repeated calls on the same history give identical output.

    Args:
        history: Observations in any order.
        interval_ms: Bucket width in milliseconds.

    Returns:
        Candles ordered by bucket start. Empty input gives an empty list.
    """
    if interval_ms <= 0:
        raise ValueError(f"interval_ms must be positive, got {interval_ms}")

    ordered = sorted(history, key=lambda obs: obs.timestamp)
    candles: list[Candle] = []
    if not ordered:
        return candles

    first = ordered[0]
    key = bucket_start(first.timestamp, interval_ms)
    open_ = high = low = close = first.total_fee

    for obs in ordered[1:]:
        value = obs.total_fee
        obs_key = bucket_start(obs.timestamp, interval_ms)
        if obs_key != key:
            candles.append(Candle(time=key, open=open_, high=high, low=low, close=close))
            key = obs_key
            open_ = high = low = close = value
            continue
        high = max(high, value)
        low = min(low, value)
        close = value

    candles.append(Candle(time=key, open=open_, high=high, low=low, close=close))
    return candles
