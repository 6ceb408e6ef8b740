"""Fiat reference price from a concentrated-liquidity pool.

The pool stores ``sqrtPriceX96 = sqrt(price) * 2**96``. Conversion stays in
integers until the last step:

  raw   = sqrtPriceX96**2 * 10**decimals_asset1 // 2**192
  price = raw / 10**decimals_asset0          (Decimal)

Python ints are arbitrary precision, so squaring a uint160 cannot overflow.
"""

from decimal import Decimal
from typing import Any

from gastracker.chain.client import PoolClient, Subscription
from gastracker.config import OracleSettings
from gastracker.exceptions import MalformedUpstreamValue
from gastracker.market_data.feed import LiveFeed
from gastracker.models import UpdateSink


Q96 = 2**96
Q192 = Q96 * Q96


def sqrt_price_x96_to_price(
    sqrt_price_x96: int,
    decimals_asset0: int,
    decimals_asset1: int,
) -> Decimal:
    """Convert a pool's sqrtPriceX96 into a human-scaled price.

    Monotonic non-decreasing in ``sqrt_price_x96``.

    Raises:
        MalformedUpstreamValue: negative or non-integer input.
    """
    if isinstance(sqrt_price_x96, bool) or not isinstance(sqrt_price_x96, int):
        raise MalformedUpstreamValue(f"sqrtPriceX96 must be an int, got {sqrt_price_x96!r}")
    if sqrt_price_x96 < 0:
        raise MalformedUpstreamValue(f"sqrtPriceX96 must be >= 0, got {sqrt_price_x96}")
    raw = (sqrt_price_x96 * sqrt_price_x96 * 10**decimals_asset1) // Q192
    return Decimal(raw) / (Decimal(10) ** decimals_asset0)


class PriceOracle(LiveFeed):
    """Publishes the pool-derived fiat price to ``sink.on_price_update``.

    Push mode listens to the pool's Swap events, each carrying the post-swap
    sqrtPriceX96. Polling mode reads ``slot0()`` every ``poll_interval``
    seconds. A failed poll republishes the last good price, or
    ``fallback_price`` if none has been seen yet.
    """

    def __init__(
        self,
        pool: PoolClient,
        settings: OracleSettings,
        sink: UpdateSink | None = None,
    ) -> None:
        super().__init__(
            name="price_oracle",
            poll_interval=settings.poll_interval,
            subscribe=settings.subscribe,
        )
        self._pool = pool
        self._settings = settings
        self._sink = sink
        self._last_good: Decimal | None = None
        self._price: Decimal | None = None

    @property
    def price(self) -> Decimal:
        """Most recently published price, or the fallback before any."""
        return self._price if self._price is not None else self._settings.fallback_price

    @property
    def last_good_price(self) -> Decimal | None:
        return self._last_good

    @property
    def has_live_price(self) -> bool:
        return self._last_good is not None and self._price == self._last_good

    def convert(self, sqrt_price_x96: int) -> Decimal:
        """Convert using this pool's configured token decimals."""
        price = sqrt_price_x96_to_price(
            sqrt_price_x96,
            self._settings.decimals_asset0,
            self._settings.decimals_asset1,
        )
        if price <= 0:
            raise MalformedUpstreamValue(f"derived price {price} is not positive")
        return price

    # ------------------------------------------------------------------
    # LiveFeed hooks
    # ------------------------------------------------------------------

    async def _open_subscription(self) -> Subscription:
        return await self._pool.subscribe_prices()

    async def _fetch(self) -> Decimal:
        return self.convert(await self._pool.fetch_sqrt_price_x96())

    async def _handle_event(self, event: Any, epoch: int) -> None:
        try:
            price = self.convert(event)
        except MalformedUpstreamValue as exc:
            self._log.warning("swap_price_rejected", error=str(exc))
            return
        if self._is_current(epoch):
            self._apply(price)

    def _apply(self, price: Decimal) -> None:
        self._last_good = price
        self._set_price(price)

    def _on_fetch_failure(self, exc: Exception) -> None:
        fallback = self._last_good if self._last_good is not None else self._settings.fallback_price
        self._log.warning(
            "price_fetch_failed",
            error=str(exc),
            published=fallback,
            last_good=self._last_good is not None,
        )
        self._set_price(fallback)

    def _set_price(self, price: Decimal) -> None:
        self._price = price
        self._log.debug("fiat_price_published", price=price)
        if self._sink is not None:
            self._publish(self._sink.on_price_update, price)
