"""Abstract upstream client interfaces.

Feeds depend only on these interfaces; web3/websocket details stay in the
concrete implementations.
"""

from abc import ABC, abstractmethod
from collections.abc import AsyncIterator
from typing import Any

from gastracker.models import FeeQuote


class Subscription(ABC):
    """An established push subscription yielding raw upstream events."""

    @abstractmethod
    def __aiter__(self) -> AsyncIterator[Any]: ...

    @abstractmethod
    async def close(self) -> None:
        """Tear down the subscription. Safe to call more than once."""
        ...


class ChainClient(ABC):
    """Fee data access for a single network."""

    @abstractmethod
    async def fetch_fees(self) -> FeeQuote:
        """Fetch latest base and priority fee in wei.

        Raises:
            FetchError: the request failed or returned an unusable value.
        """
        ...

    @abstractmethod
    async def subscribe_blocks(self) -> Subscription:
        """Open a new-block subscription.

        Raises:
            TransportUnavailable: push delivery cannot be established.
        """
        ...

    @abstractmethod
    async def close(self) -> None:
        """Release transport resources."""
        ...


class PoolClient(ABC):
    """Price access for a single liquidity pool."""

    @abstractmethod
    async def fetch_sqrt_price_x96(self) -> int:
        """Read the pool's current sqrtPriceX96.

        Raises:
            FetchError: the request failed or returned an unusable value.
        """
        ...

    @abstractmethod
    async def subscribe_prices(self) -> Subscription:
        """Open a subscription yielding sqrtPriceX96 for each price-moving event.

        Raises:
            TransportUnavailable: push delivery cannot be established.
        """
        ...

    @abstractmethod
    async def close(self) -> None:
        """Release transport resources."""
        ...
