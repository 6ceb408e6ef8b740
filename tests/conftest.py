"""Shared test fixtures for the gas tracker."""

import asyncio
from collections.abc import Awaitable, Callable, Iterable
from decimal import Decimal
from typing import Any

import pytest

from gastracker.chain.client import Subscription
from gastracker.config import (
    AppSettings,
    MonitorSettings,
    NetworkConfig,
    OracleSettings,
    SimulationSettings,
)
from gastracker.models import GasObservation

GWEI = 10**9


class FakeClock:
    """Manually advanced clock."""

    def __init__(self, start_ms: int = 1_700_000_000_000) -> None:
        self.now = start_ms

    def now_ms(self) -> int:
        return self.now

    def advance(self, ms: int) -> None:
        self.now += ms


class RecordingSink:
    """UpdateSink that records every callback."""

    def __init__(self) -> None:
        self.gas_updates: list[tuple[str, dict[str, Any]]] = []
        self.prices: list[Decimal] = []
        self.observations: list[tuple[str, GasObservation]] = []

    def on_gas_update(self, network_id: str, partial: dict[str, Any]) -> None:
        self.gas_updates.append((network_id, dict(partial)))

    def on_price_update(self, fiat_price: Decimal) -> None:
        self.prices.append(fiat_price)

    def on_gas_observation(self, network_id: str, observation: GasObservation) -> None:
        self.observations.append((network_id, observation))


class FakeSubscription(Subscription):
    """Scripted push subscription.

    Yields ``events`` in order, then either blocks until cancelled
    (``hold_open``), raises ``error``, or ends.
    """

    def __init__(
        self,
        events: Iterable[Any] = (),
        error: Exception | None = None,
        hold_open: bool = False,
    ) -> None:
        self.events = list(events)
        self.error = error
        self.hold_open = hold_open
        self.closed = False

    async def __aiter__(self):
        for event in self.events:
            yield event
        if self.hold_open:
            await asyncio.Event().wait()
        if self.error is not None:
            raise self.error

    async def close(self) -> None:
        self.closed = True


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def sink() -> RecordingSink:
    return RecordingSink()


@pytest.fixture
def make_subscription() -> Callable[..., FakeSubscription]:
    return FakeSubscription


@pytest.fixture
def wait_until() -> Callable[..., Awaitable[None]]:
    """Return an async helper that polls a predicate until true or times out."""

    async def _wait(predicate: Callable[[], bool], timeout: float = 2.0) -> None:
        loop = asyncio.get_running_loop()
        deadline = loop.time() + timeout
        while not predicate():
            if loop.time() > deadline:
                raise AssertionError("condition not met before timeout")
            await asyncio.sleep(0.005)

    return _wait


@pytest.fixture
def alpha_network() -> NetworkConfig:
    return NetworkConfig(
        id="alpha",
        name="Alpha",
        currency="ETH",
        rpc_url="http://alpha.invalid",
        ws_url="ws://alpha.invalid",
        color="#111111",
    )


@pytest.fixture
def beta_network() -> NetworkConfig:
    return NetworkConfig(
        id="beta",
        name="Beta",
        currency="ETH",
        rpc_url="http://beta.invalid",
        ws_url="",
    )


@pytest.fixture
def mock_settings(alpha_network: NetworkConfig, beta_network: NetworkConfig) -> AppSettings:
    """AppSettings with two fake networks, fast polling and unit-decimal pool."""
    return AppSettings(
        log_level="DEBUG",
        networks=[alpha_network, beta_network],
        monitor=MonitorSettings(poll_interval=0.02, history_capacity=100),
        oracle=OracleSettings(
            poll_interval=0.02,
            decimals_asset0=0,
            decimals_asset1=0,
            fallback_price=Decimal("2000"),
        ),
        simulation=SimulationSettings(),
    )
