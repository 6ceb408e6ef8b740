"""Shared data models for the gas tracker.

Fees are integer wei throughout the hot path. Anything fractional (native
currency amounts, fiat values) is Decimal. Never use float for money.
"""

from dataclasses import dataclass
from decimal import Decimal
from enum import Enum
from typing import Any, Protocol


class FeedState(str, Enum):
    """Transport state of a live feed."""

    DISCONNECTED = "disconnected"
    SUBSCRIBED = "subscribed"
    POLLING = "polling"
    STOPPED = "stopped"


@dataclass(frozen=True)
class FeeQuote:
    """Latest fee fields returned by a single upstream fetch."""

    base_fee: int
    priority_fee: int
    priority_fee_estimated: bool = False


@dataclass(frozen=True)
class GasObservation:
    """One fee reading for a network, stamped on arrival."""

    timestamp: int  # Unix milliseconds
    base_fee: int  # wei
    priority_fee: int  # wei
    priority_fee_estimated: bool = False

    @property
    def total_fee(self) -> int:
        return self.base_fee + self.priority_fee


@dataclass(frozen=True)
class ChainSnapshot:
    """Read-only copy of a network's ChainState."""

    network_id: str
    base_fee: int = 0
    priority_fee: int = 0
    connected: bool = False
    last_update: int = 0
    state: FeedState = FeedState.DISCONNECTED
    history: tuple[GasObservation, ...] = ()

    @property
    def total_fee(self) -> int:
        return self.base_fee + self.priority_fee


@dataclass(frozen=True)
class Candle:
    """OHLC summary of total fee over one time bucket."""

    time: int  # bucket start, Unix milliseconds
    open: int
    high: int
    low: int
    close: int


@dataclass
class SimulationInput:
    """User-entered simulation parameters, kept as entered.

    ``amount`` and ``gas_limit`` may be raw text from an input field; the
    engine parses them leniently.
    """

    amount: str | Decimal = "0.1"
    gas_limit: str | int = "21000"
    network: str = "ethereum"


@dataclass(frozen=True)
class SimulationResult:
    """Cost of the simulated transaction on one network."""

    network_id: str
    fee_cost_native: Decimal
    fee_cost_fiat: Decimal
    total_cost_native: Decimal
    total_cost_fiat: Decimal
    is_optimal: bool = False
    delta_to_optimal: Decimal = Decimal("0")  # fiat, versus the optimal entry
    is_target: bool = False


class UpdateSink(Protocol):
    """Consumer of feed updates (the UI state container)."""

    def on_gas_update(self, network_id: str, partial: dict[str, Any]) -> None: ...

    def on_price_update(self, fiat_price: Decimal) -> None: ...

    def on_gas_observation(self, network_id: str, observation: GasObservation) -> None: ...
