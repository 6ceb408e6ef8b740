"""In-memory UI state container fed by the tracker's update callbacks.

Implements the UpdateSink protocol: partial gas updates are merged into the
per-network view and stamped with the store's own clock, observations are
appended to a bounded per-network buffer, and simulation results are rebuilt
in full after every change to fees, price or simulation input.
"""

from collections import deque
from collections.abc import Iterable
from dataclasses import dataclass, field, replace
from decimal import Decimal
from typing import Any

from gastracker.clock import Clock, SystemClock
from gastracker.config import SimulationSettings
from gastracker.logging import get_logger
from gastracker.market_data.candles import DEFAULT_CANDLE_INTERVAL_MS, aggregate_candles
from gastracker.models import (
    Candle,
    ChainSnapshot,
    GasObservation,
    SimulationInput,
    SimulationResult,
)
from gastracker.simulation.engine import SimulationEngine

logger = get_logger(__name__)

STORE_HISTORY_CAPACITY = 100

_MERGEABLE_FIELDS = frozenset({"base_fee", "priority_fee", "connected"})


@dataclass
class ChainView:
    """Per-network state as the UI sees it."""

    base_fee: int = 0
    priority_fee: int = 0
    connected: bool = False
    last_update: int = 0
    history: deque[GasObservation] = field(
        default_factory=lambda: deque(maxlen=STORE_HISTORY_CAPACITY)
    )


class GasStore:
    """Shared state for presentation consumers (dashboard, CLI).

    Args:
        network_ids: Networks to pre-register, in display order.
        settings: Simulation defaults for the initial input.
        clock: Source of the store's update timestamps.
        history_capacity: Observations kept per network.
    """

    def __init__(
        self,
        network_ids: Iterable[str],
        settings: SimulationSettings | None = None,
        clock: Clock | None = None,
        history_capacity: int = STORE_HISTORY_CAPACITY,
    ) -> None:
        self._settings = settings or SimulationSettings()
        self._clock = clock or SystemClock()
        self._history_capacity = history_capacity
        self._engine = SimulationEngine(self._settings)
        self._chains: dict[str, ChainView] = {
            network_id: self._new_view() for network_id in network_ids
        }
        self._fiat_price = Decimal("0")
        self._simulation_input = SimulationInput(
            amount=self._settings.default_amount,
            gas_limit=str(self._settings.default_gas_limit),
            network=self._settings.default_network,
        )
        self._simulation_results: list[SimulationResult] = []
        self._recalculate()

    def _new_view(self) -> ChainView:
        return ChainView(history=deque(maxlen=self._history_capacity))

    def _view(self, network_id: str) -> ChainView:
        view = self._chains.get(network_id)
        if view is None:
            logger.info("store_network_registered", network=network_id)
            view = self._chains[network_id] = self._new_view()
        return view

    # ------------------------------------------------------------------
    # UpdateSink
    # ------------------------------------------------------------------

    def on_gas_update(self, network_id: str, partial: dict[str, Any]) -> None:
        """Merge a partial state update; fields not present are kept."""
        view = self._view(network_id)
        for key, value in partial.items():
            if key not in _MERGEABLE_FIELDS:
                logger.warning("store_unknown_field_ignored", network=network_id, field=key)
                continue
            setattr(view, key, value)
        view.last_update = self._clock.now_ms()
        self._recalculate()

    def on_price_update(self, fiat_price: Decimal) -> None:
        self._fiat_price = fiat_price
        self._recalculate()

    def on_gas_observation(self, network_id: str, observation: GasObservation) -> None:
        """Append to the bounded history and mirror the fees into current state."""
        view = self._view(network_id)
        view.history.append(observation)
        view.base_fee = observation.base_fee
        view.priority_fee = observation.priority_fee
        self._recalculate()

    # ------------------------------------------------------------------
    # Simulation
    # ------------------------------------------------------------------

    @property
    def simulation_input(self) -> SimulationInput:
        return replace(self._simulation_input)

    @property
    def simulation_results(self) -> list[SimulationResult]:
        return list(self._simulation_results)

    def set_simulation_input(self, sim_input: SimulationInput) -> list[SimulationResult]:
        self._simulation_input = replace(sim_input)
        self._recalculate()
        return self.simulation_results

    def update_simulation_input(self, **changes: Any) -> list[SimulationResult]:
        """Change individual input fields, e.g. ``update_simulation_input(amount="1")``."""
        return self.set_simulation_input(replace(self._simulation_input, **changes))

    def _recalculate(self) -> None:
        self._simulation_results = self._engine.simulate(
            self.get_chains(), self._fiat_price, self._simulation_input
        )

    # ------------------------------------------------------------------
    # Read side
    # ------------------------------------------------------------------

    @property
    def fiat_price(self) -> Decimal:
        return self._fiat_price

    @property
    def network_ids(self) -> list[str]:
        return list(self._chains)

    def get_chain(self, network_id: str) -> ChainSnapshot | None:
        view = self._chains.get(network_id)
        if view is None:
            return None
        return ChainSnapshot(
            network_id=network_id,
            base_fee=view.base_fee,
            priority_fee=view.priority_fee,
            connected=view.connected,
            last_update=view.last_update,
            history=tuple(view.history),
        )

    def get_chains(self) -> dict[str, ChainSnapshot]:
        return {
            network_id: snapshot
            for network_id in self._chains
            if (snapshot := self.get_chain(network_id)) is not None
        }

    def get_candles(
        self, network_id: str, interval_ms: int = DEFAULT_CANDLE_INTERVAL_MS
    ) -> list[Candle]:
        """Candles for a network's stored history; unknown networks give none."""
        view = self._chains.get(network_id)
        if view is None:
            return []
        return aggregate_candles(tuple(view.history), interval_ms)
