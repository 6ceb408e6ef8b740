"""Per-network gas monitor.

Subscribes to new block headers where the network offers a websocket
endpoint and fetches fee data on every block; otherwise polls every
``poll_interval`` seconds. A failed fetch marks the network disconnected but
keeps the last-known fees on display.
"""

from dataclasses import dataclass, field
from typing import Any

from gastracker.chain.client import ChainClient, Subscription
from gastracker.clock import Clock, SystemClock
from gastracker.config import NetworkConfig
from gastracker.exceptions import MalformedUpstreamValue
from gastracker.market_data.candles import DEFAULT_CANDLE_INTERVAL_MS, aggregate_candles
from gastracker.market_data.feed import LiveFeed
from gastracker.market_data.history import HistoryBuffer
from gastracker.models import Candle, ChainSnapshot, FeeQuote, GasObservation, UpdateSink


@dataclass
class ChainState:
    """Mutable fee state for one network. Only its ChainMonitor writes it."""

    base_fee: int = 0
    priority_fee: int = 0
    connected: bool = False
    last_update: int = 0
    history: HistoryBuffer = field(default_factory=HistoryBuffer)


class ChainMonitor(LiveFeed):
    """Tracks one network's fees and emits GasObservations.

    Each successful fetch appends exactly one observation to the history and
    updates the state in the same synchronous step, then publishes a partial
    state update and the observation to the sink.

    Args:
        network: Static network description.
        client: Fee data access for this network.
        sink: Consumer of updates (may be None).
        poll_interval: Seconds between polling ticks in fallback mode.
        history_capacity: Maximum observations retained.
        clock: Timestamp source.
        subscribe: Attempt a block subscription before polling.
    """

    def __init__(
        self,
        network: NetworkConfig,
        client: ChainClient,
        sink: UpdateSink | None = None,
        poll_interval: float = 6.0,
        history_capacity: int = 100,
        clock: Clock | None = None,
        subscribe: bool = True,
    ) -> None:
        super().__init__(name=network.id, poll_interval=poll_interval, subscribe=subscribe)
        self._network = network
        self._client = client
        self._sink = sink
        self._clock = clock or SystemClock()
        self._chain_state = ChainState(history=HistoryBuffer(history_capacity))

    @property
    def network(self) -> NetworkConfig:
        return self._network

    def snapshot(self) -> ChainSnapshot:
        """Return a frozen copy of the current state and history."""
        state = self._chain_state
        return ChainSnapshot(
            network_id=self._network.id,
            base_fee=state.base_fee,
            priority_fee=state.priority_fee,
            connected=state.connected,
            last_update=state.last_update,
            state=self.state,
            history=state.history.snapshot(),
        )

    def get_candles(self, interval_ms: int = DEFAULT_CANDLE_INTERVAL_MS) -> list[Candle]:
        return aggregate_candles(self._chain_state.history.snapshot(), interval_ms)

    # ------------------------------------------------------------------
    # LiveFeed hooks
    # ------------------------------------------------------------------

    async def _open_subscription(self) -> Subscription:
        return await self._client.subscribe_blocks()

    async def _handle_event(self, event: Any, epoch: int) -> None:
        # The header only signals a new block; fee fields are re-read in a task
        # of their own, like a poll tick
        self._spawn(self._refresh(epoch))

    async def _fetch(self) -> FeeQuote:
        quote = await self._client.fetch_fees()
        for name in ("base_fee", "priority_fee"):
            value = getattr(quote, name)
            if isinstance(value, bool) or not isinstance(value, int) or value < 0:
                raise MalformedUpstreamValue(f"{self._network.id}: bad {name} {value!r}")
        return quote

    def _apply(self, quote: FeeQuote) -> None:
        observation = GasObservation(
            timestamp=self._clock.now_ms(),
            base_fee=quote.base_fee,
            priority_fee=quote.priority_fee,
            priority_fee_estimated=quote.priority_fee_estimated,
        )
        state = self._chain_state
        state.history.append(observation)
        state.base_fee = observation.base_fee
        state.priority_fee = observation.priority_fee
        state.connected = True
        state.last_update = observation.timestamp

        self._log.debug(
            "gas_observation",
            base_fee=observation.base_fee,
            priority_fee=observation.priority_fee,
            estimated=observation.priority_fee_estimated,
        )
        if self._sink is not None:
            self._publish(
                self._sink.on_gas_update,
                self._network.id,
                {
                    "base_fee": observation.base_fee,
                    "priority_fee": observation.priority_fee,
                    "connected": True,
                },
            )
            self._publish(self._sink.on_gas_observation, self._network.id, observation)

    def _on_fetch_failure(self, exc: Exception) -> None:
        was_connected = self._chain_state.connected
        self._chain_state.connected = False
        self._log.warning("gas_fetch_failed", error=str(exc), was_connected=was_connected)
        if self._sink is not None:
            self._publish(self._sink.on_gas_update, self._network.id, {"connected": False})
