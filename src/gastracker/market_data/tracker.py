"""Gas tracker facade -- owns every chain monitor plus the price oracle.

``start_real_time_updates`` only schedules background tasks and returns.
``stop_real_time_updates`` halts every feed synchronously before waiting on
anything, so once it returns no further callback will fire.
"""

import asyncio
from collections.abc import Mapping
from decimal import Decimal

from gastracker.chain.client import ChainClient, PoolClient
from gastracker.clock import Clock, SystemClock
from gastracker.config import AppSettings, NetworkConfig
from gastracker.logging import get_logger
from gastracker.market_data.chain_monitor import ChainMonitor
from gastracker.market_data.feed import LiveFeed
from gastracker.market_data.price_oracle import PriceOracle
from gastracker.models import Candle, ChainSnapshot, SimulationInput, SimulationResult, UpdateSink
from gastracker.simulation.engine import SimulationEngine

logger = get_logger(__name__)


class GasTracker:
    """Runs one ChainMonitor per configured network and one PriceOracle.

    Args:
        settings: Application settings (networks, monitor, oracle, simulation).
        chain_clients: Client per network id; every configured network needs one.
        pool_client: Pool access for the oracle. None disables the oracle and
            the configured fallback price is used.
        sink: Consumer of all updates.
        clock: Timestamp source shared by all monitors.
    """

    def __init__(
        self,
        settings: AppSettings,
        chain_clients: Mapping[str, ChainClient],
        pool_client: PoolClient | None = None,
        sink: UpdateSink | None = None,
        clock: Clock | None = None,
    ) -> None:
        self._settings = settings
        self._chain_clients = dict(chain_clients)
        self._pool_client = pool_client
        self._clock = clock or SystemClock()
        self._engine = SimulationEngine(settings.simulation)
        self._running = False

        self._monitors: dict[str, ChainMonitor] = {}
        for network in settings.networks:
            client = self._chain_clients.get(network.id)
            if client is None:
                raise ValueError(f"No chain client configured for network {network.id!r}")
            self._monitors[network.id] = ChainMonitor(
                network=network,
                client=client,
                sink=sink,
                poll_interval=settings.monitor.poll_interval,
                history_capacity=settings.monitor.history_capacity,
                clock=self._clock,
            )

        self._oracle: PriceOracle | None = None
        if pool_client is not None:
            self._oracle = PriceOracle(pool_client, settings.oracle, sink=sink)

    @property
    def monitors(self) -> dict[str, ChainMonitor]:
        return dict(self._monitors)

    @property
    def oracle(self) -> PriceOracle | None:
        return self._oracle

    @property
    def is_running(self) -> bool:
        return self._running

    @property
    def networks(self) -> list[NetworkConfig]:
        return [monitor.network for monitor in self._monitors.values()]

    def _feeds(self) -> list[LiveFeed]:
        feeds: list[LiveFeed] = list(self._monitors.values())
        if self._oracle is not None:
            feeds.append(self._oracle)
        return feeds

    async def start_real_time_updates(self) -> None:
        """Start every monitor and the oracle in the background."""
        if self._running:
            logger.warning("gas_tracker_already_running")
            return
        self._running = True
        for feed in self._feeds():
            await feed.start()
        logger.info(
            "gas_tracker_started",
            networks=list(self._monitors),
            oracle=self._oracle is not None,
        )

    async def stop_real_time_updates(self) -> None:
        """Stop every feed. Idempotent.

        All feeds are halted before the first await, then their cancelled
        tasks are reaped. In-flight requests are abandoned, not awaited to
        completion.
        """
        tasks = [task for feed in self._feeds() for task in feed.halt()]
        self._running = False
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
            logger.info("gas_tracker_stopped", cancelled_tasks=len(tasks))

    async def close(self) -> None:
        """Stop updates and release every client's transport."""
        await self.stop_real_time_updates()
        clients: list[ChainClient | PoolClient] = list(self._chain_clients.values())
        if self._pool_client is not None:
            clients.append(self._pool_client)
        for client in clients:
            try:
                await client.close()
            except Exception:
                logger.warning("client_close_failed", exc_info=True)

    # ------------------------------------------------------------------
    # Read side
    # ------------------------------------------------------------------

    @property
    def fiat_price(self) -> Decimal:
        if self._oracle is None:
            return self._settings.oracle.fallback_price
        return self._oracle.price

    def get_chain_snapshot(self, network_id: str) -> ChainSnapshot | None:
        monitor = self._monitors.get(network_id)
        return monitor.snapshot() if monitor is not None else None

    def get_chain_snapshots(self) -> dict[str, ChainSnapshot]:
        return {network_id: m.snapshot() for network_id, m in self._monitors.items()}

    def get_candles(self, network_id: str, interval_ms: int | None = None) -> list[Candle]:
        """Aggregate a network's history into OHLC candles.

        Raises:
            KeyError: unknown network id.
        """
        monitor = self._monitors[network_id]
        return monitor.get_candles(interval_ms or self._settings.monitor.candle_interval_ms)

    def simulate(self, sim_input: SimulationInput) -> list[SimulationResult]:
        """Rank networks for ``sim_input`` against current fees and price."""
        return self._engine.simulate(self.get_chain_snapshots(), self.fiat_price, sim_input)
