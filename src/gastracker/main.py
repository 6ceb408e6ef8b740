"""Entry point for the multi-chain gas tracker.

Wires all components together and runs them on a single asyncio event loop.
When the dashboard is enabled (default) the tracker starts and stops inside
FastAPI's lifespan and uvicorn serves the JSON API; otherwise the tracker
runs headless until SIGINT/SIGTERM.

Component wiring order (in _build_components):
1. AppSettings (configuration)
2. Logging setup
3. GasStore (UI state container, receives all updates)
4. Web3ChainClient per network
5. UniswapV3PoolClient (fiat price source)
6. GasTracker (chain monitors + price oracle)
"""

import asyncio
import signal
from contextlib import asynccontextmanager
from typing import Any

import uvicorn
from fastapi import FastAPI

from gastracker.chain.web3_client import UniswapV3PoolClient, Web3ChainClient
from gastracker.config import AppSettings
from gastracker.logging import get_logger, setup_logging
from gastracker.market_data.tracker import GasTracker
from gastracker.store import GasStore


def _build_components(settings: AppSettings) -> dict[str, Any]:
    """Build the store, upstream clients and tracker from settings.

    Does NOT start any feed -- that happens in the lifespan (dashboard mode)
    or run() (headless mode).
    """
    store = GasStore(
        [network.id for network in settings.networks],
        settings=settings.simulation,
        history_capacity=settings.monitor.history_capacity,
    )

    chain_clients = {
        network.id: Web3ChainClient(network, settings.monitor)
        for network in settings.networks
    }
    pool_client = UniswapV3PoolClient(
        settings.oracle, subscribe_timeout=settings.monitor.subscribe_timeout
    )

    tracker = GasTracker(
        settings=settings,
        chain_clients=chain_clients,
        pool_client=pool_client,
        sink=store,
    )
    return {"store": store, "tracker": tracker}


def _setup_signal_handlers(stop_event: asyncio.Event) -> None:
    """Set ``stop_event`` on SIGINT/SIGTERM. Needs a running event loop."""
    logger = get_logger("gastracker.main")
    loop = asyncio.get_running_loop()

    def _graceful_handler() -> None:
        logger.info("graceful_shutdown_signal")
        stop_event.set()

    for sig in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(sig, _graceful_handler)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Start the tracker with the server and shut it down with it."""
    logger = get_logger("gastracker.main")
    tracker: GasTracker = app.state.tracker

    await tracker.start_real_time_updates()
    logger.info("lifespan_started", networks=[n.id for n in tracker.networks])

    yield

    await tracker.close()
    logger.info("gas_tracker_shutdown_complete")


async def run() -> None:
    """Run the gas tracker, with or without the dashboard."""
    # 1. Load settings
    settings = AppSettings()

    # 2. Setup logging
    setup_logging(settings.log_level, settings.log_format)
    logger = get_logger("gastracker.main")

    # 3-6. Build components
    components = _build_components(settings)
    tracker: GasTracker = components["tracker"]

    if settings.dashboard.enabled:
        from gastracker.dashboard.app import create_dashboard_app

        app = create_dashboard_app(
            settings=settings,
            store=components["store"],
            tracker=tracker,
            lifespan=lifespan,
        )

        logger.info(
            "starting_with_dashboard",
            host=settings.dashboard.host,
            port=settings.dashboard.port,
        )

        config = uvicorn.Config(
            app,
            host=settings.dashboard.host,
            port=settings.dashboard.port,
            log_level="warning",
        )
        server = uvicorn.Server(config)
        await server.serve()
        return

    stop_event = asyncio.Event()
    _setup_signal_handlers(stop_event)
    logger.info("starting_without_dashboard", networks=[n.id for n in settings.networks])

    try:
        await tracker.start_real_time_updates()
        await stop_event.wait()
    finally:
        await tracker.close()
        logger.info("gas_tracker_shutdown_complete")


def main() -> None:
    """Synchronous entry point."""
    asyncio.run(run())


if __name__ == "__main__":
    main()
