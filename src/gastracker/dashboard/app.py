"""FastAPI dashboard application factory."""

from __future__ import annotations

from typing import Any

from fastapi import FastAPI

from gastracker.config import AppSettings
from gastracker.dashboard.routes import api
from gastracker.store import GasStore


def create_dashboard_app(
    settings: AppSettings,
    store: GasStore,
    tracker: Any = None,
    lifespan: Any = None,
) -> FastAPI:
    """Create and configure the dashboard application.

    Args:
        settings: Application settings (networks, candle width).
        store: State container the routes read from.
        tracker: Optional GasTracker, used for feed state and oracle status.
        lifespan: Optional async context manager for startup/shutdown.

    Returns:
        Configured FastAPI application with the JSON API under ``/api``.
    """
    app = FastAPI(title="Multi-Chain Gas Tracker", lifespan=lifespan)
    app.state.settings = settings
    app.state.store = store
    app.state.tracker = tracker

    app.include_router(api.router, prefix="/api")
    return app
