"""JSON API endpoints: networks, live fees, candles, fiat price and simulation."""

from __future__ import annotations

from typing import Any

import structlog
from fastapi import APIRouter, Query, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from gastracker.models import FeedState, SimulationResult
from gastracker.simulation.engine import cheapest
from gastracker.units import format_gwei, format_native, format_usd, wei_to_gwei

log = structlog.get_logger(__name__)

router = APIRouter()


class SimulationRequest(BaseModel):
    """Partial simulation input; omitted fields keep their current value."""

    amount: str | None = None
    gas_limit: str | None = None
    network: str | None = None


def _result_to_dict(result: SimulationResult) -> dict[str, Any]:
    return {
        "network": result.network_id,
        "fee_cost_native": str(result.fee_cost_native),
        "fee_cost_fiat": str(result.fee_cost_fiat),
        "total_cost_native": str(result.total_cost_native),
        "total_cost_fiat": str(result.total_cost_fiat),
        "delta_to_optimal": str(result.delta_to_optimal),
        "is_optimal": result.is_optimal,
        "is_target": result.is_target,
        "display": {
            "fee_cost_native": format_native(result.fee_cost_native),
            "fee_cost_fiat": format_usd(result.fee_cost_fiat),
            "total_cost_fiat": format_usd(result.total_cost_fiat),
            "delta_to_optimal": format_usd(result.delta_to_optimal),
        },
    }


def _simulation_payload(request: Request) -> dict[str, Any]:
    store = request.app.state.store
    sim_input = store.simulation_input
    results = store.simulation_results
    best = cheapest(results)
    return {
        "input": {
            "amount": str(sim_input.amount),
            "gas_limit": str(sim_input.gas_limit),
            "network": sim_input.network,
        },
        "fiat_price": str(store.fiat_price),
        "cheapest": best.network_id if best is not None else None,
        "results": [_result_to_dict(r) for r in results],
    }


@router.get("/networks")
async def get_networks(request: Request) -> JSONResponse:
    """Static network configuration for display."""
    settings = request.app.state.settings
    result = [
        {
            "id": network.id,
            "name": network.name,
            "currency": network.currency,
            "color": settings.chain_color(network.id),
            "icon": network.icon,
        }
        for network in settings.networks
    ]
    return JSONResponse(content=result)


@router.get("/chains")
async def get_chains(request: Request) -> JSONResponse:
    """Current fee state per network, in gwei."""
    store = request.app.state.store
    tracker = request.app.state.tracker

    result = []
    for network_id, chain in store.get_chains().items():
        feed_state = FeedState.DISCONNECTED
        if tracker is not None:
            snapshot = tracker.get_chain_snapshot(network_id)
            if snapshot is not None:
                feed_state = snapshot.state
        latest = chain.history[-1] if chain.history else None
        result.append({
            "network": network_id,
            "base_fee_gwei": str(wei_to_gwei(chain.base_fee)),
            "priority_fee_gwei": str(wei_to_gwei(chain.priority_fee)),
            "total_fee_gwei": format_gwei(chain.total_fee),
            "priority_fee_estimated": latest.priority_fee_estimated if latest else False,
            "connected": chain.connected,
            "last_update": chain.last_update,
            "feed_state": feed_state.value,
            "history_size": len(chain.history),
        })
    return JSONResponse(content=result)


@router.get("/chains/{network_id}/candles")
async def get_candles(
    request: Request,
    network_id: str,
    interval_minutes: int | None = Query(default=None, ge=1),
) -> JSONResponse:
    """OHLC candles of total fee (gwei) for one network."""
    store = request.app.state.store
    settings = request.app.state.settings
    if network_id not in store.network_ids:
        return JSONResponse(status_code=404, content={"error": f"unknown network {network_id}"})

    minutes = interval_minutes or settings.monitor.candle_interval_minutes
    candles = store.get_candles(network_id, minutes * 60 * 1000)
    result = [
        {
            "time": candle.time,
            "open": str(wei_to_gwei(candle.open)),
            "high": str(wei_to_gwei(candle.high)),
            "low": str(wei_to_gwei(candle.low)),
            "close": str(wei_to_gwei(candle.close)),
        }
        for candle in candles
    ]
    return JSONResponse(content=result)


@router.get("/price")
async def get_price(request: Request) -> JSONResponse:
    """Current fiat reference price and whether it came from a live read."""
    store = request.app.state.store
    tracker = request.app.state.tracker
    oracle = tracker.oracle if tracker is not None else None
    return JSONResponse(content={
        "price": str(store.fiat_price),
        "display": format_usd(store.fiat_price),
        "live": bool(oracle is not None and oracle.has_live_price),
        "feed_state": oracle.state.value if oracle is not None else None,
    })


@router.get("/simulation")
async def get_simulation(request: Request) -> JSONResponse:
    """Current simulation input and ranked results."""
    return JSONResponse(content=_simulation_payload(request))


@router.post("/simulation")
async def update_simulation(request: Request, body: SimulationRequest) -> JSONResponse:
    """Change simulation input and return the re-ranked results.

    Invalid amounts or gas limits are accepted and defaulted by the engine.
    """
    store = request.app.state.store
    changes = body.model_dump(exclude_none=True)
    if changes:
        store.update_simulation_input(**changes)
        log.debug("simulation_input_updated", **changes)
    return JSONResponse(content=_simulation_payload(request))

