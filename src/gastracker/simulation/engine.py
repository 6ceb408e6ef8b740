"""Multi-network transaction cost comparison.

For each network:
  fee_rate          = base_fee + priority_fee                  (wei per gas)
  fee_cost_native   = fee_rate * gas_limit / 10**18
  fee_cost_fiat     = fee_cost_native * fiat_price
  total_cost_native = fee_cost_native + amount
  total_cost_fiat   = total_cost_native * fiat_price

Results are rebuilt from scratch on every call and ranked by
``total_cost_fiat`` ascending. The cheapest entry is flagged optimal; every
entry carries its fiat delta versus the cheapest.

Simulation is exploratory: malformed user input falls back to defaults and
never raises.
"""

from collections.abc import Mapping
from dataclasses import replace
from decimal import Decimal, InvalidOperation

from gastracker.config import SimulationSettings
from gastracker.models import ChainSnapshot, SimulationInput, SimulationResult
from gastracker.units import wei_to_native

_ZERO = Decimal("0")

# Amounts at or above 10**30 native units are treated as input errors
MAX_AMOUNT_EXPONENT = 29


class SimulationEngine:
    """Ranks tracked networks by the fiat cost of a simulated transaction.

    Args:
        settings: Provides the default gas limit used when the entered one
            cannot be parsed.
    """

    def __init__(self, settings: SimulationSettings | None = None) -> None:
        self._settings = settings or SimulationSettings()

    @property
    def default_gas_limit(self) -> int:
        return self._settings.default_gas_limit

    @staticmethod
    def parse_amount(raw: str | Decimal | int | float | None) -> Decimal:
        """Parse a transfer amount; anything unusable becomes zero."""
        if raw is None or isinstance(raw, bool):
            return _ZERO
        try:
            amount = Decimal(str(raw).strip())
        except (InvalidOperation, ValueError):
            return _ZERO
        if not amount.is_finite() or amount < 0:
            return _ZERO
        if amount and amount.adjusted() > MAX_AMOUNT_EXPONENT:
            return _ZERO
        return amount

    def parse_gas_limit(self, raw: str | int | None) -> int:
        """Parse a gas limit; unusable or non-positive input gives the default."""
        if raw is None or isinstance(raw, bool):
            return self.default_gas_limit
        try:
            gas_limit = int(str(raw).strip())
        except ValueError:
            return self.default_gas_limit
        if gas_limit <= 0:
            return self.default_gas_limit
        return gas_limit

    def simulate(
        self,
        snapshots: Mapping[str, ChainSnapshot],
        fiat_price: Decimal | None,
        sim_input: SimulationInput,
    ) -> list[SimulationResult]:
        """Compute and rank the cost of ``sim_input`` on every network.

        Args:
            snapshots: Current fee state keyed by network id.
            fiat_price: Fiat value of one native unit. None or negative is
                treated as zero.
            sim_input: Amount, gas limit and target network as entered.

        Returns:
            Results sorted by total fiat cost ascending (stable on ties,
            keeping ``snapshots`` order).
        """
        price = fiat_price if fiat_price is not None and fiat_price > 0 else _ZERO
        amount = self.parse_amount(sim_input.amount)
        gas_limit = self.parse_gas_limit(sim_input.gas_limit)

        results: list[SimulationResult] = []
        for network_id, snapshot in snapshots.items():
            fee_rate = snapshot.base_fee + snapshot.priority_fee
            fee_cost_native = wei_to_native(fee_rate * gas_limit)
            total_cost_native = fee_cost_native + amount
            results.append(
                SimulationResult(
                    network_id=network_id,
                    fee_cost_native=fee_cost_native,
                    fee_cost_fiat=fee_cost_native * price,
                    total_cost_native=total_cost_native,
                    total_cost_fiat=total_cost_native * price,
                    is_target=network_id == sim_input.network,
                )
            )

        results.sort(key=lambda r: r.total_cost_fiat)
        if not results:
            return results

        best = results[0].total_cost_fiat
        return [
            replace(
                result,
                is_optimal=index == 0,
                delta_to_optimal=result.total_cost_fiat - best,
            )
            for index, result in enumerate(results)
        ]


def cheapest(results: list[SimulationResult]) -> SimulationResult | None:
    """Return the optimal entry of a ranked result list."""
    return results[0] if results else None
