"""Tests for SimulationEngine -- cost computation, ranking and lenient parsing."""

from decimal import Decimal

import pytest

from gastracker.config import SimulationSettings
from gastracker.models import ChainSnapshot, SimulationInput
from gastracker.simulation.engine import SimulationEngine, cheapest

GWEI = 10**9


def _snapshots(**fees: tuple[int, int]) -> dict[str, ChainSnapshot]:
    return {
        network_id: ChainSnapshot(
            network_id=network_id, base_fee=base, priority_fee=priority, connected=True
        )
        for network_id, (base, priority) in fees.items()
    }


@pytest.fixture
def engine() -> SimulationEngine:
    return SimulationEngine(SimulationSettings())


@pytest.fixture
def two_chains() -> dict[str, ChainSnapshot]:
    # Listed expensive-first so ordering must come from ranking
    return _snapshots(b=(50 * GWEI, 5 * GWEI), a=(10 * GWEI, 2 * GWEI))


class TestCostComputation:
    def test_reference_scenario(self, engine: SimulationEngine, two_chains) -> None:
        results = engine.simulate(
            two_chains, Decimal("2000"), SimulationInput("0.1", "21000", "b")
        )
        a, b = results

        assert a.network_id == "a"
        assert a.fee_cost_native == Decimal("0.000252")
        assert a.fee_cost_fiat == Decimal("0.504")
        assert a.total_cost_native == Decimal("0.100252")
        assert a.total_cost_fiat == Decimal("200.504")
        assert a.is_optimal is True
        assert a.delta_to_optimal == 0
        assert a.is_target is False

        assert b.network_id == "b"
        assert b.fee_cost_native == Decimal("0.001155")
        assert b.total_cost_fiat == Decimal("202.31")
        assert b.is_optimal is False
        assert b.delta_to_optimal == Decimal("1.806")
        assert b.is_target is True

    def test_fee_only_when_amount_zero(self, engine: SimulationEngine, two_chains) -> None:
        results = engine.simulate(two_chains, Decimal("2000"), SimulationInput("0", "21000"))
        assert all(r.total_cost_native == r.fee_cost_native for r in results)

    def test_gas_limit_scales_linearly(self, engine: SimulationEngine) -> None:
        snapshots = _snapshots(a=(GWEI, 0))
        small = engine.simulate(snapshots, Decimal(1), SimulationInput("0", "21000"))[0]
        large = engine.simulate(snapshots, Decimal(1), SimulationInput("0", "42000"))[0]
        assert large.fee_cost_native == small.fee_cost_native * 2

    def test_network_without_data_costs_amount_only(self, engine: SimulationEngine) -> None:
        snapshots = {"idle": ChainSnapshot(network_id="idle")}
        result = engine.simulate(snapshots, Decimal("2000"), SimulationInput("1", "21000"))[0]
        assert result.fee_cost_native == 0
        assert result.total_cost_fiat == Decimal("2000")

    def test_results_are_decimal(self, engine: SimulationEngine, two_chains) -> None:
        result = engine.simulate(two_chains, Decimal("2000"), SimulationInput())[0]
        for value in (
            result.fee_cost_native,
            result.fee_cost_fiat,
            result.total_cost_native,
            result.total_cost_fiat,
            result.delta_to_optimal,
        ):
            assert isinstance(value, Decimal)


class TestRanking:
    def test_sorted_by_total_fiat(self, engine: SimulationEngine) -> None:
        snapshots = _snapshots(x=(30 * GWEI, 0), y=(GWEI, 0), z=(10 * GWEI, 0))
        results = engine.simulate(snapshots, Decimal("2000"), SimulationInput())
        assert [r.network_id for r in results] == ["y", "z", "x"]
        assert [r.is_optimal for r in results] == [True, False, False]
        deltas = [r.delta_to_optimal for r in results]
        assert deltas == sorted(deltas)
        assert all(d >= 0 for d in deltas)

    def test_ties_keep_input_order(self, engine: SimulationEngine) -> None:
        snapshots = _snapshots(first=(GWEI, 0), second=(GWEI, 0))
        results = engine.simulate(snapshots, Decimal("2000"), SimulationInput())
        assert [r.network_id for r in results] == ["first", "second"]
        assert results[0].is_optimal is True
        assert results[1].is_optimal is False
        assert results[1].delta_to_optimal == 0

    def test_exactly_one_optimal(self, engine: SimulationEngine, two_chains) -> None:
        results = engine.simulate(two_chains, Decimal("2000"), SimulationInput())
        assert sum(r.is_optimal for r in results) == 1

    def test_empty_snapshots(self, engine: SimulationEngine) -> None:
        assert engine.simulate({}, Decimal("2000"), SimulationInput()) == []
        assert cheapest([]) is None

    def test_cheapest_is_first(self, engine: SimulationEngine, two_chains) -> None:
        results = engine.simulate(two_chains, Decimal("2000"), SimulationInput())
        assert cheapest(results).network_id == "a"

    def test_unknown_target_marks_nothing(self, engine: SimulationEngine, two_chains) -> None:
        results = engine.simulate(
            two_chains, Decimal("2000"), SimulationInput(network="gamma")
        )
        assert not any(r.is_target for r in results)


class TestPrice:
    @pytest.mark.parametrize("price", [None, Decimal("0"), Decimal("-5")])
    def test_unusable_price_gives_zero_fiat(
        self, engine: SimulationEngine, two_chains, price
    ) -> None:
        results = engine.simulate(two_chains, price, SimulationInput())
        assert all(r.fee_cost_fiat == 0 for r in results)
        assert all(r.total_cost_fiat == 0 for r in results)
        assert results[0].fee_cost_native > 0

    def test_zero_price_falls_back_to_input_order(
        self, engine: SimulationEngine, two_chains
    ) -> None:
        results = engine.simulate(two_chains, None, SimulationInput())
        assert [r.network_id for r in results] == ["b", "a"]


class TestInputParsing:
    @pytest.mark.parametrize(
        "raw, expected",
        [
            ("0.1", Decimal("0.1")),
            (" 2.5 ", Decimal("2.5")),
            ("", Decimal("0")),
            ("abc", Decimal("0")),
            ("-1", Decimal("0")),
            ("NaN", Decimal("0")),
            ("Infinity", Decimal("0")),
            ("1e999999", Decimal("0")),
            ("9e999999", Decimal("0")),
            ("1e30", Decimal("0")),
            ("1e29", Decimal("1e29")),
            ("1e-30", Decimal("1e-30")),
            (None, Decimal("0")),
            (Decimal("3"), Decimal("3")),
        ],
    )
    def test_parse_amount(self, raw, expected) -> None:
        assert SimulationEngine.parse_amount(raw) == expected

    @pytest.mark.parametrize(
        "raw, expected",
        [
            ("21000", 21000),
            (" 50000 ", 50000),
            ("", 21000),
            ("1.5", 21000),
            ("lots", 21000),
            ("0", 21000),
            ("-100", 21000),
            (None, 21000),
            (65000, 65000),
        ],
    )
    def test_parse_gas_limit(self, engine: SimulationEngine, raw, expected) -> None:
        assert engine.parse_gas_limit(raw) == expected

    def test_configured_default_gas_limit(self) -> None:
        engine = SimulationEngine(SimulationSettings(default_gas_limit=50000))
        assert engine.parse_gas_limit("oops") == 50000

    def test_bad_input_never_raises(self, engine: SimulationEngine, two_chains) -> None:
        results = engine.simulate(
            two_chains, Decimal("2000"), SimulationInput(amount="x", gas_limit="y")
        )
        # defaults: zero amount, 21000 gas
        assert results[0].total_cost_native == Decimal("0.000252")

    @pytest.mark.parametrize("amount", ["1e999999", "9e999999", "-9e999999", "1e-999999"])
    def test_extreme_amounts_never_raise(
        self, engine: SimulationEngine, two_chains, amount
    ) -> None:
        results = engine.simulate(two_chains, Decimal("2000"), SimulationInput(amount=amount))
        assert [r.network_id for r in results] == ["a", "b"]
        assert all(r.total_cost_fiat.is_finite() for r in results)

    def test_huge_gas_limit_never_raises(self, engine: SimulationEngine, two_chains) -> None:
        results = engine.simulate(
            two_chains, Decimal("2000"), SimulationInput(amount="0", gas_limit="9" * 4000)
        )
        assert results[0].network_id == "a"
        assert results[0].total_cost_fiat.is_finite()
