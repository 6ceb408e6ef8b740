"""Transaction cost simulation across tracked networks."""

from gastracker.simulation.engine import SimulationEngine, cheapest

__all__ = ["SimulationEngine", "cheapest"]
