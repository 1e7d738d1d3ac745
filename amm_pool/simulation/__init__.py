"""Randomized order flow for exercising pool invariants."""

from amm_pool.simulation.retail import RetailFlow, SwapOrder
from amm_pool.simulation.runner import SimulationConfig, SimulationResult, SimulationRunner

__all__ = [
    "RetailFlow",
    "SwapOrder",
    "SimulationConfig",
    "SimulationResult",
    "SimulationRunner",
]
