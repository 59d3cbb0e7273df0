"""Engine package exports."""

from apicus.engine.cost import CostBreakdown, compute_cost
from apicus.engine.exceptions import CatalogError
from apicus.engine.metrics import UsageMetric, extract_metrics
from apicus.engine.service import StackEngine
from apicus.engine.simulation import SimulationKey, apply_simulated_values
from apicus.engine.stack import StackCost, aggregate_stack

__all__ = [
    "CatalogError",
    "CostBreakdown",
    "SimulationKey",
    "StackCost",
    "StackEngine",
    "UsageMetric",
    "aggregate_stack",
    "apply_simulated_values",
    "compute_cost",
    "extract_metrics",
]
