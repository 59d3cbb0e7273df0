from __future__ import annotations

import logging
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any, Iterable, Mapping

from apicus.catalog.models import Service
from apicus.engine.cost import CostBreakdown, compute_cost
from apicus.engine.metrics import UsageMetric, extract_metrics
from apicus.engine.simulation import apply_simulated_values

logger = logging.getLogger(__name__)

ZERO = Decimal("0")


@dataclass(frozen=True)
class StackCost:
    base: Decimal
    usage: Decimal
    overage: Decimal
    total: Decimal
    services: list[CostBreakdown] = field(default_factory=list)


def resolve_plan_index(service: Service, plan_index: int | None) -> int:
    """Clamp a requested tier index to the service's plans, defaulting to 0."""
    if plan_index is None:
        return 0
    if 0 <= plan_index < len(service.plans):
        return plan_index
    logger.warning(
        "plan_index_out_of_range",
        extra={
            "event": "plan_index_out_of_range",
            "service_id": service.id,
            "plan_index": plan_index,
        },
    )
    return 0


def simulated_metrics(
    service: Service,
    plan_index: int,
    simulated_values: Mapping[str, Any] | None = None,
) -> list[UsageMetric]:
    """Extract a plan's metrics and apply the simulated override table."""
    metrics = extract_metrics(
        service,
        service.plan_at(plan_index),
        next_plan=service.plan_at(plan_index + 1),
        prior_plan=service.plan_at(plan_index - 1),
    )
    return apply_simulated_values(metrics, simulated_values)


def service_cost(
    service: Service,
    plan_index: int,
    simulated_values: Mapping[str, Any] | None = None,
) -> CostBreakdown:
    current_plan = service.plan_at(plan_index)
    if current_plan is None:
        return CostBreakdown.empty(service)
    metrics = simulated_metrics(service, plan_index, simulated_values)
    return compute_cost(
        service,
        current_plan,
        service.plan_at(plan_index + 1),
        metrics,
    )


def aggregate_stack(
    services: Iterable[Service],
    plan_selection: Mapping[str, int] | None = None,
    simulated_values: Mapping[str, Any] | None = None,
) -> StackCost:
    """Price every service in the stack and sum the four cost fields.

    Plan selections are looked up by service id; services without one are
    priced at their first tier.
    """
    selection = plan_selection or {}
    breakdowns: list[CostBreakdown] = []
    for service in services:
        plan_index = resolve_plan_index(service, selection.get(service.id))
        breakdowns.append(service_cost(service, plan_index, simulated_values))

    return StackCost(
        base=sum((b.base_cost for b in breakdowns), ZERO),
        usage=sum((b.usage_cost for b in breakdowns), ZERO),
        overage=sum((b.overage_cost for b in breakdowns), ZERO),
        total=sum((b.total for b in breakdowns), ZERO),
        services=breakdowns,
    )
