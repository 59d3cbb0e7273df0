from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal

from apicus.catalog.models import Plan, Service
from apicus.engine.metrics import UsageMetric

ZERO = Decimal("0")


@dataclass(frozen=True)
class UsageItem:
    metric_id: str
    name: str
    quantity: Decimal
    rate: Decimal
    unit: str
    cost: Decimal


@dataclass(frozen=True)
class OverageItem:
    metric_id: str
    name: str
    value: Decimal
    limit: Decimal
    exceeded: Decimal
    unit: str
    cost: Decimal


@dataclass(frozen=True)
class CostBreakdown:
    service_id: str
    service_name: str
    plan_name: str | None
    next_plan_name: str | None
    base_cost: Decimal
    usage_cost: Decimal
    overage_cost: Decimal
    total: Decimal
    usage_items: list[UsageItem] = field(default_factory=list)
    overage_items: list[OverageItem] = field(default_factory=list)

    @property
    def needs_upgrade(self) -> bool:
        return bool(self.overage_items)

    @classmethod
    def empty(cls, service: Service) -> "CostBreakdown":
        """Zero breakdown for a service that has no plan to price."""
        return cls(
            service_id=service.id,
            service_name=service.service_name,
            plan_name=None,
            next_plan_name=None,
            base_cost=ZERO,
            usage_cost=ZERO,
            overage_cost=ZERO,
            total=ZERO,
        )


def compute_cost(
    service: Service,
    current_plan: Plan,
    next_plan: Plan | None,
    metrics: list[UsageMetric],
) -> CostBreakdown:
    """Price one service at its selected plan.

    Overage is a tier jump: when any capped metric is over its threshold
    the charge is the price difference to the next plan, once, no matter
    how many metrics are over or by how much. At the top tier there is
    nothing to jump to and overage is zero.
    """
    base_cost = current_plan.base_price

    usage_items: list[UsageItem] = []
    for metric in metrics:
        if metric.cost_per_unit is None or metric.value <= 0:
            continue
        quantity = metric.value
        # usage past a finite cap is priced by the overage path
        if metric.current_plan_threshold is not None:
            quantity = min(quantity, metric.current_plan_threshold)
        usage_items.append(
            UsageItem(
                metric_id=metric.id,
                name=metric.name,
                quantity=quantity,
                rate=metric.cost_per_unit,
                unit=metric.unit,
                cost=quantity * metric.cost_per_unit,
            )
        )
    usage_cost = sum((item.cost for item in usage_items), ZERO)

    overage_metrics = find_overage_metrics(metrics)
    overage_cost = ZERO
    if overage_metrics and next_plan is not None:
        overage_cost = next_plan.base_price - base_cost

    return CostBreakdown(
        service_id=service.id,
        service_name=service.service_name,
        plan_name=current_plan.name,
        next_plan_name=next_plan.name if next_plan is not None else None,
        base_cost=base_cost,
        usage_cost=usage_cost,
        overage_cost=overage_cost,
        total=base_cost + usage_cost + overage_cost,
        usage_items=usage_items,
        overage_items=_itemize_overage(overage_metrics, overage_cost),
    )


def find_overage_metrics(metrics: list[UsageMetric]) -> list[UsageMetric]:
    """Metrics whose value is strictly above a finite threshold."""
    return [metric for metric in metrics if metric.is_over_threshold]


def _itemize_overage(
    overage_metrics: list[UsageMetric],
    overage_cost: Decimal,
) -> list[OverageItem]:
    if not overage_metrics:
        return []

    share = overage_cost / len(overage_metrics)
    items: list[OverageItem] = []
    for metric in overage_metrics:
        # is_over_threshold guarantees a finite threshold here
        limit = metric.current_plan_threshold or ZERO
        items.append(
            OverageItem(
                metric_id=metric.id,
                name=metric.name,
                value=metric.value,
                limit=limit,
                exceeded=metric.value - limit,
                unit=metric.unit,
                cost=share,
            )
        )

    # the last share absorbs the rounding remainder of the division
    remainder = overage_cost - share * len(items)
    if remainder:
        last = items[-1]
        items[-1] = OverageItem(
            metric_id=last.metric_id,
            name=last.name,
            value=last.value,
            limit=last.limit,
            exceeded=last.exceeded,
            unit=last.unit,
            cost=last.cost + remainder,
        )
    return items
