from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal
from typing import Literal

from apicus.constants import (
    CRITICAL_USAGE_PERCENT,
    DEFAULT_PROJECTION_DAYS,
    WARNING_USAGE_PERCENT,
)
from apicus.engine.metrics import UsageMetric
from apicus.engine.stack import StackCost

ZERO = Decimal("0")
HUNDRED = Decimal("100")

StatusLevel = Literal["normal", "warning", "critical"]


@dataclass(frozen=True)
class UsageStatus:
    percentage: Decimal | None
    status: StatusLevel


@dataclass(frozen=True)
class ProjectionPoint:
    day: int
    value: Decimal
    threshold: Decimal | None


@dataclass(frozen=True)
class Recommendation:
    kind: Literal["upgrade", "warning"]
    message: str
    projected_overage: Decimal
    overage_cost: Decimal
    next_plan_name: str | None = None


@dataclass(frozen=True)
class UsageProjection:
    metric_id: str
    points: list[ProjectionPoint] = field(default_factory=list)
    recommendation: Recommendation | None = None


@dataclass(frozen=True)
class CostShare:
    service_id: str
    service_name: str
    total: Decimal
    share: Decimal


def usage_status(metric: UsageMetric) -> UsageStatus:
    """Band a metric's value against its threshold."""
    threshold = metric.current_plan_threshold
    if threshold is None:
        return UsageStatus(percentage=None, status="normal")
    if threshold <= 0:
        # a zero cap is breached by any usage at all
        status: StatusLevel = "critical" if metric.value > 0 else "normal"
        return UsageStatus(percentage=None, status=status)

    percentage = metric.value / threshold * HUNDRED
    if percentage > CRITICAL_USAGE_PERCENT:
        status = "critical"
    elif percentage > WARNING_USAGE_PERCENT:
        status = "warning"
    else:
        status = "normal"
    return UsageStatus(percentage=percentage, status=status)


def project_usage(
    metric: UsageMetric,
    target_value: Decimal,
    timeframe_days: int = DEFAULT_PROJECTION_DAYS,
) -> UsageProjection:
    """Project linear growth from the metric's value to a target.

    One point per day, day 0 through ``timeframe_days``, never below zero.
    When the final value breaks a finite threshold, the overage is priced
    as the jump to the next tier. An upgrade is recommended when that tier
    holds the projected value, otherwise a warning is raised.
    """
    days = max(timeframe_days, 1)
    delta = target_value - metric.value
    threshold = metric.current_plan_threshold

    points = [
        ProjectionPoint(
            day=day,
            value=max(ZERO, metric.value + delta * day / days),
            threshold=threshold,
        )
        for day in range(days + 1)
    ]
    final_value = points[-1].value

    recommendation: Recommendation | None = None
    if threshold is not None and final_value > threshold:
        recommendation = _recommend(metric, final_value, threshold)

    return UsageProjection(
        metric_id=metric.id,
        points=points,
        recommendation=recommendation,
    )


def _recommend(
    metric: UsageMetric,
    final_value: Decimal,
    threshold: Decimal,
) -> Recommendation:
    projected_overage = final_value - threshold
    next_plan = metric.next_plan
    if next_plan is None:
        return Recommendation(
            kind="warning",
            message=(
                "Projected usage will exceed the top plan limit by "
                f"{projected_overage.to_integral_value()} {metric.unit}."
            ),
            projected_overage=projected_overage,
            overage_cost=ZERO,
        )

    # priced as a tier jump, the same charge compute_cost applies
    overage_cost = next_plan.price - metric.base_price
    if next_plan.limit is None or final_value <= next_plan.limit:
        return Recommendation(
            kind="upgrade",
            message=(
                f"Upgrading to {next_plan.name} covers projected usage "
                f"for {overage_cost:.2f} more per month."
            ),
            projected_overage=projected_overage,
            overage_cost=overage_cost,
            next_plan_name=next_plan.name,
        )

    return Recommendation(
        kind="warning",
        message=(
            "Projected usage will exceed current plan limit by "
            f"{projected_overage.to_integral_value()} {metric.unit}, "
            f"beyond what {next_plan.name} allows."
        ),
        projected_overage=projected_overage,
        overage_cost=overage_cost,
        next_plan_name=next_plan.name,
    )


def cost_distribution(stack: StackCost) -> list[CostShare]:
    """Each service's share of the stack total, in percent."""
    shares: list[CostShare] = []
    for breakdown in stack.services:
        share = (
            breakdown.total / stack.total * HUNDRED
            if stack.total
            else ZERO
        )
        shares.append(
            CostShare(
                service_id=breakdown.service_id,
                service_name=breakdown.service_name,
                total=breakdown.total,
                share=share,
            )
        )
    return shares
