from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from typing import Callable, Optional

from apicus.catalog.models import OtherLimit, Plan, PlanLimits, Service
from apicus.engine.limits import parse_limit_value, slugify

ZERO = Decimal("0")


@dataclass(frozen=True)
class PlanSnapshot:
    name: str
    limit: Decimal | None
    price: Decimal


@dataclass(frozen=True)
class UsageMetric:
    id: str
    slug: str
    service_id: str
    name: str
    value: Decimal
    unit: str
    type: str
    current_plan_threshold: Decimal | None
    base_price: Decimal
    service_name: str
    plan_name: str
    period: str | None = None
    description: str | None = None
    cost_per_unit: Decimal | None = None
    next_plan: PlanSnapshot | None = None
    prior_plan: PlanSnapshot | None = None

    @property
    def is_unlimited(self) -> bool:
        return self.current_plan_threshold is None

    @property
    def is_over_threshold(self) -> bool:
        """True when the value strictly exceeds a finite threshold."""
        threshold = self.current_plan_threshold
        return threshold is not None and self.value > threshold


# Reads a limit from a plan's limits, or None when the plan has no such cap.
LimitLookup = Callable[[PlanLimits], Optional[Decimal]]


def extract_metrics(
    service: Service,
    current_plan: Plan | None,
    next_plan: Plan | None = None,
    prior_plan: Plan | None = None,
) -> list[UsageMetric]:
    """Flatten a plan's limits and usage charges into usage metrics.

    Missing limit categories are skipped rather than reported, so a plan
    without ``limits`` still yields its usage-based components and a plan
    without either yields an empty list.
    """
    if current_plan is None:
        return []

    builder = _MetricBuilder(service, current_plan, next_plan, prior_plan)
    limits = current_plan.limits

    if limits is not None:
        if limits.users is not None:
            users = limits.users
            builder.add(
                slug="users",
                name="Users",
                value=users.min or ZERO,
                unit="users",
                metric_type="users",
                threshold=users.max,
                description=users.description or "Team member seats",
                lookup=lambda lim: lim.users.max if lim.users else None,
            )

        if limits.storage is not None:
            storage = limits.storage
            # the allotment doubles as the usage baseline; there is no
            # separate "used" figure in catalog data
            builder.add(
                slug="storage",
                name="Storage",
                value=storage.amount or ZERO,
                unit=storage.unit or "GB",
                metric_type="storage",
                threshold=storage.amount,
                description=storage.description or "Storage capacity",
                lookup=lambda lim: lim.storage.amount if lim.storage else None,
            )

        rate = limits.api.rate if limits.api is not None else None
        if rate is not None and rate.amount is not None:
            builder.add(
                slug="api-rate",
                name="API Rate",
                value=ZERO,
                unit=f"requests/{rate.period or 'second'}",
                metric_type="rate",
                threshold=rate.amount,
                period=rate.period,
                description=rate.description or "API request rate",
                lookup=_api_rate_limit,
            )

        quota = limits.api.quota if limits.api is not None else None
        if quota is not None and quota.amount is not None:
            builder.add(
                slug="api-quota",
                name="API Quota",
                value=ZERO,
                unit=f"requests/{quota.period or 'month'}",
                metric_type="quota",
                threshold=quota.amount,
                period=quota.period or "month",
                description=quota.description or "API request quota",
                lookup=_api_quota_limit,
            )

        for limit in limits.other_limits:
            parsed = parse_limit_value(limit.value)
            builder.add(
                slug=f"other-{slugify(limit.name)}",
                name=limit.name,
                value=ZERO,
                unit=parsed.unit or "units",
                metric_type="other",
                threshold=_other_threshold(limit),
                period=parsed.period,
                description=limit.description,
                lookup=_other_lookup(limit.name),
            )

    for component in current_plan.usage_components:
        builder.add(
            slug=f"usage-{slugify(component.name)}",
            name=component.name,
            value=ZERO,
            unit=component.unit,
            metric_type="usage",
            threshold=None,
            description=f"${component.price_per_unit} per {component.unit}",
            cost_per_unit=component.price_per_unit,
            lookup=lambda lim: None,
        )

    return dedupe_metrics(builder.metrics)


def dedupe_metrics(metrics: list[UsageMetric]) -> list[UsageMetric]:
    """Drop later metrics sharing an (id, type) pair with an earlier one."""
    seen: set[tuple[str, str]] = set()
    unique: list[UsageMetric] = []
    for metric in metrics:
        key = (metric.id, metric.type)
        if key in seen:
            continue
        seen.add(key)
        unique.append(metric)
    return unique


def metric_id(service_id: str, slug: str) -> str:
    return f"{service_id}-{slug}"


class _MetricBuilder:
    def __init__(
        self,
        service: Service,
        current_plan: Plan,
        next_plan: Plan | None,
        prior_plan: Plan | None,
    ) -> None:
        self._service = service
        self._current_plan = current_plan
        self._next_plan = next_plan
        self._prior_plan = prior_plan
        self.metrics: list[UsageMetric] = []

    def add(
        self,
        *,
        slug: str,
        name: str,
        value: Decimal,
        unit: str,
        metric_type: str,
        threshold: Decimal | None,
        lookup: LimitLookup,
        period: str | None = None,
        description: str | None = None,
        cost_per_unit: Decimal | None = None,
    ) -> None:
        self.metrics.append(
            UsageMetric(
                id=metric_id(self._service.id, slug),
                slug=slug,
                service_id=self._service.id,
                name=name,
                value=value,
                unit=unit,
                type=metric_type,
                current_plan_threshold=threshold,
                base_price=self._current_plan.base_price,
                service_name=self._service.service_name,
                plan_name=self._current_plan.name,
                period=period,
                description=description,
                cost_per_unit=cost_per_unit,
                next_plan=_snapshot(self._next_plan, lookup),
                prior_plan=_snapshot(self._prior_plan, lookup),
            )
        )


def _snapshot(plan: Plan | None, lookup: LimitLookup) -> PlanSnapshot | None:
    if plan is None:
        return None
    limit = lookup(plan.limits) if plan.limits is not None else None
    return PlanSnapshot(name=plan.name, limit=limit, price=plan.base_price)


def _api_rate_limit(limits: PlanLimits) -> Decimal | None:
    if limits.api is None or limits.api.rate is None:
        return None
    return limits.api.rate.amount


def _api_quota_limit(limits: PlanLimits) -> Decimal | None:
    if limits.api is None or limits.api.quota is None:
        return None
    return limits.api.quota.amount


def _other_threshold(limit: OtherLimit) -> Decimal | None:
    parsed = parse_limit_value(limit.value)
    if parsed.unlimited or not parsed.recognized:
        return None
    return parsed.amount


def _other_lookup(name: str) -> LimitLookup:
    def lookup(limits: PlanLimits) -> Decimal | None:
        for limit in limits.other_limits:
            if limit.name == name:
                return _other_threshold(limit)
        return None

    return lookup
