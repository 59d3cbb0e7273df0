from __future__ import annotations

from decimal import Decimal
from typing import Any, Literal

import pydantic
from pydantic import BaseModel, ConfigDict, Field

from apicus.constants import (
    DEFAULT_PROJECTION_DAYS,
    MAX_PROJECTION_DAYS,
    MAX_SIMULATED_VALUE,
    MAX_STACK_SIZE,
)


def _validate_simulated_values(
    value: dict[str, Decimal],
) -> dict[str, Decimal]:
    for key, amount in value.items():
        if not key:
            raise ValueError("Simulated value keys must be non-empty strings")
        if not amount.is_finite():
            raise ValueError(f"Simulated value for '{key}' must be finite")
        if amount < 0 or amount > MAX_SIMULATED_VALUE:
            raise ValueError(
                (
                    f"Simulated value for '{key}' must be between 0 "
                    f"and {MAX_SIMULATED_VALUE}"
                )
            )
    return value


class SimulationRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")

    plan_index: int = Field(default=0, ge=0)
    simulated_values: dict[str, Decimal] = Field(default_factory=dict)

    @pydantic.field_validator("simulated_values")
    @classmethod
    def validate_simulated_values(
        cls: type["SimulationRequest"],
        value: dict[str, Decimal],
    ) -> dict[str, Decimal]:
        """Validate simulated value bounds."""
        return _validate_simulated_values(value)


class StackEntry(BaseModel):
    model_config = ConfigDict(extra="forbid")

    service_id: str = Field(min_length=1)
    plan_index: int = Field(default=0, ge=0)


class StackCostRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")

    services: list[StackEntry] = Field(
        min_length=1,
        max_length=MAX_STACK_SIZE,
    )
    simulated_values: dict[str, Decimal] = Field(default_factory=dict)

    @pydantic.field_validator("services")
    @classmethod
    def validate_unique_services(
        cls: type["StackCostRequest"],
        value: list[StackEntry],
    ) -> list[StackEntry]:
        """Reject stacks that list the same service twice."""
        seen: set[str] = set()
        duplicates: set[str] = set()
        for entry in value:
            if entry.service_id in seen:
                duplicates.add(entry.service_id)
            seen.add(entry.service_id)
        if duplicates:
            raise ValueError(
                f"Duplicate services in stack: {sorted(duplicates)}"
            )
        return value

    @pydantic.field_validator("simulated_values")
    @classmethod
    def validate_simulated_values(
        cls: type["StackCostRequest"],
        value: dict[str, Decimal],
    ) -> dict[str, Decimal]:
        """Validate simulated value bounds."""
        return _validate_simulated_values(value)


class ProjectionRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")

    plan_index: int = Field(default=0, ge=0)
    metric: str = Field(min_length=1)
    target_value: Decimal = Field(ge=0, le=MAX_SIMULATED_VALUE)
    timeframe_days: int = Field(
        default=DEFAULT_PROJECTION_DAYS,
        ge=1,
        le=MAX_PROJECTION_DAYS,
    )


class ServiceSummary(BaseModel):
    model_config = ConfigDict(extra="forbid")

    service_id: str
    service_name: str
    pricing_types: list[str]
    plan_count: int
    lowest_price: str


class ServicesResponse(BaseModel):
    model_config = ConfigDict(extra="forbid")

    catalog_version: str
    services: list[ServiceSummary]


class PlanSummary(BaseModel):
    model_config = ConfigDict(extra="forbid")

    index: int
    name: str
    base_price: str
    is_free_tier: bool
    custom_pricing: bool
    highlighted_features: list[str]


class ServiceDetailResponse(BaseModel):
    model_config = ConfigDict(extra="forbid")

    catalog_version: str
    service_id: str
    service_name: str
    currency: str
    pricing_types: list[str]
    plans: list[PlanSummary]


class PlanSnapshotEntry(BaseModel):
    model_config = ConfigDict(extra="forbid")

    name: str
    limit: str | None
    price: str


class MetricEntry(BaseModel):
    model_config = ConfigDict(extra="forbid")

    id: str
    name: str
    type: str
    value: str
    unit: str
    period: str | None
    current_plan_threshold: str | None
    is_unlimited: bool
    base_price: str
    cost_per_unit: str | None
    description: str | None
    percentage: str | None
    status: Literal["normal", "warning", "critical"]
    next_plan: PlanSnapshotEntry | None
    prior_plan: PlanSnapshotEntry | None


class MetricsResponse(BaseModel):
    model_config = ConfigDict(extra="forbid")

    catalog_version: str
    service_id: str
    plan_index: int
    plan_name: str
    metrics: list[MetricEntry]


class UsageItemEntry(BaseModel):
    model_config = ConfigDict(extra="forbid")

    metric_id: str
    name: str
    quantity: str
    rate: str
    unit: str
    cost: str


class OverageItemEntry(BaseModel):
    model_config = ConfigDict(extra="forbid")

    metric_id: str
    name: str
    value: str
    limit: str
    exceeded: str
    unit: str
    cost: str


class CostBreakdownEntry(BaseModel):
    model_config = ConfigDict(extra="forbid")

    service_id: str
    service_name: str
    plan_name: str | None
    next_plan_name: str | None
    base_cost: str
    usage_cost: str
    overage_cost: str
    total: str
    needs_upgrade: bool
    usage_items: list[UsageItemEntry]
    overage_items: list[OverageItemEntry]


class CostMeta(BaseModel):
    model_config = ConfigDict(extra="forbid")

    computed_at: str
    engine_version: str


class ServiceCostResponse(BaseModel):
    model_config = ConfigDict(extra="forbid")

    catalog_version: str
    currency: str
    breakdown: CostBreakdownEntry
    meta: CostMeta


class StackTotals(BaseModel):
    model_config = ConfigDict(extra="forbid")

    currency: str
    base: str
    usage: str
    overage: str
    total: str


class CostShareEntry(BaseModel):
    model_config = ConfigDict(extra="forbid")

    service_id: str
    service_name: str
    total: str
    share: str


class StackCostResponse(BaseModel):
    model_config = ConfigDict(extra="forbid")

    catalog_version: str
    totals: StackTotals
    services: list[CostBreakdownEntry]
    distribution: list[CostShareEntry]
    meta: CostMeta


class ProjectionPointEntry(BaseModel):
    model_config = ConfigDict(extra="forbid")

    day: int
    value: str
    threshold: str | None


class RecommendationEntry(BaseModel):
    model_config = ConfigDict(extra="forbid")

    kind: Literal["upgrade", "warning"]
    message: str
    projected_overage: str
    overage_cost: str
    next_plan_name: str | None


class ProjectionResponse(BaseModel):
    model_config = ConfigDict(extra="forbid")

    catalog_version: str
    metric_id: str
    points: list[ProjectionPointEntry]
    recommendation: RecommendationEntry | None


class ErrorBody(BaseModel):
    model_config = ConfigDict(extra="forbid")

    code: str
    message: str
    details: dict[str, Any]


class ErrorEnvelope(BaseModel):
    model_config = ConfigDict(extra="forbid")

    error: ErrorBody


class VersionResponse(BaseModel):
    model_config = ConfigDict(extra="forbid")

    catalog_version: str


class HealthResponse(BaseModel):
    model_config = ConfigDict(extra="forbid")

    status: str
    catalog_version: str
    engine_version: str
