from __future__ import annotations

import logging
from datetime import UTC, datetime
from decimal import ROUND_HALF_UP, Decimal

from fastapi import APIRouter, Query, Request

from apicus.api.schemas import (
    CostBreakdownEntry,
    CostMeta,
    CostShareEntry,
    HealthResponse,
    MetricEntry,
    MetricsResponse,
    OverageItemEntry,
    PlanSnapshotEntry,
    PlanSummary,
    ProjectionPointEntry,
    ProjectionRequest,
    ProjectionResponse,
    RecommendationEntry,
    ServiceCostResponse,
    ServiceDetailResponse,
    ServicesResponse,
    ServiceSummary,
    SimulationRequest,
    StackCostRequest,
    StackCostResponse,
    StackTotals,
    UsageItemEntry,
    VersionResponse,
)
from apicus.catalog.repository import CatalogRepository
from apicus.engine import CostBreakdown, StackEngine
from apicus.engine.exceptions import ServiceNotFound
from apicus.engine.insights import cost_distribution, usage_status
from apicus.engine.metrics import PlanSnapshot, UsageMetric

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/v1")

COST_QUANTIZER = Decimal("0.000001")


def _get_repository(request: Request) -> CatalogRepository:
    return request.app.state.repository


def _get_engine(request: Request) -> StackEngine:
    return request.app.state.engine


def _to_fixed_6(value: Decimal) -> str:
    quantized = value.quantize(COST_QUANTIZER, rounding=ROUND_HALF_UP)
    return format(quantized, "f")


def _to_plain(value: Decimal | None) -> str | None:
    if value is None:
        return None
    if value == value.to_integral_value():
        return format(value.quantize(Decimal("1")), "f")
    return format(value.normalize(), "f")


def _meta(engine: StackEngine) -> CostMeta:
    return CostMeta(
        computed_at=datetime.now(UTC).isoformat(),
        engine_version=engine.engine_version,
    )


def _snapshot_entry(snapshot: PlanSnapshot | None) -> PlanSnapshotEntry | None:
    if snapshot is None:
        return None
    return PlanSnapshotEntry(
        name=snapshot.name,
        limit=_to_plain(snapshot.limit),
        price=_to_fixed_6(snapshot.price),
    )


def _metric_entry(metric: UsageMetric) -> MetricEntry:
    status = usage_status(metric)
    return MetricEntry(
        id=metric.id,
        name=metric.name,
        type=metric.type,
        value=_to_plain(metric.value) or "0",
        unit=metric.unit,
        period=metric.period,
        current_plan_threshold=_to_plain(metric.current_plan_threshold),
        is_unlimited=metric.is_unlimited,
        base_price=_to_fixed_6(metric.base_price),
        cost_per_unit=(
            _to_fixed_6(metric.cost_per_unit)
            if metric.cost_per_unit is not None
            else None
        ),
        description=metric.description,
        percentage=(
            _to_fixed_6(status.percentage)
            if status.percentage is not None
            else None
        ),
        status=status.status,
        next_plan=_snapshot_entry(metric.next_plan),
        prior_plan=_snapshot_entry(metric.prior_plan),
    )


def _breakdown_entry(breakdown: CostBreakdown) -> CostBreakdownEntry:
    return CostBreakdownEntry(
        service_id=breakdown.service_id,
        service_name=breakdown.service_name,
        plan_name=breakdown.plan_name,
        next_plan_name=breakdown.next_plan_name,
        base_cost=_to_fixed_6(breakdown.base_cost),
        usage_cost=_to_fixed_6(breakdown.usage_cost),
        overage_cost=_to_fixed_6(breakdown.overage_cost),
        total=_to_fixed_6(breakdown.total),
        needs_upgrade=breakdown.needs_upgrade,
        usage_items=[
            UsageItemEntry(
                metric_id=item.metric_id,
                name=item.name,
                quantity=_to_plain(item.quantity) or "0",
                rate=_to_fixed_6(item.rate),
                unit=item.unit,
                cost=_to_fixed_6(item.cost),
            )
            for item in breakdown.usage_items
        ],
        overage_items=[
            OverageItemEntry(
                metric_id=item.metric_id,
                name=item.name,
                value=_to_plain(item.value) or "0",
                limit=_to_plain(item.limit) or "0",
                exceeded=_to_plain(item.exceeded) or "0",
                unit=item.unit,
                cost=_to_fixed_6(item.cost),
            )
            for item in breakdown.overage_items
        ],
    )


@router.get("/services", response_model=ServicesResponse)
def list_services(
    request: Request,
    pricing_type: str | None = Query(None, min_length=1),
) -> ServicesResponse:
    """List catalog services, optionally filtered by pricing type."""
    repository = _get_repository(request)
    return ServicesResponse(
        catalog_version=repository.catalog_version,
        services=[
            ServiceSummary(
                service_id=service.id,
                service_name=service.service_name,
                pricing_types=list(service.pricing_types),
                plan_count=len(service.plans),
                lowest_price=_to_fixed_6(service.lowest_price),
            )
            for service in repository.list_services(pricing_type)
        ],
    )


@router.get(
    "/services/{service_id}",
    response_model=ServiceDetailResponse,
)
def get_service(service_id: str, request: Request) -> ServiceDetailResponse:
    """Return one service with its plans in tier order."""
    repository = _get_repository(request)
    service = repository.get_service(service_id)
    if service is None:
        raise ServiceNotFound(service_id)

    return ServiceDetailResponse(
        catalog_version=repository.catalog_version,
        service_id=service.id,
        service_name=service.service_name,
        currency=service.currency,
        pricing_types=list(service.pricing_types),
        plans=[
            PlanSummary(
                index=index,
                name=plan.name,
                base_price=_to_fixed_6(plan.base_price),
                is_free_tier=plan.is_free_tier,
                custom_pricing=plan.custom_pricing,
                highlighted_features=list(plan.highlighted_features),
            )
            for index, plan in enumerate(service.plans)
        ],
    )


@router.post(
    "/services/{service_id}/metrics",
    response_model=MetricsResponse,
)
def service_metrics(
    service_id: str,
    payload: SimulationRequest,
    request: Request,
) -> MetricsResponse:
    """Return usage metrics for a plan with simulated values applied."""
    repository = _get_repository(request)
    engine = _get_engine(request)

    metrics = engine.service_metrics(
        service_id=service_id,
        plan_index=payload.plan_index,
        simulated_values=payload.simulated_values,
    )
    service = repository.get_service(service_id)
    plan = service.plan_at(payload.plan_index) if service else None

    return MetricsResponse(
        catalog_version=repository.catalog_version,
        service_id=service_id,
        plan_index=payload.plan_index,
        plan_name=plan.name if plan else "",
        metrics=[_metric_entry(metric) for metric in metrics],
    )


@router.post(
    "/services/{service_id}/cost",
    response_model=ServiceCostResponse,
)
def service_cost(
    service_id: str,
    payload: SimulationRequest,
    request: Request,
) -> ServiceCostResponse:
    """Price one service plan under simulated usage."""
    repository = _get_repository(request)
    engine = _get_engine(request)
    logger.info(
        "service_cost_requested",
        extra={
            "event": "service_cost_requested",
            "service_id": service_id,
            "plan_index": payload.plan_index,
        },
    )

    breakdown = engine.service_cost(
        service_id=service_id,
        plan_index=payload.plan_index,
        simulated_values=payload.simulated_values,
    )
    return ServiceCostResponse(
        catalog_version=repository.catalog_version,
        currency=repository.currency,
        breakdown=_breakdown_entry(breakdown),
        meta=_meta(engine),
    )


@router.post(
    "/services/{service_id}/projection",
    response_model=ProjectionResponse,
)
def service_projection(
    service_id: str,
    payload: ProjectionRequest,
    request: Request,
) -> ProjectionResponse:
    """Project one metric toward a target value and advise on upgrades."""
    repository = _get_repository(request)
    engine = _get_engine(request)

    projection = engine.project(
        service_id=service_id,
        metric_slug=payload.metric,
        target_value=payload.target_value,
        plan_index=payload.plan_index,
        timeframe_days=payload.timeframe_days,
    )
    recommendation = projection.recommendation

    return ProjectionResponse(
        catalog_version=repository.catalog_version,
        metric_id=projection.metric_id,
        points=[
            ProjectionPointEntry(
                day=point.day,
                value=_to_fixed_6(point.value),
                threshold=_to_plain(point.threshold),
            )
            for point in projection.points
        ],
        recommendation=(
            RecommendationEntry(
                kind=recommendation.kind,
                message=recommendation.message,
                projected_overage=_to_fixed_6(
                    recommendation.projected_overage
                ),
                overage_cost=_to_fixed_6(recommendation.overage_cost),
                next_plan_name=recommendation.next_plan_name,
            )
            if recommendation is not None
            else None
        ),
    )


@router.post("/stack/cost", response_model=StackCostResponse)
def stack_cost(
    payload: StackCostRequest,
    request: Request,
) -> StackCostResponse:
    """Price a stack of services and report each one's share."""
    repository = _get_repository(request)
    engine = _get_engine(request)
    logger.info(
        "stack_cost_requested",
        extra={
            "event": "stack_cost_requested",
            "stack_size": len(payload.services),
        },
    )

    stack = engine.stack_cost(
        plan_selection={
            entry.service_id: entry.plan_index for entry in payload.services
        },
        simulated_values=payload.simulated_values,
    )

    return StackCostResponse(
        catalog_version=repository.catalog_version,
        totals=StackTotals(
            currency=repository.currency,
            base=_to_fixed_6(stack.base),
            usage=_to_fixed_6(stack.usage),
            overage=_to_fixed_6(stack.overage),
            total=_to_fixed_6(stack.total),
        ),
        services=[_breakdown_entry(b) for b in stack.services],
        distribution=[
            CostShareEntry(
                service_id=share.service_id,
                service_name=share.service_name,
                total=_to_fixed_6(share.total),
                share=_to_fixed_6(share.share),
            )
            for share in cost_distribution(stack)
        ],
        meta=_meta(engine),
    )


@router.get("/versions", response_model=VersionResponse)
def get_versions(request: Request) -> VersionResponse:
    """Return the active catalog version for this deployment."""
    repository = _get_repository(request)
    return VersionResponse(catalog_version=repository.catalog_version)


@router.get("/healthz", response_model=HealthResponse, include_in_schema=False)
def healthz(request: Request) -> HealthResponse:
    """Liveness/readiness probe."""
    repository = _get_repository(request)
    engine = _get_engine(request)
    return HealthResponse(
        status="ok",
        catalog_version=repository.catalog_version,
        engine_version=engine.engine_version,
    )
