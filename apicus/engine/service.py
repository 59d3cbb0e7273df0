from __future__ import annotations

from decimal import Decimal
from typing import Any, Mapping

from apicus.catalog.models import Service
from apicus.catalog.repository import CatalogRepository
from apicus.engine.cost import CostBreakdown
from apicus.engine.exceptions import (
    MetricNotFound,
    PlanNotFound,
    ServiceNotFound,
)
from apicus.engine.insights import UsageProjection, project_usage
from apicus.engine.metrics import UsageMetric
from apicus.engine.stack import (
    StackCost,
    aggregate_stack,
    service_cost,
    simulated_metrics,
)


class StackEngine:
    def __init__(
        self,
        repository: CatalogRepository,
        engine_version: str,
    ) -> None:
        """Bind the pure cost engine to a catalog of services."""
        self._repository = repository
        self._engine_version = engine_version

    @property
    def engine_version(self) -> str:
        """Return the engine version string."""
        return self._engine_version

    def service_metrics(
        self,
        *,
        service_id: str,
        plan_index: int = 0,
        simulated_values: Mapping[str, Any] | None = None,
    ) -> list[UsageMetric]:
        """Metrics for one service plan, with simulated values applied."""
        service = self._get_service(service_id)
        self._validate_plan_index(service, plan_index)
        return simulated_metrics(service, plan_index, simulated_values)

    def service_cost(
        self,
        *,
        service_id: str,
        plan_index: int = 0,
        simulated_values: Mapping[str, Any] | None = None,
    ) -> CostBreakdown:
        """Cost breakdown for one service plan."""
        service = self._get_service(service_id)
        self._validate_plan_index(service, plan_index)
        return service_cost(service, plan_index, simulated_values)

    def stack_cost(
        self,
        *,
        plan_selection: Mapping[str, int],
        simulated_values: Mapping[str, Any] | None = None,
    ) -> StackCost:
        """Aggregate cost across the services named in ``plan_selection``."""
        services: list[Service] = []
        for service_id, plan_index in plan_selection.items():
            service = self._get_service(service_id)
            self._validate_plan_index(service, plan_index)
            services.append(service)
        return aggregate_stack(services, plan_selection, simulated_values)

    def project(
        self,
        *,
        service_id: str,
        metric_slug: str,
        target_value: Decimal,
        plan_index: int = 0,
        timeframe_days: int,
    ) -> UsageProjection:
        """Project one metric of a service plan toward a target value."""
        service = self._get_service(service_id)
        self._validate_plan_index(service, plan_index)
        for metric in simulated_metrics(service, plan_index):
            if metric.slug == metric_slug:
                return project_usage(metric, target_value, timeframe_days)
        raise MetricNotFound(
            service.id, service.plans[plan_index].name, metric_slug
        )

    def _get_service(self, service_id: str) -> Service:
        service = self._repository.get_service(service_id)
        if service is None:
            raise ServiceNotFound(service_id)
        return service

    @staticmethod
    def _validate_plan_index(service: Service, plan_index: int) -> None:
        if service.plan_at(plan_index) is None:
            raise PlanNotFound(service.id, plan_index, len(service.plans))
