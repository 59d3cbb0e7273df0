from __future__ import annotations

from typing import Any


class CatalogError(Exception):
    """A catalog lookup or stack request the engine cannot serve.

    Each subclass fixes the error code and HTTP status the API reports, so
    engine code raises by meaning and never deals in status codes.
    """

    code = "INVALID_REQUEST"
    status_code = 400

    def __init__(
        self,
        message: str,
        *,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.details = details or {}


class ServiceNotFound(CatalogError):
    code = "SERVICE_NOT_FOUND"
    status_code = 404

    def __init__(self, service_id: str) -> None:
        super().__init__(
            f"Service '{service_id}' is not in the catalog",
            details={"service_id": service_id},
        )


class PlanNotFound(CatalogError):
    code = "PLAN_NOT_FOUND"

    def __init__(
        self,
        service_id: str,
        plan_index: int,
        plan_count: int,
    ) -> None:
        super().__init__(
            f"Service '{service_id}' has no plan at tier {plan_index}",
            details={
                "service_id": service_id,
                "plan_index": plan_index,
                "min": 0,
                "max": plan_count - 1,
            },
        )


class MetricNotFound(CatalogError):
    code = "METRIC_NOT_FOUND"
    status_code = 404

    def __init__(self, service_id: str, plan_name: str, metric: str) -> None:
        super().__init__(
            f"Plan '{plan_name}' of '{service_id}' has no metric '{metric}'",
            details={
                "service_id": service_id,
                "plan_name": plan_name,
                "metric": metric,
            },
        )
