from __future__ import annotations

import dataclasses
import logging
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from typing import Any, Mapping

from apicus.engine.metrics import UsageMetric, metric_id

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SimulationKey:
    """Address of one simulated usage value.

    Rendered as ``"{service_id}-{slug}"``, which is exactly the id of the
    metric it overrides. Every caller builds override keys through this
    type so that one metric has exactly one key.
    """

    service_id: str
    slug: str

    @classmethod
    def for_metric(cls, metric: UsageMetric) -> "SimulationKey":
        return cls(service_id=metric.service_id, slug=metric.slug)

    def __str__(self) -> str:
        return metric_id(self.service_id, self.slug)


def coerce_value(raw: Any) -> Decimal | None:
    """Coerce a simulated value to Decimal, or None when it is not numeric."""
    if raw is None or isinstance(raw, bool):
        return None
    try:
        value = Decimal(str(raw).strip())
    except InvalidOperation:
        return None
    if not value.is_finite():
        return None
    return value


def apply_simulated_values(
    metrics: list[UsageMetric],
    simulated_values: Mapping[str, Any] | None,
) -> list[UsageMetric]:
    """Return metrics with overridden values where the table has a key."""
    if not simulated_values:
        return list(metrics)

    updated: list[UsageMetric] = []
    for metric in metrics:
        key = str(SimulationKey.for_metric(metric))
        if key not in simulated_values:
            updated.append(metric)
            continue

        value = coerce_value(simulated_values[key])
        if value is None:
            logger.warning(
                "simulated_value_ignored",
                extra={
                    "event": "simulated_value_ignored",
                    "service_id": metric.service_id,
                    "metric_key": key,
                },
            )
            updated.append(metric)
            continue

        updated.append(dataclasses.replace(metric, value=value))
    return updated
