from __future__ import annotations

from decimal import Decimal
from typing import Any

from apicus.catalog.models import Service
from apicus.catalog.repository import parse_service
from apicus.engine.simulation import (
    SimulationKey,
    apply_simulated_values,
    coerce_value,
)
from apicus.engine.stack import (
    aggregate_stack,
    resolve_plan_index,
    service_cost,
    simulated_metrics,
)


def make_service(service_id: str, prices: list[float], cap: int) -> Service:
    """Build a service whose tiers share a seat cap that grows per tier."""
    return parse_service(
        {
            "_id": service_id,
            "metadata": {"service_name": service_id.title()},
            "enhanced_data": {
                "plans": [
                    {
                        "name": f"Tier {index}",
                        "limits": {
                            "users": {
                                "min": 1,
                                "max": cap * (index + 1),
                                "description": None,
                            }
                        },
                        "pricing": {"monthly": {"base_price": price}},
                    }
                    for index, price in enumerate(prices)
                ]
            },
        }
    )


def stack() -> list[Service]:
    return [
        make_service("crm", [0, 15, 45], cap=3),
        make_service("docs", [8, 20], cap=10),
        make_service("chat", [12], cap=50),
    ]


def test_stack_total_is_sum_of_services() -> None:
    """Sum each cost field across the per-service breakdowns."""
    services = stack()
    selection = {"crm": 1, "docs": 0, "chat": 0}
    simulated = {"crm-users": 7, "docs-users": 11, "chat-users": 60}

    result = aggregate_stack(services, selection, simulated)

    expected = [
        service_cost(service, selection[service.id], simulated)
        for service in services
    ]
    assert result.services == expected
    assert result.total == sum(b.total for b in expected)
    assert result.base == Decimal("35")
    # crm 15 -> 45, docs 8 -> 20, chat already at its top tier
    assert result.overage == Decimal("42")
    assert result.total == Decimal("77")
    assert result.total == result.base + result.usage + result.overage


def test_missing_selection_defaults_to_first_plan() -> None:
    """Price services without a plan selection at tier 0."""
    result = aggregate_stack(stack())

    assert [b.plan_name for b in result.services] == [
        "Tier 0",
        "Tier 0",
        "Tier 0",
    ]
    assert result.total == Decimal("20")


def test_out_of_range_selection_falls_back_to_first_plan() -> None:
    """Clamp unknown tier indices to the first plan."""
    service = make_service("docs", [8, 20], cap=10)

    assert resolve_plan_index(service, 9) == 0
    assert resolve_plan_index(service, -1) == 0
    assert resolve_plan_index(service, 1) == 1


def test_service_without_plans_contributes_zero() -> None:
    """Contribute a zero breakdown for a service with no plans."""
    empty = parse_service(
        {
            "_id": "ghost",
            "metadata": {"service_name": "Ghost"},
            "enhanced_data": {"plans": []},
        }
    )

    result = aggregate_stack([empty, *stack()])

    assert result.services[0].total == Decimal("0")
    assert result.services[0].plan_name is None
    assert result.total == Decimal("20")


def test_empty_stack() -> None:
    """Return zero totals for an empty stack."""
    result = aggregate_stack([])

    assert result.total == Decimal("0")
    assert result.services == []


def test_simulation_key_matches_metric_id() -> None:
    """Render override keys identically to the metric ids they target."""
    service = make_service("crm", [0, 15], cap=3)
    metrics = simulated_metrics(service, 0)

    key = SimulationKey.for_metric(metrics[0])

    assert str(key) == metrics[0].id == "crm-users"
    assert key == SimulationKey(service_id="crm", slug="users")


def test_service_ids_with_dashes_keep_their_keys() -> None:
    """Address metrics of dashed service ids without ambiguity."""
    service = make_service("google-workspace", [6, 12], cap=10)

    metrics = simulated_metrics(
        service, 0, {"google-workspace-users": Decimal("11")}
    )

    assert metrics[0].value == Decimal("11")


def test_non_numeric_override_is_ignored() -> None:
    """Keep the default value when an override is not numeric."""
    service = make_service("crm", [0, 15], cap=3)
    metrics = simulated_metrics(service, 0)

    updated = apply_simulated_values(metrics, {"crm-users": "lots"})

    assert updated == metrics


def test_coerce_value() -> None:
    """Coerce numbers and numeric strings only."""
    assert coerce_value(3) == Decimal("3")
    assert coerce_value("2.5") == Decimal("2.5")
    assert coerce_value(True) is None
    assert coerce_value("nan") is None
    assert coerce_value(None) is None
