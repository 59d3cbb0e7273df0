from __future__ import annotations

from decimal import Decimal
from typing import Any

from apicus.catalog.models import Plan, Service
from apicus.catalog.repository import parse_service
from apicus.engine.metrics import dedupe_metrics, extract_metrics
from apicus.engine.simulation import apply_simulated_values


def make_service(plans: list[dict[str, Any]]) -> Service:
    """Build a service from raw catalog plan documents."""
    return parse_service(
        {
            "_id": "svc",
            "metadata": {"service_name": "Svc", "pricing_types": []},
            "enhanced_data": {"plans": plans},
        }
    )


FULL_PLAN = {
    "name": "Basic",
    "limits": {
        "users": {"min": 2, "max": 10, "description": None},
        "storage": {"amount": 50, "unit": "GB", "description": None},
        "api": {
            "rate": {"amount": 20, "period": None, "description": None},
            "quota": {"amount": 5000, "period": None, "description": None},
        },
        "other_limits": [
            {"name": "Projects", "value": "3", "description": "Active"},
            {"name": "Seats Guest", "value": "unlimited", "description": ""},
        ],
    },
    "pricing": {
        "monthly": {"base_price": 12},
        "usage_components": [
            {"name": "SMS", "price_per_unit": 0.01, "unit": "message"}
        ],
    },
}

NEXT_PLAN = {
    "name": "Plus",
    "limits": {
        "users": {"min": 2, "max": 50, "description": None},
        "other_limits": [
            {"name": "Projects", "value": "20", "description": "Active"}
        ],
    },
    "pricing": {"monthly": {"base_price": 40}},
}


def by_slug(service: Service, plan: Plan, **kwargs: Any) -> dict[str, Any]:
    return {m.slug: m for m in extract_metrics(service, plan, **kwargs)}


def test_extracts_every_limit_category() -> None:
    """Produce one metric per limit category and usage component."""
    service = make_service([FULL_PLAN])
    metrics = extract_metrics(service, service.plans[0])

    assert [m.slug for m in metrics] == [
        "users",
        "storage",
        "api-rate",
        "api-quota",
        "other-projects",
        "other-seats-guest",
        "usage-sms",
    ]
    assert [m.type for m in metrics] == [
        "users",
        "storage",
        "rate",
        "quota",
        "other",
        "other",
        "usage",
    ]
    assert all(m.id == f"svc-{m.slug}" for m in metrics)
    assert all(m.base_price == Decimal("12") for m in metrics)


def test_default_values_and_thresholds() -> None:
    """Seed values from plan minimums and caps from plan maximums."""
    service = make_service([FULL_PLAN])
    metrics = by_slug(service, service.plans[0])

    assert metrics["users"].value == Decimal("2")
    assert metrics["users"].current_plan_threshold == Decimal("10")
    # storage allotment is both the baseline and the cap
    assert metrics["storage"].value == Decimal("50")
    assert metrics["storage"].current_plan_threshold == Decimal("50")
    assert metrics["api-rate"].value == Decimal("0")
    assert metrics["api-rate"].unit == "requests/second"
    assert metrics["api-quota"].unit == "requests/month"
    assert metrics["api-quota"].period == "month"
    assert metrics["other-projects"].current_plan_threshold == Decimal("3")
    assert metrics["other-seats-guest"].is_unlimited


def test_usage_components_are_uncapped() -> None:
    """Carry the per-unit price on usage metrics and no threshold."""
    service = make_service([FULL_PLAN])
    sms = by_slug(service, service.plans[0])["usage-sms"]

    assert sms.value == Decimal("0")
    assert sms.current_plan_threshold is None
    assert sms.cost_per_unit == Decimal("0.01")
    assert sms.unit == "message"


def test_adjacent_plan_linkage() -> None:
    """Surface the next plan's matching limit and price."""
    service = make_service([FULL_PLAN, NEXT_PLAN])
    metrics = by_slug(
        service, service.plans[0], next_plan=service.plans[1]
    )

    assert metrics["users"].next_plan is not None
    assert metrics["users"].next_plan.name == "Plus"
    assert metrics["users"].next_plan.limit == Decimal("50")
    assert metrics["users"].next_plan.price == Decimal("40")
    assert metrics["other-projects"].next_plan.limit == Decimal("20")
    # the next plan declares no storage cap
    assert metrics["storage"].next_plan.limit is None
    assert metrics["users"].prior_plan is None


def test_prior_plan_linkage() -> None:
    """Surface the prior plan's matching limit from the higher tier."""
    service = make_service([FULL_PLAN, NEXT_PLAN])
    metrics = by_slug(
        service, service.plans[1], prior_plan=service.plans[0]
    )

    assert metrics["users"].prior_plan is not None
    assert metrics["users"].prior_plan.name == "Basic"
    assert metrics["users"].prior_plan.limit == Decimal("10")
    assert metrics["users"].prior_plan.price == Decimal("12")
    assert metrics["users"].next_plan is None


def test_unrecognized_other_limit_is_listed_but_uncapped() -> None:
    """List unparseable limits without letting them drive cost."""
    plan = {
        "name": "Free",
        "limits": {
            "other_limits": [
                {"name": "Support", "value": "community", "description": ""}
            ]
        },
        "pricing": {"monthly": {"base_price": 0}},
    }
    service = make_service([plan])
    metrics = extract_metrics(service, service.plans[0])

    assert len(metrics) == 1
    assert metrics[0].slug == "other-support"
    assert metrics[0].current_plan_threshold is None


def test_missing_limits_yield_empty_list() -> None:
    """Return no metrics for a plan without limits or usage charges."""
    service = make_service(
        [{"name": "Bare", "pricing": {"monthly": {"base_price": 5}}}]
    )

    assert extract_metrics(service, service.plans[0]) == []
    assert extract_metrics(service, None) == []


def test_rate_without_amount_is_skipped() -> None:
    """Skip API windows that carry no amount."""
    plan = {
        "name": "Api",
        "limits": {
            "api": {
                "rate": {"amount": None, "period": None, "description": None},
                "quota": {"amount": 100, "period": "day", "description": None},
            }
        },
        "pricing": {"monthly": {"base_price": 5}},
    }
    service = make_service([plan])
    metrics = extract_metrics(service, service.plans[0])

    assert [m.slug for m in metrics] == ["api-quota"]
    assert metrics[0].unit == "requests/day"


def test_duplicate_other_limits_keep_first() -> None:
    """Keep the first of two limits that share an id and type."""
    plan = {
        "name": "Dup",
        "limits": {
            "other_limits": [
                {"name": "Projects", "value": "3", "description": ""},
                {"name": "projects", "value": "9", "description": ""},
            ]
        },
        "pricing": {"monthly": {"base_price": 5}},
    }
    service = make_service([plan])
    metrics = extract_metrics(service, service.plans[0])

    assert len(metrics) == 1
    assert metrics[0].current_plan_threshold == Decimal("3")


def test_extraction_is_deterministic() -> None:
    """Produce identical, duplicate-free output on repeated runs."""
    service = make_service([FULL_PLAN, NEXT_PLAN])
    first = extract_metrics(service, service.plans[0], service.plans[1])
    second = extract_metrics(service, service.plans[0], service.plans[1])

    assert first == second
    keys = [(m.id, m.type) for m in first]
    assert len(keys) == len(set(keys))
    assert dedupe_metrics(first) == first


def test_other_limit_named_like_builtin_gets_its_own_id() -> None:
    """Keep a custom limit called "Users" apart from the seat metric."""
    plan = {
        "name": "Clash",
        "limits": {
            "users": {"min": 1, "max": 5, "description": None},
            "other_limits": [
                {"name": "Users", "value": "100", "description": ""}
            ],
        },
        "pricing": {"monthly": {"base_price": 10}},
    }
    service = make_service([plan])
    metrics = extract_metrics(service, service.plans[0])

    assert [m.id for m in metrics] == ["svc-users", "svc-other-users"]
    assert len({m.id for m in metrics}) == len(metrics)

    overridden = apply_simulated_values(metrics, {"svc-users": 50})

    assert [m.value for m in overridden] == [Decimal("50"), Decimal("0")]


def test_negative_other_limit_is_uncapped() -> None:
    """Read a -1 limit as no cap, so zero usage is never over it."""
    plan = {
        "name": "Free",
        "limits": {
            "other_limits": [
                {"name": "Projects", "value": "-1", "description": ""}
            ]
        },
        "pricing": {"monthly": {"base_price": 0}},
    }
    service = make_service([plan])
    metrics = extract_metrics(service, service.plans[0])

    assert metrics[0].current_plan_threshold is None
    assert not metrics[0].is_over_threshold
