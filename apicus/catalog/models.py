from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any


@dataclass(frozen=True)
class UsersLimit:
    min: Decimal | None
    max: Decimal | None
    description: str | None = None


@dataclass(frozen=True)
class StorageLimit:
    amount: Decimal | None
    unit: str | None = None
    description: str | None = None


@dataclass(frozen=True)
class ApiWindow:
    # a request allowance per period, used for both rate and quota caps
    amount: Decimal | None
    period: str | None = None
    description: str | None = None


@dataclass(frozen=True)
class ApiLimits:
    rate: ApiWindow | None = None
    quota: ApiWindow | None = None


@dataclass(frozen=True)
class OtherLimit:
    name: str
    value: str
    description: str | None = None


@dataclass(frozen=True)
class PlanLimits:
    users: UsersLimit | None = None
    storage: StorageLimit | None = None
    api: ApiLimits | None = None
    other_limits: tuple[OtherLimit, ...] = ()


@dataclass(frozen=True)
class UsageComponent:
    name: str
    price_per_unit: Decimal
    unit: str


@dataclass(frozen=True)
class Plan:
    name: str
    base_price: Decimal = Decimal("0")
    is_free_tier: bool = False
    custom_pricing: bool = False
    limits: PlanLimits | None = None
    usage_components: tuple[UsageComponent, ...] = ()
    highlighted_features: tuple[str, ...] = ()
    feature_categories: dict[str, tuple[str, ...]] = field(
        default_factory=dict
    )


@dataclass(frozen=True)
class Service:
    id: str
    service_name: str
    plans: tuple[Plan, ...]
    pricing_types: tuple[str, ...] = ()
    currency: str = "USD"
    metadata: dict[str, Any] = field(default_factory=dict)

    def plan_at(self, index: int) -> Plan | None:
        """Return the plan at a tier index, or None outside the tier range."""
        if 0 <= index < len(self.plans):
            return self.plans[index]
        return None

    @property
    def lowest_price(self) -> Decimal:
        """Return the cheapest published base price across all plans."""
        if not self.plans:
            return Decimal("0")
        return min(plan.base_price for plan in self.plans)


@dataclass(frozen=True)
class CatalogMeta:
    catalog_version: str
    published_at: str
    currency: str
    schema_version: int
