from __future__ import annotations

import json
import logging
from decimal import Decimal, InvalidOperation
from pathlib import Path
from typing import Any

from jsonschema import Draft202012Validator

from apicus.catalog import models as catalog_models

logger = logging.getLogger(__name__)


class CatalogRepository:
    def __init__(self, root_dir: Path | None = None) -> None:
        """Initialize catalog paths, validators, and lazy caches."""
        self._root_dir = root_dir or Path(__file__).resolve().parents[2]
        self._catalog_dir = self._root_dir / "catalog"
        self._schema_dir = self._root_dir / "schema"

        self._service_validator = Draft202012Validator(
            self._read_json(self._schema_dir / "service.schema.json")
        )
        self._meta_validator = Draft202012Validator(
            self._read_json(self._schema_dir / "catalog_meta.schema.json")
        )

        self._meta = self._load_meta()
        self._services: dict[str, catalog_models.Service] | None = None

    @property
    def catalog_version(self) -> str:
        """Return the active catalog version from catalog metadata."""
        return self._meta.catalog_version

    @property
    def currency(self) -> str:
        """Return the catalog currency code."""
        return self._meta.currency

    @property
    def meta(self) -> catalog_models.CatalogMeta:
        return self._meta

    def list_services(
        self,
        pricing_type: str | None = None,
    ) -> list[catalog_models.Service]:
        """List services ordered by name, optionally by pricing type."""
        services = sorted(
            self._get_services().values(),
            key=lambda s: (s.service_name.lower(), s.id),
        )
        if pricing_type is None:
            return services
        return [s for s in services if pricing_type in s.pricing_types]

    def get_service(self, service_id: str) -> catalog_models.Service | None:
        return self._get_services().get(service_id)

    # ------------------------------------------------------------------
    # Internal loading
    # ------------------------------------------------------------------

    def _get_services(self) -> dict[str, catalog_models.Service]:
        if self._services is None:
            self._services = self._load_services()
        return self._services

    def _load_meta(self) -> catalog_models.CatalogMeta:
        raw_meta = self._read_json(self._catalog_dir / "catalog_meta.json")
        self._validate_schema(
            self._meta_validator,
            raw_meta,
            "catalog_meta.json",
        )
        return catalog_models.CatalogMeta(
            catalog_version=raw_meta["catalog_version"],
            published_at=raw_meta["published_at"],
            currency=raw_meta["currency"],
            schema_version=raw_meta["schema_version"],
        )

    def _load_services(self) -> dict[str, catalog_models.Service]:
        services: dict[str, catalog_models.Service] = {}
        services_dir = self._catalog_dir / "services"
        for path in sorted(services_dir.glob("*.json")):
            raw = self._read_json(path)
            self._validate_schema(self._service_validator, raw, path.name)
            service = parse_service(raw, default_currency=self.currency)
            if service.id in services:
                raise ValueError(
                    f"Duplicate service '{service.id}' in {path.name}"
                )
            services[service.id] = service

        logger.info(
            "catalog_loaded",
            extra={
                "event": "catalog_loaded",
                "service_count": len(services),
            },
        )
        return services

    @staticmethod
    def _read_json(path: Path) -> dict[str, Any]:
        return json.loads(path.read_text(encoding="utf-8"))

    @staticmethod
    def _validate_schema(
        validator: Draft202012Validator,
        payload: dict[str, Any],
        filename: str,
    ) -> None:
        errors = sorted(
            validator.iter_errors(payload),
            key=lambda err: list(err.path),
        )
        if not errors:
            return

        first_error = errors[0]
        path = ".".join(str(part) for part in first_error.path)
        path_suffix = f" at '{path}'" if path else ""
        raise ValueError(
            (
                "Schema validation failed for "
                f"{filename}{path_suffix}: {first_error.message}"
            )
        )


def parse_service(
    raw: dict[str, Any],
    default_currency: str = "USD",
) -> catalog_models.Service:
    """Build a Service from a catalog document.

    Plans are put into tier order here: a stable sort by base price with
    custom-priced plans kept last. Everything downstream that resolves a
    "next" or "prior" plan relies on that order.
    """
    metadata = raw.get("metadata") or {}
    enhanced = raw.get("enhanced_data") or {}
    service_info = enhanced.get("service_info") or {}
    service_id = str(raw["_id"])

    plans = tuple(_parse_plan(p) for p in enhanced.get("plans") or [])
    ordered = _order_plans(plans)
    if ordered != plans:
        logger.warning(
            "plans_reordered",
            extra={"event": "plans_reordered", "service_id": service_id},
        )

    return catalog_models.Service(
        id=service_id,
        service_name=str(
            metadata.get("service_name")
            or service_info.get("name")
            or service_id
        ),
        plans=ordered,
        pricing_types=tuple(metadata.get("pricing_types") or ()),
        currency=service_info.get("currency") or default_currency,
        metadata=dict(metadata),
    )


def _order_plans(
    plans: tuple[catalog_models.Plan, ...],
) -> tuple[catalog_models.Plan, ...]:
    return tuple(
        sorted(plans, key=lambda p: (p.custom_pricing, p.base_price))
    )


def _parse_plan(raw: dict[str, Any]) -> catalog_models.Plan:
    pricing = raw.get("pricing") or {}
    features = raw.get("features") or {}

    categories: dict[str, tuple[str, ...]] = {}
    for category in features.get("categories") or []:
        names = tuple(
            str(f.get("name") or f.get("description") or "")
            for f in category.get("features") or []
        )
        categories[str(category.get("name", ""))] = names

    return catalog_models.Plan(
        name=str(raw.get("name", "")),
        base_price=_base_price(pricing),
        is_free_tier=bool(raw.get("is_free_tier", False)),
        custom_pricing=bool(pricing.get("custom_pricing", False)),
        limits=_parse_limits(raw.get("limits")),
        usage_components=tuple(
            catalog_models.UsageComponent(
                name=str(component.get("name", "")),
                price_per_unit=_to_decimal(component.get("price_per_unit"))
                or Decimal("0"),
                unit=str(component.get("unit") or "units"),
            )
            for component in pricing.get("usage_components") or []
        ),
        highlighted_features=tuple(features.get("highlighted") or ()),
        feature_categories=categories,
    )


def _base_price(pricing: dict[str, Any]) -> Decimal:
    monthly = pricing.get("monthly") or {}
    price = _to_decimal(monthly.get("base_price"))
    if price is None:
        original = pricing.get("original") or {}
        price = _to_decimal(original.get("amount"))
    return price if price is not None else Decimal("0")


def _parse_limits(
    raw: dict[str, Any] | None,
) -> catalog_models.PlanLimits | None:
    if not raw:
        return None

    users = raw.get("users")
    storage = raw.get("storage")
    api = raw.get("api")

    return catalog_models.PlanLimits(
        users=(
            catalog_models.UsersLimit(
                min=_to_decimal(users.get("min")),
                max=_to_decimal(users.get("max")),
                description=users.get("description"),
            )
            if users
            else None
        ),
        storage=(
            catalog_models.StorageLimit(
                amount=_to_decimal(storage.get("amount")),
                unit=storage.get("unit"),
                description=storage.get("description"),
            )
            if storage
            else None
        ),
        api=(
            catalog_models.ApiLimits(
                rate=_parse_window(api.get("rate")),
                quota=_parse_window(api.get("quota")),
            )
            if api
            else None
        ),
        other_limits=tuple(
            catalog_models.OtherLimit(
                name=str(limit.get("name", "")),
                value=_limit_text(limit.get("value")),
                description=limit.get("description"),
            )
            for limit in raw.get("other_limits") or []
        ),
    )


def _parse_window(
    raw: dict[str, Any] | None,
) -> catalog_models.ApiWindow | None:
    if not raw:
        return None
    return catalog_models.ApiWindow(
        amount=_to_decimal(raw.get("amount")),
        period=raw.get("period"),
        description=raw.get("description"),
    )


def _to_decimal(value: Any) -> Decimal | None:
    if value is None or isinstance(value, bool):
        return None
    try:
        result = Decimal(str(value))
    except InvalidOperation:
        return None
    if not result.is_finite():
        return None
    return result


def _limit_text(value: Any) -> str:
    return "" if value is None else str(value)
