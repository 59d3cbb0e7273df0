from __future__ import annotations

import json
import shutil
from decimal import Decimal
from pathlib import Path

import pytest

from apicus.catalog.repository import CatalogRepository

ROOT_DIR = Path(__file__).resolve().parents[1]


def make_repository() -> CatalogRepository:
    """Create a repository bound to the bundled sample catalog."""
    return CatalogRepository(root_dir=ROOT_DIR)


def copy_catalog(tmp_path: Path) -> Path:
    """Copy the schemas and catalog into a scratch root for mutation."""
    shutil.copytree(ROOT_DIR / "schema", tmp_path / "schema")
    shutil.copytree(ROOT_DIR / "catalog", tmp_path / "catalog")
    return tmp_path


def test_catalog_metadata() -> None:
    """Expose the catalog version and currency from metadata."""
    repository = make_repository()

    assert repository.catalog_version == "2026-10-01"
    assert repository.currency == "USD"


def test_list_services_sorted_by_name() -> None:
    """List every bundled service ordered by name."""
    repository = make_repository()

    names = [s.service_name for s in repository.list_services()]

    assert names == ["Acme", "CloudVault", "MailBolt"]


def test_filter_by_pricing_type() -> None:
    """Filter services by a declared pricing type."""
    repository = make_repository()

    usage_based = repository.list_services("usage_based")

    assert [s.id for s in usage_based] == ["cloudvault"]


def test_plans_are_put_in_tier_order() -> None:
    """Sort plans by price with custom-priced plans last."""
    service = make_repository().get_service("mailbolt")

    assert service is not None
    assert [p.name for p in service.plans] == [
        "Essentials",
        "Growth",
        "Enterprise",
    ]
    # Essentials only publishes an original amount
    assert service.plans[0].base_price == Decimal("15")
    assert service.plans[2].custom_pricing


def test_parsed_plan_fields() -> None:
    """Parse limits, usage components and features into models."""
    service = make_repository().get_service("cloudvault")

    assert service is not None
    free = service.plans[0]
    assert free.is_free_tier
    assert free.limits is not None
    assert free.limits.storage.amount == Decimal("5")
    assert free.limits.api.quota.amount == Decimal("10000")
    assert [c.name for c in free.usage_components] == ["Bandwidth"]
    assert free.usage_components[0].price_per_unit == Decimal("0.09")
    assert free.feature_categories == {"Security": ("Encryption at rest",)}
    assert service.lowest_price == Decimal("0")


def test_unknown_service() -> None:
    """Return None for ids missing from the catalog."""
    assert make_repository().get_service("nope") is None


def test_schema_violation_is_rejected(tmp_path: Path) -> None:
    """Fail loudly on catalog documents that break the schema."""
    root = copy_catalog(tmp_path)
    bad = {"_id": "bad", "metadata": {}, "enhanced_data": {"plans": []}}
    (root / "catalog" / "services" / "bad.json").write_text(
        json.dumps(bad), encoding="utf-8"
    )

    repository = CatalogRepository(root_dir=root)
    with pytest.raises(ValueError, match="bad.json"):
        repository.list_services()


def test_duplicate_service_ids_are_rejected(tmp_path: Path) -> None:
    """Reject two documents that declare the same service id."""
    root = copy_catalog(tmp_path)
    services_dir = root / "catalog" / "services"
    shutil.copy(services_dir / "acme.json", services_dir / "acme-copy.json")

    repository = CatalogRepository(root_dir=root)
    with pytest.raises(ValueError, match="Duplicate service 'acme'"):
        repository.list_services()
