"""Service catalog package exports."""

from apicus.catalog.models import Plan, Service
from apicus.catalog.repository import CatalogRepository

__all__ = ["CatalogRepository", "Plan", "Service"]
