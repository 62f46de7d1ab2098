"""Produce catalog service package."""

from agrimarket.services.catalog.service import ProduceCatalog

__all__ = ["ProduceCatalog"]
