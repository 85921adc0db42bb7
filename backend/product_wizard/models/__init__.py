"""Aggregate model imports for Alembic auto-detection."""

from product_wizard.models.product import Product  # noqa: F401
