"""Management CLI.

Usage:
    python -m product_wizard.cli create-tables   # Create tables from the ORM metadata
    python -m product_wizard.cli list-products   # Show stored products
"""

import sys

from sqlalchemy import create_engine, select

from product_wizard.config import settings
from product_wizard.database import Base
from product_wizard.models import Product


def create_tables():
    """Create missing tables (development shortcut for `alembic upgrade head`)."""
    engine = create_engine(settings.database_url_sync)
    Base.metadata.create_all(engine)
    print(f"  Created: {', '.join(sorted(Base.metadata.tables))}")


def list_products():
    engine = create_engine(settings.database_url_sync)
    with engine.connect() as conn:
        rows = conn.execute(
            select(Product.id, Product.name, Product.price, Product.category)
            .order_by(Product.created_at)
        ).all()
    for row in rows:
        print(f"  {row.id}  {row.name} | {row.price} | {row.category}")
    print(f"\n{len(rows)} product(s)")


if __name__ == "__main__":
    cmd = sys.argv[1] if len(sys.argv) > 1 else ""
    if cmd == "create-tables":
        create_tables()
    elif cmd == "list-products":
        list_products()
    else:
        print("Usage: python -m product_wizard.cli [create-tables|list-products]")
