"""Read-only product routes. Products are created through the wizard."""

from fastapi import APIRouter, Depends, Query
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from product_wizard.database import get_db
from product_wizard.middleware.exceptions import ResourceNotFoundError
from product_wizard.models.product import Product
from product_wizard.schemas.common import PaginatedResponse
from product_wizard.schemas.product import ProductOut

router = APIRouter()


@router.get("/", response_model=PaginatedResponse[ProductOut])
async def list_products(
    limit: int = Query(50, ge=1, le=500),
    offset: int = Query(0, ge=0),
    db: AsyncSession = Depends(get_db),
):
    """List products, newest first."""
    total = await db.scalar(select(func.count(Product.id))) or 0

    items_stmt = (
        select(Product)
        .order_by(Product.created_at.desc())
        .limit(limit)
        .offset(offset)
    )
    result = await db.execute(items_stmt)
    items = result.scalars().all()

    return PaginatedResponse(
        items=[ProductOut.model_validate(item) for item in items],
        total=total,
        limit=limit,
        offset=offset,
    )


@router.get("/{product_id}", response_model=ProductOut, name="get_product")
async def get_product(
    product_id: str,
    db: AsyncSession = Depends(get_db),
):
    product = await db.get(Product, product_id)
    if not product:
        raise ResourceNotFoundError("Product", product_id)
    return product
