"""Read-only endpoints over the mirrored tables."""

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from shopmirror.core.database import get_db
from shopmirror.models.database import ShopifyCustomer, ShopifyOrder, ShopifyProduct
from shopmirror.schemas.responses import CustomerResponse, OrderResponse, ProductResponse

router = APIRouter(prefix="/api", tags=["mirror"])


async def _list_rows(db: AsyncSession, model, limit: int, offset: int):
    result = await db.execute(select(model).order_by(model.id).limit(limit).offset(offset))
    return result.scalars().all()


async def _get_row(db: AsyncSession, model, row_id: int):
    row = await db.get(model, row_id)
    if row is None:
        raise HTTPException(status_code=404, detail="Not Found")
    return row


@router.get("/orders", response_model=list[OrderResponse])
async def list_orders(
    limit: int = Query(100, ge=1, le=1000),
    offset: int = Query(0, ge=0),
    db: AsyncSession = Depends(get_db),
):
    """List mirrored orders."""
    return await _list_rows(db, ShopifyOrder, limit, offset)


@router.get("/orders/{order_id}", response_model=OrderResponse)
async def get_order(order_id: int, db: AsyncSession = Depends(get_db)):
    """Get one mirrored order by Shopify id."""
    return await _get_row(db, ShopifyOrder, order_id)


@router.get("/products", response_model=list[ProductResponse])
async def list_products(
    limit: int = Query(100, ge=1, le=1000),
    offset: int = Query(0, ge=0),
    db: AsyncSession = Depends(get_db),
):
    """List mirrored products."""
    return await _list_rows(db, ShopifyProduct, limit, offset)


@router.get("/products/{product_id}", response_model=ProductResponse)
async def get_product(product_id: int, db: AsyncSession = Depends(get_db)):
    """Get one mirrored product by Shopify id."""
    return await _get_row(db, ShopifyProduct, product_id)


@router.get("/customers", response_model=list[CustomerResponse])
async def list_customers(
    limit: int = Query(100, ge=1, le=1000),
    offset: int = Query(0, ge=0),
    db: AsyncSession = Depends(get_db),
):
    """List mirrored customers."""
    return await _list_rows(db, ShopifyCustomer, limit, offset)


@router.get("/customers/{customer_id}", response_model=CustomerResponse)
async def get_customer(customer_id: int, db: AsyncSession = Depends(get_db)):
    """Get one mirrored customer by Shopify id."""
    return await _get_row(db, ShopifyCustomer, customer_id)
