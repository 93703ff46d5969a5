from __future__ import annotations

import uuid
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.deps.auth import get_current_user
from app.api.deps.roles import require_admin
from app.core.enums import PricingMode, ProductStatus, plain_values
from app.core.pricing import (
    HUNDRED,
    PriceSnapshot,
    compute_price,
    markup_margin_percent,
    quantize_money,
    record_price_change,
    resolve_price,
)
from app.crud.products import SqlPriceHistoryStore, list_price_history, list_products
from app.db.session import get_db
from app.models.product import Product
from app.models.user import User
from app.schemas.products import (
    PriceHistoryOut,
    PricePreviewRequest,
    PricePreviewResponse,
    ProductCreate,
    ProductResponse,
    ProductUpdate,
    SellerProductResponse,
)

router = APIRouter(prefix="/products", tags=["products"])

# explicit nulls on these are ignored rather than written
_NOT_NULL_FIELDS = frozenset(
    {
        "name",
        "cost",
        "pricing_mode",
        "profit_margin_percent",
        "tax_percent",
        "stock",
        "low_stock_threshold",
        "max_discount_percent",
        "status",
    }
)


def _to_product_response(p: Product) -> ProductResponse:
    return ProductResponse(
        id=p.id,
        name=p.name,
        sku=p.sku,
        category=p.category,
        description=p.description,
        image_url=p.image_url,
        cost=p.cost,
        price=p.price,
        pricing_mode=p.pricing_mode,
        profit_margin_percent=p.profit_margin_percent,
        tax_percent=p.tax_percent,
        margin_percent=markup_margin_percent(p.price, p.cost),
        stock=p.stock,
        low_stock_threshold=p.low_stock_threshold,
        is_low_stock=p.is_low_stock,
        max_discount_percent=p.max_discount_percent,
        status=p.status,
        created_at=p.created_at,
        updated_at=p.updated_at,
    )


async def _get_product_or_404(db: AsyncSession, product_id: uuid.UUID) -> Product:
    product = await db.get(Product, product_id)
    if not product:
        raise HTTPException(status_code=404, detail="Product not found")
    return product


async def _save_with_history(
    db: AsyncSession,
    product: Product,
    before: Optional[PriceSnapshot],
    user: User,
) -> Product:
    await db.commit()
    await db.refresh(product)

    # best-effort, the product write above is already durable
    await record_price_change(
        SqlPriceHistoryStore(db),
        product.id,
        before,
        PriceSnapshot.of(product),
        changed_by=user.id,
    )
    await db.refresh(product)
    return product


# -----------------------------
# Pricing helper for forms
# -----------------------------
@router.post("/price-preview", response_model=PricePreviewResponse)
async def price_preview(
    payload: PricePreviewRequest,
    _: User = Depends(require_admin),
) -> PricePreviewResponse:
    """
    Stateless calculated-mode price for a cost/margin/tax triple.
    margin_amount and tax_amount are the percentages applied to the cost,
    as shown next to the form. fallback_to_cost is set when
    margin + tax >= 100 and the cost is used as price.
    """
    price = quantize_money(compute_price(payload.cost, payload.profit_margin_percent, payload.tax_percent))
    return PricePreviewResponse(
        price=price,
        margin_amount=quantize_money(payload.cost * payload.profit_margin_percent / HUNDRED),
        tax_amount=quantize_money(payload.cost * payload.tax_percent / HUNDRED),
        fallback_to_cost=(payload.profit_margin_percent + payload.tax_percent) >= HUNDRED,
    )


# -----------------------------
# Seller catalog (active products, no cost data)
# -----------------------------
@router.get("/catalog", response_model=List[SellerProductResponse])
async def list_catalog(
    db: AsyncSession = Depends(get_db),
    _: User = Depends(get_current_user),
    search: Optional[str] = Query(None, max_length=120),
    limit: int = Query(50, ge=1, le=200),
    offset: int = Query(0, ge=0),
):
    rows, _total = await list_products(
        db, search=search, status=ProductStatus.ACTIVE.value, limit=limit, offset=offset
    )
    return rows


@router.get("/catalog/{product_id}", response_model=SellerProductResponse)
async def get_catalog_product(
    product_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
    _: User = Depends(get_current_user),
):
    product = await db.get(Product, product_id)
    if not product or product.status != ProductStatus.ACTIVE.value:
        raise HTTPException(status_code=404, detail="Product not found")
    return product


# -----------------------------
# Admin catalog management
# -----------------------------
@router.get("", response_model=List[ProductResponse])
async def list_all_products(
    db: AsyncSession = Depends(get_db),
    _: User = Depends(require_admin),
    search: Optional[str] = Query(None, max_length=120),
    status_filter: Optional[ProductStatus] = Query(None, alias="status"),
    low_stock: bool = Query(False),
    limit: int = Query(50, ge=1, le=200),
    offset: int = Query(0, ge=0),
):
    rows, _total = await list_products(
        db,
        search=search,
        status=status_filter.value if status_filter else None,
        low_stock=low_stock,
        limit=limit,
        offset=offset,
    )
    return [_to_product_response(p) for p in rows]


@router.post("", response_model=ProductResponse, status_code=status.HTTP_201_CREATED)
async def create_product(
    payload: ProductCreate,
    db: AsyncSession = Depends(get_db),
    admin: User = Depends(require_admin),
):
    data = plain_values(payload.model_dump())

    if data["pricing_mode"] == PricingMode.MANUAL.value and data.get("price") is None:
        raise HTTPException(status_code=422, detail="price is required in manual pricing mode")

    data["price"] = resolve_price(
        pricing_mode=data["pricing_mode"],
        cost=data["cost"],
        margin_percent=data["profit_margin_percent"],
        tax_percent=data["tax_percent"],
        manual_price=data.get("price"),
    )
    data["cost"] = quantize_money(data["cost"])

    product = Product(**data)
    db.add(product)
    product = await _save_with_history(db, product, None, admin)
    return _to_product_response(product)


@router.get("/{product_id}", response_model=ProductResponse)
async def get_product(
    product_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
    _: User = Depends(require_admin),
):
    return _to_product_response(await _get_product_or_404(db, product_id))


@router.patch("/{product_id}", response_model=ProductResponse)
async def update_product(
    product_id: uuid.UUID,
    payload: ProductUpdate,
    db: AsyncSession = Depends(get_db),
    admin: User = Depends(require_admin),
):
    """
    Partial update. In calculated mode the price is always re-derived from the
    merged cost/margin/tax; in manual mode an explicit price wins, otherwise
    the stored price is kept.
    """
    product = await _get_product_or_404(db, product_id)
    before = PriceSnapshot.of(product)

    data = plain_values(payload.model_dump(exclude_unset=True))
    manual_price = data.pop("price", None)

    for field, value in data.items():
        if value is None and field in _NOT_NULL_FIELDS:
            continue
        setattr(product, field, value)

    product.cost = quantize_money(product.cost)
    if product.pricing_mode == PricingMode.CALCULATED.value:
        product.price = resolve_price(
            pricing_mode=product.pricing_mode,
            cost=product.cost,
            margin_percent=product.profit_margin_percent,
            tax_percent=product.tax_percent,
        )
    elif manual_price is not None:
        product.price = quantize_money(manual_price)

    product = await _save_with_history(db, product, before, admin)
    return _to_product_response(product)


@router.delete("/{product_id}", response_model=ProductResponse)
async def deactivate_product(
    product_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
    _: User = Depends(require_admin),
):
    """Soft delete: products referenced by sales are never removed, only deactivated."""
    product = await _get_product_or_404(db, product_id)
    product.status = ProductStatus.INACTIVE.value
    await db.commit()
    await db.refresh(product)
    return _to_product_response(product)


@router.get("/{product_id}/price-history", response_model=List[PriceHistoryOut])
async def get_price_history(
    product_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
    _: User = Depends(require_admin),
):
    """Latest 20 entries, newest first."""
    await _get_product_or_404(db, product_id)
    return await list_price_history(db, product_id)
