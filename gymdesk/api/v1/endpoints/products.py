from typing import Optional
from fastapi import APIRouter, Depends, Query
from sqlalchemy import or_
from sqlalchemy.orm import Session
from gymdesk.core.config import settings
from gymdesk.core.database import get_db
from gymdesk.core.db_transaction import db_transaction
from gymdesk.core.exceptions import Conflict
from gymdesk.core.validators import get_product_or_404
from gymdesk.models.product import Product
from gymdesk.models.user import User
from gymdesk.api.v1.endpoints.auth import get_current_user
from gymdesk.schemas.common import Pagination
from gymdesk.schemas.product import ProductCreate, ProductUpdate, ProductResponse, ProductListResponse
from gymdesk.core.logging_config import get_logger

logger = get_logger("products")

router = APIRouter()


def _ensure_sku_free(db: Session, sku: str, exclude_id: Optional[int] = None) -> None:
    query = db.query(Product.id).filter(Product.sku == sku)
    if exclude_id is not None:
        query = query.filter(Product.id != exclude_id)
    if query.first():
        raise Conflict("A product with this SKU already exists", code="sku_taken", details={"sku": sku})


@router.get("", response_model=ProductListResponse)
async def list_products(
    search: Optional[str] = Query(None, description="Name, description or SKU"),
    category: Optional[str] = Query(None),
    low_stock: Optional[bool] = Query(None, description="Only products at or below their minimum stock level"),
    is_active: Optional[bool] = Query(None),
    page: int = Query(1, ge=1),
    limit: int = Query(settings.DEFAULT_PAGE_SIZE, ge=1, le=settings.MAX_PAGE_SIZE),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    query = db.query(Product)
    if search:
        term = f"%{search.strip()}%"
        query = query.filter(or_(
            Product.name.ilike(term),
            Product.description.ilike(term),
            Product.sku.ilike(term),
        ))
    if category:
        query = query.filter(Product.category == category)
    if low_stock is True:
        query = query.filter(Product.stock_quantity <= Product.min_stock_level)
    elif low_stock is False:
        query = query.filter(Product.stock_quantity > Product.min_stock_level)
    if is_active is not None:
        query = query.filter(Product.is_active == is_active)

    total = query.count()
    products = (
        query.order_by(Product.name, Product.id)
        .offset((page - 1) * limit)
        .limit(limit)
        .all()
    )
    return ProductListResponse(
        data=[ProductResponse.model_validate(p) for p in products],
        pagination=Pagination.build(page, limit, total),
    )


@router.post("", response_model=ProductResponse, status_code=201)
async def create_product(
    product_in: ProductCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    sku = product_in.sku.strip()
    _ensure_sku_free(db, sku)
    product = Product(**product_in.model_dump(exclude={"sku"}), sku=sku)
    with db_transaction(db, "create_product"):
        db.add(product)
    db.refresh(product)
    logger.info(f"Created product {product.id} ({product.sku})")
    return product


@router.get("/{product_id}", response_model=ProductResponse)
async def get_product(
    product_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    return get_product_or_404(db, product_id)


@router.put("/{product_id}", response_model=ProductResponse)
async def update_product(
    product_id: int,
    product_in: ProductUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    product = get_product_or_404(db, product_id)
    update_data = product_in.model_dump(exclude_unset=True)
    for required in ("name", "category", "sku", "price", "stock_quantity", "min_stock_level", "is_active"):
        if required in update_data and update_data[required] is None:
            del update_data[required]
    if "sku" in update_data:
        update_data["sku"] = update_data["sku"].strip()
        _ensure_sku_free(db, update_data["sku"], exclude_id=product.id)
    with db_transaction(db, "update_product"):
        for field, value in update_data.items():
            setattr(product, field, value)
    db.refresh(product)
    return product


@router.delete("/{product_id}", response_model=ProductResponse)
async def delete_product(
    product_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    """Deactivate a product (soft delete); past sales keep referring to it."""
    product = get_product_or_404(db, product_id)
    with db_transaction(db, "deactivate_product"):
        product.is_active = False
    db.refresh(product)
    logger.info(f"Deactivated product {product.id}")
    return product
