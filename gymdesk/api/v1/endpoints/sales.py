from datetime import date as date_type, datetime
from typing import Optional
from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session
from gymdesk.core.config import settings
from gymdesk.core.database import get_db
from gymdesk.core.exceptions import ValidationError
from gymdesk.core.timeutils import end_of_day, start_of_day
from gymdesk.core.validators import validate_date_range
from gymdesk.models.sale import Sale, PaymentStatusEnum
from gymdesk.models.user import User
from gymdesk.api.v1.endpoints.auth import get_current_user
from gymdesk.schemas.common import Pagination
from gymdesk.schemas.member import MemberSummary
from gymdesk.schemas.sale import SaleCreate, SaleStatusUpdate, SaleItemResponse, SaleResponse, SaleListResponse
from gymdesk.services import sale_service

router = APIRouter()


def _sale_response(sale: Sale) -> SaleResponse:
    return SaleResponse(
        id=sale.id,
        sale_number=sale.sale_number,
        member_id=sale.member_id,
        member=MemberSummary.model_validate(sale.member) if sale.member else None,
        total_amount=sale.total_amount,
        discount_amount=sale.discount_amount,
        final_amount=sale.final_amount,
        payment_method=sale.payment_method,
        payment_status=sale.payment_status,
        staff_id=sale.staff_id,
        notes=sale.notes,
        created_at=sale.created_at,
        items=[
            SaleItemResponse(
                id=item.id,
                product_id=item.product_id,
                product_name=item.product.name if item.product else None,
                sku=item.product.sku if item.product else None,
                quantity=item.quantity,
                unit_price=item.unit_price,
                total_price=item.total_price,
            )
            for item in sale.items
        ],
    )


@router.get("", response_model=SaleListResponse)
async def list_sales(
    date: Optional[date_type] = Query(None, description="Sales made on this (UTC) day"),
    start_date: Optional[datetime] = Query(None),
    end_date: Optional[datetime] = Query(None),
    payment_status: Optional[PaymentStatusEnum] = Query(None),
    member_id: Optional[int] = Query(None),
    page: int = Query(1, ge=1),
    limit: int = Query(settings.DEFAULT_PAGE_SIZE, ge=1, le=settings.MAX_PAGE_SIZE),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    if date is not None:
        if start_date is not None or end_date is not None:
            raise ValidationError(
                "Use either date or start_date/end_date, not both",
                code="conflicting_date_filters",
            )
        start, end = start_of_day(date), end_of_day(date)
    else:
        start, end = validate_date_range(start_date, end_date)

    sales, total = sale_service.list_sales(
        db,
        start=start,
        end=end,
        payment_status=payment_status,
        member_id=member_id,
        page=page,
        limit=limit,
    )
    return SaleListResponse(
        data=[_sale_response(s) for s in sales],
        pagination=Pagination.build(page, limit, total),
    )


@router.post("", response_model=SaleResponse, status_code=201)
async def create_sale(
    sale_in: SaleCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    """Record a sale. Every item is checked against stock before anything is written."""
    sale = sale_service.create_sale(db, sale_in, staff_id=current_user.id)
    return _sale_response(sale)


@router.get("/{sale_id}", response_model=SaleResponse)
async def get_sale(
    sale_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    return _sale_response(sale_service.get_sale(db, sale_id))


@router.patch("/{sale_id}/status", response_model=SaleResponse)
async def update_sale_status(
    sale_id: int,
    status_in: SaleStatusUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    sale = sale_service.get_sale(db, sale_id)
    sale_service.set_payment_status(db, sale, status_in.payment_status)
    return _sale_response(sale_service.get_sale(db, sale_id))
