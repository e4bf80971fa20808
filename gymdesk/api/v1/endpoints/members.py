from typing import List, Optional
from fastapi import APIRouter, Depends, Query, Response
from sqlalchemy import or_
from sqlalchemy.orm import Session
from gymdesk.core.config import settings
from gymdesk.core.database import get_db
from gymdesk.core.db_transaction import db_transaction
from gymdesk.core.validators import get_member_or_404, get_plan_or_404
from gymdesk.models.member import Member
from gymdesk.models.user import User
from gymdesk.api.v1.endpoints.auth import get_current_user
from gymdesk.schemas.common import Pagination
from gymdesk.schemas.member import MemberCreate, MemberUpdate, MemberResponse, MemberListResponse
from gymdesk.schemas.subscription import SubscriptionCreate, SubscriptionResponse, SubscriptionSummary
from gymdesk.services import member_service, subscription_service

router = APIRouter()


def _member_response(db: Session, member: Member, with_qr: bool = False) -> MemberResponse:
    response = MemberResponse.model_validate(member)
    current = subscription_service.get_current_subscription(db, member.id)
    if current is not None:
        response.current_subscription = SubscriptionSummary.model_validate(current)
    if with_qr:
        response.qr_code_image = member_service.render_qr_data_url(member.member_code)
    return response


@router.get("", response_model=MemberListResponse)
async def list_members(
    search: Optional[str] = Query(None, description="Name, email or member code"),
    is_active: Optional[bool] = Query(None),
    page: int = Query(1, ge=1),
    limit: int = Query(settings.DEFAULT_PAGE_SIZE, ge=1, le=settings.MAX_PAGE_SIZE),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    query = db.query(Member)
    if search:
        term = f"%{search.strip()}%"
        query = query.filter(or_(
            Member.first_name.ilike(term),
            Member.last_name.ilike(term),
            Member.email.ilike(term),
            Member.member_code.ilike(term),
        ))
    if is_active is not None:
        query = query.filter(Member.is_active == is_active)

    total = query.count()
    members = (
        query.order_by(Member.created_at.desc(), Member.id.desc())
        .offset((page - 1) * limit)
        .limit(limit)
        .all()
    )
    return MemberListResponse(
        data=[_member_response(db, m) for m in members],
        pagination=Pagination.build(page, limit, total),
    )


@router.post("", response_model=MemberResponse, status_code=201)
async def create_member(
    member_in: MemberCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    """Create a member; a membership_plan_id opens the first subscription too."""
    member = member_service.create_member(db, member_in)
    return _member_response(db, member, with_qr=True)


@router.get("/{member_id}", response_model=MemberResponse)
async def get_member(
    member_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    member = get_member_or_404(db, member_id)
    return _member_response(db, member, with_qr=True)


@router.put("/{member_id}", response_model=MemberResponse)
async def update_member(
    member_id: int,
    member_in: MemberUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    member = get_member_or_404(db, member_id)
    member = member_service.update_member(db, member, member_in)
    return _member_response(db, member, with_qr=True)


@router.delete("/{member_id}", response_model=MemberResponse)
async def delete_member(
    member_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    """Deactivate a member (soft delete)"""
    member = get_member_or_404(db, member_id)
    member = member_service.deactivate_member(db, member)
    return _member_response(db, member)


@router.get("/{member_id}/qr-code")
async def get_member_qr_code(
    member_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    """PNG of the member's check-in QR code"""
    member = get_member_or_404(db, member_id)
    png = member_service.render_qr_png(member.member_code)
    return Response(
        content=png,
        media_type="image/png",
        headers={"Content-Disposition": f'inline; filename="member-{member.id}-qr.png"'},
    )


@router.get("/{member_id}/subscriptions", response_model=List[SubscriptionResponse])
async def list_member_subscriptions(
    member_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    get_member_or_404(db, member_id)
    return subscription_service.list_member_subscriptions(db, member_id)


@router.post("/{member_id}/subscriptions", response_model=SubscriptionResponse, status_code=201)
async def create_member_subscription(
    member_id: int,
    subscription_in: SubscriptionCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    member = get_member_or_404(db, member_id)
    plan = get_plan_or_404(db, subscription_in.plan_id)
    with db_transaction(db, "create_subscription"):
        subscription = subscription_service.open_subscription(
            db,
            member,
            plan,
            start_date=subscription_in.start_date,
            price=subscription_in.price,
            notes=subscription_in.notes,
        )
    db.refresh(subscription)
    return subscription
