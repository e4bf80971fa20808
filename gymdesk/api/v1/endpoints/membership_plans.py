from typing import List, Optional
from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session
from gymdesk.core.database import get_db
from gymdesk.core.db_transaction import db_transaction
from gymdesk.core.exceptions import Conflict
from gymdesk.core.validators import get_plan_or_404
from gymdesk.models.membership_plan import MembershipPlan
from gymdesk.models.user import User
from gymdesk.api.v1.endpoints.auth import get_current_user
from gymdesk.schemas.membership_plan import MembershipPlanCreate, MembershipPlanUpdate, MembershipPlanResponse
from gymdesk.core.logging_config import get_logger

logger = get_logger("membership_plans")

router = APIRouter()


def _ensure_name_free(db: Session, name: str, exclude_id: Optional[int] = None) -> None:
    query = db.query(MembershipPlan.id).filter(MembershipPlan.name == name)
    if exclude_id is not None:
        query = query.filter(MembershipPlan.id != exclude_id)
    if query.first():
        raise Conflict("A membership plan with this name already exists", code="plan_name_taken", details={"name": name})


@router.get("", response_model=List[MembershipPlanResponse])
async def list_membership_plans(
    is_active: Optional[bool] = Query(None),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    query = db.query(MembershipPlan)
    if is_active is not None:
        query = query.filter(MembershipPlan.is_active == is_active)
    return query.order_by(MembershipPlan.name).all()


@router.post("", response_model=MembershipPlanResponse, status_code=201)
async def create_membership_plan(
    plan_in: MembershipPlanCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    name = plan_in.name.strip()
    _ensure_name_free(db, name)
    plan = MembershipPlan(**plan_in.model_dump(exclude={"name"}), name=name)
    with db_transaction(db, "create_membership_plan"):
        db.add(plan)
    db.refresh(plan)
    logger.info(f"Created membership plan {plan.id} '{plan.name}'")
    return plan


@router.get("/{plan_id}", response_model=MembershipPlanResponse)
async def get_membership_plan(
    plan_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    return get_plan_or_404(db, plan_id)


@router.put("/{plan_id}", response_model=MembershipPlanResponse)
async def update_membership_plan(
    plan_id: int,
    plan_in: MembershipPlanUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    """Update a plan. Existing subscriptions keep the terms they were sold with."""
    plan = get_plan_or_404(db, plan_id)
    update_data = plan_in.model_dump(exclude_unset=True)
    for required in ("name", "duration_days", "price", "is_active"):
        if required in update_data and update_data[required] is None:
            del update_data[required]
    if "name" in update_data:
        update_data["name"] = update_data["name"].strip()
        _ensure_name_free(db, update_data["name"], exclude_id=plan.id)
    with db_transaction(db, "update_membership_plan"):
        for field, value in update_data.items():
            setattr(plan, field, value)
    db.refresh(plan)
    return plan


@router.delete("/{plan_id}", response_model=MembershipPlanResponse)
async def delete_membership_plan(
    plan_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    """Deactivate a plan (soft delete); it can no longer be sold."""
    plan = get_plan_or_404(db, plan_id)
    with db_transaction(db, "deactivate_membership_plan"):
        plan.is_active = False
    db.refresh(plan)
    logger.info(f"Deactivated membership plan {plan.id}")
    return plan
