from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session
from gymdesk.core.database import get_db
from gymdesk.core.db_transaction import db_transaction
from gymdesk.core.exceptions import NotFound
from gymdesk.models.subscription import Subscription
from gymdesk.models.user import User
from gymdesk.api.v1.endpoints.auth import get_current_user
from gymdesk.schemas.subscription import SubscriptionUpdate, SubscriptionResponse
from gymdesk.services.subscription_service import change_subscription

router = APIRouter()


@router.get("/{subscription_id}", response_model=SubscriptionResponse)
async def get_subscription(
    subscription_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    subscription = db.query(Subscription).filter(Subscription.id == subscription_id).first()
    if not subscription:
        raise NotFound("Subscription not found", code="subscription_not_found")
    return subscription


@router.patch("/{subscription_id}", response_model=SubscriptionResponse)
async def update_subscription(
    subscription_id: int,
    subscription_in: SubscriptionUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    """Change status and/or notes. Subscriptions are never deleted."""
    subscription = db.query(Subscription).filter(Subscription.id == subscription_id).first()
    if not subscription:
        raise NotFound("Subscription not found", code="subscription_not_found")
    with db_transaction(db, "update_subscription"):
        change_subscription(subscription, status=subscription_in.status, notes=subscription_in.notes)
    db.refresh(subscription)
    return subscription
