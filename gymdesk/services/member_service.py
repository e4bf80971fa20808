"""
Member directory operations for GymDesk

Provides:
- Member code generation and QR rendering
- Identifier resolution for check-in
- Create / update / deactivate with their uniqueness rules
"""
import base64
import io
import secrets
from typing import Optional, Union
import qrcode
from sqlalchemy.orm import Session
from gymdesk.core.db_transaction import db_transaction
from gymdesk.core.exceptions import Conflict
from gymdesk.core.validators import get_plan_or_404
from gymdesk.models.member import Member
from gymdesk.schemas.member import MemberCreate, MemberUpdate
from gymdesk.services.subscription_service import open_subscription
from gymdesk.core.logging_config import get_logger

logger = get_logger("member_service")

MEMBER_CODE_BYTES = 12  # 16 url-safe characters
MEMBER_CODE_ATTEMPTS = 5


def generate_member_code(db: Session) -> str:
    """Random url-safe code that no member holds yet."""
    for _ in range(MEMBER_CODE_ATTEMPTS):
        code = secrets.token_urlsafe(MEMBER_CODE_BYTES)
        if not db.query(Member.id).filter(Member.member_code == code).first():
            return code
    raise Conflict("Could not allocate a unique member code", code="member_code_exhausted")


def render_qr_png(value: str, box_size: int = 8, border: int = 2) -> bytes:
    qr = qrcode.QRCode(
        version=None,
        error_correction=qrcode.constants.ERROR_CORRECT_M,
        box_size=box_size,
        border=border,
    )
    qr.add_data(value)
    qr.make(fit=True)
    img = qr.make_image(fill_color="black", back_color="white")
    buf = io.BytesIO()
    img.save(buf, format="PNG")
    return buf.getvalue()


def render_qr_data_url(value: str) -> str:
    encoded = base64.b64encode(render_qr_png(value)).decode("ascii")
    return f"data:image/png;base64,{encoded}"


def resolve_member(db: Session, identifier: Union[str, int]) -> Optional[Member]:
    """
    Find the member a check-in identifier refers to.

    An int is an internal id. A string is first matched against member codes
    (what the QR card carries); an all-digit string that matches no code is
    then tried as an internal id.
    """
    if isinstance(identifier, int):
        return db.query(Member).filter(Member.id == identifier).first()
    member = db.query(Member).filter(Member.member_code == identifier).first()
    if member is None and identifier.isdigit():
        member = db.query(Member).filter(Member.id == int(identifier)).first()
    return member


def _ensure_email_free(db: Session, email: Optional[str], exclude_id: Optional[int] = None) -> None:
    if not email:
        return
    query = db.query(Member.id).filter(Member.email == email)
    if exclude_id is not None:
        query = query.filter(Member.id != exclude_id)
    if query.first():
        raise Conflict("A member with this email already exists", code="email_taken", details={"email": email})


def create_member(db: Session, member_in: MemberCreate) -> Member:
    """Insert a member and, when a plan is given, its first subscription, in one transaction."""
    data = member_in.model_dump(exclude={"membership_plan_id"})
    if data.get("email"):
        data["email"] = data["email"].lower()
    _ensure_email_free(db, data.get("email"))
    plan = get_plan_or_404(db, member_in.membership_plan_id) if member_in.membership_plan_id else None

    with db_transaction(db, "create_member"):
        member = Member(member_code=generate_member_code(db), is_active=True, **data)
        db.add(member)
        db.flush()
        if plan is not None:
            open_subscription(db, member, plan)

    logger.info(f"Created member {member.id} ({member.member_code})")
    return member


def update_member(db: Session, member: Member, member_in: MemberUpdate) -> Member:
    update_data = member_in.model_dump(exclude_unset=True, exclude={"regenerate_code"})
    for required in ("first_name", "last_name", "is_active"):
        if required in update_data and update_data[required] is None:
            del update_data[required]
    if update_data.get("email"):
        update_data["email"] = update_data["email"].lower()
        _ensure_email_free(db, update_data["email"], exclude_id=member.id)

    with db_transaction(db, "update_member"):
        for field, value in update_data.items():
            setattr(member, field, value)
        if member_in.regenerate_code:
            old_code = member.member_code
            member.member_code = generate_member_code(db)
            logger.info(f"Member {member.id} code rotated from {old_code}")
    return member


def deactivate_member(db: Session, member: Member) -> Member:
    """Members are never hard-deleted; history (visits, sales) keeps pointing at them."""
    with db_transaction(db, "deactivate_member"):
        member.is_active = False
    logger.info(f"Deactivated member {member.id}")
    return member
