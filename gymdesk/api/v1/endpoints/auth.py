"""
Front-desk auth: JWT bearer tokens, no sessions table, no refresh token.
"""
from datetime import timedelta
from typing import Any, Optional
from fastapi import APIRouter, Depends, status
from fastapi.security import OAuth2PasswordBearer, OAuth2PasswordRequestForm
from sqlalchemy.orm import Session

from gymdesk.core.config import settings
from gymdesk.core.database import get_db
from gymdesk.core.db_transaction import db_transaction
from gymdesk.core.exceptions import Conflict, Unauthorized
from gymdesk.core.security import (
    verify_password,
    create_access_token,
    decode_access_token,
    get_password_hash,
)
from gymdesk.core.timeutils import utc_now
from gymdesk.models.user import User
from gymdesk.schemas.auth import SetupRequest, Token, UserResponse
from gymdesk.core.logging_config import get_logger

logger = get_logger("auth")

router = APIRouter()
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/api/v1/auth/login", auto_error=False)


def get_current_user(
    token: Optional[str] = Depends(oauth2_scheme),
    db: Session = Depends(get_db),
) -> Any:
    """Returns the current User. Annotated as Any so FastAPI does not use SQLAlchemy User as a Pydantic response type."""
    if not token:
        logger.warning("get_current_user: no token")
        raise Unauthorized()

    payload = decode_access_token(token)
    if payload is None:
        logger.warning("get_current_user: token decode failed")
        raise Unauthorized("Invalid authentication credentials", code="invalid_token")

    email: Optional[str] = payload.get("sub")
    if email is None:
        logger.warning("get_current_user: no sub in payload")
        raise Unauthorized("Invalid authentication credentials", code="invalid_token")

    user = db.query(User).filter(
        User.email == email,
        User.is_active == True
    ).first()
    if user is None:
        logger.warning("get_current_user: user not found or inactive, email=%s", email)
        raise Unauthorized("Invalid authentication credentials", code="invalid_token")
    return user


def _issue_token(user: User) -> Token:
    expires = timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)
    access_token = create_access_token(data={"sub": user.email, "uid": user.id}, expires_delta=expires)
    return Token(
        access_token=access_token,
        token_type="bearer",
        expires_in=int(expires.total_seconds()),
    )


@router.post("/login", response_model=Token)
async def login(
    form_data: OAuth2PasswordRequestForm = Depends(),
    db: Session = Depends(get_db),
):
    """Login: returns JWT in body (no cookies)."""
    email = form_data.username.lower().strip()
    logger.info("login attempt for email=%s", email)

    user = db.query(User).filter(
        User.email == email,
        User.is_active == True
    ).first()

    password_valid = False
    if user:
        password_valid = verify_password(form_data.password, user.hashed_password)

    if not password_valid or not user:
        logger.warning("login failed for email=%s (user=%s, password_valid=%s)", email, user is not None, password_valid)
        raise Unauthorized("Invalid email or password", code="invalid_credentials")

    user.last_login = utc_now()
    db.commit()

    logger.info("login success for email=%s user_id=%s", email, user.id)
    return _issue_token(user)


@router.get("/me", response_model=UserResponse)
async def read_users_me(current_user: User = Depends(get_current_user)):
    return current_user


@router.get("/check-first-time")
async def check_first_time(db: Session = Depends(get_db)):
    """True until the first staff account has been created."""
    return {"is_first_time": db.query(User.id).first() is None}


@router.post("/setup", response_model=Token, status_code=status.HTTP_201_CREATED)
async def first_time_setup(
    request: SetupRequest,
    db: Session = Depends(get_db),
):
    """Create the first staff account and log it in. Refused once any user exists."""
    if db.query(User.id).first() is not None:
        logger.warning("setup refused: users already exist")
        raise Conflict("Setup has already been completed", code="setup_completed")

    user = User(
        email=request.email,
        full_name=request.full_name.strip(),
        phone=request.phone,
        hashed_password=get_password_hash(request.password),
        is_active=True,
        last_login=utc_now(),
    )
    with db_transaction(db, "first_time_setup"):
        db.add(user)

    logger.info("setup created first user_id=%s email=%s", user.id, user.email)
    return _issue_token(user)
