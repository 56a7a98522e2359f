import logging
from datetime import datetime, timedelta

from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException
from sqlalchemy.orm import Session

from ..auth import get_current_user
from ..config import ACCESS_TOKEN_EXPIRE_MINUTES, MAGIC_LINK_MAX_AGE
from ..database import get_db
from ..email_service import deliver_in_background, send_magic_link_email
from ..models import TeamMember
from ..rate_limiter import auth_rate_limit
from ..schemas import LoginResponse, MagicLinkRequest, MessageResponse, TeamMemberResponse, VerifyTokenRequest
from ..security_utils import create_jwt_token, generate_timed_token, verify_timed_token

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["Authentication"])

MAGIC_LINK_SALT = "magic-link"
MAGIC_LINK_RESPONSE = "If that email is registered, a login link has been sent"


def issue_access_token(member: TeamMember) -> str:
    return create_jwt_token(
        {"sub": member.id, "email": member.email, "role": member.role},
        expires_delta=timedelta(minutes=ACCESS_TOKEN_EXPIRE_MINUTES),
    )


@router.post("/magic-link", response_model=MessageResponse, dependencies=[Depends(auth_rate_limit)])
async def request_magic_link(
    data: MagicLinkRequest,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
):
    """
    Email a passwordless login link to an active team member.
    The response is identical whether or not the address is registered.
    """
    member = db.query(TeamMember).filter(TeamMember.email == data.email).first()

    if member and member.is_active:
        token = generate_timed_token({"member_id": member.id, "email": member.email}, salt=MAGIC_LINK_SALT)
        background_tasks.add_task(deliver_in_background, send_magic_link_email, member.email, member.name, token)
        logger.info(f"📧 Magic link issued for {member.email}")
    else:
        logger.info(f"Magic link requested for unknown or inactive address {data.email}")

    return {"message": MAGIC_LINK_RESPONSE}


@router.post("/verify", response_model=LoginResponse)
async def verify_magic_link(data: VerifyTokenRequest, db: Session = Depends(get_db)):
    """Exchange a magic-link token for a bearer access token"""
    payload = verify_timed_token(data.token, max_age=MAGIC_LINK_MAX_AGE, salt=MAGIC_LINK_SALT)
    if not payload or not payload.get("member_id"):
        raise HTTPException(status_code=401, detail="Invalid or expired login link")

    member = db.query(TeamMember).filter(TeamMember.id == payload["member_id"]).first()
    if not member or not member.is_active:
        raise HTTPException(status_code=401, detail="Invalid or expired login link")

    member.last_login_at = datetime.utcnow()
    db.commit()
    db.refresh(member)

    logger.info(f"✅ {member.email} signed in")
    return {"access_token": issue_access_token(member), "token_type": "bearer", "member": member}


@router.get("/me", response_model=TeamMemberResponse)
async def get_me(current_user: TeamMember = Depends(get_current_user)):
    return current_user
