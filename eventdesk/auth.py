import logging
from typing import Optional

from fastapi import Depends, HTTPException
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from .database import get_db
from .models import TeamMember
from .security_utils import verify_jwt_token

logger = logging.getLogger(__name__)

security = HTTPBearer()


async def get_current_user(
    credentials: HTTPAuthorizationCredentials = Depends(security),
    db: Session = Depends(get_db),
) -> TeamMember:
    """Resolve the bearer JWT to an active team member"""
    payload = verify_jwt_token(credentials.credentials)
    if not payload or not payload.get("sub"):
        raise HTTPException(status_code=401, detail="Invalid or expired token")

    member = db.query(TeamMember).filter(TeamMember.id == payload["sub"]).first()
    if not member:
        logger.warning(f"⚠️ Token subject {payload['sub']} has no team member record")
        raise HTTPException(status_code=401, detail="Team member not found")

    if not member.is_active:
        logger.warning(f"⚠️ Inactive team member attempted access: {member.email}")
        raise HTTPException(status_code=401, detail="Account is deactivated")

    return member


async def require_admin(current_user: TeamMember = Depends(get_current_user)) -> TeamMember:
    if not current_user.is_admin:
        logger.warning(f"🚫 Non-admin {current_user.email} attempted an admin action")
        raise HTTPException(status_code=403, detail="Admin access required")
    return current_user


async def require_event_access(
    event_id: str, current_user: TeamMember = Depends(get_current_user)
) -> TeamMember:
    """Path dependency for /events/{event_id}/... routes"""
    if not current_user.can_access_event(event_id):
        logger.warning(f"🚫 {current_user.email} denied access to event {event_id}")
        raise HTTPException(status_code=403, detail="You do not have access to this event")
    return current_user


def ensure_event_access(member: TeamMember, event_id: str) -> None:
    """Same check for routes that only learn the event id after a lookup"""
    if not member.can_access_event(event_id):
        raise HTTPException(status_code=403, detail="You do not have access to this event")


optional_security = HTTPBearer(auto_error=False)


async def get_optional_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(optional_security),
    db: Session = Depends(get_db),
) -> Optional[TeamMember]:
    """Team member for public routes that show more to signed-in staff; None for anonymous callers"""
    if credentials is None:
        return None
    payload = verify_jwt_token(credentials.credentials)
    if not payload or not payload.get("sub"):
        return None
    member = db.query(TeamMember).filter(TeamMember.id == payload["sub"]).first()
    if not member or not member.is_active:
        return None
    return member
