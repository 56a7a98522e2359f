import logging

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from ..auth import require_admin
from ..database import get_db
from ..models import Event, TeamMember
from ..schemas import MessageResponse, TeamMemberCreate, TeamMemberResponse, TeamMemberUpdate
from ..shared.validators import model_updates

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/team-members", tags=["Team"])


def get_member_or_404(db: Session, member_id: str) -> TeamMember:
    member = db.query(TeamMember).filter(TeamMember.id == member_id).first()
    if not member:
        raise HTTPException(status_code=404, detail="Team member not found")
    return member


@router.get("", response_model=list[TeamMemberResponse])
async def list_team_members(
    current_user: TeamMember = Depends(require_admin),
    db: Session = Depends(get_db),
):
    return db.query(TeamMember).order_by(TeamMember.created_at).all()


@router.post("", response_model=TeamMemberResponse)
async def create_team_member(
    data: TeamMemberCreate,
    current_user: TeamMember = Depends(require_admin),
    db: Session = Depends(get_db),
):
    if db.query(TeamMember).filter(TeamMember.email == data.email).first():
        raise HTTPException(status_code=409, detail="A team member with this email already exists")

    member = TeamMember(**data.model_dump())
    db.add(member)
    db.commit()
    db.refresh(member)
    logger.info(f"✅ {current_user.email} added team member {member.email} ({member.role})")
    return member


@router.patch("/{member_id}", response_model=TeamMemberResponse)
async def update_team_member(
    member_id: str,
    data: TeamMemberUpdate,
    current_user: TeamMember = Depends(require_admin),
    db: Session = Depends(get_db),
):
    member = get_member_or_404(db, member_id)
    for key, value in model_updates(data, member).items():
        setattr(member, key, value)
    db.commit()
    db.refresh(member)
    return member


@router.delete("/{member_id}", response_model=MessageResponse)
async def delete_team_member(
    member_id: str,
    current_user: TeamMember = Depends(require_admin),
    db: Session = Depends(get_db),
):
    if member_id == current_user.id:
        raise HTTPException(status_code=400, detail="You cannot remove yourself")

    member = get_member_or_404(db, member_id)
    db.query(Event).filter(Event.created_by == member.id).update({"created_by": None}, synchronize_session=False)
    db.delete(member)
    db.commit()
    logger.info(f"🗑️ {current_user.email} removed team member {member.email}")
    return {"message": "Team member removed"}
