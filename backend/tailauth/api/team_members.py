from datetime import datetime
from typing import List, Optional

from fastapi import APIRouter, Depends, status
from pydantic import BaseModel, Field
from sqlalchemy.ext.asyncio import AsyncSession

from tailauth.core.security import get_current_user
from tailauth.db.database import get_db
from tailauth.permissions.dependencies import get_authorization_gate
from tailauth.permissions.gate import AuthorizationGate
from tailauth.services import team_members as team_service

router = APIRouter()


class InviteRequest(BaseModel):
    email: str = Field(min_length=3, max_length=255, pattern=r"^[^@\s]+@[^@\s]+$")
    name: Optional[str] = None
    role: str = "MEMBER"


class RoleChangeRequest(BaseModel):
    role: str


class TeamMemberResponse(BaseModel):
    id: str
    member_user_id: Optional[str]
    email: str
    name: Optional[str]
    role: str
    status: str
    invited_by_user_id: str
    invited_at: Optional[datetime] = None
    joined_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class AssignableMemberResponse(BaseModel):
    id: Optional[str]
    name: Optional[str]
    email: Optional[str]
    is_owner: bool


@router.get("", response_model=List[TeamMemberResponse])
@router.get("/", response_model=List[TeamMemberResponse])
async def list_team_members(
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    gate: AuthorizationGate = Depends(get_authorization_gate),
):
    return await team_service.list_roster(db, gate, current_user["user_id"])


@router.get("/assignable", response_model=List[AssignableMemberResponse])
async def list_assignable_members(
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    gate: AuthorizationGate = Depends(get_authorization_gate),
):
    return await team_service.list_assignable(db, gate, current_user["user_id"])


@router.post("/", response_model=TeamMemberResponse, status_code=status.HTTP_201_CREATED)
async def invite_team_member(
    request: InviteRequest,
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    gate: AuthorizationGate = Depends(get_authorization_gate),
):
    return await team_service.invite_member(
        db,
        gate,
        current_user["user_id"],
        email=request.email,
        name=request.name,
        role=request.role,
        inviter_email=current_user.get("email"),
    )


@router.put("/{membership_id}", response_model=TeamMemberResponse)
async def update_team_member_role(
    membership_id: str,
    request: RoleChangeRequest,
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    gate: AuthorizationGate = Depends(get_authorization_gate),
):
    return await team_service.change_member_role(
        db, gate, current_user["user_id"], membership_id, request.role
    )


@router.delete("/{membership_id}")
async def remove_team_member(
    membership_id: str,
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    gate: AuthorizationGate = Depends(get_authorization_gate),
):
    await team_service.remove_member(db, gate, current_user["user_id"], membership_id)
    return {"message": "Team member removed successfully"}


@router.post("/accept/{membership_id}", response_model=TeamMemberResponse)
async def accept_team_invitation(
    membership_id: str,
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return await team_service.accept_invitation(
        db, current_user["user_id"], current_user.get("email"), membership_id
    )


@router.post("/decline/{membership_id}")
async def decline_team_invitation(
    membership_id: str,
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    await team_service.decline_invitation(
        db, current_user["user_id"], current_user.get("email"), membership_id
    )
    return {"message": "Team invitation declined successfully"}
