"""User management API (admin only): list users, promote/demote presidents, role history."""
from __future__ import annotations

from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel, ConfigDict

from hub.models.base import async_session_factory
from hub.policy import Actor
from hub.services import accounts
from web.auth import require_onboarded_actor

router = APIRouter(prefix="/api/users", tags=["users"])


class UserListItem(BaseModel):
    user_id: str
    email: str
    full_name: Optional[str]
    department: Optional[str]
    year: Optional[str]
    student_id: Optional[str]
    role: Optional[str]
    created_at: Optional[datetime]


class RoleUpdate(BaseModel):
    role: str  # president | student


class RoleResponse(BaseModel):
    user_id: str
    role: str


class RoleChangeResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    old_role: Optional[str]
    new_role: str
    changed_by: str
    changed_at: datetime


@router.get("", response_model=list[UserListItem])
async def list_users(actor: Actor = Depends(require_onboarded_actor)):
    """List all users with profile and role (admin only)."""
    async with async_session_factory() as session:
        rows = await accounts.list_users(session, actor)
    return [
        UserListItem(
            user_id=row.user.id,
            email=row.user.email,
            full_name=row.profile.full_name if row.profile else None,
            department=row.profile.department if row.profile else None,
            year=row.profile.year if row.profile else None,
            student_id=row.profile.student_id if row.profile else None,
            role=row.role,
            created_at=row.user.created_at,
        )
        for row in rows
    ]


@router.patch("/{user_id}/role", response_model=RoleResponse)
async def update_role(user_id: str, body: RoleUpdate, actor: Actor = Depends(require_onboarded_actor)):
    """Promote to president or demote to student (admin only)."""
    async with async_session_factory() as session:
        assignment = await accounts.set_role(session, actor, user_id, body.role)
        return RoleResponse(user_id=assignment.user_id, role=assignment.role)


@router.get("/{user_id}/role-history", response_model=list[RoleChangeResponse])
async def role_history(user_id: str, actor: Actor = Depends(require_onboarded_actor)):
    async with async_session_factory() as session:
        changes = await accounts.role_history(session, actor, user_id)
        return [RoleChangeResponse.model_validate(c) for c in changes]
