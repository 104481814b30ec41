"""Dashboard counters."""
from __future__ import annotations

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from hub.models.base import async_session_factory
from hub.policy import Actor
from hub.services import dashboard
from web.auth import require_onboarded_actor

router = APIRouter(prefix="/api/dashboard", tags=["dashboard"])


class UserStatsResponse(BaseModel):
    total_events: int
    my_registrations: int
    my_events: int
    pending_approvals: int


class AdminStatsResponse(BaseModel):
    events: int
    users: int
    registrations: int
    presidents: int


@router.get("", response_model=UserStatsResponse)
async def get_stats(actor: Actor = Depends(require_onboarded_actor)):
    async with async_session_factory() as session:
        stats = await dashboard.user_stats(session, actor)
    return UserStatsResponse(**stats.__dict__)


@router.get("/admin", response_model=AdminStatsResponse)
async def get_admin_stats(actor: Actor = Depends(require_onboarded_actor)):
    """Site-wide counters (admin only)."""
    async with async_session_factory() as session:
        stats = await dashboard.admin_stats(session, actor)
    return AdminStatsResponse(**stats.__dict__)
