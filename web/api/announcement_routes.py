"""Announcement feed API."""
from __future__ import annotations

from datetime import datetime

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, ConfigDict

from hub.models.base import async_session_factory
from hub.policy import Actor
from hub.services import announcements as announcement_service
from web.auth import require_onboarded_actor

router = APIRouter(prefix="/api/announcements", tags=["announcements"])


class AnnouncementCreate(BaseModel):
    title: str
    content: str


class AnnouncementResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    title: str
    content: str
    created_by: str
    created_at: datetime


@router.get("", response_model=list[AnnouncementResponse])
async def list_announcements(
    limit: int = Query(50, ge=1, le=200),
    actor: Actor = Depends(require_onboarded_actor),
):
    async with async_session_factory() as session:
        rows = await announcement_service.list_announcements(session, actor, limit=limit)
        return [AnnouncementResponse.model_validate(a) for a in rows]


@router.post("", response_model=AnnouncementResponse)
async def create_announcement(body: AnnouncementCreate, actor: Actor = Depends(require_onboarded_actor)):
    """Post an announcement (presidents and admins)."""
    async with async_session_factory() as session:
        announcement = await announcement_service.create_announcement(session, actor, body.title, body.content)
        return AnnouncementResponse.model_validate(announcement)


@router.delete("/{announcement_id}")
async def delete_announcement(announcement_id: str, actor: Actor = Depends(require_onboarded_actor)):
    async with async_session_factory() as session:
        await announcement_service.delete_announcement(session, actor, announcement_id)
        return {"ok": True}
