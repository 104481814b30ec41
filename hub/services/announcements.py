"""Announcement feed."""
from __future__ import annotations

import logging

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from hub import policy
from hub.errors import NotFoundError, ValidationError
from hub.models import Announcement
from hub.policy import Actor, Facts

logger = logging.getLogger("campushub.announcements")


async def list_announcements(session: AsyncSession, actor: Actor, limit: int = 50) -> list[Announcement]:
    policy.authorize(actor, policy.READ, policy.ANNOUNCEMENT)
    result = await session.execute(
        select(Announcement).order_by(Announcement.created_at.desc()).limit(limit)
    )
    return list(result.scalars().all())


async def create_announcement(session: AsyncSession, actor: Actor, title: str, content: str) -> Announcement:
    policy.authorize(actor, policy.CREATE, policy.ANNOUNCEMENT, Facts(owner_id=actor.user_id))
    if not title.strip() or not content.strip():
        raise ValidationError("Title and content are required")
    announcement = Announcement(title=title.strip(), content=content.strip(), created_by=actor.user_id)
    session.add(announcement)
    await session.commit()
    await session.refresh(announcement)
    logger.info("Announcement %s posted by %s", announcement.id, actor.user_id)
    return announcement


async def delete_announcement(session: AsyncSession, actor: Actor, announcement_id: str) -> None:
    announcement = await session.get(Announcement, announcement_id)
    if not announcement:
        raise NotFoundError("Announcement not found")
    policy.authorize(actor, policy.DELETE, policy.ANNOUNCEMENT, Facts(owner_id=announcement.created_by))
    await session.delete(announcement)
    await session.commit()
