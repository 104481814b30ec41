"""Dashboard counters for students, organizers and admins."""
from __future__ import annotations

from dataclasses import dataclass

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from hub import policy, roles
from hub.models import Event, Registration, RoleAssignment, User
from hub.models.registration import PENDING
from hub.policy import Actor


@dataclass
class UserStats:
    total_events: int
    my_registrations: int
    my_events: int
    pending_approvals: int


@dataclass
class AdminStats:
    events: int
    users: int
    registrations: int
    presidents: int


async def _count(session: AsyncSession, query) -> int:
    return await session.scalar(query) or 0


async def user_stats(session: AsyncSession, actor: Actor) -> UserStats:
    total_events = await _count(session, select(func.count(Event.id)))
    my_registrations = await _count(
        session, select(func.count(Registration.id)).where(Registration.user_id == actor.user_id)
    )
    my_events = 0
    pending = 0
    if actor.is_officer:
        my_events = await _count(
            session, select(func.count(Event.id)).where(Event.created_by == actor.user_id)
        )
        pending_query = (
            select(func.count(Registration.id))
            .join(Event, Event.id == Registration.event_id)
            .where(Registration.status == PENDING)
        )
        if not actor.is_admin:
            pending_query = pending_query.where(Event.created_by == actor.user_id)
        pending = await _count(session, pending_query)
    return UserStats(
        total_events=total_events,
        my_registrations=my_registrations,
        my_events=my_events,
        pending_approvals=pending,
    )


async def admin_stats(session: AsyncSession, actor: Actor) -> AdminStats:
    # Site-wide counters expose every role row, so they follow the role read rule
    policy.authorize(actor, policy.READ, policy.ROLE)
    return AdminStats(
        events=await _count(session, select(func.count(Event.id))),
        users=await _count(session, select(func.count(User.id))),
        registrations=await _count(session, select(func.count(Registration.id))),
        presidents=await _count(
            session,
            select(func.count(RoleAssignment.id)).where(RoleAssignment.role == roles.PRESIDENT),
        ),
    )
