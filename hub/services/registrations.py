"""Registration state machine: creation status, officer decisions, self-cancel."""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

from sqlalchemy import DateTime, String, func, insert, literal, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

import config
from hub import policy
from hub.errors import ConflictError, NotFoundError, ValidationError
from hub.models import Event, Profile, Registration, Team, TeamMember, User
from hub.models.base import new_id, utcnow
from hub.models.registration import APPROVED, PENDING, REJECTED
from hub.policy import Actor, Facts

logger = logging.getLogger("campushub.registrations")

# Statuses an officer can set; pending is only ever an initial state
DECISION_STATUSES = (APPROVED, REJECTED)


@dataclass
class RegistrantRow:
    registration: Registration
    email: str
    profile: Optional[Profile]


def initial_status(event: Event) -> str:
    """Status a new registration starts in.

    Team registrations wait for an officer when the event is paid. Individual
    registrations are auto-approved, including on paid events unless
    AUTO_APPROVE_PAID_INDIVIDUAL is off.
    """
    if event.is_team_event:
        return PENDING if event.is_paid else APPROVED
    if event.is_paid and not config.AUTO_APPROVE_PAID_INDIVIDUAL:
        return PENDING
    return APPROVED


async def lock_event(session: AsyncSession, event_id: str) -> Event:
    """Load the event row FOR UPDATE so capacity checks on it serialize."""
    result = await session.execute(
        select(Event).where(Event.id == event_id).with_for_update()
    )
    event = result.scalar_one_or_none()
    if not event:
        raise NotFoundError("Event not found")
    return event


async def insert_registration(session: AsyncSession, event: Event, user_id: str, status: str) -> Registration:
    """Insert a registration only while the event is below capacity.

    The count and the insert are one statement, so two concurrent requests
    cannot both take the last seat. Does not commit.
    """
    taken = (
        select(func.count(Registration.id))
        .where(Registration.event_id == event.id)
        .correlate(None)
        .scalar_subquery()
    )
    reg_id = new_id()
    now = utcnow()
    stmt = insert(Registration.__table__).from_select(
        ["id", "user_id", "event_id", "status", "created_at", "updated_at"],
        select(
            literal(reg_id, String),
            literal(user_id, String),
            literal(event.id, String),
            literal(status, String),
            literal(now, DateTime(timezone=True)),
            literal(now, DateTime(timezone=True)),
        ).where(taken < event.capacity),
    )
    try:
        result = await session.execute(stmt)
    except IntegrityError:
        raise ConflictError("Already registered for this event")
    if result.rowcount == 0:
        raise ValidationError("Event is full")
    return await session.get(Registration, reg_id)


async def get_registration(session: AsyncSession, actor: Actor, registration_id: str) -> Registration:
    result = await session.execute(
        select(Registration)
        .where(Registration.id == registration_id)
        .options(selectinload(Registration.event))
    )
    reg = result.scalar_one_or_none()
    if not reg:
        raise NotFoundError("Registration not found")
    policy.authorize(
        actor,
        policy.READ,
        policy.REGISTRATION,
        Facts(owner_id=reg.user_id, event_creator_id=reg.event.created_by),
    )
    return reg


async def find_registration(session: AsyncSession, user_id: str, event_id: str) -> Optional[Registration]:
    return await session.scalar(
        select(Registration).where(Registration.user_id == user_id, Registration.event_id == event_id)
    )


async def register(session: AsyncSession, actor: Actor, event_id: str) -> Registration:
    """Register the actor for an individual event."""
    policy.authorize(actor, policy.CREATE, policy.REGISTRATION, Facts(owner_id=actor.user_id))
    event = await lock_event(session, event_id)
    if event.is_team_event:
        raise ValidationError("This is a team event. Create or join a team to register.")
    if await find_registration(session, actor.user_id, event_id):
        raise ConflictError("Already registered for this event")
    status = initial_status(event)
    reg = await insert_registration(session, event, actor.user_id, status)
    await session.commit()
    logger.info("Registered %s for event %s as %s", actor.user_id, event_id, status)
    return reg


async def cancel(session: AsyncSession, actor: Actor, registration_id: str) -> None:
    """Self-cancel: delete the actor's own registration while it is still pending."""
    result = await session.execute(
        select(Registration)
        .where(Registration.id == registration_id)
        .options(selectinload(Registration.event))
    )
    reg = result.scalar_one_or_none()
    if not reg:
        raise NotFoundError("Registration not found")
    policy.authorize(
        actor,
        policy.DELETE,
        policy.REGISTRATION,
        Facts(owner_id=reg.user_id, event_creator_id=reg.event.created_by, status=reg.status),
    )
    if reg.event.is_team_event:
        raise ValidationError("Leave your team to cancel a team registration")
    await session.delete(reg)
    await session.commit()
    logger.info("Registration %s cancelled by %s", registration_id, actor.user_id)


def _check_decision(status: str) -> None:
    if status not in DECISION_STATUSES:
        raise ValidationError(f"Status must be one of: {', '.join(DECISION_STATUSES)}")


async def set_status(session: AsyncSession, actor: Actor, registration_id: str, status: str) -> Registration:
    """Officer decision on one registration (event creator or admin)."""
    _check_decision(status)
    result = await session.execute(
        select(Registration)
        .where(Registration.id == registration_id)
        .options(selectinload(Registration.event))
    )
    reg = result.scalar_one_or_none()
    if not reg:
        raise NotFoundError("Registration not found")
    policy.authorize(
        actor,
        policy.UPDATE,
        policy.REGISTRATION,
        Facts(owner_id=reg.user_id, event_creator_id=reg.event.created_by, status=reg.status),
    )
    previous = reg.status
    reg.status = status
    await session.commit()
    await session.refresh(reg)
    logger.info("Registration %s %s -> %s by %s", registration_id, previous, status, actor.user_id)
    return reg


async def team_status(session: AsyncSession, team: Team) -> str:
    """A team's status is its leader's registration status."""
    status = await session.scalar(
        select(Registration.status).where(
            Registration.event_id == team.event_id,
            Registration.user_id == team.leader_id,
        )
    )
    return status or PENDING


async def set_team_status(session: AsyncSession, actor: Actor, team_id: str, status: str) -> int:
    """Set every current member's registration to the decision in one statement."""
    _check_decision(status)
    result = await session.execute(
        select(Team).where(Team.id == team_id).options(selectinload(Team.event))
    )
    team = result.scalar_one_or_none()
    if not team:
        raise NotFoundError("Team not found")
    policy.authorize(
        actor,
        policy.UPDATE,
        policy.REGISTRATION,
        Facts(event_creator_id=team.event.created_by, team_leader_id=team.leader_id),
    )
    member_ids = select(TeamMember.user_id).where(TeamMember.team_id == team_id)
    updated = await session.execute(
        update(Registration)
        .where(Registration.event_id == team.event_id, Registration.user_id.in_(member_ids))
        .values(status=status, updated_at=utcnow())
        .execution_options(synchronize_session=False)
    )
    await session.commit()
    logger.info("Team %s set to %s by %s (%d registrations)", team_id, status, actor.user_id, updated.rowcount)
    return updated.rowcount


async def my_registrations(session: AsyncSession, actor: Actor) -> list[Registration]:
    result = await session.execute(
        select(Registration)
        .where(Registration.user_id == actor.user_id)
        .options(selectinload(Registration.event))
        .order_by(Registration.created_at.desc())
    )
    return list(result.scalars().all())


async def event_registrations(session: AsyncSession, actor: Actor, event_id: str) -> list[RegistrantRow]:
    """Registrations of an event with registrant details (event creator or admin)."""
    event = await session.get(Event, event_id)
    if not event:
        raise NotFoundError("Event not found")
    policy.authorize(actor, policy.READ, policy.REGISTRATION, Facts(event_creator_id=event.created_by))
    result = await session.execute(
        select(Registration, User.email, Profile)
        .join(User, User.id == Registration.user_id)
        .outerjoin(Profile, Profile.user_id == Registration.user_id)
        .where(Registration.event_id == event_id)
        .order_by(Registration.created_at)
    )
    return [RegistrantRow(registration=r, email=e, profile=p) for r, e, p in result.all()]
