"""Team formation: create with a join code, join, leave, manage."""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Optional

from sqlalchemy import DateTime, String, delete, func, insert, literal, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from hub import policy
from hub.errors import ConflictError, NotFoundError, ValidationError
from hub.models import Event, Profile, Registration, Team, TeamMember
from hub.models.base import new_id, utcnow
from hub.models.registration import PENDING
from hub.policy import Actor, Facts
from hub.services import registrations
from hub.services.team_codes import generate_team_code, normalize_code

logger = logging.getLogger("campushub.teams")


@dataclass
class TeamMemberInfo:
    user_id: str
    full_name: Optional[str]
    is_leader: bool


@dataclass
class TeamSummary:
    """Team with what officers and members see: status, size, members."""

    team: Team
    status: str
    member_count: int
    meets_min_size: bool
    members: list[TeamMemberInfo] = field(default_factory=list)


def _team_facts(team: Team, owner_id: Optional[str] = None) -> Facts:
    return Facts(owner_id=owner_id, event_creator_id=team.event.created_by, team_leader_id=team.leader_id)


async def _load_team(session: AsyncSession, team_id: str) -> Team:
    result = await session.execute(
        select(Team)
        .where(Team.id == team_id)
        .options(selectinload(Team.event))
        .execution_options(populate_existing=True)
    )
    team = result.scalar_one_or_none()
    if not team:
        raise NotFoundError("Team not found")
    return team


async def _insert_member(session: AsyncSession, team: Team, user_id: str, max_size: Optional[int]) -> None:
    """Add a member only while the team is below its size ceiling, in one statement."""
    member_id = new_id()
    columns = select(
        literal(member_id, String),
        literal(team.id, String),
        literal(user_id, String),
        literal(utcnow(), DateTime(timezone=True)),
    )
    if max_size is not None:
        size = (
            select(func.count(TeamMember.id))
            .where(TeamMember.team_id == team.id)
            .correlate(None)
            .scalar_subquery()
        )
        columns = columns.where(size < max_size)
    stmt = insert(TeamMember.__table__).from_select(["id", "team_id", "user_id", "joined_at"], columns)
    try:
        result = await session.execute(stmt)
    except IntegrityError:
        raise ConflictError("You are already a member of this team.")
    if result.rowcount == 0:
        raise ValidationError(f"This team is full (maximum {max_size} members).")


async def summarize(session: AsyncSession, team: Team) -> TeamSummary:
    result = await session.execute(
        select(TeamMember.user_id, Profile.full_name)
        .outerjoin(Profile, Profile.user_id == TeamMember.user_id)
        .where(TeamMember.team_id == team.id)
        .order_by(TeamMember.joined_at)
    )
    members = [
        TeamMemberInfo(user_id=uid, full_name=name, is_leader=uid == team.leader_id)
        for uid, name in result.all()
    ]
    min_size = team.event.min_team_size or 1
    return TeamSummary(
        team=team,
        status=await registrations.team_status(session, team),
        member_count=len(members),
        meets_min_size=len(members) >= min_size,
        members=members,
    )


async def get_team(session: AsyncSession, actor: Actor, team_id: str) -> TeamSummary:
    team = await _load_team(session, team_id)
    policy.authorize(actor, policy.READ, policy.TEAM, _team_facts(team))
    return await summarize(session, team)


async def list_teams(session: AsyncSession, actor: Actor, event_id: str) -> list[TeamSummary]:
    policy.authorize(actor, policy.READ, policy.TEAM)
    result = await session.execute(
        select(Team)
        .where(Team.event_id == event_id)
        .options(selectinload(Team.event))
        .order_by(Team.created_at)
    )
    return [await summarize(session, team) for team in result.scalars().all()]


async def my_team(session: AsyncSession, actor: Actor, event_id: str) -> Optional[TeamSummary]:
    result = await session.execute(
        select(Team)
        .join(TeamMember, TeamMember.team_id == Team.id)
        .where(Team.event_id == event_id, TeamMember.user_id == actor.user_id)
        .options(selectinload(Team.event))
    )
    team = result.scalars().first()
    if team is None:
        return None
    return await summarize(session, team)


async def create_team(session: AsyncSession, actor: Actor, event_id: str, name: str) -> Team:
    """Create a team led by the actor, with the leader's membership and registration.

    All three rows commit together or not at all.
    """
    name = name.strip()
    if not name:
        raise ValidationError("Team name required")
    policy.authorize(actor, policy.CREATE, policy.TEAM, Facts(team_leader_id=actor.user_id))
    policy.authorize(actor, policy.CREATE, policy.TEAM_MEMBER, Facts(owner_id=actor.user_id))
    policy.authorize(actor, policy.CREATE, policy.REGISTRATION, Facts(owner_id=actor.user_id))
    try:
        event = await registrations.lock_event(session, event_id)
        if not event.is_team_event:
            raise ValidationError("This event does not use team registration")
        if await registrations.find_registration(session, actor.user_id, event_id):
            raise ConflictError("Already registered for this event")
        code = await generate_team_code(session)
        team = Team(event_id=event_id, name=name, team_code=code, leader_id=actor.user_id)
        session.add(team)
        try:
            await session.flush()
        except IntegrityError:
            raise ConflictError("Team code collision, please try again")
        await _insert_member(session, team, actor.user_id, event.max_team_size)
        status = registrations.initial_status(event)
        await registrations.insert_registration(session, event, actor.user_id, status)
        await session.commit()
    except Exception:
        await session.rollback()
        logger.info("Team creation for event %s by %s rolled back", event_id, actor.user_id)
        raise
    logger.info("Team %s (%s) created for event %s by %s", name, code, event_id, actor.user_id)
    return team


async def join_team(session: AsyncSession, actor: Actor, event_id: str, code: str) -> Team:
    """Join by code: team must exist for the event, actor not a member, team not full."""
    code = normalize_code(code)
    if not code:
        raise ValidationError("Code required")
    policy.authorize(actor, policy.CREATE, policy.TEAM_MEMBER, Facts(owner_id=actor.user_id))
    policy.authorize(actor, policy.CREATE, policy.REGISTRATION, Facts(owner_id=actor.user_id))
    try:
        event = await registrations.lock_event(session, event_id)
        result = await session.execute(
            select(Team).where(Team.team_code == code, Team.event_id == event_id)
        )
        team = result.scalar_one_or_none()
        if not team:
            raise NotFoundError("Team not found. Please check the code and try again.")
        already = await session.scalar(
            select(TeamMember.id).where(TeamMember.team_id == team.id, TeamMember.user_id == actor.user_id)
        )
        if already:
            raise ConflictError("You are already a member of this team.")
        await _insert_member(session, team, actor.user_id, event.max_team_size)
        status = registrations.initial_status(event)
        await registrations.insert_registration(session, event, actor.user_id, status)
        await session.commit()
    except Exception:
        await session.rollback()
        raise
    logger.info("%s joined team %s for event %s", actor.user_id, team.id, event_id)
    return team


async def _drop_registrations(session: AsyncSession, event_id: str, user_ids) -> None:
    await session.execute(
        delete(Registration)
        .where(Registration.event_id == event_id, Registration.user_id.in_(user_ids))
        .execution_options(synchronize_session=False)
    )


async def remove_member(session: AsyncSession, actor: Actor, team_id: str, user_id: str) -> None:
    """Remove a member (self, leader, or event creator/admin) along with their registration."""
    team = await _load_team(session, team_id)
    membership = await session.scalar(
        select(TeamMember).where(TeamMember.team_id == team_id, TeamMember.user_id == user_id)
    )
    if not membership:
        raise NotFoundError("Not a member of this team")
    policy.authorize(actor, policy.DELETE, policy.TEAM_MEMBER, _team_facts(team, owner_id=user_id))
    if user_id == team.leader_id:
        raise ValidationError("The team leader cannot leave; delete the team instead")
    await session.delete(membership)
    await _drop_registrations(session, team.event_id, [user_id])
    await session.commit()
    logger.info("%s removed from team %s by %s", user_id, team_id, actor.user_id)


async def leave_team(session: AsyncSession, actor: Actor, team_id: str) -> None:
    await remove_member(session, actor, team_id, actor.user_id)


async def update_team(
    session: AsyncSession,
    actor: Actor,
    team_id: str,
    name: Optional[str] = None,
    logo_url: Optional[str] = None,
    payment_receipt_url: Optional[str] = None,
) -> Team:
    team = await _load_team(session, team_id)
    policy.authorize(actor, policy.UPDATE, policy.TEAM, _team_facts(team))
    if name is not None:
        if not name.strip():
            raise ValidationError("Team name required")
        team.name = name.strip()
    if logo_url is not None:
        team.logo_url = logo_url or None
    if payment_receipt_url is not None:
        team.payment_receipt_url = payment_receipt_url or None
    await session.commit()
    await session.refresh(team)
    return team


async def delete_team(session: AsyncSession, actor: Actor, team_id: str) -> None:
    """Delete a team, its memberships and its members' registrations."""
    team = await _load_team(session, team_id)
    policy.authorize(actor, policy.DELETE, policy.TEAM, _team_facts(team))
    member_ids = select(TeamMember.user_id).where(TeamMember.team_id == team_id)
    await _drop_registrations(session, team.event_id, member_ids)
    await session.delete(team)
    await session.commit()
    logger.info("Team %s deleted by %s", team_id, actor.user_id)


async def pending_teams(session: AsyncSession, actor: Actor) -> list[TeamSummary]:
    """Teams awaiting a decision on events the actor manages (all events for admins)."""
    query = (
        select(Team)
        .join(Event, Event.id == Team.event_id)
        .join(
            Registration,
            (Registration.event_id == Team.event_id) & (Registration.user_id == Team.leader_id),
        )
        .where(Registration.status == PENDING)
        .options(selectinload(Team.event))
        .order_by(Team.created_at)
    )
    if not actor.is_admin:
        query = query.where(Event.created_by == actor.user_id)
    result = await session.execute(query)
    return [await summarize(session, team) for team in result.scalars().all()]
