"""Event store: create, update, delete and list events."""
from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any, Optional

from sqlalchemy import exists, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from hub import policy
from hub.errors import NotFoundError, ValidationError
from hub.models import Event, Registration, Team
from hub.models.event import REGISTRATION_TYPES
from hub.policy import Actor, Facts

logger = logging.getLogger("campushub.events")

MAX_CAPACITY = 10000

# Fields an organizer may set on create or update
EDITABLE_FIELDS = (
    "title",
    "description",
    "event_date",
    "location",
    "capacity",
    "image_url",
    "club_name",
    "registration_type",
    "min_team_size",
    "max_team_size",
    "is_paid",
    "registration_fee",
    "upi_id",
    "payment_qr_url",
)


def _validate(event: Event) -> None:
    """Check an event's settings after create/update values are applied."""
    if not (event.title or "").strip():
        raise ValidationError("Title is required")
    if not (event.location or "").strip():
        raise ValidationError("Location is required")
    if not (event.club_name or "").strip():
        raise ValidationError("Club name is required")
    if event.event_date is None:
        raise ValidationError("Event date is required")
    if event.event_date.tzinfo is None:
        event.event_date = event.event_date.replace(tzinfo=timezone.utc)
    else:
        event.event_date = event.event_date.astimezone(timezone.utc)
    if event.capacity is None or not 1 <= event.capacity <= MAX_CAPACITY:
        raise ValidationError(f"Capacity must be between 1 and {MAX_CAPACITY}")
    if event.registration_type not in REGISTRATION_TYPES:
        raise ValidationError("Registration type must be 'individual' or 'team'")
    if event.is_paid is None:
        raise ValidationError("is_paid must be true or false")
    if event.registration_type == "team":
        if event.min_team_size is None or event.min_team_size < 1:
            raise ValidationError("Minimum team size must be at least 1")
        if event.max_team_size is not None and event.max_team_size < event.min_team_size:
            raise ValidationError("Maximum team size cannot be below the minimum")
    else:
        event.max_team_size = None
    if event.is_paid:
        if event.registration_fee is not None and event.registration_fee < 0:
            raise ValidationError("Registration fee cannot be negative")
    else:
        event.registration_fee = None
        event.upi_id = None
        event.payment_qr_url = None


async def get_event(session: AsyncSession, event_id: str) -> Event:
    event = await session.get(Event, event_id)
    if not event:
        raise NotFoundError("Event not found")
    return event


async def list_events(
    session: AsyncSession,
    created_by: Optional[str] = None,
    upcoming_only: bool = False,
) -> list[Event]:
    query = select(Event)
    if created_by:
        query = query.where(Event.created_by == created_by)
    if upcoming_only:
        query = query.where(Event.event_date >= datetime.now(timezone.utc))
    result = await session.execute(query.order_by(Event.event_date))
    return list(result.scalars().all())


async def create_event(session: AsyncSession, actor: Actor, values: dict[str, Any]) -> Event:
    policy.authorize(actor, policy.CREATE, policy.EVENT, Facts(owner_id=actor.user_id))
    event = Event(created_by=actor.user_id)
    event.registration_type = "individual"
    event.min_team_size = 2
    event.is_paid = False
    event.capacity = 50
    for key in EDITABLE_FIELDS:
        if key in values:
            setattr(event, key, values[key])
    _validate(event)
    session.add(event)
    await session.commit()
    await session.refresh(event)
    logger.info("Event %s (%s) created by %s", event.title, event.id, actor.user_id)
    return event


async def _has_entrants(session: AsyncSession, event_id: str) -> bool:
    registered = await session.scalar(select(exists().where(Registration.event_id == event_id)))
    if registered:
        return True
    return bool(await session.scalar(select(exists().where(Team.event_id == event_id))))


async def update_event(session: AsyncSession, actor: Actor, event_id: str, values: dict[str, Any]) -> Event:
    event = await get_event(session, event_id)
    policy.authorize(actor, policy.UPDATE, policy.EVENT, Facts(owner_id=event.created_by))
    new_type = values.get("registration_type", event.registration_type)
    if new_type != event.registration_type and await _has_entrants(session, event_id):
        raise ValidationError("Registration type cannot change once people have registered or formed teams")
    for key in EDITABLE_FIELDS:
        if key in values:
            setattr(event, key, values[key])
    _validate(event)
    await session.commit()
    await session.refresh(event)
    return event


async def delete_event(session: AsyncSession, actor: Actor, event_id: str) -> None:
    """Delete an event with its registrations and teams."""
    event = await get_event(session, event_id)
    policy.authorize(actor, policy.DELETE, policy.EVENT, Facts(owner_id=event.created_by))
    await session.delete(event)
    await session.commit()
    logger.info("Event %s deleted by %s", event_id, actor.user_id)


async def registration_count(session: AsyncSession, event_id: str) -> int:
    return await session.scalar(
        select(func.count(Registration.id)).where(Registration.event_id == event_id)
    ) or 0


async def registration_counts(session: AsyncSession, event_ids: list[str]) -> dict[str, int]:
    if not event_ids:
        return {}
    result = await session.execute(
        select(Registration.event_id, func.count(Registration.id))
        .where(Registration.event_id.in_(event_ids))
        .group_by(Registration.event_id)
    )
    counts = {event_id: 0 for event_id in event_ids}
    counts.update({event_id: n for event_id, n in result.all()})
    return counts
