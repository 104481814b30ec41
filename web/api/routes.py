"""API routes for events and registrations."""
from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Literal, Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field

from hub.models import Event, Registration
from hub.models.base import async_session_factory
from hub.policy import Actor
from hub.services import events as event_service
from hub.services import registrations as registration_service
from web.api.utils import profile_display_name
from web.auth import require_onboarded_actor

router = APIRouter(prefix="/api", tags=["events"])


# --- Pydantic schemas ---


class EventCreate(BaseModel):
    title: str
    description: Optional[str] = None
    event_date: datetime
    location: str
    capacity: int = Field(50, ge=1, le=event_service.MAX_CAPACITY)
    image_url: Optional[str] = None
    club_name: str
    registration_type: Literal["individual", "team"] = "individual"
    min_team_size: Optional[int] = Field(2, ge=1)
    max_team_size: Optional[int] = Field(None, ge=1)  # None = no limit
    is_paid: bool = False
    registration_fee: Optional[Decimal] = Field(None, ge=0)
    upi_id: Optional[str] = None
    payment_qr_url: Optional[str] = None


class EventUpdate(BaseModel):
    title: Optional[str] = None
    description: Optional[str] = None
    event_date: Optional[datetime] = None
    location: Optional[str] = None
    capacity: Optional[int] = Field(None, ge=1, le=event_service.MAX_CAPACITY)
    image_url: Optional[str] = None
    club_name: Optional[str] = None
    registration_type: Optional[Literal["individual", "team"]] = None
    min_team_size: Optional[int] = Field(None, ge=1)
    max_team_size: Optional[int] = Field(None, ge=1)
    is_paid: Optional[bool] = None
    registration_fee: Optional[Decimal] = Field(None, ge=0)
    upi_id: Optional[str] = None
    payment_qr_url: Optional[str] = None


class RegistrationResponse(BaseModel):
    id: str
    event_id: str
    user_id: str
    status: str
    created_at: Optional[datetime] = None


class EventResponse(BaseModel):
    id: str
    title: str
    description: Optional[str]
    event_date: datetime
    location: str
    capacity: int
    image_url: Optional[str]
    club_name: str
    created_by: str
    registration_type: str
    min_team_size: Optional[int]
    max_team_size: Optional[int]
    is_paid: bool
    registration_fee: Optional[float]
    upi_id: Optional[str]
    payment_qr_url: Optional[str]
    registration_count: int
    spots_left: int
    is_full: bool
    my_registration: Optional[RegistrationResponse] = None


class MyRegistrationResponse(RegistrationResponse):
    event_title: str
    event_date: datetime
    club_name: str
    registration_type: str


class RegistrantResponse(RegistrationResponse):
    email: str
    display_name: str
    department: Optional[str]
    year: Optional[str]
    student_id: Optional[str]


class StatusUpdate(BaseModel):
    status: Literal["approved", "rejected"]


def _registration_response(reg: Registration) -> RegistrationResponse:
    return RegistrationResponse(
        id=reg.id,
        event_id=reg.event_id,
        user_id=reg.user_id,
        status=reg.status,
        created_at=reg.created_at,
    )


def _event_response(event: Event, count: int, mine: Optional[Registration] = None) -> EventResponse:
    return EventResponse(
        id=event.id,
        title=event.title,
        description=event.description,
        event_date=event.event_date,
        location=event.location,
        capacity=event.capacity,
        image_url=event.image_url,
        club_name=event.club_name,
        created_by=event.created_by,
        registration_type=event.registration_type,
        min_team_size=event.min_team_size,
        max_team_size=event.max_team_size,
        is_paid=event.is_paid,
        registration_fee=float(event.registration_fee) if event.registration_fee is not None else None,
        upi_id=event.upi_id,
        payment_qr_url=event.payment_qr_url,
        registration_count=count,
        spots_left=max(event.capacity - count, 0),
        is_full=count >= event.capacity,
        my_registration=_registration_response(mine) if mine else None,
    )


# --- Events ---


@router.get("/events", response_model=list[EventResponse])
async def list_events(
    mine: bool = False,
    upcoming: bool = False,
    actor: Actor = Depends(require_onboarded_actor),
):
    """List events. mine=true limits to events the caller created."""
    async with async_session_factory() as session:
        events = await event_service.list_events(
            session,
            created_by=actor.user_id if mine else None,
            upcoming_only=upcoming,
        )
        counts = await event_service.registration_counts(session, [e.id for e in events])
        return [_event_response(e, counts.get(e.id, 0)) for e in events]


@router.post("/events", response_model=EventResponse)
async def create_event(body: EventCreate, actor: Actor = Depends(require_onboarded_actor)):
    """Create an event (presidents and admins)."""
    async with async_session_factory() as session:
        event = await event_service.create_event(session, actor, body.model_dump())
        return _event_response(event, 0)


@router.get("/events/{event_id}", response_model=EventResponse)
async def get_event(event_id: str, actor: Actor = Depends(require_onboarded_actor)):
    """Event details with registration count and the caller's own registration."""
    async with async_session_factory() as session:
        event = await event_service.get_event(session, event_id)
        count = await event_service.registration_count(session, event_id)
        mine = await registration_service.find_registration(session, actor.user_id, event_id)
        return _event_response(event, count, mine)


@router.patch("/events/{event_id}", response_model=EventResponse)
async def update_event(event_id: str, body: EventUpdate, actor: Actor = Depends(require_onboarded_actor)):
    """Update an event (creator or admin)."""
    async with async_session_factory() as session:
        event = await event_service.update_event(session, actor, event_id, body.model_dump(exclude_unset=True))
        count = await event_service.registration_count(session, event_id)
        return _event_response(event, count)


@router.delete("/events/{event_id}")
async def delete_event(event_id: str, actor: Actor = Depends(require_onboarded_actor)):
    """Delete an event with its registrations and teams (creator or admin)."""
    async with async_session_factory() as session:
        await event_service.delete_event(session, actor, event_id)
        return {"ok": True}


# --- Registrations ---


@router.post("/events/{event_id}/register", response_model=RegistrationResponse)
async def register(event_id: str, actor: Actor = Depends(require_onboarded_actor)):
    """Register the caller for an individual event."""
    async with async_session_factory() as session:
        reg = await registration_service.register(session, actor, event_id)
        return _registration_response(reg)


@router.get("/events/{event_id}/registrations", response_model=list[RegistrantResponse])
async def list_event_registrations(event_id: str, actor: Actor = Depends(require_onboarded_actor)):
    """Registrations with registrant details (event creator or admin)."""
    async with async_session_factory() as session:
        rows = await registration_service.event_registrations(session, actor, event_id)
    return [
        RegistrantResponse(
            **_registration_response(row.registration).model_dump(),
            email=row.email,
            display_name=profile_display_name(row.profile, row.email),
            department=row.profile.department if row.profile else None,
            year=row.profile.year if row.profile else None,
            student_id=row.profile.student_id if row.profile else None,
        )
        for row in rows
    ]


@router.get("/registrations/me", response_model=list[MyRegistrationResponse])
async def my_registrations(actor: Actor = Depends(require_onboarded_actor)):
    async with async_session_factory() as session:
        regs = await registration_service.my_registrations(session, actor)
        return [
            MyRegistrationResponse(
                **_registration_response(r).model_dump(),
                event_title=r.event.title,
                event_date=r.event.event_date,
                club_name=r.event.club_name,
                registration_type=r.event.registration_type,
            )
            for r in regs
        ]


@router.get("/registrations/{registration_id}", response_model=RegistrationResponse)
async def get_registration(registration_id: str, actor: Actor = Depends(require_onboarded_actor)):
    async with async_session_factory() as session:
        reg = await registration_service.get_registration(session, actor, registration_id)
        return _registration_response(reg)


@router.patch("/registrations/{registration_id}", response_model=RegistrationResponse)
async def update_registration_status(
    registration_id: str,
    body: StatusUpdate,
    actor: Actor = Depends(require_onboarded_actor),
):
    """Approve or reject a registration (event creator or admin)."""
    async with async_session_factory() as session:
        reg = await registration_service.set_status(session, actor, registration_id, body.status)
        return _registration_response(reg)


@router.delete("/registrations/{registration_id}")
async def cancel_registration(registration_id: str, actor: Actor = Depends(require_onboarded_actor)):
    """Cancel the caller's own pending registration."""
    async with async_session_factory() as session:
        await registration_service.cancel(session, actor, registration_id)
        return {"ok": True}
