"""Team API: create/join by code, members, officer approval of whole teams."""
from __future__ import annotations

from datetime import datetime
from typing import Literal, Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from hub.models.base import async_session_factory
from hub.policy import Actor
from hub.services import registrations as registration_service
from hub.services import teams as team_service
from hub.services.teams import TeamSummary
from web.auth import require_onboarded_actor

router = APIRouter(prefix="/api", tags=["teams"])


class TeamCreate(BaseModel):
    name: str


class TeamJoin(BaseModel):
    code: str


class TeamUpdate(BaseModel):
    name: Optional[str] = None
    logo_url: Optional[str] = None
    payment_receipt_url: Optional[str] = None


class TeamStatusUpdate(BaseModel):
    status: Literal["approved", "rejected"]


class MemberResponse(BaseModel):
    user_id: str
    full_name: Optional[str]
    is_leader: bool


class TeamResponse(BaseModel):
    id: str
    event_id: str
    event_title: str
    name: str
    team_code: str
    leader_id: str
    logo_url: Optional[str]
    payment_receipt_url: Optional[str]
    status: str  # leader's registration status
    member_count: int
    min_team_size: Optional[int]
    max_team_size: Optional[int]
    meets_min_size: bool
    members: list[MemberResponse]
    created_at: Optional[datetime]


def team_response(summary: TeamSummary) -> TeamResponse:
    team = summary.team
    return TeamResponse(
        id=team.id,
        event_id=team.event_id,
        event_title=team.event.title,
        name=team.name,
        team_code=team.team_code,
        leader_id=team.leader_id,
        logo_url=team.logo_url,
        payment_receipt_url=team.payment_receipt_url,
        status=summary.status,
        member_count=summary.member_count,
        min_team_size=team.event.min_team_size,
        max_team_size=team.event.max_team_size,
        meets_min_size=summary.meets_min_size,
        members=[
            MemberResponse(user_id=m.user_id, full_name=m.full_name, is_leader=m.is_leader)
            for m in summary.members
        ],
        created_at=team.created_at,
    )


@router.get("/events/{event_id}/teams", response_model=list[TeamResponse])
async def list_teams(event_id: str, actor: Actor = Depends(require_onboarded_actor)):
    async with async_session_factory() as session:
        summaries = await team_service.list_teams(session, actor, event_id)
        return [team_response(s) for s in summaries]


@router.get("/events/{event_id}/teams/mine", response_model=Optional[TeamResponse])
async def my_team(event_id: str, actor: Actor = Depends(require_onboarded_actor)):
    """The caller's team for this event, or null."""
    async with async_session_factory() as session:
        summary = await team_service.my_team(session, actor, event_id)
        return team_response(summary) if summary else None


@router.post("/events/{event_id}/teams", response_model=TeamResponse)
async def create_team(event_id: str, body: TeamCreate, actor: Actor = Depends(require_onboarded_actor)):
    """Create a team; the caller becomes leader and gets the join code to share."""
    async with async_session_factory() as session:
        team = await team_service.create_team(session, actor, event_id, body.name)
        summary = await team_service.get_team(session, actor, team.id)
        return team_response(summary)


@router.post("/events/{event_id}/teams/join", response_model=TeamResponse)
async def join_team(event_id: str, body: TeamJoin, actor: Actor = Depends(require_onboarded_actor)):
    async with async_session_factory() as session:
        team = await team_service.join_team(session, actor, event_id, body.code)
        summary = await team_service.get_team(session, actor, team.id)
        return team_response(summary)


@router.get("/teams/pending", response_model=list[TeamResponse])
async def pending_teams(actor: Actor = Depends(require_onboarded_actor)):
    """Teams awaiting approval on events the caller manages."""
    async with async_session_factory() as session:
        summaries = await team_service.pending_teams(session, actor)
        return [team_response(s) for s in summaries]


@router.get("/teams/{team_id}", response_model=TeamResponse)
async def get_team(team_id: str, actor: Actor = Depends(require_onboarded_actor)):
    async with async_session_factory() as session:
        return team_response(await team_service.get_team(session, actor, team_id))


@router.patch("/teams/{team_id}", response_model=TeamResponse)
async def update_team(team_id: str, body: TeamUpdate, actor: Actor = Depends(require_onboarded_actor)):
    """Rename or set logo / payment receipt (leader, event creator or admin)."""
    async with async_session_factory() as session:
        await team_service.update_team(
            session,
            actor,
            team_id,
            name=body.name,
            logo_url=body.logo_url,
            payment_receipt_url=body.payment_receipt_url,
        )
        return team_response(await team_service.get_team(session, actor, team_id))


@router.delete("/teams/{team_id}")
async def delete_team(team_id: str, actor: Actor = Depends(require_onboarded_actor)):
    async with async_session_factory() as session:
        await team_service.delete_team(session, actor, team_id)
        return {"ok": True}


@router.post("/teams/{team_id}/leave")
async def leave_team(team_id: str, actor: Actor = Depends(require_onboarded_actor)):
    async with async_session_factory() as session:
        await team_service.leave_team(session, actor, team_id)
        return {"ok": True}


@router.delete("/teams/{team_id}/members/{user_id}")
async def remove_member(team_id: str, user_id: str, actor: Actor = Depends(require_onboarded_actor)):
    """Remove a member (leader, event creator or admin)."""
    async with async_session_factory() as session:
        await team_service.remove_member(session, actor, team_id, user_id)
        return {"ok": True}


@router.patch("/teams/{team_id}/status")
async def update_team_status(team_id: str, body: TeamStatusUpdate, actor: Actor = Depends(require_onboarded_actor)):
    """Approve or reject every member's registration at once (event creator or admin)."""
    async with async_session_factory() as session:
        updated = await registration_service.set_team_status(session, actor, team_id, body.status)
        return {"ok": True, "status": body.status, "updated": updated}
