"""Authorization policy: who may read or write which rows.

Every rule is a predicate over the acting principal and a handful of
ownership facts about the target row, evaluated per operation. Services
gather the facts (usually one query) and call ``authorize`` before touching
the row, so the whole access-control contract lives in this table and can be
tested without a database.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable, Optional

from hub import roles
from hub.errors import ForbiddenError
from hub.models.registration import PENDING

logger = logging.getLogger("campushub.policy")

READ = "read"
CREATE = "create"
UPDATE = "update"
DELETE = "delete"
ACTIONS = (READ, CREATE, UPDATE, DELETE)

PROFILE = "profile"
ROLE = "role"
EVENT = "event"
REGISTRATION = "registration"
TEAM = "team"
TEAM_MEMBER = "team_member"
ANNOUNCEMENT = "announcement"
STORAGE = "storage"


@dataclass(frozen=True)
class Actor:
    """Authenticated principal and its current role (None before a role row exists)."""

    user_id: str
    role: Optional[str] = None

    @property
    def is_admin(self) -> bool:
        return self.role == roles.ADMIN

    @property
    def is_officer(self) -> bool:
        return self.role in roles.OFFICER_ROLES


@dataclass(frozen=True)
class Facts:
    """Ownership facts about the target row.

    owner_id: the row's principal (profile user, registrant, member, role holder,
        event/announcement creator, storage namespace).
    event_creator_id: creator of the event the row belongs to.
    team_leader_id: leader of the team the row belongs to.
    status: registration status, for registration rows.
    exists: a row already exists for the owner (role self-insert is one-shot).
    registered_on_actor_event: profile owner holds a registration on an event
        the actor created.
    """

    owner_id: Optional[str] = None
    event_creator_id: Optional[str] = None
    team_leader_id: Optional[str] = None
    status: Optional[str] = None
    exists: bool = False
    registered_on_actor_event: bool = False


Rule = Callable[[Actor, Facts], bool]


def _anyone(actor: Actor, facts: Facts) -> bool:
    return True


def _nobody(actor: Actor, facts: Facts) -> bool:
    return False


def _admin(actor: Actor, facts: Facts) -> bool:
    return actor.is_admin


def _officer(actor: Actor, facts: Facts) -> bool:
    return actor.is_officer


def _owner(actor: Actor, facts: Facts) -> bool:
    return facts.owner_id is not None and facts.owner_id == actor.user_id


def _owner_or_admin(actor: Actor, facts: Facts) -> bool:
    return _owner(actor, facts) or actor.is_admin


def _event_manager(actor: Actor, facts: Facts) -> bool:
    """Creator of the owning event, or any admin."""
    return actor.is_admin or (facts.event_creator_id is not None and facts.event_creator_id == actor.user_id)


def _team_manager(actor: Actor, facts: Facts) -> bool:
    leader = facts.team_leader_id is not None and facts.team_leader_id == actor.user_id
    return leader or _event_manager(actor, facts)


def _profile_read(actor: Actor, facts: Facts) -> bool:
    return _owner_or_admin(actor, facts) or facts.registered_on_actor_event


def _role_self_insert(actor: Actor, facts: Facts) -> bool:
    return (_owner(actor, facts) and not facts.exists) or actor.is_admin


def _registration_self_cancel(actor: Actor, facts: Facts) -> bool:
    return _owner(actor, facts) and facts.status == PENDING


def _event_owner(actor: Actor, facts: Facts) -> bool:
    return _owner(actor, facts) or actor.is_admin


def _member_delete(actor: Actor, facts: Facts) -> bool:
    return _owner(actor, facts) or _team_manager(actor, facts)


POLICIES: dict[tuple[str, str], Rule] = {
    (PROFILE, READ): _profile_read,
    (PROFILE, CREATE): _owner,
    (PROFILE, UPDATE): _owner,
    (PROFILE, DELETE): _nobody,
    (ROLE, READ): _owner_or_admin,
    (ROLE, CREATE): _role_self_insert,
    (ROLE, UPDATE): _admin,
    (ROLE, DELETE): _nobody,
    (EVENT, READ): _anyone,
    (EVENT, CREATE): _officer,
    (EVENT, UPDATE): _event_owner,
    (EVENT, DELETE): _event_owner,
    (REGISTRATION, READ): lambda a, f: _owner(a, f) or _event_manager(a, f),
    (REGISTRATION, CREATE): _owner,
    (REGISTRATION, UPDATE): _event_manager,
    (REGISTRATION, DELETE): _registration_self_cancel,
    (TEAM, READ): _anyone,
    (TEAM, CREATE): lambda a, f: f.team_leader_id is not None and f.team_leader_id == a.user_id,
    (TEAM, UPDATE): _team_manager,
    (TEAM, DELETE): _team_manager,
    (TEAM_MEMBER, READ): _anyone,
    (TEAM_MEMBER, CREATE): _owner,
    (TEAM_MEMBER, UPDATE): _nobody,
    (TEAM_MEMBER, DELETE): _member_delete,
    (ANNOUNCEMENT, READ): _anyone,
    (ANNOUNCEMENT, CREATE): _officer,
    (ANNOUNCEMENT, UPDATE): _nobody,
    (ANNOUNCEMENT, DELETE): _owner_or_admin,
    (STORAGE, READ): _anyone,
    (STORAGE, CREATE): _anyone,
    (STORAGE, UPDATE): _owner,
    (STORAGE, DELETE): _owner,
}


def is_allowed(actor: Optional[Actor], action: str, resource: str, facts: Facts | None = None) -> bool:
    """Evaluate the rule for (resource, action). Unknown pairs are denied."""
    if actor is None:
        # Anonymous callers may only read public storage
        return resource == STORAGE and action == READ
    rule = POLICIES.get((resource, action))
    if rule is None:
        return False
    return rule(actor, facts or Facts())


def authorize(actor: Optional[Actor], action: str, resource: str, facts: Facts | None = None) -> None:
    """Raise ForbiddenError if the actor may not perform the action."""
    if not is_allowed(actor, action, resource, facts):
        logger.info(
            "Denied %s on %s for %s (%s)",
            action,
            resource,
            actor.user_id if actor else "anonymous",
            actor.role if actor else "-",
        )
        raise ForbiddenError(f"Not allowed to {action} {resource.replace('_', ' ')}")
