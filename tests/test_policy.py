"""Tests for the authorization table and signup role resolution (no HTTP)."""
import pytest

import config
from hub import policy, roles
from hub.errors import ForbiddenError
from hub.policy import Actor, Facts

ADMIN = Actor(user_id="a1", role=roles.ADMIN)
PRESIDENT = Actor(user_id="p1", role=roles.PRESIDENT)
STUDENT = Actor(user_id="s1", role=roles.STUDENT)


@pytest.mark.asyncio
async def test_role_for_email(monkeypatch):
    monkeypatch.setattr(config, "STAFF_EMAIL_DOMAIN", "iul.ac.in")
    assert roles.role_for_email("hod@iul.ac.in") == roles.ADMIN
    assert roles.role_for_email("  HOD@IUL.AC.IN ") == roles.ADMIN
    assert roles.role_for_email("kid@student.iul.ac.in") == roles.STUDENT
    assert roles.role_for_email("kid@gmail.com") == roles.STUDENT
    # President is never derived from an email
    assert roles.role_for_email("president@iul.ac.in") == roles.ADMIN


@pytest.mark.asyncio
async def test_anonymous_can_only_read_storage():
    assert policy.is_allowed(None, policy.READ, policy.STORAGE)
    for resource in (policy.EVENT, policy.TEAM, policy.PROFILE, policy.ANNOUNCEMENT):
        assert not policy.is_allowed(None, policy.READ, resource)
    assert not policy.is_allowed(None, policy.CREATE, policy.STORAGE)


@pytest.mark.asyncio
async def test_unknown_pair_is_denied():
    assert not policy.is_allowed(ADMIN, "publish", policy.EVENT)
    assert not policy.is_allowed(ADMIN, policy.READ, "secrets")


@pytest.mark.asyncio
async def test_event_rules():
    assert policy.is_allowed(PRESIDENT, policy.CREATE, policy.EVENT)
    assert policy.is_allowed(ADMIN, policy.CREATE, policy.EVENT)
    assert not policy.is_allowed(STUDENT, policy.CREATE, policy.EVENT)

    mine = Facts(owner_id=PRESIDENT.user_id)
    theirs = Facts(owner_id="p2")
    assert policy.is_allowed(PRESIDENT, policy.UPDATE, policy.EVENT, mine)
    assert not policy.is_allowed(PRESIDENT, policy.UPDATE, policy.EVENT, theirs)
    assert policy.is_allowed(ADMIN, policy.DELETE, policy.EVENT, theirs)


@pytest.mark.asyncio
async def test_registration_self_cancel_only_while_pending():
    pending = Facts(owner_id=STUDENT.user_id, status="pending")
    approved = Facts(owner_id=STUDENT.user_id, status="approved")
    rejected = Facts(owner_id=STUDENT.user_id, status="rejected")
    assert policy.is_allowed(STUDENT, policy.DELETE, policy.REGISTRATION, pending)
    assert not policy.is_allowed(STUDENT, policy.DELETE, policy.REGISTRATION, approved)
    assert not policy.is_allowed(STUDENT, policy.DELETE, policy.REGISTRATION, rejected)
    # Not even an admin deletes someone else's registration
    assert not policy.is_allowed(ADMIN, policy.DELETE, policy.REGISTRATION, pending)


@pytest.mark.asyncio
async def test_registration_decisions():
    facts = Facts(owner_id=STUDENT.user_id, event_creator_id=PRESIDENT.user_id)
    assert policy.is_allowed(PRESIDENT, policy.UPDATE, policy.REGISTRATION, facts)
    assert policy.is_allowed(ADMIN, policy.UPDATE, policy.REGISTRATION, facts)
    assert not policy.is_allowed(STUDENT, policy.UPDATE, policy.REGISTRATION, facts)
    other_president = Actor(user_id="p2", role=roles.PRESIDENT)
    assert not policy.is_allowed(other_president, policy.UPDATE, policy.REGISTRATION, facts)


@pytest.mark.asyncio
async def test_registration_insert_only_for_self():
    assert policy.is_allowed(STUDENT, policy.CREATE, policy.REGISTRATION, Facts(owner_id=STUDENT.user_id))
    assert not policy.is_allowed(STUDENT, policy.CREATE, policy.REGISTRATION, Facts(owner_id="s2"))


@pytest.mark.asyncio
async def test_role_rules():
    assert policy.is_allowed(STUDENT, policy.CREATE, policy.ROLE, Facts(owner_id=STUDENT.user_id, exists=False))
    assert not policy.is_allowed(STUDENT, policy.CREATE, policy.ROLE, Facts(owner_id=STUDENT.user_id, exists=True))
    assert not policy.is_allowed(STUDENT, policy.CREATE, policy.ROLE, Facts(owner_id="s2"))
    assert policy.is_allowed(ADMIN, policy.UPDATE, policy.ROLE, Facts(owner_id=STUDENT.user_id))
    assert not policy.is_allowed(PRESIDENT, policy.UPDATE, policy.ROLE, Facts(owner_id=STUDENT.user_id))
    assert not policy.is_allowed(ADMIN, policy.DELETE, policy.ROLE, Facts(owner_id=STUDENT.user_id))


@pytest.mark.asyncio
async def test_profile_rules():
    own = Facts(owner_id=STUDENT.user_id)
    other = Facts(owner_id="s2")
    assert policy.is_allowed(STUDENT, policy.READ, policy.PROFILE, own)
    assert not policy.is_allowed(STUDENT, policy.READ, policy.PROFILE, other)
    assert policy.is_allowed(ADMIN, policy.READ, policy.PROFILE, other)
    assert policy.is_allowed(
        PRESIDENT, policy.READ, policy.PROFILE, Facts(owner_id="s2", registered_on_actor_event=True)
    )
    assert not policy.is_allowed(ADMIN, policy.UPDATE, policy.PROFILE, other)


@pytest.mark.asyncio
async def test_team_rules():
    facts = Facts(event_creator_id=PRESIDENT.user_id, team_leader_id=STUDENT.user_id)
    assert policy.is_allowed(STUDENT, policy.CREATE, policy.TEAM, Facts(team_leader_id=STUDENT.user_id))
    assert not policy.is_allowed(STUDENT, policy.CREATE, policy.TEAM, Facts(team_leader_id="s2"))
    assert policy.is_allowed(STUDENT, policy.UPDATE, policy.TEAM, facts)
    assert policy.is_allowed(PRESIDENT, policy.DELETE, policy.TEAM, facts)
    assert not policy.is_allowed(Actor(user_id="s2", role=roles.STUDENT), policy.UPDATE, policy.TEAM, facts)

    # Members may remove themselves; leaders may remove anyone
    member = Actor(user_id="s2", role=roles.STUDENT)
    own_membership = Facts(owner_id="s2", event_creator_id=PRESIDENT.user_id, team_leader_id=STUDENT.user_id)
    other_membership = Facts(owner_id="s3", event_creator_id=PRESIDENT.user_id, team_leader_id=STUDENT.user_id)
    assert policy.is_allowed(member, policy.DELETE, policy.TEAM_MEMBER, own_membership)
    assert not policy.is_allowed(member, policy.DELETE, policy.TEAM_MEMBER, other_membership)
    assert policy.is_allowed(STUDENT, policy.DELETE, policy.TEAM_MEMBER, other_membership)


@pytest.mark.asyncio
async def test_storage_rules():
    assert policy.is_allowed(STUDENT, policy.CREATE, policy.STORAGE, Facts(owner_id=STUDENT.user_id))
    assert policy.is_allowed(STUDENT, policy.DELETE, policy.STORAGE, Facts(owner_id=STUDENT.user_id))
    assert not policy.is_allowed(ADMIN, policy.DELETE, policy.STORAGE, Facts(owner_id=STUDENT.user_id))


@pytest.mark.asyncio
async def test_authorize_raises_forbidden():
    with pytest.raises(ForbiddenError) as exc:
        policy.authorize(STUDENT, policy.CREATE, policy.ANNOUNCEMENT)
    assert exc.value.status_code == 403
    assert exc.value.detail == "Not allowed to create announcement"
    policy.authorize(PRESIDENT, policy.CREATE, policy.ANNOUNCEMENT)
