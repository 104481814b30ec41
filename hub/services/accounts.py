"""Accounts: signup, role resolution, onboarding profile and role administration."""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

from sqlalchemy import exists, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from hub import policy, roles
from hub.errors import ConflictError, NotFoundError, ValidationError
from hub.models import Event, Profile, Registration, RoleAssignment, RoleChange, User
from hub.policy import Actor, Facts

logger = logging.getLogger("campushub.accounts")

# Roles an admin can move a principal between
ASSIGNABLE_ROLES = (roles.PRESIDENT, roles.STUDENT)


@dataclass
class UserSummary:
    user: User
    profile: Optional[Profile]
    role: Optional[str]


def normalize_email(email: str) -> str:
    return email.strip().lower()


async def get_user_by_email(session: AsyncSession, email: str) -> Optional[User]:
    result = await session.execute(select(User).where(User.email == normalize_email(email)))
    return result.scalar_one_or_none()


async def get_role(session: AsyncSession, user_id: str) -> Optional[str]:
    return await session.scalar(select(RoleAssignment.role).where(RoleAssignment.user_id == user_id))


async def actor_for(session: AsyncSession, user: User) -> Actor:
    return Actor(user_id=user.id, role=await get_role(session, user.id))


async def _insert_ignoring_duplicate(session: AsyncSession, row, label: str) -> None:
    """Commit a single row; a duplicate is tolerated, anything else propagates."""
    user_id = row.user_id
    session.add(row)
    try:
        await session.commit()
    except IntegrityError:
        await session.rollback()
        logger.warning("Duplicate %s for user %s ignored", label, user_id)


async def ensure_account_rows(session: AsyncSession, user_id: str, email: str) -> None:
    """Create the empty profile and the email-derived role if missing.

    Runs at signup and again at login so a half-finished signup heals itself.
    """
    actor = Actor(user_id=user_id)
    has_profile = await session.scalar(select(exists().where(Profile.user_id == user_id)))
    if not has_profile:
        policy.authorize(actor, policy.CREATE, policy.PROFILE, Facts(owner_id=user_id))
        await _insert_ignoring_duplicate(session, Profile(user_id=user_id, profile_completed=False), "profile")
    current = await get_role(session, user_id)
    if current is None:
        policy.authorize(actor, policy.CREATE, policy.ROLE, Facts(owner_id=user_id, exists=False))
        role = roles.role_for_email(email)
        await _insert_ignoring_duplicate(session, RoleAssignment(user_id=user_id, role=role), "role")
        logger.info("Assigned role %s to %s", role, email)


async def signup(session: AsyncSession, email: str, password_hash: str) -> User:
    """Create a principal with its profile and role. Fails on a duplicate email."""
    email = normalize_email(email)
    if "@" not in email or email.startswith("@") or email.endswith("@"):
        raise ValidationError("Invalid email address")
    if await get_user_by_email(session, email):
        raise ConflictError("An account with this email already exists")
    user = User(email=email, password_hash=password_hash)
    session.add(user)
    try:
        await session.commit()
    except IntegrityError:
        await session.rollback()
        raise ConflictError("An account with this email already exists")
    user_id = user.id
    await ensure_account_rows(session, user_id, email)
    logger.info("Signed up %s", email)
    return await session.get(User, user_id, populate_existing=True)


# --- Profile gate ---


async def get_profile(session: AsyncSession, actor: Actor, user_id: str) -> Profile:
    """Read a profile if the actor may see it (self, admin, or organizer of an event they registered for)."""
    profile = await session.scalar(select(Profile).where(Profile.user_id == user_id))
    if not profile:
        raise NotFoundError("Profile not found")
    registered = False
    if actor.user_id != user_id and not actor.is_admin:
        registered = bool(
            await session.scalar(
                select(
                    exists().where(
                        Registration.user_id == user_id,
                        Registration.event_id == Event.id,
                        Event.created_by == actor.user_id,
                    )
                )
            )
        )
    policy.authorize(
        actor,
        policy.READ,
        policy.PROFILE,
        Facts(owner_id=user_id, registered_on_actor_event=registered),
    )
    return profile


async def is_profile_complete(session: AsyncSession, user_id: str) -> bool:
    completed = await session.scalar(select(Profile.profile_completed).where(Profile.user_id == user_id))
    return bool(completed)


async def complete_profile(
    session: AsyncSession,
    actor: Actor,
    full_name: str,
    department: str,
    year: str,
    student_id: str,
) -> Profile:
    """Save onboarding fields. The completed flag is set once and never cleared."""
    values = {
        "full_name": full_name.strip(),
        "department": department.strip(),
        "year": year.strip(),
        "student_id": student_id.strip(),
    }
    missing = [k for k, v in values.items() if not v]
    if missing:
        raise ValidationError(f"Missing profile fields: {', '.join(missing)}")
    profile = await session.scalar(select(Profile).where(Profile.user_id == actor.user_id))
    if profile is None:
        policy.authorize(actor, policy.CREATE, policy.PROFILE, Facts(owner_id=actor.user_id))
        profile = Profile(user_id=actor.user_id)
        session.add(profile)
    else:
        policy.authorize(actor, policy.UPDATE, policy.PROFILE, Facts(owner_id=profile.user_id))
    for key, value in values.items():
        setattr(profile, key, value)
    profile.profile_completed = True
    await session.commit()
    await session.refresh(profile)
    return profile


# --- Role administration ---


async def list_users(session: AsyncSession, actor: Actor) -> list[UserSummary]:
    """All principals with profile and role (admin only)."""
    policy.authorize(actor, policy.READ, policy.ROLE, Facts())
    result = await session.execute(
        select(User, Profile, RoleAssignment.role)
        .outerjoin(Profile, Profile.user_id == User.id)
        .outerjoin(RoleAssignment, RoleAssignment.user_id == User.id)
        .order_by(User.created_at.desc())
    )
    return [UserSummary(user=u, profile=p, role=r) for u, p, r in result.all()]


async def set_role(session: AsyncSession, actor: Actor, user_id: str, new_role: str) -> RoleAssignment:
    """Promote a student to president or demote a president to student."""
    if new_role not in ASSIGNABLE_ROLES:
        raise ValidationError(f"Role must be one of: {', '.join(ASSIGNABLE_ROLES)}")
    assignment = await session.scalar(select(RoleAssignment).where(RoleAssignment.user_id == user_id))
    policy.authorize(actor, policy.UPDATE, policy.ROLE, Facts(owner_id=user_id, exists=assignment is not None))
    if assignment is None:
        raise NotFoundError("User has no role assignment")
    if assignment.role == roles.ADMIN:
        raise ValidationError("Admin roles cannot be changed")
    old_role = assignment.role
    if old_role == new_role:
        return assignment
    assignment.role = new_role
    session.add(RoleChange(user_id=user_id, old_role=old_role, new_role=new_role, changed_by=actor.user_id))
    await session.commit()
    await session.refresh(assignment)
    logger.info("Role of %s changed %s -> %s by %s", user_id, old_role, new_role, actor.user_id)
    return assignment


async def role_history(session: AsyncSession, actor: Actor, user_id: str) -> list[RoleChange]:
    policy.authorize(actor, policy.READ, policy.ROLE, Facts(owner_id=user_id))
    result = await session.execute(
        select(RoleChange).where(RoleChange.user_id == user_id).order_by(RoleChange.changed_at)
    )
    return list(result.scalars().all())
