"""Auth API routes: signup, login, current user and onboarding profile."""
from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel, ConfigDict, Field

from hub.errors import AuthError
from hub.models import Profile, User
from hub.models.base import async_session_factory
from hub.policy import Actor
from hub.services import accounts
from web.auth import (
    create_access_token,
    get_current_user,
    hash_password,
    require_actor,
    require_onboarded_actor,
    require_user,
    verify_password,
)

router = APIRouter(prefix="/api", tags=["auth"])


class Credentials(BaseModel):
    email: str
    password: str = Field(min_length=6)


class LoginResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"
    user_id: str
    email: str
    role: Optional[str]
    profile_completed: bool


class UserResponse(BaseModel):
    user_id: str
    email: str
    role: Optional[str]
    profile_completed: bool


class ProfileResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    user_id: str
    full_name: Optional[str]
    department: Optional[str]
    year: Optional[str]
    student_id: Optional[str]
    profile_completed: bool


class ProfileUpdate(BaseModel):
    full_name: str
    department: str
    year: str
    student_id: str


async def _login_response(user_id: str, email: str) -> LoginResponse:
    async with async_session_factory() as session:
        role = await accounts.get_role(session, user_id)
        completed = await accounts.is_profile_complete(session, user_id)
    return LoginResponse(
        access_token=create_access_token(user_id, role),
        user_id=user_id,
        email=email,
        role=role,
        profile_completed=completed,
    )


@router.post("/auth/signup", response_model=LoginResponse)
async def signup(body: Credentials):
    """Create an account. Role comes from the email domain; the profile starts incomplete."""
    async with async_session_factory() as session:
        user = await accounts.signup(session, body.email, hash_password(body.password))
        user_id, email = user.id, user.email
    return await _login_response(user_id, email)


@router.post("/auth/login", response_model=LoginResponse)
async def login(body: Credentials):
    """Authenticate and return JWT."""
    async with async_session_factory() as session:
        user = await accounts.get_user_by_email(session, body.email)
        if not user or not verify_password(body.password, user.password_hash):
            raise AuthError("Invalid email or password")
        user_id, email = user.id, user.email
        # Heal a signup that stopped before the profile or role row was written
        await accounts.ensure_account_rows(session, user_id, email)
    return await _login_response(user_id, email)


@router.get("/auth/me", response_model=UserResponse)
async def get_me(user: User = Depends(require_user)):
    """Get current authenticated user."""
    async with async_session_factory() as session:
        role = await accounts.get_role(session, user.id)
        completed = await accounts.is_profile_complete(session, user.id)
    return UserResponse(user_id=user.id, email=user.email, role=role, profile_completed=completed)


@router.get("/auth/me/optional")
async def get_me_optional(user: Optional[User] = Depends(get_current_user)):
    """Get current user if logged in, else null. For frontend auth check."""
    if not user:
        return None
    async with async_session_factory() as session:
        role = await accounts.get_role(session, user.id)
    return {"user_id": user.id, "email": user.email, "role": role}


@router.get("/profile", response_model=ProfileResponse)
async def get_my_profile(actor: Actor = Depends(require_actor)):
    async with async_session_factory() as session:
        profile = await accounts.get_profile(session, actor, actor.user_id)
        return ProfileResponse.model_validate(profile)


@router.put("/profile", response_model=ProfileResponse)
async def complete_my_profile(body: ProfileUpdate, actor: Actor = Depends(require_actor)):
    """Submit the onboarding form. Once complete, the rest of the API opens up."""
    async with async_session_factory() as session:
        profile: Profile = await accounts.complete_profile(
            session,
            actor,
            full_name=body.full_name,
            department=body.department,
            year=body.year,
            student_id=body.student_id,
        )
        return ProfileResponse.model_validate(profile)


@router.get("/profiles/{user_id}", response_model=ProfileResponse)
async def get_profile(user_id: str, actor: Actor = Depends(require_onboarded_actor)):
    """Read another principal's profile (admins, or organizers of an event they registered for)."""
    async with async_session_factory() as session:
        profile = await accounts.get_profile(session, actor, user_id)
        return ProfileResponse.model_validate(profile)
