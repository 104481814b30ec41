"""Tests for role administration and signup healing."""
import pytest
from sqlalchemy import delete, select

from hub.models import Profile, RoleAssignment
from hub.models.base import async_session_factory


@pytest.mark.asyncio
async def test_admin_promotes_and_demotes(client, admin, student):
    url = f"/api/users/{student['id']}/role"
    r = await client.patch(url, json={"role": "president"}, headers=admin["headers"])
    assert r.status_code == 200
    assert r.json() == {"user_id": student["id"], "role": "president"}

    r = await client.get("/api/auth/me", headers=student["headers"])
    assert r.json()["role"] == "president"

    r = await client.patch(url, json={"role": "student"}, headers=admin["headers"])
    assert r.json()["role"] == "student"

    r = await client.get(f"/api/users/{student['id']}/role-history", headers=admin["headers"])
    assert r.status_code == 200
    history = [(c["old_role"], c["new_role"], c["changed_by"]) for c in r.json()]
    assert history == [
        ("student", "president", admin["id"]),
        ("president", "student", admin["id"]),
    ]


@pytest.mark.asyncio
async def test_role_history_visible_to_holder(client, admin, president, signup):
    r = await client.get(f"/api/users/{president['id']}/role-history", headers=president["headers"])
    assert r.status_code == 200
    assert len(r.json()) == 1
    bob = await signup("bob@gmail.com")
    r = await client.get(f"/api/users/{president['id']}/role-history", headers=bob["headers"])
    assert r.status_code == 403


@pytest.mark.asyncio
async def test_only_admin_can_change_roles(client, president, student):
    r = await client.patch(
        f"/api/users/{student['id']}/role", json={"role": "president"}, headers=president["headers"]
    )
    assert r.status_code == 403
    r = await client.patch(
        f"/api/users/{student['id']}/role", json={"role": "president"}, headers=student["headers"]
    )
    assert r.status_code == 403


@pytest.mark.asyncio
async def test_role_change_rules(client, admin, student, signup):
    r = await client.patch(f"/api/users/{student['id']}/role", json={"role": "admin"}, headers=admin["headers"])
    assert r.status_code == 422

    other_admin = await signup("registrar@iul.ac.in")
    r = await client.patch(
        f"/api/users/{other_admin['id']}/role", json={"role": "student"}, headers=admin["headers"]
    )
    assert r.status_code == 422

    r = await client.patch("/api/users/nobody/role", json={"role": "president"}, headers=admin["headers"])
    assert r.status_code == 404


@pytest.mark.asyncio
async def test_list_users_admin_only(client, admin, student):
    r = await client.get("/api/users", headers=student["headers"])
    assert r.status_code == 403
    r = await client.get("/api/users", headers=admin["headers"])
    assert r.status_code == 200
    by_email = {u["email"]: u for u in r.json()}
    assert by_email[student["email"]]["role"] == "student"
    assert by_email[student["email"]]["full_name"] == "Alice"
    assert by_email[admin["email"]]["role"] == "admin"


@pytest.mark.asyncio
async def test_login_heals_missing_rows(client, signup):
    """An account whose profile or role row went missing gets them back at login."""
    user = await signup("bob@gmail.com", complete=False)
    async with async_session_factory() as session:
        await session.execute(delete(RoleAssignment).where(RoleAssignment.user_id == user["id"]))
        await session.execute(delete(Profile).where(Profile.user_id == user["id"]))
        await session.commit()

    r = await client.post("/api/auth/login", json={"email": "bob@gmail.com", "password": "secret123"})
    assert r.status_code == 200
    assert r.json()["role"] == "student"
    assert r.json()["profile_completed"] is False

    async with async_session_factory() as session:
        roles = (await session.execute(
            select(RoleAssignment.role).where(RoleAssignment.user_id == user["id"])
        )).scalars().all()
        profiles = (await session.execute(
            select(Profile.id).where(Profile.user_id == user["id"])
        )).scalars().all()
    assert roles == ["student"]
    assert len(profiles) == 1
