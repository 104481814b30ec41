"""Pytest configuration and fixtures for API tests."""
import os
import tempfile
from pathlib import Path

# Set test env BEFORE any imports that use config
_tmp = Path(tempfile.mkdtemp(prefix="campushub-tests-"))
os.environ["DATABASE_URL"] = f"sqlite+aiosqlite:///{_tmp / 'test.db'}"
os.environ["UPLOAD_DIR"] = str(_tmp / "uploads")
os.environ["STAFF_EMAIL_DOMAIN"] = "iul.ac.in"
os.environ["JWT_SECRET"] = "test-secret"
os.environ["BCRYPT_ROUNDS"] = "4"

import pytest
from httpx import ASGITransport, AsyncClient

from hub.models.base import engine, reset_db
from web.api.main import app

PASSWORD = "secret123"


@pytest.fixture
def anyio_backend():
    return "asyncio"


@pytest.fixture(autouse=True)
async def _reset_db():
    """Fresh tables for each test (ASGI lifespan doesn't run with httpx)."""
    await reset_db()
    yield
    # Connections are bound to the test's event loop
    await engine.dispose()


@pytest.fixture
async def client():
    """Async HTTP client for testing the API."""
    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as ac:
        yield ac


@pytest.fixture
def signup(client):
    """Factory: sign up an account, optionally finish onboarding, return id and headers."""

    async def _signup(email: str, complete: bool = True, full_name: str = "Test User") -> dict:
        r = await client.post("/api/auth/signup", json={"email": email, "password": PASSWORD})
        assert r.status_code == 200, f"Signup failed: {r.text}"
        data = r.json()
        headers = {"Authorization": f"Bearer {data['access_token']}"}
        if complete:
            r = await client.put(
                "/api/profile",
                json={
                    "full_name": full_name,
                    "department": "Computer Science",
                    "year": "2",
                    "student_id": email.split("@")[0].upper(),
                },
                headers=headers,
            )
            assert r.status_code == 200, f"Onboarding failed: {r.text}"
        return {"id": data["user_id"], "email": data["email"], "role": data["role"], "headers": headers}

    return _signup


@pytest.fixture
async def admin(signup):
    return await signup("dean@iul.ac.in", full_name="Dean")


@pytest.fixture
async def president(client, signup, admin):
    """A student promoted to president by the admin."""
    user = await signup("club.lead@students.iul.ac.in", full_name="Club Lead")
    r = await client.patch(
        f"/api/users/{user['id']}/role",
        json={"role": "president"},
        headers=admin["headers"],
    )
    assert r.status_code == 200, f"Promotion failed: {r.text}"
    user["role"] = "president"
    return user


@pytest.fixture
async def student(signup):
    return await signup("alice@students.iul.ac.in", full_name="Alice")


@pytest.fixture
def create_event(client, president):
    """Factory: create an event as the president (or given headers), return its JSON."""

    async def _create(headers=None, **overrides) -> dict:
        body = {
            "title": "Hack Night",
            "description": "Build something",
            "event_date": "2030-03-01T18:00:00+00:00",
            "location": "Main Hall",
            "capacity": 50,
            "club_name": "Coding Club",
        }
        body.update(overrides)
        r = await client.post("/api/events", json=body, headers=headers or president["headers"])
        assert r.status_code == 200, f"Create event failed: {r.text}"
        return r.json()

    return _create
