"""Tests for announcements, image uploads and dashboard counters."""
import threading

import pytest

import config
from hub.services import storage


@pytest.mark.asyncio
async def test_announcement_feed(client, president, student, admin):
    r = await client.post(
        "/api/announcements",
        json={"title": "Welcome", "content": "Club fair on Friday"},
        headers=student["headers"],
    )
    assert r.status_code == 403

    r = await client.post(
        "/api/announcements",
        json={"title": "Welcome", "content": "Club fair on Friday"},
        headers=president["headers"],
    )
    assert r.status_code == 200
    first = r.json()
    assert first["created_by"] == president["id"]
    r = await client.post(
        "/api/announcements",
        json={"title": "Reminder", "content": "Bring your ID"},
        headers=admin["headers"],
    )
    assert r.status_code == 200

    r = await client.get("/api/announcements", headers=student["headers"])
    assert r.status_code == 200
    assert [a["title"] for a in r.json()] == ["Reminder", "Welcome"]
    r = await client.get("/api/announcements", params={"limit": 1}, headers=student["headers"])
    assert len(r.json()) == 1


@pytest.mark.asyncio
async def test_announcement_validation_and_delete(client, president, admin, signup):
    r = await client.post(
        "/api/announcements", json={"title": " ", "content": "x"}, headers=president["headers"]
    )
    assert r.status_code == 422

    r = await client.post(
        "/api/announcements", json={"title": "Hi", "content": "There"}, headers=president["headers"]
    )
    announcement_id = r.json()["id"]

    other = await signup("other.lead@gmail.com")
    await client.patch(f"/api/users/{other['id']}/role", json={"role": "president"}, headers=admin["headers"])
    r = await client.delete(f"/api/announcements/{announcement_id}", headers=other["headers"])
    assert r.status_code == 403
    r = await client.delete(f"/api/announcements/{announcement_id}", headers=admin["headers"])
    assert r.status_code == 200
    r = await client.delete(f"/api/announcements/{announcement_id}", headers=admin["headers"])
    assert r.status_code == 404


@pytest.mark.asyncio
async def test_upload_and_delete_image(client, student, signup):
    r = await client.post(
        "/api/storage",
        files={"file": ("logo.png", b"\x89PNG\r\n\x1a\nfake", "image/png")},
        headers=student["headers"],
    )
    assert r.status_code == 200
    data = r.json()
    namespace, name = data["key"].split("/")
    assert namespace == student["id"]
    assert name.endswith(".png")
    assert data["url"] == f"/uploads/{data['key']}"
    assert (config.UPLOAD_DIR / namespace / name).is_file()

    # Public read without a token
    r = await client.get(data["url"])
    assert r.status_code == 200
    assert r.content.startswith(b"\x89PNG")

    bob = await signup("bob@gmail.com")
    r = await client.delete(f"/api/storage/{data['key']}", headers=bob["headers"])
    assert r.status_code == 403
    r = await client.delete(f"/api/storage/{data['key']}", headers=student["headers"])
    assert r.status_code == 200
    assert not (config.UPLOAD_DIR / namespace / name).exists()


@pytest.mark.asyncio
async def test_upload_rejects_bad_files(client, student, monkeypatch):
    r = await client.post(
        "/api/storage",
        files={"file": ("notes.txt", b"hello", "text/plain")},
        headers=student["headers"],
    )
    assert r.status_code == 422

    monkeypatch.setattr(config, "MAX_UPLOAD_BYTES", 10)
    r = await client.post(
        "/api/storage",
        files={"file": ("big.png", b"x" * 64, "image/png")},
        headers=student["headers"],
    )
    assert r.status_code == 422

    r = await client.post("/api/storage", files={"file": ("a.png", b"x", "image/png")})
    assert r.status_code == 401


@pytest.mark.asyncio
async def test_dashboard_counters(client, president, student, admin, create_event, monkeypatch):
    monkeypatch.setattr(config, "AUTO_APPROVE_PAID_INDIVIDUAL", False)
    event = await create_event(is_paid=True)
    await create_event(title="Free Talk")
    await client.post(f"/api/events/{event['id']}/register", headers=student["headers"])

    r = await client.get("/api/dashboard", headers=student["headers"])
    assert r.json() == {"total_events": 2, "my_registrations": 1, "my_events": 0, "pending_approvals": 0}

    r = await client.get("/api/dashboard", headers=president["headers"])
    assert r.json() == {"total_events": 2, "my_registrations": 0, "my_events": 2, "pending_approvals": 1}

    r = await client.get("/api/dashboard/admin", headers=president["headers"])
    assert r.status_code == 403
    r = await client.get("/api/dashboard/admin", headers=admin["headers"])
    assert r.status_code == 200
    assert r.json() == {"events": 2, "users": 3, "registrations": 1, "presidents": 1}


@pytest.mark.asyncio
async def test_upload_writes_off_the_event_loop(client, student, monkeypatch):
    threads = []
    original = storage.save_upload

    def recording_save(*args):
        threads.append(threading.current_thread())
        return original(*args)

    monkeypatch.setattr(storage, "save_upload", recording_save)
    r = await client.post(
        "/api/storage",
        files={"file": ("logo.png", b"\x89PNG\r\n\x1a\nfake", "image/png")},
        headers=student["headers"],
    )
    assert r.status_code == 200
    assert threads and threads[0] is not threading.main_thread()
