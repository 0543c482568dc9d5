"""
HTTP-level tests through the full application (lifespan, routers, error mapping).
"""

from pathlib import Path

import aiosmtplib

from taskapi.auth.security import issue_token


def _create(client, title="Buy milk", **extra):
    response = client.post("/api/tasks", json={"title": title, **extra})
    assert response.status_code == 201
    return response.json()["data"]


class TestTaskEndpoints:
    def test_task_lifecycle_scenario(self, client):
        created = _create(client)
        assert created["id"] == 1
        assert created["status"] == "pending"

        first = client.get("/api/tasks").json()
        second = client.get("/api/tasks").json()
        assert first["success"] is True
        assert first["cached"] is False
        assert second["cached"] is True
        assert second["data"] == first["data"]

        updated = client.put("/api/tasks/1", json={"status": "completed"})
        assert updated.status_code == 200
        assert updated.json()["data"]["status"] == "completed"
        assert updated.json()["data"]["title"] == "Buy milk"

        single = client.get("/api/tasks/1").json()
        assert single["data"]["status"] == "completed"
        assert single["cached"] is False
        listing = client.get("/api/tasks").json()
        assert listing["cached"] is False
        assert listing["data"][0]["status"] == "completed"

        deleted = client.delete("/api/tasks/1")
        assert deleted.status_code == 200
        assert deleted.json() == {"success": True, "message": "Task deleted successfully"}

        missing = client.get("/api/tasks/1")
        assert missing.status_code == 404
        assert missing.json() == {"success": False, "error": "Task not found"}

    def test_create_response_shape(self, client):
        response = client.post("/api/tasks", json={"title": "Buy milk"})

        body = response.json()
        assert set(body) == {"success", "data"}
        assert body["data"]["description"] is None

    def test_missing_title_is_400(self, client):
        response = client.post("/api/tasks", json={"description": "no title"})

        assert response.status_code == 400
        assert response.json()["success"] is False
        assert "title" in response.json()["error"]

    def test_blank_title_is_400(self, client):
        response = client.post("/api/tasks", json={"title": "   "})

        assert response.status_code == 400
        assert response.json() == {"success": False, "error": "Title is required"}

    def test_invalid_status_is_400(self, client):
        _create(client)

        response = client.put("/api/tasks/1", json={"status": "someday"})

        assert response.status_code == 400

    def test_update_and_delete_missing_task(self, client):
        assert client.put("/api/tasks/5", json={"title": "x"}).status_code == 404
        assert client.delete("/api/tasks/5").status_code == 404


class TestCacheEndpoints:
    def test_status_and_clear(self, client):
        _create(client)
        client.get("/api/tasks")

        status = client.get("/api/cache/status").json()
        assert status["success"] is True
        assert status["data"]["enabled"] is True
        assert status["data"]["available"] is True

        cleared = client.delete("/api/cache/clear")
        assert cleared.json() == {"success": True, "message": "Task cache cleared"}
        assert client.get("/api/tasks").json()["cached"] is False
        assert client.post("/api/cache/clear").status_code == 200

    def test_redis_outage_keeps_api_working(self, client, redis_server):
        redis_server.connected = False

        created = _create(client)
        response = client.get(f"/api/tasks/{created['id']}")

        assert response.status_code == 200
        assert response.json()["data"]["title"] == "Buy milk"
        assert client.get("/health").json() == {"status": "ok", "cache": False}


class TestAuthEndpoints:
    def test_register_login_me(self, client):
        registered = client.post(
            "/api/auth/register", json={"username": "alice", "password": "s3cret"}
        )
        assert registered.status_code == 201
        assert registered.json()["data"]["user"]["username"] == "alice"

        login = client.post("/api/auth/login", json={"username": "alice", "password": "s3cret"})
        assert login.status_code == 200
        token = login.json()["data"]["token"]

        me = client.get("/api/auth/me", headers={"Authorization": f"Bearer {token}"})
        assert me.status_code == 200
        assert me.json()["data"]["username"] == "alice"
        assert me.json()["data"]["user_id"] == registered.json()["data"]["user"]["id"]

    def test_duplicate_registration_is_409(self, client):
        payload = {"username": "alice", "password": "s3cret"}
        client.post("/api/auth/register", json=payload)

        response = client.post("/api/auth/register", json=payload)

        assert response.status_code == 409
        assert response.json() == {"success": False, "error": "Username already exists"}

    def test_bad_credentials_are_401(self, client):
        client.post("/api/auth/register", json={"username": "alice", "password": "s3cret"})

        wrong = client.post("/api/auth/login", json={"username": "alice", "password": "nope"})
        unknown = client.post("/api/auth/login", json={"username": "bob", "password": "nope"})

        assert wrong.status_code == unknown.status_code == 401
        assert wrong.json() == unknown.json()

    def test_me_requires_token(self, client):
        response = client.get("/api/auth/me")

        assert response.status_code == 401
        assert response.json()["error"] == "Access token required"

    def test_me_rejects_invalid_and_expired_tokens(self, client, settings):
        expired = issue_token(1, "alice", settings.model_copy(update={"jwt_expire_hours": -1}))

        for token in ("garbage", expired):
            response = client.get("/api/auth/me", headers={"Authorization": f"Bearer {token}"})
            assert response.status_code == 403
            assert response.json() == {"success": False, "error": "Invalid or expired token"}


class TestAttachmentEndpoints:
    def test_upload_list_download_delete(self, client, settings):
        task = _create(client, title="Report")

        uploaded = client.post(
            f"/api/tasks/{task['id']}/attachments",
            files={"file": ("notes.txt", b"hello", "text/plain")},
        )
        assert uploaded.status_code == 201
        attachment = uploaded.json()["data"]
        assert attachment["original_name"] == "notes.txt"
        assert attachment["file_size"] == 5
        assert attachment["filename"].endswith("-notes.txt")
        assert Path(attachment["file_path"]).read_bytes() == b"hello"

        listing = client.get(f"/api/tasks/{task['id']}/attachments").json()
        assert [a["id"] for a in listing["data"]] == [attachment["id"]]

        download = client.get(f"/api/attachments/{attachment['id']}/download")
        assert download.status_code == 200
        assert download.content == b"hello"
        assert "notes.txt" in download.headers["content-disposition"]

        deleted = client.delete(f"/api/attachments/{attachment['id']}")
        assert deleted.status_code == 200
        assert not Path(attachment["file_path"]).exists()
        assert client.get(f"/api/attachments/{attachment['id']}/download").status_code == 404

    def test_upload_to_missing_task_leaves_no_file(self, client, settings):
        response = client.post(
            "/api/tasks/99/attachments",
            files={"file": ("notes.txt", b"hello", "text/plain")},
        )

        assert response.status_code == 404
        assert list(Path(settings.upload_dir).iterdir()) == []

    def test_disallowed_type_is_400(self, client):
        task = _create(client)

        response = client.post(
            f"/api/tasks/{task['id']}/attachments",
            files={"file": ("run.exe", b"MZ", "application/x-msdownload")},
        )

        assert response.status_code == 400

    def test_deleting_task_removes_files(self, client):
        task = _create(client)
        attachment = client.post(
            f"/api/tasks/{task['id']}/attachments",
            files={"file": ("photo.png", b"\x89PNG", "image/png")},
        ).json()["data"]

        client.delete(f"/api/tasks/{task['id']}")

        assert not Path(attachment["file_path"]).exists()
        assert client.get(f"/api/attachments/{attachment['id']}/download").status_code == 404


class TestNotificationEndpoints:
    def test_reminder_for_task(self, client, monkeypatch):
        sent = []

        async def fake_send(message, **kwargs):
            sent.append(message)

        monkeypatch.setattr(aiosmtplib, "send", fake_send)
        task = _create(client)

        response = client.post(f"/api/tasks/{task['id']}/remind", json={"email": "bob@example.com"})

        assert response.status_code == 200
        assert sent[0]["Subject"] == "Reminder: Buy milk"

    def test_reminder_for_missing_task(self, client):
        response = client.post("/api/tasks/9/remind", json={"email": "bob@example.com"})

        assert response.status_code == 404

    def test_smtp_failure_is_502(self, client, monkeypatch):
        async def failing_send(message, **kwargs):
            raise aiosmtplib.SMTPException("relay denied")

        monkeypatch.setattr(aiosmtplib, "send", failing_send)

        response = client.post("/api/email/test", json={"email": "bob@example.com"})

        assert response.status_code == 502
        assert response.json() == {"success": False, "error": "Failed to send email"}

    def test_invalid_email_is_400(self, client):
        _create(client)

        response = client.post("/api/tasks/1/remind", json={"email": "not-an-address"})

        assert response.status_code == 400
