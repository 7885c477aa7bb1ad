"""
tests/test_api_routes.py -- Integration tests for the REST routes.

These tests exercise the full stack: FastAPI routing -> Bearer dependency ->
services -> stores -> response model serialization -> error envelope.
Unit tests for the services live in test_auth_service.py and
test_project_service.py; here the focus is on HTTP status codes, payload
shapes, and the error mapping in api/main.py.

Fixtures used (from conftest.py):
  - api: module-scoped TestClient + RecordingMailer + UserStore
  - signup: factory returning (user_id, auth headers) for a fresh verified user
"""

from __future__ import annotations

import uuid

PASSWORD = "correct-horse-battery"
# 40 two-byte characters: 40 characters, 80 UTF-8 bytes.
LONG_MULTIBYTE_PASSWORD = "\u00e9" * 40


def _email() -> str:
    return f"{uuid.uuid4().hex[:12]}@example.com"


class TestAuthFailure:
    """Protected routes must reject requests without a valid access token."""

    def test_current_user_without_header(self, api) -> None:
        resp = api.client.get("/api/v1/auth/current-user")
        assert resp.status_code == 401
        assert resp.json()["error"]["code"] == "unauthorized"

    def test_projects_without_header(self, api) -> None:
        assert api.client.get("/api/v1/projects").status_code == 401

    def test_garbage_token(self, api) -> None:
        resp = api.client.get("/api/v1/projects", headers={"Authorization": "Bearer nonsense"})
        assert resp.status_code == 401
        assert resp.json()["error"]["code"] == "token_invalid"

    def test_refresh_token_is_not_an_access_token(self, api) -> None:
        email = _email()
        api.client.post("/api/v1/auth/register", json={"name": "R", "email": email, "password": PASSWORD})
        api.client.get(f"/api/v1/auth/verify-email/{api.mailer.last_token('verification', email)}")
        refresh = api.client.post("/api/v1/auth/login", json={"email": email, "password": PASSWORD}).json()[
            "refresh_token"
        ]
        resp = api.client.get("/api/v1/auth/current-user", headers={"Authorization": f"Bearer {refresh}"})
        assert resp.status_code == 401


class TestAuthRoutes:
    def test_register_validation(self, api) -> None:
        resp = api.client.post("/api/v1/auth/register", json={"name": "X", "email": "not-an-email", "password": PASSWORD})
        assert resp.status_code == 422
        assert resp.json()["error"]["code"] == "validation_error"
        resp = api.client.post("/api/v1/auth/register", json={"name": "X", "email": _email(), "password": "short"})
        assert resp.status_code == 422

    def test_password_limit_counts_bytes(self, api) -> None:
        resp = api.client.post(
            "/api/v1/auth/register", json={"name": "X", "email": _email(), "password": LONG_MULTIBYTE_PASSWORD}
        )
        assert resp.status_code == 422
        assert resp.json()["error"]["code"] == "validation_error"
        # 36 two-byte characters is exactly 72 bytes.
        resp = api.client.post("/api/v1/auth/register", json={"name": "X", "email": _email(), "password": "\u00e9" * 36})
        assert resp.status_code == 201

    def test_register_response_hides_secrets(self, api) -> None:
        resp = api.client.post("/api/v1/auth/register", json={"name": "Ada", "email": _email(), "password": PASSWORD})
        assert resp.status_code == 201
        body = resp.json()
        assert body["is_email_verified"] is False
        assert not {"hashed_password", "verification_token", "refresh_token"} & body.keys()

    def test_duplicate_register_conflicts(self, api) -> None:
        email = _email()
        api.client.post("/api/v1/auth/register", json={"name": "Ada", "email": email, "password": PASSWORD})
        resp = api.client.post("/api/v1/auth/register", json={"name": "Ada", "email": email, "password": PASSWORD})
        assert resp.status_code == 409
        assert resp.json()["error"]["code"] == "conflict"

    def test_unverified_login_forbidden(self, api) -> None:
        email = _email()
        api.client.post("/api/v1/auth/register", json={"name": "Ada", "email": email, "password": PASSWORD})
        resp = api.client.post("/api/v1/auth/login", json={"email": email, "password": PASSWORD})
        assert resp.status_code == 403
        assert resp.json()["error"]["code"] == "email_not_verified"

    def test_bad_credentials(self, api) -> None:
        resp = api.client.post("/api/v1/auth/login", json={"email": _email(), "password": PASSWORD})
        assert resp.status_code == 401
        assert resp.json()["error"]["code"] == "unauthorized"

    def test_login_sets_no_store(self, api) -> None:
        email = _email()
        api.client.post("/api/v1/auth/register", json={"name": "Ada", "email": email, "password": PASSWORD})
        api.client.get(f"/api/v1/auth/verify-email/{api.mailer.last_token('verification', email)}")
        resp = api.client.post("/api/v1/auth/login", json={"email": email, "password": PASSWORD})
        assert resp.status_code == 200
        assert resp.headers["Cache-Control"] == "no-store"
        body = resp.json()
        assert body["token_type"] == "bearer"
        assert body["expires_in"] == 15 * 60

    def test_current_user(self, api, signup) -> None:
        user_id, headers = signup("Grace")
        resp = api.client.get("/api/v1/auth/current-user", headers=headers)
        assert resp.status_code == 200
        assert resp.json()["id"] == user_id
        assert resp.json()["name"] == "Grace"

    def test_refresh_then_logout(self, api) -> None:
        email = _email()
        api.client.post("/api/v1/auth/register", json={"name": "Ada", "email": email, "password": PASSWORD})
        api.client.get(f"/api/v1/auth/verify-email/{api.mailer.last_token('verification', email)}")
        tokens = api.client.post("/api/v1/auth/login", json={"email": email, "password": PASSWORD}).json()

        resp = api.client.post("/api/v1/auth/refresh-token", json={"refresh_token": tokens["refresh_token"]})
        assert resp.status_code == 200
        headers = {"Authorization": f"Bearer {resp.json()['access_token']}"}

        assert api.client.post("/api/v1/auth/logout", headers=headers).status_code == 200
        resp = api.client.post("/api/v1/auth/refresh-token", json={"refresh_token": tokens["refresh_token"]})
        assert resp.status_code == 401
        assert resp.json()["error"]["code"] == "token_invalid"

    def test_forgot_password_does_not_reveal_accounts(self, api) -> None:
        unknown = api.client.post("/api/v1/auth/forgot-password", json={"email": _email()})
        assert unknown.status_code == 202
        email = _email()
        api.client.post("/api/v1/auth/register", json={"name": "Ada", "email": email, "password": PASSWORD})
        known = api.client.post("/api/v1/auth/forgot-password", json={"email": email})
        assert known.status_code == 202
        assert known.json() == unknown.json()

    def test_reset_password(self, api) -> None:
        email = _email()
        api.client.post("/api/v1/auth/register", json={"name": "Ada", "email": email, "password": PASSWORD})
        api.client.get(f"/api/v1/auth/verify-email/{api.mailer.last_token('verification', email)}")
        api.client.post("/api/v1/auth/forgot-password", json={"email": email})
        token = api.mailer.last_token("reset", email)
        resp = api.client.post(f"/api/v1/auth/reset-password/{token}", json={"new_password": "fresh-password-9"})
        assert resp.status_code == 200
        assert api.client.post("/api/v1/auth/login", json={"email": email, "password": "fresh-password-9"}).status_code == 200

    def test_change_password(self, api, signup) -> None:
        _, headers = signup()
        resp = api.client.post(
            "/api/v1/auth/change-password",
            json={"old_password": "wrong-password", "new_password": "another-password"},
            headers=headers,
        )
        assert resp.status_code == 401
        resp = api.client.post(
            "/api/v1/auth/change-password",
            json={"old_password": PASSWORD, "new_password": "another-password"},
            headers=headers,
        )
        assert resp.status_code == 200

    def test_change_password_byte_limit(self, api, signup) -> None:
        _, headers = signup()
        resp = api.client.post(
            "/api/v1/auth/change-password",
            json={"old_password": PASSWORD, "new_password": LONG_MULTIBYTE_PASSWORD},
            headers=headers,
        )
        assert resp.status_code == 422

    def test_resend_verification_when_verified(self, api, signup) -> None:
        _, headers = signup()
        resp = api.client.post("/api/v1/auth/resend-email-verification", headers=headers)
        assert resp.status_code == 409

    def test_bad_verification_token(self, api) -> None:
        resp = api.client.get(f"/api/v1/auth/verify-email/{'0' * 64}")
        assert resp.status_code == 401
        assert resp.json()["error"]["code"] == "token_invalid"


class TestProjectRoutes:
    def _project(self, api, headers) -> str:
        resp = api.client.post("/api/v1/projects", json={"name": "Launch", "description": "Q3"}, headers=headers)
        assert resp.status_code == 201, resp.text
        return resp.json()["id"]

    def test_create_and_read(self, api, signup) -> None:
        user_id, headers = signup()
        pid = self._project(api, headers)
        resp = api.client.get(f"/api/v1/projects/{pid}", headers=headers)
        assert resp.status_code == 200
        assert resp.json()["members"] == [{"user_id": user_id, "role": "admin", "name": None, "email": None}]
        assert [p["id"] for p in api.client.get("/api/v1/projects", headers=headers).json()] == [pid]

    def test_outsider_forbidden(self, api, signup) -> None:
        _, owner = signup()
        _, outsider = signup()
        pid = self._project(api, owner)
        resp = api.client.get(f"/api/v1/projects/{pid}", headers=outsider)
        assert resp.status_code == 403
        assert resp.json()["error"]["code"] == "forbidden"

    def test_malformed_id_is_400(self, api, signup) -> None:
        _, headers = signup()
        resp = api.client.get("/api/v1/projects/not-a-uuid", headers=headers)
        assert resp.status_code == 400
        assert resp.json()["error"]["code"] == "invalid_input"

    def test_missing_project_is_404(self, api, signup) -> None:
        _, headers = signup()
        assert api.client.get(f"/api/v1/projects/{uuid.uuid4().hex}", headers=headers).status_code == 404

    def test_update_and_delete(self, api, signup) -> None:
        _, headers = signup()
        pid = self._project(api, headers)
        resp = api.client.put(f"/api/v1/projects/{pid}", json={"name": "Renamed"}, headers=headers)
        assert resp.status_code == 200
        assert resp.json()["name"] == "Renamed"
        assert api.client.delete(f"/api/v1/projects/{pid}", headers=headers).status_code == 204
        assert api.client.get(f"/api/v1/projects/{pid}", headers=headers).status_code == 404

    def test_member_management(self, api, signup) -> None:
        _, owner = signup()
        member_id, member = signup("Bob")
        pid = self._project(api, owner)
        bob_email = api.user_store.get_by_id(member_id).email

        resp = api.client.post(f"/api/v1/projects/{pid}/members", json={"email": bob_email}, headers=owner)
        assert resp.status_code == 201
        assert resp.json()["role"] == "member"

        again = api.client.post(f"/api/v1/projects/{pid}/members", json={"email": bob_email}, headers=owner)
        assert again.status_code == 409

        listing = api.client.get(f"/api/v1/projects/{pid}/members", headers=member).json()
        assert [m["name"] for m in listing][1] == "Bob"

        resp = api.client.put(f"/api/v1/projects/{pid}/members/{member_id}", json={"role": "project_admin"}, headers=owner)
        assert resp.status_code == 200
        assert resp.json()["role"] == "project_admin"

        bad_role = api.client.put(f"/api/v1/projects/{pid}/members/{member_id}", json={"role": "owner"}, headers=owner)
        assert bad_role.status_code == 422

        assert api.client.delete(f"/api/v1/projects/{pid}/members/{member_id}", headers=owner).status_code == 204
        assert api.client.get(f"/api/v1/projects/{pid}", headers=member).status_code == 403

    def test_last_admin_cannot_leave(self, api, signup) -> None:
        owner_id, owner = signup()
        pid = self._project(api, owner)
        resp = api.client.delete(f"/api/v1/projects/{pid}/members/{owner_id}", headers=owner)
        assert resp.status_code == 409


class TestTaskAndNoteRoutes:
    def _setup(self, api, signup):
        _, owner = signup()
        member_id, member = signup()
        pid = api.client.post("/api/v1/projects", json={"name": "Launch"}, headers=owner).json()["id"]
        email = api.user_store.get_by_id(member_id).email
        api.client.post(f"/api/v1/projects/{pid}/members", json={"email": email, "role": "member"}, headers=owner)
        return pid, owner, member_id, member

    def test_task_permissions(self, api, signup) -> None:
        pid, owner, member_id, member = self._setup(api, signup)
        assert api.client.post(f"/api/v1/tasks/{pid}", json={"title": "Nope"}, headers=member).status_code == 403

        resp = api.client.post(f"/api/v1/tasks/{pid}", json={"title": "Draft", "assignee_id": member_id}, headers=owner)
        assert resp.status_code == 201
        task = resp.json()
        assert task["status"] == "todo"

        url = f"/api/v1/tasks/{pid}/t/{task['id']}"
        resp = api.client.patch(url, json={"status": "in_progress"}, headers=member)
        assert resp.status_code == 200
        assert resp.json()["status"] == "in_progress"

        assert api.client.patch(url, json={"title": "Mine now"}, headers=member).status_code == 403
        assert api.client.patch(url, json={"priority": "high"}, headers=owner).status_code == 422
        assert api.client.patch(url, json={}, headers=owner).status_code == 400

        assert [t["id"] for t in api.client.get(f"/api/v1/tasks/{pid}", headers=member).json()] == [task["id"]]
        assert api.client.delete(url, headers=member).status_code == 403
        assert api.client.delete(url, headers=owner).status_code == 204
        assert api.client.get(url, headers=owner).status_code == 404

    def test_subtasks(self, api, signup) -> None:
        pid, owner, _, member = self._setup(api, signup)
        task_id = api.client.post(f"/api/v1/tasks/{pid}", json={"title": "Release"}, headers=owner).json()["id"]
        base = f"/api/v1/tasks/{pid}/t/{task_id}/subtasks"

        resp = api.client.post(base, json={"title": "Tag"}, headers=owner)
        assert resp.status_code == 201
        sub_id = resp.json()["id"]

        resp = api.client.patch(f"{base}/{sub_id}", json={"completed": True}, headers=member)
        assert resp.status_code == 200
        assert resp.json()["completed"] is True

        assert api.client.delete(f"{base}/{sub_id}", headers=member).status_code == 403
        assert api.client.delete(f"{base}/{sub_id}", headers=owner).status_code == 204

    def test_task_through_other_project_is_404(self, api, signup) -> None:
        _, owner = signup()
        pid_a = api.client.post("/api/v1/projects", json={"name": "A"}, headers=owner).json()["id"]
        pid_b = api.client.post("/api/v1/projects", json={"name": "B"}, headers=owner).json()["id"]
        task_id = api.client.post(f"/api/v1/tasks/{pid_a}", json={"title": "In A"}, headers=owner).json()["id"]
        assert api.client.get(f"/api/v1/tasks/{pid_b}/t/{task_id}", headers=owner).status_code == 404

    def test_notes(self, api, signup) -> None:
        pid, owner, _, member = self._setup(api, signup)
        assert api.client.post(f"/api/v1/notes/{pid}", json={"title": "Nope"}, headers=member).status_code == 403

        resp = api.client.post(f"/api/v1/notes/{pid}", json={"title": "Minutes", "content": "Scope agreed"}, headers=owner)
        assert resp.status_code == 201
        url = f"/api/v1/notes/{pid}/n/{resp.json()['id']}"

        assert api.client.get(url, headers=member).json()["content"] == "Scope agreed"
        assert api.client.put(url, json={"content": "Edited"}, headers=member).status_code == 403
        assert api.client.put(url, json={"content": "Edited"}, headers=owner).json()["content"] == "Edited"
        assert len(api.client.get(f"/api/v1/notes/{pid}", headers=member).json()) == 1
        assert api.client.delete(url, headers=owner).status_code == 204
