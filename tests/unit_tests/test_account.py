"""Tests for the session-protected /api/admin/account endpoints."""

from tests.helpers import ADMIN_EMAIL, ADMIN_USERNAME, csrf_headers, log_in, submit_password

ACCOUNT_URL = "/api/admin/account"


class TestGetAccount:
    def test_requires_session(self, client):
        resp = client.get(ACCOUNT_URL)
        assert resp.status_code == 401
        assert resp.get_json() == {"error": "Unauthorized"}

    def test_returns_identity_without_secrets(self, client):
        log_in(client)
        resp = client.get(ACCOUNT_URL)
        assert resp.status_code == 200
        assert resp.get_json() == {
            "email": ADMIN_EMAIL,
            "username": ADMIN_USERNAME,
            "totp_enabled": True,
        }

    def test_user_agent_binding_applies(self, client):
        log_in(client)
        resp = client.get(ACCOUNT_URL, headers={"User-Agent": "something-else"})
        assert resp.status_code == 401


class TestUpdateAccount:
    def test_requires_session(self, client):
        headers = csrf_headers(client)
        resp = client.post(ACCOUNT_URL, json={"email": "x@y.io", "username": "x"}, headers=headers)
        assert resp.status_code == 401

    def test_requires_csrf(self, client):
        log_in(client)
        resp = client.post(ACCOUNT_URL, json={"email": "x@y.io", "username": "x"})
        assert resp.status_code == 403

    def test_updates_identity(self, client):
        log_in(client)
        headers = csrf_headers(client)
        resp = client.post(
            ACCOUNT_URL,
            json={"email": "owner@example.com", "username": "owner"},
            headers=headers,
        )
        assert resp.status_code == 200
        assert resp.get_json()["email"] == "owner@example.com"
        assert resp.get_json()["username"] == "owner"

    def test_email_and_username_required(self, client):
        log_in(client)
        headers = csrf_headers(client)
        assert client.post(ACCOUNT_URL, json={"email": "owner@example.com"}, headers=headers).status_code == 400
        assert client.post(ACCOUNT_URL, json={"username": "owner"}, headers=headers).status_code == 400
        assert client.post(ACCOUNT_URL, json={"email": "no-at-sign", "username": "o"}, headers=headers).status_code == 400

    def test_short_password_rejected(self, client):
        log_in(client)
        headers = csrf_headers(client)
        resp = client.post(
            ACCOUNT_URL,
            json={"email": ADMIN_EMAIL, "username": ADMIN_USERNAME, "password": "short"},
            headers=headers,
        )
        assert resp.status_code == 400

    def test_new_password_is_used_for_login(self, app, client):
        log_in(client)
        headers = csrf_headers(client)
        resp = client.post(
            ACCOUNT_URL,
            json={"email": ADMIN_EMAIL, "username": ADMIN_USERNAME, "password": "a-brand-new-password"},
            headers=headers,
        )
        assert resp.status_code == 200

        other = app.test_client()
        assert submit_password(other, ADMIN_EMAIL, "a-brand-new-password").status_code == 200
        assert submit_password(other, ADMIN_EMAIL, "correct horse battery").status_code == 401

    def test_update_is_rate_limited(self, client):
        log_in(client)
        headers = csrf_headers(client)
        body = {"email": ADMIN_EMAIL, "username": ADMIN_USERNAME}
        for _ in range(10):
            assert client.post(ACCOUNT_URL, json=body, headers=headers).status_code == 200
        assert client.post(ACCOUNT_URL, json=body, headers=headers).status_code == 429
