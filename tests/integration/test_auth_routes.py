"""Integration tests for /api/auth."""

from tests.helpers import TEST_PASSWORD, bearer


class TestRegister:
    def test_creates_account_and_session(self, client, users):
        resp = client.post(
            "/api/auth/register",
            json={"name": "Ada Lovelace", "email": "Ada@Example.com", "password": "secret1"},
        )
        assert resp.status_code == 201
        data = resp.json()["data"]
        assert data["token"]
        assert data["user"]["email"] == "ada@example.com"
        assert data["user"]["role"] == "user"
        assert data["user"]["username"] == "ada"

    def test_duplicate_email(self, client, make_user):
        make_user(email="taken@example.com")
        resp = client.post(
            "/api/auth/register",
            json={"name": "X", "email": "taken@example.com", "password": "secret1"},
        )
        assert resp.status_code == 409
        assert resp.json()["message"] == "Email already in use"

    def test_validation_error(self, client):
        resp = client.post(
            "/api/auth/register", json={"name": "X", "email": "bad", "password": "1"}
        )
        assert resp.status_code == 400
        assert resp.json()["status"] == "fail"


class TestLogin:
    def test_success(self, client, make_user):
        user = make_user()
        resp = client.post(
            "/api/auth/login", json={"email": user.email, "password": TEST_PASSWORD}
        )
        assert resp.status_code == 200
        assert resp.json()["data"]["user"]["id"] == str(user.id)

    def test_wrong_password(self, client, make_user):
        user = make_user()
        resp = client.post(
            "/api/auth/login", json={"email": user.email, "password": "nope"}
        )
        assert resp.status_code == 401
        assert resp.json()["message"] == "Invalid credentials"

    def test_unknown_email(self, client):
        resp = client.post(
            "/api/auth/login", json={"email": "ghost@example.com", "password": "x"}
        )
        assert resp.status_code == 401


class TestMe:
    def test_requires_token(self, client):
        resp = client.get("/api/auth/me")
        assert resp.status_code == 401
        assert resp.json()["code"] == "not_authenticated"

    def test_returns_user(self, client, make_user, login):
        user = make_user()
        token = login(user.email)
        resp = client.get("/api/auth/me", headers=bearer(token))
        assert resp.status_code == 200
        assert resp.json()["data"]["user"]["email"] == user.email


class TestSessions:
    def test_current_session_flag(self, client, make_user, login):
        user = make_user()
        t1 = login(user.email, headers={"User-Agent": "laptop"})
        login(user.email, headers={"User-Agent": "phone"})

        resp = client.get("/api/auth/sessions", headers=bearer(t1))
        assert resp.status_code == 200
        data = resp.json()["data"]
        assert data["count"] == 2
        flags = {s["device"]: s["isCurrentSession"] for s in data["sessions"]}
        assert flags == {"laptop": True, "phone": False}
        assert "token" not in data["sessions"][0]

    def test_sixth_login_evicts_oldest(self, client, make_user, login):
        user = make_user()
        tokens = [login(user.email) for _ in range(6)]

        assert client.get("/api/auth/me", headers=bearer(tokens[0])).status_code == 401
        resp = client.get("/api/auth/sessions", headers=bearer(tokens[-1]))
        assert resp.json()["data"]["count"] == 5

    def test_logout_revokes_token(self, client, make_user, login):
        user = make_user()
        token = login(user.email)
        resp = client.post("/api/auth/logout", headers=bearer(token))
        assert resp.status_code == 200
        assert resp.json()["message"] == "Logged out successfully"

        again = client.get("/api/auth/me", headers=bearer(token))
        assert again.status_code == 401
        assert again.json()["code"] == "session_revoked"

    def test_logout_other_session(self, client, make_user, login):
        user = make_user()
        t1 = login(user.email)
        t2 = login(user.email)
        sessions = client.get("/api/auth/sessions", headers=bearer(t1)).json()["data"]
        other = next(s for s in sessions["sessions"] if not s["isCurrentSession"])

        resp = client.delete(f"/api/auth/sessions/{other['id']}", headers=bearer(t1))
        assert resp.json()["message"] == "Session ended successfully"
        assert client.get("/api/auth/me", headers=bearer(t2)).status_code == 401
        assert client.get("/api/auth/me", headers=bearer(t1)).status_code == 200

    def test_logout_own_session_by_id(self, client, make_user, login):
        user = make_user()
        token = login(user.email)
        session = client.get("/api/auth/sessions", headers=bearer(token)).json()[
            "data"
        ]["sessions"][0]
        resp = client.delete(f"/api/auth/sessions/{session['id']}", headers=bearer(token))
        assert resp.json()["message"] == "You have been logged out"

    def test_unknown_session_id(self, client, make_user, login):
        user = make_user()
        token = login(user.email)
        resp = client.delete("/api/auth/sessions/not-an-id", headers=bearer(token))
        assert resp.status_code == 404
        assert resp.json()["message"] == "Session not found"

    def test_logout_all(self, client, make_user, login):
        user = make_user()
        tokens = [login(user.email) for _ in range(3)]
        resp = client.delete("/api/auth/sessions", headers=bearer(tokens[0]))
        assert resp.json()["message"] == "Logged out from all sessions"
        for token in tokens:
            assert client.get("/api/auth/me", headers=bearer(token)).status_code == 401
