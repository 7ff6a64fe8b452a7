"""
Tests for registration, login and logout.
"""
from datetime import timedelta

from jose import jwt

from picquiz.api.v1.practice import practice_scope
from picquiz.core.config import settings
from picquiz.core.datetime_utils import utc_now
from picquiz.core.error_responses import ErrorMessages
from picquiz.core.security import answer_slot_id, decode_token

TEST_USERNAME = "testuser1"
TEST_PASSWORD = "password1"  # pragma: allowlist secret


class TestRegister:
    def test_register_success(self, client, account_store):
        response = client.post(
            "/v1/auth/register",
            json={"username": "newplayer", "password": "secret12"},
        )

        assert response.status_code == 201
        data = response.json()
        assert data["username"] == "newplayer"
        assert data["token_type"] == "bearer"
        assert decode_token(data["access_token"])["sub"] == "newplayer"

        stored = account_store.get("newplayer")
        assert stored is not None
        assert stored.password_hash != "secret12"
        assert stored.total_answered == 0
        assert stored.last_seen is not None

    def test_register_hebrew_username(self, client):
        response = client.post(
            "/v1/auth/register",
            json={"username": "שחקן12", "password": "secret12"},
        )
        assert response.status_code == 201

    def test_register_duplicate_username(self, client, test_account):
        response = client.post(
            "/v1/auth/register",
            json={"username": TEST_USERNAME, "password": "another1"},
        )
        assert response.status_code == 409
        assert response.json()["detail"] == ErrorMessages.USERNAME_ALREADY_REGISTERED

    def test_register_invalid_charset(self, client):
        response = client.post(
            "/v1/auth/register",
            json={"username": "bad name!", "password": "secret12"},
        )
        assert response.status_code == 422

    def test_register_short_password(self, client):
        response = client.post(
            "/v1/auth/register",
            json={"username": "player1", "password": "abc"},
        )
        assert response.status_code == 422

    def test_validation_error_does_not_echo_password(self, client):
        response = client.post(
            "/v1/auth/register",
            json={"username": "player1", "password": "bad pass word"},
        )
        assert response.status_code == 422
        assert "bad pass word" not in response.text


class TestLogin:
    def test_login_success(self, client, test_account):
        response = client.post(
            "/v1/auth/login",
            json={"username": TEST_USERNAME, "password": TEST_PASSWORD},
        )
        assert response.status_code == 200
        assert response.json()["username"] == TEST_USERNAME

    def test_login_wrong_password(self, client, test_account):
        response = client.post(
            "/v1/auth/login",
            json={"username": TEST_USERNAME, "password": "wrongpass"},
        )
        assert response.status_code == 401
        assert response.json()["detail"] == ErrorMessages.INVALID_CREDENTIALS

    def test_login_unknown_user(self, client):
        response = client.post(
            "/v1/auth/login",
            json={"username": "nobody1", "password": "whatever1"},
        )
        assert response.status_code == 401

    def test_login_banned_account(self, client, test_account, account_store):
        test_account.is_banned = True
        account_store.update(test_account)

        response = client.post(
            "/v1/auth/login",
            json={"username": TEST_USERNAME, "password": TEST_PASSWORD},
        )
        assert response.status_code == 403
        assert response.json()["detail"] == ErrorMessages.ACCOUNT_BANNED


class TestTokens:
    def test_missing_token(self, client):
        response = client.get("/v1/exam/active")
        assert response.status_code in (401, 403)

    def test_invalid_token(self, client):
        response = client.get(
            "/v1/exam/active", headers={"Authorization": "Bearer not-a-token"}
        )
        assert response.status_code == 401

    def test_token_without_id_is_rejected(self, client, test_account):
        token = jwt.encode(
            {
                "sub": TEST_USERNAME,
                "type": "access",
                "exp": utc_now() + timedelta(minutes=5),
            },
            settings.JWT_SECRET_KEY,
            algorithm=settings.JWT_ALGORITHM,
        )
        response = client.get(
            "/v1/exam/active", headers={"Authorization": f"Bearer {token}"}
        )
        assert response.status_code == 401
        assert response.json()["detail"] == ErrorMessages.INVALID_TOKEN_PAYLOAD

    def test_token_for_deleted_account(self, client, auth_headers, account_store):
        account_store.delete(TEST_USERNAME)
        response = client.get("/v1/exam/active", headers=auth_headers)
        assert response.status_code == 401

    def test_banned_account_is_rejected(self, client, auth_headers, test_account, account_store):
        test_account.is_banned = True
        account_store.update(test_account)

        response = client.get("/v1/exam/active", headers=auth_headers)
        assert response.status_code == 403


class TestLogout:
    def _login_id(self, headers):
        return decode_token(headers["Authorization"].split()[1])["jti"]

    def test_logout_revokes_token(self, client, auth_headers):
        response = client.post("/v1/auth/logout", headers=auth_headers)

        assert response.status_code == 200
        assert response.json()["message"] == "Logged out"

        response = client.get("/v1/exam/active", headers=auth_headers)
        assert response.status_code == 401
        assert response.json()["detail"] == ErrorMessages.TOKEN_REVOKED

    def test_logout_requires_auth(self, client):
        response = client.post("/v1/auth/logout")
        assert response.status_code in (401, 403)

    def test_logout_discards_practice_state(self, client, auth_headers, quiz):
        login_id = self._login_id(auth_headers)
        client.get("/v1/practice/question", headers=auth_headers)
        nonce, _ = quiz.pending_questions.get(login_id)
        client.post(
            "/v1/practice/answer",
            headers=auth_headers,
            json={"slot": answer_slot_id(practice_scope(login_id, nonce), "a")},
        )
        client.get("/v1/practice/question", headers=auth_headers)
        assert quiz.practice_counters.get(login_id) is not None
        assert quiz.pending_questions.get(login_id) is not None

        client.post("/v1/auth/logout", headers=auth_headers)

        assert quiz.practice_counters.get(login_id) is None
        assert quiz.pending_questions.get(login_id) is None

    def test_other_logins_stay_valid(self, client, auth_headers, test_account):
        second = client.post(
            "/v1/auth/login",
            json={"username": TEST_USERNAME, "password": TEST_PASSWORD},
        ).json()["access_token"]

        client.post("/v1/auth/logout", headers=auth_headers)

        response = client.get(
            "/v1/exam/active", headers={"Authorization": f"Bearer {second}"}
        )
        assert response.status_code == 200
