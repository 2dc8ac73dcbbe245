"""
Tests for the Google sign-in, session and logout endpoints.

Tests:
- Login redirect and returnTo handling
- Callback success, CSRF state and provider failures
- Logout idempotency and response formats
- /auth/user
- Session expiry at the gate
"""

from datetime import timedelta
from urllib.parse import parse_qs, urlparse

from app.core.config import settings
from app.core.exceptions import StoreUnavailable
from app.core.session_store import RedisSessionStore
from app.services.google_oauth import GoogleOAuthService

FAILURE_URL = f"{settings.FRONTEND_URL}/login?error=auth_failed"
JSON_HEADERS = {"Content-Type": "application/json"}


def query_of(response):
    return parse_qs(urlparse(response.headers["location"]).query)


def session_token(client):
    return client.cookies.get(settings.SESSION_COOKIE_NAME)


class TestLogin:
    """Test GET /auth/google"""

    def test_redirects_to_google(self, client):
        """Test login redirects to the Google consent screen"""
        response = client.get("/auth/google")

        assert response.status_code == 302
        assert response.headers["location"].startswith(GoogleOAuthService.AUTH_URL)
        params = query_of(response)
        assert params["client_id"] == ["test-client"]
        assert params["prompt"] == ["select_account"]
        assert "email" in params["scope"][0].split()

    def test_stashes_return_to_and_state(self, client, session_store):
        """Test returnTo and CSRF state are kept in the pre-login session"""
        response = client.get("/auth/google", params={"returnTo": "/editor?tab=2"})

        record = session_store.get(session_token(client))
        assert record is not None
        assert record.user is None
        assert record.return_to == "/editor?tab=2"
        assert record.oauth_state == query_of(response)["state"][0]

    def test_session_cookie_attributes(self, client):
        """Test the session cookie is httpOnly with a 24h lifetime"""
        response = client.get("/auth/google")

        cookie = response.headers["set-cookie"]
        assert cookie.startswith(f"{settings.SESSION_COOKIE_NAME}=")
        assert "HttpOnly" in cookie
        assert f"Max-Age={settings.SESSION_TTL_SECONDS}" in cookie
        assert "SameSite=lax" in cookie

    def test_external_return_to_is_ignored(self, client, session_store):
        """Test absolute and protocol-relative targets fall back to /"""
        for target in ("https://evil.example.com", "//evil.example.com/x"):
            client.get("/auth/google", params={"returnTo": target})
            assert session_store.get(session_token(client)).return_to == "/"


class TestCallback:
    """Test GET /auth/google/callback"""

    def test_success_redirects_to_return_to(self, client, sign_in):
        """Test successful sign-in redirects to the stored returnTo"""
        response = sign_in(return_to="/editor")

        assert response.status_code == 302
        assert response.headers["location"] == f"{settings.FRONTEND_URL}/editor"

    def test_success_defaults_to_home(self, client, sign_in):
        response = sign_in()

        assert response.headers["location"] == f"{settings.FRONTEND_URL}/"

    def test_return_to_is_consumed(self, client, sign_in, session_store):
        """Test returnTo is used once and absent from the session afterwards"""
        login = client.get("/auth/google", params={"returnTo": "/editor"})

        first = client.get("/auth/google/callback", params={"code": "abc", "state": query_of(login)["state"][0]})

        record = session_store.get(session_token(client))
        assert first.headers["location"] == f"{settings.FRONTEND_URL}/editor"
        assert record.return_to is None
        assert record.oauth_state is None

        # Signing in again without returnTo goes home
        second = sign_in()
        assert second.headers["location"] == f"{settings.FRONTEND_URL}/"

    def test_success_rotates_session(self, client, session_store, oauth_service):
        """Test a fresh authenticated session replaces the pre-login one"""
        login = client.get("/auth/google")
        pre_login_token = session_token(client)

        client.get("/auth/google/callback", params={"code": "abc", "state": query_of(login)["state"][0]})

        token = session_token(client)
        assert token != pre_login_token
        assert session_store.get(pre_login_token) is None
        assert session_store.get(token).user == oauth_service.user
        assert oauth_service.codes == ["abc"]

    def test_state_mismatch_fails(self, client, session_store, oauth_service):
        """Test a forged state parameter is rejected"""
        client.get("/auth/google")

        response = client.get("/auth/google/callback", params={"code": "abc", "state": "forged"})

        assert response.status_code == 302
        assert response.headers["location"] == FAILURE_URL
        assert oauth_service.codes == []
        assert session_store.get(session_token(client)).user is None

    def test_callback_without_pending_login_fails(self, client, oauth_service):
        response = client.get("/auth/google/callback", params={"code": "abc", "state": "x"})

        assert response.headers["location"] == FAILURE_URL
        assert oauth_service.codes == []

    def test_provider_error_param_fails(self, client):
        """Test the user cancelling on Google's screen"""
        login = client.get("/auth/google")

        response = client.get(
            "/auth/google/callback",
            params={"error": "access_denied", "state": query_of(login)["state"][0]},
        )

        assert response.headers["location"] == FAILURE_URL

    def test_provider_failure_redirects(self, client, oauth_service):
        """Test a failed code exchange redirects instead of returning 5xx"""
        oauth_service.error = "invalid_grant"
        login = client.get("/auth/google")

        response = client.get("/auth/google/callback", params={"code": "abc", "state": query_of(login)["state"][0]})

        assert response.status_code == 302
        assert response.headers["location"] == FAILURE_URL
        assert client.get("/auth/user").json() is None


class TestLogout:
    """Test GET|POST /auth/logout"""

    def test_json_logout_destroys_session(self, signed_in_client, session_store):
        """Test JSON clients get {"success": true} and the session is gone"""
        token = session_token(signed_in_client)

        response = signed_in_client.post("/auth/logout", headers=JSON_HEADERS)

        assert response.status_code == 200
        assert response.json() == {"success": True}
        assert session_store.get(token) is None
        assert session_token(signed_in_client) is None
        assert signed_in_client.get("/api/cv").status_code == 401

    def test_logout_twice_succeeds(self, signed_in_client):
        """Test logout is idempotent"""
        first = signed_in_client.post("/auth/logout", headers=JSON_HEADERS)
        second = signed_in_client.post("/auth/logout", headers=JSON_HEADERS)

        assert first.json() == {"success": True}
        assert second.status_code == 200
        assert second.json() == {"success": True}

    def test_browser_logout_redirects(self, signed_in_client):
        """Test browser logout redirects to the frontend returnTo"""
        response = signed_in_client.get("/auth/logout", params={"returnTo": "/goodbye"})

        assert response.status_code == 302
        assert response.headers["location"] == f"{settings.FRONTEND_URL}/goodbye"
        assert settings.SESSION_COOKIE_NAME in response.headers["set-cookie"]

    def test_browser_logout_defaults_to_home(self, client):
        response = client.get("/auth/logout")

        assert response.status_code == 302
        assert response.headers["location"] == f"{settings.FRONTEND_URL}/"

    def test_session_store_failure_returns_500(self, signed_in_client, session_store, monkeypatch):
        """Test a failed session delete is reported as 500"""
        def failing_destroy(token):
            raise StoreUnavailable("redis went away")

        monkeypatch.setattr(session_store, "destroy", failing_destroy)

        response = signed_in_client.post("/auth/logout", headers=JSON_HEADERS)

        assert response.status_code == 500
        assert response.json() == {"message": "Error destroying session"}


class TestCurrentUser:
    """Test GET /auth/user"""

    def test_anonymous_user_is_null(self, client):
        response = client.get("/auth/user")

        assert response.status_code == 200
        assert response.json() is None

    def test_signed_in_user_profile(self, signed_in_client):
        """Test only public fields are returned, first email is canonical"""
        response = signed_in_client.get("/auth/user")

        assert response.status_code == 200
        assert response.json() == {
            "_id": "google-user-1",
            "displayName": "Ada Lovelace",
            "email": "ada@example.com",
        }

    def test_pre_login_session_is_anonymous(self, client):
        client.get("/auth/google")

        assert client.get("/auth/user").json() is None


class TestSessionExpiry:

    def test_expired_session_is_unauthenticated(self, signed_in_client, session_store, monkeypatch):
        """Test a session past its TTL no longer authenticates"""
        token = session_token(signed_in_client)
        real_now = RedisSessionStore._now
        monkeypatch.setattr(
            RedisSessionStore, "_now",
            staticmethod(lambda: real_now() + timedelta(seconds=settings.SESSION_TTL_SECONDS + 1)),
        )

        assert signed_in_client.get("/api/cv").status_code == 401
        assert signed_in_client.get("/auth/user").json() is None
        assert f"session:{token}" not in session_store.client.data

    def test_session_store_outage_is_500(self, signed_in_client, session_store, broken_redis):
        """Test an unreachable session store is not treated as logged out"""
        session_store.client = broken_redis

        response = signed_in_client.get("/api/cv")

        assert response.status_code == 500
        assert response.json() == {"detail": "Internal server error"}
