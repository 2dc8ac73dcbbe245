"""
Google OAuth 2.0 / OpenID Connect client.

Implements the authorization-code flow used for sign-in:
redirect to Google, exchange the returned code for tokens, then read
the user's profile from the userinfo endpoint.
API Documentation: https://developers.google.com/identity/protocols/oauth2/web-server
"""

import logging
import secrets
import httpx
from typing import Dict, List, Optional
from urllib.parse import urlencode
from fastapi import Request
from app.core.config import settings
from app.core.exceptions import AuthProviderError
from app.schemas.user import SessionUser

logger = logging.getLogger(__name__)


class GoogleOAuthService:
    """
    Google sign-in integration.

    Handles:
    - Authorization URL generation (with CSRF state)
    - Authorization code exchange
    - Profile lookup
    """

    AUTH_URL = "https://accounts.google.com/o/oauth2/v2/auth"
    TOKEN_URL = "https://oauth2.googleapis.com/token"
    USERINFO_URL = "https://openidconnect.googleapis.com/v1/userinfo"

    SCOPES = [
        "openid",
        "profile",
        "email",
    ]

    def __init__(
        self,
        client_id: Optional[str] = None,
        client_secret: Optional[str] = None,
        redirect_uri: Optional[str] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.client_id = client_id if client_id is not None else settings.GOOGLE_CLIENT_ID
        self.client_secret = client_secret if client_secret is not None else settings.GOOGLE_CLIENT_SECRET
        self.redirect_uri = redirect_uri if redirect_uri is not None else settings.GOOGLE_REDIRECT_URI
        self.timeout = timeout if timeout is not None else settings.OAUTH_HTTP_TIMEOUT
        # Injected in tests to stub Google's endpoints
        self.transport = transport

    @staticmethod
    def new_state() -> str:
        return secrets.token_urlsafe(32)

    def get_authorization_url(self, state: str) -> str:
        """
        Build the Google consent URL.

        Args:
            state: Opaque CSRF value, echoed back on the callback

        Returns:
            Authorization URL to redirect the browser to
        """
        params = {
            "response_type": "code",
            "client_id": self.client_id,
            "redirect_uri": self.redirect_uri,
            "scope": " ".join(self.SCOPES),
            "state": state,
            "prompt": "select_account",  # Always show the account chooser
        }
        return f"{self.AUTH_URL}?{urlencode(params)}"

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(timeout=self.timeout, transport=self.transport)

    async def exchange_code_for_token(self, code: str) -> Dict:
        """
        Exchange authorization code for tokens.

        Args:
            code: Authorization code from the Google callback

        Returns:
            Token data including access_token, expires_in, id_token

        Raises:
            AuthProviderError: If token exchange fails
        """
        try:
            async with self._client() as client:
                response = await client.post(
                    self.TOKEN_URL,
                    data={
                        "grant_type": "authorization_code",
                        "code": code,
                        "redirect_uri": self.redirect_uri,
                        "client_id": self.client_id,
                        "client_secret": self.client_secret
                    },
                    headers={"Content-Type": "application/x-www-form-urlencoded"},
                )
        except httpx.HTTPError as e:
            raise AuthProviderError(f"Token request failed: {e}") from e

        if response.status_code != 200:
            logger.error(f"Token exchange failed: {response.status_code} {response.text}")
            raise AuthProviderError(f"Failed to obtain access token (HTTP {response.status_code})")

        token_data = response.json()
        if "access_token" not in token_data:
            raise AuthProviderError("Token response did not include an access token")
        return token_data

    async def fetch_profile(self, access_token: str) -> SessionUser:
        """
        Read the signed-in user's profile.

        Args:
            access_token: OAuth access token

        Returns:
            SessionUser built from the OpenID Connect userinfo claims

        Raises:
            AuthProviderError: If the profile request fails or has no subject
        """
        try:
            async with self._client() as client:
                response = await client.get(
                    self.USERINFO_URL,
                    headers={"Authorization": f"Bearer {access_token}"},
                )
        except httpx.HTTPError as e:
            raise AuthProviderError(f"Profile request failed: {e}") from e

        if response.status_code != 200:
            logger.error(f"Profile lookup failed: {response.status_code} {response.text}")
            raise AuthProviderError(f"Failed to fetch profile (HTTP {response.status_code})")

        claims = response.json()
        subject = claims.get("sub")
        if not subject:
            raise AuthProviderError("Profile response did not include a subject id")

        emails: List[str] = []
        if claims.get("email"):
            emails.append(claims["email"])

        return SessionUser(
            id=str(subject),
            display_name=claims.get("name"),
            emails=emails,
        )

    async def resolve_identity(self, code: str) -> SessionUser:
        """Run the code exchange and profile lookup for one callback."""
        token_data = await self.exchange_code_for_token(code)
        return await self.fetch_profile(token_data["access_token"])


def get_oauth_service(request: Request) -> GoogleOAuthService:
    return request.app.state.oauth_service
