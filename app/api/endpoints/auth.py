"""
Google sign-in, session and logout endpoints.

Flow:
1. GET /auth/google stores returnTo + CSRF state in a pre-login session and redirects to Google
2. GET /auth/google/callback checks state, resolves the identity, issues a fresh session
3. GET|POST /auth/logout destroys the session and clears the cookie
"""

import logging
from typing import Optional
from fastapi import APIRouter, Depends, Query, Request, status
from fastapi.responses import JSONResponse, RedirectResponse, Response
from app.core.config import settings
from app.core.deps import AuthState, Authenticated, get_auth_state
from app.core.exceptions import AuthProviderError, StoreUnavailable
from app.core.session_store import RedisSessionStore, get_session_store
from app.schemas.user import UserInfoResponse
from app.services.google_oauth import GoogleOAuthService, get_oauth_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["Authentication"])

DEFAULT_RETURN_TO = "/"


def safe_return_to(value: Optional[str]) -> str:
    """
    Accept only site-relative paths, so the redirect stays on the frontend.
    """
    if not value or not value.startswith("/") or value.startswith("//") or "\\" in value:
        return DEFAULT_RETURN_TO
    return value


def frontend_url(path: str) -> str:
    return f"{settings.FRONTEND_URL.rstrip('/')}{path}"


def login_failed_url() -> str:
    return frontend_url("/login?error=auth_failed")


def set_session_cookie(response: Response, token: str) -> None:
    response.set_cookie(
        key=settings.SESSION_COOKIE_NAME,
        value=token,
        max_age=settings.SESSION_TTL_SECONDS,
        path="/",
        httponly=True,
        secure=settings.SESSION_COOKIE_SECURE,
        samesite=settings.SESSION_COOKIE_SAMESITE,
    )


def clear_session_cookie(response: Response) -> None:
    # Attributes must match the ones the cookie was set with
    response.delete_cookie(
        key=settings.SESSION_COOKIE_NAME,
        path="/",
        httponly=True,
        secure=settings.SESSION_COOKIE_SECURE,
        samesite=settings.SESSION_COOKIE_SAMESITE,
    )


@router.get("/google")
def google_login(
    return_to: Optional[str] = Query(None, alias="returnTo"),
    auth_state: AuthState = Depends(get_auth_state),
    store: RedisSessionStore = Depends(get_session_store),
    oauth: GoogleOAuthService = Depends(get_oauth_service),
):
    """
    Start Google sign-in.

    The optional returnTo path is kept in the session and used once,
    after the callback succeeds.
    """
    oauth_state = oauth.new_state()
    target = safe_return_to(return_to) if return_to else None

    session = auth_state.session
    if session is None:
        session = store.create(return_to=target, oauth_state=oauth_state)
    else:
        session.oauth_state = oauth_state
        if target:
            session.return_to = target
        store.save(session)

    response = RedirectResponse(oauth.get_authorization_url(oauth_state), status_code=status.HTTP_302_FOUND)
    set_session_cookie(response, session.token)
    return response


@router.get("/google/callback")
async def google_callback(
    code: Optional[str] = Query(None),
    state_param: Optional[str] = Query(None, alias="state"),
    error: Optional[str] = Query(None),
    auth_state: AuthState = Depends(get_auth_state),
    store: RedisSessionStore = Depends(get_session_store),
    oauth: GoogleOAuthService = Depends(get_oauth_service),
):
    """
    Handle the redirect back from Google.

    Any failure sends the browser to the frontend login page with
    error=auth_failed; this endpoint never answers 5xx for provider errors.
    """
    failure = RedirectResponse(login_failed_url(), status_code=status.HTTP_302_FOUND)
    session = auth_state.session

    if error:
        logger.warning(f"Google sign-in returned error: {error}")
        return failure

    if session is None or not session.oauth_state or not code:
        logger.warning("OAuth callback without a pending login")
        return failure

    if state_param != session.oauth_state:
        logger.warning("OAuth callback state mismatch")
        session.oauth_state = None
        store.save(session)
        return failure

    try:
        user = await oauth.resolve_identity(code)
    except AuthProviderError as e:
        logger.error(f"Error in Google OAuth callback: {e}")
        session.oauth_state = None
        store.save(session)
        return failure

    # returnTo is consumed here; the new session starts without it
    return_to = session.return_to or DEFAULT_RETURN_TO
    store.destroy(session.token)
    new_session = store.create(user=user)

    logger.info(f"User {user.id} signed in")

    response = RedirectResponse(frontend_url(return_to), status_code=status.HTTP_302_FOUND)
    set_session_cookie(response, new_session.token)
    return response


@router.api_route("/logout", methods=["GET", "POST"])
def logout(
    request: Request,
    return_to: Optional[str] = Query(None, alias="returnTo"),
    auth_state: AuthState = Depends(get_auth_state),
    store: RedisSessionStore = Depends(get_session_store),
):
    """
    Sign out. Succeeds whether or not a session exists.

    JSON clients (Content-Type: application/json) get {"success": true};
    browsers are redirected to the frontend.
    """
    if auth_state.session is not None:
        try:
            store.destroy(auth_state.session.token)
        except StoreUnavailable:
            logger.exception("Error destroying session")
            return JSONResponse(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                content={"message": "Error destroying session"},
            )

    content_type = request.headers.get("content-type", "").split(";")[0].strip().lower()
    if content_type == "application/json":
        response: Response = JSONResponse({"success": True})
    else:
        response = RedirectResponse(frontend_url(safe_return_to(return_to)), status_code=status.HTTP_302_FOUND)

    clear_session_cookie(response)
    return response


@router.get("/user")
def current_user_info(auth_state: AuthState = Depends(get_auth_state)):
    """
    Return the signed-in user's public profile, or null.
    """
    if isinstance(auth_state, Authenticated):
        return UserInfoResponse.from_session_user(auth_state.user).model_dump(by_alias=True)
    return None
