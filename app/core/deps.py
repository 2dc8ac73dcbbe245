"""
FastAPI dependencies for authentication.

The session cookie is resolved into an explicit Authenticated or
Unauthenticated value; protected endpoints depend on get_current_user,
which rejects with 401 before any document store access happens.
"""

from dataclasses import dataclass
from typing import Optional, Union

from fastapi import Depends, HTTPException, Request, status

from app.core.config import settings
from app.core.session_store import RedisSessionStore, get_session_store
from app.schemas.user import SessionRecord, SessionUser


@dataclass(frozen=True)
class Authenticated:
    session: SessionRecord
    user: SessionUser


@dataclass(frozen=True)
class Unauthenticated:
    # Anonymous pre-login session, if the browser has one
    session: Optional[SessionRecord] = None


AuthState = Union[Authenticated, Unauthenticated]


def get_auth_state(
    request: Request,
    store: RedisSessionStore = Depends(get_session_store),
) -> AuthState:
    """
    Resolve the request's session cookie.

    Missing, unknown and expired tokens all come back as Unauthenticated.
    Session store outages propagate as StoreUnavailable.
    """
    token = request.cookies.get(settings.SESSION_COOKIE_NAME)
    if not token:
        return Unauthenticated()

    record = store.get(token)
    if record is None:
        return Unauthenticated()

    if record.user is None:
        return Unauthenticated(session=record)

    return Authenticated(session=record, user=record.user)


def get_current_user(state: AuthState = Depends(get_auth_state)) -> SessionUser:
    """
    Require a signed-in user.

    Raises:
        HTTPException 401: If there is no valid, unexpired session
    """
    if isinstance(state, Authenticated):
        return state.user

    raise HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Not authenticated",
    )
