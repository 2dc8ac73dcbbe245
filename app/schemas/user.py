"""
Pydantic schemas for the signed-in user and the server-side session record.
"""

from pydantic import BaseModel, ConfigDict, Field
from typing import List, Optional
from datetime import datetime


class SessionUser(BaseModel):
    """
    Profile resolved from the identity provider at login.

    Lives only in the session; nothing here is written to the database.
    """
    id: str
    display_name: Optional[str] = None
    emails: List[str] = Field(default_factory=list)

    @property
    def primary_email(self) -> Optional[str]:
        return self.emails[0] if self.emails else None


class SessionRecord(BaseModel):
    """
    Server-side session state, keyed by the opaque cookie token.

    A record without a user is an anonymous pre-login session that only
    carries return_to/oauth_state across the provider round trip.
    """
    token: str
    user: Optional[SessionUser] = None
    created_at: datetime
    expires_at: datetime
    return_to: Optional[str] = None
    oauth_state: Optional[str] = None


class UserInfoResponse(BaseModel):
    """Public view of the signed-in user returned by /auth/user."""
    model_config = ConfigDict(populate_by_name=True)

    id: str = Field(..., alias="_id")
    display_name: Optional[str] = Field(None, alias="displayName")
    email: Optional[str] = None

    @classmethod
    def from_session_user(cls, user: SessionUser) -> "UserInfoResponse":
        return cls(id=user.id, display_name=user.display_name, email=user.primary_email)
