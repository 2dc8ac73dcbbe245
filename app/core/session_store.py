"""
Redis-backed server-side session store.

Each session is a JSON-encoded SessionRecord under ``session:<token>``.
The TTL is fixed at creation: later writes keep the original expiry
instead of extending it. Expiry is enforced twice, by Redis key expiry
and by checking ``expires_at`` on every read.
"""

import logging
import secrets
from datetime import datetime, timedelta, timezone
from typing import Optional

import redis
from fastapi import Request
from pydantic import ValidationError

from app.core.exceptions import StoreUnavailable
from app.schemas.user import SessionRecord, SessionUser

logger = logging.getLogger(__name__)


class RedisSessionStore:
    KEY_PREFIX = "session:"

    def __init__(self, client: redis.Redis, ttl_seconds: int = 24 * 60 * 60):
        self.client = client
        self.ttl_seconds = ttl_seconds

    def _key(self, token: str) -> str:
        return f"{self.KEY_PREFIX}{token}"

    @staticmethod
    def _now() -> datetime:
        return datetime.now(timezone.utc)

    def create(
        self,
        user: Optional[SessionUser] = None,
        return_to: Optional[str] = None,
        oauth_state: Optional[str] = None,
    ) -> SessionRecord:
        """
        Create and persist a new session with a fresh random token.

        Raises:
            StoreUnavailable: If Redis cannot be reached
        """
        now = self._now()
        record = SessionRecord(
            token=secrets.token_urlsafe(32),
            user=user,
            created_at=now,
            expires_at=now + timedelta(seconds=self.ttl_seconds),
            return_to=return_to,
            oauth_state=oauth_state,
        )
        try:
            self.client.setex(self._key(record.token), self.ttl_seconds, record.model_dump_json())
        except redis.RedisError as e:
            raise StoreUnavailable(f"Failed to create session: {e}") from e
        return record

    def get(self, token: str) -> Optional[SessionRecord]:
        """
        Load a live session.

        Returns:
            SessionRecord, or None if the token is unknown, expired or unreadable

        Raises:
            StoreUnavailable: If Redis cannot be reached
        """
        try:
            raw = self.client.get(self._key(token))
        except redis.RedisError as e:
            raise StoreUnavailable(f"Failed to load session: {e}") from e

        if raw is None:
            return None

        try:
            record = SessionRecord.model_validate_json(raw)
        except ValidationError:
            logger.warning("Discarding malformed session record")
            self.destroy(token)
            return None

        if record.expires_at <= self._now():
            self.destroy(token)
            return None

        return record

    def save(self, record: SessionRecord) -> None:
        """
        Write back a modified session, keeping its original expiry.

        Raises:
            StoreUnavailable: If Redis cannot be reached
        """
        remaining = int((record.expires_at - self._now()).total_seconds())
        if remaining <= 0:
            self.destroy(record.token)
            return
        try:
            self.client.setex(self._key(record.token), remaining, record.model_dump_json())
        except redis.RedisError as e:
            raise StoreUnavailable(f"Failed to save session: {e}") from e

    def destroy(self, token: str) -> bool:
        """
        Delete a session. Deleting an unknown token is not an error.

        Returns:
            bool: True if a session was removed

        Raises:
            StoreUnavailable: If Redis cannot be reached
        """
        try:
            return bool(self.client.delete(self._key(token)))
        except redis.RedisError as e:
            raise StoreUnavailable(f"Failed to destroy session: {e}") from e

    def ping(self) -> None:
        try:
            self.client.ping()
        except redis.RedisError as e:
            raise StoreUnavailable(f"Session store ping failed: {e}") from e


def get_session_store(request: Request) -> RedisSessionStore:
    return request.app.state.session_store
