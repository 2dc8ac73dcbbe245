"""
CRUD operations for the CV model.

A user owns at most one CV. Saving is "create if absent, else update",
and the unique constraint on cvs.user_id settles races between
concurrent first saves.
"""

import enum
import logging
from datetime import datetime, timezone
from typing import Any, Optional, Tuple
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session
from app.core.exceptions import StoreUnavailable
from app.models.cv import CV

logger = logging.getLogger(__name__)


class SaveOutcome(str, enum.Enum):
    """Which branch save_for_user took."""
    CREATED = "created"
    UPDATED = "updated"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def get_by_user_id(db: Session, user_id: str) -> Optional[CV]:
    """
    Retrieve the CV owned by a user.

    Args:
        db: Database session
        user_id: External user identifier

    Returns:
        CV instance if the user has saved one, None otherwise

    Raises:
        StoreUnavailable: If the database query fails
    """
    try:
        return db.query(CV).filter(CV.user_id == user_id).first()
    except SQLAlchemyError as e:
        raise StoreUnavailable(f"Failed to load CV for user {user_id}: {e}") from e


def save_for_user(db: Session, user_id: str, cv_data: Any) -> Tuple[CV, SaveOutcome]:
    """
    Create the user's CV, or replace the payload of the existing one.

    created_at and id never change after the first save; updated_at is
    bumped on every save.

    Args:
        db: Database session
        user_id: External user identifier
        cv_data: Opaque CV payload

    Returns:
        Tuple of (CV, SaveOutcome)

    Raises:
        StoreUnavailable: If the database fails
    """
    now = _utcnow()

    try:
        existing = get_by_user_id(db, user_id)

        if existing is None:
            cv = CV(user_id=user_id, cv_data=cv_data, created_at=now, updated_at=now)
            db.add(cv)
            try:
                db.commit()
            except IntegrityError:
                # Lost the race: another request inserted this user's CV first
                db.rollback()
                existing = get_by_user_id(db, user_id)
                if existing is None:
                    raise
                logger.info(f"Concurrent first save for user {user_id}, updating winner's CV")
            else:
                db.refresh(cv)
                return cv, SaveOutcome.CREATED

        existing.cv_data = cv_data
        existing.updated_at = now
        db.commit()
        db.refresh(existing)
        return existing, SaveOutcome.UPDATED

    except SQLAlchemyError as e:
        db.rollback()
        raise StoreUnavailable(f"Failed to save CV for user {user_id}: {e}") from e
