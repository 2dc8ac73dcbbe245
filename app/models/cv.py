"""
CV model: the single document a user owns.

The payload is stored as-is; its shape belongs to the frontend.
"""

import uuid
from sqlalchemy import Column, String, DateTime, JSON, Uuid
from sqlalchemy.dialects.postgresql import JSONB
from app.core.database import Base


class CV(Base):
    """
    One CV per user.

    user_id is the identity provider's subject id. The unique constraint on it
    is what keeps concurrent first saves from creating two rows.
    """
    __tablename__ = "cvs"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id = Column(String, unique=True, nullable=False, index=True)

    # Opaque CV payload, JSONB on PostgreSQL
    cv_data = Column(JSON().with_variant(JSONB, "postgresql"), nullable=True)

    # Timestamps are set by the CRUD layer so created/updated share one clock reading
    created_at = Column(DateTime(timezone=True), nullable=False)
    updated_at = Column(DateTime(timezone=True), nullable=False)

    def __repr__(self):
        return f"<CV(id={self.id}, user_id='{self.user_id}')>"
