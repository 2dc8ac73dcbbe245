"""
Database models package.
"""

from app.models.cv import CV

__all__ = ["CV"]
