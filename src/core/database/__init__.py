"""
Database subsystem for Kilnbook.

Provides the async SQLAlchemy engine and session management, plus the ORM
base class and column mixins for model definitions.
"""

from src.core.database.base import (
    Base,
    IdMixin,
    OwnedMixin,
    TimestampMixin,
    new_uuid,
    utcnow,
)
from src.core.database.service import (
    DatabaseInitializationError,
    DatabaseNotInitializedError,
    DatabaseService,
)

__all__ = [
    # ORM Base & Mixins
    "Base",
    "IdMixin",
    "OwnedMixin",
    "TimestampMixin",
    "new_uuid",
    "utcnow",
    # Main service
    "DatabaseService",
    # Exceptions
    "DatabaseInitializationError",
    "DatabaseNotInitializedError",
]
