"""Database layer - engine, base classes, and column types."""

from clinic_kernel.db.base import UUID, Base, TimestampedBase, UUIDString
from clinic_kernel.db.engine import (
    create_clinic_engine,
    create_tables,
    get_engine,
    get_session,
    get_session_factory,
    session_scope,
)
from clinic_kernel.db.types import LABEL, LONG_TEXT, MONEY, QUANTITY, SHORT_CODE

__all__ = [
    "get_engine",
    "get_session",
    "get_session_factory",
    "session_scope",
    "create_clinic_engine",
    "create_tables",
    "Base",
    "TimestampedBase",
    "UUIDString",
    "UUID",
    "MONEY",
    "QUANTITY",
    "SHORT_CODE",
    "LABEL",
    "LONG_TEXT",
]
