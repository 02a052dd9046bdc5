"""
Module: clinic_kernel.selectors.base
Responsibility: Abstract base class for read-only query selectors.  Selectors
    are the read side used by presentation code (consultation screens,
    remission notes, item pickers).
Architecture position: Kernel > Selectors.  May import from db/, models/ and
    the frozen DTOs and pure functions of domain/.  MUST NOT import from
    services/.

Invariants enforced:
    - Read-only access: selectors never call session.add(), session.delete(),
      session.flush() or session.commit().
    - DTO return convention: selectors return frozen dataclasses, never ORM
      instances, so callers cannot mutate rows through them.
    - Session ownership: the caller owns the session and its transaction.
"""

from abc import ABC
from typing import Generic, TypeVar

from sqlalchemy.orm import Session

from clinic_kernel.db.base import Base

ModelType = TypeVar("ModelType", bound=Base)


class BaseSelector(ABC, Generic[ModelType]):
    """
    Abstract base class for all selectors.

    Non-goals:
        - Defines no queries itself; subclasses implement consultation and
          inventory queries.
    """

    def __init__(self, session: Session):
        self.session = session
