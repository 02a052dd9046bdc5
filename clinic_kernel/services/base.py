"""
BaseService -- abstract base for the clinic kernel's write-side services.

Responsibility:
    Common constructor and session contract for InventoryPool,
    ProcedureCatalog, InventoryLedger and CostAggregator.  They receive a
    SQLAlchemy ``Session`` and persist with ``session.flush()`` only.

Architecture position:
    Kernel > Services.  ConsultationService is the one service that owns
    the transaction boundary; every other service runs inside it.

Invariants enforced:
    Services flush within the caller's transaction and never commit or roll
    back the outer transaction themselves.  Savepoints they open are closed
    before they return.

Failure modes:
    - A subclass that calls ``session.commit()`` breaks the all-or-nothing
      guarantee of multi-step operations such as procedure consumption and
      cancellation.
"""

from abc import ABC
from typing import Generic, TypeVar

from sqlalchemy.orm import Session

from clinic_kernel.db.base import Base

ModelType = TypeVar("ModelType", bound=Base)


class BaseService(ABC, Generic[ModelType]):
    """
    Abstract base class for kernel services.

    Guarantees:
        - The service never calls ``session.commit()`` or
          ``session.rollback()``.

    Non-goals:
        - Read-only queries for the presentation layer live in
          ``clinic_kernel/selectors/``.
    """

    def __init__(self, session: Session):
        self.session = session
