"""
Module: clinic_kernel.models.consultation
Responsibility: ORM persistence for consultations -- one patient visit whose
    ledger (line items and extra charges) is billed as a single total.
Architecture position: Kernel > Models.  May import from db/ and the pure
    enums in domain/ only.

Invariants enforced:
    - total == (consultation_fee or 0) + sum(line subtotals) + sum(extra amounts)
      at every commit.  The column is written ONLY by CostAggregator.
    - Consultations are never physically deleted; cancelled and completed
      rows remain for historical reporting.

Failure modes:
    - IntegrityError if status is written with a value outside the lifecycle.
"""

from datetime import datetime
from decimal import Decimal

from sqlalchemy import CheckConstraint, DateTime, Index, String
from sqlalchemy.orm import Mapped, mapped_column

from clinic_kernel.db.base import TimestampedBase
from clinic_kernel.db.types import LABEL, LONG_TEXT, MONEY
from clinic_kernel.domain.lifecycle import ConsultationStatus

_STATUS_VALUES = ", ".join(f"'{s.value}'" for s in ConsultationStatus)


class Consultation(TimestampedBase):
    """
    Header row of a patient visit.

    Guarantees:
        - status is one of ConsultationStatus values.
        - patient_ref / staff_ref are opaque references into the external
          registries; the kernel never validates their content.
    """

    __tablename__ = "consultations"

    __table_args__ = (
        CheckConstraint(f"status IN ({_STATUS_VALUES})", name="ck_consultation_status"),
        Index("idx_consultation_status", "status"),
        Index("idx_consultation_opened_at", "opened_at"),
        Index("idx_consultation_patient", "patient_ref"),
    )

    patient_ref: Mapped[str] = mapped_column(LABEL, nullable=False)

    staff_ref: Mapped[str] = mapped_column(LABEL, nullable=False)

    opened_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)

    status: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        default=ConsultationStatus.WAITING.value,
    )

    reason: Mapped[str | None] = mapped_column(LONG_TEXT, nullable=True)

    # Flat consultation fee; None means "no fee"
    consultation_fee: Mapped[Decimal | None] = mapped_column(MONEY, nullable=True)

    closing_notes: Mapped[str | None] = mapped_column(LONG_TEXT, nullable=True)

    total: Mapped[Decimal] = mapped_column(MONEY, nullable=False, default=Decimal("0"))

    finalized_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True,
    )

    cancelled_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True,
    )

    def __repr__(self) -> str:
        return f"<Consultation {self.id} status={self.status} total={self.total}>"
