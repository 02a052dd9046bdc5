"""
Module: clinic_kernel.models.procedure
Responsibility: ORM persistence for the composite-procedure catalog: the
    procedure header, its component consumption list, and its fee schedule.
Architecture position: Kernel > Models.  May import from db/ only.

Invariants enforced:
    - Component quantities are positive (CHECK quantity > 0).
    - Fees are non-negative (CHECK fee >= 0).
    - The catalog is read-only to the kernel; only catalog management writes it.

Failure modes:
    - IntegrityError on duplicate procedure code or a component that references
      a missing inventory item.
"""

from decimal import Decimal
from uuid import UUID

from sqlalchemy import Boolean, CheckConstraint, ForeignKey, Index, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from clinic_kernel.db.base import Base, TimestampedBase, UUIDString
from clinic_kernel.db.types import LABEL, LONG_TEXT, MONEY, QUANTITY, SHORT_CODE


class ProcedureDefinition(TimestampedBase):
    """
    A catalog bundle: fixed inventory consumption plus a fee schedule.

    Guarantees:
        - unit price == sum(fee.fee for fee in fees).
        - Performing the procedure N times consumes N x component.quantity of
          every component item.
    """

    __tablename__ = "procedure_definitions"

    __table_args__ = (
        UniqueConstraint("code", name="uq_procedure_code"),
    )

    code: Mapped[str] = mapped_column(SHORT_CODE, nullable=False)

    description: Mapped[str] = mapped_column(LABEL, nullable=False)

    notes: Mapped[str | None] = mapped_column(LONG_TEXT, nullable=True)

    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    components: Mapped[list["ProcedureComponent"]] = relationship(
        back_populates="procedure",
        cascade="all, delete-orphan",
        lazy="selectin",
        order_by="ProcedureComponent.position",
    )

    fees: Mapped[list["ProcedureFee"]] = relationship(
        back_populates="procedure",
        cascade="all, delete-orphan",
        lazy="selectin",
        order_by="ProcedureFee.position",
    )

    def __repr__(self) -> str:
        return f"<ProcedureDefinition {self.code}>"


class ProcedureComponent(Base):
    """One (inventory item, quantity per performance) pair of a procedure."""

    __tablename__ = "procedure_components"

    __table_args__ = (
        CheckConstraint("quantity > 0", name="ck_procedure_component_quantity_positive"),
        Index("idx_procedure_component_procedure", "procedure_id"),
    )

    procedure_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("procedure_definitions.id", ondelete="CASCADE"),
        nullable=False,
    )

    item_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("inventory_items.id"),
        nullable=False,
    )

    quantity: Mapped[Decimal] = mapped_column(QUANTITY, nullable=False)

    position: Mapped[int] = mapped_column(nullable=False, default=0)

    procedure: Mapped[ProcedureDefinition] = relationship(back_populates="components")


class ProcedureFee(Base):
    """One (responsible party, fee) entry of a procedure's fee schedule."""

    __tablename__ = "procedure_fees"

    __table_args__ = (
        CheckConstraint("fee >= 0", name="ck_procedure_fee_non_negative"),
        Index("idx_procedure_fee_procedure", "procedure_id"),
    )

    procedure_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("procedure_definitions.id", ondelete="CASCADE"),
        nullable=False,
    )

    responsible_party: Mapped[str] = mapped_column(LABEL, nullable=False)

    fee: Mapped[Decimal] = mapped_column(MONEY, nullable=False, default=Decimal("0"))

    position: Mapped[int] = mapped_column(nullable=False, default=0)

    procedure: Mapped[ProcedureDefinition] = relationship(back_populates="fees")
