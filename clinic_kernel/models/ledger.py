"""
Module: clinic_kernel.models.ledger
Responsibility: ORM persistence for a consultation's ledger: line items, the
    resolved inventory decrements behind each line item, and ad-hoc extra
    charges.
Architecture position: Kernel > Models.  May import from db/ and the pure
    enums in domain/ only.

Invariants enforced:
    - unit_cost is a snapshot taken at consumption time and never updated.
    - subtotal == quantity x unit_cost (quantized), computed once at creation.
    - Every line item owns the exact leaf decrements it applied to the
      inventory; removal releases exactly those rows, so reserve and release
      are symmetric even if the procedure catalog changed in between.
    - Decrement rows are deleted with their line item (ON DELETE CASCADE).

Failure modes:
    - IntegrityError on a line item or extra pointing at a missing consultation.
"""

from datetime import datetime
from decimal import Decimal
from uuid import UUID

from sqlalchemy import CheckConstraint, DateTime, ForeignKey, Index, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from clinic_kernel.db.base import Base, TimestampedBase, UUIDString
from clinic_kernel.db.types import LABEL, LONG_TEXT, MONEY, QUANTITY, SHORT_CODE
from clinic_kernel.domain.dtos import LeafDecrement, LineItemInfo
from clinic_kernel.domain.values import LineItemKind

_KIND_VALUES = ", ".join(f"'{k.value}'" for k in LineItemKind)


class LineItem(TimestampedBase):
    """
    One consumed stock item or performed procedure billed to a consultation.

    Guarantees:
        - For simple kinds, ref_id is an inventory item id and there is
          exactly one decrement row for that item.
        - For procedures, ref_id is a procedure definition id, quantity is
          the number of performances, and the decrement rows hold
          component.quantity x quantity per component item.
    """

    __tablename__ = "line_items"

    __table_args__ = (
        CheckConstraint(f"kind IN ({_KIND_VALUES})", name="ck_line_item_kind"),
        CheckConstraint("quantity > 0", name="ck_line_item_quantity_positive"),
        Index("idx_line_item_consultation", "consultation_id"),
    )

    consultation_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("consultations.id"),
        nullable=False,
    )

    kind: Mapped[str] = mapped_column(String(20), nullable=False)

    # Inventory item id or procedure definition id, depending on kind
    ref_id: Mapped[UUID] = mapped_column(UUIDString(), nullable=False)

    # Name and unit as they were when consumed
    label: Mapped[str] = mapped_column(LABEL, nullable=False)
    unit: Mapped[str] = mapped_column(SHORT_CODE, nullable=False)

    quantity: Mapped[Decimal] = mapped_column(QUANTITY, nullable=False)

    unit_cost: Mapped[Decimal] = mapped_column(MONEY, nullable=False)

    subtotal: Mapped[Decimal] = mapped_column(MONEY, nullable=False)

    # Clock time of consumption; orders the ledger
    recorded_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)

    note: Mapped[str | None] = mapped_column(LONG_TEXT, nullable=True)

    decrements: Mapped[list["LineItemDecrement"]] = relationship(
        back_populates="line_item",
        cascade="all, delete-orphan",
        passive_deletes=True,
        lazy="selectin",
    )

    @property
    def line_kind(self) -> LineItemKind:
        return LineItemKind(self.kind)

    def leaf_decrements(self) -> list[LeafDecrement]:
        """The stored inventory movements of this line item, as value objects."""
        return [
            LeafDecrement(item_id=d.item_id, quantity=d.quantity)
            for d in self.decrements
        ]

    def to_info(self) -> LineItemInfo:
        """Detached snapshot of this line item and its stored leaves."""
        return LineItemInfo(
            id=self.id,
            consultation_id=self.consultation_id,
            kind=self.kind,
            ref_id=self.ref_id,
            label=self.label,
            unit=self.unit,
            quantity=self.quantity,
            unit_cost=self.unit_cost,
            subtotal=self.subtotal,
            note=self.note,
            decrements=tuple(self.leaf_decrements()),
        )

    def __repr__(self) -> str:
        return f"<LineItem {self.kind} {self.label} x{self.quantity} = {self.subtotal}>"


class LineItemDecrement(Base):
    """Inventory quantity a line item took from one item row."""

    __tablename__ = "line_item_decrements"

    __table_args__ = (
        CheckConstraint("quantity > 0", name="ck_line_item_decrement_quantity_positive"),
        Index("idx_line_item_decrement_line", "line_item_id"),
    )

    line_item_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("line_items.id", ondelete="CASCADE"),
        nullable=False,
    )

    item_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("inventory_items.id"),
        nullable=False,
    )

    quantity: Mapped[Decimal] = mapped_column(QUANTITY, nullable=False)

    line_item: Mapped[LineItem] = relationship(back_populates="decrements")


class ExtraCharge(TimestampedBase):
    """Ad-hoc charge added to a consultation (e.g. "home visit surcharge")."""

    __tablename__ = "extra_charges"

    __table_args__ = (
        CheckConstraint("amount >= 0", name="ck_extra_charge_amount_non_negative"),
        Index("idx_extra_charge_consultation", "consultation_id"),
    )

    consultation_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("consultations.id"),
        nullable=False,
    )

    concept: Mapped[str] = mapped_column(LABEL, nullable=False)

    amount: Mapped[Decimal] = mapped_column(MONEY, nullable=False)

    recorded_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)

    note: Mapped[str | None] = mapped_column(LONG_TEXT, nullable=True)

    def __repr__(self) -> str:
        return f"<ExtraCharge {self.concept} {self.amount}>"
