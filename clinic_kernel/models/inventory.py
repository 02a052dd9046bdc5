"""
Module: clinic_kernel.models.inventory
Responsibility: ORM persistence for stocked inventory items (medications,
    triage materials, general materials) -- the shared, finite pool that
    consultations consume.
Architecture position: Kernel > Models.  May import from db/ and the pure
    enums in domain/values.py only.

Invariants enforced:
    - Non-negative stock: CHECK (quantity >= 0).  InventoryPool guarantees it
      in application code; the constraint is the last line of defence.
    - Unique item code (UNIQUE constraint on code).
    - quantity is written ONLY by InventoryPool.reserve/release (and by
      out-of-scope replenishment CRUD).

Failure modes:
    - IntegrityError on duplicate code or on an UPDATE that would make
      quantity negative.
"""

from decimal import Decimal

from sqlalchemy import Boolean, CheckConstraint, Index, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from clinic_kernel.db.base import TimestampedBase
from clinic_kernel.db.types import LABEL, MONEY, QUANTITY, SHORT_CODE


class InventoryItem(TimestampedBase):
    """
    One stocked item and its on-hand quantity.

    Guarantees:
        - quantity >= 0 at every commit.
        - unit_cost is the CURRENT price; line items snapshot it at
          consumption time, so later price edits do not rewrite history.
    """

    __tablename__ = "inventory_items"

    __table_args__ = (
        UniqueConstraint("code", name="uq_inventory_item_code"),
        CheckConstraint("quantity >= 0", name="ck_inventory_quantity_non_negative"),
        CheckConstraint("unit_cost >= 0", name="ck_inventory_unit_cost_non_negative"),
        Index("idx_inventory_category", "category"),
        Index("idx_inventory_name", "name"),
    )

    code: Mapped[str] = mapped_column(SHORT_CODE, nullable=False)

    # ItemCategory value
    category: Mapped[str] = mapped_column(String(30), nullable=False)

    name: Mapped[str] = mapped_column(LABEL, nullable=False)

    # Unit label ("tablet", "ml", "piece")
    unit: Mapped[str] = mapped_column(SHORT_CODE, nullable=False, default="unit")

    quantity: Mapped[Decimal] = mapped_column(QUANTITY, nullable=False, default=Decimal("0"))

    unit_cost: Mapped[Decimal] = mapped_column(MONEY, nullable=False, default=Decimal("0"))

    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    def __repr__(self) -> str:
        return f"<InventoryItem {self.code} qty={self.quantity}>"
