"""
Data Transfer Objects for the clinic kernel.

Responsibility:
    Frozen value objects that cross layer boundaries: the resolved inventory
    decrements that InventoryLedger passes to InventoryPool, and the
    snapshots selectors hand to the presentation layer.  None of them is
    attached to a Session.

Architecture position:
    Kernel > Domain -- pure, zero I/O.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from uuid import UUID


@dataclass(frozen=True)
class LeafDecrement:
    """
    One resolved inventory movement: take (or give back) ``quantity`` of ``item_id``.

    A simple line item resolves to one leaf; a procedure line item resolves to
    one leaf per distinct component item.
    """

    item_id: UUID
    quantity: Decimal

    def __post_init__(self) -> None:
        if self.quantity <= 0:
            raise ValueError(f"LeafDecrement quantity must be positive, got {self.quantity}")


def merge_decrements(decrements: list[LeafDecrement]) -> list[LeafDecrement]:
    """
    Merge leaves naming the same item and order them by item id.

    Locking rows in one global order keeps two concurrent batches from
    deadlocking on each other.
    """
    totals: dict[UUID, Decimal] = {}
    for leaf in decrements:
        totals[leaf.item_id] = totals.get(leaf.item_id, Decimal(0)) + leaf.quantity
    return [
        LeafDecrement(item_id=item_id, quantity=qty)
        for item_id, qty in sorted(totals.items(), key=lambda kv: str(kv[0]))
    ]


@dataclass(frozen=True)
class ConsultationInfo:
    """Read-side snapshot of a consultation header."""

    id: UUID
    patient_ref: str
    staff_ref: str
    status: str
    opened_at: datetime
    reason: str | None
    consultation_fee: Decimal | None
    closing_notes: str | None
    total: Decimal
    finalized_at: datetime | None = None
    cancelled_at: datetime | None = None


@dataclass(frozen=True)
class LineItemInfo:
    """Read-side snapshot of a line item."""

    id: UUID
    consultation_id: UUID
    kind: str
    ref_id: UUID
    label: str
    unit: str
    quantity: Decimal
    unit_cost: Decimal
    subtotal: Decimal
    note: str | None = None
    decrements: tuple[LeafDecrement, ...] = ()


@dataclass(frozen=True)
class ExtraChargeInfo:
    """Read-side snapshot of an extra charge."""

    id: UUID
    consultation_id: UUID
    concept: str
    amount: Decimal
    note: str | None = None


@dataclass(frozen=True)
class InventoryItemInfo:
    """Read-side snapshot of a stocked item."""

    id: UUID
    code: str
    category: str
    name: str
    unit: str
    quantity: Decimal
    unit_cost: Decimal
    is_active: bool


@dataclass(frozen=True)
class ProcedureInfo:
    """Read-side snapshot of a procedure definition and its current price."""

    id: UUID
    code: str
    description: str
    unit_price: Decimal
    components: tuple[LeafDecrement, ...] = ()


@dataclass(frozen=True)
class StatementLine:
    """One printable line of a remission note."""

    label: str
    amount: Decimal
    kind: str
    quantity: Decimal | None = None
    unit: str | None = None
    unit_cost: Decimal | None = None
    note: str | None = None


@dataclass(frozen=True)
class Statement:
    """
    Remission-note data for a consultation.

    Guarantees:
        sum(line.amount for line in lines) == total == stored consultation total.
    """

    consultation: ConsultationInfo
    detailed: bool
    currency: str
    lines: tuple[StatementLine, ...] = field(default_factory=tuple)

    @property
    def total(self) -> Decimal:
        return sum((line.amount for line in self.lines), Decimal(0))
