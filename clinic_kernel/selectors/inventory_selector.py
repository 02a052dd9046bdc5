"""
Module: clinic_kernel.selectors.inventory_selector
Responsibility: Read-only lookups behind the item and procedure pickers of a
    consultation screen.
Architecture position: Kernel > Selectors.

Invariants enforced:
    - Item searches only offer active items with stock on hand.
    - Procedure prices are computed from the current fee schedule with the
      same rounding ProcedureCatalog uses when billing.
"""

from decimal import Decimal
from uuid import UUID

from sqlalchemy import select

from clinic_kernel.domain.cost import BillingPolicy
from clinic_kernel.domain.dtos import InventoryItemInfo, LeafDecrement, ProcedureInfo
from clinic_kernel.domain.values import ItemCategory, quantize_money
from clinic_kernel.models.inventory import InventoryItem
from clinic_kernel.models.procedure import ProcedureDefinition
from clinic_kernel.selectors.base import BaseSelector

DEFAULT_SEARCH_LIMIT = 20


def _item_info(row: InventoryItem) -> InventoryItemInfo:
    return InventoryItemInfo(
        id=row.id,
        code=row.code,
        category=row.category,
        name=row.name,
        unit=row.unit,
        quantity=row.quantity,
        unit_cost=row.unit_cost,
        is_active=row.is_active,
    )


class InventorySelector(BaseSelector[InventoryItem]):
    """Item and procedure search."""

    def __init__(self, session, policy: BillingPolicy | None = None):
        super().__init__(session)
        self._policy = policy or BillingPolicy()

    def get_item(self, item_id: UUID) -> InventoryItemInfo | None:
        row = self.session.execute(
            select(InventoryItem)
            .where(InventoryItem.id == item_id)
            .execution_options(populate_existing=True)
        ).scalar_one_or_none()
        return _item_info(row) if row is not None else None

    def search_items(
        self,
        category: ItemCategory | str | None = None,
        text: str = "",
        limit: int = DEFAULT_SEARCH_LIMIT,
    ) -> list[InventoryItemInfo]:
        """
        Active, in-stock items whose name contains ``text`` (case-insensitive),
        ordered by name.
        """
        stmt = select(InventoryItem).where(
            InventoryItem.is_active.is_(True),
            InventoryItem.quantity > 0,
        )
        if category is not None:
            stmt = stmt.where(InventoryItem.category == ItemCategory(category).value)
        if text:
            stmt = stmt.where(InventoryItem.name.icontains(text, autoescape=True))
        stmt = stmt.order_by(InventoryItem.name, InventoryItem.code).limit(limit)

        rows = self.session.execute(
            stmt.execution_options(populate_existing=True)
        ).scalars()
        return [_item_info(row) for row in rows]

    def search_procedures(
        self,
        text: str = "",
        limit: int = DEFAULT_SEARCH_LIMIT,
    ) -> list[ProcedureInfo]:
        """Active procedures whose description contains ``text``, with unit price."""
        stmt = select(ProcedureDefinition).where(ProcedureDefinition.is_active.is_(True))
        if text:
            stmt = stmt.where(ProcedureDefinition.description.icontains(text, autoescape=True))
        stmt = stmt.order_by(ProcedureDefinition.description).limit(limit)

        rows = self.session.execute(
            stmt.execution_options(populate_existing=True)
        ).scalars()
        return [
            ProcedureInfo(
                id=row.id,
                code=row.code,
                description=row.description,
                unit_price=quantize_money(
                    sum((fee.fee for fee in row.fees), Decimal(0)),
                    self._policy.money_places,
                ),
                components=tuple(
                    LeafDecrement(item_id=c.item_id, quantity=c.quantity)
                    for c in row.components
                ),
            )
            for row in rows
        ]
