"""
InventoryLedger -- applies and reverses consumption against the inventory.

Responsibility:
    Creates and removes the line items of a consultation.  Creating a line
    item resolves it into leaf decrements (one for a stocked item, one per
    component item for a procedure), reserves all of them, and records the
    line item together with the leaves it took.  Removing a line item
    releases exactly those stored leaves and deletes the row.

Architecture position:
    Kernel > Services.  Uses InventoryPool and ProcedureCatalog.  Called by
    ConsultationService, which checks the lifecycle before calling and
    recomputes the total right after.

Invariants enforced:
    - All-or-nothing consumption: a procedure's leaves are reserved in one
      savepoint; a failure on any leaf leaves every item untouched and no
      line item is written.
    - Reserve/release symmetry: removal releases the stored leaves, not a
      fresh expansion, so an edited procedure definition cannot make removal
      return more (or less) than was taken.
    - unit_cost is captured once, at creation, and never rewritten.

Failure modes:
    - InvalidQuantityError: quantity <= 0, non-finite, too precise, or a
      fractional procedure count.
    - UnknownItemError: item missing, inactive, or of another category.
    - UnknownProcedureError: procedure missing or inactive.
    - InsufficientStockError: some leaf exceeds stock.
    - LineItemNotFoundError: removal of a missing line item.
"""

from uuid import UUID

from sqlalchemy import select

from clinic_kernel.domain.clock import Clock, SystemClock
from clinic_kernel.domain.cost import line_subtotal
from clinic_kernel.domain.dtos import LeafDecrement, LineItemInfo
from clinic_kernel.domain.values import (
    DEFAULT_MONEY_PLACES,
    LineItemKind,
    parse_procedure_count,
    parse_quantity,
)
from clinic_kernel.exceptions import LineItemNotFoundError, UnknownItemError
from clinic_kernel.logging_config import get_logger
from clinic_kernel.models.consultation import Consultation
from clinic_kernel.models.ledger import LineItem, LineItemDecrement
from clinic_kernel.services.base import BaseService
from clinic_kernel.services.inventory_pool import InventoryPool
from clinic_kernel.services.procedure_catalog import ProcedureCatalog

logger = get_logger("services.inventory_ledger")

PROCEDURE_UNIT = "procedure"


def _parse_kind(kind: LineItemKind | str, ref_id: UUID) -> LineItemKind:
    try:
        return LineItemKind(kind)
    except ValueError:
        raise UnknownItemError(str(ref_id), reason=f"unknown line item kind {kind!r}") from None


class InventoryLedger(BaseService[LineItem]):
    """
    Line item creation and removal.

    Contract:
        The caller has locked the consultation row and checked that its
        ledger is open.  The ledger flushes; it never commits.

    Non-goals:
        - Does NOT recompute the consultation total (CostAggregator).
        - Does NOT check lifecycle state (ConsultationLifecycle).
    """

    def __init__(
        self,
        session,
        pool: InventoryPool | None = None,
        catalog: ProcedureCatalog | None = None,
        clock: Clock | None = None,
        money_places: int = DEFAULT_MONEY_PLACES,
    ):
        super().__init__(session)
        self._pool = pool or InventoryPool(session)
        self._catalog = catalog or ProcedureCatalog(session, money_places=money_places)
        self._clock = clock or SystemClock()
        self._money_places = money_places

    # ------------------------------------------------------------------
    # Apply
    # ------------------------------------------------------------------

    def add_line_item(
        self,
        consultation: Consultation,
        kind: LineItemKind | str,
        ref_id: UUID,
        quantity,
        note: str | None = None,
    ) -> LineItem:
        """
        Consume stock for a new line item and record it.

        Preconditions:
            - ``consultation`` is locked by the caller and its ledger is open.

        Postconditions:
            - Every leaf of the line item has been reserved and stored with it.
            - subtotal == quantity x unit_cost, quantized.

        Raises:
            InvalidQuantityError, UnknownItemError, UnknownProcedureError,
            InsufficientStockError.  Inventory is unchanged when any is raised.
        """
        line_kind = _parse_kind(kind, ref_id)

        if line_kind.is_procedure:
            qty = parse_procedure_count(quantity)
            definition = self._catalog.get_definition(ref_id)
            leaves = self._catalog.expand(ref_id, qty)
            unit_cost = self._catalog.unit_price(ref_id)
            label = definition.description
            unit = PROCEDURE_UNIT
        else:
            qty = parse_quantity(quantity)
            item = self._pool.require_item(ref_id, line_kind.category)
            leaves = [LeafDecrement(item_id=item.id, quantity=qty)]
            unit_cost = item.unit_cost
            label = item.name
            unit = item.unit

        leaves = self._pool.reserve_all(leaves)

        line = LineItem(
            consultation_id=consultation.id,
            kind=line_kind.value,
            ref_id=ref_id,
            label=label,
            unit=unit,
            quantity=qty,
            unit_cost=unit_cost,
            subtotal=line_subtotal(qty, unit_cost, self._money_places),
            recorded_at=self._clock.now(),
            note=note,
            decrements=[
                LineItemDecrement(item_id=leaf.item_id, quantity=leaf.quantity)
                for leaf in leaves
            ],
        )
        self.session.add(line)
        self.session.flush()

        logger.info(
            "line_item_added",
            extra={
                "consultation_id": str(consultation.id),
                "line_item_id": str(line.id),
                "kind": line.kind,
                "ref_id": str(ref_id),
                "quantity": str(qty),
                "subtotal": str(line.subtotal),
                "leaf_count": len(leaves),
            },
        )
        return line

    # ------------------------------------------------------------------
    # Reverse
    # ------------------------------------------------------------------

    def get_line_item(self, line_item_id: UUID) -> LineItem:
        """
        Raises:
            LineItemNotFoundError: if the line item does not exist.
        """
        line = self.session.execute(
            select(LineItem)
            .where(LineItem.id == line_item_id)
            .execution_options(populate_existing=True)
        ).scalar_one_or_none()
        if line is None:
            raise LineItemNotFoundError(str(line_item_id))
        return line

    def remove_line_item(self, line_item_id: UUID) -> LineItemInfo:
        """
        Release the stock a line item took and delete it.

        Returns:
            Snapshot of the removed line item.

        Raises:
            LineItemNotFoundError: if the line item does not exist.
        """
        line = self.get_line_item(line_item_id)
        snapshot = line.to_info()

        self._pool.release_all(snapshot.decrements)
        self.session.delete(line)
        self.session.flush()

        logger.info(
            "line_item_removed",
            extra={
                "consultation_id": str(snapshot.consultation_id),
                "line_item_id": str(snapshot.id),
                "kind": snapshot.kind,
                "quantity": str(snapshot.quantity),
                "leaf_count": len(snapshot.decrements),
            },
        )
        return snapshot

    def remove_all(self, consultation_id: UUID) -> int:
        """
        Remove every line item of a consultation, releasing all their stock.

        Leaves of all line items are merged and released in one item-id
        ordered pass.

        Returns:
            Number of line items removed.
        """
        lines = self.line_items_for(consultation_id)
        leaves: list[LeafDecrement] = []
        for line in lines:
            leaves.extend(line.leaf_decrements())

        self._pool.release_all(leaves)
        for line in lines:
            self.session.delete(line)
        self.session.flush()

        logger.info(
            "line_items_removed",
            extra={
                "consultation_id": str(consultation_id),
                "count": len(lines),
                "leaf_count": len(leaves),
            },
        )
        return len(lines)

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def line_items_for(self, consultation_id: UUID) -> list[LineItem]:
        """Line items of a consultation in the order they were recorded."""
        return list(
            self.session.execute(
                select(LineItem)
                .where(LineItem.consultation_id == consultation_id)
                .order_by(LineItem.recorded_at, LineItem.id)
                .execution_options(populate_existing=True)
            ).scalars()
        )

