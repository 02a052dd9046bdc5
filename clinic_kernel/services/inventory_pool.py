"""
InventoryPool -- on-hand stock per inventory item, guarded by row locks.

Responsibility:
    The only code that writes ``InventoryItem.quantity``.  ``reserve`` checks
    and decrements stock as one step under a row lock; ``release`` adds stock
    back.  Knows nothing about consultations or line items.

Architecture position:
    Kernel > Services -- leaf service, no service dependencies.
    Called by InventoryLedger.

Invariants enforced:
    - Non-negative stock: ``reserve`` locks the item row with
      ``SELECT ... FOR UPDATE`` and refuses any decrement larger than the
      locked quantity.  The CHECK constraint on the table is the backstop.
    - Batches lock rows in ascending item-id order, so two batches touching
      overlapping items cannot deadlock.
    - ``reserve_all`` runs inside a savepoint: either every leaf of the batch
      is reserved or none is.

Failure modes:
    - InsufficientStockError: requested quantity exceeds locked stock.
    - UnknownItemError: the item row does not exist (or, for
      ``require_item``, is inactive or of another category).

Concurrency:
    PostgreSQL serializes concurrent reservations of the same row through
    the row lock.  SQLite ignores FOR UPDATE; there the engine begins every
    transaction with ``BEGIN IMMEDIATE`` (see ``clinic_kernel.db.engine``),
    which serializes writers for the whole database.
"""

from collections.abc import Iterable
from decimal import Decimal
from uuid import UUID

from sqlalchemy import select

from clinic_kernel.domain.dtos import LeafDecrement, merge_decrements
from clinic_kernel.domain.values import ItemCategory
from clinic_kernel.exceptions import (
    InsufficientStockError,
    InventoryError,
    UnknownItemError,
)
from clinic_kernel.logging_config import get_logger
from clinic_kernel.models.inventory import InventoryItem
from clinic_kernel.services.base import BaseService

logger = get_logger("services.inventory_pool")


class InventoryPool(BaseService[InventoryItem]):
    """
    Stock reservation and release.

    Contract:
        All quantities passed in are already validated positive Decimals
        (see ``clinic_kernel.domain.values.parse_quantity``).

    Non-goals:
        - Does NOT replenish stock or edit prices; catalog management does
          that directly through the ORM outside the kernel.
        - Does NOT retry a rejected reservation.
    """

    def get_item(self, item_id: UUID) -> InventoryItem | None:
        """Current row for ``item_id``, or None.  Takes no lock."""
        return self.session.get(InventoryItem, item_id)

    def require_item(
        self,
        item_id: UUID,
        category: ItemCategory | None = None,
    ) -> InventoryItem:
        """
        Return an active item, optionally of a given category.

        Raises:
            UnknownItemError: missing, inactive, or category mismatch.
        """
        item = self.get_item(item_id)
        if item is None:
            raise UnknownItemError(str(item_id))
        if not item.is_active:
            raise UnknownItemError(str(item_id), reason="inactive")
        if category is not None and item.category != category.value:
            raise UnknownItemError(
                str(item_id),
                reason=f"is {item.category}, not {category.value}",
            )
        return item

    def _lock(self, item_id: UUID) -> InventoryItem:
        item = self.session.execute(
            select(InventoryItem)
            .where(InventoryItem.id == item_id)
            .with_for_update()
            .execution_options(populate_existing=True)
        ).scalar_one_or_none()
        if item is None:
            raise UnknownItemError(str(item_id))
        return item

    def reserve(self, item_id: UUID, quantity: Decimal) -> InventoryItem:
        """
        Take ``quantity`` units of ``item_id`` out of stock.

        Postconditions:
            - On success the row's quantity dropped by exactly ``quantity``
              and is still >= 0.
            - On failure the row is unchanged.

        Raises:
            InsufficientStockError: if stock < quantity.
            UnknownItemError: if the item does not exist.
        """
        item = self._lock(item_id)

        if item.quantity < quantity:
            logger.warning(
                "reservation_rejected",
                extra={
                    "item_id": str(item_id),
                    "item_code": item.code,
                    "requested": str(quantity),
                    "available": str(item.quantity),
                },
            )
            raise InsufficientStockError(str(item_id), str(quantity), str(item.quantity))

        item.quantity = item.quantity - quantity
        assert item.quantity >= 0, "stock must never go negative"
        self.session.flush()

        logger.debug(
            "stock_reserved",
            extra={
                "item_id": str(item_id),
                "quantity": str(quantity),
                "remaining": str(item.quantity),
            },
        )
        return item

    def release(self, item_id: UUID, quantity: Decimal) -> InventoryItem:
        """
        Put ``quantity`` units of ``item_id`` back in stock.

        Works for inactive items as well; stock taken by an old line item
        is always returned to the row it came from.

        Raises:
            UnknownItemError: only if the row no longer exists.
        """
        item = self._lock(item_id)
        item.quantity = item.quantity + quantity
        self.session.flush()

        logger.debug(
            "stock_released",
            extra={
                "item_id": str(item_id),
                "quantity": str(quantity),
                "remaining": str(item.quantity),
            },
        )
        return item

    def reserve_all(self, decrements: Iterable[LeafDecrement]) -> list[LeafDecrement]:
        """
        Reserve a batch of leaves all-or-nothing.

        Leaves naming the same item are merged and the batch is applied in
        ascending item-id order inside a savepoint.  If any leaf fails, the
        savepoint is rolled back (undoing the leaves already taken) and the
        error propagates.

        Returns:
            The merged, ordered leaves that were reserved.
        """
        leaves = merge_decrements(list(decrements))

        savepoint = self.session.begin_nested()
        try:
            for leaf in leaves:
                self.reserve(leaf.item_id, leaf.quantity)
        except InventoryError:
            savepoint.rollback()
            raise
        savepoint.commit()
        return leaves

    def release_all(self, decrements: Iterable[LeafDecrement]) -> list[LeafDecrement]:
        """Release a batch of leaves in ascending item-id order."""
        leaves = merge_decrements(list(decrements))
        for leaf in leaves:
            self.release(leaf.item_id, leaf.quantity)
        return leaves
