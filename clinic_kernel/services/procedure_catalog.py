"""
ProcedureCatalog -- read-only access to composite procedure definitions.

Responsibility:
    Turns "perform procedure P, N times" into the leaf inventory decrements
    it consumes, and prices one performance of P from its fee schedule.

Architecture position:
    Kernel > Services.  Read-only; called by InventoryLedger.

Invariants enforced:
    - Expansion: performing P N times consumes component.quantity x N of
      every component item.  Components naming the same item are merged
      into one leaf.
    - Every lookup reads the current definition from the store.  There is
      no cache, so a definition edited by catalog management is seen by the
      next line item.

Failure modes:
    - UnknownProcedureError: id does not exist, or the procedure is inactive.
"""

from decimal import Decimal
from uuid import UUID

from sqlalchemy import select

from clinic_kernel.domain.dtos import LeafDecrement, merge_decrements
from clinic_kernel.domain.values import (
    DEFAULT_MONEY_PLACES,
    parse_procedure_count,
    quantize_money,
)
from clinic_kernel.exceptions import UnknownProcedureError
from clinic_kernel.logging_config import get_logger
from clinic_kernel.models.procedure import ProcedureDefinition
from clinic_kernel.services.base import BaseService

logger = get_logger("services.procedure_catalog")


class ProcedureCatalog(BaseService[ProcedureDefinition]):
    """Composite procedure lookups."""

    def __init__(self, session, money_places: int = DEFAULT_MONEY_PLACES):
        super().__init__(session)
        self._money_places = money_places

    def get_definition(self, procedure_id: UUID) -> ProcedureDefinition:
        """
        Return the active definition of ``procedure_id``.

        Raises:
            UnknownProcedureError: missing or inactive.
        """
        definition = self.session.execute(
            select(ProcedureDefinition)
            .where(ProcedureDefinition.id == procedure_id)
            .execution_options(populate_existing=True)
        ).scalar_one_or_none()
        if definition is None:
            raise UnknownProcedureError(str(procedure_id))
        if not definition.is_active:
            raise UnknownProcedureError(str(procedure_id), reason="inactive")
        return definition

    def expand(self, procedure_id: UUID, multiplier) -> list[LeafDecrement]:
        """
        Leaf decrements for ``multiplier`` performances of a procedure.

        Returns:
            One leaf per distinct component item, ordered by item id.
            Empty if the procedure has no components.

        Raises:
            InvalidQuantityError: ``multiplier`` is not a positive whole number.
            UnknownProcedureError: unknown or inactive procedure.
        """
        count = parse_procedure_count(multiplier)
        definition = self.get_definition(procedure_id)
        leaves = merge_decrements([
            LeafDecrement(item_id=component.item_id, quantity=component.quantity * count)
            for component in definition.components
        ])
        logger.debug(
            "procedure_expanded",
            extra={
                "procedure_id": str(procedure_id),
                "procedure_code": definition.code,
                "multiplier": str(count),
                "leaf_count": len(leaves),
            },
        )
        return leaves

    def unit_price(self, procedure_id: UUID) -> Decimal:
        """Price of one performance: the sum of the fee schedule, quantized."""
        definition = self.get_definition(procedure_id)
        return quantize_money(
            sum((fee.fee for fee in definition.fees), Decimal(0)),
            self._money_places,
        )
