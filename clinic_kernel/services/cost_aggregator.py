"""
CostAggregator -- keeps ``Consultation.total`` equal to its ledger.

Responsibility:
    Recomputes a consultation's total from the current consultation fee,
    line item subtotals and extra charge amounts, and stores it.  The
    formula lives in ``clinic_kernel.domain.cost``; this service only loads
    the inputs and writes the result.

Architecture position:
    Kernel > Services.  Called by ConsultationService after every ledger,
    extra-charge or fee mutation, inside the same transaction.

Invariants enforced:
    - total == (fee or 0) + sum(subtotals) + sum(extra amounts), exactly,
      recomputed from scratch every time.  There is no incremental
      arithmetic that could drift.
    - This is the only writer of ``Consultation.total``.
"""

from decimal import Decimal
from uuid import UUID

from sqlalchemy import select

from clinic_kernel.domain.cost import CostBreakdown, compute_breakdown
from clinic_kernel.domain.values import DEFAULT_MONEY_PLACES
from clinic_kernel.exceptions import ConsultationNotFoundError
from clinic_kernel.logging_config import get_logger
from clinic_kernel.models.consultation import Consultation
from clinic_kernel.models.ledger import ExtraCharge, LineItem
from clinic_kernel.services.base import BaseService

logger = get_logger("services.cost_aggregator")


class CostAggregator(BaseService[Consultation]):
    """Total recomputation for consultations."""

    def __init__(self, session, money_places: int = DEFAULT_MONEY_PLACES):
        super().__init__(session)
        self._money_places = money_places

    def _subtotals(self, consultation_id: UUID) -> list[Decimal]:
        return list(
            self.session.execute(
                select(LineItem.subtotal).where(LineItem.consultation_id == consultation_id)
            ).scalars()
        )

    def _extra_amounts(self, consultation_id: UUID) -> list[Decimal]:
        return list(
            self.session.execute(
                select(ExtraCharge.amount).where(ExtraCharge.consultation_id == consultation_id)
            ).scalars()
        )

    def _breakdown(self, consultation: Consultation) -> CostBreakdown:
        return compute_breakdown(
            consultation.consultation_fee,
            self._subtotals(consultation.id),
            self._extra_amounts(consultation.id),
            self._money_places,
        )

    def recompute(self, consultation: Consultation) -> Decimal:
        """
        Store and return the consultation's current total.

        Preconditions:
            - Pending ledger changes have been flushed, so the queries see them.
        """
        total = self._breakdown(consultation).total
        previous = consultation.total
        consultation.total = total
        self.session.flush()

        logger.debug(
            "total_recomputed",
            extra={
                "consultation_id": str(consultation.id),
                "previous_total": str(previous),
                "total": str(total),
            },
        )
        return total

    def breakdown(self, consultation_id: UUID) -> CostBreakdown:
        """Components of the total, computed from the current rows."""
        consultation = self.session.get(Consultation, consultation_id)
        if consultation is None:
            raise ConsultationNotFoundError(str(consultation_id))
        return self._breakdown(consultation)
