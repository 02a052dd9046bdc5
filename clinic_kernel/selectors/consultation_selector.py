"""
Module: clinic_kernel.selectors.consultation_selector
Responsibility: Read-only consultation queries: header, ledger rows, the
    day's open consultations, and the remission-note statement.
Architecture position: Kernel > Selectors.

Invariants enforced:
    - A statement's lines always sum to the stored consultation total.  Both
      are derived from the same rows with the same formula
      (``clinic_kernel.domain.cost``).

Failure modes:
    - ConsultationNotFoundError from ``statement`` for an unknown id.
"""

from datetime import date, datetime, time, timedelta, timezone
from decimal import Decimal
from uuid import UUID

from sqlalchemy import select

from clinic_kernel.domain.cost import BillingPolicy
from clinic_kernel.domain.dtos import (
    ConsultationInfo,
    ExtraChargeInfo,
    LineItemInfo,
    Statement,
    StatementLine,
)
from clinic_kernel.domain.lifecycle import ConsultationStatus
from clinic_kernel.domain.values import LineItemKind
from clinic_kernel.exceptions import ConsultationNotFoundError
from clinic_kernel.models.consultation import Consultation
from clinic_kernel.models.ledger import ExtraCharge, LineItem
from clinic_kernel.selectors.base import BaseSelector

FEE_KIND = "consultation-fee"
EXTRA_KIND = "extra"

# Summary statement groups, in printing order
SUMMARY_GROUPS: tuple[tuple[str, str], ...] = (
    (LineItemKind.MEDICATION.value, "Medications"),
    (LineItemKind.TRIAGE_MATERIAL.value, "Triage materials"),
    (LineItemKind.GENERAL_MATERIAL.value, "General materials"),
    (LineItemKind.PROCEDURE.value, "Procedures"),
    (FEE_KIND, "Consultation fee"),
    (EXTRA_KIND, "Additional services"),
)

_OPEN_STATUSES = tuple(s.value for s in ConsultationStatus if not s.is_terminal)


def _consultation_info(row: Consultation) -> ConsultationInfo:
    return ConsultationInfo(
        id=row.id,
        patient_ref=row.patient_ref,
        staff_ref=row.staff_ref,
        status=row.status,
        opened_at=row.opened_at,
        reason=row.reason,
        consultation_fee=row.consultation_fee,
        closing_notes=row.closing_notes,
        total=row.total,
        finalized_at=row.finalized_at,
        cancelled_at=row.cancelled_at,
    )


def _extra_charge_info(row: ExtraCharge) -> ExtraChargeInfo:
    return ExtraChargeInfo(
        id=row.id,
        consultation_id=row.consultation_id,
        concept=row.concept,
        amount=row.amount,
        note=row.note,
    )


class ConsultationSelector(BaseSelector[Consultation]):
    """Queries over consultations and their ledgers."""

    def __init__(self, session, policy: BillingPolicy | None = None):
        super().__init__(session)
        self._policy = policy or BillingPolicy()

    def get_consultation(self, consultation_id: UUID) -> ConsultationInfo | None:
        row = self.session.execute(
            select(Consultation)
            .where(Consultation.id == consultation_id)
            .execution_options(populate_existing=True)
        ).scalar_one_or_none()
        return _consultation_info(row) if row is not None else None

    def list_line_items(self, consultation_id: UUID) -> list[LineItemInfo]:
        rows = self.session.execute(
            select(LineItem)
            .where(LineItem.consultation_id == consultation_id)
            .order_by(LineItem.recorded_at, LineItem.id)
            .execution_options(populate_existing=True)
        ).scalars()
        return [row.to_info() for row in rows]

    def list_extra_charges(self, consultation_id: UUID) -> list[ExtraChargeInfo]:
        rows = self.session.execute(
            select(ExtraCharge)
            .where(ExtraCharge.consultation_id == consultation_id)
            .order_by(ExtraCharge.recorded_at, ExtraCharge.id)
            .execution_options(populate_existing=True)
        ).scalars()
        return [_extra_charge_info(row) for row in rows]

    def active_consultations(self, on_date: date) -> list[ConsultationInfo]:
        """
        Consultations opened on ``on_date`` (UTC) that are not yet completed
        or cancelled, oldest first.
        """
        start = datetime.combine(on_date, time.min, tzinfo=timezone.utc)
        end = start + timedelta(days=1)
        rows = self.session.execute(
            select(Consultation)
            .where(
                Consultation.opened_at >= start,
                Consultation.opened_at < end,
                Consultation.status.in_(_OPEN_STATUSES),
            )
            .order_by(Consultation.opened_at, Consultation.id)
            .execution_options(populate_existing=True)
        ).scalars()
        return [_consultation_info(row) for row in rows]

    def statement(self, consultation_id: UUID, detailed: bool = True) -> Statement:
        """
        Remission-note data for a consultation.

        Detailed statements list every line item and extra charge plus the
        consultation fee.  Summary statements print one line per group
        (Medications, Triage materials, General materials, Procedures,
        Consultation fee, Additional services), omitting empty groups.

        Raises:
            ConsultationNotFoundError: unknown consultation.
        """
        consultation = self.get_consultation(consultation_id)
        if consultation is None:
            raise ConsultationNotFoundError(str(consultation_id))

        lines = self._detailed_lines(consultation)
        if not detailed:
            lines = self._summarize(lines)

        return Statement(
            consultation=consultation,
            detailed=detailed,
            currency=self._policy.currency,
            lines=tuple(lines),
        )

    def _detailed_lines(self, consultation: ConsultationInfo) -> list[StatementLine]:
        lines = [
            StatementLine(
                label=item.label,
                amount=item.subtotal,
                kind=item.kind,
                quantity=item.quantity,
                unit=item.unit,
                unit_cost=item.unit_cost,
                note=item.note,
            )
            for item in self.list_line_items(consultation.id)
        ]
        if consultation.consultation_fee is not None:
            lines.append(StatementLine(
                label="Consultation fee",
                amount=consultation.consultation_fee,
                kind=FEE_KIND,
            ))
        lines.extend(
            StatementLine(
                label=extra.concept,
                amount=extra.amount,
                kind=EXTRA_KIND,
                note=extra.note,
            )
            for extra in self.list_extra_charges(consultation.id)
        )
        return lines

    @staticmethod
    def _summarize(lines: list[StatementLine]) -> list[StatementLine]:
        totals: dict[str, Decimal] = {}
        for line in lines:
            totals[line.kind] = totals.get(line.kind, Decimal(0)) + line.amount
        return [
            StatementLine(label=label, amount=totals[kind], kind=kind)
            for kind, label in SUMMARY_GROUPS
            if kind in totals
        ]
