"""
ConsultationService -- the public API of the consultation ledger.

Responsibility:
    Composes ConsultationLifecycle, InventoryLedger and CostAggregator into
    the operations callers use while a patient is attended: open/start a
    consultation, add or remove line items and extra charges, change the
    consultation fee, move it through billing, finalize or cancel it.

Architecture position:
    Kernel > Services -- orchestrator.  The only kernel service that owns
    the transaction boundary.

Invariants enforced:
    - One transaction per public operation: commit on success, rollback on
      any failure, so every inventory movement, ledger row and total change
      of the operation becomes visible together or not at all.
    - The consultation row is locked (``SELECT ... FOR UPDATE``) before
      anything else is read or written, serializing operations on the same
      consultation.
    - The total is recomputed inside the same transaction after every
      ledger, extra-charge or fee mutation.

Failure modes:
    - Kernel errors (ClinicKernelError subclasses) become a failed
      ConsultationResult carrying the error code and message.
    - SQLAlchemy errors become a TRANSACTION_FAULT result.
    - Any other exception is re-raised after rollback.

Usage:
    service = ConsultationService(session, clock=SystemClock())
    opened = service.open_consultation("patient-17", "dr-ramos")
    added = service.add_line_item(opened.consultation_id, "medication", ibuprofen_id, 3)
    if not added.is_success:
        print(added.error_code, added.message)
"""

from __future__ import annotations

import time
from collections.abc import Callable
from dataclasses import dataclass
from decimal import Decimal
from enum import Enum
from uuid import UUID, uuid4

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from clinic_kernel.domain.clock import Clock, SystemClock
from clinic_kernel.domain.cost import BillingPolicy
from clinic_kernel.domain.lifecycle import (
    ConsultationAction,
    ConsultationLifecycle,
    ConsultationStatus,
    STOCK_RESTORED,
)
from clinic_kernel.domain.values import LineItemKind, parse_amount
from clinic_kernel.exceptions import (
    ClinicKernelError,
    ConsultationNotFoundError,
    ExtraChargeNotFoundError,
    MissingFieldError,
    TransactionFaultError,
)
from clinic_kernel.logging_config import LogContext, get_logger
from clinic_kernel.models.consultation import Consultation
from clinic_kernel.models.ledger import ExtraCharge
from clinic_kernel.services.cost_aggregator import CostAggregator
from clinic_kernel.services.inventory_ledger import InventoryLedger
from clinic_kernel.services.inventory_pool import InventoryPool
from clinic_kernel.services.procedure_catalog import ProcedureCatalog

logger = get_logger("services.consultation")

NO_LINE_ITEMS_WARNING = "Consultation finalized without line items"


class ConsultationOpStatus(str, Enum):
    """Outcome of a consultation operation."""

    OK = "ok"
    INSUFFICIENT_STOCK = "insufficient_stock"
    UNKNOWN_ITEM = "unknown_item"
    UNKNOWN_PROCEDURE = "unknown_procedure"
    INVALID_STATE = "invalid_state"
    GUARD_REJECTED = "guard_rejected"
    NOT_FOUND = "not_found"
    INVALID_INPUT = "invalid_input"
    TRANSACTION_FAULT = "transaction_fault"


_STATUS_BY_CODE: dict[str, ConsultationOpStatus] = {
    "INSUFFICIENT_STOCK": ConsultationOpStatus.INSUFFICIENT_STOCK,
    "UNKNOWN_ITEM": ConsultationOpStatus.UNKNOWN_ITEM,
    "UNKNOWN_PROCEDURE": ConsultationOpStatus.UNKNOWN_PROCEDURE,
    "INVALID_STATE": ConsultationOpStatus.INVALID_STATE,
    "GUARD_REJECTED": ConsultationOpStatus.GUARD_REJECTED,
    "NOT_FOUND": ConsultationOpStatus.NOT_FOUND,
    "INVALID_QUANTITY": ConsultationOpStatus.INVALID_INPUT,
    "INVALID_AMOUNT": ConsultationOpStatus.INVALID_INPUT,
    "MISSING_FIELD": ConsultationOpStatus.INVALID_INPUT,
    "TRANSACTION_FAULT": ConsultationOpStatus.TRANSACTION_FAULT,
}


@dataclass(frozen=True)
class ConsultationResult:
    """Result of a consultation operation."""

    status: ConsultationOpStatus
    consultation_id: UUID | None = None
    total: Decimal | None = None
    consultation_status: str | None = None
    line_item_id: UUID | None = None
    extra_charge_id: UUID | None = None
    restored_count: int | None = None
    error_code: str | None = None
    message: str | None = None
    warnings: tuple[str, ...] = ()

    @property
    def is_success(self) -> bool:
        return self.status == ConsultationOpStatus.OK

    @classmethod
    def failure(
        cls,
        error: ClinicKernelError,
        consultation_id: UUID | None = None,
    ) -> ConsultationResult:
        return cls(
            status=_STATUS_BY_CODE.get(error.code, ConsultationOpStatus.INVALID_INPUT),
            consultation_id=consultation_id,
            error_code=error.code,
            message=str(error),
        )


class ConsultationService:
    """
    Orchestrates every write to a consultation.

    Contract:
        Each public method runs one transaction on the given session and
        returns a ``ConsultationResult``; expected rejections never raise.

    Guarantees:
        - A failed operation leaves inventory, ledger rows and the total
          exactly as they were (rollback, when auto_commit=True).
        - Owns no state between calls.
    """

    def __init__(
        self,
        session: Session,
        clock: Clock | None = None,
        policy: BillingPolicy | None = None,
        auto_commit: bool = True,
    ):
        self._session = session
        self._clock = clock or SystemClock()
        self._policy = policy or BillingPolicy()
        self._auto_commit = auto_commit

        places = self._policy.money_places
        self._lifecycle = ConsultationLifecycle()
        self._pool = InventoryPool(session)
        self._catalog = ProcedureCatalog(session, money_places=places)
        self._ledger = InventoryLedger(
            session,
            pool=self._pool,
            catalog=self._catalog,
            clock=self._clock,
            money_places=places,
        )
        self._aggregator = CostAggregator(session, money_places=places)

    # ------------------------------------------------------------------
    # Transaction plumbing
    # ------------------------------------------------------------------

    def _run(
        self,
        operation: str,
        body: Callable[[], ConsultationResult],
        consultation_id: UUID | None = None,
    ) -> ConsultationResult:
        with LogContext.bind(
            correlation_id=str(uuid4()),
            consultation_id=str(consultation_id) if consultation_id else None,
        ):
            logger.debug("consultation_operation_started", extra={"operation": operation})
            t0 = time.monotonic()

            try:
                result = body()
                if self._auto_commit:
                    self._session.commit()
            except ClinicKernelError as exc:
                self._rollback()
                logger.warning(
                    "consultation_operation_rejected",
                    extra={
                        "operation": operation,
                        "error_code": exc.code,
                        "reason": str(exc),
                    },
                )
                return ConsultationResult.failure(exc, consultation_id)
            except SQLAlchemyError as exc:
                self._rollback()
                fault = TransactionFaultError(operation, type(exc).__name__)
                logger.error(
                    "consultation_operation_fault",
                    extra={"operation": operation},
                    exc_info=True,
                )
                return ConsultationResult.failure(fault, consultation_id)
            except Exception:
                self._rollback()
                logger.error(
                    "consultation_operation_failed",
                    extra={"operation": operation},
                    exc_info=True,
                )
                raise

            logger.info(
                "consultation_operation_completed",
                extra={
                    "operation": operation,
                    "consultation_id": str(result.consultation_id),
                    "total": str(result.total),
                    "duration_ms": round((time.monotonic() - t0) * 1000, 2),
                },
            )
            return result

    def _rollback(self) -> None:
        if self._auto_commit:
            self._session.rollback()

    def _lock_consultation(self, consultation_id: UUID) -> Consultation:
        consultation = self._session.execute(
            select(Consultation)
            .where(Consultation.id == consultation_id)
            .with_for_update()
            .execution_options(populate_existing=True)
        ).scalar_one_or_none()
        if consultation is None:
            raise ConsultationNotFoundError(str(consultation_id))
        return consultation

    def _transition(
        self,
        consultation: Consultation,
        action: ConsultationAction,
        satisfied_guards: frozenset[str] = frozenset(),
    ) -> None:
        previous = consultation.status
        consultation.status = self._lifecycle.apply(
            consultation.id, consultation.status, action, satisfied_guards,
        ).value
        self._session.flush()
        logger.info(
            "consultation_status_changed",
            extra={
                "consultation_id": str(consultation.id),
                "action": action.value,
                "from_status": previous,
                "to_status": consultation.status,
            },
        )

    def _fee(self, fee) -> Decimal | None:
        if fee is None:
            return None
        return parse_amount("consultation_fee", fee, self._policy.money_places)

    @staticmethod
    def _ok(consultation: Consultation, **fields) -> ConsultationResult:
        return ConsultationResult(
            status=ConsultationOpStatus.OK,
            consultation_id=consultation.id,
            total=consultation.total,
            consultation_status=consultation.status,
            **fields,
        )

    # ------------------------------------------------------------------
    # Consultation header
    # ------------------------------------------------------------------

    def open_consultation(
        self,
        patient_ref: str,
        staff_ref: str,
        reason: str | None = None,
        consultation_fee=None,
        start: bool = True,
    ) -> ConsultationResult:
        """
        Register a new consultation.

        With ``start=True`` the consultation goes straight to in-progress;
        otherwise the patient waits in ``waiting`` until ``start_consultation``.
        A missing fee falls back to the billing policy's default fee.
        """

        def body() -> ConsultationResult:
            if not patient_ref:
                raise MissingFieldError("patient_ref")
            if not staff_ref:
                raise MissingFieldError("staff_ref")
            fee = self._fee(consultation_fee)
            if fee is None:
                fee = self._policy.default_consultation_fee

            consultation = Consultation(
                patient_ref=patient_ref,
                staff_ref=staff_ref,
                opened_at=self._clock.now(),
                status=ConsultationStatus.WAITING.value,
                reason=reason,
                consultation_fee=fee,
                total=Decimal(0),
            )
            self._session.add(consultation)
            self._session.flush()
            logger.info(
                "consultation_opened",
                extra={
                    "consultation_id": str(consultation.id),
                    "patient_ref": patient_ref,
                    "staff_ref": staff_ref,
                },
            )

            if start:
                self._transition(consultation, ConsultationAction.START)
            self._aggregator.recompute(consultation)
            return self._ok(consultation)

        return self._run("open_consultation", body)

    def start_consultation(self, consultation_id: UUID) -> ConsultationResult:
        """waiting -> in-progress."""

        def body() -> ConsultationResult:
            consultation = self._lock_consultation(consultation_id)
            self._transition(consultation, ConsultationAction.START)
            return self._ok(consultation)

        return self._run("start_consultation", body, consultation_id)

    def set_consultation_fee(self, consultation_id: UUID, fee) -> ConsultationResult:
        """Replace the flat consultation fee; None clears it."""

        def body() -> ConsultationResult:
            consultation = self._lock_consultation(consultation_id)
            self._lifecycle.ensure_ledger_open(
                consultation.id, consultation.status, "set_consultation_fee",
            )
            consultation.consultation_fee = self._fee(fee)
            self._session.flush()
            self._aggregator.recompute(consultation)
            return self._ok(consultation)

        return self._run("set_consultation_fee", body, consultation_id)

    # ------------------------------------------------------------------
    # Line items
    # ------------------------------------------------------------------

    def add_line_item(
        self,
        consultation_id: UUID,
        kind: LineItemKind | str,
        ref_id: UUID,
        quantity,
        note: str | None = None,
    ) -> ConsultationResult:
        """
        Consume a stocked item or perform a procedure.

        Rejections (insufficient stock, unknown reference, bad quantity,
        closed ledger) leave inventory and total untouched.
        """

        def body() -> ConsultationResult:
            consultation = self._lock_consultation(consultation_id)
            self._lifecycle.ensure_ledger_open(
                consultation.id, consultation.status, "add_line_item",
            )
            line = self._ledger.add_line_item(consultation, kind, ref_id, quantity, note)
            self._aggregator.recompute(consultation)
            return self._ok(consultation, line_item_id=line.id)

        return self._run("add_line_item", body, consultation_id)

    def remove_line_item(self, line_item_id: UUID) -> ConsultationResult:
        """Delete a line item and give its stock back."""

        def body() -> ConsultationResult:
            line = self._ledger.get_line_item(line_item_id)
            consultation = self._lock_consultation(line.consultation_id)
            self._lifecycle.ensure_ledger_open(
                consultation.id, consultation.status, "remove_line_item",
            )
            removed = self._ledger.remove_line_item(line_item_id)
            self._aggregator.recompute(consultation)
            return self._ok(consultation, line_item_id=removed.id)

        with LogContext.bind(line_item_id=str(line_item_id)):
            return self._run("remove_line_item", body)

    # ------------------------------------------------------------------
    # Extra charges
    # ------------------------------------------------------------------

    def add_extra_charge(
        self,
        consultation_id: UUID,
        concept: str,
        amount,
        note: str | None = None,
    ) -> ConsultationResult:
        """Add an ad-hoc charge with no inventory effect."""

        def body() -> ConsultationResult:
            consultation = self._lock_consultation(consultation_id)
            self._lifecycle.ensure_ledger_open(
                consultation.id, consultation.status, "add_extra_charge",
            )
            if not concept or not concept.strip():
                raise MissingFieldError("concept")
            extra = ExtraCharge(
                consultation_id=consultation.id,
                concept=concept.strip(),
                amount=parse_amount("amount", amount, self._policy.money_places),
                note=note,
                recorded_at=self._clock.now(),
            )
            self._session.add(extra)
            self._session.flush()
            logger.info(
                "extra_charge_added",
                extra={
                    "consultation_id": str(consultation.id),
                    "extra_charge_id": str(extra.id),
                    "amount": str(extra.amount),
                },
            )
            self._aggregator.recompute(consultation)
            return self._ok(consultation, extra_charge_id=extra.id)

        return self._run("add_extra_charge", body, consultation_id)

    def remove_extra_charge(self, extra_charge_id: UUID) -> ConsultationResult:
        """Delete an extra charge."""

        def body() -> ConsultationResult:
            extra = self._session.get(ExtraCharge, extra_charge_id)
            if extra is None:
                raise ExtraChargeNotFoundError(str(extra_charge_id))
            consultation = self._lock_consultation(extra.consultation_id)
            self._lifecycle.ensure_ledger_open(
                consultation.id, consultation.status, "remove_extra_charge",
            )
            self._session.delete(extra)
            self._session.flush()
            logger.info(
                "extra_charge_removed",
                extra={
                    "consultation_id": str(consultation.id),
                    "extra_charge_id": str(extra_charge_id),
                },
            )
            self._aggregator.recompute(consultation)
            return self._ok(consultation, extra_charge_id=extra_charge_id)

        return self._run("remove_extra_charge", body)

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def send_to_billing(self, consultation_id: UUID) -> ConsultationResult:
        """in-progress -> pending-billing."""

        def body() -> ConsultationResult:
            consultation = self._lock_consultation(consultation_id)
            self._transition(consultation, ConsultationAction.SEND_TO_BILLING)
            return self._ok(consultation)

        return self._run("send_to_billing", body, consultation_id)

    def return_to_physician(self, consultation_id: UUID) -> ConsultationResult:
        """pending-billing -> in-progress."""

        def body() -> ConsultationResult:
            consultation = self._lock_consultation(consultation_id)
            self._transition(consultation, ConsultationAction.RETURN_TO_PHYSICIAN)
            return self._ok(consultation)

        return self._run("return_to_physician", body, consultation_id)

    def finalize(self, consultation_id: UUID, notes: str | None = None) -> ConsultationResult:
        """
        pending-billing -> completed.

        A consultation without line items may still be finalized; the
        result then carries a warning.
        """

        def body() -> ConsultationResult:
            consultation = self._lock_consultation(consultation_id)
            self._transition(consultation, ConsultationAction.FINALIZE)
            consultation.closing_notes = notes
            consultation.finalized_at = self._clock.now()
            self._aggregator.recompute(consultation)

            warnings: tuple[str, ...] = ()
            if not self._ledger.line_items_for(consultation.id):
                warnings = (NO_LINE_ITEMS_WARNING,)
                logger.warning(
                    "consultation_finalized_without_line_items",
                    extra={"consultation_id": str(consultation.id)},
                )
            return self._ok(consultation, warnings=warnings)

        return self._run("finalize", body, consultation_id)

    def cancel(self, consultation_id: UUID) -> ConsultationResult:
        """
        Cancel a consultation and reverse everything it consumed.

        Every line item is removed (its stock released) and every extra
        charge deleted, in the same transaction as the status change, so
        the total drops back to the consultation fee.  ``restored_count``
        is the number of line items removed.
        If any line item is still present after removal the ``stock_restored``
        guard fails and the whole operation is rejected with GUARD_REJECTED.
        """

        def body() -> ConsultationResult:
            consultation = self._lock_consultation(consultation_id)
            # Validate the transition before touching the ledger
            self._lifecycle.transition_for(
                consultation.id, consultation.status, ConsultationAction.CANCEL,
            )

            restored = self._ledger.remove_all(consultation.id)
            extras = list(
                self._session.execute(
                    select(ExtraCharge).where(ExtraCharge.consultation_id == consultation.id)
                ).scalars()
            )
            for extra in extras:
                self._session.delete(extra)
            self._session.flush()

            guards = frozenset()
            if not self._ledger.line_items_for(consultation.id):
                guards = frozenset({STOCK_RESTORED.name})
            self._transition(consultation, ConsultationAction.CANCEL, guards)
            consultation.cancelled_at = self._clock.now()
            self._aggregator.recompute(consultation)

            logger.info(
                "consultation_cancelled",
                extra={
                    "consultation_id": str(consultation.id),
                    "restored_count": restored,
                    "extras_removed": len(extras),
                },
            )
            return self._ok(consultation, restored_count=restored)

        return self._run("cancel", body, consultation_id)
