"""
Consultation lifecycle (``clinic_kernel.domain.lifecycle``).

Responsibility
--------------
Declares the consultation state machine and answers two questions for the
orchestrator: "what state does this action lead to?" and "may the ledger
of a consultation in this state be changed?".

Architecture position
---------------------
**Kernel domain layer** -- pure.  ZERO I/O.  The orchestrator reads the
stored status, asks this module, and writes the answer back.

States::

    waiting --start--> in-progress <--send_to_billing / return_to_physician--> pending-billing
    pending-billing --finalize--> completed
    waiting | in-progress | pending-billing --cancel--> cancelled

Invariants enforced
-------------------
* ``completed`` and ``cancelled`` are terminal.
* Line items, extra charges and the consultation fee may only change while
  the consultation is ``in-progress`` or ``pending-billing``.
* A consultation is cancelled only once every line item has been removed
  and its stock released (guard ``stock_restored``).
"""

from __future__ import annotations

from enum import Enum

from clinic_kernel.domain.workflow import Guard, Transition, Workflow
from clinic_kernel.exceptions import GuardRejectedError, InvalidStateError


class ConsultationStatus(str, Enum):
    """Lifecycle state of a consultation."""

    WAITING = "waiting"
    IN_PROGRESS = "in-progress"
    PENDING_BILLING = "pending-billing"
    COMPLETED = "completed"
    CANCELLED = "cancelled"

    @property
    def is_terminal(self) -> bool:
        return self in (ConsultationStatus.COMPLETED, ConsultationStatus.CANCELLED)


class ConsultationAction(str, Enum):
    """Actions that move a consultation between states."""

    START = "start"
    SEND_TO_BILLING = "send_to_billing"
    RETURN_TO_PHYSICIAN = "return_to_physician"
    FINALIZE = "finalize"
    CANCEL = "cancel"


LEDGER_OPEN_STATES: frozenset[ConsultationStatus] = frozenset({
    ConsultationStatus.IN_PROGRESS,
    ConsultationStatus.PENDING_BILLING,
})


# -----------------------------------------------------------------------------
# Guards
# -----------------------------------------------------------------------------

STOCK_RESTORED = Guard(
    name="stock_restored",
    description="Every line item was removed and its stock released",
)


# -----------------------------------------------------------------------------
# Workflow
# -----------------------------------------------------------------------------

_W = ConsultationStatus
_A = ConsultationAction

CONSULTATION_WORKFLOW = Workflow(
    name="consultation",
    description="Patient visit from reception to billing",
    initial_state=_W.WAITING.value,
    states=tuple(s.value for s in ConsultationStatus),
    transitions=(
        Transition(_W.WAITING.value, _W.IN_PROGRESS.value, _A.START.value),
        Transition(_W.IN_PROGRESS.value, _W.PENDING_BILLING.value, _A.SEND_TO_BILLING.value),
        Transition(_W.PENDING_BILLING.value, _W.IN_PROGRESS.value, _A.RETURN_TO_PHYSICIAN.value),
        Transition(_W.PENDING_BILLING.value, _W.COMPLETED.value, _A.FINALIZE.value),
        Transition(_W.WAITING.value, _W.CANCELLED.value, _A.CANCEL.value, guard=STOCK_RESTORED),
        Transition(_W.IN_PROGRESS.value, _W.CANCELLED.value, _A.CANCEL.value, guard=STOCK_RESTORED),
        Transition(_W.PENDING_BILLING.value, _W.CANCELLED.value, _A.CANCEL.value, guard=STOCK_RESTORED),
    ),
    terminal_states=(_W.COMPLETED.value, _W.CANCELLED.value),
)


class ConsultationLifecycle:
    """
    Gatekeeper for consultation state changes.

    Contract:
        Stateless; every call receives the consultation's current status.
        Raises InvalidStateError instead of returning a flag, so a rejected
        action can never be mistaken for an allowed one.
    """

    def __init__(self, workflow: Workflow = CONSULTATION_WORKFLOW):
        self._workflow = workflow

    @property
    def workflow(self) -> Workflow:
        return self._workflow

    def can(self, status: str, action: ConsultationAction) -> bool:
        """True if ``action`` is allowed from ``status``."""
        return self._workflow.find_transition(
            ConsultationStatus(status).value, action.value,
        ) is not None

    def transition_for(
        self,
        consultation_id: object,
        status: str,
        action: ConsultationAction,
    ) -> Transition:
        """
        The transition ``action`` takes from ``status``, guards not evaluated.

        Raises:
            InvalidStateError: if the workflow has no such transition.
        """
        current = ConsultationStatus(status)
        transition = self._workflow.find_transition(current.value, action.value)
        if transition is None:
            raise InvalidStateError(str(consultation_id), current.value, action.value)
        return transition

    def apply(
        self,
        consultation_id: object,
        status: str,
        action: ConsultationAction,
        satisfied_guards: frozenset[str] = frozenset(),
    ) -> ConsultationStatus:
        """
        Return the state ``action`` leads to from ``status``.

        The caller evaluates guards and passes the names of those that hold.

        Raises:
            InvalidStateError: if the workflow has no such transition.
            GuardRejectedError: if the transition's guard is not in
                ``satisfied_guards``.
        """
        transition = self.transition_for(consultation_id, status, action)
        if transition.guard is not None and transition.guard.name not in satisfied_guards:
            raise GuardRejectedError(str(consultation_id), action.value, transition.guard.name)
        return ConsultationStatus(transition.to_state)

    def ensure_ledger_open(
        self,
        consultation_id: object,
        status: str,
        action: str,
    ) -> None:
        """
        Reject ledger, extra-charge and fee changes outside the open states.

        Raises:
            InvalidStateError: if ``status`` is not in-progress or pending-billing.
        """
        current = ConsultationStatus(status)
        if current not in LEDGER_OPEN_STATES:
            raise InvalidStateError(str(consultation_id), current.value, action)
