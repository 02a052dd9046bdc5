"""Pure domain layer: values, clock, workflow, lifecycle, cost formula, DTOs."""

from clinic_kernel.domain.clock import Clock, DeterministicClock, SystemClock
from clinic_kernel.domain.cost import (
    BillingPolicy,
    CostBreakdown,
    compute_breakdown,
    compute_total,
    line_subtotal,
)
from clinic_kernel.domain.dtos import LeafDecrement, merge_decrements
from clinic_kernel.domain.lifecycle import (
    CONSULTATION_WORKFLOW,
    ConsultationAction,
    ConsultationLifecycle,
    ConsultationStatus,
)
from clinic_kernel.domain.values import ItemCategory, LineItemKind

__all__ = [
    "BillingPolicy",
    "CONSULTATION_WORKFLOW",
    "Clock",
    "ConsultationAction",
    "ConsultationLifecycle",
    "ConsultationStatus",
    "CostBreakdown",
    "DeterministicClock",
    "ItemCategory",
    "LeafDecrement",
    "LineItemKind",
    "SystemClock",
    "compute_breakdown",
    "compute_total",
    "line_subtotal",
    "merge_decrements",
]
