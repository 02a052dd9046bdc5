"""
Kernel Invariants Contract.

These invariants are structural law. No configuration value may switch them
off. This module exists solely to declare them explicitly; enforcement is
distributed across InventoryPool, InventoryLedger, CostAggregator,
ConsultationService and the inventory check constraint.
"""

from enum import Enum, unique


@unique
class KernelInvariant(str, Enum):
    """Non-configurable invariants enforced by the kernel."""

    NON_NEGATIVE_STOCK = "non_negative_stock"
    """On-hand quantity of every inventory item is >= 0 after every commit.
    Enforced by InventoryPool.reserve (locked check-and-decrement) and the
    ck_inventory_quantity_non_negative check constraint."""

    TOTAL_CONSISTENCY = "total_consistency"
    """Consultation.total == fee + sum(line subtotals) + sum(extra amounts).
    Enforced by CostAggregator.recompute inside every mutating transaction."""

    COST_SNAPSHOT = "cost_snapshot"
    """A line item's unit cost is captured at consumption time and never
    rewritten. Catalog price changes do not touch existing line items."""

    PROCEDURE_EXPANSION = "procedure_expansion"
    """A procedure line item decrements sum(component qty x line qty) for each
    component. The resolved decrements are stored and reversed verbatim."""

    ATOMIC_MUTATION = "atomic_mutation"
    """Every public operation commits all of its inventory, ledger and total
    changes together, or none of them."""


ALL_KERNEL_INVARIANTS: frozenset[KernelInvariant] = frozenset(KernelInvariant)

# The kernel package may not import from these packages.
# Enforced by tests/architecture/test_kernel_boundary.py.
FORBIDDEN_KERNEL_IMPORTS: tuple[str, ...] = (
    "clinic_config",
)
