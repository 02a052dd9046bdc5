"""
Cost formula (``clinic_kernel.domain.cost``).

Responsibility:
    The single definition of a consultation's total:

        total = (consultation_fee or 0) + sum(line subtotals) + sum(extra amounts)

    plus the line subtotal rule (quantity x unit cost, quantized).  Both the
    write side (CostAggregator) and the read side (statements) call these
    functions, so they can never disagree.

Architecture position:
    Kernel > Domain -- pure functional core, zero I/O.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from typing import Iterable

from clinic_kernel.domain.values import DEFAULT_MONEY_PLACES, MAX_MONEY_PLACES, quantize_money


@dataclass(frozen=True)
class BillingPolicy:
    """
    Billing settings the kernel needs, built from configuration by the caller.

    Attributes:
        money_places: Decimal places money is quantized to.
        default_consultation_fee: Flat fee applied to new consultations when
            the caller does not give one.  None means no fee.
        currency: ISO currency code, informational (statements carry it).
    """

    money_places: int = DEFAULT_MONEY_PLACES
    default_consultation_fee: Decimal | None = None
    currency: str = "MXN"

    def __post_init__(self) -> None:
        if not 0 <= self.money_places <= MAX_MONEY_PLACES:
            raise ValueError(
                f"money_places must be between 0 and {MAX_MONEY_PLACES}, got {self.money_places}"
            )
        if self.default_consultation_fee is not None and self.default_consultation_fee < 0:
            raise ValueError("default_consultation_fee cannot be negative")


@dataclass(frozen=True)
class CostBreakdown:
    """Components of a consultation total."""

    consultation_fee: Decimal
    line_items: Decimal
    extras: Decimal

    @property
    def total(self) -> Decimal:
        return self.consultation_fee + self.line_items + self.extras


def line_subtotal(
    quantity: Decimal,
    unit_cost: Decimal,
    places: int = DEFAULT_MONEY_PLACES,
) -> Decimal:
    """Subtotal of one line item: quantity x unit cost, quantized half-up."""
    return quantize_money(quantity * unit_cost, places)


def compute_breakdown(
    consultation_fee: Decimal | None,
    subtotals: Iterable[Decimal],
    extra_amounts: Iterable[Decimal],
    places: int = DEFAULT_MONEY_PLACES,
) -> CostBreakdown:
    """Sum each component of the total; a missing fee counts as zero."""
    fee = consultation_fee if consultation_fee is not None else Decimal(0)
    return CostBreakdown(
        consultation_fee=quantize_money(fee, places),
        line_items=quantize_money(sum(subtotals, Decimal(0)), places),
        extras=quantize_money(sum(extra_amounts, Decimal(0)), places),
    )


def compute_total(
    consultation_fee: Decimal | None,
    subtotals: Iterable[Decimal],
    extra_amounts: Iterable[Decimal],
    places: int = DEFAULT_MONEY_PLACES,
) -> Decimal:
    """Deterministic total of a consultation from its current components."""
    return compute_breakdown(consultation_fee, subtotals, extra_amounts, places).total
