"""
Values -- domain enums and money/quantity helpers.

Responsibility:
    Names the inventory categories and line-item kinds, and provides the
    ONLY sanctioned conversions from caller input to the Decimal values that
    flow into the ledger: quantities (strictly positive) and money amounts
    (non-negative, quantized to the billing precision).

Architecture position:
    Kernel > Domain -- pure functional core, zero I/O.

Invariants enforced:
    - No floats reach the ledger.  Floats are converted through ``str()`` so
      ``0.1`` becomes ``Decimal("0.1")`` rather than its binary expansion.
    - Money is quantized with ROUND_HALF_UP to a fixed number of places, so
      totals are exact sums of stored subtotals.

Failure modes:
    - InvalidQuantityError for zero, negative, NaN, infinite, or unparseable
      quantities, and for fractional procedure counts.
    - InvalidAmountError for negative, non-finite, or unparseable amounts.
"""

from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from enum import Enum
from typing import Any

from clinic_kernel.exceptions import InvalidAmountError, InvalidQuantityError

DEFAULT_MONEY_PLACES = 2
# Scale of the stored money columns; finer billing precision would be truncated
MAX_MONEY_PLACES = 2
QUANTITY_PLACES = 3


class ItemCategory(str, Enum):
    """Category tag of a stocked inventory item."""

    MEDICATION = "medication"
    TRIAGE_MATERIAL = "triage-material"
    GENERAL_MATERIAL = "general-material"


class LineItemKind(str, Enum):
    """What a line item consumed: a stocked item of some category, or a procedure."""

    MEDICATION = "medication"
    TRIAGE_MATERIAL = "triage-material"
    GENERAL_MATERIAL = "general-material"
    PROCEDURE = "procedure"

    @property
    def is_procedure(self) -> bool:
        return self is LineItemKind.PROCEDURE

    @property
    def category(self) -> ItemCategory | None:
        """Inventory category for simple kinds; None for procedures."""
        if self is LineItemKind.PROCEDURE:
            return None
        return ItemCategory(self.value)


def _to_decimal(value: Any) -> Decimal:
    if isinstance(value, Decimal):
        return value
    if isinstance(value, bool):
        raise InvalidOperation(f"boolean is not a number: {value!r}")
    if isinstance(value, float):
        return Decimal(str(value))
    return Decimal(value)


def money_quantum(places: int = DEFAULT_MONEY_PLACES) -> Decimal:
    """Smallest representable money step, e.g. Decimal('0.01') for 2 places."""
    return Decimal(1).scaleb(-places)


def quantize_money(amount: Decimal, places: int = DEFAULT_MONEY_PLACES) -> Decimal:
    """Round a money amount to ``places`` decimals, half-up."""
    return amount.quantize(money_quantum(places), rounding=ROUND_HALF_UP)


def parse_quantity(value: Any) -> Decimal:
    """
    Convert caller input to a consumption quantity.

    Postconditions:
        Returns a finite Decimal > 0 with at most QUANTITY_PLACES decimals.

    Raises:
        InvalidQuantityError: if the value is not a positive finite number.
    """
    try:
        quantity = _to_decimal(value)
    except (InvalidOperation, TypeError, ValueError):
        raise InvalidQuantityError(repr(value)) from None
    if not quantity.is_finite() or quantity <= 0:
        raise InvalidQuantityError(str(quantity))
    if quantity.as_tuple().exponent < -QUANTITY_PLACES:
        raise InvalidQuantityError(
            str(quantity), reason=f"at most {QUANTITY_PLACES} decimal places"
        )
    return quantity


def parse_procedure_count(value: Any) -> Decimal:
    """
    Convert caller input to a number of procedure performances.

    Procedures are performed whole, so every component decrement is the
    exact product of two stored quantities and never needs rounding.

    Raises:
        InvalidQuantityError: if the value is not a positive whole number.
    """
    count = parse_quantity(value)
    if count != count.to_integral_value():
        raise InvalidQuantityError(str(count), reason="procedures are performed whole")
    return count.to_integral_value()


def parse_amount(
    field: str,
    value: Any,
    places: int = DEFAULT_MONEY_PLACES,
) -> Decimal:
    """
    Convert caller input to a non-negative money amount.

    Postconditions:
        Returns a finite Decimal >= 0 quantized to ``places``.

    Raises:
        InvalidAmountError: if the value is negative, non-finite, or not a number.
    """
    try:
        amount = _to_decimal(value)
    except (InvalidOperation, TypeError, ValueError):
        raise InvalidAmountError(field, repr(value)) from None
    if not amount.is_finite() or amount < 0:
        raise InvalidAmountError(field, str(amount))
    return quantize_money(amount, places)
