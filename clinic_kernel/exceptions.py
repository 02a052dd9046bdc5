"""
Typed Exception Hierarchy for the Clinic Kernel.

===============================================================================
WHY TYPED EXCEPTIONS
===============================================================================

A rejected consultation operation must tell the caller exactly what went
wrong without the caller parsing message strings:
  1. Every error has a TYPED exception class (catch by type, not message)
  2. Every exception has a CODE attribute (machine-readable, API-safe)
  3. Exceptions carry structured DATA (not just a message string)

Example - WRONG way to handle errors:
    try:
        ledger.add_line_item(...)
    except Exception as e:
        if "stock" in str(e):  # FRAGILE - message might change
            show_out_of_stock()

Example - RIGHT way (what this module enables):
    try:
        ledger.add_line_item(...)
    except InsufficientStockError as e:
        show_out_of_stock(e.item_id, e.requested, e.available)

===============================================================================
EXCEPTION HIERARCHY
===============================================================================

All exceptions inherit from ClinicKernelError:

    ClinicKernelError (base)
    |
    +-- InventoryError
    |   +-- InsufficientStockError
    |   +-- UnknownItemError
    |
    +-- CatalogError
    |   +-- UnknownProcedureError
    |
    +-- ConsultationError
    |   +-- InvalidStateError
    |   +-- GuardRejectedError
    |
    +-- NotFoundError
    |   +-- ConsultationNotFoundError
    |   +-- LineItemNotFoundError
    |   +-- ExtraChargeNotFoundError
    |
    +-- ValidationError
    |   +-- InvalidQuantityError
    |   +-- InvalidAmountError
    |   +-- MissingFieldError
    |
    +-- TransactionFaultError

===============================================================================
ERROR CODES - QUICK REFERENCE
===============================================================================

Category        | Code                 | When Raised
----------------|----------------------|------------------------------------------
Inventory       | INSUFFICIENT_STOCK   | Reservation would take stock below zero
                | UNKNOWN_ITEM         | Item missing, inactive, or wrong category
----------------|----------------------|------------------------------------------
Catalog         | UNKNOWN_PROCEDURE    | Procedure missing or inactive
----------------|----------------------|------------------------------------------
Consultation    | INVALID_STATE        | Operation not allowed in current state
                | GUARD_REJECTED       | Transition guard not met (e.g. stock not restored)
----------------|----------------------|------------------------------------------
Not found       | NOT_FOUND            | Consultation / line item / extra absent
----------------|----------------------|------------------------------------------
Validation      | INVALID_QUANTITY     | Quantity <= 0 or not a finite number,
                |                      | or a fractional procedure count
                | INVALID_AMOUNT       | Negative or non-finite money amount
                | MISSING_FIELD        | Required text (e.g. extra concept) empty
----------------|----------------------|------------------------------------------
Storage         | TRANSACTION_FAULT    | Underlying database error, rolled back

===============================================================================
HANDLING PATTERNS
===============================================================================

1. INSUFFICIENT_STOCK is an expected, user-correctable rejection.  The caller
   may retry with a smaller quantity; the kernel never retries on its own.

2. TRANSACTION_FAULT is fatal to the operation.  The transaction has been
   rolled back and every entity is exactly as it was before the call.

3. All NotFound variants share the NOT_FOUND code so API layers can map
   them to a single 404-equivalent response.
"""


class ClinicKernelError(Exception):
    """
    Base exception for all clinic kernel errors.

    All subclasses must have a `code` class attribute for machine-readable
    error identification.
    """

    code: str = "CLINIC_KERNEL_ERROR"


# Inventory exceptions


class InventoryError(ClinicKernelError):
    """Base exception for inventory errors."""

    code: str = "INVENTORY_ERROR"


class InsufficientStockError(InventoryError):
    """A reservation would take an item's on-hand quantity below zero."""

    code: str = "INSUFFICIENT_STOCK"

    def __init__(self, item_id: str, requested: str, available: str):
        self.item_id = item_id
        self.requested = requested
        self.available = available
        super().__init__(
            f"Insufficient stock for item {item_id}: "
            f"requested {requested}, available {available}"
        )


class UnknownItemError(InventoryError):
    """Inventory item does not exist, is inactive, or has the wrong category."""

    code: str = "UNKNOWN_ITEM"

    def __init__(self, item_id: str, reason: str = "not found"):
        self.item_id = item_id
        self.reason = reason
        super().__init__(f"Unknown inventory item {item_id}: {reason}")


# Catalog exceptions


class CatalogError(ClinicKernelError):
    """Base exception for procedure catalog errors."""

    code: str = "CATALOG_ERROR"


class UnknownProcedureError(CatalogError):
    """Procedure definition does not exist or is inactive."""

    code: str = "UNKNOWN_PROCEDURE"

    def __init__(self, procedure_id: str, reason: str = "not found"):
        self.procedure_id = procedure_id
        self.reason = reason
        super().__init__(f"Unknown procedure {procedure_id}: {reason}")


# Consultation exceptions


class ConsultationError(ClinicKernelError):
    """Base exception for consultation lifecycle errors."""

    code: str = "CONSULTATION_ERROR"


class InvalidStateError(ConsultationError):
    """Operation is not allowed in the consultation's current state."""

    code: str = "INVALID_STATE"

    def __init__(self, consultation_id: str, status: str, action: str):
        self.consultation_id = consultation_id
        self.status = status
        self.action = action
        super().__init__(
            f"Cannot {action} consultation {consultation_id} in state '{status}'"
        )


class GuardRejectedError(ConsultationError):
    """A transition guard was not satisfied when the transition was applied."""

    code: str = "GUARD_REJECTED"

    def __init__(self, consultation_id: str, action: str, guard: str):
        self.consultation_id = consultation_id
        self.action = action
        self.guard = guard
        super().__init__(
            f"Cannot {action} consultation {consultation_id}: guard '{guard}' not satisfied"
        )


# Not-found exceptions


class NotFoundError(ClinicKernelError):
    """Base exception for missing entities."""

    code: str = "NOT_FOUND"

    entity: str = "entity"

    def __init__(self, entity_id: str):
        self.entity_id = entity_id
        super().__init__(f"{self.entity.capitalize()} not found: {entity_id}")


class ConsultationNotFoundError(NotFoundError):
    """Consultation with given ID was not found."""

    entity = "consultation"


class LineItemNotFoundError(NotFoundError):
    """Line item with given ID was not found."""

    entity = "line item"


class ExtraChargeNotFoundError(NotFoundError):
    """Extra charge with given ID was not found."""

    entity = "extra charge"


# Validation exceptions


class ValidationError(ClinicKernelError):
    """Base exception for malformed input values."""

    code: str = "VALIDATION_ERROR"


class InvalidQuantityError(ValidationError):
    """Quantity must be a finite number greater than zero."""

    code: str = "INVALID_QUANTITY"

    def __init__(self, quantity: str, reason: str = "must be greater than zero"):
        self.quantity = quantity
        self.reason = reason
        super().__init__(f"Invalid quantity {quantity}: {reason}")


class InvalidAmountError(ValidationError):
    """Money amount must be a finite, non-negative number."""

    code: str = "INVALID_AMOUNT"

    def __init__(self, field: str, amount: str):
        self.field = field
        self.amount = amount
        super().__init__(f"{field} must be a non-negative amount, got {amount}")


class MissingFieldError(ValidationError):
    """A required text field was empty."""

    code: str = "MISSING_FIELD"

    def __init__(self, field: str):
        self.field = field
        super().__init__(f"{field} is required")


# Storage exceptions


class TransactionFaultError(ClinicKernelError):
    """
    Underlying storage failure (I/O, constraint violation, lock timeout).

    The operation was aborted and its transaction rolled back; no partial
    state was committed.
    """

    code: str = "TRANSACTION_FAULT"

    def __init__(self, operation: str, detail: str):
        self.operation = operation
        self.detail = detail
        super().__init__(f"Transaction fault during {operation}: {detail}")
