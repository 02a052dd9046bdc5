"""ORM models for the clinic kernel."""

from clinic_kernel.models.consultation import Consultation
from clinic_kernel.models.inventory import InventoryItem
from clinic_kernel.models.ledger import ExtraCharge, LineItem, LineItemDecrement
from clinic_kernel.models.procedure import (
    ProcedureComponent,
    ProcedureDefinition,
    ProcedureFee,
)

__all__ = [
    "Consultation",
    "ExtraCharge",
    "InventoryItem",
    "LineItem",
    "LineItemDecrement",
    "ProcedureComponent",
    "ProcedureDefinition",
    "ProcedureFee",
]
