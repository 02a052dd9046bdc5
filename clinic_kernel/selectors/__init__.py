"""Selectors for the clinic kernel (read side)."""

from clinic_kernel.selectors.consultation_selector import ConsultationSelector
from clinic_kernel.selectors.inventory_selector import InventorySelector

__all__ = [
    "ConsultationSelector",
    "InventorySelector",
]
