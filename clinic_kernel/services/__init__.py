"""Write-side services of the clinic kernel."""

from clinic_kernel.services.base import BaseService
from clinic_kernel.services.consultation_service import (
    ConsultationOpStatus,
    ConsultationResult,
    ConsultationService,
)
from clinic_kernel.services.cost_aggregator import CostAggregator
from clinic_kernel.services.inventory_ledger import InventoryLedger
from clinic_kernel.services.inventory_pool import InventoryPool
from clinic_kernel.services.procedure_catalog import ProcedureCatalog

__all__ = [
    "BaseService",
    "ConsultationOpStatus",
    "ConsultationResult",
    "ConsultationService",
    "CostAggregator",
    "InventoryLedger",
    "InventoryPool",
    "ProcedureCatalog",
]
