"""
ClinicConfig schema.

Frozen dataclasses the YAML configuration is parsed into.  They are plain
data: the loader validates them and the bridges turn them into kernel
inputs.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal

# ---------------------------------------------------------------------------
# Sections
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class DatabaseSettings:
    """Where the ledger lives and how the connection pool is sized."""

    url: str
    echo: bool = False
    pool_size: int = 20
    max_overflow: int = 10


@dataclass(frozen=True)
class BillingSettings:
    """Money handling for consultation totals."""

    currency: str = "MXN"
    money_places: int = 2
    default_consultation_fee: Decimal | None = None


@dataclass(frozen=True)
class LoggingSettings:
    level: str = "INFO"


# ---------------------------------------------------------------------------
# Root
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class ClinicConfig:
    """Complete runtime configuration of a clinic deployment."""

    config_id: str
    database: DatabaseSettings
    billing: BillingSettings = field(default_factory=BillingSettings)
    logging: LoggingSettings = field(default_factory=LoggingSettings)
    source_path: str | None = None
