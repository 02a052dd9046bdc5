"""
clinic_config -- single public entrypoint for clinic configuration.

Responsibility:
    ``get_active_config()`` is the only way runtime code obtains
    configuration.  No other component reads configuration files or
    environment variables directly.

Architecture position:
    Configuration -- sits above ``clinic_kernel``.  The kernel MUST NEVER
    import from ``clinic_config``; ``clinic_config.bridges`` translates the
    loaded configuration into kernel inputs (BillingPolicy, engine).

Failure modes:
    - ``FileNotFoundError`` -- the configuration file does not exist.
    - ``ValueError`` -- a value fails validation.
    - ``yaml.YAMLError`` -- the file is not valid YAML.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path

from clinic_config.loader import load_config_file
from clinic_config.schema import (
    BillingSettings,
    ClinicConfig,
    DatabaseSettings,
    LoggingSettings,
)

_logger = logging.getLogger("clinic_kernel.config")

CONFIG_PATH_ENV = "CLINIC_CONFIG"

# Default configuration file
_DEFAULT_CONFIG_PATH = Path(__file__).parent / "sets" / "default.yaml"


def get_active_config(config_path: Path | str | None = None) -> ClinicConfig:
    """The ONLY public configuration entrypoint.

    Resolution order for the file: ``config_path``, then the
    ``CLINIC_CONFIG`` environment variable, then ``sets/default.yaml``.
    ``CLINIC_DATABASE_URL`` overrides ``database.url`` of whichever file
    is loaded.

    Non-goals:
        - Does NOT cache; callers hold the returned config.

    Raises:
        FileNotFoundError: If the resolved file does not exist.
        ValueError: If configuration validation fails.
    """
    path = Path(config_path or os.environ.get(CONFIG_PATH_ENV) or _DEFAULT_CONFIG_PATH)
    config = load_config_file(path, env=os.environ)

    _logger.info(
        "CLINIC_CONFIG_TRACE",
        extra={
            "trace_type": "CLINIC_CONFIG_TRACE",
            "config_id": config.config_id,
            "source_path": config.source_path,
            "currency": config.billing.currency,
            "money_places": config.billing.money_places,
        },
    )
    return config


__all__ = [
    "BillingSettings",
    "ClinicConfig",
    "DatabaseSettings",
    "LoggingSettings",
    "get_active_config",
]
