"""
Configuration Loader (``clinic_config.loader``).

Responsibility
--------------
Reads a YAML configuration file and parses it into the frozen
``clinic_config.schema`` dataclasses, applying environment overrides.
Runtime callers go through ``clinic_config.get_active_config()``.

Invariants enforced
-------------------
* Parse errors raise ``ValueError`` with a message naming the offending
  key; there are no silent defaults for required fields.
* Money values are parsed to ``Decimal`` from their string form, never
  through float arithmetic.

Failure modes
-------------
* Missing YAML file  -> ``FileNotFoundError`` propagates.
* Malformed YAML  -> ``yaml.YAMLError`` propagates.
* Missing ``database.url`` or invalid values  -> ``ValueError``.
"""

from __future__ import annotations

from decimal import Decimal, InvalidOperation
from pathlib import Path
from typing import Any, Mapping

import yaml

from clinic_config.schema import (
    BillingSettings,
    ClinicConfig,
    DatabaseSettings,
    LoggingSettings,
)
from clinic_kernel.domain.values import MAX_MONEY_PLACES

DATABASE_URL_ENV = "CLINIC_DATABASE_URL"

_LOG_LEVELS = frozenset({"CRITICAL", "ERROR", "WARNING", "INFO", "DEBUG"})


def load_yaml_file(path: Path) -> dict[str, Any]:
    """
    Load a YAML file and return its contents as a dict.

    Raises:
        FileNotFoundError: if the file does not exist.
        yaml.YAMLError: if the file contains invalid YAML.
    """
    with open(path) as f:
        return yaml.safe_load(f) or {}


def _section(data: Mapping[str, Any], name: str) -> Mapping[str, Any]:
    value = data.get(name) or {}
    if not isinstance(value, Mapping):
        raise ValueError(f"'{name}' must be a mapping, got {type(value).__name__}")
    return value


def _parse_bool(key: str, value: Any) -> bool:
    if isinstance(value, bool):
        return value
    raise ValueError(f"{key} must be true or false, got {value!r}")


def _parse_int(key: str, value: Any, minimum: int) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValueError(f"{key} must be an integer, got {value!r}")
    if value < minimum:
        raise ValueError(f"{key} must be >= {minimum}, got {value}")
    return value


def _parse_money(key: str, value: Any) -> Decimal | None:
    if value is None:
        return None
    try:
        amount = Decimal(str(value))
    except InvalidOperation:
        raise ValueError(f"{key} must be a number, got {value!r}") from None
    if not amount.is_finite() or amount < 0:
        raise ValueError(f"{key} must be a non-negative amount, got {value!r}")
    return amount


def parse_database(
    data: Mapping[str, Any],
    env: Mapping[str, str],
) -> DatabaseSettings:
    url = env.get(DATABASE_URL_ENV) or data.get("url")
    if not url:
        raise ValueError(f"database.url is required (or set {DATABASE_URL_ENV})")
    return DatabaseSettings(
        url=str(url),
        echo=_parse_bool("database.echo", data.get("echo", False)),
        pool_size=_parse_int("database.pool_size", data.get("pool_size", 20), 1),
        max_overflow=_parse_int("database.max_overflow", data.get("max_overflow", 10), 0),
    )


def parse_billing(data: Mapping[str, Any]) -> BillingSettings:
    currency = str(data.get("currency", "MXN")).upper()
    if len(currency) != 3 or not currency.isalpha():
        raise ValueError(f"billing.currency must be a 3-letter code, got {currency!r}")
    places = _parse_int("billing.money_places", data.get("money_places", 2), 0)
    if places > MAX_MONEY_PLACES:
        raise ValueError(f"billing.money_places must be <= {MAX_MONEY_PLACES}, got {places}")
    return BillingSettings(
        currency=currency,
        money_places=places,
        default_consultation_fee=_parse_money(
            "billing.default_consultation_fee",
            data.get("default_consultation_fee"),
        ),
    )


def parse_logging(data: Mapping[str, Any]) -> LoggingSettings:
    level = str(data.get("level", "INFO")).upper()
    if level not in _LOG_LEVELS:
        raise ValueError(f"logging.level must be a logging level name, got {level!r}")
    return LoggingSettings(level=level)


def parse_config(
    data: Mapping[str, Any],
    env: Mapping[str, str] | None = None,
    source_path: str | None = None,
) -> ClinicConfig:
    """Build a validated ClinicConfig from parsed YAML data."""
    env = env if env is not None else {}
    return ClinicConfig(
        config_id=str(data.get("config_id", "clinic")),
        database=parse_database(_section(data, "database"), env),
        billing=parse_billing(_section(data, "billing")),
        logging=parse_logging(_section(data, "logging")),
        source_path=source_path,
    )


def load_config_file(
    path: Path,
    env: Mapping[str, str] | None = None,
) -> ClinicConfig:
    """Load and validate one configuration file."""
    return parse_config(load_yaml_file(path), env=env, source_path=str(path))
