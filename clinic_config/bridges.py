"""
Config -> Kernel Bridges.

Functions that convert a ClinicConfig into kernel inputs.  They live in
clinic_config (the producer) because the kernel must NEVER import
clinic_config.

Usage:
    from clinic_config import get_active_config
    from clinic_config.bridges import build_billing_policy, init_from_config

    config = get_active_config()
    engine = init_from_config(config)
    service = ConsultationService(get_session(), policy=build_billing_policy(config))
"""

from __future__ import annotations

import logging

from sqlalchemy.engine import Engine

from clinic_config.schema import ClinicConfig
from clinic_kernel.db.engine import init_engine_from_url
from clinic_kernel.domain.cost import BillingPolicy
from clinic_kernel.logging_config import configure_logging


def build_billing_policy(config: ClinicConfig) -> BillingPolicy:
    """BillingPolicy from the billing section."""
    billing = config.billing
    return BillingPolicy(
        money_places=billing.money_places,
        default_consultation_fee=billing.default_consultation_fee,
        currency=billing.currency,
    )


def init_from_config(config: ClinicConfig) -> Engine:
    """
    Configure kernel logging and the process-wide engine.

    Logging is configured first so the engine's own startup event is
    emitted at the configured level.
    """
    configure_logging(level=getattr(logging, config.logging.level))
    database = config.database
    return init_engine_from_url(
        database.url,
        echo=database.echo,
        pool_size=database.pool_size,
        max_overflow=database.max_overflow,
    )
