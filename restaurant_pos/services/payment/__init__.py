"""
Payment Service Factory

Single entry point for obtaining the payment service. Routes depend on
``get_payment_service`` so tests can override it with a deterministic mock.

Environment Switching:
    - ENV_MODE=development → MockPaymentService (no API calls)
    - ENV_MODE=staging → StripePaymentService (test keys)
    - ENV_MODE=production → StripePaymentService (live keys)

Author: Khalil Bannouri
Version: 1.0.0
"""

import logging
from functools import lru_cache

from restaurant_pos.core.config import get_settings
from restaurant_pos.services.payment.base import (
    BasePaymentService,
    PaymentResult,
    RefundResult,
)
from restaurant_pos.services.payment.mock import MockPaymentService
from restaurant_pos.services.payment.stripe import StripePaymentService

logger = logging.getLogger(__name__)


@lru_cache()
def get_payment_service() -> BasePaymentService:
    """
    Get the configured payment service instance (cached).

    Raises:
        ValueError: If real services are requested but Stripe is not configured
    """
    settings = get_settings()

    if not settings.use_real_services:
        logger.info("Payment Service: Using MockPaymentService (development mode)")
        return MockPaymentService()

    logger.info(
        f"Payment Service: Using StripePaymentService "
        f"({settings.env_mode.value} mode)"
    )
    return StripePaymentService()


def reset_payment_service() -> None:
    """Clear the cached instance; the next call builds a new one."""
    get_payment_service.cache_clear()
    logger.debug("Payment service cache cleared")


__all__ = [
    "get_payment_service",
    "reset_payment_service",
    "BasePaymentService",
    "PaymentResult",
    "RefundResult",
    "MockPaymentService",
    "StripePaymentService",
]
