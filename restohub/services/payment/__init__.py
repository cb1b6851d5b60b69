"""
Payment Service Factory

Provides a single entry point for obtaining a payment service instance,
so routes stay agnostic about which provider is used.

Usage:
    from restohub.services.payment import get_payment_service

    payment_service = get_payment_service()
    intent = await payment_service.create_payment_intent(order_id, total, "USD")
"""

import logging
from functools import lru_cache

from restohub.services.payment.base import (
    BasePaymentService,
    PaymentIntentResult,
    WebhookEvent,
)
from restohub.services.payment.stub import StubPaymentService

logger = logging.getLogger(__name__)

PAYMENT_SUCCEEDED = "payment.succeeded"


@lru_cache()
def get_payment_service() -> BasePaymentService:
    """
    Get the configured payment service instance (cached).

    Gateway integration is out of scope, so this is always the stub.
    """
    logger.info("Payment Service: Using StubPaymentService")
    return StubPaymentService()


def reset_payment_service() -> None:
    """Clear the cached payment service instance."""
    get_payment_service.cache_clear()
    logger.debug("Payment service cache cleared")


__all__ = [
    "PAYMENT_SUCCEEDED",
    "get_payment_service",
    "reset_payment_service",
    "BasePaymentService",
    "PaymentIntentResult",
    "WebhookEvent",
    "StubPaymentService",
]
