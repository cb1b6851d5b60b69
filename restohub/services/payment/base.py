"""
Payment Service Abstract Base Class

Defines the interface contract for payment providers. Only the stub
provider ships; a real gateway would implement the same two calls.

Design Pattern: Strategy Pattern
    - Allows runtime switching between payment providers
    - New providers can be added without modifying the routes
"""

import json
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any, Optional

from restohub.utils.webhook_verify import verify_hmac

logger = logging.getLogger(__name__)


@dataclass
class PaymentIntentResult:
    """
    Standardized result from creating a payment intent.

    Attributes:
        client_secret: Secret the client uses to confirm the payment
        amount: Amount to charge, in currency units
        currency: ISO currency code
        provider: Name of the provider that issued the intent
    """
    client_secret: str
    amount: Decimal
    currency: str
    provider: str
    metadata: dict[str, Any] = field(default_factory=dict)


@dataclass
class WebhookEvent:
    """A verified, parsed provider event."""
    type: str
    order_id: Optional[str]
    raw: dict[str, Any]

    @classmethod
    def from_payload(cls, payload: dict[str, Any]) -> "WebhookEvent":
        data = payload.get("data") or {}
        order_id = data.get("order_id") if isinstance(data, dict) else None
        return cls(type=str(payload.get("type", "")), order_id=order_id, raw=payload)


class BasePaymentService(ABC):
    """
    Abstract base class for payment services.

    Example:
        >>> service = get_payment_service()
        >>> intent = await service.create_payment_intent(order_id, Decimal("17.98"), "USD")
        >>> intent.client_secret
        'stub_...'
    """

    @property
    @abstractmethod
    def provider_name(self) -> str:
        """Return the name of the payment provider."""
        pass

    @abstractmethod
    async def create_payment_intent(
        self,
        order_id: str,
        amount: Decimal,
        currency: str,
    ) -> PaymentIntentResult:
        """
        Create a payment intent for client-side confirmation.

        Args:
            order_id: Order being paid
            amount: Amount in currency units
            currency: Currency code
        """
        pass

    def parse_webhook(
        self,
        payload: bytes,
        signature: Optional[str],
        secret: str,
    ) -> Optional[WebhookEvent]:
        """
        Verify and parse a webhook from the payment provider.

        Returns:
            WebhookEvent if the signature is valid and the body is a JSON
            object, None otherwise
        """
        if not verify_hmac(payload, signature, secret):
            logger.warning(f"{self.provider_name}: webhook signature rejected")
            return None

        try:
            body = json.loads(payload)
        except (json.JSONDecodeError, UnicodeDecodeError):
            logger.warning(f"{self.provider_name}: webhook body is not valid JSON")
            return None
        if not isinstance(body, dict):
            return None

        return WebhookEvent.from_payload(body)

    async def health_check(self) -> bool:
        """Verify connectivity to the payment service."""
        return True
