"""
Stub Payment Service Implementation

Issues deterministic client secrets (stub_<order_id>) without talking to a
gateway. Payment confirmation arrives through the signed webhook.
"""

import logging
from decimal import Decimal

from restohub.services.payment.base import BasePaymentService, PaymentIntentResult

logger = logging.getLogger(__name__)


class StubPaymentService(BasePaymentService):
    """Payment provider stand-in used in every environment."""

    @property
    def provider_name(self) -> str:
        """Return the provider name."""
        return "stub"

    async def create_payment_intent(
        self,
        order_id: str,
        amount: Decimal,
        currency: str,
    ) -> PaymentIntentResult:
        client_secret = f"stub_{order_id}"
        logger.info(f"Stub: Created payment intent for order {order_id} - {amount} {currency}")

        return PaymentIntentResult(
            client_secret=client_secret,
            amount=amount,
            currency=currency,
            provider=self.provider_name,
            metadata={"order_id": order_id, "stub": True},
        )
