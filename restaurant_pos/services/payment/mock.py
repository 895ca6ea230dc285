"""
Mock Payment Service Implementation

Simulates card settlement without calling a provider.
Used in development mode (ENV_MODE=development) and in tests.

Behavior:
    - Simulated terminal latency (configurable, zero in tests)
    - Random declines at ``failure_rate`` (mimics real decline codes)
    - A token of ``tok_decline`` is always declined
    - Generates Stripe-like IDs (pi_mock_xxx)

Author: Khalil Bannouri
Version: 1.0.0
"""

import asyncio
import random
import uuid
import logging
from decimal import Decimal
from typing import Optional

from restaurant_pos.services.payment.base import (
    BasePaymentService,
    PaymentResult,
    RefundResult,
)

logger = logging.getLogger(__name__)

DECLINE_TOKEN = "tok_decline"


class MockPaymentService(BasePaymentService):
    """
    Mock implementation of the payment service.

    Attributes:
        failure_rate: Probability of a simulated decline (0.0-1.0)
        min_latency: Minimum simulated response time in seconds
        max_latency: Maximum simulated response time in seconds
    """

    DECLINE_REASONS = [
        ("card_declined", "Your card was declined."),
        ("insufficient_funds", "Your card has insufficient funds."),
        ("expired_card", "Your card has expired."),
        ("incorrect_cvc", "Your card's security code is incorrect."),
    ]

    def __init__(
        self,
        failure_rate: float = 0.05,
        min_latency: float = 0.1,
        max_latency: float = 0.4,
    ):
        self.failure_rate = failure_rate
        self.min_latency = min_latency
        self.max_latency = max_latency
        self.charges: list[PaymentResult] = []

        logger.info(
            f"MockPaymentService initialized "
            f"(failure_rate={failure_rate:.0%}, "
            f"latency={min_latency}-{max_latency}s)"
        )

    @property
    def provider_name(self) -> str:
        return "mock"

    async def _simulate_latency(self) -> float:
        latency = random.uniform(self.min_latency, self.max_latency)
        if latency > 0:
            await asyncio.sleep(latency)
        return latency * 1000

    def _should_fail(self, token: Optional[str]) -> bool:
        if token == DECLINE_TOKEN:
            return True
        return random.random() < self.failure_rate

    async def charge_card(
        self,
        amount: Decimal,
        currency: str = "usd",
        payment_method_token: Optional[str] = None,
        description: Optional[str] = None,
        metadata: Optional[dict] = None,
    ) -> PaymentResult:
        logger.debug(f"Mock: Charging {amount} {currency.upper()}")

        if amount <= 0:
            return PaymentResult(
                success=False,
                error_message="Amount must be greater than 0",
                error_code="invalid_amount",
            )

        latency_ms = await self._simulate_latency()

        if self._should_fail(payment_method_token):
            error_code, error_message = random.choice(self.DECLINE_REASONS)
            logger.info(f"Mock: Card declined - {error_code}")
            return PaymentResult(
                success=False,
                amount=amount,
                currency=currency,
                error_message=error_message,
                error_code=error_code,
                response_time_ms=latency_ms,
            )

        result = PaymentResult(
            success=True,
            transaction_id=f"pi_mock_{uuid.uuid4().hex[:24]}",
            amount=amount,
            currency=currency,
            response_time_ms=latency_ms,
            metadata={"description": description, "mock": True, **(metadata or {})},
        )
        self.charges.append(result)
        logger.info(f"Mock: Charge successful - {result.transaction_id} - {amount}")
        return result

    async def refund_payment(
        self,
        transaction_id: str,
        amount: Optional[Decimal] = None,
        reason: Optional[str] = None,
    ) -> RefundResult:
        await self._simulate_latency()

        if not transaction_id.startswith("pi_"):
            return RefundResult(success=False, status="failed", error_message="Invalid transaction ID")

        refund_id = f"re_mock_{uuid.uuid4().hex[:24]}"
        logger.info(f"Mock: Refund processed - {refund_id}")
        return RefundResult(success=True, refund_id=refund_id, amount=amount, status="succeeded")

    async def health_check(self) -> bool:
        return True
