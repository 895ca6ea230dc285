"""
Stripe Payment Service Implementation

Production implementation using the official Stripe Python SDK.
Used when ENV_MODE=production or ENV_MODE=staging.

Requirements:
    - STRIPE_SECRET_KEY must be set in environment

Security Notes:
    - Never log card tokens in full
    - Charges are confirmed server-side with the terminal's payment method

Author: Khalil Bannouri
Version: 1.0.0
"""

import logging
from datetime import datetime
from decimal import Decimal
from typing import Optional

import stripe
from stripe import (
    StripeError,
    CardError,
    InvalidRequestError,
    AuthenticationError,
    APIConnectionError,
)

from restaurant_pos.core.config import get_settings
from restaurant_pos.services.payment.base import (
    BasePaymentService,
    PaymentResult,
    RefundResult,
)

logger = logging.getLogger(__name__)


def _to_cents(amount: Decimal) -> int:
    return int((Decimal(amount) * 100).to_integral_value())


def _from_cents(cents: int) -> Decimal:
    return (Decimal(cents) / 100).quantize(Decimal("0.01"))


class StripePaymentService(BasePaymentService):
    """
    Production Stripe payment service.

    Creates and confirms a PaymentIntent per card payment recorded
    against a bill.
    """

    def __init__(self):
        settings = get_settings()

        if not settings.stripe_secret_key:
            raise ValueError(
                "STRIPE_SECRET_KEY is required outside development mode. "
                "Set it in your .env file or environment variables."
            )

        stripe.api_key = settings.stripe_secret_key
        self._currency = settings.currency

        logger.info("StripePaymentService initialized")

    @property
    def provider_name(self) -> str:
        return "stripe"

    async def charge_card(
        self,
        amount: Decimal,
        currency: str = "usd",
        payment_method_token: Optional[str] = None,
        description: Optional[str] = None,
        metadata: Optional[dict] = None,
    ) -> PaymentResult:
        start_time = datetime.now()

        def elapsed() -> float:
            return (datetime.now() - start_time).total_seconds() * 1000

        if amount <= 0:
            return PaymentResult(
                success=False,
                error_message="Amount must be greater than 0",
                error_code="invalid_amount",
            )
        if not payment_method_token:
            return PaymentResult(
                success=False,
                error_message="A card payment method is required",
                error_code="missing_payment_method",
            )

        logger.info(f"Stripe: Charging {amount} {(currency or self._currency).upper()}")

        try:
            intent = stripe.PaymentIntent.create(
                amount=_to_cents(amount),
                currency=currency or self._currency,
                payment_method=payment_method_token,
                confirm=True,
                description=description or "Restaurant bill",
                automatic_payment_methods={"enabled": True, "allow_redirects": "never"},
                metadata={"source": "restaurant_pos", **(metadata or {})},
            )

            logger.info(f"Stripe: PaymentIntent {intent.id} - status={intent.status}")

            if intent.status != "succeeded":
                return PaymentResult(
                    success=False,
                    transaction_id=intent.id,
                    error_message=f"Payment not completed (status: {intent.status})",
                    error_code="payment_incomplete",
                    response_time_ms=elapsed(),
                )

            return PaymentResult(
                success=True,
                transaction_id=intent.id,
                amount=_from_cents(intent.amount),
                currency=intent.currency,
                response_time_ms=elapsed(),
                metadata={"status": intent.status},
            )

        except CardError as e:
            logger.warning(f"Stripe: Card declined - {e.code}: {e.user_message}")
            return PaymentResult(
                success=False,
                error_message=e.user_message,
                error_code=e.code,
                response_time_ms=elapsed(),
            )

        except InvalidRequestError as e:
            logger.error(f"Stripe: Invalid request - {e}")
            return PaymentResult(
                success=False,
                error_message=str(e),
                error_code="invalid_request",
                response_time_ms=elapsed(),
            )

        except AuthenticationError as e:
            logger.critical(f"Stripe: Authentication failed - {e}")
            return PaymentResult(
                success=False,
                error_message="Payment service configuration error",
                error_code="authentication_error",
            )

        except APIConnectionError as e:
            logger.error(f"Stripe: Connection error - {e}")
            return PaymentResult(
                success=False,
                error_message="Payment service temporarily unavailable",
                error_code="connection_error",
                response_time_ms=elapsed(),
            )

        except StripeError as e:
            logger.error(f"Stripe: Error - {e}")
            return PaymentResult(
                success=False,
                error_message="Payment processing error",
                error_code="stripe_error",
                response_time_ms=elapsed(),
            )

    async def refund_payment(
        self,
        transaction_id: str,
        amount: Optional[Decimal] = None,
        reason: Optional[str] = None,
    ) -> RefundResult:
        """
        Refund a charge through Stripe.

        Args:
            transaction_id: The PaymentIntent to refund
            amount: Partial refund amount (None = full refund)
            reason: Reason code (duplicate, fraudulent, requested_by_customer)
        """
        try:
            params = {"payment_intent": transaction_id}
            if amount is not None:
                params["amount"] = _to_cents(amount)
            if reason:
                params["reason"] = reason

            refund = stripe.Refund.create(**params)
            logger.info(f"Stripe: Refund processed - {refund.id} - status={refund.status}")

            return RefundResult(
                success=True,
                refund_id=refund.id,
                amount=_from_cents(refund.amount),
                status=refund.status,
            )

        except StripeError as e:
            logger.error(f"Stripe: Refund failed - {e}")
            return RefundResult(success=False, status="failed", error_message=str(e))

    async def health_check(self) -> bool:
        try:
            stripe.Account.retrieve()
            return True
        except StripeError as e:
            logger.error(f"Stripe: Health check failed - {e}")
            return False
