"""
Payment Service Abstract Base Class

Interface for card settlement at the till. Both MockPaymentService and
StripePaymentService implement it, so billing code is identical whichever
provider is active.

Design Pattern: Strategy Pattern
    - Runtime switching between payment providers
    - Mock implementation for development and tests

Author: Khalil Bannouri
Version: 1.0.0
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Optional


@dataclass
class PaymentResult:
    """
    Standardized result from a card charge.

    Attributes:
        success: Whether the charge went through
        transaction_id: Provider reference stored on the Payment row (pi_xxx)
        amount: Amount charged
        currency: Currency code (e.g., "usd")
        error_message: Human readable decline reason
        error_code: Machine-readable error code
        response_time_ms: Time taken by the provider
        metadata: Extra provider data
    """
    success: bool
    transaction_id: Optional[str] = None
    amount: Optional[Decimal] = None
    currency: str = "usd"
    error_message: Optional[str] = None
    error_code: Optional[str] = None
    response_time_ms: float = 0.0
    metadata: dict = field(default_factory=dict)

    def to_dict(self) -> dict:
        """Convert to a JSON-safe dict (stored in Payment.details)."""
        return {
            "success": self.success,
            "transaction_id": self.transaction_id,
            "amount": str(self.amount) if self.amount is not None else None,
            "currency": self.currency,
            "error_message": self.error_message,
            "error_code": self.error_code,
            "response_time_ms": round(self.response_time_ms, 1),
            "metadata": self.metadata,
        }


@dataclass
class RefundResult:
    """
    Standardized result from refund processing.

    Attributes:
        success: Whether the refund was accepted
        refund_id: Provider refund reference
        amount: Amount refunded
        status: Refund status (pending, succeeded, failed)
        error_message: Error description if refund failed
    """
    success: bool
    refund_id: Optional[str] = None
    amount: Optional[Decimal] = None
    status: str = "pending"
    error_message: Optional[str] = None


class BasePaymentService(ABC):
    """
    Abstract base class for payment services.

    Implementations never raise on provider failures; they return a
    result with ``success=False`` and the reason.
    """

    @property
    @abstractmethod
    def provider_name(self) -> str:
        """Provider name (e.g., "mock", "stripe")."""

    @abstractmethod
    async def charge_card(
        self,
        amount: Decimal,
        currency: str = "usd",
        payment_method_token: Optional[str] = None,
        description: Optional[str] = None,
        metadata: Optional[dict] = None,
    ) -> PaymentResult:
        """
        Charge a card presented at the table.

        Args:
            amount: Amount in currency units (e.g., Decimal("29.99"))
            currency: Three-letter currency code
            payment_method_token: Token from the card terminal
            description: Statement description (bill number)
            metadata: Extra key-value data attached to the charge
        """

    @abstractmethod
    async def refund_payment(
        self,
        transaction_id: str,
        amount: Optional[Decimal] = None,
        reason: Optional[str] = None,
    ) -> RefundResult:
        """Refund a previous charge (full refund when ``amount`` is None)."""

    @abstractmethod
    async def health_check(self) -> bool:
        """True if the provider is reachable."""
