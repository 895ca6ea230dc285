"""
Notification Service Abstract Base Class

Interface for customer-facing SMS and email: reservation confirmations and
receipts for paid bills. Implementations provide the two transports; the
message composition is shared here.

Author: Khalil Bannouri
Version: 1.0.0
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import Optional

from restaurant_pos.core.config import get_settings
from restaurant_pos.core.money import format_money


@dataclass
class NotificationResult:
    """Result from sending a notification."""
    success: bool
    message_id: Optional[str] = None
    error_message: Optional[str] = None
    provider: str = "unknown"


class BaseNotificationService(ABC):
    """Abstract base class for notification services."""

    @property
    @abstractmethod
    def provider_name(self) -> str:
        """Return the provider name."""

    @abstractmethod
    async def send_sms(self, to_phone: str, message: str) -> NotificationResult:
        """Send an SMS message."""

    @abstractmethod
    async def send_email(
        self,
        to_email: str,
        subject: str,
        body_html: str,
        body_text: Optional[str] = None,
    ) -> NotificationResult:
        """Send an email."""

    @abstractmethod
    async def health_check(self) -> bool:
        """Check service connectivity."""

    # =========================================================================
    # COMPOSED MESSAGES
    # =========================================================================

    async def _deliver(
        self,
        phone: Optional[str],
        email: Optional[str],
        subject: str,
        text: str,
    ) -> NotificationResult:
        """Send ``text`` by SMS and email; succeeds if either channel does."""
        sms_result = await self.send_sms(phone, text) if phone else None
        email_result = None
        if email:
            html = "".join(f"<p>{line}</p>" for line in text.splitlines())
            email_result = await self.send_email(email, subject, html, text)

        delivered = [r for r in (sms_result, email_result) if r is not None]
        succeeded = [r for r in delivered if r.success]
        if succeeded:
            return succeeded[0]
        if delivered:
            return delivered[0]
        return NotificationResult(
            success=False,
            error_message="No contact details",
            provider=self.provider_name,
        )

    async def send_reservation_confirmation(
        self,
        customer_name: str,
        customer_email: Optional[str],
        customer_phone: Optional[str],
        confirmation_code: str,
        reservation_date: datetime,
        party_size: int,
        table_number: str,
    ) -> NotificationResult:
        """Send the booking details and confirmation code to the guest."""
        restaurant = get_settings().restaurant_name
        text = (
            f"Hi {customer_name}! Your table at {restaurant} is booked.\n"
            f"Date: {reservation_date:%A %d %B %Y, %H:%M}\n"
            f"Party of {party_size}, table {table_number}\n"
            f"Confirmation code: {confirmation_code}"
        )
        return await self._deliver(
            customer_phone,
            customer_email,
            f"Reservation {confirmation_code} - {restaurant}",
            text,
        )

    async def send_receipt(
        self,
        customer_name: str,
        customer_email: Optional[str],
        customer_phone: Optional[str],
        bill_number: str,
        total_amount: Decimal,
        points_earned: int = 0,
    ) -> NotificationResult:
        """Send a paid-bill receipt, mentioning loyalty points when earned."""
        restaurant = get_settings().restaurant_name
        lines = [
            f"Thank you for dining at {restaurant}, {customer_name}!",
            f"Bill {bill_number}: {format_money(total_amount)} paid.",
        ]
        if points_earned:
            lines.append(f"You earned {points_earned} loyalty points.")
        return await self._deliver(
            customer_phone,
            customer_email,
            f"Receipt {bill_number} - {restaurant}",
            "\n".join(lines),
        )
