"""
Mock Notification Service

Simulates SMS and Email sending for development.
No actual messages are sent; each one is logged and kept in ``outbox``.

Author: Khalil Bannouri
Version: 1.0.0
"""

import asyncio
import random
import uuid
import logging
from typing import Optional

from restaurant_pos.services.notifications.base import (
    BaseNotificationService,
    NotificationResult,
)

logger = logging.getLogger(__name__)


class MockNotificationService(BaseNotificationService):
    """Mock notification service for development and tests."""

    def __init__(self, failure_rate: float = 0.05, latency: float = 0.1):
        self.failure_rate = failure_rate
        self.latency = latency
        self.outbox: list[dict] = []
        logger.info(f"MockNotificationService initialized (failure_rate={failure_rate:.0%})")

    @property
    def provider_name(self) -> str:
        return "mock"

    async def _simulate_latency(self) -> None:
        if self.latency > 0:
            await asyncio.sleep(random.uniform(0, self.latency))

    def _should_fail(self) -> bool:
        return random.random() < self.failure_rate

    async def send_sms(self, to_phone: str, message: str) -> NotificationResult:
        """Simulate sending SMS."""
        await self._simulate_latency()

        if self._should_fail():
            logger.warning(f"Mock SMS failed (simulated) to {to_phone}")
            return NotificationResult(success=False, error_message="Simulated SMS failure", provider="mock")

        message_id = f"sms_mock_{uuid.uuid4().hex[:12]}"
        self.outbox.append({"channel": "sms", "to": to_phone, "body": message, "id": message_id})
        logger.info(f"Mock SMS sent to {to_phone}: {message[:50]}... (ID: {message_id})")
        return NotificationResult(success=True, message_id=message_id, provider="mock")

    async def send_email(
        self,
        to_email: str,
        subject: str,
        body_html: str,
        body_text: Optional[str] = None,
    ) -> NotificationResult:
        """Simulate sending email."""
        await self._simulate_latency()

        if self._should_fail():
            logger.warning(f"Mock email failed (simulated) to {to_email}")
            return NotificationResult(success=False, error_message="Simulated email failure", provider="mock")

        message_id = f"email_mock_{uuid.uuid4().hex[:12]}"
        self.outbox.append({
            "channel": "email",
            "to": to_email,
            "subject": subject,
            "body": body_text or body_html,
            "id": message_id,
        })
        logger.info(f"Mock email sent to {to_email}: {subject} (ID: {message_id})")
        return NotificationResult(success=True, message_id=message_id, provider="mock")

    async def health_check(self) -> bool:
        return True
