"""
Payment processor contract used by checkout and fulfillment.
"""
from __future__ import annotations

from abc import ABC, abstractmethod
from datetime import datetime
from typing import TYPE_CHECKING, Any

from ppvgate.services.retry import CallResult

if TYPE_CHECKING:
    from ppvgate.ppv.models import LineItem, ProcessorSession


class InvalidSignatureError(Exception):
    """Webhook payload failed authenticity verification."""


class PaymentProcessor(ABC):
    @abstractmethod
    def create_checkout_session(
        self,
        line_item: LineItem,
        success_url: str,
        cancel_url: str,
        metadata: dict[str, str],
        expires_at: datetime,
        *,
        customer_email: str | None = None,
        idempotency_key: str | None = None,
    ) -> CallResult[ProcessorSession]:
        raise NotImplementedError

    @abstractmethod
    def verify_notification(self, payload: bytes, signature_header: str | None) -> dict[str, Any]:
        """Verify signature and return the decoded event; raises InvalidSignatureError."""
        raise NotImplementedError
