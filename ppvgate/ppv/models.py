"""
DTO for the PPV workflow: Event (from the CMS), AccessDecision, checkout and
stream results, processor notifications.
"""
from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Any

from pydantic import BaseModel, Field, model_validator


class StreamStatus(str, Enum):
    SCHEDULED = "scheduled"
    LIVE = "live"
    ENDED = "ended"
    CANCELLED = "cancelled"


# ----- Event (read-only, owned by the CMS) -----


class Event(BaseModel):
    """PPV-relevant attributes of a CMS event."""

    id: str
    title: str
    short_description: str | None = None
    price: Decimal | None = None
    is_ppv: bool = False
    stream_status: StreamStatus = StreamStatus.SCHEDULED
    event_date: datetime | None = None

    model_config = {"frozen": True}

    @model_validator(mode="after")
    def _price_required_for_ppv(self) -> "Event":
        if self.is_ppv and (self.price is None or self.price <= 0):
            raise ValueError("PPV event requires a positive price")
        return self


# ----- Access decision (derived, never persisted) -----


class AccessDecision(BaseModel):
    has_access: bool
    event_id: str

    model_config = {"frozen": True}


# ----- Checkout -----


class LineItem(BaseModel):
    """Single line item sent to the processor; amount in minor units."""

    name: str
    description: str | None = None
    unit_amount: int = Field(..., gt=0)
    currency: str
    quantity: int = 1

    model_config = {"frozen": True}


class ProcessorSession(BaseModel):
    session_id: str
    redirect_url: str

    model_config = {"frozen": True}


class CheckoutResult(BaseModel):
    session_id: str
    redirect_url: str

    model_config = {"frozen": True}


# ----- Stream gate -----


class StreamAuthorization(BaseModel):
    stream_url: str
    event_id: str

    model_config = {"frozen": True}


# ----- Processor notifications -----


class NotificationType:
    CHECKOUT_COMPLETED = "checkout.session.completed"
    CHECKOUT_ASYNC_SUCCEEDED = "checkout.session.async_payment_succeeded"
    CHECKOUT_ASYNC_FAILED = "checkout.session.async_payment_failed"
    PAYMENT_FAILED = "payment_intent.payment_failed"

    COMPLETIONS = frozenset({CHECKOUT_COMPLETED, CHECKOUT_ASYNC_SUCCEEDED})


class Notification(BaseModel):
    """Verified processor webhook, reduced to the fields fulfillment needs."""

    id: str | None = None
    type: str
    session_id: str | None = None
    payment_id: str | None = None
    payment_status: str | None = None
    amount_total: int | None = None  # minor units
    currency: str | None = None
    metadata: dict[str, str] = Field(default_factory=dict)

    model_config = {"frozen": True}

    @classmethod
    def from_stripe_event(cls, event: dict[str, Any]) -> "Notification":
        event_type = event.get("type") or ""
        obj = (event.get("data") or {}).get("object") or {}
        if obj.get("object") == "payment_intent" or event_type.startswith("payment_intent."):
            session_id = None
            payment_id = obj.get("id")
        else:
            session_id = obj.get("id")
            payment_id = obj.get("payment_intent")
            if isinstance(payment_id, dict):
                payment_id = payment_id.get("id")
        metadata = {k: str(v) for k, v in (obj.get("metadata") or {}).items() if v is not None}
        return cls(
            id=event.get("id"),
            type=event_type,
            session_id=session_id,
            payment_id=payment_id,
            payment_status=obj.get("payment_status"),
            amount_total=obj.get("amount_total"),
            currency=obj.get("currency"),
            metadata=metadata,
        )


class NotificationOutcome(str, Enum):
    ACKED = "acked"
    REJECTED = "rejected"
