from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field


class _CamelModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


class CheckoutRequest(_CamelModel):
    event_id: str = Field(..., alias="eventId", min_length=1, max_length=128)


class CheckoutOut(_CamelModel):
    session_id: str = Field(..., alias="sessionId")
    url: str


class AccessOut(_CamelModel):
    has_access: bool = Field(..., alias="hasAccess")
    event_id: str = Field(..., alias="eventId")


class StreamUrlOut(_CamelModel):
    stream_url: str = Field(..., alias="streamUrl")
    event_id: str = Field(..., alias="eventId")


class WebhookAck(BaseModel):
    received: bool = True


class ErrorOut(BaseModel):
    error: str


class EventOut(_CamelModel):
    id: str
    title: str
    short_description: str | None = Field(None, alias="shortDescription")
    price: Decimal | None = None
    is_ppv: bool = Field(..., alias="isPPV")
    stream_status: str = Field(..., alias="streamStatus")
    event_date: datetime | None = Field(None, alias="eventDate")


class PurchaseOut(_CamelModel):
    id: str
    event_id: str = Field(..., alias="eventId")
    status: str
    amount: Decimal
    currency: str
    created_at: datetime = Field(..., alias="createdAt")
    completed_at: datetime | None = Field(None, alias="completedAt")
