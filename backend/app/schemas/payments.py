"""API schemas for checkout and webhook endpoints."""
from __future__ import annotations

from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field

from ..reconciliation import CheckoutLink


class AppointmentCheckoutRequest(BaseModel):
    appointment_id: str = Field(alias="appointmentId", min_length=1)

    model_config = ConfigDict(populate_by_name=True)


class RentalCheckoutRequest(BaseModel):
    listing_id: str = Field(alias="listingId", min_length=1)
    listing_data: Dict[str, Any] = Field(alias="listingData", default_factory=dict)

    model_config = ConfigDict(populate_by_name=True)


class CheckoutResponse(BaseModel):
    url: str
    session_id: str = Field(alias="sessionId")

    model_config = ConfigDict(populate_by_name=True)

    @classmethod
    def from_link(cls, link: CheckoutLink) -> "CheckoutResponse":
        return cls(url=link.url, session_id=link.session_id)


class WebhookAck(BaseModel):
    received: bool = True
    event: Optional[str] = None


class ErrorResponse(BaseModel):
    error: str
