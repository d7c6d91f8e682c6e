"""Pydantic schemas for the message API requests and responses."""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field

from amana.clock import utcnow


class InboundMessageRequest(BaseModel):
    """Message delivered by the webhook handler after transport authentication."""

    phone_number: str = Field(..., min_length=3, description="Sender WhatsApp number")
    organization_id: str = Field(..., min_length=1, description="Tenant the number belongs to")
    message: str = Field(default="", description="Text body of the message")
    voice_transcript: Optional[str] = Field(
        None, description="Transcript of a voice note. Takes precedence over message."
    )


class InboundMessageResponse(BaseModel):
    """Reply to send back through the transport."""

    reply: str = Field(..., description="Assistant's reply text")
    conversation_type: str = Field(..., description="Classified conversation type")
    intent: Optional[str] = Field(None, description="Business intent that was dispatched")
    action_status: Optional[str] = Field(None, description="Outcome of the business action")
    timestamp: datetime = Field(default_factory=utcnow)
