"""Support ticket and message records."""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class Ticket(BaseModel):
    """A conversation record, optionally linked to an order once known."""
    model_config = ConfigDict(populate_by_name=True)

    id: str
    order_number: Optional[str] = Field(default=None, alias="orderNumber")
    email: Optional[str] = None
    name: Optional[str] = None
    status: str = "open"
    admin: bool = False
    created_at: Optional[datetime] = Field(default=None, alias="createdAt")
    updated_at: Optional[datetime] = Field(default=None, alias="updatedAt")


class TicketUpdate(BaseModel):
    """Proposed change to a ticket after a message resolved its order."""
    model_config = ConfigDict(populate_by_name=True)

    id: str
    order_number: str = Field(alias="orderNumber")
    email: str
    name: Optional[str] = None


class TicketMessage(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: str
    ticket_id: str = Field(alias="ticketId")
    sender: str
    text: str
    timestamp: datetime
