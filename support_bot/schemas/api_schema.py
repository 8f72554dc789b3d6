"""HTTP request and response bodies."""

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from support_bot.schemas.classification_schema import ClassifiedMessage, ConversationTurn
from support_bot.schemas.ticket_schema import Ticket, TicketUpdate


class ChatRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    message: str = Field(min_length=1)
    context: list[ConversationTurn] = Field(default_factory=list)
    current_ticket: Optional[Ticket] = Field(default=None, alias="currentTicket")
    client_id: Optional[str] = Field(default=None, alias="clientId")


class ChatResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    response: str
    updated_ticket: Optional[TicketUpdate] = Field(default=None, alias="updatedTicket")
    classification: Optional[ClassifiedMessage] = None
    automated: bool = True
    request_id: str = Field(alias="requestId")


class CreateTicketRequest(BaseModel):
    message: str = Field(min_length=1)


class AdminToggleRequest(BaseModel):
    admin: bool


class ErrorBody(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    message: str
    code: str
    timestamp: str
    request_id: str = Field(alias="requestId")


class ErrorResponse(BaseModel):
    error: ErrorBody
