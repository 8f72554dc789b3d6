"""
Per-message orchestration: classify, route, and propose a ticket update.

The session holds no per-conversation state of its own; history and
the current ticket arrive with every message.
"""

from dataclasses import dataclass
from typing import Optional

from support_bot.conversation.classifier import Classifier
from support_bot.handlers.common import HandlerContext
from support_bot.handlers.registry import IntentRouter
from support_bot.logging_context import get_request_logger
from support_bot.schemas.classification_schema import ClassifiedMessage, ConversationTurn
from support_bot.schemas.commerce_schema import Order
from support_bot.schemas.ticket_schema import Ticket, TicketUpdate
from support_bot.tools.tickets import TicketStore

logger = get_request_logger(__name__)

USER_SENDER = "user"
BOT_SENDER = "bot"


@dataclass
class SessionResult:
    reply: str
    classification: Optional[ClassifiedMessage] = None
    updated_ticket: Optional[TicketUpdate] = None
    automated: bool = True


def _customer_name(order: Order) -> Optional[str]:
    if order.customer is not None and order.customer.full_name:
        return order.customer.full_name
    if order.shipping_address is not None and order.shipping_address.name:
        return order.shipping_address.name
    return None


def propose_ticket_update(ticket: Optional[Ticket], order: Optional[Order], email: str) -> Optional[TicketUpdate]:
    """Link ``ticket`` to a freshly validated order unless it already is."""
    if ticket is None or order is None or not email:
        return None
    order_number = order.display_number
    same_order = ticket.order_number == order_number
    same_email = (ticket.email or "").lower() == email.lower()
    if same_order and same_email:
        return None
    return TicketUpdate(id=ticket.id, order_number=order_number, email=email, name=_customer_name(order))


class ConversationSession:
    """Entry point for one inbound message."""

    def __init__(
        self,
        classifier: Classifier,
        router: IntentRouter,
        ticket_store: Optional[TicketStore] = None,
    ) -> None:
        self.classifier = classifier
        self.router = router
        self.ticket_store = ticket_store

    def _current_ticket(self, ticket: Optional[Ticket]) -> Optional[Ticket]:
        """Prefer the stored copy so an admin takeover is seen immediately."""
        if ticket is None or self.ticket_store is None:
            return ticket
        return self.ticket_store.get_ticket(ticket.id) or ticket

    def _record(self, ticket: Optional[Ticket], sender: str, text: str) -> None:
        if ticket is not None and self.ticket_store is not None and text:
            self.ticket_store.add_message(ticket.id, sender, text)

    def handle(
        self,
        message: str,
        history: Optional[list[ConversationTurn]] = None,
        ticket: Optional[Ticket] = None,
    ) -> SessionResult:
        history = history or []
        ticket = self._current_ticket(ticket)
        self._record(ticket, USER_SENDER, message)

        if ticket is not None and ticket.admin:
            logger.info("Ticket %s is under admin takeover, skipping automation", ticket.id)
            return SessionResult(reply="", automated=False)

        classification = self.classifier.classify(message, history)
        ctx = HandlerContext(classification=classification, message=message, history=history)
        reply = self.router.dispatch(ctx)

        update = propose_ticket_update(ticket, ctx.validated_order, classification.parameters.email)
        if update is not None:
            logger.info("Ticket %s linked to order #%s", update.id, update.order_number)
            if self.ticket_store is not None:
                self.ticket_store.update_ticket_order_info(
                    update.id, update.order_number, update.email, update.name,
                )

        self._record(ticket, BOT_SENDER, reply)
        return SessionResult(reply=reply, classification=classification, updated_ticket=update)
