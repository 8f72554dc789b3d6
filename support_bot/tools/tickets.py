"""
Ticket and message storage.

The production store is external; the session only needs to read the
current ticket and write order details back. ``InMemoryTicketStore``
backs the HTTP endpoints and tests.
"""

import logging
import threading
import uuid
from datetime import datetime, timezone
from typing import Optional, Protocol

from support_bot.schemas.ticket_schema import Ticket, TicketMessage

logger = logging.getLogger(__name__)


class TicketStore(Protocol):
    def create_ticket(self) -> Ticket: ...

    def get_ticket(self, ticket_id: str) -> Optional[Ticket]: ...

    def update_ticket_order_info(
        self, ticket_id: str, order_number: str, email: str, customer_name: Optional[str] = None
    ) -> Optional[Ticket]: ...

    def set_admin(self, ticket_id: str, admin: bool) -> Optional[Ticket]: ...

    def add_message(self, ticket_id: str, sender: str, text: str) -> TicketMessage: ...

    def get_messages(self, ticket_id: str) -> list[TicketMessage]: ...


class InMemoryTicketStore:
    """Process-local store. Writes are last-write-wins per ticket id."""

    def __init__(self) -> None:
        self._tickets: dict[str, Ticket] = {}
        self._messages: dict[str, list[TicketMessage]] = {}
        self._lock = threading.Lock()

    def create_ticket(self) -> Ticket:
        now = datetime.now(timezone.utc)
        ticket = Ticket(id=f"TK-{uuid.uuid4().hex[:8].upper()}", created_at=now, updated_at=now)
        with self._lock:
            self._tickets[ticket.id] = ticket
            self._messages[ticket.id] = []
        logger.info("Ticket created: %s", ticket.id)
        return ticket

    def get_ticket(self, ticket_id: str) -> Optional[Ticket]:
        with self._lock:
            return self._tickets.get(ticket_id)

    def _update(self, ticket_id: str, **changes) -> Optional[Ticket]:
        with self._lock:
            ticket = self._tickets.get(ticket_id)
            if ticket is None:
                return None
            updated = ticket.model_copy(update={**changes, "updated_at": datetime.now(timezone.utc)})
            self._tickets[ticket_id] = updated
            return updated

    def update_ticket_order_info(
        self, ticket_id: str, order_number: str, email: str, customer_name: Optional[str] = None
    ) -> Optional[Ticket]:
        changes = {"order_number": order_number, "email": email}
        if customer_name:
            changes["name"] = customer_name
        return self._update(ticket_id, **changes)

    def set_admin(self, ticket_id: str, admin: bool) -> Optional[Ticket]:
        ticket = self._update(ticket_id, admin=admin)
        if ticket is not None:
            logger.info("Ticket %s admin takeover set to %s", ticket_id, admin)
        return ticket

    def add_message(self, ticket_id: str, sender: str, text: str) -> TicketMessage:
        message = TicketMessage(
            id=uuid.uuid4().hex,
            ticket_id=ticket_id,
            sender=sender,
            text=text,
            timestamp=datetime.now(timezone.utc),
        )
        with self._lock:
            self._messages.setdefault(ticket_id, []).append(message)
        return message

    def get_messages(self, ticket_id: str) -> list[TicketMessage]:
        with self._lock:
            return list(self._messages.get(ticket_id, []))
