"""
Shared handler plumbing: the per-message context, the bundle of
external services, and order validation used by every order intent.
"""

import logging
from dataclasses import dataclass, field
from typing import Optional

from support_bot.config import StoreConfig, settings
from support_bot.conversation.call_monitor import CallStatusPoller
from support_bot.conversation.responder import ReplyGenerator
from support_bot.prompts.messages import localize
from support_bot.schemas.classification_schema import (
    ClassifiedMessage,
    ConversationTurn,
    Language,
    ParameterBag,
)
from support_bot.schemas.commerce_schema import Order, OrderLookupError, OrderLookupResult
from support_bot.tools.commerce import ShopifyClient
from support_bot.tools.errors import CommerceError
from support_bot.tools.geocoding import GoogleGeocoder
from support_bot.tools.mailer import SendGridMailer
from support_bot.tools.telephony import CallBridgeClient
from support_bot.utils import emails_match

logger = logging.getLogger(__name__)


@dataclass
class Services:
    """External collaborators available to handlers."""
    replies: ReplyGenerator
    commerce: ShopifyClient
    geocoder: GoogleGeocoder
    telephony: CallBridgeClient
    call_poller: CallStatusPoller
    mailer: SendGridMailer
    store: StoreConfig = field(default_factory=lambda: settings.store)


@dataclass
class HandlerContext:
    """Everything a handler knows about the message being answered.

    ``validated_order`` is filled in once an order number/email pair
    has been checked against the commerce backend.
    """
    classification: ClassifiedMessage
    message: str
    history: list[ConversationTurn] = field(default_factory=list)
    validated_order: Optional[Order] = None

    @property
    def params(self) -> ParameterBag:
        return self.classification.parameters

    @property
    def language(self) -> Language:
        return self.classification.language


@dataclass
class OrderCheck:
    """Either a validated order, or the reply to send instead."""
    order: Optional[Order] = None
    reply: Optional[str] = None


def lookup_order(commerce: ShopifyClient, order_number: str, email: str) -> OrderLookupResult:
    """Find an order and check the email against its contact email.

    Raises:
        CommerceError: If the backend cannot be reached.
    """
    order = commerce.find_order(order_number)
    if order is None:
        return OrderLookupResult(success=False, error=OrderLookupError.INVALID_ORDER_NUMBER)
    if not emails_match(order.contact_email or order.email, email):
        return OrderLookupResult(success=False, error=OrderLookupError.EMAIL_MISMATCH)
    return OrderLookupResult(success=True, order=order)


_LOOKUP_ERROR_MESSAGES = {
    OrderLookupError.INVALID_ORDER_NUMBER: "invalid_order_number",
    OrderLookupError.EMAIL_MISMATCH: "email_mismatch",
}


def resolve_order(
    ctx: HandlerContext,
    services: Services,
    missing_message: str = "need_order_and_email",
) -> OrderCheck:
    """Validate the order number/email pair in ``ctx``.

    On success the order is also recorded on ``ctx.validated_order``.
    """
    params = ctx.params
    if not params.order_number or not params.email:
        return OrderCheck(reply=localize(missing_message, ctx.language))

    try:
        result = lookup_order(services.commerce, params.order_number, params.email)
    except CommerceError as exc:
        logger.error("Order lookup failed for #%s: %s", params.order_number, exc)
        return OrderCheck(reply=localize("order_lookup_failed", ctx.language))

    if not result.success:
        logger.info("Order #%s rejected: %s", params.order_number, result.error.value)
        return OrderCheck(reply=localize(_LOOKUP_ERROR_MESSAGES[result.error], ctx.language))

    ctx.validated_order = result.order
    return OrderCheck(order=result.order)
