"""
Intent handler registry and router.

Handlers are plain functions ``(HandlerContext, Services) -> str``
registered per intent. The router looks the intent up and falls back to
plain reply generation for anything unregistered.
"""

from typing import Callable, Optional

from support_bot.handlers.common import HandlerContext, Services
from support_bot.handlers.general import handle_general
from support_bot.logging_context import get_request_logger
from support_bot.schemas.classification_schema import ClassifiedMessage, ConversationTurn, Intent

logger = get_request_logger(__name__)

Handler = Callable[[HandlerContext, Services], str]

_HANDLER_REGISTRY: dict[Intent, Handler] = {}


def register_handler(intent: Intent, handler: Handler) -> None:
    """Register the handler for an intent, replacing any previous one."""
    _HANDLER_REGISTRY[intent] = handler
    logger.debug("Handler registered: %s", intent.value)


def get_handler(intent: Intent) -> Optional[Handler]:
    return _HANDLER_REGISTRY.get(intent)


def get_registered_intents() -> list[Intent]:
    """Return the intents that have a dedicated handler."""
    return list(_HANDLER_REGISTRY.keys())


def _auto_register() -> None:
    """Register the built-in handlers. Called once at import time."""
    from support_bot.handlers.change_delivery import handle_change_delivery, handle_update_order
    from support_bot.handlers.general import handle_conversation_end, handle_returns_exchange
    from support_bot.handlers.invoice import handle_invoice_request
    from support_bot.handlers.order_tracking import (
        handle_delivery_issue,
        handle_order_tracking,
        handle_other_order,
    )
    from support_bot.handlers.product import handle_product_sizing, handle_restock
    from support_bot.handlers.promo import handle_promo_code

    register_handler(Intent.ORDER_TRACKING, handle_order_tracking)
    register_handler(Intent.RETURNS_EXCHANGE, handle_returns_exchange)
    register_handler(Intent.DELIVERY_ISSUE, handle_delivery_issue)
    register_handler(Intent.CHANGE_DELIVERY, handle_change_delivery)
    register_handler(Intent.PRODUCT_SIZING, handle_product_sizing)
    register_handler(Intent.UPDATE_ORDER, handle_update_order)
    register_handler(Intent.OTHER_ORDER, handle_other_order)
    register_handler(Intent.RESTOCK, handle_restock)
    register_handler(Intent.CONVERSATION_END, handle_conversation_end)
    register_handler(Intent.PROMO_CODE, handle_promo_code)
    register_handler(Intent.INVOICE_REQUEST, handle_invoice_request)


class IntentRouter:
    """Dispatches a classified message to its intent handler."""

    def __init__(self, services: Services) -> None:
        self.services = services

    def route(
        self,
        classification: ClassifiedMessage,
        message: str,
        history: list[ConversationTurn],
    ) -> str:
        return self.dispatch(HandlerContext(classification=classification, message=message, history=history))

    def dispatch(self, ctx: HandlerContext) -> str:
        """Run the handler for ``ctx``; ``ctx.validated_order`` is left set for the caller."""
        handler = get_handler(ctx.classification.intent) or handle_general
        logger.info("Routing intent %s to %s", ctx.classification.intent.value, handler.__name__)
        return handler(ctx, self.services)


_auto_register()
