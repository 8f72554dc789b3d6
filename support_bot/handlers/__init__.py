from support_bot.handlers.common import HandlerContext, Services
from support_bot.handlers.registry import (
    IntentRouter,
    get_handler,
    get_registered_intents,
    register_handler,
)

__all__ = [
    "HandlerContext", "Services", "IntentRouter",
    "get_handler", "get_registered_intents", "register_handler",
]
