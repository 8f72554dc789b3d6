"""Handlers that need no order lookup: returns, closing and small talk."""

from support_bot.handlers.common import HandlerContext, Services
from support_bot.prompts.messages import localize


def handle_returns_exchange(ctx: HandlerContext, services: Services) -> str:
    """Send the returns portal link once; afterwards let the model answer."""
    if not ctx.params.returns_website_sent:
        return localize("returns_link", ctx.language)
    return services.replies.generate(ctx.classification, ctx.message, ctx.history)


def handle_conversation_end(ctx: HandlerContext, services: Services) -> str:
    return localize("closing", ctx.language)


def handle_general(ctx: HandlerContext, services: Services) -> str:
    return services.replies.generate(ctx.classification, ctx.message, ctx.history)
