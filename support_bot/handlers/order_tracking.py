"""Handlers that answer questions about an existing order."""

import logging

from support_bot.handlers.common import HandlerContext, Services, resolve_order
from support_bot.tools.errors import EmailError
from support_bot.tools.mailer import EmailKind

logger = logging.getLogger(__name__)


def handle_order_tracking(ctx: HandlerContext, services: Services) -> str:
    check = resolve_order(ctx, services)
    if check.reply is not None:
        return check.reply
    return services.replies.generate(ctx.classification, ctx.message, ctx.history, order=check.order)


def handle_delivery_issue(ctx: HandlerContext, services: Services) -> str:
    """Validate the order, ask the support mailbox for a delivery proof, then reply.

    The mailbox notification is best-effort: a failure is logged and
    does not change the reply.
    """
    check = resolve_order(ctx, services)
    if check.reply is not None:
        return check.reply

    try:
        services.mailer.send(
            to=services.store.support_mailbox,
            kind=EmailKind.DELIVERY_PROOF_REQUEST,
            order_number=check.order.display_number,
            customer_email=ctx.params.email,
        )
    except EmailError as exc:
        logger.error("Delivery proof request for #%s not sent: %s", ctx.params.order_number, exc)

    return services.replies.generate(ctx.classification, ctx.message, ctx.history, order=check.order)


def handle_other_order(ctx: HandlerContext, services: Services) -> str:
    check = resolve_order(ctx, services, missing_message="need_order_and_email_other")
    if check.reply is not None:
        return check.reply
    return services.replies.generate(ctx.classification, ctx.message, ctx.history, order=check.order)
