"""Promo-code handler: trade an email address for a short-lived discount."""

import logging

from support_bot.handlers.common import HandlerContext, Services
from support_bot.prompts.messages import localize
from support_bot.tools.errors import CommerceError

logger = logging.getLogger(__name__)


def handle_promo_code(ctx: HandlerContext, services: Services) -> str:
    email = ctx.params.email
    if not email:
        return localize("promo_offer", ctx.language)

    try:
        customer = services.commerce.create_customer(email)
        if customer.duplicate:
            return localize("email_already_registered", ctx.language)
        if not customer.success:
            logger.warning("Customer registration for promo rejected: %s", customer.message)
            return localize("promo_failed", ctx.language)

        discount = services.commerce.create_discount_code()
    except CommerceError as exc:
        logger.error("Promo code flow failed: %s", exc)
        return localize("promo_failed", ctx.language)

    if not discount.success or not discount.code:
        logger.warning("Discount code creation rejected: %s", discount.message)
        return localize("promo_failed", ctx.language)

    logger.info("Discount code issued, valid until %s", discount.ends_at)
    return localize("promo_code", ctx.language, code=discount.code)
