"""
Delivery address change and order update handlers.

The change flow is driven by AddressChangeStateMachine, one machine per
turn. Re-asking for an address or for confirmation is always safe; the
commerce mutation runs at most once, and only after an explicit
confirmation of the exact address proposed in the previous reply (and,
for shipped orders, after the carrier call step).
"""

import logging

from support_bot.conversation.classifier import proposed_address
from support_bot.conversation.state_machine import (
    AddressChangeStateMachine,
    AddressChangeTrigger as Trigger,
)
from support_bot.handlers.common import HandlerContext, Services, resolve_order
from support_bot.prompts.messages import localize
from support_bot.prompts.prompt_templates import build_address_options, build_carrier_call_prompt
from support_bot.schemas.commerce_schema import ContactDetails, Order
from support_bot.tools.errors import CommerceError, GeocodingError, TelephonyError
from support_bot.utils import normalize_phone

logger = logging.getLogger(__name__)

UPDATE_TYPE_SHIPPING = "shipping_address"
UPDATE_TYPE_PRODUCT = "product"


def _contact_details(order: Order) -> ContactDetails:
    address = order.shipping_address
    if address is None:
        return ContactDetails()
    return ContactDetails(
        first_name=address.first_name or "",
        last_name=address.last_name or "",
        phone=normalize_phone(address.phone or ""),
    )


def _call_carrier(
    ctx: HandlerContext, services: Services, sm: AddressChangeStateMachine, order: Order, address: str
) -> bool:
    """Place the carrier call and wait for it. Returns False if placing failed."""
    telephony_config = services.call_poller.config
    persona = telephony_config.caller_persona
    try:
        call_sid = services.telephony.place_call(
            to_number=telephony_config.carrier_phone_number,
            script_prompt=build_carrier_call_prompt(persona, order.tracking_number, address),
            opening_line=localize("carrier_opening_line", ctx.language, persona=persona),
        )
    except TelephonyError as exc:
        logger.error("Carrier call for order %s not placed: %s", order.display_number, exc)
        sm.transition(Trigger.CARRIER_CALL_FAILED)
        return False

    result = services.call_poller.wait(call_sid)
    logger.info(
        "Carrier call %s for order %s finished: %s",
        call_sid, order.display_number, result.outcome.value,
    )
    sm.transition(Trigger.CARRIER_CALL_FINISHED)
    return True


def run_address_change(ctx: HandlerContext, services: Services) -> tuple[str, AddressChangeStateMachine]:
    """Advance the address flow as far as this turn allows.

    Returns the reply and the machine, whose trace records how far the
    turn got.
    """
    sm = AddressChangeStateMachine()
    check = resolve_order(ctx, services)
    if check.reply is not None:
        return check.reply, sm

    order = check.order
    sm.transition(Trigger.ORDER_FOUND)
    sm.transition(Trigger.HAS_FULFILLMENT if order.is_shipped else Trigger.NO_FULFILLMENT)

    params = ctx.params
    if not params.new_delivery_info:
        sm.transition(Trigger.ADDRESS_MISSING)
        return localize("ask_new_address", ctx.language), sm

    sm.transition(Trigger.NEW_ADDRESS_RECEIVED)
    try:
        validation = services.geocoder.validate_address(params.new_delivery_info)
    except GeocodingError as exc:
        logger.error("Address check failed for order %s: %s", order.display_number, exc)
        sm.transition(Trigger.ADDRESS_CHECK_FAILED)
        return localize("address_check_failed", ctx.language), sm

    if not validation.is_valid:
        sm.transition(Trigger.ADDRESS_INVALID)
        return localize("invalid_address", ctx.language), sm

    sm.transition(Trigger.ADDRESS_VALIDATED)
    if validation.multiple_candidates:
        options = build_address_options(validation.candidates)
        return localize("choose_address", ctx.language, options=options), sm

    address = validation.formatted_address
    if not params.delivery_address_confirmed:
        return localize("confirm_address", ctx.language, address=address), sm
    if address != proposed_address(ctx.history):
        logger.info("Order %s: confirmed address differs from the proposed one, asking again", order.display_number)
        return localize("confirm_address", ctx.language, address=address), sm

    sm.transition(Trigger.USER_CONFIRMED)
    if sm.shipped and not _call_carrier(ctx, services, sm, order, address):
        return localize("call_failed", ctx.language), sm

    try:
        result = services.commerce.update_shipping_address(
            order.admin_graphql_api_id, address, _contact_details(order)
        )
        updated = result.success
    except CommerceError as exc:
        logger.error("Shipping address update failed for order %s: %s", order.display_number, exc)
        updated = False

    if not updated:
        sm.transition(Trigger.UPDATE_FAILED)
        return localize("address_update_failed", ctx.language), sm

    sm.transition(Trigger.ADDRESS_APPLIED)
    logger.info("Order %s shipping address changed (trace: %s)", order.display_number, sm.get_state_trace())
    return localize("address_updated", ctx.language, address=address), sm


def handle_change_delivery(ctx: HandlerContext, services: Services) -> str:
    reply, sm = run_address_change(ctx, services)
    if not sm.is_settled():
        logger.warning("Address flow ended unsettled in %s", sm.current_state.value)
    return reply


def handle_update_order(ctx: HandlerContext, services: Services) -> str:
    """Ask what to update, then route to the address flow or the returns portal."""
    update_type = ctx.params.update_type
    if update_type == UPDATE_TYPE_SHIPPING:
        return handle_change_delivery(ctx, services)

    check = resolve_order(ctx, services)
    if check.reply is not None:
        return check.reply
    if update_type == UPDATE_TYPE_PRODUCT:
        return localize("product_update_redirect", ctx.language)

    if not update_type:
        prompt = localize("ask_update_type", ctx.language)
        return services.replies.generate(ctx.classification, prompt, ctx.history, order=check.order)
    return services.replies.generate(ctx.classification, ctx.message, ctx.history, order=check.order)
