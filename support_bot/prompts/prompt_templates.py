"""Dynamic prompt construction for classification and reply generation."""

import json
from typing import Any, Optional

from support_bot.prompts.system_prompts import (
    CARRIER_CALL_PROMPT,
    CLASSIFICATION_PROMPT,
    DEFAULT_INSTRUCTIONS,
    OTHER_ORDER_INSTRUCTIONS,
    REPLY_GUIDELINES,
    REPLY_PROMPT,
)
from support_bot.schemas.classification_schema import (
    ConversationTurn,
    Intent,
    Language,
    ParameterBag,
)
from support_bot.schemas.commerce_schema import Order


def build_classification_messages(
    message: str,
    history: list[ConversationTurn],
    product_titles: list[str],
) -> list[dict[str, str]]:
    """System prompt, then prior turns in order, then the new message."""
    titles = ", ".join(f'"{t}"' for t in product_titles) if product_titles else "(unavailable)"
    messages = [{"role": "system", "content": CLASSIFICATION_PROMPT.replace("{product_titles}", titles)}]
    messages.extend({"role": turn.role.value, "content": turn.content} for turn in history)
    messages.append({"role": "user", "content": message})
    return messages


def build_reply_messages(
    intent: Intent,
    parameters: ParameterBag,
    user_message: str,
    history: list[ConversationTurn],
    language: Language,
    order: Optional[Order] = None,
    size_chart: Optional[dict[str, Any]] = None,
) -> list[dict[str, str]]:
    """Build the reply-generation request around one user-facing message."""
    parts = [
        REPLY_PROMPT,
        f'Based on the classified intent "{intent.value}" and the following data:',
        json.dumps(parameters.model_dump(), indent=2, ensure_ascii=False),
    ]
    if size_chart:
        parts.append(f"Size Chart Data:\n{json.dumps(size_chart, ensure_ascii=False)}")

    parts.append(f"Additional Context:\n{user_message}")
    if history:
        parts.append("\n".join(turn.content for turn in history))

    if order is not None:
        tracking_status = (
            "Tracking available in fulfillments array"
            if order.is_shipped
            else "Order is still being prepared"
        )
        order_json = order.model_dump_json(indent=2, exclude_none=True)
        parts.append(f"Order Details:\n{order_json}\n\nTracking Status: {tracking_status}")

    parts.append(OTHER_ORDER_INSTRUCTIONS if intent == Intent.OTHER_ORDER else DEFAULT_INSTRUCTIONS)
    parts.append(f"{REPLY_GUIDELINES}\n- Respond ONLY in {language.value}")

    return [
        {"role": "system", "content": "\n\n".join(parts)},
        {"role": "user", "content": user_message},
    ]


def build_address_options(candidates: list[str]) -> str:
    """Enumerate candidates with 1-based indices, one per line."""
    return "\n".join(f"{i}. {address}" for i, address in enumerate(candidates, start=1))


def build_carrier_call_prompt(persona: str, tracking_number: str, new_address: str) -> str:
    return CARRIER_CALL_PROMPT.format(
        persona=persona,
        tracking_number=tracking_number or "desconocido",
        new_address=new_address,
    )
