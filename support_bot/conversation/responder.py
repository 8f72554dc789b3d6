"""
Final reply generation.

Most handlers end here: the classified intent, parameters, optional
order and size chart are packed into one prompt and the model writes
the user-facing sentence. Failures resolve to a localized apology.
"""

import logging
from typing import Any, Optional

from support_bot.config import settings
from support_bot.conversation.guardrails import GuardrailPipeline
from support_bot.prompts.messages import localize
from support_bot.prompts.prompt_templates import build_reply_messages
from support_bot.schemas.classification_schema import ClassifiedMessage, ConversationTurn, Intent
from support_bot.schemas.commerce_schema import Order
from support_bot.tools.errors import ToolError
from support_bot.tools.llm import LLMClient

logger = logging.getLogger(__name__)


class ReplyGenerator:
    """Writes the user-facing reply for a classified message through the language model."""

    def __init__(self, llm: LLMClient, guardrails: Optional[GuardrailPipeline] = None) -> None:
        self.llm = llm
        self.guardrails = guardrails or GuardrailPipeline()

    def generate(
        self,
        classification: ClassifiedMessage,
        user_message: str,
        history: list[ConversationTurn],
        order: Optional[Order] = None,
        size_chart: Optional[dict[str, Any]] = None,
    ) -> str:
        """Write the reply for ``classification``; never raises."""
        if classification.intent == Intent.CONVERSATION_END:
            return localize("closing", classification.language)

        messages = build_reply_messages(
            intent=classification.intent,
            parameters=classification.parameters,
            user_message=self.guardrails.sanitize_message(user_message),
            history=self.guardrails.sanitize_history(history),
            language=classification.language,
            order=order,
            size_chart=size_chart,
        )
        try:
            reply = self.llm.complete(messages, temperature=settings.model.reply_temperature)
        except ToolError as exc:
            logger.error("Reply generation failed for intent %s: %s", classification.intent.value, exc)
            return localize("reply_failed", classification.language)

        reply = reply.strip()
        if not reply:
            logger.warning("Empty reply generated for intent %s", classification.intent.value)
            return localize("reply_failed", classification.language)
        return reply
