"""
Message classifier: language model extraction plus deterministic
post-processing over the conversation history.

Pipeline per message:
1. Validate and sanitize the message and every history turn
2. Ask the model for ``{intent, parameters, language}`` as JSON
3. Parse leniently, falling back to the default classification
4. With history: inherit the previous intent, recover tracking numbers,
   flag an already-sent returns link
5. Gate ``delivery_address_confirmed`` on the preceding assistant turn
   having proposed a single address

``classify`` never raises; any failure resolves to the default
classification so the conversation can continue.
"""

import json
import logging
import re
from typing import Any, Callable, Optional
from urllib.parse import urlparse

from pydantic import ValidationError

from support_bot.config import settings
from support_bot.conversation.guardrails import GuardrailPipeline
from support_bot.conversation.parameters import merge_parameters
from support_bot.prompts.messages import MESSAGES
from support_bot.prompts.prompt_templates import build_classification_messages
from support_bot.schemas.classification_schema import (
    ClassifiedMessage,
    ConversationTurn,
    Intent,
    ParameterBag,
    Role,
    default_classification,
)
from support_bot.tools.errors import ToolError
from support_bot.tools.llm import LLMClient
from support_bot.utils import parse_json_object

logger = logging.getLogger(__name__)

MARKDOWN_LINK = re.compile(r"\[[^\]]*\]\((https?://[^)\s]+)\)")
NUMERIC_SEGMENT = re.compile(r"^\d+$")

# Text around the address in the single-address proposal, in every language
ADDRESS_PROPOSAL_FRAMES = tuple(
    tuple(part.strip() for part in text.split("{address}"))
    for text in MESSAGES["confirm_address"]
)


def parse_classification(raw: str) -> ClassifiedMessage:
    """Turn raw model output into a ClassifiedMessage, or the default."""
    data = parse_json_object(raw)
    if data is None:
        logger.warning("Classification output is not JSON")
        return default_classification()
    if not data.get("intent") or not isinstance(data.get("parameters"), dict):
        logger.warning("Classification output missing intent or parameters")
        return default_classification()

    try:
        intent = Intent(str(data["intent"]).strip())
    except ValueError:
        logger.info("Unknown intent %r coerced to other-general", data["intent"])
        intent = Intent.OTHER_GENERAL

    try:
        return ClassifiedMessage(
            intent=intent,
            parameters=ParameterBag(**data["parameters"]),
            language=data.get("language") or "English",
        )
    except (ValidationError, TypeError) as exc:
        logger.warning("Classification output failed validation: %s", exc)
        return default_classification()


def _as_classification_blob(turn: ConversationTurn) -> Optional[dict[str, Any]]:
    """Return the parsed previous classification if ``turn`` is one."""
    if turn.role != Role.ASSISTANT or "intent" not in turn.content:
        return None
    try:
        data = json.loads(turn.content)
    except ValueError:
        return None
    return data if isinstance(data, dict) and "intent" in data else None


def inherit_previous_intent(
    classification: ClassifiedMessage, history: list[ConversationTurn]
) -> ClassifiedMessage:
    """Adopt the most recent non-catch-all classification found in history."""
    for turn in reversed(history):
        previous = _as_classification_blob(turn)
        if previous is None:
            continue
        try:
            intent = Intent(previous["intent"])
        except ValueError:
            continue
        if intent == Intent.OTHER_GENERAL:
            continue
        try:
            inherited = ParameterBag(**(previous.get("parameters") or {}))
        except (ValidationError, TypeError):
            continue

        logger.debug("Inheriting intent '%s' from history", intent.value)
        return classification.model_copy(update={
            "intent": intent,
            "parameters": merge_parameters(inherited, classification.parameters),
        })
    return classification


def recover_tracking_number(history: list[ConversationTurn]) -> str:
    """First numeric path segment of a markdown link, scanning forward."""
    for turn in history:
        for url in MARKDOWN_LINK.findall(turn.content):
            for segment in urlparse(url).path.split("/"):
                if NUMERIC_SEGMENT.match(segment):
                    return segment
    return ""


def returns_link_already_sent(history: list[ConversationTurn]) -> bool:
    portal = settings.store.returns_portal_url
    return any(portal in turn.content for turn in history)


def last_assistant_reply(history: list[ConversationTurn]) -> Optional[ConversationTurn]:
    """Latest assistant turn that is a user-facing reply, not a classification blob."""
    for turn in reversed(history):
        if turn.role == Role.ASSISTANT and _as_classification_blob(turn) is None:
            return turn
    return None


def proposed_address(history: list[ConversationTurn]) -> Optional[str]:
    """Address offered for confirmation by the latest reply, if it was a proposal."""
    reply = last_assistant_reply(history)
    if reply is None:
        return None
    text = reply.content.strip()
    for prefix, suffix in ADDRESS_PROPOSAL_FRAMES:
        if len(text) < len(prefix) + len(suffix):
            continue
        if text.startswith(prefix) and text.endswith(suffix):
            address = text[len(prefix):len(text) - len(suffix)].strip()
            if address:
                return address
    return None


def follows_address_proposal(history: list[ConversationTurn]) -> bool:
    return proposed_address(history) is not None


class Classifier:
    """Maps a message plus history to a ClassifiedMessage."""

    def __init__(
        self,
        llm: LLMClient,
        guardrails: Optional[GuardrailPipeline] = None,
        product_titles: Optional[Callable[[], list[str]]] = None,
    ) -> None:
        self.llm = llm
        self.guardrails = guardrails or GuardrailPipeline()
        self._product_titles = product_titles

    def _load_product_titles(self) -> list[str]:
        if self._product_titles is None:
            return []
        try:
            return self._product_titles()
        except ToolError as exc:
            logger.warning("Active product titles unavailable: %s", exc)
            return []

    def classify(self, message: str, history: Optional[list[ConversationTurn]] = None) -> ClassifiedMessage:
        if not isinstance(message, str) or not message.strip():
            logger.warning("Empty or invalid message, using default classification")
            return default_classification()

        history = history or []
        clean_message = self.guardrails.sanitize_message(message)
        clean_history = self.guardrails.sanitize_history(history)
        flagged = [result.violation_type for result in self.guardrails.check_user_input(clean_message)]

        prompt = build_classification_messages(clean_message, clean_history, self._load_product_titles())
        try:
            raw = self.llm.complete(prompt, temperature=settings.model.classification_temperature)
        except ToolError as exc:
            logger.error("Classification call failed: %s", exc)
            return default_classification()

        classification = parse_classification(raw)
        if clean_history:
            classification = self._enrich(classification, clean_history)
        classification = self._gate_confirmation(classification, clean_history)

        logger.info(
            "Classified intent=%s language=%s flagged=%s",
            classification.intent.value, classification.language.value, flagged or "none",
        )
        return classification

    def _enrich(self, classification: ClassifiedMessage, history: list[ConversationTurn]) -> ClassifiedMessage:
        if classification.intent == Intent.OTHER_GENERAL:
            classification = inherit_previous_intent(classification, history)

        updates: dict[str, Any] = {}
        if classification.intent == Intent.DELIVERY_ISSUE:
            tracking = recover_tracking_number(history)
            if tracking:
                updates["tracking_number"] = tracking
        if classification.intent == Intent.RETURNS_EXCHANGE:
            updates["returns_website_sent"] = returns_link_already_sent(history)

        if updates:
            parameters = classification.parameters.model_copy(update=updates)
            classification = classification.model_copy(update={"parameters": parameters})
        return classification

    def _gate_confirmation(
        self, classification: ClassifiedMessage, history: list[ConversationTurn]
    ) -> ClassifiedMessage:
        if not classification.parameters.delivery_address_confirmed:
            return classification
        if follows_address_proposal(history):
            return classification
        logger.info("Address confirmation ignored: previous reply did not propose an address")
        parameters = classification.parameters.model_copy(update={"delivery_address_confirmed": False})
        return classification.model_copy(update={"parameters": parameters})
