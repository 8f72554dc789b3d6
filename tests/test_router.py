"""Tests for the intent handler registry and router."""

from support_bot.handlers import IntentRouter, get_handler, get_registered_intents, register_handler
from support_bot.handlers.general import handle_general, handle_returns_exchange
from support_bot.prompts.messages import localize
from support_bot.schemas.classification_schema import Intent, Language
from tests.conftest import make_classification, make_context


class TestRegistry:
    def test_every_specific_intent_has_a_handler(self):
        registered = set(get_registered_intents())
        assert registered == set(Intent) - {Intent.OTHER_GENERAL}

    def test_other_general_has_no_dedicated_handler(self):
        assert get_handler(Intent.OTHER_GENERAL) is None

    def test_register_replaces_handler(self):
        original = get_handler(Intent.RETURNS_EXCHANGE)
        try:
            register_handler(Intent.RETURNS_EXCHANGE, lambda ctx, services: "custom")
            assert get_handler(Intent.RETURNS_EXCHANGE)(None, None) == "custom"
        finally:
            register_handler(Intent.RETURNS_EXCHANGE, original)
        assert get_handler(Intent.RETURNS_EXCHANGE) is handle_returns_exchange


class TestRouter:
    def test_general_falls_back_to_reply_generation(self, bundle):
        router = IntentRouter(bundle.services)
        reply = router.route(make_classification(Intent.OTHER_GENERAL), "do you ship to Mexico?", [])
        assert reply == bundle.llm.default
        assert len(bundle.llm.calls) == 1

    def test_conversation_end_is_canned(self, bundle):
        router = IntentRouter(bundle.services)
        reply = router.route(make_classification(Intent.CONVERSATION_END, Language.SPANISH), "gracias", [])
        assert reply == localize("closing", Language.SPANISH)
        assert bundle.llm.calls == []

    def test_returns_link_sent_once(self, bundle):
        router = IntentRouter(bundle.services)
        first = router.route(make_classification(Intent.RETURNS_EXCHANGE), "I want to return", [])
        assert first == localize("returns_link", Language.ENGLISH)

        second = router.route(
            make_classification(Intent.RETURNS_EXCHANGE, returns_website_sent=True), "and the refund?", [],
        )
        assert second == bundle.llm.default

    def test_dispatch_exposes_validated_order(self, bundle):
        router = IntentRouter(bundle.services)
        ctx = make_context(Intent.ORDER_TRACKING, order_number="1234", email="a@b.com")
        router.dispatch(ctx)
        assert ctx.validated_order is not None
        assert ctx.validated_order.display_number == "1234"

    def test_handle_general_uses_message(self, bundle):
        ctx = make_context(Intent.OTHER_GENERAL, "what materials do you use?")
        handle_general(ctx, bundle.services)
        assert bundle.llm.calls[0]["messages"][-1]["content"] == "what materials do you use?"
