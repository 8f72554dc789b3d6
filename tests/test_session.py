"""Tests for per-message orchestration and ticket bookkeeping."""

import json

from support_bot.conversation.classifier import Classifier
from support_bot.conversation.session import (
    BOT_SENDER,
    USER_SENDER,
    ConversationSession,
    propose_ticket_update,
)
from support_bot.handlers import IntentRouter
from support_bot.prompts.messages import localize
from support_bot.schemas.classification_schema import Intent, Language
from support_bot.schemas.ticket_schema import Ticket
from support_bot.tools.tickets import InMemoryTicketStore
from tests.conftest import FakeCommerce, FakeLLM, ServiceBundle, assistant, make_order, user


def blob(intent: str, **params) -> str:
    return json.dumps({"intent": intent, "parameters": params, "language": "English"})


def make_session(responses, store=None, orders=None):
    llm = FakeLLM(responses)
    bundle = ServiceBundle(llm=llm, commerce=FakeCommerce(orders=orders if orders is not None else [make_order()]))
    classifier = Classifier(llm, product_titles=bundle.commerce.list_active_product_titles)
    return ConversationSession(classifier, IntentRouter(bundle.services), store), bundle


class TestProposeTicketUpdate:
    def test_links_unlinked_ticket(self):
        update = propose_ticket_update(Ticket(id="TK-1"), make_order(), "a@b.com")
        assert update.order_number == "1234"
        assert update.email == "a@b.com"
        assert update.name == "Laura Gómez"

    def test_no_update_when_already_linked(self):
        ticket = Ticket(id="TK-1", order_number="1234", email="A@B.com")
        assert propose_ticket_update(ticket, make_order(), "a@b.com") is None

    def test_no_update_without_ticket_or_order(self):
        assert propose_ticket_update(None, make_order(), "a@b.com") is None
        assert propose_ticket_update(Ticket(id="TK-1"), None, "a@b.com") is None

    def test_name_falls_back_to_shipping_name(self):
        order = make_order(customer=None)
        assert propose_ticket_update(Ticket(id="TK-1"), order, "a@b.com").name == "Laura Gómez"


class TestConversationSession:
    def test_tracking_message_updates_ticket(self):
        store = InMemoryTicketStore()
        ticket = store.create_ticket()
        session, bundle = make_session(
            [blob("order_tracking", order_number="#1234", email="a@b.com"), "Your order is on its way 🚚"],
            store=store,
        )

        result = session.handle("where is my order #1234? a@b.com", [], ticket)

        assert result.reply == "Your order is on its way 🚚"
        assert result.classification.intent == Intent.ORDER_TRACKING
        assert result.updated_ticket.order_number == "1234"
        stored = store.get_ticket(ticket.id)
        assert stored.order_number == "1234"
        assert stored.email == "a@b.com"
        messages = store.get_messages(ticket.id)
        assert [(m.sender, m.text) for m in messages] == [
            (USER_SENDER, "where is my order #1234? a@b.com"),
            (BOT_SENDER, "Your order is on its way 🚚"),
        ]

    def test_scenario_a_no_ticket_update(self):
        store = InMemoryTicketStore()
        ticket = store.create_ticket()
        session, bundle = make_session(
            [blob("order_tracking", order_number="1234", email="a@b.com")], store=store, orders=[],
        )
        result = session.handle("Where's my order #1234, email a@b.com", [], ticket)
        assert result.reply == localize("invalid_order_number", Language.ENGLISH)
        assert result.updated_ticket is None
        assert store.get_ticket(ticket.id).order_number is None
        assert len(bundle.llm.calls) == 1

    def test_admin_takeover_skips_automation(self):
        store = InMemoryTicketStore()
        ticket = store.create_ticket()
        store.set_admin(ticket.id, True)
        session, bundle = make_session([], store=store)

        # the caller's copy is stale; the stored flag wins
        result = session.handle("hello?", [], ticket)

        assert result.reply == ""
        assert result.automated is False
        assert bundle.llm.calls == []
        assert [m.sender for m in store.get_messages(ticket.id)] == [USER_SENDER]

    def test_without_ticket(self):
        session, _ = make_session([blob("conversation_end")])
        result = session.handle("thanks, bye")
        assert result.reply == localize("closing", Language.ENGLISH)
        assert result.updated_ticket is None
        assert result.automated is True

    def test_empty_message_answers_generally(self):
        session, bundle = make_session([])
        result = session.handle("   ")
        assert result.classification.intent == Intent.OTHER_GENERAL
        assert result.reply == bundle.llm.default


class TestAddressConfirmationAcrossTurns:
    """The confirming turn runs through the classifier and the router together."""

    PROPOSED = "Calle Alcalá 10, 28014 Madrid, Spain"
    OTHER = "Calle Otra 5, 08001 Barcelona, Spain"

    def _history(self):
        return [
            user("change my address to calle alcala 10 madrid, order 1234 a@b.com"),
            assistant(blob("change_delivery", order_number="1234", email="a@b.com",
                           new_delivery_info="calle alcala 10 madrid")),
            assistant(localize("confirm_address", Language.ENGLISH, address=self.PROPOSED)),
        ]

    def test_yes_with_new_address_is_not_applied(self):
        session, bundle = make_session([
            blob("change_delivery", order_number="1234", email="a@b.com",
                 new_delivery_info="calle otra 5 barcelona", delivery_address_confirmed=True),
        ])
        bundle.geocoder.candidates = [self.OTHER]

        result = session.handle("yes, but make it calle otra 5 barcelona", self._history())

        assert result.classification.parameters.delivery_address_confirmed is True
        assert result.reply == localize("confirm_address", Language.ENGLISH, address=self.OTHER)
        assert bundle.commerce.address_updates == []

    def test_plain_yes_applies_proposed_address(self):
        session, bundle = make_session([
            blob("change_delivery", order_number="1234", email="a@b.com",
                 new_delivery_info="calle alcala 10 madrid", delivery_address_confirmed=True),
        ])
        bundle.geocoder.candidates = [self.PROPOSED]

        result = session.handle("yes", self._history())

        assert result.reply == localize("address_updated", Language.ENGLISH, address=self.PROPOSED)
        assert [update[1] for update in bundle.commerce.address_updates] == [self.PROPOSED]
