"""Shared test fixtures and in-process fakes for every external adapter."""

from typing import Any, Optional, Union

import pytest

from support_bot.config import StoreConfig, TelephonyConfig
from support_bot.conversation.call_monitor import CallStatusPoller
from support_bot.conversation.guardrails import GuardrailPipeline
from support_bot.conversation.responder import ReplyGenerator
from support_bot.handlers.common import HandlerContext, Services
from support_bot.schemas.call_schema import CallStatus
from support_bot.schemas.classification_schema import (
    ClassifiedMessage,
    ConversationTurn,
    Intent,
    Language,
    ParameterBag,
    Role,
)
from support_bot.schemas.commerce_schema import (
    AddressValidationResult,
    ContactDetails,
    CustomerCreateResult,
    DiscountCodeResult,
    Fulfillment,
    Order,
    Product,
    ShippingUpdateResult,
)
from support_bot.tools.errors import CommerceError


# --------------------------------------------------------------------------- #
# Fakes
# --------------------------------------------------------------------------- #

class FakeLLM:
    """Returns scripted completions in order; exceptions in the script are raised."""

    def __init__(self, responses: Optional[list[Union[str, Exception]]] = None, default: str = "Sure! 😊"):
        self.responses = list(responses or [])
        self.default = default
        self.calls: list[dict[str, Any]] = []

    def complete(self, messages: list[dict[str, str]], temperature: float) -> str:
        self.calls.append({"messages": messages, "temperature": temperature})
        if not self.responses:
            return self.default
        response = self.responses.pop(0)
        if isinstance(response, Exception):
            raise response
        return response


class FakeCommerce:
    """In-memory commerce backend that records every mutation."""

    def __init__(
        self,
        orders: Optional[list[Order]] = None,
        products: Optional[list[Product]] = None,
        fail_lookups: bool = False,
    ):
        self.orders = {o.display_number: o for o in orders or []}
        self.products = {p.title.lower(): p for p in products or []}
        self.fail_lookups = fail_lookups
        self.order_lookups: list[str] = []
        self.product_lookups: list[str] = []
        self.address_updates: list[tuple[str, str, ContactDetails]] = []
        self.customers_created: list[tuple[str, str]] = []
        self.discounts_created = 0
        self.update_result = ShippingUpdateResult(success=True)
        self.customer_result = CustomerCreateResult(success=True)
        self.discount_result = DiscountCodeResult(success=True, code="SAVEAB12C", ends_at="2026-01-01T00:15:00+00:00")
        self.titles = [p.title for p in products or []]

    def find_order(self, order_number: str) -> Optional[Order]:
        self.order_lookups.append(order_number)
        if self.fail_lookups:
            raise CommerceError("backend down")
        return self.orders.get(order_number.lstrip("#"))

    def find_product(self, name: str) -> Optional[Product]:
        self.product_lookups.append(name)
        if self.fail_lookups:
            raise CommerceError("backend down")
        return self.products.get(name.lower())

    def list_active_product_titles(self) -> list[str]:
        return list(self.titles)

    def update_shipping_address(self, order_ref: str, formatted_address: str, contact: ContactDetails):
        self.address_updates.append((order_ref, formatted_address, contact))
        if isinstance(self.update_result, Exception):
            raise self.update_result
        return self.update_result

    def create_customer(self, email: str, note: str = "") -> CustomerCreateResult:
        self.customers_created.append((email, note))
        if isinstance(self.customer_result, Exception):
            raise self.customer_result
        return self.customer_result

    def create_discount_code(self) -> DiscountCodeResult:
        self.discounts_created += 1
        if isinstance(self.discount_result, Exception):
            raise self.discount_result
        return self.discount_result


class FakeGeocoder:
    def __init__(self, candidates: Optional[list[str]] = None, error: Optional[Exception] = None):
        self.candidates = candidates or []
        self.error = error
        self.calls: list[str] = []

    def validate_address(self, free_text: str) -> AddressValidationResult:
        self.calls.append(free_text)
        if self.error is not None:
            raise self.error
        return AddressValidationResult(
            formatted_address=self.candidates[0] if self.candidates else "",
            multiple_candidates=len(self.candidates) > 1,
            candidates=list(self.candidates),
        )


class FakeTelephony:
    """Call bridge returning scripted statuses; the last one repeats."""

    def __init__(
        self,
        statuses: Optional[list[Union[CallStatus, Exception]]] = None,
        place_error: Optional[Exception] = None,
    ):
        self.statuses = list(statuses or [CallStatus.COMPLETED])
        self.place_error = place_error
        self.placed: list[dict[str, str]] = []
        self.status_checks = 0

    def place_call(self, to_number: str, script_prompt: str, opening_line: str) -> str:
        if self.place_error is not None:
            raise self.place_error
        self.placed.append({"to": to_number, "prompt": script_prompt, "opening": opening_line})
        return f"CA{len(self.placed):04d}"

    def get_call_status(self, call_sid: str) -> CallStatus:
        self.status_checks += 1
        status = self.statuses.pop(0) if len(self.statuses) > 1 else self.statuses[0]
        if isinstance(status, Exception):
            raise status
        return status


class FakeMailer:
    def __init__(self, error: Optional[Exception] = None):
        self.error = error
        self.sent: list[dict[str, Any]] = []

    def send(self, to, kind, order_number, customer_email="", attachment=None) -> None:
        if self.error is not None:
            raise self.error
        self.sent.append({
            "to": to,
            "kind": kind,
            "order_number": order_number,
            "customer_email": customer_email,
            "attachment": attachment,
        })


class FakeClock:
    """Monotonic clock whose ``sleep`` advances time instantly."""

    def __init__(self, start: float = 1000.0):
        self.now = start
        self.sleeps: list[float] = []

    def __call__(self) -> float:
        return self.now

    def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now += seconds


# --------------------------------------------------------------------------- #
# Builders
# --------------------------------------------------------------------------- #

def make_order(
    number: str = "1234",
    email: str = "a@b.com",
    shipped: bool = False,
    total_price: str = "121.00",
    **overrides: Any,
) -> Order:
    data: dict[str, Any] = {
        "id": 5550001,
        "name": f"#{number}",
        "order_number": int(number),
        "admin_graphql_api_id": f"gid://shopify/Order/{number}",
        "contact_email": email,
        "email": email,
        "created_at": "2025-03-15T10:00:00+01:00",
        "total_price": total_price,
        "shipping_address": {
            "name": "Laura Gómez",
            "first_name": "Laura",
            "last_name": "Gómez",
            "address1": "Calle Mayor 1",
            "city": "Madrid",
            "zip": "28013",
            "country": "Spain",
            "phone": "+34 600 11 22 33",
        },
        "customer": {"first_name": "Laura", "last_name": "Gómez", "email": email},
        "line_items": [{"title": "Without Shame Crewneck", "quantity": 1, "price": total_price, "variant_title": "M"}],
        "fulfillments": [],
    }
    if shipped:
        data["fulfillments"] = [Fulfillment(tracking_number="0082800082909720118533", status="success").model_dump()]
    data.update(overrides)
    return Order.model_validate(data)


def make_product(
    title: str = "Without Shame Crewneck",
    handle: str = "without-shame-crewneck",
    inventory: Optional[dict[str, int]] = None,
) -> Product:
    inventory = inventory if inventory is not None else {"S": 0, "M": 3, "L": 0}
    variants = [
        {"id": 4100 + i, "title": size, "inventory_quantity": qty}
        for i, (size, qty) in enumerate(inventory.items())
    ]
    return Product.model_validate({"id": 777, "title": title, "handle": handle, "variants": variants})


def make_classification(
    intent: Intent = Intent.OTHER_GENERAL,
    language: Language = Language.ENGLISH,
    **params: Any,
) -> ClassifiedMessage:
    return ClassifiedMessage(intent=intent, parameters=ParameterBag(**params), language=language)


def make_context(
    intent: Intent,
    message: str = "hello",
    history: Optional[list[ConversationTurn]] = None,
    language: Language = Language.ENGLISH,
    **params: Any,
) -> HandlerContext:
    return HandlerContext(
        classification=make_classification(intent, language, **params),
        message=message,
        history=history or [],
    )


def user(text: str) -> ConversationTurn:
    return ConversationTurn(role=Role.USER, content=text)


def assistant(text: str) -> ConversationTurn:
    return ConversationTurn(role=Role.ASSISTANT, content=text)


class ServiceBundle:
    """Fakes plus the ``Services`` object built from them."""

    def __init__(
        self,
        llm: Optional[FakeLLM] = None,
        commerce: Optional[FakeCommerce] = None,
        geocoder: Optional[FakeGeocoder] = None,
        telephony: Optional[FakeTelephony] = None,
        mailer: Optional[FakeMailer] = None,
        telephony_config: Optional[TelephonyConfig] = None,
    ):
        self.llm = llm or FakeLLM()
        self.commerce = commerce or FakeCommerce()
        self.geocoder = geocoder or FakeGeocoder()
        self.telephony = telephony or FakeTelephony()
        self.mailer = mailer or FakeMailer()
        self.clock = FakeClock()
        self.poller = CallStatusPoller(
            self.telephony,
            telephony_config or TelephonyConfig(),
            clock=self.clock,
            sleep=self.clock.sleep,
        )
        self.services = Services(
            replies=ReplyGenerator(self.llm, GuardrailPipeline()),
            commerce=self.commerce,
            geocoder=self.geocoder,
            telephony=self.telephony,
            call_poller=self.poller,
            mailer=self.mailer,
            store=StoreConfig(),
        )


# --------------------------------------------------------------------------- #
# Fixtures
# --------------------------------------------------------------------------- #

@pytest.fixture
def fake_llm():
    return FakeLLM()


@pytest.fixture
def guardrail_pipeline():
    return GuardrailPipeline()


@pytest.fixture
def fake_clock():
    return FakeClock()


@pytest.fixture
def bundle():
    return ServiceBundle(commerce=FakeCommerce(orders=[make_order()], products=[make_product()]))
