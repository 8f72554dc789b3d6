"""Classified message, parameter bag and conversation turn models."""

from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator


class Intent(str, Enum):
    """Fixed set of intents the classifier may assign."""
    ORDER_TRACKING = "order_tracking"
    RETURNS_EXCHANGE = "returns_exchange"
    DELIVERY_ISSUE = "delivery_issue"
    CHANGE_DELIVERY = "change_delivery"
    PRODUCT_SIZING = "product_sizing"
    UPDATE_ORDER = "update_order"
    OTHER_ORDER = "other-order"
    RESTOCK = "restock"
    CONVERSATION_END = "conversation_end"
    PROMO_CODE = "promo_code"
    INVOICE_REQUEST = "invoice_request"
    OTHER_GENERAL = "other-general"


class Language(str, Enum):
    ENGLISH = "English"
    SPANISH = "Spanish"


class Role(str, Enum):
    USER = "user"
    ASSISTANT = "assistant"


# Sentinel the classifier writes when a product or size is named but unknown
NOT_FOUND = "not_found"


class ConversationTurn(BaseModel):
    """One prior message of the dialogue, as supplied by the caller."""
    model_config = ConfigDict(frozen=True)

    role: Role
    content: str


_BOOL_FIELDS = ("delivery_address_confirmed", "returns_website_sent")


class ParameterBag(BaseModel):
    """Flat slot map extracted per message.

    Every slot is always present: strings default to "" and flags to
    False, so handlers can test falsiness uniformly. Nulls and numbers
    coming back from the language model are coerced on the way in.
    """
    model_config = ConfigDict(extra="ignore")

    order_number: str = ""
    email: str = ""
    product_name: str = ""
    new_delivery_info: str = ""
    delivery_address_confirmed: bool = False
    tracking_number: str = ""
    update_type: str = ""
    height: str = ""
    fit: str = ""
    product_size: str = ""
    return_type: str = ""
    returns_website_sent: bool = False

    @field_validator("*", mode="before")
    @classmethod
    def _coerce(cls, value: Any, info) -> Any:
        if info.field_name in _BOOL_FIELDS:
            if isinstance(value, str):
                return value.strip().lower() in ("true", "yes", "1")
            return bool(value)
        if value is None:
            return ""
        if isinstance(value, (int, float)) and not isinstance(value, bool):
            return str(value)
        if isinstance(value, bool):
            return ""
        return value

    @field_validator("*")
    @classmethod
    def _strip(cls, value: Any) -> Any:
        return value.strip() if isinstance(value, str) else value


class ClassifiedMessage(BaseModel):
    """Structured result of classifying one inbound message."""
    intent: Intent = Intent.OTHER_GENERAL
    parameters: ParameterBag = Field(default_factory=ParameterBag)
    language: Language = Language.ENGLISH

    @field_validator("language", mode="before")
    @classmethod
    def _coerce_language(cls, value: Any) -> Any:
        if isinstance(value, str) and value.strip().lower() in ("spanish", "español", "espanol", "es"):
            return Language.SPANISH
        return Language.ENGLISH

    @property
    def is_spanish(self) -> bool:
        return self.language == Language.SPANISH


def default_classification() -> ClassifiedMessage:
    """Fallback used whenever classification cannot be trusted."""
    return ClassifiedMessage()
