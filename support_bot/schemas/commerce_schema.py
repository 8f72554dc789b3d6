"""Commerce backend data models: orders, products and mutation results.

Only the fields the handlers read are modelled; unknown keys in the
Shopify payloads are ignored.
"""

from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class _ShopifyModel(BaseModel):
    model_config = ConfigDict(extra="ignore")


class ShippingAddress(_ShopifyModel):
    name: Optional[str] = None
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    address1: Optional[str] = None
    address2: Optional[str] = None
    city: Optional[str] = None
    zip: Optional[str] = None
    province: Optional[str] = None
    country: Optional[str] = None
    country_code: Optional[str] = None
    phone: Optional[str] = None


class BillingAddress(ShippingAddress):
    pass


class CustomerData(_ShopifyModel):
    id: Optional[int] = None
    email: Optional[str] = None
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    phone: Optional[str] = None

    @property
    def full_name(self) -> str:
        return " ".join(p for p in (self.first_name, self.last_name) if p).strip()


class Fulfillment(_ShopifyModel):
    id: Optional[int] = None
    status: Optional[str] = None
    shipment_status: Optional[str] = None
    tracking_company: Optional[str] = None
    tracking_number: Optional[str] = None
    tracking_url: Optional[str] = None


class LineItem(_ShopifyModel):
    title: str = ""
    quantity: int = 1
    price: str = "0.00"
    variant_title: Optional[str] = None


class Order(_ShopifyModel):
    """Order as returned by the Admin REST API."""
    id: Optional[int] = None
    name: str = ""
    order_number: Optional[int] = None
    admin_graphql_api_id: str = ""
    contact_email: Optional[str] = None
    email: Optional[str] = None
    created_at: Optional[str] = None
    total_price: str = "0.00"
    subtotal_price: Optional[str] = None
    shipping_address: Optional[ShippingAddress] = None
    billing_address: Optional[BillingAddress] = None
    customer: Optional[CustomerData] = None
    fulfillments: list[Fulfillment] = Field(default_factory=list)
    line_items: list[LineItem] = Field(default_factory=list)

    @property
    def is_shipped(self) -> bool:
        return len(self.fulfillments) > 0

    @property
    def tracking_number(self) -> str:
        if self.fulfillments:
            return self.fulfillments[0].tracking_number or ""
        return ""

    @property
    def display_number(self) -> str:
        """Order number without the leading '#'."""
        if self.order_number is not None:
            return str(self.order_number)
        return self.name.lstrip("#")


class Variant(_ShopifyModel):
    id: int
    title: str = ""
    inventory_quantity: int = 0


class Product(_ShopifyModel):
    id: Optional[int] = None
    title: str = ""
    handle: str = ""
    body_html: Optional[str] = None
    variants: list[Variant] = Field(default_factory=list)


class OrderLookupError(str, Enum):
    """Distinguished domain validation failures for an order lookup."""
    INVALID_ORDER_NUMBER = "InvalidOrderNumber"
    EMAIL_MISMATCH = "EmailMismatch"


class OrderLookupResult(BaseModel):
    success: bool
    error: Optional[OrderLookupError] = None
    order: Optional[Order] = None


class CustomerCreateResult(BaseModel):
    success: bool
    duplicate: bool = False
    message: str = ""


class DiscountCodeResult(BaseModel):
    success: bool
    code: str = ""
    ends_at: Optional[str] = None
    message: str = ""


class ShippingUpdateResult(BaseModel):
    success: bool
    message: str = ""


class ContactDetails(BaseModel):
    """Recipient fields carried over onto a new shipping address."""
    first_name: str = ""
    last_name: str = ""
    phone: str = ""


class AddressComponents(BaseModel):
    """Structured pieces of a formatted address for the commerce mutation."""
    model_config = ConfigDict(extra="ignore")

    address1: str
    address2: str = ""
    city: str
    zip: str
    province: str = ""
    province_code: str = ""


class AddressValidationResult(BaseModel):
    """Geocoder output for one free-text address."""
    formatted_address: str = ""
    multiple_candidates: bool = False
    candidates: list[str] = Field(default_factory=list)

    @property
    def is_valid(self) -> bool:
        return bool(self.formatted_address)
