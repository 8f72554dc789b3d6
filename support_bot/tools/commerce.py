"""
Shopify Admin API adapter.

REST endpoints serve order and product lookups; GraphQL mutations
update shipping addresses, create customers and create discount codes.
No business rules live here: order/email validation and restock
policy belong to the handlers.
"""

import logging
import random
import string
from datetime import datetime, timedelta, timezone
from typing import Any, Optional

import requests
from pydantic import ValidationError

from support_bot.config import CommerceConfig, settings
from support_bot.schemas.commerce_schema import (
    ContactDetails,
    CustomerCreateResult,
    DiscountCodeResult,
    Order,
    Product,
    ShippingUpdateResult,
)
from support_bot.tools.address_parser import AddressParser
from support_bot.tools.errors import CommerceError
from support_bot.utils import normalize_order_number

logger = logging.getLogger(__name__)

DUPLICATE_EMAIL_MESSAGE = "Email has already been taken"

ORDER_UPDATE_MUTATION = """
mutation orderUpdate($input: OrderInput!) {
  orderUpdate(input: $input) {
    order { id }
    userErrors { field message }
  }
}
"""

CUSTOMER_CREATE_MUTATION = """
mutation customerCreate($input: CustomerInput!) {
  customerCreate(input: $input) {
    customer { email note }
    userErrors { field message }
  }
}
"""

DISCOUNT_CREATE_MUTATION = """
mutation discountCodeBasicCreate($basicCodeDiscount: DiscountCodeBasicInput!) {
  discountCodeBasicCreate(basicCodeDiscount: $basicCodeDiscount) {
    codeDiscountNode {
      codeDiscount {
        ... on DiscountCodeBasic {
          codes(first: 1) { nodes { code } }
          endsAt
        }
      }
    }
    userErrors { field message }
  }
}
"""


def _random_suffix(length: int = 5) -> str:
    return "".join(random.choices(string.ascii_uppercase + string.digits, k=length))


class ShopifyClient:
    """Blocking Shopify client. Failures raise CommerceError, never retried."""

    def __init__(
        self,
        address_parser: AddressParser,
        config: Optional[CommerceConfig] = None,
        session: Optional[requests.Session] = None,
    ) -> None:
        self.config = config or settings.commerce
        self.address_parser = address_parser
        self.session = session or requests.Session()
        self.session.headers.update({
            "Content-Type": "application/json",
            "X-Shopify-Access-Token": self.config.access_token,
        })
        self.base_url = f"{self.config.shop_url.rstrip('/')}/admin/api/{self.config.api_version}"

    # --- transport ---

    def _get(self, path: str, params: dict[str, str]) -> dict[str, Any]:
        try:
            response = self.session.get(
                f"{self.base_url}/{path}",
                params=params,
                timeout=self.config.request_timeout_sec,
            )
            response.raise_for_status()
            return response.json()
        except (requests.RequestException, ValueError) as exc:
            logger.error("Shopify GET %s failed: %s", path, exc)
            raise CommerceError(f"Shopify request failed: {path}") from exc

    def _graphql(self, operation: str, query: str, variables: dict[str, Any]) -> dict[str, Any]:
        """Run a mutation and return its payload object (``data[operation]``)."""
        try:
            response = self.session.post(
                f"{self.base_url}/graphql.json",
                json={"query": query, "variables": variables},
                timeout=self.config.request_timeout_sec,
            )
            response.raise_for_status()
            body = response.json()
        except (requests.RequestException, ValueError) as exc:
            logger.error("Shopify %s failed: %s", operation, exc)
            raise CommerceError(f"Shopify mutation failed: {operation}") from exc

        payload = (body.get("data") or {}).get(operation)
        if not payload:
            errors = body.get("errors") or [{}]
            message = errors[0].get("message", f"{operation} returned no data")
            logger.error("Shopify %s returned no payload: %s", operation, message)
            raise CommerceError(message)
        return payload

    # --- lookups ---

    def find_order(self, order_number: str) -> Optional[Order]:
        """Return the order named ``#<order_number>``, or None if absent."""
        number = normalize_order_number(order_number)
        if not number:
            return None
        data = self._get("orders.json", {"name": f"#{number}", "status": "any"})
        orders = data.get("orders") or []
        if not orders:
            return None
        try:
            return Order.model_validate(orders[0])
        except ValidationError as exc:
            raise CommerceError(f"Unexpected order payload for #{number}") from exc

    def find_product(self, name: str) -> Optional[Product]:
        """Return the first product whose title matches ``name``, or None."""
        if not name:
            return None
        data = self._get("products.json", {"title": name})
        products = data.get("products") or []
        if not products:
            return None
        try:
            return Product.model_validate(products[0])
        except ValidationError as exc:
            raise CommerceError(f"Unexpected product payload for {name!r}") from exc

    def list_active_product_titles(self) -> list[str]:
        data = self._get("products.json", {"status": "active", "fields": "title"})
        return [p["title"] for p in data.get("products") or [] if p.get("title")]

    # --- mutations ---

    def update_shipping_address(
        self,
        order_ref: str,
        formatted_address: str,
        contact: ContactDetails,
    ) -> ShippingUpdateResult:
        """Replace an order's shipping address with a validated one.

        Raises:
            CommerceError: If the address cannot be parsed or the call fails.
        """
        components = self.address_parser.parse(formatted_address)
        variables = {
            "input": {
                "id": order_ref,
                "shippingAddress": {
                    "address1": components.address1,
                    "address2": components.address2,
                    "city": components.city,
                    "zip": components.zip,
                    "provinceCode": components.province_code,
                    "countryCode": self.config.country_code,
                    "firstName": contact.first_name,
                    "lastName": contact.last_name,
                    "phone": contact.phone,
                },
            }
        }
        payload = self._graphql("orderUpdate", ORDER_UPDATE_MUTATION, variables)
        user_errors = payload.get("userErrors") or []
        if user_errors:
            logger.warning("orderUpdate rejected for %s: %s", order_ref, user_errors[0].get("message"))
            return ShippingUpdateResult(success=False, message=user_errors[0].get("message", ""))
        logger.info("Shipping address updated for %s", order_ref)
        return ShippingUpdateResult(success=True)

    def create_customer(self, email: str, note: str = "") -> CustomerCreateResult:
        """Register an email as a subscribed customer.

        A duplicate email is reported through ``duplicate`` rather than raised.
        """
        variables = {
            "input": {
                "email": email,
                "emailMarketingConsent": {"marketingState": "SUBSCRIBED"},
                "note": note,
            }
        }
        payload = self._graphql("customerCreate", CUSTOMER_CREATE_MUTATION, variables)
        user_errors = payload.get("userErrors") or []
        if user_errors:
            message = user_errors[0].get("message", "")
            duplicate = "already been taken" in message.lower()
            logger.info("customerCreate rejected (duplicate=%s): %s", duplicate, message)
            return CustomerCreateResult(success=False, duplicate=duplicate, message=message)
        return CustomerCreateResult(success=True)

    def create_discount_code(self) -> DiscountCodeResult:
        """Create a single-use-per-customer percentage code with a short validity window."""
        now = datetime.now(timezone.utc)
        ends_at = now + timedelta(minutes=self.config.discount_valid_minutes)
        code = f"SAVE{_random_suffix()}"
        variables = {
            "basicCodeDiscount": {
                "title": f"DISCOUNT{_random_suffix()}",
                "code": code,
                "startsAt": now.isoformat(),
                "endsAt": ends_at.isoformat(),
                "customerSelection": {"all": True},
                "customerGets": {
                    "value": {"percentage": self.config.discount_percentage},
                    "items": {"all": True},
                },
                "appliesOncePerCustomer": True,
            }
        }
        payload = self._graphql("discountCodeBasicCreate", DISCOUNT_CREATE_MUTATION, variables)
        user_errors = payload.get("userErrors") or []
        if user_errors:
            message = user_errors[0].get("message", "")
            logger.warning("discountCodeBasicCreate rejected: %s", message)
            return DiscountCodeResult(success=False, message=message)

        try:
            discount = payload["codeDiscountNode"]["codeDiscount"]
            created_code = discount["codes"]["nodes"][0]["code"]
        except (KeyError, IndexError, TypeError):
            created_code = code
        return DiscountCodeResult(success=True, code=created_code, ends_at=ends_at.isoformat())
