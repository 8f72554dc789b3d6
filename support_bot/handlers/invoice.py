"""
Invoice handler.

Builds an ``InvoiceRecord`` from a validated order, renders it to PDF
and emails it to the customer. Amounts are tax-inclusive in Shopify, so
the subtotal is derived first and tax and total are recomputed from the
rounded subtotal.
"""

import logging
from datetime import datetime
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Optional

from support_bot.config import StoreConfig
from support_bot.handlers.common import HandlerContext, Services, resolve_order
from support_bot.prompts.messages import localize
from support_bot.schemas.commerce_schema import Order, ShippingAddress
from support_bot.schemas.invoice_schema import InvoiceLine, InvoiceParty, InvoiceRecord, InvoiceTotals
from support_bot.tools.errors import EmailError, InvoiceRenderError
from support_bot.tools.invoice_renderer import render_invoice_pdf
from support_bot.tools.mailer import EmailAttachment, EmailKind

logger = logging.getLogger(__name__)

CENT = Decimal("0.01")


def _to_decimal(value: Optional[str]) -> Decimal:
    try:
        return Decimal(str(value or "0"))
    except InvalidOperation:
        return Decimal("0")


def compute_totals(total_with_tax: Decimal, tax_rate: Decimal) -> InvoiceTotals:
    """Split a tax-inclusive total into subtotal, tax and total.

    >>> compute_totals(Decimal("121.00"), Decimal("0.21")).subtotal
    Decimal('100.00')
    """
    subtotal = (total_with_tax / (1 + tax_rate)).quantize(CENT, rounding=ROUND_HALF_UP)
    tax = (subtotal * tax_rate).quantize(CENT, rounding=ROUND_HALF_UP)
    return InvoiceTotals(subtotal=subtotal, tax=tax, total=subtotal + tax)


def _format_date(created_at: Optional[str]) -> str:
    if created_at:
        try:
            return datetime.fromisoformat(created_at.replace("Z", "+00:00")).strftime("%d/%m/%Y")
        except ValueError:
            logger.warning("Unparseable order date %r, using today", created_at)
    return datetime.now().strftime("%d/%m/%Y")


def _customer_party(address: ShippingAddress) -> InvoiceParty:
    name = address.name or " ".join(p for p in (address.first_name, address.last_name) if p)
    street = ", ".join(p for p in (address.address1, address.address2) if p)
    city_line = " ".join(p for p in (address.zip, address.city) if p)
    if address.country:
        city_line = f"{city_line}, {address.country}" if city_line else address.country
    return InvoiceParty(name=name, address=street, city_line=city_line, phone=address.phone or "")


def _issuer_party(store: StoreConfig) -> InvoiceParty:
    return InvoiceParty(
        name=store.company_name,
        address=store.company_address,
        city_line=store.company_city,
        phone=store.company_phone,
        tax_id=store.company_tax_id,
    )


def build_invoice(order: Order, store: StoreConfig) -> Optional[InvoiceRecord]:
    """Return the invoice for ``order``, or None when it has no address to bill."""
    address = order.billing_address or order.shipping_address
    if address is None:
        return None

    tax_rate = Decimal(str(store.tax_rate))
    lines = []
    for item in order.line_items:
        unit_price = _to_decimal(item.price).quantize(CENT, rounding=ROUND_HALF_UP)
        name = f"{item.title} ({item.variant_title})" if item.variant_title else item.title
        lines.append(InvoiceLine(
            name=name,
            quantity=item.quantity,
            unit_price=unit_price,
            total=(unit_price * item.quantity).quantize(CENT, rounding=ROUND_HALF_UP),
        ))

    return InvoiceRecord(
        invoice_number=order.display_number,
        date=_format_date(order.created_at),
        customer=_customer_party(address),
        issuer=_issuer_party(store),
        lines=lines,
        totals=compute_totals(_to_decimal(order.total_price), tax_rate),
        tax_rate=tax_rate,
    )


def handle_invoice_request(ctx: HandlerContext, services: Services) -> str:
    check = resolve_order(ctx, services)
    if check.reply is not None:
        return check.reply

    order = check.order
    invoice = build_invoice(order, services.store)
    if invoice is None:
        logger.warning("Order #%s has no billing or shipping address", order.display_number)
        return localize("invoice_order_missing", ctx.language)

    try:
        pdf = render_invoice_pdf(invoice)
        services.mailer.send(
            to=ctx.params.email,
            kind=EmailKind.INVOICE,
            order_number=order.display_number,
            customer_email=ctx.params.email,
            attachment=EmailAttachment(filename=f"invoice-{order.display_number}.pdf", content=pdf),
        )
    except (InvoiceRenderError, EmailError) as exc:
        logger.error("Invoice for #%s not delivered: %s", order.display_number, exc)
        return localize("invoice_failed", ctx.language)

    return localize("invoice_sent", ctx.language)
