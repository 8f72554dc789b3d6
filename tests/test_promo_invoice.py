"""Tests for the promo-code and invoice handlers, the PDF renderer and the mailer."""

from decimal import Decimal
from types import SimpleNamespace

import pytest

from support_bot.config import EmailConfig, StoreConfig
from support_bot.handlers.invoice import build_invoice, compute_totals, handle_invoice_request
from support_bot.handlers.promo import handle_promo_code
from support_bot.prompts.messages import localize
from support_bot.schemas.classification_schema import Intent, Language
from support_bot.schemas.commerce_schema import CustomerCreateResult, DiscountCodeResult
from support_bot.tools.errors import CommerceError, EmailError
from support_bot.tools.invoice_renderer import render_invoice_pdf
from support_bot.tools.mailer import EmailAttachment, EmailKind, SendGridMailer, render_template
from tests.conftest import FakeCommerce, FakeMailer, ServiceBundle, make_context, make_order


class TestPromoCode:
    def test_offers_discount_without_email(self, bundle):
        ctx = make_context(Intent.PROMO_CODE, language=Language.SPANISH)
        assert handle_promo_code(ctx, bundle.services) == localize("promo_offer", Language.SPANISH)
        assert bundle.commerce.customers_created == []

    def test_issues_code(self, bundle):
        ctx = make_context(Intent.PROMO_CODE, email="new@b.com")
        reply = handle_promo_code(ctx, bundle.services)
        assert reply == localize("promo_code", Language.ENGLISH, code="SAVEAB12C")
        assert bundle.commerce.customers_created == [("new@b.com", "")]
        assert bundle.commerce.discounts_created == 1

    def test_duplicate_email_gets_no_code(self, bundle):
        bundle.commerce.customer_result = CustomerCreateResult(success=False, duplicate=True)
        ctx = make_context(Intent.PROMO_CODE, email="a@b.com")
        assert handle_promo_code(ctx, bundle.services) == localize("email_already_registered", Language.ENGLISH)
        assert bundle.commerce.discounts_created == 0

    def test_rejected_customer(self, bundle):
        bundle.commerce.customer_result = CustomerCreateResult(success=False, message="invalid email")
        ctx = make_context(Intent.PROMO_CODE, email="bad")
        assert handle_promo_code(ctx, bundle.services) == localize("promo_failed", Language.ENGLISH)

    def test_discount_errors(self, bundle):
        ctx = make_context(Intent.PROMO_CODE, email="new@b.com")
        bundle.commerce.discount_result = DiscountCodeResult(success=False, message="userErrors")
        assert handle_promo_code(ctx, bundle.services) == localize("promo_failed", Language.ENGLISH)
        bundle.commerce.discount_result = CommerceError("timeout")
        assert handle_promo_code(ctx, bundle.services) == localize("promo_failed", Language.ENGLISH)


class TestInvoiceTotals:
    def test_standard_rate(self):
        totals = compute_totals(Decimal("121.00"), Decimal("0.21"))
        assert totals.subtotal == Decimal("100.00")
        assert totals.tax == Decimal("21.00")
        assert totals.total == Decimal("121.00")

    def test_total_recomputed_from_rounded_subtotal(self):
        totals = compute_totals(Decimal("59.95"), Decimal("0.21"))
        assert totals.subtotal == Decimal("49.55")
        assert totals.tax == Decimal("10.41")
        assert totals.total == Decimal("59.96")


class TestBuildInvoice:
    def test_builds_from_shipping_address(self):
        invoice = build_invoice(make_order(), StoreConfig())
        assert invoice.invoice_number == "1234"
        assert invoice.date == "15/03/2025"
        assert invoice.customer.name == "Laura Gómez"
        assert invoice.customer.city_line == "28013 Madrid, Spain"
        assert invoice.issuer.tax_id == StoreConfig().company_tax_id
        assert invoice.lines[0].name == "Without Shame Crewneck (M)"
        assert invoice.lines[0].total == Decimal("121.00")
        assert invoice.totals.subtotal == Decimal("100.00")

    def test_prefers_billing_address(self):
        order = make_order(billing_address={"name": "Empresa SL", "address1": "Gran Vía 1", "city": "Madrid"})
        assert build_invoice(order, StoreConfig()).customer.name == "Empresa SL"

    def test_no_address(self):
        assert build_invoice(make_order(shipping_address=None), StoreConfig()) is None

    def test_renders_pdf(self):
        pdf = render_invoice_pdf(build_invoice(make_order(), StoreConfig()))
        assert pdf.startswith(b"%PDF")


class TestInvoiceHandler:
    def test_emails_pdf_to_customer(self, bundle):
        ctx = make_context(Intent.INVOICE_REQUEST, order_number="1234", email="a@b.com")
        assert handle_invoice_request(ctx, bundle.services) == localize("invoice_sent", Language.ENGLISH)
        sent = bundle.mailer.sent[0]
        assert sent["to"] == "a@b.com"
        assert sent["kind"] == EmailKind.INVOICE
        assert sent["attachment"].filename == "invoice-1234.pdf"
        assert sent["attachment"].content.startswith(b"%PDF")

    def test_missing_address(self):
        bundle = ServiceBundle(commerce=FakeCommerce(orders=[make_order(shipping_address=None)]))
        ctx = make_context(Intent.INVOICE_REQUEST, order_number="1234", email="a@b.com")
        assert handle_invoice_request(ctx, bundle.services) == localize("invoice_order_missing", Language.ENGLISH)

    def test_email_failure(self):
        bundle = ServiceBundle(
            commerce=FakeCommerce(orders=[make_order()]),
            mailer=FakeMailer(error=EmailError("rejected")),
        )
        ctx = make_context(Intent.INVOICE_REQUEST, order_number="1234", email="a@b.com")
        assert handle_invoice_request(ctx, bundle.services) == localize("invoice_failed", Language.ENGLISH)

    def test_requires_order_info(self, bundle):
        ctx = make_context(Intent.INVOICE_REQUEST, email="a@b.com")
        assert handle_invoice_request(ctx, bundle.services) == localize("need_order_and_email", Language.ENGLISH)


class FakeSendGrid:
    def __init__(self, status_code=202, error=None):
        self.status_code = status_code
        self.error = error
        self.messages = []

    def send(self, message):
        if self.error is not None:
            raise self.error
        self.messages.append(message.get())
        return SimpleNamespace(status_code=self.status_code)


class TestMailer:
    def setup_method(self):
        self.config = EmailConfig(api_key="SG.test", from_email="hello@shop.test", from_name="Shop")

    def test_delivery_proof_template(self):
        subject, text, html = render_template(EmailKind.DELIVERY_PROOF_REQUEST, "1234", "a@b.com")
        assert "1234" in text and "a@b.com" in text
        assert text in html

    def test_attachment_is_base64(self):
        client = FakeSendGrid()
        mailer = SendGridMailer(self.config, client=client)
        mailer.send("a@b.com", EmailKind.INVOICE, "1234", attachment=EmailAttachment("invoice-1234.pdf", b"%PDF-1.4"))
        attachment = client.messages[0]["attachments"][0]
        assert attachment["filename"] == "invoice-1234.pdf"
        assert attachment["content"] == "JVBERi0xLjQ="

    def test_rejected_status(self):
        mailer = SendGridMailer(self.config, client=FakeSendGrid(status_code=400))
        with pytest.raises(EmailError):
            mailer.send("a@b.com", EmailKind.INVOICE, "1234")

    def test_transport_error(self):
        mailer = SendGridMailer(self.config, client=FakeSendGrid(error=RuntimeError("connection reset")))
        with pytest.raises(EmailError):
            mailer.send("a@b.com", EmailKind.DELIVERY_PROOF_REQUEST, "1234", "a@b.com")
