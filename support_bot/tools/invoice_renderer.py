"""Renders an InvoiceRecord to an A4 PDF with fpdf2."""

import logging
from decimal import Decimal

from fpdf import FPDF
from fpdf.enums import XPos, YPos

from support_bot.schemas.invoice_schema import InvoiceParty, InvoiceRecord
from support_bot.tools.errors import InvoiceRenderError

logger = logging.getLogger(__name__)

# Column widths (mm) for the item table
_COLUMNS = (("Producto", 95), ("Cantidad", 25), ("Precio", 30), ("Total", 30))


def _latin1(text: str) -> str:
    """Core PDF fonts only cover latin-1."""
    return text.encode("latin-1", "replace").decode("latin-1")


def _money(value: Decimal) -> str:
    return f"{value:.2f} EUR"


def _party_block(pdf: FPDF, title: str, party: InvoiceParty) -> None:
    pdf.set_font("Helvetica", "B", 10)
    pdf.cell(0, 6, _latin1(title), new_x=XPos.LMARGIN, new_y=YPos.NEXT)
    pdf.set_font("Helvetica", "", 10)
    for line in (party.name, party.tax_id, party.address, party.city_line, party.phone):
        if line:
            pdf.cell(0, 5, _latin1(line), new_x=XPos.LMARGIN, new_y=YPos.NEXT)
    pdf.ln(4)


def render_invoice_pdf(invoice: InvoiceRecord) -> bytes:
    """Return the PDF bytes for ``invoice``.

    Raises:
        InvoiceRenderError: If fpdf2 fails to lay out the document.
    """
    try:
        pdf = FPDF(orientation="P", unit="mm", format="A4")
        pdf.set_auto_page_break(auto=True, margin=15)
        pdf.add_page()

        pdf.set_font("Helvetica", "B", 20)
        pdf.cell(0, 12, "FACTURA", new_x=XPos.LMARGIN, new_y=YPos.NEXT)
        pdf.set_font("Helvetica", "", 10)
        pdf.cell(0, 5, _latin1(f"Número de factura: {invoice.invoice_number}"),
                 new_x=XPos.LMARGIN, new_y=YPos.NEXT)
        pdf.cell(0, 5, _latin1(f"Fecha: {invoice.date}"), new_x=XPos.LMARGIN, new_y=YPos.NEXT)
        pdf.ln(6)

        _party_block(pdf, "Emisor", invoice.issuer)
        _party_block(pdf, "Cliente", invoice.customer)

        pdf.set_font("Helvetica", "B", 10)
        for label, width in _COLUMNS:
            pdf.cell(width, 7, label, border=1)
        pdf.ln()
        pdf.set_font("Helvetica", "", 10)
        for line in invoice.lines:
            cells = (line.name, str(line.quantity), _money(line.unit_price), _money(line.total))
            for (_, width), value in zip(_COLUMNS, cells):
                pdf.cell(width, 7, _latin1(value), border=1)
            pdf.ln()
        pdf.ln(4)

        tax_percent = int(invoice.tax_rate * 100)
        label_width = sum(width for _, width in _COLUMNS[:-1])
        for label, amount, bold in (
            ("Subtotal", invoice.totals.subtotal, False),
            (f"IVA ({tax_percent}%)", invoice.totals.tax, False),
            ("Total", invoice.totals.total, True),
        ):
            pdf.set_font("Helvetica", "B" if bold else "", 10)
            pdf.cell(label_width, 7, label, align="R")
            pdf.cell(_COLUMNS[-1][1], 7, _money(amount), align="R", new_x=XPos.LMARGIN, new_y=YPos.NEXT)

        return bytes(pdf.output())
    except Exception as exc:
        logger.error("Invoice %s could not be rendered: %s", invoice.invoice_number, exc)
        raise InvoiceRenderError(f"Invoice {invoice.invoice_number} could not be rendered") from exc
