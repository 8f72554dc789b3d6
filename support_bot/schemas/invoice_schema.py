"""Invoice record rendered to PDF and emailed to the customer."""

from decimal import Decimal

from pydantic import BaseModel, Field


class InvoiceLine(BaseModel):
    name: str
    quantity: int
    unit_price: Decimal
    total: Decimal


class InvoiceTotals(BaseModel):
    subtotal: Decimal
    tax: Decimal
    total: Decimal


class InvoiceParty(BaseModel):
    name: str = ""
    address: str = ""
    city_line: str = ""
    phone: str = ""
    tax_id: str = ""


class InvoiceRecord(BaseModel):
    invoice_number: str
    date: str
    customer: InvoiceParty
    issuer: InvoiceParty
    lines: list[InvoiceLine] = Field(default_factory=list)
    totals: InvoiceTotals
    tax_rate: Decimal
