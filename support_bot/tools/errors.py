"""Failure types raised by the external service adapters."""

from typing import Optional


class ToolError(Exception):
    """Base class for adapter failures caught at the handler boundary."""


class LLMError(ToolError):
    def __init__(self, message: str, retryable: bool = False, status_code: Optional[int] = None) -> None:
        super().__init__(message)
        self.retryable = retryable
        self.status_code = status_code


class CommerceError(ToolError):
    pass


class GeocodingError(ToolError):
    pass


class TelephonyError(ToolError):
    pass


class EmailError(ToolError):
    pass


class InvoiceRenderError(ToolError):
    pass
