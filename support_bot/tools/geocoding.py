"""Google Places "find place from text" address validation."""

import logging
from typing import Optional

import requests

from support_bot.config import GeocodingConfig, settings
from support_bot.schemas.commerce_schema import AddressValidationResult
from support_bot.tools.errors import GeocodingError

logger = logging.getLogger(__name__)


class GoogleGeocoder:
    """Turns free-text addresses into formatted candidates."""

    def __init__(
        self,
        config: Optional[GeocodingConfig] = None,
        session: Optional[requests.Session] = None,
    ) -> None:
        self.config = config or settings.geocoding
        self.session = session or requests.Session()

    def validate_address(self, free_text: str) -> AddressValidationResult:
        """Look up candidates for ``free_text``.

        Zero candidates is a valid (empty) result, not an error.

        Raises:
            GeocodingError: On transport failure or a denied request.
        """
        if not free_text or not free_text.strip():
            return AddressValidationResult()

        params = {
            "input": free_text.strip(),
            "inputtype": "textquery",
            "fields": "formatted_address",
            "key": self.config.api_key,
        }
        try:
            response = self.session.get(
                self.config.endpoint, params=params, timeout=self.config.request_timeout_sec
            )
            response.raise_for_status()
            data = response.json()
        except (requests.RequestException, ValueError) as exc:
            logger.error("Address validation request failed: %s", type(exc).__name__)
            raise GeocodingError("Address validation request failed") from exc

        status = data.get("status", "")
        if status in ("REQUEST_DENIED", "INVALID_REQUEST", "OVER_QUERY_LIMIT", "UNKNOWN_ERROR"):
            logger.error("Address validation rejected (%s): %s", status, data.get("error_message", ""))
            raise GeocodingError(f"Address validation rejected: {status}")

        candidates = [
            c["formatted_address"]
            for c in data.get("candidates") or []
            if c.get("formatted_address")
        ]
        return AddressValidationResult(
            formatted_address=candidates[0] if candidates else "",
            multiple_candidates=len(candidates) > 1,
            candidates=candidates,
        )
