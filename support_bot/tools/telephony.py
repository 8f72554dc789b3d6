"""
Client for the outbound call bridge.

The bridge is a separate process that dials a number and lets a voice
agent hold the conversation. Only two operations are consumed here:
placing a call with a prompt and reading a call's status.
"""

import logging
from typing import Optional

import requests

from support_bot.config import TelephonyConfig, settings
from support_bot.schemas.call_schema import CallStatus
from support_bot.tools.errors import TelephonyError

logger = logging.getLogger(__name__)


class CallBridgeClient:

    def __init__(
        self,
        config: Optional[TelephonyConfig] = None,
        session: Optional[requests.Session] = None,
    ) -> None:
        self.config = config or settings.telephony
        self.session = session or requests.Session()
        self.base_url = self.config.bridge_url.rstrip("/")

    def place_call(self, to_number: str, script_prompt: str, opening_line: str) -> str:
        """Start a call and return its sid.

        Raises:
            TelephonyError: If the bridge is unreachable or refuses the call.
        """
        try:
            response = self.session.post(
                f"{self.base_url}/outbound-call",
                json={"prompt": script_prompt, "first_message": opening_line, "number": to_number},
                timeout=self.config.request_timeout_sec,
            )
            response.raise_for_status()
            data = response.json()
        except (requests.RequestException, ValueError) as exc:
            logger.error("Outbound call to %s failed: %s", to_number, type(exc).__name__)
            raise TelephonyError("Outbound call could not be placed") from exc

        call_sid = data.get("callSid")
        if not data.get("success") or not call_sid:
            logger.error("Call bridge refused call to %s: %s", to_number, data.get("error", ""))
            raise TelephonyError("Call bridge refused the call")
        logger.info("Outbound call placed: %s", call_sid)
        return call_sid

    def get_call_status(self, call_sid: str) -> CallStatus:
        """Read the current status of a call.

        Raises:
            TelephonyError: If the status endpoint cannot be reached.
        """
        try:
            response = self.session.get(
                f"{self.base_url}/call-status/{call_sid}",
                timeout=self.config.request_timeout_sec,
            )
            response.raise_for_status()
            data = response.json()
        except (requests.RequestException, ValueError) as exc:
            logger.warning("Status check for call %s failed: %s", call_sid, type(exc).__name__)
            raise TelephonyError(f"Status unavailable for call {call_sid}") from exc
        return CallStatus.parse(data.get("status"))
