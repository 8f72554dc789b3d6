"""
Bounded polling of an outbound carrier call.

The poll loop has exactly three exits:
- TERMINAL      the bridge reports completed/failed/busy/no-answer/canceled
- SOFT_TIMEOUT  the soft cap elapsed; the flow proceeds regardless of outcome
- HARD_TIMEOUT  the hard cap elapsed; safety net for a status that never settles

Status read failures are logged and polling continues until a cap is hit.
Clock and sleep are injectable so the loop can be tested without waiting.
"""

import logging
import time
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Callable, Optional

from support_bot.config import TelephonyConfig, settings
from support_bot.schemas.call_schema import CallStatus, OutboundCallSession
from support_bot.tools.errors import TelephonyError
from support_bot.tools.telephony import CallBridgeClient

logger = logging.getLogger(__name__)


class PollOutcome(str, Enum):
    TERMINAL = "terminal"
    SOFT_TIMEOUT = "soft_timeout"
    HARD_TIMEOUT = "hard_timeout"


@dataclass
class PollResult:
    outcome: PollOutcome
    session: OutboundCallSession
    elapsed_sec: float
    checks: int


class CallStatusPoller:
    """Waits for a placed call to finish, within the configured caps."""

    def __init__(
        self,
        telephony: CallBridgeClient,
        config: Optional[TelephonyConfig] = None,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self.telephony = telephony
        self.config = config or settings.telephony
        self._clock = clock
        self._sleep = sleep

    def wait(self, call_sid: str, soft_cap: bool = True) -> PollResult:
        """Poll ``call_sid`` until it is terminal or a cap elapses.

        With ``soft_cap=False`` only a terminal status or the hard cap end
        the loop.
        """
        session = OutboundCallSession(call_sid=call_sid, start_time=datetime.now(timezone.utc))
        started = self._clock()
        checks = 0

        while True:
            self._sleep(self.config.poll_interval_sec)
            elapsed = self._clock() - started
            checks += 1

            try:
                session.status = self.telephony.get_call_status(call_sid)
            except TelephonyError as exc:
                logger.warning("Call %s status check %d failed: %s", call_sid, checks, exc)

            outcome = self._exit_condition(session, elapsed, soft_cap)
            if outcome is not None:
                session.end_time = datetime.now(timezone.utc)
                logger.info(
                    "Call %s polling ended: %s (status=%s, %.0fs, %d checks)",
                    call_sid, outcome.value, session.status.value, elapsed, checks,
                )
                return PollResult(outcome=outcome, session=session, elapsed_sec=elapsed, checks=checks)

    def _exit_condition(
        self, session: OutboundCallSession, elapsed: float, soft_cap: bool
    ) -> Optional[PollOutcome]:
        if session.is_terminal:
            return PollOutcome.TERMINAL
        if elapsed >= self.config.hard_timeout_sec:
            return PollOutcome.HARD_TIMEOUT
        if soft_cap and elapsed >= self.config.soft_timeout_sec:
            return PollOutcome.SOFT_TIMEOUT
        return None
