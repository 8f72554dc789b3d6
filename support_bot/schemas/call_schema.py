"""Outbound carrier call models."""

from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel


class CallStatus(str, Enum):
    INITIATED = "initiated"
    QUEUED = "queued"
    RINGING = "ringing"
    IN_PROGRESS = "in-progress"
    COMPLETED = "completed"
    FAILED = "failed"
    BUSY = "busy"
    NO_ANSWER = "no-answer"
    CANCELED = "canceled"
    UNKNOWN = "unknown"

    @classmethod
    def parse(cls, raw: Optional[str]) -> "CallStatus":
        try:
            return cls((raw or "").strip().lower())
        except ValueError:
            return cls.UNKNOWN


TERMINAL_CALL_STATUSES = frozenset({
    CallStatus.COMPLETED,
    CallStatus.FAILED,
    CallStatus.BUSY,
    CallStatus.NO_ANSWER,
    CallStatus.CANCELED,
})


class OutboundCallSession(BaseModel):
    """A placed call, tracked only while it is being polled."""
    call_sid: str
    status: CallStatus = CallStatus.INITIATED
    start_time: datetime
    end_time: Optional[datetime] = None

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_CALL_STATUSES
