"""
Input guardrails applied before any text reaches the language model.

Two layers:
1. SanitizationGuardrail: neutralizes role/system markers and code fences
2. InjectionGuardrail: flags common prompt-injection phrasing for logging

Sanitization is applied uniformly to the new message and every history
turn. Detection never blocks a message; it only reports.
"""

import logging
import re
from dataclasses import dataclass
from typing import Optional

from support_bot.schemas.classification_schema import ConversationTurn

logger = logging.getLogger(__name__)


@dataclass
class GuardrailResult:
    """Outcome of a single guardrail check."""
    passed: bool
    violation_type: Optional[str] = None
    message: Optional[str] = None
    severity: str = "warning"  # "warning" | "block"


class SanitizationGuardrail:
    """Rewrites sequences the model could read as role or prompt boundaries."""

    CODE_FENCE = "```"
    CODE_FENCE_REPLACEMENT = "'''"
    ROLE_MARKER = re.compile(r"system:", re.IGNORECASE)
    ROLE_MARKER_REPLACEMENT = "sys:"

    def sanitize(self, text: str) -> str:
        if not isinstance(text, str):
            return ""
        text = text.replace(self.CODE_FENCE, self.CODE_FENCE_REPLACEMENT)
        text = self.ROLE_MARKER.sub(self.ROLE_MARKER_REPLACEMENT, text)
        return text.strip()


class InjectionGuardrail:
    """Detects phrasing typical of attempts to override instructions."""

    INJECTION_PATTERNS = [
        "ignore previous instructions",
        "ignore all previous instructions",
        "ignore the above",
        "disregard your instructions",
        "you are now",
        "new instructions:",
        "reveal your prompt",
        "olvida las instrucciones",
        "ignora las instrucciones",
    ]

    def check(self, text: str) -> GuardrailResult:
        lower = text.lower()
        for pattern in self.INJECTION_PATTERNS:
            if pattern in lower:
                logger.warning("Possible prompt injection: '%s'", pattern)
                return GuardrailResult(
                    passed=False,
                    violation_type="prompt_injection",
                    message=f"Message contains '{pattern}'.",
                    severity="warning",
                )
        return GuardrailResult(passed=True)


class GuardrailPipeline:
    """Composes sanitization and detection for classifier input."""

    def __init__(self) -> None:
        self.sanitizer = SanitizationGuardrail()
        self.injection = InjectionGuardrail()

    def sanitize_message(self, text: str) -> str:
        return self.sanitizer.sanitize(text)

    def sanitize_history(self, history: list[ConversationTurn]) -> list[ConversationTurn]:
        return [
            ConversationTurn(role=turn.role, content=self.sanitizer.sanitize(turn.content))
            for turn in history
        ]

    def check_user_input(self, text: str) -> list[GuardrailResult]:
        """Return the failed checks for ``text`` (empty when clean)."""
        results = [self.injection.check(text)]
        return [r for r in results if not r.passed]
