"""
Language model completion adapter.

Wraps the OpenAI chat completions API behind ``complete(messages,
temperature)``. Rate limits, 5xx responses and network failures are
retried with exponential backoff; anything else fails immediately.
"""

import logging
import time
from typing import Any, Callable, Optional

import openai
from openai import OpenAI

from support_bot.config import ModelConfig, settings
from support_bot.tools.errors import LLMError

logger = logging.getLogger(__name__)


class LLMClient:
    """Blocking chat-completion client with bounded retries."""

    def __init__(
        self,
        config: Optional[ModelConfig] = None,
        client: Any = None,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self.config = config or settings.model
        # SDK retries are disabled so backoff follows our own schedule
        self._client = client or OpenAI(
            api_key=self.config.api_key or None,
            timeout=self.config.request_timeout_sec,
            max_retries=0,
        )
        self._sleep = sleep

    def complete(self, messages: list[dict[str, str]], temperature: float) -> str:
        """Return the text of the first completion choice.

        Raises:
            LLMError: After retries are exhausted or on a terminal failure.
        """
        attempt = 0
        while True:
            try:
                response = self._client.chat.completions.create(
                    model=self.config.llm_model,
                    temperature=temperature,
                    messages=messages,
                )
                if not response.choices:
                    raise LLMError("LLM returned no choices")
                return response.choices[0].message.content or ""
            except openai.APIStatusError as exc:
                retryable = exc.status_code == 429 or exc.status_code >= 500
                error = LLMError(
                    f"LLM API error ({exc.status_code})",
                    retryable=retryable,
                    status_code=exc.status_code,
                )
            except openai.APIConnectionError as exc:
                error = LLMError(f"LLM connection error: {exc}", retryable=True)
            except openai.OpenAIError as exc:
                error = LLMError(f"LLM client error: {exc}", retryable=False)

            if not error.retryable or attempt >= self.config.max_retries:
                logger.error("LLM call failed after %d attempt(s): %s", attempt + 1, error)
                raise error

            delay = self.config.retry_base_delay_sec * (2 ** attempt)
            attempt += 1
            logger.warning(
                "Retrying LLM call in %.1fs (attempt %d/%d)",
                delay, attempt, self.config.max_retries,
            )
            self._sleep(delay)
