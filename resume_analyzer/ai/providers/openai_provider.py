from __future__ import annotations

import logging
import random
import time
from typing import Any, Callable, Optional, Sequence

from openai import APIConnectionError, APIStatusError, OpenAI, OpenAIError, RateLimitError

from resume_analyzer.ai.types import ChatMessage
from resume_analyzer.core.errors import GenerationServiceError, QuotaExceeded, RateLimited

logger = logging.getLogger(__name__)


class OpenAIProvider:
    """Single-shot chat completion against an OpenAI-compatible gateway.

    SDK retries are disabled: 429 and 402 are policy signals and surface
    immediately. Only transport faults (connection errors, timeouts, 5xx) are
    retried, and only ``transport_retries`` times.
    """

    def __init__(
        self,
        model: str,
        api_key: Optional[str] = None,
        base_url: Optional[str] = None,
        timeout_s: float = 60.0,
        transport_retries: int = 0,
        temperature: Optional[float] = None,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self._model = model
        self._api_key = (api_key or "").strip()
        self._base_url = base_url or None
        self._timeout_s = timeout_s
        self._transport_retries = max(0, transport_retries)
        self._temperature = temperature
        self._sleep = sleep
        self._client: OpenAI | None = None

    def _get_client(self) -> OpenAI:
        if self._client is None:
            if not self._api_key:
                raise GenerationServiceError("AI_API_KEY is not configured", code="llm_disabled")
            self._client = OpenAI(
                api_key=self._api_key,
                base_url=self._base_url,
                timeout=self._timeout_s,
                max_retries=0,
            )
        return self._client

    def _backoff(self, attempt: int) -> None:
        wait = min(8, 2**attempt) * 0.5 + random.random() * 0.25
        logger.warning("generation_transport_retry attempt=%s wait_s=%.2f", attempt + 1, wait)
        self._sleep(wait)

    def complete(self, messages: Sequence[ChatMessage]) -> str:
        create_kwargs: dict[str, Any] = {
            "model": self._model,
            "messages": [{"role": m.role, "content": m.content} for m in messages],
        }
        if self._temperature is not None:
            create_kwargs["temperature"] = self._temperature

        client = self._get_client()
        attempt = 0
        while True:
            try:
                response = client.chat.completions.create(**create_kwargs)
                break
            except RateLimitError as exc:
                logger.warning("generation_rate_limited model=%s", self._model)
                raise RateLimited() from exc
            except APIStatusError as exc:
                if exc.status_code == 402:
                    logger.warning("generation_payment_required model=%s", self._model)
                    raise QuotaExceeded() from exc
                if exc.status_code >= 500 and attempt < self._transport_retries:
                    self._backoff(attempt)
                    attempt += 1
                    continue
                logger.error("generation_failed status=%s body=%s", exc.status_code, str(exc)[:300])
                raise GenerationServiceError() from exc
            except APIConnectionError as exc:
                if attempt < self._transport_retries:
                    self._backoff(attempt)
                    attempt += 1
                    continue
                logger.error("generation_transport_failed model=%s: %s", self._model, exc)
                raise GenerationServiceError() from exc
            except OpenAIError as exc:
                logger.error("generation_failed model=%s: %s", self._model, exc)
                raise GenerationServiceError() from exc

        content = response.choices[0].message.content if response.choices else ""
        return content or ""
