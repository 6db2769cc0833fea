"""Client for an external narrative-generation endpoint.

Talks to any OpenAI-compatible chat-completions API. The model is asked to
reply with a JSON object holding exactly four fields; anything else is
treated as a failure so the caller can fall back to the rule-based scorer.
"""

import asyncio
import logging
import re
from typing import Any

import httpx
from pydantic import BaseModel, ConfigDict, Field, ValidationError
from tenacity import (
    before_sleep_log,
    retry,
    retry_if_exception,
    stop_after_attempt,
    wait_exponential,
)

from fpl_scout.config import Settings

logger = logging.getLogger(__name__)

SYSTEM_PROMPT = (
    "You are an expert Fantasy Premier League analyst with deep knowledge of player "
    "performance, tactics, and fixture difficulty. Provide realistic, data-driven "
    "insights based on actual football knowledge. Always respond with valid JSON only."
)

# HTTP status codes that should trigger a retry
RETRYABLE_STATUS_CODES = {429, 500, 502, 503, 504}

_CODE_FENCE = re.compile(r"^```(?:json)?\s*(.*?)\s*```$", re.DOTALL)


class NarrativeUnavailableError(Exception):
    """The external narrative could not be produced or failed validation."""


class ExternalNarrative(BaseModel):
    """Reply schema of the narrative endpoint."""

    model_config = ConfigDict(extra="forbid", populate_by_name=True)

    analysis: str
    captain_viability: int = Field(alias="captainViability", ge=1, le=5)
    transfer_advice: str = Field(alias="transferAdvice")
    risk_factors: list[str] = Field(alias="riskFactors")


def _is_retryable_error(exception: BaseException) -> bool:
    """Check if an error should trigger a retry."""
    if isinstance(exception, (httpx.TimeoutException, httpx.NetworkError)):
        return True
    if isinstance(exception, httpx.HTTPStatusError):
        return exception.response.status_code in RETRYABLE_STATUS_CODES
    return False


def parse_narrative_content(content: str) -> ExternalNarrative:
    """Validate the model's reply text, tolerating a markdown code fence.

    Raises:
        NarrativeUnavailableError: If the reply is not the expected JSON object
    """
    text = content.strip()
    fenced = _CODE_FENCE.match(text)
    if fenced:
        text = fenced.group(1)
    try:
        return ExternalNarrative.model_validate_json(text)
    except ValidationError as e:
        raise NarrativeUnavailableError(
            f"Narrative reply failed validation: {e.error_count()} error(s)"
        ) from e


class NarrativeClient:
    """Async client for the narrative endpoint."""

    def __init__(
        self,
        url: str,
        api_key: str | None = None,
        model: str = "llama-3.1-70b-versatile",
        timeout: float = 10.0,
    ) -> None:
        self.url = url
        self.api_key = api_key
        self.model = model
        self.timeout = timeout
        self._client: httpx.AsyncClient | None = None
        self._lock = asyncio.Lock()

    @classmethod
    def from_settings(cls, settings: Settings) -> "NarrativeClient | None":
        """Build a client from settings, or None when no URL is configured."""
        if not settings.narrative_api_url:
            return None
        return cls(
            url=settings.narrative_api_url,
            api_key=settings.narrative_api_key,
            model=settings.narrative_model,
            timeout=settings.narrative_timeout,
        )

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create the HTTP client (lazy initialization, coroutine-safe)."""
        if self._client is None:
            async with self._lock:
                if self._client is None:
                    headers = {"Content-Type": "application/json"}
                    if self.api_key:
                        headers["Authorization"] = f"Bearer {self.api_key}"
                    self._client = httpx.AsyncClient(timeout=self.timeout, headers=headers)
        return self._client

    async def close(self) -> None:
        """Close the HTTP client and release resources."""
        async with self._lock:
            if self._client is not None:
                await self._client.aclose()
                self._client = None

    async def __aenter__(self) -> "NarrativeClient":
        return self

    async def __aexit__(self, *args: object) -> None:
        await self.close()

    @retry(
        stop=stop_after_attempt(2),
        wait=wait_exponential(multiplier=0.5, min=0.5, max=2),
        retry=retry_if_exception(_is_retryable_error),
        before_sleep=before_sleep_log(logger, logging.WARNING),
        reraise=True,
    )
    async def _post(self, payload: dict[str, Any]) -> dict[str, Any]:
        """POST with a retry on transient errors."""
        client = await self._get_client()
        response = await client.post(self.url, json=payload)
        response.raise_for_status()
        return response.json()

    async def generate(self, prompt: str) -> ExternalNarrative:
        """Ask the endpoint for a narrative.

        Args:
            prompt: Prompt built from one player record

        Returns:
            Validated ExternalNarrative

        Raises:
            NarrativeUnavailableError: On HTTP errors, timeouts, or a reply
                that is not the expected JSON object
        """
        payload = {
            "model": self.model,
            "messages": [
                {"role": "system", "content": SYSTEM_PROMPT},
                {"role": "user", "content": prompt},
            ],
            "temperature": 0.3,
            "max_tokens": 400,
        }

        try:
            data = await self._post(payload)
        except httpx.HTTPError as e:
            raise NarrativeUnavailableError(
                f"Narrative request failed: {type(e).__name__}: {e}"
            ) from e
        except ValueError as e:  # Body is not JSON
            raise NarrativeUnavailableError("Narrative response is not JSON") from e

        try:
            content = data["choices"][0]["message"]["content"]
        except (KeyError, IndexError, TypeError) as e:
            raise NarrativeUnavailableError("No content in narrative response") from e

        if not isinstance(content, str) or not content.strip():
            raise NarrativeUnavailableError("Empty content in narrative response")

        return parse_narrative_content(content)
