"""Generative-AI client for concept writing, photo scoring and image rendering.

The client is built once from settings and handed to each service, so
tests substitute a fake instead of patching module globals.
"""

import asyncio
import base64
from collections.abc import Awaitable, Callable, Sequence
from dataclasses import dataclass
from typing import TypeVar

import openai
from openai import AsyncOpenAI
from tenacity import (
    AsyncRetrying,
    RetryError,
    retry_if_exception,
    stop_after_attempt,
    wait_exponential,
    wait_random,
)

from ..config import GenAISettings, get_settings
from ..logging.config import get_logger
from .errors import GenAIConfigurationError, MaxRetriesExceededError, NoImageInResponseError

logger = get_logger(__name__)

T = TypeVar("T")


def is_rate_limit_error(exc: BaseException) -> bool:
    """Check whether an error is an HTTP 429 from the model API."""
    if isinstance(exc, openai.RateLimitError):
        return True
    status = getattr(exc, "status_code", None) or getattr(exc, "status", None)
    return status == 429


def _log_retry(retry_state) -> None:
    logger.warning(
        "Rate limited by model API, backing off",
        attempt=retry_state.attempt_number,
        wait_seconds=round(retry_state.next_action.sleep, 2) if retry_state.next_action else None,
    )


async def call_with_retry(
    operation: Callable[[], Awaitable[T]],
    max_attempts: int = 3,
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
) -> T:
    """Invoke ``operation``, retrying rate-limit failures with backoff.

    Waits 1s, 2s, 4s... plus up to 1s of jitter between attempts.
    Any other error propagates immediately.

    Raises:
        MaxRetriesExceededError: If all ``max_attempts`` were rate limited.
    """
    retrying = AsyncRetrying(
        stop=stop_after_attempt(max_attempts),
        wait=wait_exponential(multiplier=1, exp_base=2) + wait_random(0, 1),
        retry=retry_if_exception(is_rate_limit_error),
        before_sleep=_log_retry,
        sleep=sleep,
    )
    try:
        async for attempt in retrying:
            with attempt:
                return await operation()
    except RetryError as exc:
        last_error = exc.last_attempt.exception()
        raise MaxRetriesExceededError(
            f"Max retries exceeded after {max_attempts} attempts"
        ) from last_error


@dataclass
class ReferencePhoto:
    """Reference photo bytes sent along with an image prompt."""

    filename: str
    data: bytes
    mime_type: str


class GenAIClient:
    """Thin wrapper over the OpenAI SDK with rate-limit retries."""

    def __init__(
        self,
        client: AsyncOpenAI,
        settings: GenAISettings,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self._client = client
        self.settings = settings
        self._sleep = sleep

    @property
    def image_model(self) -> str:
        return self.settings.image_model

    async def _with_retry(self, operation: Callable[[], Awaitable[T]]) -> T:
        return await call_with_retry(
            operation,
            max_attempts=self.settings.max_attempts,
            sleep=self._sleep,
        )

    async def generate_text(self, prompt: str, temperature: float | None = None) -> str:
        """Run a single-turn text completion and return the raw text."""

        async def _call() -> str:
            response = await self._client.chat.completions.create(
                model=self.settings.text_model,
                messages=[{"role": "user", "content": prompt}],
                temperature=(
                    self.settings.concept_temperature if temperature is None else temperature
                ),
            )
            return response.choices[0].message.content or ""

        return await self._with_retry(_call)

    async def analyze_image(self, data: bytes, mime_type: str, prompt: str) -> str:
        """Ask the vision model about one photo and return the raw text."""
        data_url = f"data:{mime_type};base64,{base64.b64encode(data).decode()}"

        async def _call() -> str:
            response = await self._client.chat.completions.create(
                model=self.settings.vision_model,
                messages=[
                    {
                        "role": "user",
                        "content": [
                            {"type": "text", "text": prompt},
                            {"type": "image_url", "image_url": {"url": data_url}},
                        ],
                    }
                ],
                temperature=0,
            )
            return response.choices[0].message.content or ""

        return await self._with_retry(_call)

    async def generate_image(
        self,
        prompt: str,
        references: Sequence[ReferencePhoto],
        quality: str,
        size: str,
    ) -> bytes:
        """Render one image from a prompt and reference photos.

        Returns:
            PNG bytes.

        Raises:
            NoImageInResponseError: If the response carries no image.
        """
        files = [(ref.filename, ref.data, ref.mime_type) for ref in references]

        async def _call() -> bytes:
            response = await self._client.images.edit(
                model=self.settings.image_model,
                image=files,
                prompt=prompt,
                quality=quality,
                size=size,
            )
            if not response.data or not response.data[0].b64_json:
                raise NoImageInResponseError("No image in model response")
            return base64.b64decode(response.data[0].b64_json)

        return await self._with_retry(_call)


def get_client(settings: GenAISettings | None = None) -> GenAIClient:
    """Build a client bound to the configured API key.

    Raises:
        GenAIConfigurationError: If OPENAI_API_KEY is not set.
    """
    if settings is None:
        settings = get_settings().genai
    if not settings.api_key:
        raise GenAIConfigurationError("OPENAI_API_KEY not configured")
    return GenAIClient(AsyncOpenAI(api_key=settings.api_key), settings)


_genai_client: GenAIClient | None = None


def get_genai_client() -> GenAIClient:
    """Get or create the process-wide client (FastAPI dependency)."""
    global _genai_client
    if _genai_client is None:
        _genai_client = get_client()
    return _genai_client
