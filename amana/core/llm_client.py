"""Async OpenAI chat client with retries for transient failures."""

import asyncio
import logging
from typing import Optional, List
from dataclasses import dataclass

from openai import AsyncOpenAI, RateLimitError, APIConnectionError, APIStatusError

from amana.config import get_settings

RETRY_DELAY_BASE = 1  # seconds

logger = logging.getLogger(__name__)
settings = get_settings()


@dataclass
class LLMResponse:
    """Response from the LLM."""

    text: str
    stop_reason: str = "stop"
    model: str = ""
    input_tokens: int = 0
    output_tokens: int = 0


class LLMClient:
    """Client for interacting with OpenAI API."""

    def __init__(self, api_key: Optional[str] = None, max_retries: Optional[int] = None):
        self.client = AsyncOpenAI(api_key=api_key or settings.openai_api_key or "unset")
        self.max_retries = max_retries if max_retries is not None else settings.llm_max_retries

    async def complete(
        self,
        system_prompt: str,
        messages: List[dict],
        model: Optional[str] = None,
        temperature: Optional[float] = None,
        max_tokens: Optional[int] = None,
        response_format: Optional[dict] = None,
    ) -> LLMResponse:
        """
        Send a chat completion request to OpenAI.

        Args:
            system_prompt: The system prompt for context
            messages: List of message dicts with 'role' and 'content'
            model: Model to use (defaults to config)
            temperature: Temperature for generation
            max_tokens: Max tokens to generate
            response_format: e.g. {"type": "json_object"} for structured output

        Returns:
            LLMResponse with text and metadata

        Raises:
            The last OpenAI error once retries are exhausted, or any
            non-retryable error immediately.
        """
        model = model or settings.default_model

        openai_messages = [{"role": "system", "content": system_prompt}]
        openai_messages.extend(messages)

        request_kwargs = {
            "model": model,
            "messages": openai_messages,
        }
        if temperature is not None:
            request_kwargs["temperature"] = temperature
        if max_tokens:
            request_kwargs["max_tokens"] = max_tokens
        if response_format:
            request_kwargs["response_format"] = response_format

        logger.debug(f"Sending request to OpenAI: model={model}, messages={len(messages)}")

        attempts = self.max_retries + 1
        last_error = None
        for attempt in range(attempts):
            try:
                response = await self.client.chat.completions.create(**request_kwargs)

                choice = response.choices[0]
                return LLMResponse(
                    text=choice.message.content or "",
                    stop_reason=choice.finish_reason or "stop",
                    model=response.model,
                    input_tokens=response.usage.prompt_tokens if response.usage else 0,
                    output_tokens=response.usage.completion_tokens if response.usage else 0,
                )

            except (RateLimitError, APIConnectionError) as e:
                last_error = e
                if attempt + 1 < attempts:
                    delay = RETRY_DELAY_BASE * (2 ** attempt)
                    logger.warning(f"LLM request failed (attempt {attempt + 1}/{attempts}), retrying in {delay}s: {e}")
                    await asyncio.sleep(delay)

            except APIStatusError as e:
                if e.status_code >= 500:
                    last_error = e
                    if attempt + 1 < attempts:
                        delay = RETRY_DELAY_BASE * (2 ** attempt)
                        logger.warning(f"LLM server error (attempt {attempt + 1}/{attempts}), retrying in {delay}s: {e}")
                        await asyncio.sleep(delay)
                else:
                    # Don't retry 4xx client errors
                    logger.error(f"OpenAI API client error: {e}")
                    raise

        logger.error(f"LLM request failed after {attempts} attempts: {last_error}")
        raise last_error


# Global client instance
_llm_client: Optional[LLMClient] = None


def get_llm_client() -> LLMClient:
    """Get or create the LLM client singleton."""
    global _llm_client
    if _llm_client is None:
        _llm_client = LLMClient()
    return _llm_client
