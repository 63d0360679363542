from typing import Any

import httpx
import openai

from app.extraction.client_base import BaseExtractionClient
from app.extraction.exceptions import ExtractionError, ExtractionNetworkError

SCHEMA_NAME = "extracted_template"


class OpenAIClientAdapter(BaseExtractionClient):
    """Structured-output extraction over any OpenAI-compatible chat endpoint.

    The SDK's own retries are disabled: a failed chunk fails the batch and the
    document is resumed from its cursor on the next pass.
    """

    def __init__(
        self,
        *,
        api_key: str,
        timeout_seconds: int,
        base_url: str | None = None,
    ) -> None:
        self._client = openai.OpenAI(
            api_key=api_key,
            timeout=timeout_seconds,
            base_url=base_url,
            max_retries=0,
        )

    def create_chat_completion(
        self,
        *,
        model: str,
        temperature: float,
        system_prompt: str,
        user_prompt: str,
        json_schema: dict[str, object],
    ) -> str:
        request: dict[str, Any] = {
            "model": model,
            "temperature": temperature,
            "messages": [
                {"role": "system", "content": system_prompt},
                {"role": "user", "content": user_prompt},
            ],
            "response_format": {
                "type": "json_schema",
                "json_schema": {"name": SCHEMA_NAME, "strict": True, "schema": json_schema},
            },
        }
        try:
            response = self._client.chat.completions.create(**request)
        except (openai.APIConnectionError, httpx.ConnectError, httpx.TimeoutException) as exc:
            raise ExtractionNetworkError(f"AI provider network error: {exc}") from exc
        except openai.APIError as exc:
            raise ExtractionNetworkError(f"AI provider API error: {exc}") from exc
        return _completion_text(response)


def _completion_text(response: Any) -> str:
    if not response.choices:
        raise ExtractionError("AI returned no choices")
    choice = response.choices[0]
    refusal = getattr(choice.message, "refusal", None)
    if refusal:
        raise ExtractionError(f"AI refused the extraction request: {refusal}")
    if choice.finish_reason == "length":
        raise ExtractionError("AI response was truncated before the JSON was complete")
    if not choice.message.content:
        raise ExtractionError("AI returned empty response")
    return choice.message.content
