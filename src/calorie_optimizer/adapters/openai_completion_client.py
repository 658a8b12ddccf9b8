"""OpenAI Responses API client for structured recipe completions."""

import json
from dataclasses import dataclass

import openai
from openai import AsyncOpenAI

from calorie_optimizer.domain.errors import (
    CompletionTimeoutError,
    MalformedOutputError,
    RateLimitError,
)
from calorie_optimizer.services.recipes import CompletionClient


@dataclass
class OpenAICompletionClient(CompletionClient):
    """Completion client backed by OpenAI Responses API."""

    client: AsyncOpenAI

    @classmethod
    def create(cls, api_key: str) -> "OpenAICompletionClient":
        """Create an OpenAI completion client."""
        return cls(client=AsyncOpenAI(api_key=api_key))

    async def complete(  # noqa: PLR0913
        self,
        *,
        model: str,
        reasoning_effort: str | None,
        store: bool,
        prompt: str,
        schema: dict[str, object],
        schema_name: str,
    ) -> dict[str, object]:
        """Call OpenAI Responses API with structured outputs."""
        request_payload: dict[str, object] = {
            "model": model,
            "input": [
                {
                    "role": "user",
                    "content": [{"type": "input_text", "text": prompt}],
                }
            ],
            "text": {
                "format": {
                    "type": "json_schema",
                    "name": schema_name,
                    "strict": True,
                    "schema": schema,
                }
            },
            "store": store,
        }
        if reasoning_effort:
            request_payload["reasoning"] = {"effort": reasoning_effort}

        try:
            response = await self.client.responses.create(**request_payload)
        except openai.RateLimitError as exc:
            raise RateLimitError(str(exc)) from exc
        except openai.APITimeoutError as exc:
            raise CompletionTimeoutError(str(exc)) from exc

        output_text = response.output_text
        if not output_text:
            raise MalformedOutputError("OpenAI returned an empty response")
        try:
            return json.loads(output_text)
        except json.JSONDecodeError as exc:
            raise MalformedOutputError(f"OpenAI returned invalid JSON: {exc}") from exc
