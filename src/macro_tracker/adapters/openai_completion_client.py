"""OpenAI Chat Completions client for nutrition estimates."""

from dataclasses import dataclass

import httpx
from openai import AsyncOpenAI

from macro_tracker.services.estimation import CompletionClient


@dataclass
class OpenAICompletionClient(CompletionClient):
    """Completion client backed by the OpenAI Chat Completions API."""

    client: AsyncOpenAI

    @classmethod
    def create(
        cls,
        api_key: str,
        timeout_seconds: float = 20.0,
        http_client: httpx.AsyncClient | None = None,
    ) -> "OpenAICompletionClient":
        """Create a client with a bounded request timeout and no SDK retries."""
        return cls(
            client=AsyncOpenAI(
                api_key=api_key,
                timeout=httpx.Timeout(timeout_seconds, connect=5.0),
                max_retries=0,
                http_client=http_client,
            )
        )

    async def complete(  # noqa: PLR0913
        self,
        *,
        model: str,
        system_prompt: str,
        user_message: str,
        temperature: float,
        max_tokens: int,
        top_p: float,
        frequency_penalty: float,
        presence_penalty: float,
    ) -> str:
        """Send one chat completion request and return its text."""
        response = await self.client.chat.completions.create(
            model=model,
            messages=[
                {"role": "system", "content": system_prompt},
                {"role": "user", "content": user_message},
            ],
            temperature=temperature,
            max_tokens=max_tokens,
            top_p=top_p,
            frequency_penalty=frequency_penalty,
            presence_penalty=presence_penalty,
        )
        if not response.choices:
            raise RuntimeError("OpenAI returned no choices")
        content = response.choices[0].message.content
        if not content:
            raise RuntimeError("OpenAI returned an empty response")
        return content

    async def close(self) -> None:
        """Close the underlying HTTP session."""
        await self.client.close()
