# ABOUTME: Game master generation client wrapping the OpenAI chat completions API.
# ABOUTME: Sends the system prompt plus the full transcript and returns the raw reply text.

from typing import Any

from loguru import logger
from openai import AsyncOpenAI

from imagination.agents.exceptions import GenerationFailed
from imagination.agents.retry import backend_retrying
from imagination.config.prompts import GAME_MASTER_SYSTEM_PROMPT
from imagination.models.messages import ChatMessage, normalize_whitespace


class GenerationClient:
    """
    Generation collaborator: transcript in, assistant reply text out.

    The system prompt is not part of the stored transcript; it is
    prepended on every call.
    """

    def __init__(
        self,
        client: AsyncOpenAI,
        model: str = "gpt-4o",
        system_prompt: str = GAME_MASTER_SYSTEM_PROMPT,
        retry_attempts: int = 1,
        timeout: float = 60.0,
    ):
        """
        Initialize generation client.

        Args:
            client: AsyncOpenAI client instance
            model: Chat model to use (default: gpt-4o)
            system_prompt: Game master instructions
            retry_attempts: Total attempts on transient errors (default: 1, no retry)
            timeout: Request timeout in seconds (default: 60.0)
        """
        self.client = client
        self.model = model
        self.system_prompt = normalize_whitespace(system_prompt)
        self.retry_attempts = retry_attempts
        self.timeout = timeout

    async def generate(self, messages: list[ChatMessage]) -> str:
        """
        Ask the backend for the next game master reply.

        Args:
            messages: Full session transcript, oldest first

        Returns:
            Raw reply content (expected to be a JSON phrase array)

        Raises:
            GenerationFailed: When the call fails or the reply is empty
        """
        kwargs: dict[str, Any] = {
            "model": self.model,
            "messages": [
                {"role": "system", "content": self.system_prompt},
                *(message.to_openai() for message in messages),
            ],
            "timeout": self.timeout,
        }

        try:
            async for attempt in backend_retrying(self.retry_attempts):
                with attempt:
                    response = await self.client.chat.completions.create(**kwargs)
        except Exception as e:
            raise GenerationFailed(f"OpenAI API call failed: {e}") from e

        if not response.choices:
            raise GenerationFailed("Backend returned no choices")

        content = response.choices[0].message.content or ""
        if not normalize_whitespace(content):
            raise GenerationFailed("Backend returned an empty reply")

        logger.debug(f"Backend reply ({len(content)} chars) for {len(messages)} messages")
        return content
