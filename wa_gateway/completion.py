"""
Text completion via the OpenAI API.

prompt in, text out. Failures are raised as CompletionError subclasses so the
caller can tell a bad key or a rate limit apart from everything else.
"""

from typing import Optional

import openai
from openai import OpenAI

from wa_gateway.errors import CompletionError, InvalidCredentialsError, RateLimitError
from wa_gateway.logging_config import get_logger

logger = get_logger(__name__)


class CompletionService:
    """Chat-completions wrapper used by the AI fallback bot."""

    def __init__(self, api_key: str, model: str, client: Optional[OpenAI] = None,
                 max_tokens: int = 500, temperature: float = 0.7):
        self.model = model
        self.max_tokens = max_tokens
        self.temperature = temperature
        # Client is None when no API key is configured; generate() then fails cleanly.
        self.client = client or (OpenAI(api_key=api_key) if api_key else None)

    def generate(self, user_text: str, system_prompt: Optional[str] = None,
                 history: Optional[list[dict]] = None) -> str:
        """
        Generate a reply for ``user_text``.

        Args:
            user_text: the end user's message
            system_prompt: optional system message placed first
            history: optional prior turns [{"role": "user"|"assistant", "content": "..."}]

        Raises:
            InvalidCredentialsError: the API key was rejected (401)
            RateLimitError: the account is rate limited (429)
            CompletionError: anything else, including an empty completion
        """
        if self.client is None:
            raise InvalidCredentialsError("OpenAI is not configured")

        messages = []
        if system_prompt:
            messages.append({"role": "system", "content": system_prompt})
        for turn in history or []:
            messages.append({"role": turn["role"], "content": turn["content"]})
        messages.append({"role": "user", "content": user_text})

        try:
            response = self.client.chat.completions.create(
                model=self.model,
                messages=messages,
                max_tokens=self.max_tokens,
                temperature=self.temperature,
            )
        except openai.AuthenticationError as e:
            logger.error("openai_auth_failed", error=str(e))
            raise InvalidCredentialsError("Invalid OpenAI API key") from e
        except openai.RateLimitError as e:
            logger.warning("openai_rate_limited", error=str(e))
            raise RateLimitError("OpenAI rate limit exceeded") from e
        except openai.OpenAIError as e:
            logger.error("openai_request_failed", error=str(e))
            raise CompletionError("Failed to generate AI response") from e

        content = response.choices[0].message.content if response.choices else None
        if not content or not content.strip():
            raise CompletionError("No response generated from OpenAI")

        return content.strip()
