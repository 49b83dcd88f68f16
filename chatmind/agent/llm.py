"""
LLM Client
==========

Sends one system + user prompt pair to the chat-completions API and
returns the generated text. Knows nothing about agents.

Single attempt only: the SDK's built-in retries are disabled so that a
failure is reported exactly once. Every failure becomes ProviderError:

- non-2xx HTTP status
- network failure or timeout
- a response with no generated content

A missing API key is a ConfigurationError, raised before any network
call is made.
"""

import httpx
import openai
from openai import AsyncOpenAI

from chatmind.agent.errors import ConfigurationError, ProviderError
from chatmind.agent.prompts import GenerationSettings
from chatmind.utils.config import OpenAIConfig
from chatmind.utils.logger import Logger, preview

logger = Logger("LLM")

DEFAULT_MODEL = "gpt-4o-mini"
DEFAULT_SETTINGS = GenerationSettings(temperature=0.7, max_tokens=1000)


class LLMClient:
    """
    Thin async wrapper around the OpenAI chat-completions endpoint.

    Example:
        llm = LLMClient(api_key="sk-...", timeout=20)
        text = await llm.complete("You are helpful.", "Say hi")
    """

    def __init__(
        self,
        api_key: str | None,
        model: str = DEFAULT_MODEL,
        base_url: str | None = None,
        timeout: float = 30.0,
        client: AsyncOpenAI | None = None
    ):
        """
        Args:
            api_key: Provider credential; None is accepted and reported per call
            model: Chat model name
            base_url: Optional OpenAI-compatible endpoint
            timeout: Default request timeout in seconds
            client: Pre-built SDK client (tests inject a mock here)
        """
        self.api_key = api_key
        self.model = model
        self.base_url = base_url
        self.timeout = timeout
        self._client = client

    @classmethod
    def from_config(cls, config: OpenAIConfig) -> "LLMClient":
        return cls(
            api_key=config.api_key,
            model=config.model,
            base_url=config.base_url,
            timeout=config.timeout_seconds,
        )

    @property
    def configured(self) -> bool:
        return bool(self.api_key)

    def ensure_configured(self) -> None:
        """
        Raises:
            ConfigurationError: If no API key is available
        """
        if not self.configured:
            raise ConfigurationError("OpenAI API key not configured (set OPENAI_API_KEY)")

    def _get_client(self) -> AsyncOpenAI:
        # Built lazily: the SDK refuses to construct without a key
        if self._client is None:
            self._client = AsyncOpenAI(
                api_key=self.api_key,
                base_url=self.base_url,
                timeout=httpx.Timeout(self.timeout),
                max_retries=0,
            )
        return self._client

    async def complete(
        self,
        system_prompt: str,
        user_prompt: str,
        settings: GenerationSettings | None = None,
        timeout: float | None = None
    ) -> str:
        """
        Generate text for a prompt pair.

        Args:
            system_prompt: Instructions and context
            user_prompt: The user's input
            settings: Temperature and output cap (fixed per agent kind)
            timeout: Per-call timeout override in seconds

        Returns:
            The generated text (never empty)

        Raises:
            ConfigurationError: If the API key is missing
            ProviderError: On HTTP failure, timeout or empty output
        """
        self.ensure_configured()
        settings = settings or DEFAULT_SETTINGS

        kwargs = {}
        if timeout is not None:
            kwargs["timeout"] = timeout

        logger.debug(
            f"Requesting completion from {self.model}",
            {"max_tokens": settings.max_tokens, "user_prompt": preview(user_prompt)},
        )

        try:
            response = await self._get_client().chat.completions.create(
                model=self.model,
                messages=[
                    {"role": "system", "content": system_prompt},
                    {"role": "user", "content": user_prompt},
                ],
                temperature=settings.temperature,
                max_tokens=settings.max_tokens,
                **kwargs
            )
        except openai.APITimeoutError as e:
            logger.error("OpenAI request timed out", e)
            raise ProviderError(
                f"OpenAI API error: request timed out after {timeout or self.timeout}s"
            ) from e
        except openai.APIStatusError as e:
            logger.error(f"OpenAI API returned {e.status_code}", e)
            reason = e.response.reason_phrase if e.response is not None else ""
            raise ProviderError(f"OpenAI API error: {e.status_code} {reason}".strip()) from e
        except openai.APIConnectionError as e:
            logger.error("Could not reach OpenAI API", e)
            raise ProviderError("OpenAI API error: connection failed") from e

        content = None
        if response.choices:
            content = response.choices[0].message.content

        if not content or not content.strip():
            raise ProviderError("No content generated by the model")

        logger.debug(f"Generated {len(content)} chars")
        return content
