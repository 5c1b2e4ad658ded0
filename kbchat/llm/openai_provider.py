"""OpenAI LLM Provider."""

from collections.abc import AsyncIterator

import openai
from langchain_openai import ChatOpenAI

from kbchat.core.config import LLMConfig
from kbchat.core.exceptions import ConfigurationError, LLMError
from kbchat.llm.factory import LLMFactory


@LLMFactory.register("openai")
class OpenAIProvider:
    """OpenAI API provider using langchain-openai.

    Each bot picks its own model and temperature, so clients are built per
    (model, temperature) pair and reused.
    """

    def __init__(self, config: LLMConfig):
        self.config = config
        self._clients: dict[tuple[str, float], ChatOpenAI] = {}

    def ensure_ready(self) -> None:
        """Fail before any model call when credentials are missing."""
        if not self.config.openai_api_key:
            raise ConfigurationError("Server misconfigured: OpenAI API key missing")

    def _get_client(self, model: str | None, temperature: float | None) -> ChatOpenAI:
        model = model or self.config.model
        temperature = self.config.temperature if temperature is None else temperature
        key = (model, temperature)

        if key not in self._clients:
            self.ensure_ready()
            client_kwargs = {
                "model": model,
                "api_key": self.config.openai_api_key,
                "temperature": temperature,
                "max_tokens": self.config.max_tokens,
                "streaming": True,
            }
            if self.config.base_url:
                client_kwargs["base_url"] = self.config.base_url
            self._clients[key] = ChatOpenAI(**client_kwargs)
        return self._clients[key]

    async def stream(
        self,
        messages: list[dict[str, str]],
        model: str | None = None,
        temperature: float | None = None,
        **kwargs,
    ) -> AsyncIterator[str]:
        """Generate a streaming response.

        Raises:
            LLMError: The OpenAI API failed before or during the stream.
        """
        client = self._get_client(model, temperature)
        try:
            async for chunk in client.astream(messages, **kwargs):
                if chunk.content:
                    yield chunk.content
        except openai.OpenAIError as e:
            raise LLMError(f"OpenAI request failed: {e}", provider="openai") from e
