"""
OpenAI implementations of the language model and summarizer backends.
"""

from typing import Optional

from openai import AsyncOpenAI

from tabmind.agents.backends import (
    Availability,
    LanguageModelBackend,
    LanguageModelSession,
    SummarizerBackend,
    SummarizerSession,
)
from tabmind.config import get_logger, get_settings

logger = get_logger(__name__)


_LENGTH_HINTS = {
    "short": "one or two sentences",
    "medium": "a short paragraph",
    "long": "a few paragraphs",
}

_MODE_HINTS = {
    "tl;dr": "a tl;dr of the text",
    "key-points": "the key points of the text as a list",
    "teaser": "an intriguing teaser for the text",
    "headline": "a single headline for the text",
}


class OpenAIChatSession(LanguageModelSession):
    """Chat-completions session with a fixed system prompt."""

    def __init__(
        self,
        client: AsyncOpenAI,
        model: str,
        system_prompt: str,
        temperature: float,
        top_k: int,
    ):
        self.client = client
        self.model = model
        self.system_prompt = system_prompt
        self.temperature = temperature
        # Chat completions have no top-k; kept for parity with the session config
        self.top_k = top_k
        self._destroyed = False

    async def prompt(self, text: str) -> str:
        if self._destroyed:
            raise RuntimeError("Session has been destroyed")

        response = await self.client.chat.completions.create(
            model=self.model,
            messages=[
                {"role": "system", "content": self.system_prompt},
                {"role": "user", "content": text},
            ],
            temperature=self.temperature,
        )
        return response.choices[0].message.content or ""

    def destroy(self) -> None:
        self._destroyed = True

    @property
    def destroyed(self) -> bool:
        return self._destroyed


class OpenAILanguageModel(LanguageModelBackend):
    """Language model backend using OpenAI chat completions."""

    def __init__(
        self,
        api_key: Optional[str] = None,
        model: Optional[str] = None,
        client: Optional[AsyncOpenAI] = None,
    ):
        """
        Initialize the backend.

        Args:
            api_key: OpenAI API key. If not provided, loaded from config.
            model: Chat model name. If not provided, loaded from config.
            client: Pre-built client (mainly for tests)
        """
        settings = get_settings()
        self.api_key = api_key or settings.openai_api_key
        self.model = model or settings.openai_llm_model
        self.client = client
        if self.client is None and self.api_key:
            self.client = AsyncOpenAI(api_key=self.api_key, timeout=settings.request_timeout)

    async def availability(self) -> Availability:
        if self.client is None:
            return Availability.NO
        return Availability.READILY

    async def create_session(
        self,
        system_prompt: str,
        temperature: float,
        top_k: int,
    ) -> OpenAIChatSession:
        if self.client is None:
            raise RuntimeError("OpenAI API key not configured")
        return OpenAIChatSession(self.client, self.model, system_prompt, temperature, top_k)


class OpenAISummarizerSession(SummarizerSession):
    """Summarizer session built on a chat session."""

    def __init__(self, chat: OpenAIChatSession):
        self.chat = chat

    async def summarize(self, text: str) -> str:
        result = await self.chat.prompt(text)
        return result.strip()

    def destroy(self) -> None:
        self.chat.destroy()


class OpenAISummarizer(SummarizerBackend):
    """Summarizer backend that prompts an OpenAI chat model."""

    def __init__(self, language_model: OpenAILanguageModel):
        self.language_model = language_model

    async def availability(self) -> Availability:
        return await self.language_model.availability()

    async def create_session(
        self,
        mode: str = "tl;dr",
        format: str = "plain-text",
        length: str = "short",
    ) -> OpenAISummarizerSession:
        system_prompt = (
            f"You summarize web page text. Write {_MODE_HINTS.get(mode, _MODE_HINTS['tl;dr'])} "
            f"in {_LENGTH_HINTS.get(length, _LENGTH_HINTS['short'])}. "
            + ("Use Markdown." if format == "markdown" else "Use plain text without Markdown.")
        )
        chat = await self.language_model.create_session(
            system_prompt=system_prompt,
            temperature=0.2,
            top_k=3,
        )
        logger.debug(f"Opened summarizer session (mode={mode}, length={length})")
        return OpenAISummarizerSession(chat)
