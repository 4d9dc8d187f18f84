"""
Language model, summarization and page content interfaces.

The clustering engine, the cluster summarizer and the tab summarizer talk to
these abstractions only, so any provider (or a test fake) can be plugged in.
"""

from abc import ABC, abstractmethod
from enum import Enum
from typing import Optional


class Availability(str, Enum):
    """Backend availability as reported by its probe."""
    READILY = "readily"
    AFTER_DOWNLOAD = "after-download"
    NO = "no"


class LanguageModelSession(ABC):
    """A live prompt session with a fixed system instruction."""

    @abstractmethod
    async def prompt(self, text: str) -> str:
        """
        Send a single prompt and return the model's full response.

        Args:
            text: User prompt

        Returns:
            Raw response text
        """
        pass

    @abstractmethod
    def destroy(self) -> None:
        """Release the session. Further prompts are an error."""
        pass


class LanguageModelBackend(ABC):
    """Abstract base for language model providers."""

    @abstractmethod
    async def availability(self) -> Availability:
        """Probe whether sessions can be created right now."""
        pass

    @abstractmethod
    async def create_session(
        self,
        system_prompt: str,
        temperature: float,
        top_k: int,
    ) -> LanguageModelSession:
        """
        Open a new prompt session.

        Args:
            system_prompt: Instruction applied to every prompt in the session
            temperature: Sampling temperature
            top_k: Top-k sampling cutoff (ignored by providers without one)

        Returns:
            A new session; the caller owns it and must destroy it
        """
        pass

    async def is_ready(self) -> bool:
        return await self.availability() is Availability.READILY


class SummarizerSession(ABC):
    """A live summarization session."""

    @abstractmethod
    async def summarize(self, text: str) -> str:
        pass

    @abstractmethod
    def destroy(self) -> None:
        pass


class SummarizerBackend(ABC):
    """Abstract base for page summarization providers."""

    @abstractmethod
    async def availability(self) -> Availability:
        pass

    @abstractmethod
    async def create_session(
        self,
        mode: str = "tl;dr",
        format: str = "plain-text",
        length: str = "short",
    ) -> SummarizerSession:
        """
        Open a new summarization session.

        Args:
            mode: Summary style ("tl;dr", "key-points", "teaser", "headline")
            format: Output format ("plain-text" or "markdown")
            length: Output length ("short", "medium", "long")
        """
        pass

    async def is_ready(self) -> bool:
        return await self.availability() is Availability.READILY


class PageContentProbe(ABC):
    """Abstract base for page content sources."""

    @abstractmethod
    async def extract_text(self, tab_id: int, max_chars: int) -> Optional[str]:
        """
        Get the visible text of a tab's page.

        Args:
            tab_id: Tab to read
            max_chars: Maximum number of characters to return

        Returns:
            Up to ``max_chars`` characters of text, or None if nothing is known
        """
        pass
