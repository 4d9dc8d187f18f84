"""
In-process fakes for the pipeline's backend and content interfaces.
"""

from typing import Callable, Optional, Union

from tabmind.agents.backends import (
    Availability,
    LanguageModelBackend,
    LanguageModelSession,
    PageContentProbe,
    SummarizerBackend,
    SummarizerSession,
)


Response = Union[str, Callable[[str, str], str]]


class FakeSession(LanguageModelSession):
    """Records prompts; answers with a fixed string or a function of (system_prompt, prompt)."""

    def __init__(self, backend: "FakeLanguageModel", system_prompt: str, temperature: float, top_k: int):
        self.backend = backend
        self.system_prompt = system_prompt
        self.temperature = temperature
        self.top_k = top_k
        self.destroyed = False
        self.prompts: list[str] = []

    async def prompt(self, text: str) -> str:
        if self.destroyed:
            raise RuntimeError("Session has been destroyed")
        self.prompts.append(text)
        if self.backend.error is not None:
            raise self.backend.error
        if callable(self.backend.response):
            return self.backend.response(self.system_prompt, text)
        return self.backend.response

    def destroy(self) -> None:
        if not self.destroyed:
            self.destroyed = True
            self.backend.live_sessions -= 1
            self.backend.events.append("destroy")


class FakeLanguageModel(LanguageModelBackend):
    """In-process language model that tracks how many sessions are alive."""

    def __init__(
        self,
        availability: Availability = Availability.READILY,
        response: Response = "[]",
        error: Optional[Exception] = None,
    ):
        self.state = availability
        self.response = response
        self.error = error
        self.sessions: list[FakeSession] = []
        self.live_sessions = 0
        self.max_live_sessions = 0
        self.events: list[str] = []

    async def availability(self) -> Availability:
        return self.state

    async def create_session(self, system_prompt: str, temperature: float, top_k: int) -> FakeSession:
        session = FakeSession(self, system_prompt, temperature, top_k)
        self.sessions.append(session)
        self.live_sessions += 1
        self.max_live_sessions = max(self.max_live_sessions, self.live_sessions)
        self.events.append("create")
        return session


class FakeSummarizerSession(SummarizerSession):
    def __init__(self, backend: "FakeSummarizerBackend"):
        self.backend = backend
        self.destroyed = False

    async def summarize(self, text: str) -> str:
        self.backend.calls.append(text)
        if self.backend.error is not None:
            raise self.backend.error
        return self.backend.summary

    def destroy(self) -> None:
        self.destroyed = True


class FakeSummarizerBackend(SummarizerBackend):
    def __init__(
        self,
        availability: Availability = Availability.READILY,
        summary: str = "A short summary.",
        error: Optional[Exception] = None,
    ):
        self.state = availability
        self.summary = summary
        self.error = error
        self.calls: list[str] = []
        self.sessions: list[FakeSummarizerSession] = []
        self.session_options: list[dict] = []

    async def availability(self) -> Availability:
        return self.state

    async def create_session(self, mode="tl;dr", format="plain-text", length="short") -> FakeSummarizerSession:
        session = FakeSummarizerSession(self)
        self.sessions.append(session)
        self.session_options.append({"mode": mode, "format": format, "length": length})
        return session


class FakeContentProbe(PageContentProbe):
    """Serves page text from a dict and counts extractions."""

    def __init__(self, pages: Optional[dict[int, str]] = None, error: Optional[Exception] = None):
        self.pages = pages or {}
        self.error = error
        self.calls: list[tuple[int, int]] = []

    async def extract_text(self, tab_id: int, max_chars: int) -> Optional[str]:
        self.calls.append((tab_id, max_chars))
        if self.error is not None:
            raise self.error
        text = self.pages.get(tab_id)
        return text[:max_chars] if text is not None else None


LONG_TEXT = "Graph databases store nodes and relationships. " * 10
