"""
Shared fakes for the RecapSensei tests.

FakeRegistry stands in for the Azure-backed registry: every session it hands
out records its calls and whether it was destroyed, and each capability can be
made absent or made to fail.
"""

import inspect
import json
from typing import Any, Callable, List, Optional, Tuple

import pytest

from recap_sensei.ai_models.provider_registry import (
    CapabilityKind,
    PromptSession,
    ProviderRegistry,
    SummarizerSession,
    WriterSession,
)
from recap_sensei.config import Config

RECAP_JSON = {
    "episodeTitle": "The Hero's Farewell",
    "summary": "Frieren sets out on a new journey after Himmel's funeral.",
    "keyMoments": ["Himmel's funeral", "Frieren regrets not knowing him better"],
    "characters": [{"name": "Frieren", "action": "Begins a journey to understand humans"}],
    "plotProgress": "The journey to Aureole begins.",
    "cliffhanger": "What will Frieren find at the end of her journey?",
}

BLURB_TEXT = "Frieren Ep 1 hits different 😭 A farewell that starts a whole new journey. Don't miss it! ✨"
CONDENSED_TEXT = "Condensed: the party mourns Himmel and Frieren decides to travel."

Handler = Callable[[str], Any]


def default_prompt_handler(text: str) -> str:
    """Answers each of the three prompts the way a well-behaved model would."""
    if "Output ONLY valid JSON." in text:
        return "Here is the recap:\n```json\n" + json.dumps(RECAP_JSON) + "\n```"
    if "social post" in text:
        return f'"{BLURB_TEXT}"'
    return CONDENSED_TEXT


def failing_handler(message: str = "provider rejected the request") -> Handler:
    def _handler(text: str) -> str:
        raise RuntimeError(message)
    return _handler


async def _answer(handler: Handler, text: str) -> str:
    result = handler(text)
    if inspect.isawaitable(result):
        result = await result
    return result


class _FakeSession:
    def __init__(self, registry: "FakeRegistry", kind: CapabilityKind, handler: Handler):
        self.registry = registry
        self.kind = kind
        self.handler = handler
        self.destroyed = False

    async def _handle(self, text: str) -> str:
        self.registry.calls.append((self.kind, text))
        return await _answer(self.handler, text)

    async def destroy(self) -> None:
        self.destroyed = True


class FakePromptSession(_FakeSession, PromptSession):
    async def prompt(self, text: str) -> str:
        return await self._handle(text)

    async def warm_up(self) -> None:
        if self.registry.ready_error is not None:
            raise self.registry.ready_error


class FakeSummarizerSession(_FakeSession, SummarizerSession):
    async def summarize(self, text: str) -> str:
        return await self._handle(text)


class FakeWriterSession(_FakeSession, WriterSession):
    async def write(self, text: str) -> str:
        return await self._handle(text)


class FakeRegistry(ProviderRegistry):
    """In-memory ProviderRegistry with configurable capabilities and handlers."""

    def __init__(self,
                 general: bool = True,
                 summarizer: bool = False,
                 writer: bool = False,
                 prompt_handler: Optional[Handler] = None,
                 summarizer_handler: Optional[Handler] = None,
                 writer_handler: Optional[Handler] = None,
                 session_error: Optional[Exception] = None,
                 ready_error: Optional[Exception] = None):
        self.general = general
        self.summarizer = summarizer
        self.writer = writer
        self.prompt_handler = prompt_handler or default_prompt_handler
        self.summarizer_handler = summarizer_handler or (lambda text: CONDENSED_TEXT)
        self.writer_handler = writer_handler or (lambda text: BLURB_TEXT)
        self.session_error = session_error
        self.ready_error = ready_error

        self.calls: List[Tuple[CapabilityKind, str]] = []
        self.sessions: List[_FakeSession] = []

    def has_general(self) -> bool:
        return self.general

    def has_summarizer(self) -> bool:
        return self.summarizer

    def has_writer(self) -> bool:
        return self.writer

    def _track(self, session: _FakeSession) -> _FakeSession:
        self.sessions.append(session)
        return session

    async def create_session(self, options) -> PromptSession:
        if self.session_error is not None:
            raise self.session_error
        return self._track(FakePromptSession(self, CapabilityKind.GENERAL, self.prompt_handler))

    async def create_summarizer(self, options) -> SummarizerSession:
        return self._track(FakeSummarizerSession(self, CapabilityKind.SUMMARIZER, self.summarizer_handler))

    async def create_writer(self, options) -> WriterSession:
        return self._track(FakeWriterSession(self, CapabilityKind.WRITER, self.writer_handler))

    def calls_for(self, kind: CapabilityKind) -> List[str]:
        return [text for call_kind, text in self.calls if call_kind == kind]

    @property
    def all_sessions_destroyed(self) -> bool:
        return all(session.destroyed for session in self.sessions)


@pytest.fixture
def settings(tmp_path) -> Config:
    """Default settings, isolated from any config.ini on disk."""
    return Config(str(tmp_path / "config.ini"))


@pytest.fixture
def registry() -> FakeRegistry:
    return FakeRegistry()
