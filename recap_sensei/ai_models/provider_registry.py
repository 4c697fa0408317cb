"""
Provider registry interfaces.

The pipeline never reaches for a model client directly. It is handed a
ProviderRegistry that says which capabilities exist and creates one session
per call. Sessions must be destroyed after their single use, which
provider_session() takes care of.
"""

from abc import ABC, abstractmethod
from contextlib import asynccontextmanager
from dataclasses import dataclass
from enum import Enum
from typing import AsyncIterator, Awaitable, Callable, TypeVar

from ..utils.logger_utils import setup_logging

logger = setup_logging(__name__)


class CapabilityKind(Enum):
    GENERAL = "general"
    SUMMARIZER = "summarizer"
    WRITER = "writer"


@dataclass(frozen=True)
class SessionOptions:
    """Options for a general prompting session."""
    output_language: str = "en"


@dataclass(frozen=True)
class SummarizerOptions:
    """Options for a dedicated summarizer."""
    type: str = "key-points"
    length: str = "medium"
    format: str = "plain-text"
    output_language: str = "en"


@dataclass(frozen=True)
class WriterOptions:
    """Options for a dedicated short-form writer."""
    tone: str = "casual"
    length: str = "short"
    output_language: str = "en"


class ProviderSession(ABC):
    """A single-use handle on a generation capability."""

    @abstractmethod
    async def destroy(self) -> None:
        """Release the session."""


class PromptSession(ProviderSession):
    @abstractmethod
    async def prompt(self, text: str) -> str:
        """Send a prompt and return the model's free-text answer."""

    async def warm_up(self) -> None:
        """Make one minimal round trip to the backing model; raises if it cannot answer."""


class SummarizerSession(ProviderSession):
    @abstractmethod
    async def summarize(self, text: str) -> str:
        """Summarize text."""


class WriterSession(ProviderSession):
    @abstractmethod
    async def write(self, text: str) -> str:
        """Write short-form text from an instruction."""


class ProviderRegistry(ABC):
    """Which capabilities exist in this environment, and how to create sessions for them."""

    @abstractmethod
    def has_general(self) -> bool:
        """Whether the general prompting capability is constructible."""

    @abstractmethod
    def has_summarizer(self) -> bool:
        """Whether a dedicated summarizer is constructible."""

    @abstractmethod
    def has_writer(self) -> bool:
        """Whether a dedicated writer is constructible."""

    @abstractmethod
    async def create_session(self, options: SessionOptions) -> PromptSession:
        pass

    @abstractmethod
    async def create_summarizer(self, options: SummarizerOptions) -> SummarizerSession:
        pass

    @abstractmethod
    async def create_writer(self, options: WriterOptions) -> WriterSession:
        pass

    def has_capability(self, kind: CapabilityKind) -> bool:
        if kind == CapabilityKind.GENERAL:
            return self.has_general()
        if kind == CapabilityKind.SUMMARIZER:
            return self.has_summarizer()
        if kind == CapabilityKind.WRITER:
            return self.has_writer()
        raise ValueError(f"Unknown capability kind: {kind}")


S = TypeVar("S", bound=ProviderSession)
O = TypeVar("O")


@asynccontextmanager
async def provider_session(factory: Callable[[O], Awaitable[S]], options: O) -> AsyncIterator[S]:
    """
    Create a session, yield it, and destroy it on every exit path.

    A failure while destroying is logged, not raised.
    """
    session = await factory(options)
    try:
        yield session
    finally:
        try:
            await session.destroy()
        except Exception as e:
            logger.warning(f"⚠️ Failed to release provider session: {e}")
