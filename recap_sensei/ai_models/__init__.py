from .provider_registry import (
    CapabilityKind,
    SessionOptions,
    SummarizerOptions,
    WriterOptions,
    ProviderSession,
    PromptSession,
    SummarizerSession,
    WriterSession,
    ProviderRegistry,
    provider_session,
)

__all__ = [
    "CapabilityKind",
    "SessionOptions",
    "SummarizerOptions",
    "WriterOptions",
    "ProviderSession",
    "PromptSession",
    "SummarizerSession",
    "WriterSession",
    "ProviderRegistry",
    "provider_session",
]
