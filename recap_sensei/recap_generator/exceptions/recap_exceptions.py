"""
Exception classes for recap generation.

This module defines the error kinds raised by the recap pipeline. Every kind
maps to exactly one user-facing message plus a static remediation hint, which
is what the CLI and the HTTP API show to the user.
"""

from typing import List, Optional, Any


REMEDIATION_HINT = (
    "Please ensure the text-generation provider is enabled: set AZURE_OPENAI_API_KEY, "
    "AZURE_OPENAI_API_ENDPOINT, AZURE_OPENAI_API_VERSION and "
    "AZURE_OPENAI_LLM_DEPLOYMENT_NAME_GENERAL in your .env file."
)


class RecapSenseiError(Exception):
    """Base exception for recap generation errors."""

    kind = "RecapSenseiError"

    def __init__(self, message: str, anime: Optional[str] = None, episode: Optional[str] = None):
        self.message = message
        self.anime = anime
        self.episode = episode
        super().__init__(message)

    @property
    def episode_identifier(self) -> str:
        """Get episode identifier string."""
        if self.anime:
            return f"{self.anime} Ep{self.episode or '?'}"
        return "Unknown Episode"

    @property
    def user_message(self) -> str:
        """Message shown to the user, verbatim from the error."""
        return self.message

    @property
    def remediation_hint(self) -> str:
        return REMEDIATION_HINT

    def to_dict(self) -> dict:
        return {
            "kind": self.kind,
            "message": self.user_message,
            "hint": self.remediation_hint,
        }


class InputValidationError(RecapSenseiError):
    """Raised before a run starts when the input cannot be processed."""

    @property
    def remediation_hint(self) -> str:
        return "Fill in the missing fields and try again."


class MissingInput(InputValidationError):
    """Neither a screenshot nor dialogue text was provided."""

    kind = "MissingInput"

    def __init__(self, anime: Optional[str] = None, episode: Optional[str] = None):
        super().__init__("Please provide at least a screenshot or subtitles!", anime, episode)


class MissingSubject(InputValidationError):
    """The anime name is required but absent."""

    kind = "MissingSubject"

    def __init__(self, episode: Optional[str] = None):
        super().__init__("Please enter the anime name!", None, episode)


class ProviderUnavailable(RecapSenseiError):
    """The general-purpose text-generation capability does not exist in this environment."""

    kind = "ProviderUnavailable"

    def __init__(self, message: Optional[str] = None, anime: Optional[str] = None, episode: Optional[str] = None):
        super().__init__(
            message or "Text-generation provider is not available. No general model is configured.",
            anime,
            episode,
        )


class ModelNotReady(RecapSenseiError):
    """The capability exists but its backing model could not be reached or provisioned."""

    kind = "ModelNotReady"

    def __init__(self, message: Optional[str] = None, original_error: Optional[Exception] = None,
                 anime: Optional[str] = None, episode: Optional[str] = None):
        self.original_error = original_error
        if message is None:
            message = "The language model is configured but not ready yet."
            if original_error is not None:
                message += f" ({original_error})"
        super().__init__(message, anime, episode)


class StageFailure(RecapSenseiError):
    """Both the specialized and the general attempt failed for one pipeline stage."""

    kind = "StageFailure"

    def __init__(self,
                 stage: str,
                 cause: Optional[BaseException] = None,
                 attempts: Optional[List[Any]] = None,
                 anime: Optional[str] = None,
                 episode: Optional[str] = None):
        self.stage = stage
        self.cause = cause
        self.attempts = attempts or []
        message = f"Stage '{stage}' failed"
        if cause is not None:
            message += f": {cause}"
        super().__init__(message, anime, episode)

    @property
    def attempted_paths(self) -> List[str]:
        """Paths tried for this stage, in order."""
        return [attempt.path for attempt in self.attempts]


class UnexpectedPipelineError(RecapSenseiError):
    """Wraps any non-domain exception that escaped a run."""

    kind = "UnexpectedError"

    def __init__(self, original_error: Exception, anime: Optional[str] = None, episode: Optional[str] = None):
        self.original_error = original_error
        super().__init__(f"Unexpected error: {original_error}", anime, episode)
