"""
Specialized-then-general fallback for pipeline stages.

Each stage may have a specialized provider (summarizer, writer) and always
has the general prompting model. The specialized path is tried first when it
exists; any failure falls through to the general path. A stage only fails
when the general path fails too.
"""

from dataclasses import dataclass
from typing import Awaitable, Callable, Generic, List, Optional, TypeVar

from ..ai_models.provider_registry import CapabilityKind
from ..utils.logger_utils import setup_logging
from .capability_probe import CapabilityProbe
from .exceptions.recap_exceptions import StageFailure

logger = setup_logging(__name__)

T = TypeVar("T")

PATH_SPECIALIZED = "specialized"
PATH_GENERAL = "general"

StageCall = Callable[[], Awaitable[T]]


@dataclass(frozen=True)
class StageOutcome(Generic[T]):
    """Either a value or the error of one attempt along one path."""

    path: str
    value: Optional[T] = None
    error: Optional[Exception] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @classmethod
    def success(cls, path: str, value: T) -> "StageOutcome[T]":
        return cls(path=path, value=value)

    @classmethod
    def failure(cls, path: str, error: Exception) -> "StageOutcome[T]":
        return cls(path=path, error=error)


async def attempt(path: str, call: StageCall) -> StageOutcome:
    """Run one call and capture its result or error as a StageOutcome."""
    try:
        value = await call()
    except Exception as e:
        return StageOutcome.failure(path, e)
    return StageOutcome.success(path, value)


class FallbackOrchestrator:
    """Runs stages against the specialized provider first, then the general one."""

    def __init__(self, probe: CapabilityProbe):
        self._probe = probe

    async def run_stage(
        self,
        stage_name: str,
        kind: Optional[CapabilityKind],
        specialized_call: Optional[StageCall],
        general_call: StageCall,
        anime: Optional[str] = None,
        episode: Optional[str] = None,
    ) -> T:
        """
        Run one stage.

        Args:
            stage_name: Stage label, used in logs and in StageFailure.
            kind: Specialized capability to probe, or None when the stage has none.
            specialized_call: Attempt on the specialized provider, or None.
            general_call: Attempt on the general provider; always the last path.
            anime: Anime name of the run, carried on StageFailure.
            episode: Episode label of the run, carried on StageFailure.

        Returns:
            The value of the first successful attempt.

        Raises:
            StageFailure: The general attempt failed (after any specialized one).
        """
        outcomes: List[StageOutcome] = []

        if specialized_call is not None and kind is not None and self._probe.probe_specialized(kind):
            logger.info(f"🎯 [{stage_name}] trying specialized {kind.value}")
            outcome = await attempt(PATH_SPECIALIZED, specialized_call)
            if outcome.ok:
                return outcome.value
            logger.warning(f"⚠️ [{stage_name}] specialized {kind.value} failed, using general model: {outcome.error}")
            outcomes.append(outcome)

        logger.info(f"🎯 [{stage_name}] using general model")
        outcome = await attempt(PATH_GENERAL, general_call)
        if outcome.ok:
            return outcome.value

        outcomes.append(outcome)
        logger.error(f"❌ [{stage_name}] general model failed: {outcome.error}")
        raise StageFailure(
            stage_name, cause=outcome.error, attempts=outcomes, anime=anime, episode=episode
        ) from outcome.error
