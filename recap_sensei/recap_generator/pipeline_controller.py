"""
Pipeline Controller - Main coordinator for recap generation.

This module sequences a run end to end (availability check, optional
condensation, recap, blurb), owns the visible PipelineState, and turns any
unrecovered failure into one user-facing error.
"""

import itertools
from datetime import datetime
from typing import Callable, List, Optional, Union

from ..ai_models.provider_registry import ProviderRegistry, SessionOptions
from ..config import Config, config as default_config
from ..storage.recap_history import ResultStore
from ..utils.logger_utils import setup_logging
from .capability_probe import CapabilityProbe
from .exceptions.recap_exceptions import (
    MissingInput,
    MissingSubject,
    RecapSenseiError,
    UnexpectedPipelineError,
)
from .fallback_orchestrator import FallbackOrchestrator
from .models.recap_models import GenerationInput, PipelineResult
from .models.state_models import (
    AwaitingCapability,
    Completed,
    Failed,
    Idle,
    PipelineState,
    Processing,
    STAGE_BLURB,
    STAGE_CONDENSE,
    STAGE_RECAP,
)
from .recap_stages import RecapStageRunner

logger = setup_logging(__name__)

StateListener = Callable[[PipelineState], None]


class PipelineController:
    """
    Runs the recap pipeline and owns its state.

    Only one run is visible at a time. Starting a run while another is still
    in flight supersedes it: the older run stops before its next stage and
    its result is discarded (latest run wins).
    """

    def __init__(self,
                 registry: ProviderRegistry,
                 config: Optional[Config] = None,
                 result_store: Optional[ResultStore] = None,
                 clock: Callable[[], datetime] = datetime.now):
        """
        Initialize the controller.

        Args:
            registry: Provider capabilities to run against
            config: Configuration (uses the global config if not provided)
            result_store: History store for completed results
            clock: Timestamp source for completed results
        """
        self.config = config or default_config
        self.result_store = result_store
        self._clock = clock

        session_options = SessionOptions(output_language=self.config.output_language)
        self._probe = CapabilityProbe(registry, session_options)
        self._stages = RecapStageRunner(
            registry,
            FallbackOrchestrator(self._probe),
            output_language=self.config.output_language,
            excerpt_length=self.config.fallback_excerpt_length,
            blurb_max_chars=self.config.blurb_max_chars,
        )

        self._state: PipelineState = Idle()
        self._run_ids = itertools.count(1)
        self._current_run_id = 0
        self._listeners: List[StateListener] = []
        self.last_failure: Optional[Failed] = None

    @property
    def state(self) -> PipelineState:
        return self._state

    @property
    def current_result(self) -> Optional[PipelineResult]:
        if isinstance(self._state, Completed):
            return self._state.result
        return None

    @property
    def is_busy(self) -> bool:
        return isinstance(self._state, (AwaitingCapability, Processing))

    def subscribe(self, listener: StateListener) -> Callable[[], None]:
        """Register a state listener. Returns a function that unsubscribes it."""
        self._listeners.append(listener)
        return lambda: self._listeners.remove(listener)

    def needs_condensing(self, generation_input: GenerationInput) -> bool:
        """Dialogue strictly longer than the threshold goes through the condense stage."""
        return generation_input.has_dialogue and generation_input.dialogue_length > self.config.condense_threshold

    def validate(self, generation_input: GenerationInput) -> None:
        """
        Check the input before a run begins.

        Raises:
            MissingInput: Neither a screenshot nor dialogue was given.
            MissingSubject: The anime name is required but missing.
        """
        if not generation_input.image_present and not generation_input.has_dialogue:
            raise MissingInput(generation_input.subject_label, generation_input.episode_label)
        if self.config.require_subject and not (generation_input.subject_label or "").strip():
            raise MissingSubject(generation_input.episode_label)

    async def run(self, generation_input: GenerationInput) -> Optional[Union[Completed, Failed]]:
        """
        Execute one full run.

        Returns:
            The terminal state of this run (Completed or Failed), or None if a
            newer run superseded it.

        Raises:
            MissingInput, MissingSubject: The input is invalid; nothing ran.
        """
        try:
            self.validate(generation_input)
        except RecapSenseiError:
            if not self.is_busy:
                self._set_state(Idle(self._current_run_id))
            raise

        run_id = next(self._run_ids)
        if self.is_busy:
            logger.info(f"🔁 Run #{run_id} supersedes run #{self._current_run_id}")
        self._current_run_id = run_id
        episode = f"{generation_input.subject_label or 'Unknown'} Ep{generation_input.episode_label or '?'}"
        logger.info(f"🎬 Starting recap run #{run_id} for {episode}")

        try:
            self._transition(run_id, AwaitingCapability(run_id))
            await self._probe.check_base_availability()
            if not self._is_current(run_id):
                return self._discard(run_id)

            condensed = False
            recap_input = generation_input
            if self.needs_condensing(generation_input):
                self._transition(run_id, Processing(run_id, STAGE_CONDENSE))
                dialogue = await self._stages.condense(
                    generation_input.dialogue_text, generation_input.subject_label, generation_input.episode_label)
                if not self._is_current(run_id):
                    return self._discard(run_id)
                recap_input = generation_input.model_copy(update={"dialogue_text": dialogue})
                condensed = True

            self._transition(run_id, Processing(run_id, STAGE_RECAP))
            recap = await self._stages.analyze(recap_input)
            if not self._is_current(run_id):
                return self._discard(run_id)

            self._transition(run_id, Processing(run_id, STAGE_BLURB))
            blurb = await self._stages.write_blurb(recap, generation_input)
            if not self._is_current(run_id):
                return self._discard(run_id)

        except RecapSenseiError as e:
            if e.anime is None:
                e.anime, e.episode = generation_input.subject_label, generation_input.episode_label
            return self._fail(run_id, e)
        except Exception as e:
            logger.error(f"❌ Unexpected error in run #{run_id}: {e}", exc_info=True)
            return self._fail(run_id, UnexpectedPipelineError(
                e, generation_input.subject_label, generation_input.episode_label))

        result = PipelineResult(
            run_id=run_id,
            recap=recap,
            blurb=blurb,
            subject_label=generation_input.subject_label,
            episode_label=generation_input.episode_label,
            image_name=generation_input.image_name,
            condensed=condensed,
            completed_at=self._clock(),
        )
        completed = Completed(run_id, result)
        self._transition(run_id, completed)
        logger.info(f"✅ Recap run #{run_id} completed")

        if self.config.history_auto_save and self.result_store is not None:
            self.save_result()
        return completed

    def save_result(self) -> PipelineResult:
        """
        Append the current completed result to the history.

        Raises:
            LookupError: There is no completed result, or no store configured.
        """
        result = self.current_result
        if result is None:
            raise LookupError("There is no completed recap to save")
        if self.result_store is None:
            raise LookupError("No result store configured")
        self.result_store.append_result(result)
        logger.info(f"💾 Saved recap from run #{result.run_id}")
        return result

    def reset(self) -> None:
        """Drop the current result (or stale error) and return to Idle."""
        if self.is_busy:
            # Detach the in-flight run
            self._current_run_id = next(self._run_ids)
        self._set_state(Idle(self._current_run_id))

    # Private helpers

    def _is_current(self, run_id: int) -> bool:
        return run_id == self._current_run_id

    def _transition(self, run_id: int, state: PipelineState) -> None:
        if not self._is_current(run_id):
            return
        logger.debug(f"Run #{run_id}: {state.name} {state.status_message}")
        self._set_state(state)

    def _set_state(self, state: PipelineState) -> None:
        self._state = state
        for listener in list(self._listeners):
            try:
                listener(state)
            except Exception as e:
                logger.warning(f"⚠️ State listener raised on {state.name}: {e}", exc_info=True)

    def _fail(self, run_id: int, error: RecapSenseiError) -> Optional[Failed]:
        if not self._is_current(run_id):
            logger.info(f"Run #{run_id} failed after being superseded; ignoring: {error}")
            return None

        failed = Failed(run_id, error)
        logger.error(f"❌ Recap run #{run_id} for {error.episode_identifier} failed [{error.kind}]: {error.user_message}")
        self.last_failure = failed
        self._transition(run_id, failed)
        # Failed is terminal for the run; the controller is ready for a retry
        self._transition(run_id, Idle(run_id))
        return failed

    def _discard(self, run_id: int) -> None:
        logger.info(f"🗑️ Discarding result of superseded run #{run_id}")
        return None
