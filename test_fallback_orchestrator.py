"""
Tests for the capability probe and the specialized-then-general fallback.
"""

import asyncio
import json

import pytest

from recap_sensei.ai_models.provider_registry import CapabilityKind, SessionOptions
from recap_sensei.recap_generator.capability_probe import CapabilityProbe
from recap_sensei.recap_generator.exceptions.recap_exceptions import (
    ModelNotReady,
    ProviderUnavailable,
    StageFailure,
)
from recap_sensei.recap_generator.fallback_orchestrator import (
    PATH_GENERAL,
    PATH_SPECIALIZED,
    FallbackOrchestrator,
)
from recap_sensei.recap_generator.models.recap_models import GenerationInput
from recap_sensei.recap_generator.recap_stages import RecapStageRunner
from recap_sensei.recap_generator.response_extractor import extract_recap

from conftest import BLURB_TEXT, CONDENSED_TEXT, RECAP_JSON, FakeRegistry, failing_handler


class CallCounter:
    """Async stage call that records how often it ran."""

    def __init__(self, value=None, error=None):
        self.value = value
        self.error = error
        self.count = 0

    async def __call__(self):
        self.count += 1
        if self.error is not None:
            raise self.error
        return self.value


def _orchestrator(registry: FakeRegistry) -> FallbackOrchestrator:
    return FallbackOrchestrator(CapabilityProbe(registry, SessionOptions()))


# ---------------------------------------------------------------------------
# CapabilityProbe
# ---------------------------------------------------------------------------

def test_probe_raises_provider_unavailable_without_general():
    probe = CapabilityProbe(FakeRegistry(general=False))

    with pytest.raises(ProviderUnavailable):
        asyncio.run(probe.check_base_availability())


def test_probe_raises_model_not_ready_when_session_fails():
    registry = FakeRegistry(session_error=RuntimeError("model still downloading"))
    probe = CapabilityProbe(registry)

    with pytest.raises(ModelNotReady) as exc_info:
        asyncio.run(probe.check_base_availability())
    assert "model still downloading" in exc_info.value.user_message


def test_probe_releases_trial_session():
    registry = FakeRegistry()
    asyncio.run(CapabilityProbe(registry).check_base_availability())

    assert len(registry.sessions) == 1
    assert registry.all_sessions_destroyed


def test_probe_specialized_never_raises():
    registry = FakeRegistry(summarizer=True)
    def broken_has_writer():
        raise RuntimeError("boom")

    registry.has_writer = broken_has_writer
    probe = CapabilityProbe(registry)

    assert probe.probe_specialized(CapabilityKind.SUMMARIZER) is True
    assert probe.probe_specialized(CapabilityKind.WRITER) is False


# ---------------------------------------------------------------------------
# FallbackOrchestrator
# ---------------------------------------------------------------------------

def test_general_not_called_when_specialized_succeeds():
    orchestrator = _orchestrator(FakeRegistry(summarizer=True))
    specialized = CallCounter(value="specialized result")
    general = CallCounter(value="general result")

    result = asyncio.run(orchestrator.run_stage("condense", CapabilityKind.SUMMARIZER, specialized, general))

    assert result == "specialized result"
    assert specialized.count == 1
    assert general.count == 0


def test_general_called_once_when_specialized_rejects():
    orchestrator = _orchestrator(FakeRegistry(summarizer=True))
    specialized = CallCounter(error=RuntimeError("rejected"))
    general = CallCounter(value="general result")

    result = asyncio.run(orchestrator.run_stage("condense", CapabilityKind.SUMMARIZER, specialized, general))

    assert result == "general result"
    assert specialized.count == 1
    assert general.count == 1


def test_specialized_skipped_when_capability_absent():
    orchestrator = _orchestrator(FakeRegistry(summarizer=False))
    specialized = CallCounter(value="specialized result")
    general = CallCounter(value="general result")

    result = asyncio.run(orchestrator.run_stage("condense", CapabilityKind.SUMMARIZER, specialized, general))

    assert result == "general result"
    assert specialized.count == 0


def test_stage_failure_when_general_fails():
    orchestrator = _orchestrator(FakeRegistry(writer=True))
    cause = RuntimeError("general also failed")
    specialized = CallCounter(error=RuntimeError("writer failed"))
    general = CallCounter(error=cause)

    with pytest.raises(StageFailure) as exc_info:
        asyncio.run(orchestrator.run_stage("blurb", CapabilityKind.WRITER, specialized, general))

    error = exc_info.value
    assert error.stage == "blurb"
    assert error.cause is cause
    assert error.attempted_paths == [PATH_SPECIALIZED, PATH_GENERAL]
    assert error.kind == "StageFailure"


def test_stage_without_specialized_path():
    orchestrator = _orchestrator(FakeRegistry())
    general = CallCounter(value="recap")

    assert asyncio.run(orchestrator.run_stage("recap", None, None, general)) == "recap"


# ---------------------------------------------------------------------------
# Session lifetime through the stage runner
# ---------------------------------------------------------------------------

def test_condense_falls_back_and_releases_sessions():
    registry = FakeRegistry(summarizer=True, summarizer_handler=failing_handler())
    runner = RecapStageRunner(registry, _orchestrator(registry))

    condensed = asyncio.run(runner.condense("x" * 500))

    assert condensed == CONDENSED_TEXT
    assert len(registry.calls_for(CapabilityKind.SUMMARIZER)) == 1
    assert len(registry.calls_for(CapabilityKind.GENERAL)) == 1
    assert registry.all_sessions_destroyed


def test_empty_summarizer_output_counts_as_failure():
    registry = FakeRegistry(summarizer=True, summarizer_handler=lambda text: "   ")
    runner = RecapStageRunner(registry, _orchestrator(registry))

    assert asyncio.run(runner.condense("x" * 500)) == CONDENSED_TEXT
    assert len(registry.calls_for(CapabilityKind.GENERAL)) == 1


def test_stage_failure_carries_episode_labels():
    orchestrator = _orchestrator(FakeRegistry())
    general = CallCounter(error=RuntimeError("quota exceeded"))

    with pytest.raises(StageFailure) as exc_info:
        asyncio.run(orchestrator.run_stage("recap", None, None, general, anime="Frieren", episode="3"))

    assert exc_info.value.anime == "Frieren"
    assert exc_info.value.episode_identifier == "Frieren Ep3"


def test_condense_failure_carries_episode_labels():
    registry = FakeRegistry(prompt_handler=failing_handler())
    runner = RecapStageRunner(registry, _orchestrator(registry))

    with pytest.raises(StageFailure) as exc_info:
        asyncio.run(runner.condense("x" * 500, "Dandadan", "7"))

    assert exc_info.value.stage == "condense"
    assert exc_info.value.episode_identifier == "Dandadan Ep7"


# ---------------------------------------------------------------------------
# Blurb writing through the stage runner
# ---------------------------------------------------------------------------

WRITER_BLURB = "Writer says: Frieren Ep 1 is a quiet masterpiece ✨"


def _blurb_inputs():
    recap = extract_recap(json.dumps(RECAP_JSON))
    generation_input = GenerationInput.from_raw(
        dialogue_text="Frieren: Let's go.",
        image_name=None,
        subject_label="Frieren",
        episode_label="1",
    )
    return recap, generation_input


def _blurb_prompts(registry: FakeRegistry):
    return [text for text in registry.calls_for(CapabilityKind.GENERAL) if "social post" in text]


def test_writer_blurb_skips_general_model():
    registry = FakeRegistry(writer=True, writer_handler=lambda text: f'"{WRITER_BLURB}"')
    runner = RecapStageRunner(registry, _orchestrator(registry))

    blurb = asyncio.run(runner.write_blurb(*_blurb_inputs()))

    assert blurb == WRITER_BLURB
    writer_prompts = registry.calls_for(CapabilityKind.WRITER)
    assert len(writer_prompts) == 1
    assert "Frieren" in writer_prompts[0]
    assert _blurb_prompts(registry) == []
    assert registry.all_sessions_destroyed


@pytest.mark.parametrize("writer_handler", [
    failing_handler("writer offline"),
    lambda text: "  ",
    lambda text: '""',
])
def test_writer_failure_falls_back_to_one_general_blurb(writer_handler):
    registry = FakeRegistry(writer=True, writer_handler=writer_handler)
    runner = RecapStageRunner(registry, _orchestrator(registry))

    blurb = asyncio.run(runner.write_blurb(*_blurb_inputs()))

    assert blurb == BLURB_TEXT
    assert len(registry.calls_for(CapabilityKind.WRITER)) == 1
    assert len(_blurb_prompts(registry)) == 1
    assert registry.all_sessions_destroyed


def test_blurb_failure_on_both_paths_raises_stage_failure():
    registry = FakeRegistry(writer=True,
                            writer_handler=failing_handler("writer offline"),
                            prompt_handler=failing_handler("general offline"))
    runner = RecapStageRunner(registry, _orchestrator(registry))

    with pytest.raises(StageFailure) as exc_info:
        asyncio.run(runner.write_blurb(*_blurb_inputs()))

    assert exc_info.value.stage == "blurb"
    assert exc_info.value.attempted_paths == [PATH_SPECIALIZED, PATH_GENERAL]
    assert exc_info.value.episode_identifier == "Frieren Ep1"
    assert registry.all_sessions_destroyed
