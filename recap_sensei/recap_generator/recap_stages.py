"""
The three provider-backed stages of a recap run:

1. condense  - shrink long dialogue (summarizer, else general model)
2. recap     - structured episode recap (general model)
3. blurb     - shareable post (writer, else general model)

Every attempt opens its own session and releases it before returning.
"""

from typing import Dict, Optional

from ..ai_models.provider_registry import (
    CapabilityKind,
    ProviderRegistry,
    SessionOptions,
    SummarizerOptions,
    WriterOptions,
    provider_session,
)
from ..utils.llm_utils import clean_llm_text_response
from ..utils.logger_utils import setup_logging
from .fallback_orchestrator import FallbackOrchestrator
from .models.recap_models import GenerationInput, RecapRecord
from .models.state_models import STAGE_BLURB, STAGE_CONDENSE, STAGE_RECAP
from .prompts import build_blurb_prompt, build_condense_prompt, build_recap_prompt
from .response_extractor import clean_blurb_text, extract_recap

logger = setup_logging(__name__)


def _require_text(text: str, what: str) -> str:
    if not isinstance(text, str) or not text.strip():
        raise ValueError(f"{what} returned an empty response")
    return text


def _labels(generation_input: GenerationInput) -> Dict[str, Optional[str]]:
    return {"anime": generation_input.subject_label, "episode": generation_input.episode_label}


class RecapStageRunner:
    """Builds the specialized/general calls for each stage and hands them to the orchestrator."""

    def __init__(self,
                 registry: ProviderRegistry,
                 orchestrator: FallbackOrchestrator,
                 output_language: str = "en",
                 excerpt_length: int = 200,
                 blurb_max_chars: int = 280):
        self._registry = registry
        self._orchestrator = orchestrator
        self._session_options = SessionOptions(output_language=output_language)
        self._summarizer_options = SummarizerOptions(output_language=output_language)
        self._writer_options = WriterOptions(output_language=output_language)
        self._excerpt_length = excerpt_length
        self._blurb_max_chars = blurb_max_chars

    async def _prompt_general(self, prompt: str) -> str:
        async with provider_session(self._registry.create_session, self._session_options) as session:
            return await session.prompt(prompt)

    async def condense(self, text: str, anime: Optional[str] = None, episode: Optional[str] = None) -> str:
        """Condense long dialogue, keeping the plot points."""
        async def specialized() -> str:
            async with provider_session(self._registry.create_summarizer, self._summarizer_options) as summarizer:
                summary = await summarizer.summarize(text)
            return _require_text(clean_llm_text_response(summary), "Summarizer")

        async def general() -> str:
            summary = await self._prompt_general(build_condense_prompt(text))
            return _require_text(clean_llm_text_response(summary), "Language model")

        condensed = await self._orchestrator.run_stage(
            STAGE_CONDENSE, CapabilityKind.SUMMARIZER, specialized, general, anime=anime, episode=episode
        )
        logger.info(f"📉 Condensed dialogue from {len(text)} to {len(condensed)} characters")
        return condensed

    async def analyze(self, generation_input: GenerationInput) -> RecapRecord:
        """Ask the general model for the structured recap."""
        prompt = build_recap_prompt(generation_input)

        async def general() -> RecapRecord:
            response = await self._prompt_general(prompt)
            return extract_recap(response, self._excerpt_length)

        return await self._orchestrator.run_stage(STAGE_RECAP, None, None, general, **_labels(generation_input))

    async def write_blurb(self, recap: RecapRecord, generation_input: GenerationInput) -> str:
        """Write the shareable post."""
        prompt = build_blurb_prompt(recap, generation_input, self._blurb_max_chars)

        async def specialized() -> str:
            async with provider_session(self._registry.create_writer, self._writer_options) as writer:
                blurb = await writer.write(prompt)
            return _require_text(clean_blurb_text(blurb), "Writer")

        async def general() -> str:
            blurb = await self._prompt_general(prompt)
            return _require_text(clean_blurb_text(blurb), "Language model")

        blurb = await self._orchestrator.run_stage(
            STAGE_BLURB, CapabilityKind.WRITER, specialized, general, **_labels(generation_input)
        )
        if len(blurb) > self._blurb_max_chars:
            logger.warning(f"⚠️ Blurb is {len(blurb)} characters, over the requested {self._blurb_max_chars}")
        return blurb
