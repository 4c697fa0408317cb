"""
Recap generation data models.

This module defines the Pydantic models that flow through the recap pipeline:
the user's input, the structured recap extracted from the model, and the
final result handed to the UI and the history store.
"""

from typing import List, Optional
from pydantic import BaseModel, ConfigDict, Field
from datetime import datetime


PLACEHOLDER_KEY_MOMENT = "Unable to extract key moments"
PLACEHOLDER_CHARACTER_NAME = "Unknown"
PLACEHOLDER_CHARACTER_ACTION = "Appeared in episode"


class GenerationInput(BaseModel):
    """What the user supplied for one run. Immutable once the run starts."""

    model_config = ConfigDict(frozen=True)

    image_present: bool = Field(default=False, description="Whether a screenshot was supplied")
    image_name: Optional[str] = Field(None, description="File name of the screenshot, passed to the model as text")
    dialogue_text: Optional[str] = Field(None, description="Dialogue / subtitle block")
    subject_label: Optional[str] = Field(None, description="Anime name")
    episode_label: Optional[str] = Field(None, description="Episode number or label")

    @classmethod
    def from_raw(cls,
                 dialogue_text: Optional[str] = None,
                 image_name: Optional[str] = None,
                 subject_label: Optional[str] = None,
                 episode_label: Optional[str] = None) -> "GenerationInput":
        """Build an input from raw form values, trimming whitespace like the input fields do."""
        def _clean(value: Optional[str]) -> Optional[str]:
            if value is None:
                return None
            value = value.strip()
            return value or None

        image_name = _clean(image_name)
        return cls(
            image_present=image_name is not None,
            image_name=image_name,
            dialogue_text=_clean(dialogue_text),
            subject_label=_clean(subject_label),
            episode_label=_clean(episode_label),
        )

    @property
    def has_dialogue(self) -> bool:
        return bool(self.dialogue_text and self.dialogue_text.strip())

    @property
    def dialogue_length(self) -> int:
        return len(self.dialogue_text) if self.dialogue_text else 0


class CharacterAction(BaseModel):
    """A character and what they did this episode."""

    model_config = ConfigDict(frozen=True)

    name: str
    action: str


class RecapRecord(BaseModel):
    """Structured result of the recap stage."""

    model_config = ConfigDict(frozen=True)

    title: Optional[str] = Field(None, description="Catchy episode title")
    summary: str = Field(min_length=1, description="2-3 sentence overview")
    key_moments: List[str] = Field(
        default_factory=lambda: [PLACEHOLDER_KEY_MOMENT],
        min_length=1,
        description="Major events or revelations, in order",
    )
    characters: List[CharacterAction] = Field(
        default_factory=lambda: [CharacterAction(name=PLACEHOLDER_CHARACTER_NAME, action=PLACEHOLDER_CHARACTER_ACTION)],
        min_length=1,
        description="Characters and what they did",
    )
    plot_progress: Optional[str] = Field(None, description="How the main arc advanced")
    cliffhanger: Optional[str] = Field(None, description="Tension carried into the next episode")


class PipelineResult(BaseModel):
    """Final assembled result of one run, timestamped at completion."""

    model_config = ConfigDict(frozen=True)

    run_id: int
    recap: RecapRecord
    blurb: str
    subject_label: Optional[str] = None
    episode_label: Optional[str] = None
    image_name: Optional[str] = None
    condensed: bool = Field(default=False, description="Whether the dialogue went through the condense stage")
    completed_at: datetime = Field(default_factory=datetime.now)
