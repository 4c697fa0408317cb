from .recap_models import (
    GenerationInput,
    CharacterAction,
    RecapRecord,
    PipelineResult,
    PLACEHOLDER_KEY_MOMENT,
    PLACEHOLDER_CHARACTER_NAME,
    PLACEHOLDER_CHARACTER_ACTION,
)
from .state_models import (
    Idle,
    AwaitingCapability,
    Processing,
    Completed,
    Failed,
    PipelineState,
    STAGE_CONDENSE,
    STAGE_RECAP,
    STAGE_BLURB,
    describe_state,
)

__all__ = [
    "GenerationInput",
    "CharacterAction",
    "RecapRecord",
    "PipelineResult",
    "PLACEHOLDER_KEY_MOMENT",
    "PLACEHOLDER_CHARACTER_NAME",
    "PLACEHOLDER_CHARACTER_ACTION",
    "Idle",
    "AwaitingCapability",
    "Processing",
    "Completed",
    "Failed",
    "PipelineState",
    "STAGE_CONDENSE",
    "STAGE_RECAP",
    "STAGE_BLURB",
    "describe_state",
]
