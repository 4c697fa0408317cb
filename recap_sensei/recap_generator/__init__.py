"""
Recap Generator Module

This module turns an episode screenshot and/or subtitle block into a
structured recap and a short shareable blurb. The pipeline itself lives in
pipeline_controller; this package root only exposes its data types.
"""

from .models.recap_models import (
    GenerationInput,
    CharacterAction,
    RecapRecord,
    PipelineResult,
)

from .models.state_models import (
    Idle,
    AwaitingCapability,
    Processing,
    Completed,
    Failed,
    PipelineState,
)

from .exceptions.recap_exceptions import (
    RecapSenseiError,
    MissingInput,
    MissingSubject,
    ProviderUnavailable,
    ModelNotReady,
    StageFailure,
    UnexpectedPipelineError,
)

__all__ = [
    # Models
    'GenerationInput',
    'CharacterAction',
    'RecapRecord',
    'PipelineResult',

    # States
    'Idle',
    'AwaitingCapability',
    'Processing',
    'Completed',
    'Failed',
    'PipelineState',

    # Exceptions
    'RecapSenseiError',
    'MissingInput',
    'MissingSubject',
    'ProviderUnavailable',
    'ModelNotReady',
    'StageFailure',
    'UnexpectedPipelineError',
]
