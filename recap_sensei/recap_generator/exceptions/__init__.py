from .recap_exceptions import (
    REMEDIATION_HINT,
    RecapSenseiError,
    InputValidationError,
    MissingInput,
    MissingSubject,
    ProviderUnavailable,
    ModelNotReady,
    StageFailure,
    UnexpectedPipelineError,
)

__all__ = [
    "REMEDIATION_HINT",
    "RecapSenseiError",
    "InputValidationError",
    "MissingInput",
    "MissingSubject",
    "ProviderUnavailable",
    "ModelNotReady",
    "StageFailure",
    "UnexpectedPipelineError",
]
