"""
Pipeline state machine states.

Idle -> AwaitingCapability -> Processing(condense?) -> Processing(recap)
-> Processing(blurb) -> Completed, with Failed reachable from any
non-idle state.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, Optional, Union

from .recap_models import PipelineResult
from ..exceptions.recap_exceptions import RecapSenseiError


STAGE_CONDENSE = "condense"
STAGE_RECAP = "recap"
STAGE_BLURB = "blurb"

STAGE_STATUS_MESSAGES = {
    STAGE_CONDENSE: "Condensing…",
    STAGE_RECAP: "Analyzing…",
    STAGE_BLURB: "Creating summary…",
}


@dataclass(frozen=True)
class Idle:
    run_id: int = 0
    name: str = field(default="idle", init=False)

    @property
    def status_message(self) -> str:
        return ""


@dataclass(frozen=True)
class AwaitingCapability:
    run_id: int
    name: str = field(default="awaiting_capability", init=False)

    @property
    def status_message(self) -> str:
        return "Checking availability…"


@dataclass(frozen=True)
class Processing:
    run_id: int
    stage: str
    name: str = field(default="processing", init=False)

    @property
    def status_message(self) -> str:
        return STAGE_STATUS_MESSAGES.get(self.stage, f"{self.stage}…")


@dataclass(frozen=True)
class Completed:
    run_id: int
    result: PipelineResult
    name: str = field(default="completed", init=False)

    @property
    def status_message(self) -> str:
        return "Recap ready!"


@dataclass(frozen=True)
class Failed:
    run_id: int
    error: RecapSenseiError
    name: str = field(default="failed", init=False)

    @property
    def kind(self) -> str:
        return self.error.kind

    @property
    def reason(self) -> str:
        """The error message verbatim, followed by the remediation hint."""
        return f"{self.error.user_message}\n\n{self.error.remediation_hint}"

    @property
    def status_message(self) -> str:
        return f"Error: {self.error.user_message}"


PipelineState = Union[Idle, AwaitingCapability, Processing, Completed, Failed]


def describe_state(state: PipelineState) -> Dict[str, Any]:
    """Serializable view of a state for the API and logs."""
    description: Dict[str, Any] = {
        "state": state.name,
        "run_id": state.run_id,
        "status": state.status_message,
    }
    stage: Optional[str] = getattr(state, "stage", None)
    if stage is not None:
        description["stage"] = stage
    if isinstance(state, Completed):
        description["result"] = state.result.model_dump(mode="json")
    if isinstance(state, Failed):
        description["error"] = state.error.to_dict()
    return description
