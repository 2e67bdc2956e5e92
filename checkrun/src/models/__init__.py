from checkrun.src.models.step import (
    StepResult,
    FailureKind,
    RunStatus,
    UploadConfig,
    Step,
    Run,
)
from checkrun.src.models.trigger import EventType, TriggerEvent

__all__ = [
    "StepResult",
    "FailureKind",
    "RunStatus",
    "UploadConfig",
    "Step",
    "Run",
    "EventType",
    "TriggerEvent",
]
