"""
Step and run models.
"""

from pydantic import BaseModel, Field
from typing import List, Optional, Dict
from datetime import datetime
from enum import Enum
import uuid

from checkrun.src.models.trigger import TriggerEvent

class StepResult(str, Enum):
    NOT_RUN = "not_run"
    SUCCESS = "success"
    FAILED = "failed"

class FailureKind(str, Enum):
    LAUNCH_ERROR = "launch_error"
    TOOL_FAILURE = "tool_failure"
    TIMEOUT = "timeout"

class RunStatus(str, Enum):
    SUCCESS = "success"
    FAILED = "failed"

class UploadConfig(BaseModel):
    sarif_file: str
    target: Optional[str] = None

class Step(BaseModel):
    name: str
    command: str
    args: List[str] = []
    continue_on_error: bool = False
    env: Dict[str, str] = {}
    working_directory: Optional[str] = None
    timeout: Optional[int] = None
    upload: Optional[UploadConfig] = None

    result: StepResult = StepResult.NOT_RUN
    failure: Optional[FailureKind] = None
    exit_code: Optional[int] = None
    output: Optional[str] = None
    error: Optional[str] = None
    started_at: Optional[datetime] = None
    finished_at: Optional[datetime] = None

    @property
    def is_upload(self) -> bool:
        return self.upload is not None

    def record(
        self,
        result: StepResult,
        failure: Optional[FailureKind] = None,
        exit_code: Optional[int] = None,
        output: Optional[str] = None,
        error: Optional[str] = None,
    ):
        """Write the step's terminal result. A step is recorded exactly once."""
        if self.result != StepResult.NOT_RUN:
            raise RuntimeError(f"Step '{self.name}' already recorded as {self.result.value}")
        if result == StepResult.NOT_RUN:
            raise ValueError("Cannot record a step as not run")

        self.result = result
        self.failure = failure
        self.exit_code = exit_code
        self.output = output
        self.error = error
        self.finished_at = datetime.utcnow()

class Run(BaseModel):
    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    name: str = "Unnamed Pipeline"
    steps: List[Step] = []
    env: Dict[str, str] = {}
    event: Optional[TriggerEvent] = None
    overall_status: Optional[RunStatus] = None
    started_at: Optional[datetime] = None
    finished_at: Optional[datetime] = None

    @property
    def failed_steps(self) -> List[Step]:
        return [s for s in self.steps if s.result == StepResult.FAILED]

    @property
    def tolerated_failures(self) -> List[Step]:
        return [s for s in self.failed_steps if s.continue_on_error]

    @property
    def fatal_failure(self) -> Optional[Step]:
        for step in self.failed_steps:
            if not step.continue_on_error:
                return step
        return None

    @property
    def exit_code(self) -> int:
        return 0 if self.overall_status == RunStatus.SUCCESS else 1
