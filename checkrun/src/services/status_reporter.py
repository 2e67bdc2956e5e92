"""
Report run and step status to the log and, optionally, to Redis.
"""

import logging
from typing import Optional

import redis

from checkrun.src.config import Settings, get_settings
from checkrun.src.models.step import Run, Step, StepResult

logger = logging.getLogger(__name__)

RUN_STATUS = "checkrun:status"
STEP_STATUS = "checkrun:steps:{run_id}"

class StatusReporter:
    """
    Logs each step's name, tolerance flag and result, and mirrors run and
    step status into Redis hashes when a client is available.
    """

    def __init__(self, client: Optional[redis.Redis] = None):
        self.client = client

    @classmethod
    def from_settings(cls, settings: Optional[Settings] = None) -> "StatusReporter":
        settings = settings or get_settings()
        if not settings.redis_url:
            return cls()
        return cls(redis.from_url(settings.redis_url, decode_responses=True))

    def _publish(self, key: str, field: str, value: str):
        if self.client is None:
            return
        try:
            self.client.hset(key, field, value)
        except redis.RedisError as e:
            # Publishing failures never fail the run
            logger.warning(f"Failed to publish status to Redis: {e}")

    def run_started(self, run: Run):
        logger.info(f"Starting pipeline '{run.name}' (run {run.id}) with {len(run.steps)} steps")
        self._publish(RUN_STATUS, run.id, "running")

    def step_started(self, run: Run, index: int, step: Step):
        logger.info(
            f"Step {index + 1}/{len(run.steps)}: {step.name} "
            f"(continue_on_error={step.continue_on_error})"
        )
        self._publish(STEP_STATUS.format(run_id=run.id), str(index), "running")

    def step_finished(self, run: Run, index: int, step: Step):
        key = STEP_STATUS.format(run_id=run.id)
        self._publish(key, str(index), step.result.value)

        if step.result == StepResult.SUCCESS:
            logger.info(f"Step {index + 1} ({step.name}) succeeded")
            return

        detail = step.error or f"exit code {step.exit_code}"
        if step.continue_on_error:
            logger.warning(
                f"Step {index + 1} ({step.name}) failed [{step.failure.value}]: {detail}; "
                f"continuing (continue_on_error=True)"
            )
        else:
            logger.error(f"Step {index + 1} ({step.name}) failed [{step.failure.value}]: {detail}")

        if step.output:
            logger.debug(f"Output of {step.name}:\n{step.output}")

    def run_finished(self, run: Run):
        self._publish(RUN_STATUS, run.id, run.overall_status.value)

        for step in run.steps:
            failure = f" [{step.failure.value}]" if step.failure else ""
            logger.info(
                f"  {step.result.value:<8} {step.name}"
                f"{' (continue_on_error)' if step.continue_on_error else ''}{failure}"
            )

        tolerated = len(run.tolerated_failures)
        suffix = f", {tolerated} tolerated failure(s)" if tolerated else ""
        logger.info(f"Pipeline '{run.name}' finished with status: {run.overall_status.value}{suffix}")
