"""
Pipeline executor - runs pipeline steps in order on the local workspace.
"""

import logging
import os
from datetime import datetime
from typing import Dict, Optional

from checkrun.src.config import Settings, get_settings
from checkrun.src.models.step import FailureKind, Run, RunStatus, Step, StepResult
from checkrun.src.services.command import (
    CommandResult,
    CommandTimeout,
    LaunchError,
    SubprocessExecutor,
)
from checkrun.src.services.status_reporter import StatusReporter
from checkrun.src.services.uploader import ResultsUploader

logger = logging.getLogger(__name__)

def tail(text: str, lines: int) -> str:
    """Keep the last `lines` lines of captured output."""
    if lines <= 0:
        return text
    return "\n".join(text.splitlines()[-lines:])

class PipelineRunner:
    """
    Sequential step executor.

    Steps run strictly in order. A failing step halts the run unless it is
    marked continue_on_error, in which case the failure is recorded and the
    next step starts.
    """

    def __init__(
        self,
        executor: Optional[SubprocessExecutor] = None,
        uploader: Optional[ResultsUploader] = None,
        reporter: Optional[StatusReporter] = None,
        settings: Optional[Settings] = None,
    ):
        self.executor = executor or SubprocessExecutor()
        self.uploader = uploader
        self.reporter = reporter or StatusReporter()
        self.settings = settings or get_settings()

    def execute(self, run: Run) -> RunStatus:
        """
        Execute a pipeline run.
        Returns the overall status, which is also stored on the run.
        """
        if run.overall_status is not None:
            raise RuntimeError(f"Run {run.id} has already been executed")

        run.started_at = datetime.utcnow()
        self.reporter.run_started(run)

        for i, step in enumerate(run.steps):
            step.started_at = datetime.utcnow()
            self.reporter.step_started(run, i, step)

            self.execute_step(run, step)
            self.reporter.step_finished(run, i, step)

            if step.result == StepResult.FAILED and not step.continue_on_error:
                run.overall_status = RunStatus.FAILED
                break  # Remaining steps stay not_run

        if run.overall_status is None:
            run.overall_status = RunStatus.FAILED if run.fatal_failure else RunStatus.SUCCESS

        run.finished_at = datetime.utcnow()
        self.reporter.run_finished(run)
        return run.overall_status

    def execute_step(self, run: Run, step: Step):
        """Invoke one step and record its result."""
        try:
            if step.is_upload:
                result = self._upload(run, step)
            else:
                result = self.executor.run(
                    step.command,
                    step.args,
                    env=self._step_env(run, step),
                    cwd=self._step_cwd(step),
                    timeout=step.timeout or self.settings.step_timeout or None,
                )
        except LaunchError as e:
            step.record(StepResult.FAILED, failure=FailureKind.LAUNCH_ERROR, error=str(e))
            return
        except CommandTimeout as e:
            step.record(
                StepResult.FAILED,
                failure=FailureKind.TIMEOUT,
                output=tail(e.output, self.settings.output_tail_lines),
                error=str(e),
            )
            return

        output = tail(self._combined_output(result), self.settings.output_tail_lines)
        if result.succeeded:
            step.record(StepResult.SUCCESS, exit_code=result.exit_code, output=output)
        else:
            step.record(
                StepResult.FAILED,
                failure=FailureKind.TOOL_FAILURE,
                exit_code=result.exit_code,
                output=output,
            )

    def _upload(self, run: Run, step: Step) -> CommandResult:
        if self.uploader is None:
            self.uploader = ResultsUploader(settings=self.settings)

        path = step.upload.sarif_file
        if not os.path.isabs(path):
            path = os.path.join(self._step_cwd(step), path)

        event = run.event
        return self.uploader.upload(
            path,
            target=step.upload.target,
            commit_sha=event.commit_sha if event else None,
            ref=event.ref if event else None,
        )

    def _step_env(self, run: Run, step: Step) -> Dict[str, str]:
        env = {
            "CHECKRUN_RUN_ID": run.id,
            "CHECKRUN_STEP_NAME": step.name,
        }
        env.update(run.env)
        env.update(step.env)
        return env

    def _step_cwd(self, step: Step) -> str:
        workspace = self.settings.workspace
        if step.working_directory:
            return os.path.join(workspace, step.working_directory)
        return workspace

    @staticmethod
    def _combined_output(result: CommandResult) -> str:
        if result.stdout and result.stderr:
            return f"{result.stdout.rstrip()}\n{result.stderr}"
        return result.stdout or result.stderr
