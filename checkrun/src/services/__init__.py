from checkrun.src.services.command import (
    CommandResult,
    CommandTimeout,
    LaunchError,
    SubprocessExecutor,
    shell_command,
)
from checkrun.src.services.executor import PipelineRunner
from checkrun.src.services.pipeline_parser import (
    parse_pipeline_config,
    parse_pipeline_dict,
    find_pipeline_file,
    load_pipeline_file,
    build_run,
    PipelineConfigError,
)
from checkrun.src.services.status_reporter import StatusReporter
from checkrun.src.services.trigger import parse_trigger_payload, should_run
from checkrun.src.services.uploader import ResultsUploader

__all__ = [
    "CommandResult",
    "CommandTimeout",
    "LaunchError",
    "SubprocessExecutor",
    "shell_command",
    "PipelineRunner",
    "parse_pipeline_config",
    "parse_pipeline_dict",
    "find_pipeline_file",
    "load_pipeline_file",
    "build_run",
    "PipelineConfigError",
    "StatusReporter",
    "parse_trigger_payload",
    "should_run",
    "ResultsUploader",
]
