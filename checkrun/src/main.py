"""
checkrun - Main entry point.
"""

import argparse
import json
import logging
import os
import sys
from typing import List, Optional

from checkrun.src.config import Settings, get_settings
from checkrun.src.models.trigger import EventType, TriggerEvent
from checkrun.src.services.executor import PipelineRunner
from checkrun.src.services.pipeline_parser import (
    PipelineConfigError,
    build_run,
    find_pipeline_file,
    load_pipeline_file,
)
from checkrun.src.services.status_reporter import StatusReporter
from checkrun.src.services.trigger import parse_trigger_payload, should_run

logger = logging.getLogger(__name__)

EXIT_CONFIG_ERROR = 2

def _env_event() -> Optional[str]:
    # Only events the runner understands; anything else means "no event"
    event = os.environ.get("GITHUB_EVENT_NAME")
    return event if event in [e.value for e in EventType] else None

def configure_logging(level: str):
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        handlers=[logging.StreamHandler(sys.stdout)]
    )

def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="checkrun",
        description="Run a build-verification pipeline step by step",
    )
    parser.add_argument("--workspace", "-w", help="Source tree the steps run in")
    parser.add_argument("--log-level", help="Logging level (default from CHECKRUN_LOG_LEVEL)")

    subparsers = parser.add_subparsers(dest="command", required=True)

    run_parser = subparsers.add_parser("run", help="Execute the pipeline")
    run_parser.add_argument("pipeline", nargs="?", help="Pipeline file (default: discovered in workspace)")
    run_parser.add_argument(
        "--event", "-e",
        choices=[e.value for e in EventType],
        default=_env_event(),
        help="Trigger event type",
    )
    run_parser.add_argument("--branch", "-b", help="Branch the event refers to")
    run_parser.add_argument("--commit-sha", help="Commit being verified")
    run_parser.add_argument(
        "--event-path",
        default=os.environ.get("GITHUB_EVENT_PATH"),
        help="JSON event payload to read the trigger from",
    )

    validate_parser = subparsers.add_parser("validate", help="Validate a pipeline file")
    validate_parser.add_argument("pipeline", nargs="?")

    show_parser = subparsers.add_parser("show-config", help="Print the validated pipeline")
    show_parser.add_argument("pipeline", nargs="?")

    return parser.parse_args(argv)

def resolve_pipeline(path: Optional[str], settings: Settings) -> str:
    if path:
        return path

    found = find_pipeline_file(settings.workspace)
    if not found:
        raise PipelineConfigError(f"No pipeline configuration found in {settings.workspace}")
    return found

def resolve_event(args: argparse.Namespace) -> Optional[TriggerEvent]:
    """Build the trigger event from a payload file or from explicit arguments."""
    if args.event_path and args.event:
        try:
            with open(args.event_path, "r") as f:
                payload = json.load(f)
        except (OSError, ValueError) as e:
            raise PipelineConfigError(f"Cannot read event payload {args.event_path}: {e}")

        if not isinstance(payload, dict):
            raise PipelineConfigError(f"Event payload {args.event_path} must be a JSON object")

        event = parse_trigger_payload(args.event, payload)
        if args.branch:
            event.branch = args.branch
        return event

    if args.branch:
        return TriggerEvent(
            event_type=EventType(args.event or EventType.PUSH.value),
            branch=args.branch,
            commit_sha=args.commit_sha,
        )

    return None

def run_pipeline(args: argparse.Namespace, settings: Settings) -> int:
    config = load_pipeline_file(resolve_pipeline(args.pipeline, settings))

    event = resolve_event(args)
    if event is None:
        logger.info("No trigger event given, running unconditionally")
    elif not should_run(event, config["on"], settings.allowed_branches):
        logger.info(
            f"Skipping pipeline: {event.event_type.value} on branch '{event.branch}' "
            f"does not match the configured filters"
        )
        return 0

    run = build_run(config, event=event, settings=settings)
    runner = PipelineRunner(reporter=StatusReporter.from_settings(settings), settings=settings)
    runner.execute(run)
    return run.exit_code

def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point."""
    args = parse_args(argv)

    settings = get_settings()
    if args.workspace:
        settings = settings.model_copy(update={"workspace": args.workspace})

    configure_logging(args.log_level or settings.log_level)

    try:
        if args.command == "run":
            return run_pipeline(args, settings)

        config = load_pipeline_file(resolve_pipeline(args.pipeline, settings))
        if args.command == "show-config":
            print(json.dumps(config, indent=2))
        else:
            logger.info(f"Pipeline '{config['name']}' is valid ({len(config['steps'])} steps)")
        return 0
    except PipelineConfigError as e:
        logger.error(f"Invalid pipeline config: {e}")
        return EXIT_CONFIG_ERROR

if __name__ == "__main__":
    sys.exit(main())
