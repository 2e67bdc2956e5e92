"""
Pipeline YAML parser and validator.
"""

import os
import yaml
from typing import List, Dict, Any, Optional

from checkrun.src.config import Settings, get_settings
from checkrun.src.models.step import Run, Step, UploadConfig
from checkrun.src.models.trigger import EventType, TriggerEvent
from checkrun.src.services.command import shell_command

PIPELINE_FILES = [
    ".pipeline.yml",
    ".pipeline.yaml",
    "pipeline.yml",
    "pipeline.yaml",
]

STEP_KINDS = ("run", "commands", "command", "upload")

class PipelineConfigError(Exception):
    """Raised when pipeline configuration is invalid."""
    pass

def parse_pipeline_config(yaml_content: str) -> Dict[str, Any]:
    """Parse pipeline YAML configuration from string."""
    try:
        config = yaml.safe_load(yaml_content)
    except yaml.YAMLError as e:
        raise PipelineConfigError(f"Invalid YAML: {e}")

    return validate_config(config)

def parse_pipeline_dict(config: Dict[str, Any]) -> Dict[str, Any]:
    """Validate pipeline configuration from dict."""
    return validate_config(config)

def find_pipeline_file(workspace: str) -> Optional[str]:
    """Return the first pipeline file found in the workspace, if any."""
    for name in PIPELINE_FILES:
        path = os.path.join(workspace, name)
        if os.path.exists(path):
            return path
    return None

def load_pipeline_file(path: str) -> Dict[str, Any]:
    """Read and validate a pipeline file."""
    try:
        with open(path, "r") as f:
            content = f.read()
    except OSError as e:
        raise PipelineConfigError(f"Cannot read {path}: {e}")

    return parse_pipeline_config(content)

def validate_config(config: Optional[Dict[str, Any]]) -> Dict[str, Any]:
    """Validate pipeline configuration structure."""
    if not config:
        raise PipelineConfigError("Empty pipeline configuration")

    if not isinstance(config, dict):
        raise PipelineConfigError("Pipeline configuration must be a dictionary")

    name = config.get("name", "Unnamed Pipeline")
    if not isinstance(name, str):
        raise PipelineConfigError("Pipeline 'name' must be a string")

    if "steps" not in config:
        raise PipelineConfigError("Pipeline must have 'steps' defined")

    steps = config["steps"] or []
    if not isinstance(steps, list):
        raise PipelineConfigError("Pipeline 'steps' must be a list")

    validated_steps = []
    for i, step in enumerate(steps):
        validated_step = validate_step(step, i)
        validated_steps.append(validated_step)

    # YAML 1.1 reads a bare `on` key as boolean true
    triggers = config.get("on", config.get(True))

    return {
        "name": name,
        "on": validate_triggers(triggers),
        "env": validate_env(config.get("env"), "Pipeline"),
        "steps": validated_steps,
    }

def validate_triggers(triggers: Any) -> Dict[str, Dict[str, Any]]:
    """
    Normalize `on:` to {event_type: {"branches": [...] or None}}.
    Accepts a single event name, a list of names, or a mapping.
    """
    if triggers is None:
        return {}

    if isinstance(triggers, str):
        triggers = [triggers]

    if isinstance(triggers, list):
        triggers = {event: None for event in triggers}

    if not isinstance(triggers, dict):
        raise PipelineConfigError("Pipeline 'on' must be an event name, list or mapping")

    valid_events = [e.value for e in EventType]
    normalized = {}
    for event, filters in triggers.items():
        if event not in valid_events:
            raise PipelineConfigError(
                f"Unsupported trigger event '{event}' (expected one of {valid_events})"
            )

        filters = filters or {}
        if not isinstance(filters, dict):
            raise PipelineConfigError(f"Trigger '{event}' filters must be a mapping")

        branches = filters.get("branches")
        if branches is not None:
            if isinstance(branches, str):
                branches = [branches]
            if not isinstance(branches, list) or not all(isinstance(b, str) for b in branches):
                raise PipelineConfigError(f"Trigger '{event}' branches must be a list of strings")

        normalized[event] = {"branches": branches}

    return normalized

def validate_env(env: Any, owner: str) -> Dict[str, str]:
    if env is None:
        return {}

    if not isinstance(env, dict):
        raise PipelineConfigError(f"{owner} 'env' must be a mapping")

    # YAML scalars such as `always` or `1` become strings for the environment
    return {str(key): str(value) for key, value in env.items()}

def validate_step(step: Dict[str, Any], index: int) -> Dict[str, Any]:
    """Validate a single pipeline step."""
    if not isinstance(step, dict):
        raise PipelineConfigError(f"Step {index} must be a dictionary")

    if "name" not in step:
        raise PipelineConfigError(f"Step {index} missing 'name'")

    if not isinstance(step["name"], str):
        raise PipelineConfigError(f"Step {index} 'name' must be a string")

    kinds = [kind for kind in STEP_KINDS if kind in step]
    if not kinds:
        raise PipelineConfigError(
            f"Step {index} must define one of 'run', 'commands', 'command' or 'upload'"
        )
    if len(kinds) > 1:
        raise PipelineConfigError(f"Step {index} defines more than one of {kinds}")

    validated = {
        "name": step["name"],
        "continue_on_error": _validate_bool(
            step.get("continue_on_error", step.get("continue-on-error", False)),
            index,
        ),
        "env": validate_env(step.get("env"), f"Step {index}"),
        "working_directory": step.get("working_directory"),
        "timeout": step.get("timeout"),
    }

    if validated["working_directory"] is not None and not isinstance(validated["working_directory"], str):
        raise PipelineConfigError(f"Step {index} 'working_directory' must be a string")

    timeout = validated["timeout"]
    if timeout is not None and (not isinstance(timeout, int) or isinstance(timeout, bool) or timeout <= 0):
        raise PipelineConfigError(f"Step {index} 'timeout' must be a positive integer")

    kind = kinds[0]
    if kind == "run":
        if not isinstance(step["run"], str):
            raise PipelineConfigError(f"Step {index} 'run' must be a string")
        validated["commands"] = [step["run"].strip()]
    elif kind == "commands":
        validated["commands"] = _validate_string_list(step["commands"], index, "commands")
    elif kind == "command":
        command = step["command"]
        if isinstance(command, str):
            command = [command]
        validated["command"] = _validate_string_list(command, index, "command")
    else:
        validated["upload"] = _validate_upload(step["upload"], index)

    return validated

def _validate_bool(value: Any, index: int) -> bool:
    if not isinstance(value, bool):
        raise PipelineConfigError(f"Step {index} 'continue_on_error' must be a boolean")
    return value

def _validate_string_list(value: Any, index: int, field: str) -> List[str]:
    if not isinstance(value, list):
        raise PipelineConfigError(f"Step {index} '{field}' must be a list")

    if not value:
        raise PipelineConfigError(f"Step {index} '{field}' must not be empty")

    for j, item in enumerate(value):
        if not isinstance(item, str):
            raise PipelineConfigError(f"Step {index} {field} {j} must be a string")

    return value

def _validate_upload(upload: Any, index: int) -> Dict[str, Any]:
    if isinstance(upload, str):
        upload = {"sarif_file": upload}

    if not isinstance(upload, dict):
        raise PipelineConfigError(f"Step {index} 'upload' must be a mapping")

    if "sarif_file" not in upload:
        raise PipelineConfigError(f"Step {index} upload missing 'sarif_file'")

    target = upload.get("target")
    if target is not None and not isinstance(target, str):
        raise PipelineConfigError(f"Step {index} upload 'target' must be a string")

    return {"sarif_file": str(upload["sarif_file"]), "target": target}

def build_step(step_config: Dict[str, Any], settings: Settings) -> Step:
    """Turn a validated step definition into a runnable Step."""
    if "upload" in step_config:
        upload = UploadConfig(**step_config["upload"])
        argv = ["upload", upload.sarif_file]
    elif "command" in step_config:
        argv = step_config["command"]
        upload = None
    else:
        argv = shell_command(settings.shell, step_config["commands"])
        upload = None

    return Step(
        name=step_config["name"],
        command=argv[0],
        args=argv[1:],
        continue_on_error=step_config["continue_on_error"],
        env=step_config["env"],
        working_directory=step_config["working_directory"],
        timeout=step_config["timeout"],
        upload=upload,
    )

def build_run(
    config: Dict[str, Any],
    event: Optional[TriggerEvent] = None,
    settings: Optional[Settings] = None,
) -> Run:
    """Construct a fresh Run from a validated pipeline configuration."""
    settings = settings or get_settings()

    return Run(
        name=config["name"],
        env=config["env"],
        event=event,
        steps=[build_step(step_config, settings) for step_config in config["steps"]],
    )
