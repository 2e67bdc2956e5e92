"""
Trigger event parsing and branch filtering.
"""

import fnmatch
import logging
from typing import Any, Dict, List, Optional

from checkrun.src.models.trigger import EventType, TriggerEvent

logger = logging.getLogger(__name__)

def _strip_ref(ref: str) -> str:
    # refs/heads/main -> main
    return ref.replace("refs/heads/", "", 1) if ref.startswith("refs/heads/") else ref

def parse_trigger_payload(event_type: str, payload: Dict[str, Any]) -> TriggerEvent:
    """Build a TriggerEvent from a GitHub-style event payload."""
    event = EventType(event_type)

    if event == EventType.PULL_REQUEST:
        pr = payload.get("pull_request") or {}
        base = pr.get("base") or {}
        head = pr.get("head") or {}
        # Pull requests are filtered on the branch they target
        return TriggerEvent(
            event_type=event,
            branch=_strip_ref(base.get("ref") or ""),
            ref=f"refs/pull/{payload.get('number', pr.get('number', ''))}/merge",
            commit_sha=head.get("sha") or None,
            actor=(pr.get("user") or {}).get("login") or None,
        )

    ref = payload.get("ref") or ""
    head_commit = payload.get("head_commit") or {}
    return TriggerEvent(
        event_type=event,
        branch=_strip_ref(ref),
        ref=ref or None,
        commit_sha=head_commit.get("id", payload.get("after")) or None,
        actor=(payload.get("pusher") or {}).get("name") or None,
    )

def branch_matches(branch: str, patterns: List[str]) -> bool:
    return any(fnmatch.fnmatchcase(branch, pattern) for pattern in patterns)

def should_run(
    event: TriggerEvent,
    triggers: Optional[Dict[str, Dict[str, Any]]],
    default_branches: List[str],
) -> bool:
    """
    Check an event against a pipeline's trigger filters.
    `triggers` maps event type to {"branches": [...]}; when it is empty the
    default branch allow-list applies to every event type.
    """
    if not triggers:
        return branch_matches(event.branch, default_branches)

    if event.event_type.value not in triggers:
        logger.info(f"Event '{event.event_type.value}' not configured for this pipeline")
        return False

    branches = triggers[event.event_type.value].get("branches")
    if branches is None:
        return True

    return branch_matches(event.branch, branches)
