"""
Trigger event models.
"""

from pydantic import BaseModel
from typing import Optional
from enum import Enum

class EventType(str, Enum):
    PUSH = "push"
    PULL_REQUEST = "pull_request"

class TriggerEvent(BaseModel):
    event_type: EventType
    branch: str
    ref: Optional[str] = None
    commit_sha: Optional[str] = None
    actor: Optional[str] = None
