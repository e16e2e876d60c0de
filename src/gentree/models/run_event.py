"""Pydantic model for structured run events."""

from __future__ import annotations

from enum import Enum
from typing import Any

from pydantic import Field

from gentree.models.base import WireModel


class EventKind(str, Enum):
    RUN_STARTED = "run_started"
    RUN_FINISHED = "run_finished"
    NODE_STARTED = "node_started"
    NODE_COMPLETED = "node_completed"
    NODE_FAILED = "node_failed"
    SHAPE_MISMATCH = "shape_mismatch"
    GENERATION_RETRY = "generation_retry"


class RunEvent(WireModel):
    kind: EventKind
    node_id: str | None = None
    message: str
    data: dict[str, Any] = Field(default_factory=dict)
