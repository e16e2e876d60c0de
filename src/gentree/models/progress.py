"""Pydantic models for scheduler progress snapshots."""

from __future__ import annotations

from pydantic import Field

from gentree.models.base import WireModel


class LaneSnapshot(WireModel):
    waiting: int = 0
    pending: int = 0
    concurrency: int
    submitted: int = 0
    completed: int = 0
    failed: int = 0


class ProgressSnapshot(WireModel):
    total: int = 0
    completed: int = 0
    failed: int = 0
    in_progress: int = 0
    queued: int = 0
    percentage: float = 0
    per_lane: dict[str, LaneSnapshot] = Field(default_factory=dict)
