"""Pydantic models for run configuration."""

from __future__ import annotations

from enum import Enum

from pydantic import Field

from gentree.models.base import WireModel
from gentree.models.model_spec import ImageModelSpec, ModelSpec


class ShapePolicy(str, Enum):
    SOFT = "soft"  # log a warning and keep the output
    STRICT = "strict"  # fail the node


class LaneLimits(WireModel):
    text: int = Field(default=4, ge=1)
    image: int = Field(default=2, ge=1)


class RetryPolicy(WireModel):
    max_attempts: int = Field(default=1, ge=1)
    base_delay: float = Field(default=1.0, ge=0)

    def delay_for(self, attempt: int) -> float:
        """Delay before the attempt following `attempt` (1-based)."""
        return self.base_delay * (2 ** (attempt - 1))


class RunSettings(WireModel):
    mock: bool = False
    concurrency: LaneLimits = Field(default_factory=LaneLimits)
    retry: RetryPolicy = Field(default_factory=RetryPolicy)
    shape_policy: ShapePolicy = ShapePolicy.SOFT
    timeout: float = 30.0  # seconds, applied by the provider adapters
    text_model: ModelSpec = Field(default_factory=ModelSpec)
    image_model: ImageModelSpec = Field(default_factory=ImageModelSpec)
