"""Pydantic models for execution results."""

from __future__ import annotations

from typing import Any, Union

from pydantic import Field

from gentree.models.base import WireModel
from gentree.models.chat_message import ChatMessage
from gentree.models.node import NodeType


class ExecutionMetadata(WireModel):
    start: float
    end: float
    duration: float


class ExecutionResult(WireModel):
    id: str
    type: NodeType
    output_key: str | None = None
    success: bool
    metadata: ExecutionMetadata
    prompt: list[ChatMessage] = Field(default_factory=list)
    raw: Any = None
    output: Any = None
    error: str | None = None
    # child id -> one result, or index-ordered results when the node fanned out
    child_outputs: dict[str, Union[ExecutionResult, list[ExecutionResult]]] = Field(default_factory=dict)
