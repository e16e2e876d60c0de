"""Pydantic models for requests sent to generation collaborators."""

from __future__ import annotations

from typing import Any, Literal

from pydantic import Field

from gentree.models.base import WireModel
from gentree.models.node import NodeType


class ChatMessage(WireModel):
    role: Literal["system", "user"]
    content: str
    parse_json: bool = False


class GenerationRequest(WireModel):
    messages: list[ChatMessage]
    model_options: dict[str, Any] = Field(default_factory=dict)
    node_id: str = ""
    node_type: NodeType = NodeType.TEXT
    expected_count: int | None = None

    @property
    def parse_json(self) -> bool:
        return bool(self.messages) and self.messages[-1].parse_json

    def prompt_text(self) -> str:
        """User message contents joined into a single prompt string."""
        return " ".join(message.content for message in self.messages if message.role == "user")
