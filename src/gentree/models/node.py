"""Pydantic models for generation tree nodes."""

from __future__ import annotations

from enum import Enum
from typing import Any

from pydantic import Field, field_validator

from gentree.models.base import WireModel


ARRAY_MARKER = "[]"


class NodeType(str, Enum):
    OBJECT = "object"
    TEXT = "text"
    TEXT_ARRAY = "text-array"
    IMAGE = "image"


class PromptStep(WireModel):
    template: str = ""
    prefix: str | None = None
    suffix: str | None = None
    system: str | None = None
    parse_json: bool = False


class NodeConfig(WireModel):
    prompt: list[PromptStep] = Field(default_factory=list)
    model: dict[str, Any] = Field(default_factory=dict)

    @field_validator("prompt", mode="before")
    @classmethod
    def _prompt_as_steps(cls, value: Any) -> Any:
        if value is None:
            return []
        if isinstance(value, (str, dict)):
            value = [value]
        if isinstance(value, list):
            return [{"template": step} if isinstance(step, str) else step for step in value]
        return value

    @field_validator("model", mode="before")
    @classmethod
    def _model_options(cls, value: Any) -> Any:
        return {} if value is None else value


class ValidationSpec(WireModel):
    required: list[str] = Field(default_factory=list)
    min_length: int | None = None
    max_length: int | None = None

    @field_validator("required", mode="before")
    @classmethod
    def _required_names(cls, value: Any) -> Any:
        # Older trees use `required: true`, which names no output fields.
        if value is None or isinstance(value, bool):
            return []
        return value


class Node(WireModel):
    id: str
    type: NodeType
    output_key: str | None = None
    required_inputs: list[str] = Field(default_factory=list)
    config: NodeConfig = Field(default_factory=NodeConfig)
    validation: ValidationSpec = Field(default_factory=ValidationSpec)
    children: list[Node] = Field(default_factory=list)

    @field_validator("type", mode="before")
    @classmethod
    def _lowercase_type(cls, value: Any) -> Any:
        return value.lower() if isinstance(value, str) else value

    @field_validator("required_inputs", mode="before")
    @classmethod
    def _ordered_unique_inputs(cls, value: Any) -> Any:
        if value is None:
            return []
        if isinstance(value, list):
            return list(dict.fromkeys(value))
        return value

    def walk(self) -> list[Node]:
        """Return this node and its descendants in depth-first order."""
        nodes = [self]
        for child in self.children:
            nodes.extend(child.walk())
        return nodes


def split_input_name(name: str) -> tuple[str, bool]:
    """Split a required-input name into its context key and array flag."""
    if name.endswith(ARRAY_MARKER):
        return name[: -len(ARRAY_MARKER)], True
    return name, False
