"""Per-type behaviour for the closed set of node types."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable, Mapping

from gentree.lane_scheduler import Lane
from gentree.models.node import NodeType


@dataclass(frozen=True)
class NodeKind:
    node_type: NodeType
    lane: Lane
    array_shaped: bool
    normalize: Callable[[Any], Any]  # raw collaborator result -> pipeline output
    project: Callable[[Any], Any]  # pipeline output -> minimal projected value
    placeholder: Any  # expected output of a leaf in shape sketches


def _passthrough(value: Any) -> Any:
    return value


def _as_list(value: Any) -> Any:
    return value if isinstance(value, list) else [value]


def _image_url(value: Any) -> Any:
    if isinstance(value, Mapping):
        return value.get("url")
    return value


def _as_object(value: Any) -> Any:
    if isinstance(value, (Mapping, list)):
        return value
    return {"value": value}


KINDS: dict[NodeType, NodeKind] = {
    NodeType.TEXT: NodeKind(
        node_type=NodeType.TEXT,
        lane=Lane.TEXT,
        array_shaped=False,
        normalize=_passthrough,
        project=_passthrough,
        placeholder="sample text",
    ),
    NodeType.TEXT_ARRAY: NodeKind(
        node_type=NodeType.TEXT_ARRAY,
        lane=Lane.TEXT,
        array_shaped=True,
        normalize=_as_list,
        project=_as_list,
        placeholder="sample text",
    ),
    NodeType.IMAGE: NodeKind(
        node_type=NodeType.IMAGE,
        lane=Lane.IMAGE,
        array_shaped=False,
        normalize=_passthrough,
        project=_image_url,
        placeholder="https://example.com/image.jpg",
    ),
    NodeType.OBJECT: NodeKind(
        node_type=NodeType.OBJECT,
        lane=Lane.TEXT,
        array_shaped=False,
        normalize=_passthrough,
        project=_as_object,
        placeholder=None,
    ),
}


def kind_for(node_type: NodeType | str) -> NodeKind:
    return KINDS[NodeType(node_type)]
