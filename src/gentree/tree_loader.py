"""Validation and normalization of raw tree definitions."""

from __future__ import annotations

import logging
from typing import Any, Mapping

from pydantic import Field, ValidationError

from gentree.errors import TreeDefinitionError
from gentree.models.base import WireModel
from gentree.models.node import Node, NodeType
from gentree.node_kinds import kind_for


logger = logging.getLogger(__name__)

VALID_TYPES = [node_type.value for node_type in NodeType]
CHILD_KEYS = ("children", "generations")


class ExpectedShape(WireModel):
    id: str
    type: NodeType
    expected_output: Any = None
    children: list[ExpectedShape] = Field(default_factory=list)


def node_problems(raw: Any) -> list[str]:
    """List what makes a raw node unusable; empty when it can be normalized."""
    if not isinstance(raw, Mapping):
        return ["node is not a mapping"]
    problems: list[str] = []
    if not raw.get("id"):
        problems.append("missing id")
    node_type = raw.get("type")
    if not node_type:
        problems.append("missing type")
    elif not isinstance(node_type, str) or node_type.lower() not in VALID_TYPES:
        problems.append(f"invalid type {node_type!r}, expected one of: {', '.join(VALID_TYPES)}")
    return problems


def raw_children(raw: Mapping[str, Any]) -> list[Any]:
    for key in CHILD_KEYS:
        children = raw.get(key)
        if isinstance(children, list):
            return children
    return []


def normalize(raw: Any, *, seen_ids: set[str] | None = None) -> Node | None:
    """
    Validates a raw node and its descendants. Invalid nodes are logged and
    dropped together with their subtree; their siblings are kept.
    """
    seen = set() if seen_ids is None else seen_ids
    problems = node_problems(raw)
    if problems:
        label = raw.get("id") if isinstance(raw, Mapping) and raw.get("id") else "unknown"
        logger.warning("Dropping invalid node %s: %s", label, "; ".join(problems))
        return None

    node_id = str(raw["id"])
    if node_id in seen:
        logger.warning("Dropping node %s: duplicate id", node_id)
        return None

    fields = {key: value for key, value in raw.items() if key not in CHILD_KEYS}
    fields["id"] = node_id
    config = fields.get("config") or {}
    fields["config"] = config
    if not fields.get("validation") and isinstance(config, Mapping):
        # Older trees nest the validation block inside config.
        fields["validation"] = config.get("validation") or {}
    try:
        node = Node.model_validate(fields)
    except ValidationError as exc:
        details = "; ".join(f"{'.'.join(str(loc) for loc in error['loc'])}: {error['msg']}" for error in exc.errors())
        logger.warning("Dropping invalid node %s: %s", node_id, details)
        return None

    seen.add(node_id)
    for child_raw in raw_children(raw):
        child = normalize(child_raw, seen_ids=seen)
        if child is not None:
            node.children.append(child)
    return node


def load_tree(raw: Any) -> Node:
    node = normalize(raw)
    if node is None:
        raise TreeDefinitionError("Tree root is invalid; see warnings for details.")
    return node


def sketch(raw: Any) -> ExpectedShape | None:
    """
    Shape-only pass used to generate test fixtures offline. Prunes exactly
    the nodes that `normalize` prunes.
    """
    node = normalize(raw)
    if node is None:
        return None
    return sketch_node(node)


def sketch_node(node: Node) -> ExpectedShape:
    children = [sketch_node(child) for child in node.children]
    return ExpectedShape(
        id=node.id,
        type=node.type,
        expected_output=expected_output(node, children),
        children=children,
    )


def expected_output(node: Node, children: list[ExpectedShape]) -> Any:
    kind = kind_for(node.type)
    if not children:
        return kind.placeholder
    if kind.array_shaped:
        return [child.expected_output for child in children]
    if len(children) > 1:
        return {child.id: child.expected_output for child in children}
    return children[0].expected_output
