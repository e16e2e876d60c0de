"""Projection of execution results into minimal display/storage values."""

from __future__ import annotations

from typing import Any, Mapping

from gentree.models.execution_result import ExecutionResult
from gentree.node_kinds import kind_for


def project(result: ExecutionResult | None) -> Any:
    """
    Reduces a result tree to plain values.

    A node's output is coerced by type, then merged with its children: a
    single child replaces an unkeyed parent, a keyed parent is nested next to
    its children. Nodes that fanned out project to one entry per element.
    """
    if result is None or result.output is None:
        return None
    base = kind_for(result.type).project(result.output)
    if not result.child_outputs:
        return base
    if any(isinstance(slot, list) for slot in result.child_outputs.values()):
        return project_fan_out(result, base)

    projected: dict[str, Any] = {}
    for child_id, child in result.child_outputs.items():
        projected[child_id] = project(child) if isinstance(child, ExecutionResult) else None
    return merge(result.output_key, base, projected)


def project_fan_out(result: ExecutionResult, base: Any) -> list[Any]:
    # Per element, children are keyed by their output key so each entry reads
    # like the context the element's children were given. A key already used
    # in the row falls back to the child id.
    items = base if isinstance(base, list) else [base]
    rows: list[Any] = []
    for index, item in enumerate(items):
        projected: dict[str, Any] = {}
        for child_id, slot in result.child_outputs.items():
            child = element_at(slot, index)
            key = child.output_key if child is not None and child.output_key else child_id
            if key == result.output_key or key in projected:
                key = child_id
            projected[key] = project(child)
        rows.append(merge(result.output_key, item, projected))
    return rows


def element_at(slot: ExecutionResult | list[ExecutionResult], index: int) -> ExecutionResult | None:
    if isinstance(slot, ExecutionResult):
        return slot
    return slot[index] if index < len(slot) else None


def merge(output_key: str | None, base: Any, children: Mapping[str, Any]) -> Any:
    if not children:
        return base
    if len(children) == 1:
        child_key, value = next(iter(children.items()))
        if not output_key:
            return value
        return {output_key: base, child_key: value}

    merged: dict[str, Any] = {}
    if output_key:
        merged[output_key] = base
    elif isinstance(base, Mapping):
        merged.update(base)
    merged.update(children)
    return merged
