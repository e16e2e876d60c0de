"""Immutable, layered execution context."""

from __future__ import annotations

from typing import Any, Iterator, Mapping, Sequence


_MISSING = object()


class Context(Mapping[str, Any]):
    """Read-only mapping made of stacked binding layers.

    `child()` adds a layer without copying the layers below it, so sibling
    branches share their ancestors' values and never see each other's
    bindings. `parent` is the scope the enclosing node was given.
    """

    __slots__ = ("_values", "_parent")

    def __init__(self, values: Mapping[str, Any] | None = None, parent: Context | None = None) -> None:
        self._values: dict[str, Any] = dict(values or {})
        self._parent: Context | None = parent

    @property
    def parent(self) -> Context | None:
        return self._parent

    def child(self, bindings: Mapping[str, Any] | None = None) -> Context:
        return Context(bindings, parent=self)

    def __getitem__(self, key: str) -> Any:
        scope: Context | None = self
        while scope is not None:
            if key in scope._values:
                return scope._values[key]
            scope = scope._parent
        raise KeyError(key)

    def __contains__(self, key: object) -> bool:
        scope: Context | None = self
        while scope is not None:
            if key in scope._values:
                return True
            scope = scope._parent
        return False

    def __iter__(self) -> Iterator[str]:
        seen: set[str] = set()
        scope: Context | None = self
        while scope is not None:
            for key in scope._values:
                if key not in seen:
                    seen.add(key)
                    yield key
            scope = scope._parent

    def __len__(self) -> int:
        return sum(1 for _ in self)

    def __repr__(self) -> str:
        return f"Context({dict(self)!r})"

    def lookup(self, path: str) -> Any:
        """Resolve a dotted path such as `project.title` or `ideas.0`; None when absent."""
        head, _, rest = path.partition(".")
        value = self.get(head, _MISSING)
        if value is _MISSING:
            return None
        return lookup_path(value, rest) if rest else value


def lookup_path(value: Any, path: str) -> Any:
    for part in path.split("."):
        if isinstance(value, Mapping):
            value = value.get(part, _MISSING)
        elif isinstance(value, Sequence) and not isinstance(value, str) and part.lstrip("-").isdigit():
            index = int(part)
            value = value[index] if -len(value) <= index < len(value) else _MISSING
        else:
            value = _MISSING
        if value is _MISSING:
            return None
    return value
