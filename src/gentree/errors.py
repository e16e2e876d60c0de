"""Exception types raised while loading and executing generation trees."""

from __future__ import annotations


class GenTreeError(Exception):
    pass


class TreeDefinitionError(GenTreeError):
    """The tree document or its root node cannot be used."""


class TreeExecutionError(GenTreeError):
    """A run aborted because an unexpected error escaped a node."""


class NodeError(GenTreeError):
    """Failure local to one node; recorded in its result, siblings continue."""


class MissingInputError(NodeError):
    def __init__(self, missing: list[str]) -> None:
        self.missing = list(missing)
        super().__init__(f"Missing required inputs: {', '.join(self.missing)}")


class ConfigurationError(NodeError):
    pass


class GenerationError(NodeError):
    pass


class OutputValidationError(NodeError):
    def __init__(self, message: str, missing: list[str] | None = None) -> None:
        self.missing = list(missing or [])
        super().__init__(message)


class ShapeMismatchError(OutputValidationError):
    pass
