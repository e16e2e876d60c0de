"""Discovery of tree documents by id."""

from __future__ import annotations

from pathlib import Path

from gentree.errors import TreeDefinitionError
from gentree.tree_file import TREE_SUFFIXES, LoadedTreeFile


class TreeRegistry:
    def __init__(self, tree_roots: list[Path]):
        self.tree_roots = tree_roots
        self._cache: dict[str, LoadedTreeFile] = {}
        self._index: dict[str, Path] | None = None

    def _build_index(self) -> dict[str, Path]:
        index: dict[str, Path] = {}
        for root in self.tree_roots:
            if not root.exists():
                continue
            for path in sorted(root.rglob("*")):
                if path.suffix.lower() not in TREE_SUFFIXES or not path.is_file():
                    continue
                tree_id = path.stem
                if tree_id in index:
                    continue
                index[tree_id] = path
        return index

    def _get_index(self) -> dict[str, Path]:
        if self._index is None:
            self._index = self._build_index()
        return self._index

    def list_trees(self) -> list[str]:
        index = self._get_index()
        return sorted(index.keys())

    def get(self, tree_id: str) -> LoadedTreeFile:
        if tree_id in self._cache:
            return self._cache[tree_id]
        loaded = LoadedTreeFile(self.locate(tree_id))
        self._cache[tree_id] = loaded
        return loaded

    def locate(self, tree: str | Path) -> Path:
        """Path of `tree`, given either as a tree file path or as a tree id."""
        path = Path(tree)
        if path.suffix.lower() in TREE_SUFFIXES and path.is_file():
            return path
        found = self._get_index().get(str(tree))
        if found is None:
            raise TreeDefinitionError(f"Tree not found: {tree} (searched: {self.tree_roots})")
        return found

    def resolve(self, tree: str | Path) -> LoadedTreeFile:
        path = Path(tree)
        if path.suffix.lower() in TREE_SUFFIXES and path.is_file():
            return LoadedTreeFile(path)
        return self.get(str(tree))
