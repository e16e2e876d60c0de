"""CLI entrypoint."""

from __future__ import annotations

import argparse
import json
import logging
from pathlib import Path
from typing import Any

import yaml

from gentree.errors import GenTreeError
from gentree.models.execution_result import ExecutionResult
from gentree.models.progress import ProgressSnapshot
from gentree.output_projector import project
from gentree.runner import TreeRunner
from gentree.tree_file import LoadedTreeFile, load_tree_document, raw_tree_of
from gentree.tree_loader import sketch
from gentree.tree_registry import TreeRegistry


logger = logging.getLogger("gentree")


async def run_tree(runner: TreeRunner, loaded: LoadedTreeFile, context: dict[str, Any]) -> ExecutionResult:
    return await runner.run(loaded, context)


def parse_context(pairs: list[str], context_file: str | None) -> dict[str, Any]:
    context: dict[str, Any] = {}
    if context_file:
        loaded = yaml.safe_load(Path(context_file).read_text(encoding="utf-8"))
        if not isinstance(loaded, dict):
            raise GenTreeError(f"Context file {context_file} must contain a mapping.")
        context.update(loaded)
    for pair in pairs:
        if "=" not in pair:
            raise GenTreeError(f"Expected key=value for --context, got {pair!r}")
        key, value = pair.split("=", 1)
        # Values are YAML scalars so numbers and lists keep their type.
        context[key.strip()] = yaml.safe_load(value)
    return context


def runner_for(registry: TreeRegistry, loaded: LoadedTreeFile, *, mock: bool = False) -> TreeRunner:
    """Runner for `loaded`; `mock` overrides the document settings without touching them."""
    settings = loaded.settings.model_copy(update={"mock": True}) if mock else None
    return TreeRunner(registry.tree_roots, settings=settings, on_progress=log_progress)


def log_progress(snapshot: ProgressSnapshot) -> None:
    logger.info(
        "progress %s%% (%d/%d done, %d failed, %d running, %d queued)",
        snapshot.percentage,
        snapshot.completed + snapshot.failed,
        snapshot.total,
        snapshot.failed,
        snapshot.in_progress,
        snapshot.queued,
    )


def main() -> None:
    parser = argparse.ArgumentParser(prog="gentree")
    parser.add_argument("--trees-dir", type=str, default="trees")
    parser.add_argument("--tree", type=str, required=True, help="Tree id or path to a tree file")
    parser.add_argument("--context", action="append", default=[], help="Initial context value as key=value")
    parser.add_argument("--context-file", type=str, help="JSON or YAML file with the initial context")
    parser.add_argument("--mock", action="store_true", help="Use mock generators")
    output_group = parser.add_mutually_exclusive_group()
    output_group.add_argument("--raw", action="store_true", help="Print the full execution result")
    output_group.add_argument("--sketch", action="store_true", help="Print the expected output shape and exit")
    parser.add_argument("--log-level", type=str, default="INFO")
    args = parser.parse_args()

    logging.basicConfig(level=args.log_level.upper(), format="%(asctime)s %(levelname)s %(name)s: %(message)s")

    registry = TreeRegistry([Path(args.trees_dir)])

    if args.sketch:
        document, sections, _label = load_tree_document(registry.locate(args.tree))
        shape = sketch(raw_tree_of(document, sections))
        print(json.dumps(shape.model_dump(by_alias=True, mode="json") if shape else None, indent=2))
        return

    loaded = registry.resolve(args.tree)
    runner = runner_for(registry, loaded, mock=args.mock)
    context = parse_context(args.context, args.context_file)

    # Async entrypoint
    import anyio

    result = anyio.run(run_tree, runner, loaded, context)
    if args.raw:
        print(result.model_dump_json(by_alias=True, indent=2))
    else:
        print(json.dumps(project(result), indent=2, ensure_ascii=False))
