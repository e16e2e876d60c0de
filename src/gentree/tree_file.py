"""Tree documents: JSON, YAML, or markdown with frontmatter."""

from __future__ import annotations

import json
import logging
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Mapping

import frontmatter
import yaml

from gentree.errors import TreeDefinitionError
from gentree.models.node import Node
from gentree.models.run_settings import RunSettings
from gentree.tree_loader import load_tree


logger = logging.getLogger(__name__)

SECTION_HEADER_RE = re.compile(r"^(#{1,6})\s+(.+?)\s*$", re.MULTILINE)
NODE_ID_RE = re.compile(r"^[A-Za-z0-9_.-]+$")
TREE_SUFFIXES = (".md", ".yaml", ".yml", ".json")


@dataclass
class LoadedTreeFile:
    tree: Node
    settings: RunSettings
    context: dict[str, Any] = field(default_factory=dict)
    source: str = "<inline>"

    def __init__(self, source: Path | str) -> None:
        document, prompt_sections, source_label = load_tree_document(source)
        self.tree = load_tree(raw_tree_of(document, prompt_sections))
        self.settings = RunSettings.model_validate(document.get("settings") or {})
        self.context = dict(document.get("context") or {})
        self.source = source_label

    @classmethod
    def from_parts(
        cls,
        *,
        tree: Node,
        settings: RunSettings | None = None,
        context: Mapping[str, Any] | None = None,
        source: str = "<inline>",
    ) -> "LoadedTreeFile":
        obj = cls.__new__(cls)
        obj.tree = tree
        obj.settings = settings or RunSettings()
        obj.context = dict(context or {})
        obj.source = source
        return obj


def load_tree_document(source: Path | str) -> tuple[dict[str, Any], dict[str, str], str]:
    """Read a tree document from a path or inline text.

    Returns the parsed mapping, any `## prompt:<node_id>` sections found in a
    markdown body, and a label for log messages.
    """
    if isinstance(source, Path) or ("\n" not in source and Path(source).suffix.lower() in TREE_SUFFIXES):
        path = Path(source)
        if not path.exists():
            raise TreeDefinitionError(f"Tree file not found: {path}")
        text = path.read_text(encoding="utf-8")
        suffix = path.suffix.lower()
        label = str(path)
    else:
        text = str(source)
        suffix = ".md" if text.lstrip().startswith("---") else ".yaml"
        label = "<inline>"

    sections: dict[str, str] = {}
    try:
        if suffix == ".md":
            post = frontmatter.loads(text)
            document: Any = post.metadata
            sections = parse_prompt_sections(post.content)
        elif suffix == ".json":
            document = json.loads(text)
        else:
            document = yaml.safe_load(text)
    except (json.JSONDecodeError, yaml.YAMLError) as exc:
        raise TreeDefinitionError(f"Could not parse tree document {label}: {exc}") from exc

    if not isinstance(document, dict):
        raise TreeDefinitionError(f"Tree document {label} must be a mapping.")
    return document, sections, label


def raw_tree_of(document: Mapping[str, Any], prompt_sections: Mapping[str, str]) -> Any:
    """The raw root node of a document, with markdown prompt sections filled in."""
    raw_tree = document.get("tree", document)
    if prompt_sections:
        raw_tree = apply_prompt_sections(raw_tree, prompt_sections)
    return raw_tree


def parse_prompt_sections(markdown_body: str) -> dict[str, str]:
    """
    Extracts blocks that begin with headings "## prompt:<node_id>".
    Returns mapping: node id -> content for that node (excluding heading line).
    """
    matches = list(SECTION_HEADER_RE.finditer(markdown_body))
    recognized: list[tuple[str, int, int]] = []
    for match in matches:
        node_id = classify_section_header(match.group(2))
        if node_id is not None:
            recognized.append((node_id, match.start(), match.end()))

    sections: dict[str, str] = {}
    for index, (node_id, _start, end) in enumerate(recognized):
        next_index = index + 1
        section_end = recognized[next_index][1] if next_index < len(recognized) else len(markdown_body)
        if node_id in sections:
            logger.warning("Duplicate prompt section for node %s; keeping the first", node_id)
            continue
        sections[node_id] = markdown_body[end:section_end].strip()
    return sections


def classify_section_header(header_text: str) -> str | None:
    header = header_text.strip()
    if ":" not in header:
        return None
    prefix, node_id = header.split(":", 1)
    node_id = node_id.strip()
    if prefix.strip().lower() == "prompt" and node_id and NODE_ID_RE.match(node_id):
        return node_id
    return None


def apply_prompt_sections(raw: Any, sections: Mapping[str, str]) -> Any:
    """Fill in prompt templates from markdown sections for nodes that configure none."""
    if not isinstance(raw, Mapping):
        return raw
    node = dict(raw)
    config = dict(node.get("config") or {})
    section = sections.get(str(node.get("id")))
    if section and not config.get("prompt"):
        config["prompt"] = {"template": section}
        node["config"] = config
    for key in ("children", "generations"):
        if isinstance(node.get(key), list):
            node[key] = [apply_prompt_sections(child, sections) for child in node[key]]
    return node
