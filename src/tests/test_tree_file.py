import json
from pathlib import Path

import pytest

from gentree import cli as cli_module
from gentree.cli import parse_context
from gentree.errors import GenTreeError, TreeDefinitionError
from gentree.models import NodeType, ShapePolicy
from gentree.runner import TreeRunner
from gentree.tree_file import LoadedTreeFile, load_tree_document, parse_prompt_sections
from gentree.tree_registry import TreeRegistry


MARKDOWN_TREE = """---
settings:
  mock: true
  shapePolicy: strict
  concurrency:
    text: 2
context:
  year: 2024
tree:
  id: ideas
  type: text-array
  outputKey: idea
  validation:
    minLength: 2
  generations:
    - id: caption
      type: text
      requiredInputs: [idea]
---

Exhibition ideas, one caption per idea.

## prompt:ideas

List ideas for ${year}.

## Notes

Not a prompt.

## prompt:caption

Caption for ${idea}.
"""


def _write(path: Path, text: str) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(text, encoding="utf-8")
    return path


def test_markdown_tree_takes_prompts_from_sections(tmp_path: Path) -> None:
    loaded = LoadedTreeFile(_write(tmp_path / "ideas.md", MARKDOWN_TREE))

    assert loaded.tree.id == "ideas"
    assert loaded.tree.config.prompt[0].template == "List ideas for ${year}.\n\n## Notes\n\nNot a prompt."
    assert loaded.tree.children[0].config.prompt[0].template == "Caption for ${idea}."
    assert loaded.settings.mock is True
    assert loaded.settings.shape_policy is ShapePolicy.STRICT
    assert loaded.settings.concurrency.text == 2
    assert loaded.context == {"year": 2024}
    assert loaded.source.endswith("ideas.md")


def test_prompt_sections_only_match_prompt_headers() -> None:
    body = "## prompt:a\nfirst\n### prompt: b \nsecond\n## prompt:a\nagain\n## intro\n"

    sections = parse_prompt_sections(body)

    assert sections == {"a": "first", "b": "second"}


def test_configured_prompts_win_over_sections(tmp_path: Path) -> None:
    text = """---
tree:
  id: root
  type: text
  config:
    prompt: Inline prompt
---
## prompt:root
Section prompt
"""
    loaded = LoadedTreeFile(_write(tmp_path / "root.md", text))

    assert loaded.tree.config.prompt[0].template == "Inline prompt"


def test_yaml_and_json_documents(tmp_path: Path) -> None:
    yaml_path = _write(
        tmp_path / "cover.yaml",
        "tree:\n  id: cover\n  type: IMAGE\n  config:\n    prompt:\n      template: A ${subject}\n",
    )
    json_path = _write(
        tmp_path / "bare.json",
        json.dumps({"id": "bare", "type": "object", "children": [{"id": "leaf", "type": "text"}]}),
    )

    cover = LoadedTreeFile(yaml_path)
    bare = LoadedTreeFile(json_path)

    assert cover.tree.type is NodeType.IMAGE
    assert cover.settings.mock is False
    assert bare.tree.children[0].id == "leaf"
    assert bare.context == {}


def test_inline_documents_are_parsed() -> None:
    document, sections, label = load_tree_document("---\ntree:\n  id: x\n  type: text\n---\n## prompt:x\nHi\n")
    yaml_document, _, _ = load_tree_document("id: y\ntype: text\n")

    assert document["tree"]["id"] == "x"
    assert sections == {"x": "Hi"}
    assert label == "<inline>"
    assert yaml_document == {"id": "y", "type": "text"}


@pytest.mark.parametrize(
    ("name", "text"),
    [
        ("list.yaml", "- not\n- a mapping\n"),
        ("broken.json", "{not json"),
        ("badroot.yaml", "id: root\ntype: video\n"),
    ],
)
def test_unusable_documents_raise(tmp_path: Path, name: str, text: str) -> None:
    with pytest.raises(TreeDefinitionError):
        LoadedTreeFile(_write(tmp_path / name, text))


def test_missing_file_raises(tmp_path: Path) -> None:
    with pytest.raises(TreeDefinitionError, match="not found"):
        LoadedTreeFile(tmp_path / "absent.yaml")


def test_registry_indexes_tree_files_by_stem(tmp_path: Path) -> None:
    first = tmp_path / "first"
    second = tmp_path / "second"
    _write(first / "nested" / "alpha.yaml", "id: alpha\ntype: text\n")
    _write(second / "alpha.json", json.dumps({"id": "other", "type": "text"}))
    _write(second / "beta.md", "---\nid: beta\ntype: object\n---\n")
    _write(second / "notes.txt", "ignored")

    registry = TreeRegistry([first, second, tmp_path / "missing"])

    assert registry.list_trees() == ["alpha", "beta"]
    alpha = registry.get("alpha")
    assert alpha.tree.id == "alpha"
    assert registry.get("alpha") is alpha
    assert registry.resolve(second / "alpha.json").tree.id == "other"
    with pytest.raises(TreeDefinitionError, match="Tree not found"):
        registry.get("gamma")


@pytest.mark.anyio
async def test_runner_runs_mock_tree_with_document_context(tmp_path: Path) -> None:
    _write(tmp_path / "ideas.md", MARKDOWN_TREE)
    runner = TreeRunner([tmp_path])

    result = await runner.run("ideas")
    projected = await runner.run_projected("ideas", {"year": 1999})

    assert result.success is True
    assert result.prompt[0].content.startswith("List ideas for 2024.")
    assert projected == [
        {"idea": "Mock array item 1 for ideas", "caption": "Mock text response for caption"},
        {"idea": "Mock array item 2 for ideas", "caption": "Mock text response for caption"},
    ]


def test_parse_context_reads_pairs_and_file(tmp_path: Path) -> None:
    context_file = _write(tmp_path / "context.yaml", "year: 2023\ntheme: sea\n")

    context = parse_context(["year=2024", "tags=[a, b]", "title=Hives and bees"], str(context_file))

    assert context == {"year": 2024, "theme": "sea", "tags": ["a", "b"], "title": "Hives and bees"}
    with pytest.raises(GenTreeError):
        parse_context(["no-equals"], None)


def test_cli_prints_projection_in_mock_mode(
    monkeypatch: pytest.MonkeyPatch, capsys: pytest.CaptureFixture[str], tmp_path: Path
) -> None:
    _write(
        tmp_path / "trees" / "title.yaml",
        "tree:\n  id: title\n  type: text\n  requiredInputs: [topic]\n  config:\n    prompt: Title for ${topic}\n",
    )
    monkeypatch.setattr(
        "sys.argv",
        ["gentree", "--trees-dir", str(tmp_path / "trees"), "--tree", "title", "--mock", "--context", "topic=bees"],
    )

    cli_module.main()

    assert json.loads(capsys.readouterr().out) == "Mock text response for title"


def test_cli_sketch_prints_expected_shape(
    monkeypatch: pytest.MonkeyPatch, capsys: pytest.CaptureFixture[str], tmp_path: Path
) -> None:
    tree_path = _write(tmp_path / "ideas.md", MARKDOWN_TREE)
    monkeypatch.setattr("sys.argv", ["gentree", "--tree", str(tree_path), "--sketch"])

    cli_module.main()

    shape = json.loads(capsys.readouterr().out)
    assert shape["id"] == "ideas"
    assert shape["expectedOutput"] == ["sample text"]
    assert [child["id"] for child in shape["children"]] == ["caption"]


@pytest.mark.anyio
async def test_mock_override_leaves_cached_document_settings_alone(tmp_path: Path) -> None:
    _write(
        tmp_path / "title.yaml",
        "settings:\n  mock: false\ntree:\n  id: title\n  type: text\n  config:\n    prompt: Title please\n",
    )
    registry = TreeRegistry([tmp_path])
    loaded = registry.get("title")

    runner = cli_module.runner_for(registry, loaded, mock=True)
    result = await runner.run(loaded)

    assert result.output == "Mock text response for title"
    assert registry.get("title").settings.mock is False
    assert cli_module.runner_for(registry, loaded).settings_for(loaded).mock is False
