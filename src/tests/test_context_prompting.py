from gentree.context import Context, lookup_path
from gentree.models import PromptStep
from gentree.prompting import build_messages, format_template, render_value


def test_child_layers_shadow_without_mutating_ancestors() -> None:
    root = Context({"year": 2024, "topic": "bees"})
    child = root.child({"topic": "hives"})
    sibling = root.child({"idea": "rooftops"})

    assert child["topic"] == "hives"
    assert child["year"] == 2024
    assert root["topic"] == "bees"
    assert "idea" not in child
    assert sibling.parent is root
    assert dict(child) == {"topic": "hives", "year": 2024}
    assert len(child) == 2


def test_lookup_walks_dotted_paths() -> None:
    context = Context({"project": {"title": "Hives", "tags": ["a", "b"]}})

    assert context.lookup("project.title") == "Hives"
    assert context.lookup("project.tags.1") == "b"
    assert context.lookup("project.tags.-1") == "b"
    assert context.lookup("project.tags.5") is None
    assert context.lookup("project.missing.deeper") is None
    assert context.lookup("absent") is None
    assert lookup_path({"a": {"b": 1}}, "a.b") == 1


def test_format_template_substitutes_and_blanks_unknown_keys() -> None:
    context = Context({"year": 2024, "project": {"title": "Hives"}})

    assert format_template("Ideas for ${year}: ${project.title}", context) == "Ideas for 2024: Hives"
    assert format_template("[${nope}] [${project.nope}]", context) == "[] []"
    assert format_template("No placeholders, $year {year}", context) == "No placeholders, $year {year}"


def test_format_template_is_idempotent_once_resolved() -> None:
    context = Context({"name": "Ada"})
    once = format_template("Hello ${name} ${missing}", context)

    assert format_template(once, context) == once


def test_parent_placeholders_resolve_in_enclosing_scope() -> None:
    root = Context({"theme": "sea"})
    outer = root.child({"idea": "lighthouse"})
    inner = outer.child({"idea": "keeper"})

    assert format_template("${idea} / ${parent.idea} / ${parent.theme}", inner) == "keeper / lighthouse / sea"
    assert format_template("${parent.theme}", root) == ""


def test_non_string_values_render_as_json() -> None:
    assert render_value(None) == ""
    assert render_value(3) == "3"
    assert render_value({"café": [1, 2]}) == '{"café": [1, 2]}'
    assert format_template("${items}", Context({"items": ["x", "y"]})) == '["x", "y"]'


def test_build_messages_joins_prompt_parts() -> None:
    context = Context({"subject": "owls"})
    steps = [
        PromptStep(system="You are ${role}.", prefix="Write about", template="${subject}", suffix="briefly."),
        PromptStep(template="Now as JSON", parse_json=True),
    ]

    messages = build_messages(steps, context)

    assert [(m.role, m.content) for m in messages] == [
        ("system", "You are ."),
        ("user", "Write about owls briefly."),
        ("user", "Now as JSON"),
    ]
    assert [m.parse_json for m in messages] == [False, False, True]
