"""Prompt composition helpers."""

from __future__ import annotations

import json
import re
from typing import Any

from gentree.context import Context
from gentree.models.chat_message import ChatMessage
from gentree.models.node import PromptStep


PLACEHOLDER_RE = re.compile(r"\$\{(parent\.)?([.\w]+)\}")


def render_value(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, str):
        return value
    return json.dumps(value, ensure_ascii=False)


def format_template(template: str, context: Context) -> str:
    """
    Substitutes `${key}` and `${parent.key}` placeholders with dotted-path lookups.
    Unresolved placeholders become empty strings.
    """

    def substitute(match: re.Match[str]) -> str:
        is_parent, path = match.group(1), match.group(2)
        scope = context.parent if is_parent else context
        if scope is None:
            return ""
        return render_value(scope.lookup(path))

    return PLACEHOLDER_RE.sub(substitute, template)


def build_messages(steps: list[PromptStep], context: Context) -> list[ChatMessage]:
    """
    Turns prompt steps into chat messages. Each step yields an optional system
    message followed by one user message joining prefix, template and suffix.
    """
    messages: list[ChatMessage] = []
    for step in steps:
        if step.system:
            messages.append(ChatMessage(role="system", content=format_template(step.system, context)))
        parts = [format_template(part, context) for part in (step.prefix, step.template, step.suffix) if part]
        messages.append(
            ChatMessage(
                role="user",
                content=" ".join(part for part in parts if part),
                parse_json=step.parse_json,
            )
        )
    return messages
