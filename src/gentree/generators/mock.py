"""Deterministic generators for mock runs and tests."""

from __future__ import annotations

from typing import Any, Mapping
from urllib.parse import quote

from gentree.models.chat_message import GenerationRequest
from gentree.models.node import NodeType


DEFAULT_ARRAY_COUNT = 3


class MockTextGenerator:
    """
    Answers from `by_node` (keyed by node id), then from `by_prompt` (keyed by
    a substring of the last user message), and otherwise synthesizes a value
    for the node type.
    """

    def __init__(
        self,
        by_node: Mapping[str, Any] | None = None,
        by_prompt: Mapping[str, Any] | None = None,
    ) -> None:
        self._by_node: dict[str, Any] = dict(by_node or {})
        self._by_prompt: dict[str, Any] = dict(by_prompt or {})
        self.requests: list[GenerationRequest] = []

    async def chat(self, request: GenerationRequest) -> Any:
        self.requests.append(request)
        if request.node_id in self._by_node:
            return self._by_node[request.node_id]
        last_user = next((m.content for m in reversed(request.messages) if m.role == "user"), "")
        for needle, response in self._by_prompt.items():
            if needle and needle in last_user:
                return response
        return mock_response(request.node_type, request.node_id, request.expected_count)


class MockImageGenerator:
    def __init__(self) -> None:
        self.prompts: list[str] = []

    async def generate(self, prompt: str, model_options: dict[str, Any]) -> str:
        self.prompts.append(prompt)
        return f"https://mock-image.test/{len(self.prompts)}.jpg?prompt={quote(prompt[:60])}"


def mock_response(node_type: NodeType, node_id: str, expected_count: int | None = None) -> Any:
    if node_type == NodeType.TEXT_ARRAY:
        count = expected_count or DEFAULT_ARRAY_COUNT
        return [f"Mock array item {index + 1} for {node_id}" for index in range(count)]
    if node_type == NodeType.OBJECT:
        return {"mockprop": f"Mock object response for {node_id}"}
    if node_type == NodeType.IMAGE:
        return f"https://mock-image.test/{node_id}.jpg"
    return f"Mock text response for {node_id}"
