"""Interfaces for generation collaborators."""

from __future__ import annotations

from typing import Any, Protocol

from gentree.models.chat_message import GenerationRequest


class TextGenerator(Protocol):
    async def chat(self, request: GenerationRequest) -> Any:
        """Return generated text, or a parsed JSON value when the last message asks for JSON."""
        ...


class ImageGenerator(Protocol):
    async def generate(self, prompt: str, model_options: dict[str, Any]) -> str:
        """Return the URL of a generated image."""
        ...
