"""Text generation through pydantic-ai on an OpenAI-compatible endpoint."""

from __future__ import annotations

import logging
import os
from typing import Any, Mapping

from pydantic_ai import Agent
from pydantic_ai.messages import ModelMessage
from pydantic_ai.models.openai import OpenAIChatModel
from pydantic_ai.providers.openai import OpenAIProvider
from pydantic_ai.settings import ModelSettings

from gentree.errors import GenerationError
from gentree.json_utils import parse_json_response
from gentree.models.chat_message import GenerationRequest
from gentree.models.model_spec import ModelSpec


logger = logging.getLogger(__name__)

OPENAI_BASE_URL = "https://api.openai.com/v1"


class PydanticAITextGenerator:
    """
    Sends a node's messages as a conversation: system messages form the
    system prompt and each user message is one turn on top of the previous
    turns' history. The reply to the last turn is the result.
    """

    def __init__(
        self,
        model_spec: ModelSpec | None = None,
        *,
        timeout: float | None = None,
        model: OpenAIChatModel | None = None,
    ) -> None:
        self._spec: ModelSpec = model_spec or ModelSpec()
        self._timeout: float | None = timeout
        self._models: dict[str, OpenAIChatModel] = {}
        if model is not None:
            self._models[self._spec.model_name] = model

    async def chat(self, request: GenerationRequest) -> Any:
        system_prompts = [message.content for message in request.messages if message.role == "system"]
        turns = [message for message in request.messages if message.role == "user"]
        if not turns:
            raise GenerationError(f"No user message to send for node {request.node_id}")

        agent = Agent(
            self._model_for(request.model_options),
            system_prompt=system_prompts,
            output_type=str,
        )
        history: list[ModelMessage] | None = None
        output = ""
        try:
            for turn in turns:
                result = await agent.run(
                    turn.content,
                    message_history=history,
                    model_settings=self._build_model_settings(request.model_options, parse_json=turn.parse_json),
                )
                history = result.all_messages()
                output = result.output
        except Exception as exc:
            raise GenerationError(f"Text generation failed for node {request.node_id}: {exc}") from exc

        if not turns[-1].parse_json:
            return output
        try:
            return parse_json_response(output)
        except ValueError as exc:
            raise GenerationError(f"Failed to parse JSON response for node {request.node_id}: {output[:200]}") from exc

    def _model_for(self, options: Mapping[str, Any]) -> OpenAIChatModel:
        model_name = str(options.get("model") or options.get("model_name") or self._spec.model_name)
        if model_name not in self._models:
            self._models[model_name] = build_model(self._spec.model_copy(update={"model_name": model_name}))
        return self._models[model_name]

    def _build_model_settings(self, options: Mapping[str, Any], *, parse_json: bool) -> ModelSettings:
        settings: ModelSettings = {
            "temperature": float(options.get("temperature", self._spec.temperature)),
            "max_tokens": int(options.get("max_tokens", options.get("maxTokens", self._spec.max_tokens))),
        }
        if self._timeout is not None:
            settings["timeout"] = self._timeout
        if parse_json:
            if self._spec.provider == "openai-compatible" and self._spec.base_url != OPENAI_BASE_URL:
                # Ollama OpenAI-compatible API uses "format": "json" to force JSON output.
                settings["extra_body"] = {"format": "json"}
            else:
                settings["extra_body"] = {"response_format": {"type": "json_object"}}
        return settings


def build_model(model_spec: ModelSpec) -> OpenAIChatModel:
    api_key = os.environ.get(model_spec.api_key_env, "noop")
    provider = OpenAIProvider(base_url=model_spec.base_url, api_key=api_key)
    return OpenAIChatModel(model_spec.model_name, provider=provider)
