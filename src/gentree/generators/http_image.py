"""Image generation through an OpenAI-compatible images endpoint."""

from __future__ import annotations

import os
from typing import Any

import httpx

from gentree.errors import GenerationError
from gentree.models.model_spec import ImageModelSpec


class OpenAIImageGenerator:
    def __init__(
        self,
        model_spec: ImageModelSpec | None = None,
        *,
        timeout: float = 30.0,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self._spec: ImageModelSpec = model_spec or ImageModelSpec()
        self._timeout: float = timeout
        self._client: httpx.AsyncClient | None = client

    def build_payload(self, prompt: str, model_options: dict[str, Any]) -> dict[str, Any]:
        return {
            "model": model_options.get("model") or self._spec.model_name,
            "prompt": prompt,
            "n": 1,
            "size": model_options.get("size") or self._spec.size,
            "quality": model_options.get("quality") or self._spec.quality,
        }

    async def generate(self, prompt: str, model_options: dict[str, Any]) -> str:
        url = f"{self._spec.base_url.rstrip('/')}/images/generations"
        headers = {"Authorization": f"Bearer {os.environ.get(self._spec.api_key_env, 'noop')}"}
        payload = self.build_payload(prompt, model_options)
        try:
            if self._client is not None:
                response = await self._client.post(url, json=payload, headers=headers)
            else:
                async with httpx.AsyncClient(timeout=self._timeout) as client:
                    response = await client.post(url, json=payload, headers=headers)
            response.raise_for_status()
            body = response.json()
        except (httpx.HTTPError, ValueError) as exc:
            raise GenerationError(f"Image generation failed: {exc}") from exc

        data = body.get("data") if isinstance(body, dict) else None
        if not data or not isinstance(data[0], dict) or not data[0].get("url"):
            raise GenerationError("No image URL returned from image model")
        return str(data[0]["url"])
