"""Helper for running generation trees."""

from __future__ import annotations

from pathlib import Path
from typing import Any, Mapping

from gentree.generators.base import ImageGenerator, TextGenerator
from gentree.generators.http_image import OpenAIImageGenerator
from gentree.generators.mock import MockImageGenerator, MockTextGenerator
from gentree.generators.pydantic_ai_text import PydanticAITextGenerator
from gentree.lane_scheduler import LaneScheduler, ProgressCallback
from gentree.models.execution_result import ExecutionResult
from gentree.models.run_settings import RunSettings
from gentree.output_projector import project
from gentree.tree_executor import EventCallback, TreeExecutor
from gentree.tree_file import LoadedTreeFile
from gentree.tree_registry import TreeRegistry


class TreeRunner:
    """
    Loads a tree document, merges its settings and default context with the
    caller's, and runs it with a fresh scheduler.
    """

    def __init__(
        self,
        tree_roots: list[Path] | None = None,
        *,
        settings: RunSettings | None = None,
        text_generator: TextGenerator | None = None,
        image_generator: ImageGenerator | None = None,
        on_event: EventCallback | None = None,
        on_progress: ProgressCallback | None = None,
    ) -> None:
        self.registry: TreeRegistry = TreeRegistry(tree_roots or [])
        self._settings: RunSettings | None = settings
        self._text_generator: TextGenerator | None = text_generator
        self._image_generator: ImageGenerator | None = image_generator
        self._on_event: EventCallback | None = on_event
        self._on_progress: ProgressCallback | None = on_progress

    def load(self, tree: str | Path | LoadedTreeFile) -> LoadedTreeFile:
        if isinstance(tree, LoadedTreeFile):
            return tree
        return self.registry.resolve(tree)

    def settings_for(self, loaded: LoadedTreeFile) -> RunSettings:
        return self._settings or loaded.settings

    def build_executor(self, settings: RunSettings) -> tuple[TreeExecutor, LaneScheduler]:
        scheduler = LaneScheduler(settings.concurrency)
        if self._on_progress is not None:
            scheduler.subscribe(self._on_progress)
        text_generator, image_generator = self._build_generators(settings)
        executor = TreeExecutor(
            scheduler=scheduler,
            text_generator=text_generator,
            image_generator=image_generator,
            settings=settings,
            on_event=self._on_event,
        )
        return executor, scheduler

    async def run(
        self,
        tree: str | Path | LoadedTreeFile,
        context: Mapping[str, Any] | None = None,
    ) -> ExecutionResult:
        loaded = self.load(tree)
        executor, _scheduler = self.build_executor(self.settings_for(loaded))
        initial_context = {**loaded.context, **(context or {})}
        return await executor.run(loaded.tree, initial_context)

    async def run_projected(
        self,
        tree: str | Path | LoadedTreeFile,
        context: Mapping[str, Any] | None = None,
    ) -> Any:
        return project(await self.run(tree, context))

    def _build_generators(self, settings: RunSettings) -> tuple[TextGenerator, ImageGenerator]:
        text_generator = self._text_generator
        image_generator = self._image_generator
        if text_generator is None:
            if settings.mock:
                text_generator = MockTextGenerator()
            else:
                text_generator = PydanticAITextGenerator(settings.text_model, timeout=settings.timeout)
        if image_generator is None:
            if settings.mock:
                image_generator = MockImageGenerator()
            else:
                image_generator = OpenAIImageGenerator(settings.image_model, timeout=settings.timeout)
        return text_generator, image_generator
