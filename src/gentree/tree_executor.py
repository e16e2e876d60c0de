"""Recursive execution of generation trees."""

from __future__ import annotations

import json
import logging
import time
from typing import Any, Callable, Mapping, cast

import anyio

from gentree.context import Context
from gentree.errors import (
    ConfigurationError,
    MissingInputError,
    NodeError,
    OutputValidationError,
    ShapeMismatchError,
    TreeExecutionError,
)
from gentree.generators.base import ImageGenerator, TextGenerator
from gentree.lane_scheduler import Lane, LaneScheduler
from gentree.models.chat_message import ChatMessage, GenerationRequest
from gentree.models.execution_result import ExecutionMetadata, ExecutionResult
from gentree.models.node import Node, ValidationSpec, split_input_name
from gentree.models.run_event import EventKind, RunEvent
from gentree.models.run_settings import RunSettings, ShapePolicy
from gentree.node_kinds import NodeKind, kind_for
from gentree.prompting import build_messages
from gentree.retry import call_with_retry


logger = logging.getLogger(__name__)

EventCallback = Callable[[RunEvent], None]
ChildOutputs = dict[str, ExecutionResult | list[ExecutionResult]]


class TreeExecutor:
    """
    Walks a node tree: resolves each node's prompt against its context,
    runs the generation in the node's lane, then runs the children, once per
    element when the output is an array.

    Failures raised as NodeError stay local to the node: its result is marked
    unsuccessful, its subtree is skipped, and siblings carry on. Any other
    exception aborts the whole run.
    """

    def __init__(
        self,
        *,
        scheduler: LaneScheduler,
        text_generator: TextGenerator,
        image_generator: ImageGenerator,
        settings: RunSettings | None = None,
        on_event: EventCallback | None = None,
    ) -> None:
        self._scheduler: LaneScheduler = scheduler
        self._text_generator: TextGenerator = text_generator
        self._image_generator: ImageGenerator = image_generator
        self._settings: RunSettings = settings or RunSettings()
        self._on_event: EventCallback | None = on_event

    async def run(self, tree: Node, initial_context: Mapping[str, Any] | None = None) -> ExecutionResult:
        self._scheduler.reset()
        context = initial_context if isinstance(initial_context, Context) else Context(initial_context)
        self._emit(EventKind.RUN_STARTED, f"Running tree {tree.id}", node=tree, level=logging.INFO)
        try:
            result = await self.process_node(tree, context)
        except Exception as exc:
            cause = root_cause(exc)
            progress = self._scheduler.snapshot()
            self._emit(
                EventKind.RUN_FINISHED,
                f"Tree {tree.id} aborted: {cause!r}",
                node=tree,
                level=logging.ERROR,
                data={
                    "success": False,
                    "error": repr(cause),
                    "completed": progress.completed,
                    "failed": progress.failed,
                },
            )
            raise TreeExecutionError(f"Tree {tree.id} aborted: {cause}") from exc

        progress = self._scheduler.snapshot()
        self._emit(
            EventKind.RUN_FINISHED,
            f"Tree {tree.id} finished: {progress.completed} tasks completed, {progress.failed} failed",
            node=tree,
            level=logging.INFO,
            data={"success": result.success, "completed": progress.completed, "failed": progress.failed},
        )
        return result

    async def process_node(self, node: Node, context: Context) -> ExecutionResult:
        started = time.time()
        clock = time.monotonic()
        kind = kind_for(node.type)
        self._emit(EventKind.NODE_STARTED, f"Processing node {node.id} ({node.type.value})", node=node)

        messages: list[ChatMessage] = []
        raw: Any = None
        try:
            check_required_inputs(node, context)
            messages = self._resolve_prompt(node, context)
            raw = await self._dispatch(node, kind, messages)
            output = kind.normalize(raw)
            self._check_shape(node, output)
            check_required_fields(node.validation, output)
        except NodeError as exc:
            self._emit(
                EventKind.NODE_FAILED,
                f"Node {node.id} failed: {exc}",
                node=node,
                level=logging.WARNING,
                data={"error_type": type(exc).__name__, "error": str(exc)},
            )
            return self._result(node, started, clock, success=False, prompt=messages, raw=raw, error=str(exc))

        child_outputs = await self._run_children(node, kind, context, output)
        self._emit(EventKind.NODE_COMPLETED, f"Completed node {node.id}", node=node)
        return self._result(
            node,
            started,
            clock,
            success=True,
            prompt=messages,
            raw=raw,
            output=output,
            child_outputs=child_outputs,
        )

    def _resolve_prompt(self, node: Node, context: Context) -> list[ChatMessage]:
        if not node.config.prompt:
            if self._settings.mock:
                return []
            raise ConfigurationError(f"Missing prompt config for node {node.id}")
        return build_messages(node.config.prompt, context)

    async def _dispatch(self, node: Node, kind: NodeKind, messages: list[ChatMessage]) -> Any:
        request = GenerationRequest(
            messages=messages,
            model_options=dict(node.config.model),
            node_id=node.id,
            node_type=node.type,
            expected_count=node.validation.min_length,
        )

        async def call() -> Any:
            if kind.lane is Lane.IMAGE:
                return await self._image_generator.generate(request.prompt_text(), request.model_options)
            return await self._text_generator.chat(request)

        def on_retry(attempt: int, delay: float, exc: Exception) -> None:
            self._emit(
                EventKind.GENERATION_RETRY,
                f"Retrying node {node.id} after attempt {attempt}: {exc}",
                node=node,
                level=logging.INFO,
                data={"attempt": attempt, "delay": delay},
            )

        async def task() -> Any:
            return await call_with_retry(self._settings.retry, call, on_retry=on_retry)

        return await self._scheduler.submit(kind.lane, task)

    def _check_shape(self, node: Node, output: Any) -> None:
        if not isinstance(output, list):
            return
        problem = shape_problem(node.validation, len(output))
        if problem is None:
            return
        if self._settings.shape_policy is ShapePolicy.STRICT:
            raise ShapeMismatchError(problem)
        self._emit(
            EventKind.SHAPE_MISMATCH,
            f"Node {node.id}: {problem}",
            node=node,
            level=logging.WARNING,
            data={
                "length": len(output),
                "min_length": node.validation.min_length,
                "max_length": node.validation.max_length,
            },
        )

    async def _run_children(self, node: Node, kind: NodeKind, context: Context, output: Any) -> ChildOutputs:
        if not node.children:
            return {}

        if kind.array_shaped or isinstance(output, list):
            items = output if isinstance(output, list) else [output]
            slots: dict[str, list[ExecutionResult | None]] = {child.id: [None] * len(items) for child in node.children}
            async with anyio.create_task_group() as tg:
                for index, item in enumerate(items):
                    element_context = context.child(self._bindings(node, item))
                    for child in node.children:
                        tg.start_soon(self._fill_slot, slots[child.id], index, child, element_context)
            return {child_id: cast(list[ExecutionResult], results) for child_id, results in slots.items()}

        child_context = context.child(self._bindings(node, output))
        results: dict[str, ExecutionResult] = {}
        async with anyio.create_task_group() as tg:
            for child in node.children:
                tg.start_soon(self._fill_result, results, child, child_context)
        return {child.id: results[child.id] for child in node.children}

    async def _fill_slot(self, slots: list[ExecutionResult | None], index: int, child: Node, context: Context) -> None:
        slots[index] = await self.process_node(child, context)

    async def _fill_result(self, results: dict[str, ExecutionResult], child: Node, context: Context) -> None:
        results[child.id] = await self.process_node(child, context)

    def _bindings(self, node: Node, value: Any) -> dict[str, Any]:
        if not node.output_key:
            return {}
        return {node.output_key: value}

    def _result(self, node: Node, started: float, clock: float, **fields: Any) -> ExecutionResult:
        # start and end are wall-clock timestamps; duration comes from the monotonic clock
        ended = time.time()
        return ExecutionResult(
            id=node.id,
            type=node.type,
            output_key=node.output_key,
            metadata=ExecutionMetadata(start=started, end=ended, duration=time.monotonic() - clock),
            **fields,
        )

    def _emit(
        self,
        kind: EventKind,
        message: str,
        *,
        node: Node | None = None,
        level: int = logging.DEBUG,
        data: dict[str, Any] | None = None,
    ) -> None:
        logger.log(level, message)
        if self._on_event is not None:
            self._on_event(RunEvent(kind=kind, node_id=node.id if node else None, message=message, data=data or {}))


def check_required_inputs(node: Node, context: Context) -> None:
    missing: list[str] = []
    for name in node.required_inputs:
        key, is_array = split_input_name(name)
        if is_array:
            present = isinstance(context.get(key), (list, tuple))
        else:
            present = key in context
        if not present:
            missing.append(name)
    if missing:
        raise MissingInputError(missing)


def shape_problem(validation: ValidationSpec, length: int) -> str | None:
    if validation.min_length is not None and length < validation.min_length:
        return f"Output length {length} below minimum {validation.min_length}"
    if validation.max_length is not None and length > validation.max_length:
        return f"Output length {length} above maximum {validation.max_length}"
    return None


def check_required_fields(validation: ValidationSpec, output: Any) -> None:
    if not validation.required:
        return
    values = output if isinstance(output, list) else [output]
    for value in values:
        if isinstance(value, str):
            try:
                value = json.loads(value)
            except json.JSONDecodeError as exc:
                raise OutputValidationError(f"Invalid output format: {exc}", list(validation.required)) from exc
        if not isinstance(value, Mapping):
            raise OutputValidationError(
                f"Invalid output format: expected an object with fields {', '.join(validation.required)}",
                list(validation.required),
            )
        missing = [name for name in validation.required if name not in value]
        if missing:
            raise OutputValidationError(f"Missing required fields in output: {', '.join(missing)}", missing)


def root_cause(exc: BaseException) -> BaseException:
    while isinstance(exc, BaseExceptionGroup) and len(exc.exceptions) == 1:
        exc = exc.exceptions[0]
    return exc
