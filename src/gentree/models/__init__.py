"""Model types for generation trees and runtime results."""

from gentree.models.chat_message import ChatMessage
from gentree.models.chat_message import GenerationRequest
from gentree.models.execution_result import ExecutionMetadata
from gentree.models.execution_result import ExecutionResult
from gentree.models.model_spec import ImageModelSpec
from gentree.models.model_spec import ModelSpec
from gentree.models.node import Node
from gentree.models.node import NodeConfig
from gentree.models.node import NodeType
from gentree.models.node import PromptStep
from gentree.models.node import ValidationSpec
from gentree.models.progress import LaneSnapshot
from gentree.models.progress import ProgressSnapshot
from gentree.models.run_event import EventKind
from gentree.models.run_event import RunEvent
from gentree.models.run_settings import LaneLimits
from gentree.models.run_settings import RetryPolicy
from gentree.models.run_settings import RunSettings
from gentree.models.run_settings import ShapePolicy

__all__ = [
    "ChatMessage",
    "EventKind",
    "ExecutionMetadata",
    "ExecutionResult",
    "GenerationRequest",
    "ImageModelSpec",
    "LaneLimits",
    "LaneSnapshot",
    "ModelSpec",
    "Node",
    "NodeConfig",
    "NodeType",
    "ProgressSnapshot",
    "PromptStep",
    "RetryPolicy",
    "RunEvent",
    "RunSettings",
    "ShapePolicy",
    "ValidationSpec",
]
