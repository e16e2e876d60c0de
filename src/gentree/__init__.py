"""Public package exports."""

from gentree.context import Context
from gentree.lane_scheduler import Lane
from gentree.lane_scheduler import LaneScheduler
from gentree.output_projector import project
from gentree.runner import TreeRunner
from gentree.tree_executor import TreeExecutor
from gentree.tree_loader import load_tree
from gentree.tree_loader import normalize
from gentree.tree_loader import sketch

__all__ = [
    "Context",
    "Lane",
    "LaneScheduler",
    "TreeExecutor",
    "TreeRunner",
    "load_tree",
    "normalize",
    "project",
    "sketch",
]
