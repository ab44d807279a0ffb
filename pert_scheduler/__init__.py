"""PERT/CPM scheduling engine: estimates, dependency graph, critical path, layout."""

from pert_scheduler.core.estimate.estimator import estimate_variance, expected_duration
from pert_scheduler.core.graph.build_graph import build_graph
from pert_scheduler.core.layout.layout_graph import layout_graph
from pert_scheduler.core.model import Dependency, DependencyType, Task
from pert_scheduler.core.pipeline import run_pipeline
from pert_scheduler.core.schedule.passes import compute_schedule

__all__ = [
    "Dependency",
    "DependencyType",
    "Task",
    "build_graph",
    "compute_schedule",
    "estimate_variance",
    "expected_duration",
    "layout_graph",
    "run_pipeline",
]
