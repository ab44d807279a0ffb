from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Optional, Sequence

from pert_scheduler.core.config.engine_config import EngineConfig
from pert_scheduler.core.graph.build_graph import build_graph
from pert_scheduler.core.layout.layout_graph import layout_graph
from pert_scheduler.core.model import Dependency, DependencyGraph, LayoutResult, ScheduleResult, Task
from pert_scheduler.core.schedule.passes import compute_schedule


@dataclass(frozen=True)
class PipelineResult:
    graph: DependencyGraph
    schedule: ScheduleResult
    layout: LayoutResult


def run_pipeline(
    tasks: Sequence[Task],
    dependencies: Iterable[Dependency],
    config: Optional[EngineConfig] = None,
) -> PipelineResult:
    """Build the graph, then schedule and lay it out from scratch.

    Structural errors propagate; scheduling and layout never see an invalid
    graph. The two consumers are independent of each other.
    """
    cfg = config or EngineConfig()
    graph = build_graph(tasks, dependencies)
    return PipelineResult(
        graph=graph,
        schedule=compute_schedule(graph, epsilon=cfg.slack_epsilon),
        layout=layout_graph(graph, passes=cfg.layout_passes),
    )
