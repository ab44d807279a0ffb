from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional

from pert_scheduler.core.errors import ScheduleError


PROJECT_START_ID = "__project_start__"
PROJECT_END_ID = "__project_end__"
RESERVED_IDS: frozenset[str] = frozenset({PROJECT_START_ID, PROJECT_END_ID})


class DependencyType(str, Enum):
    FINISH_TO_START = "FS"
    START_TO_START = "SS"
    FINISH_TO_FINISH = "FF"
    START_TO_FINISH = "SF"

    @property
    def long_name(self) -> str:
        return _LONG_NAMES[self]

    @classmethod
    def parse(cls, value: str) -> DependencyType:
        """Accept the short code (``FS``) or the long name (``FinishToStart``)."""
        for member in cls:
            if value in (member.value, _LONG_NAMES[member]):
                return member
        raise ValueError(f"unknown dependency type: {value}")


_LONG_NAMES: dict[DependencyType, str] = {
    DependencyType.FINISH_TO_START: "FinishToStart",
    DependencyType.START_TO_START: "StartToStart",
    DependencyType.FINISH_TO_FINISH: "FinishToFinish",
    DependencyType.START_TO_FINISH: "StartToFinish",
}


@dataclass(frozen=True)
class Task:
    id: str
    name: Optional[str] = None

    optimistic_time: Optional[float] = None
    most_likely_time: Optional[float] = None
    pessimistic_time: Optional[float] = None
    duration: Optional[float] = None

    @property
    def estimates(self) -> Optional[tuple[float, float, float]]:
        """The (O, M, P) triple, or None unless all three are present."""
        o, m, p = self.optimistic_time, self.most_likely_time, self.pessimistic_time
        if o is None or m is None or p is None:
            return None
        return (o, m, p)


@dataclass(frozen=True)
class Dependency:
    id: str
    source_id: str  # predecessor
    target_id: str  # successor
    dependency_type: DependencyType = DependencyType.FINISH_TO_START
    lag: float = 0.0


@dataclass(frozen=True)
class ProjectInput:
    """Tasks and edges as read from the task store, before graph validation."""

    tasks: list[Task]
    dependencies: list[Dependency]


@dataclass(frozen=True)
class DependencyGraph:
    tasks_by_id: dict[str, Task]
    input_order: list[str]
    dependencies: list[Dependency]
    predecessors: dict[str, list[Dependency]]  # target -> incoming edges
    successors: dict[str, list[Dependency]]  # source -> outgoing edges
    in_degree: dict[str, int]
    out_degree: dict[str, int]
    topological_order: list[str]

    @property
    def sources(self) -> list[str]:
        return [nid for nid in self.topological_order if self.in_degree[nid] == 0]

    @property
    def sinks(self) -> list[str]:
        return [nid for nid in self.topological_order if self.out_degree[nid] == 0]


@dataclass(frozen=True)
class TaskSchedule:
    task_id: str
    expected_duration: float
    early_start: float
    early_finish: float
    late_start: float
    late_finish: float
    slack: float
    is_critical: bool

    def to_dict(self) -> dict[str, Any]:
        return {
            "expectedDuration": self.expected_duration,
            "earlyStart": self.early_start,
            "earlyFinish": self.early_finish,
            "lateStart": self.late_start,
            "lateFinish": self.late_finish,
            "slack": self.slack,
            "isCritical": self.is_critical,
        }


@dataclass(frozen=True)
class ScheduleResult:
    tasks: dict[str, TaskSchedule]  # topological order
    project_duration: float
    critical_path: list[str]
    unscheduled: list[str] = field(default_factory=list)
    issues: list[ScheduleError] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "projectDuration": self.project_duration,
            "criticalPath": list(self.critical_path),
            "unscheduled": list(self.unscheduled),
            "tasks": {tid: ts.to_dict() for tid, ts in self.tasks.items()},
        }


@dataclass(frozen=True)
class NodeLayout:
    node_id: str
    layer: int
    order: int


@dataclass(frozen=True)
class LayoutResult:
    nodes: dict[str, NodeLayout]
    layers: list[list[str]]
    crossings: int

    def to_dict(self) -> dict[str, Any]:
        return {
            "crossings": self.crossings,
            "nodes": {
                nid: {"layer": n.layer, "orderInLayer": n.order} for nid, n in self.nodes.items()
            },
        }
