from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional


@dataclass(frozen=True)
class ScheduleError(Exception):
    """Base error envelope. Validators return these; core operations raise them."""

    code: str
    message: str
    file: Optional[str] = None
    path: Optional[str] = None

    def __str__(self) -> str:
        parts: list[str] = []
        if self.file:
            parts.append(self.file)
        if self.path:
            parts.append(self.path)
        loc = ":".join(parts) if parts else "<project>"
        return f"{loc}: {self.code}: {self.message}"


class ProjectLoadError(ScheduleError):
    pass


class ProjectValidationError(ScheduleError):
    pass


@dataclass(frozen=True)
class ScheduleInvariantError(ScheduleError):
    code: str = field(default="E_INVARIANT", init=False)


# Per-task estimate problems. Recoverable: the task is excluded and reported.


@dataclass(frozen=True)
class EstimateError(ProjectValidationError):
    code: str = field(default="E_ESTIMATE", init=False)
    node_id: Optional[str] = None


@dataclass(frozen=True)
class EstimateOutOfOrder(EstimateError):
    code: str = field(default="E_ESTIMATE_OUT_OF_ORDER", init=False)


@dataclass(frozen=True)
class EstimateNonPositive(EstimateError):
    code: str = field(default="E_ESTIMATE_NON_POSITIVE", init=False)


@dataclass(frozen=True)
class EstimateNotFinite(EstimateError):
    code: str = field(default="E_ESTIMATE_NOT_FINITE", init=False)


@dataclass(frozen=True)
class MissingDurationInformation(EstimateError):
    code: str = field(default="E_MISSING_DURATION", init=False)


# Structural problems. Fatal: no partial graph or schedule is produced.


@dataclass(frozen=True)
class GraphStructureError(ProjectValidationError):
    code: str = field(default="E_GRAPH_STRUCTURE", init=False)


@dataclass(frozen=True)
class DuplicateTaskId(GraphStructureError):
    code: str = field(default="E_DUPLICATE_ID", init=False)
    node_id: Optional[str] = None


@dataclass(frozen=True)
class DanglingEdgeReference(GraphStructureError):
    code: str = field(default="E_DANGLING_EDGE", init=False)
    edge_id: Optional[str] = None
    missing_id: Optional[str] = None


@dataclass(frozen=True)
class InvalidLag(GraphStructureError):
    code: str = field(default="E_INVALID_LAG", init=False)
    edge_id: Optional[str] = None


@dataclass(frozen=True)
class CyclicDependency(GraphStructureError):
    code: str = field(default="E_CYCLIC_DEPENDENCY", init=False)
    cycle: tuple[str, ...] = ()


def sort_errors(errors: list[ScheduleError]) -> list[ScheduleError]:
    return sorted(errors, key=lambda e: (e.file or "", e.path or "", e.code))
