from __future__ import annotations

import math
from collections import Counter
from dataclasses import replace
from typing import Any, Optional, cast

from pert_scheduler.core.errors import (
    GraphStructureError,
    ProjectValidationError,
    ScheduleError,
    sort_errors,
)
from pert_scheduler.core.graph.build_graph import build_graph
from pert_scheduler.core.model import (
    RESERVED_IDS,
    Dependency,
    DependencyGraph,
    DependencyType,
    ProjectInput,
    Task,
)


ESTIMATE_FIELDS: dict[str, str] = {
    "optimisticTime": "optimistic_time",
    "mostLikelyTime": "most_likely_time",
    "pessimisticTime": "pessimistic_time",
    "duration": "duration",
}


def _is_number(v: Any) -> bool:
    if isinstance(v, bool) or not isinstance(v, (int, float)):
        return False
    return math.isfinite(v)


def _is_list_of_str(v: Any) -> bool:
    return isinstance(v, list) and all(isinstance(x, str) for x in v)


def parse_project(project: dict[str, Any]) -> tuple[Optional[ProjectInput], list[ScheduleError]]:
    """Check the shape of a loaded project and build typed tasks/edges.

    Returns (project_input, errors). project_input is None when errors exist.
    Estimate values are not judged here; bad estimates are per-task and
    recoverable at scheduling time.
    """

    file = cast(Optional[str], project.get("__file__"))
    errors: list[ScheduleError] = []

    def err(code: str, message: str, path: str) -> None:
        errors.append(ProjectValidationError(code=code, message=message, file=file, path=path))

    raw_tasks = project.get("tasks")
    if not isinstance(raw_tasks, list):
        err("E_REQUIRED_FIELD", "tasks is required and must be an array", "tasks")
        return None, sort_errors(errors)

    tasks: list[Task] = []
    inline: list[tuple[int, str, list[str]]] = []
    seen: set[str] = set()

    for i, raw in enumerate(raw_tasks):
        task_path = f"tasks[{i}]"
        if not isinstance(raw, dict):
            err("E_INVALID_TYPE", "task must be an object", task_path)
            continue

        tid = raw.get("id")
        if not isinstance(tid, str) or not tid.strip():
            err("E_REQUIRED_FIELD", "id is required and must be a non-empty string", f"{task_path}.id")
            continue
        if tid in RESERVED_IDS:
            err("E_RESERVED_ID", f"id is reserved for diagram boundary nodes: {tid}", f"{task_path}.id")
            continue
        if tid in seen:
            err("E_DUPLICATE_ID", f"duplicate task id: {tid}", f"{task_path}.id")
            continue
        seen.add(tid)

        name = raw.get("name")
        if name is not None and not isinstance(name, str):
            err("E_INVALID_TYPE", "name must be a string", f"{task_path}.name")
            name = None

        values: dict[str, Optional[float]] = {}
        for key, attr in ESTIMATE_FIELDS.items():
            v = raw.get(key)
            if v is not None and not _is_number(v):
                err("E_INVALID_TYPE", f"{key} must be a finite number", f"{task_path}.{key}")
                v = None
            values[attr] = float(v) if v is not None else None

        deps = raw.get("dependencies")
        if deps is not None:
            if not _is_list_of_str(deps):
                err("E_INVALID_TYPE", "dependencies must be an array of strings", f"{task_path}.dependencies")
            else:
                inline.append((i, tid, cast(list[str], deps)))

        tasks.append(Task(id=tid, name=name, **values))

    dependencies: list[Dependency] = []

    # Shorthand: a task's own dependency list means Finish-to-Start, no lag.
    for i, tid, deps in inline:
        for di, src in enumerate(deps):
            if src not in seen:
                err(
                    "E_DANGLING_EDGE",
                    f"dependencies references unknown task id: {src}",
                    f"tasks[{i}].dependencies[{di}]",
                )
                continue
            dependencies.append(Dependency(id=f"{src}->{tid}", source_id=src, target_id=tid))

    raw_deps = project.get("dependencies")
    if raw_deps is None:
        raw_deps = []
    if not isinstance(raw_deps, list):
        err("E_INVALID_TYPE", "dependencies must be an array", "dependencies")
        raw_deps = []

    for i, raw in enumerate(raw_deps):
        dep_path = f"dependencies[{i}]"
        if not isinstance(raw, dict):
            err("E_INVALID_TYPE", "dependency must be an object", dep_path)
            continue

        ends: dict[str, str] = {}
        for key in ("sourceId", "targetId"):
            ref = raw.get(key)
            if not isinstance(ref, str) or not ref.strip():
                err("E_REQUIRED_FIELD", f"{key} is required and must be a non-empty string", f"{dep_path}.{key}")
            elif ref not in seen:
                err("E_DANGLING_EDGE", f"{key} references unknown task id: {ref}", f"{dep_path}.{key}")
            else:
                ends[key] = ref
        if len(ends) != 2:
            continue

        did = raw.get("id")
        if did is None:
            did = f"{ends['sourceId']}->{ends['targetId']}"
        elif not isinstance(did, str) or not did.strip():
            err("E_INVALID_TYPE", "id must be a non-empty string", f"{dep_path}.id")
            continue

        raw_type = raw.get("dependencyType", "FS")
        try:
            dep_type = DependencyType.parse(raw_type) if isinstance(raw_type, str) else None
        except ValueError:
            dep_type = None
        if dep_type is None:
            allowed = [t.value for t in DependencyType]
            err("E_INVALID_ENUM", f"dependencyType must be one of {allowed}", f"{dep_path}.dependencyType")
            continue

        lag = raw.get("lag", 0)
        if lag is None:
            lag = 0
        if not _is_number(lag):
            err("E_INVALID_TYPE", "lag must be a finite number", f"{dep_path}.lag")
            continue
        if lag < 0:
            err("E_NEGATIVE_LAG", f"lag must not be negative, got {lag}", f"{dep_path}.lag")
            continue

        dependencies.append(
            Dependency(
                id=did,
                source_id=ends["sourceId"],
                target_id=ends["targetId"],
                dependency_type=dep_type,
                lag=float(lag),
            )
        )

    if errors:
        return None, sort_errors(errors)
    return ProjectInput(tasks=tasks, dependencies=dependencies), []


def validate_project(project: dict[str, Any]) -> tuple[Optional[DependencyGraph], list[ScheduleError]]:
    """Validate shape, references and acyclicity.

    Returns (graph, errors). Graph is None when errors exist.
    """
    parsed, errors = parse_project(project)
    if parsed is None:
        return None, errors

    try:
        graph = build_graph(parsed.tasks, parsed.dependencies)
    except GraphStructureError as e:
        return None, [replace(e, file=cast(Optional[str], project.get("__file__")))]
    return graph, []


def summarize_project(graph: DependencyGraph) -> str:
    counts = Counter([d.dependency_type for d in graph.dependencies])
    parts = [f"{t.value}={counts.get(t, 0)}" for t in DependencyType]
    return (
        f"OK: {len(graph.tasks_by_id)} tasks, {len(graph.dependencies)} dependencies ("
        + ", ".join(parts)
        + ")\nSources: "
        + ", ".join(graph.sources)
        + "\nSinks: "
        + ", ".join(graph.sinks)
    )
