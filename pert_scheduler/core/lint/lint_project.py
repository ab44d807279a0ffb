from __future__ import annotations

from dataclasses import replace
from typing import Any, Optional

from pert_scheduler.core.errors import EstimateError, ProjectValidationError, ScheduleError, sort_errors
from pert_scheduler.core.estimate.estimator import resolve_duration
from pert_scheduler.core.validate.validate_project import parse_project


# Lint rules (run in addition to validation; shape errors are left to the validator):
# - E_ESTIMATE_*: estimate problems the scheduler would exclude the task for
# - L_PARTIAL_ESTIMATE: one or two of the three estimates given
# - L_WIDE_ESTIMATE_RANGE: pessimistic - optimistic > 3 * most likely
# - L_DURATION_TOO_LONG: expected duration over a year (365 days)
# - L_DURATION_TOO_SHORT: expected duration under 0.1 days (milestones excepted)
# - L_ORPHAN_TASK: task with no dependencies or dependents in a multi-task project
# - L_DUPLICATE_DEPENDENCY: same source, target and type declared twice

MAX_DURATION_DAYS = 365.0
MIN_DURATION_DAYS = 0.1
WIDE_RANGE_FACTOR = 3.0


def lint_project(project: dict[str, Any]) -> list[ScheduleError]:
    """Lint a project.

    Lint runs *in addition to* validation and enforces stronger standards
    than the scheduler needs. The CLI prints lint + validation errors together.
    """
    file = _cast_optional_str(project.get("__file__"))

    parsed, _ = parse_project(project)
    if parsed is None:
        # Let validator handle shape.
        return []

    errors: list[ScheduleError] = []
    index = {t.id: i for i, t in enumerate(parsed.tasks)}

    def warn(code: str, message: str, path: str) -> None:
        errors.append(ProjectValidationError(code=code, message=message, file=file, path=path))

    for task in parsed.tasks:
        path = f"tasks[{index[task.id]}]"
        given = [
            v
            for v in (task.optimistic_time, task.most_likely_time, task.pessimistic_time)
            if v is not None
        ]
        if 0 < len(given) < 3:
            warn(
                "L_PARTIAL_ESTIMATE",
                "three-point estimate is incomplete (need optimisticTime, mostLikelyTime, pessimisticTime)",
                path,
            )

        try:
            expected = resolve_duration(task)
        except EstimateError as e:
            errors.append(replace(e, file=file, path=path))
            continue

        estimates = task.estimates
        if estimates is not None:
            o, m, p = estimates
            if p - o > WIDE_RANGE_FACTOR * m:
                warn(
                    "L_WIDE_ESTIMATE_RANGE",
                    f"very large estimate range ({o}..{p}) for most likely {m}; consider reviewing estimates",
                    path,
                )

        if expected > MAX_DURATION_DAYS:
            warn("L_DURATION_TOO_LONG", f"expected duration {expected:g} exceeds one year", path)
        elif 0 < expected < MIN_DURATION_DAYS:
            warn("L_DURATION_TOO_SHORT", f"expected duration {expected:g} is very short", path)

    linked: set[str] = set()
    for dep in parsed.dependencies:
        linked.add(dep.source_id)
        linked.add(dep.target_id)
    if len(parsed.tasks) > 1:
        for task in parsed.tasks:
            if task.id not in linked:
                warn(
                    "L_ORPHAN_TASK",
                    f"task has no dependencies or dependents: {task.id}",
                    f"tasks[{index[task.id]}].id",
                )

    seen_edges: set[tuple[str, str, str]] = set()
    for dep, dep_path in zip(parsed.dependencies, _dependency_paths(project)):
        key = (dep.source_id, dep.target_id, dep.dependency_type.value)
        if key in seen_edges:
            warn(
                "L_DUPLICATE_DEPENDENCY",
                f"duplicate {key[2]} dependency {key[0]} -> {key[1]}",
                dep_path,
            )
        seen_edges.add(key)

    return sort_errors(errors)


def _dependency_paths(project: dict[str, Any]) -> list[str]:
    # Same order parse_project emits edges in: inline lists first, then the
    # top-level array. Only valid for a project that parsed cleanly.
    paths: list[str] = []
    for i, raw in enumerate(project.get("tasks") or []):
        deps = raw.get("dependencies")
        if isinstance(deps, list):
            paths.extend(f"tasks[{i}].dependencies[{di}]" for di in range(len(deps)))
    paths.extend(f"dependencies[{i}]" for i in range(len(project.get("dependencies") or [])))
    return paths


def _cast_optional_str(v: Any) -> Optional[str]:
    return v if isinstance(v, str) else None
