from __future__ import annotations

import logging

from pert_scheduler.core.errors import EstimateError, MissingDurationInformation
from pert_scheduler.core.estimate.estimator import resolve_durations
from pert_scheduler.core.model import (
    Dependency,
    DependencyGraph,
    DependencyType,
    ScheduleResult,
    TaskSchedule,
)
from pert_scheduler.core.schedule.critical_path import compute_slack, extract_critical_path


logger = logging.getLogger(__name__)

DEFAULT_EPSILON = 1e-6

# (start, finish) per task id
Windows = dict[str, tuple[float, float]]


def forward_pass(graph: DependencyGraph, durations: dict[str, float]) -> Windows:
    """Earliest (start, finish) for every task in ``durations``.

    Tasks missing from ``durations`` and edges touching them are skipped.
    """
    early: Windows = {}
    for nid in graph.topological_order:
        if nid not in durations:
            continue
        d = durations[nid]
        es = 0.0
        for dep in graph.predecessors[nid]:
            if dep.source_id not in early:
                continue
            p_es, p_ef = early[dep.source_id]
            es = max(es, _earliest_start(dep, p_es, p_ef, d))
        early[nid] = (es, es + d)
    return early


def backward_pass(
    graph: DependencyGraph,
    durations: dict[str, float],
    project_duration: float,
) -> Windows:
    """Latest (start, finish) for every task in ``durations``.

    Ending tasks finish at ``project_duration``; nothing finishes later.
    """
    late: Windows = {}
    for nid in reversed(graph.topological_order):
        if nid not in durations:
            continue
        d = durations[nid]
        lf = project_duration
        for dep in graph.successors[nid]:
            if dep.target_id not in late:
                continue
            s_ls, s_lf = late[dep.target_id]
            lf = min(lf, _latest_finish(dep, s_ls, s_lf, d))
        late[nid] = (lf - d, lf)
    return late


def compute_schedule(graph: DependencyGraph, *, epsilon: float = DEFAULT_EPSILON) -> ScheduleResult:
    """Full CPM run over a validated graph.

    Per-task estimate problems exclude the task and are reported in
    ``issues``; so is any task whose predecessors are all unscheduled.
    """
    ordered = [graph.tasks_by_id[nid] for nid in graph.topological_order]
    resolved, issues = resolve_durations(ordered)

    durations: dict[str, float] = {}
    unscheduled: list[str] = []
    extra: list[EstimateError] = []
    for nid in graph.topological_order:
        if nid not in resolved:
            unscheduled.append(nid)
            continue
        preds = [dep.source_id for dep in graph.predecessors[nid]]
        if preds and not any(p in durations for p in preds):
            unscheduled.append(nid)
            extra.append(
                MissingDurationInformation(
                    message="reachable only through unscheduled tasks: " + ", ".join(sorted(set(preds))),
                    path=f"tasks[{nid}]",
                    node_id=nid,
                )
            )
            continue
        durations[nid] = resolved[nid]

    early = forward_pass(graph, durations)
    project_duration = max((ef for _, ef in early.values()), default=0.0)
    late = backward_pass(graph, durations, project_duration)

    slack = compute_slack(early, late, epsilon=epsilon)
    critical_path = extract_critical_path(graph, durations, early, slack, epsilon=epsilon)

    tasks: dict[str, TaskSchedule] = {}
    for nid in graph.topological_order:
        if nid not in durations:
            continue
        es, ef = early[nid]
        ls, lf = late[nid]
        tasks[nid] = TaskSchedule(
            task_id=nid,
            expected_duration=durations[nid],
            early_start=es,
            early_finish=ef,
            late_start=ls,
            late_finish=lf,
            slack=slack[nid],
            is_critical=slack[nid] <= epsilon,
        )

    if unscheduled:
        logger.info("%d task(s) left unscheduled: %s", len(unscheduled), ", ".join(unscheduled))
    logger.debug("project duration %.6g, critical path %s", project_duration, critical_path)

    return ScheduleResult(
        tasks=tasks,
        project_duration=project_duration,
        critical_path=critical_path,
        unscheduled=unscheduled,
        issues=list(issues) + extra,
    )


def _earliest_start(dep: Dependency, p_es: float, p_ef: float, duration: float) -> float:
    t = dep.dependency_type
    if t is DependencyType.FINISH_TO_START:
        return p_ef + dep.lag
    elif t is DependencyType.START_TO_START:
        return p_es + dep.lag
    elif t is DependencyType.FINISH_TO_FINISH:
        return p_ef + dep.lag - duration
    elif t is DependencyType.START_TO_FINISH:
        return p_es + dep.lag - duration
    raise ValueError(f"unknown dependency type: {t!r}")


def _latest_finish(dep: Dependency, s_ls: float, s_lf: float, duration: float) -> float:
    t = dep.dependency_type
    if t is DependencyType.FINISH_TO_START:
        return s_ls - dep.lag
    elif t is DependencyType.START_TO_START:
        return s_ls - dep.lag + duration
    elif t is DependencyType.FINISH_TO_FINISH:
        return s_lf - dep.lag
    elif t is DependencyType.START_TO_FINISH:
        return s_lf - dep.lag + duration
    raise ValueError(f"unknown dependency type: {t!r}")
