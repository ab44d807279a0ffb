from __future__ import annotations

from typing import Optional

from pert_scheduler.core.errors import ScheduleInvariantError
from pert_scheduler.core.model import Dependency, DependencyGraph, DependencyType


def compute_slack(
    early: dict[str, tuple[float, float]],
    late: dict[str, tuple[float, float]],
    *,
    epsilon: float,
) -> dict[str, float]:
    """Total float per task: LS - ES, which must equal LF - EF.

    Values within ``epsilon`` of zero are snapped to exactly 0.0. NaN
    timings fail both consistency checks.
    """
    slack: dict[str, float] = {}
    for nid, (es, ef) in early.items():
        ls, lf = late[nid]
        start_slack = ls - es
        finish_slack = lf - ef
        if not abs(start_slack - finish_slack) <= epsilon:
            raise ScheduleInvariantError(
                message=f"start slack {start_slack} != finish slack {finish_slack}",
                path=f"tasks[{nid}]",
            )
        if not start_slack >= -epsilon:
            raise ScheduleInvariantError(
                message=f"negative slack {start_slack} (late start before early start)",
                path=f"tasks[{nid}]",
            )
        slack[nid] = start_slack if abs(start_slack) > epsilon else 0.0
    return slack


def extract_critical_path(
    graph: DependencyGraph,
    durations: dict[str, float],
    early: dict[str, tuple[float, float]],
    slack: dict[str, float],
    *,
    epsilon: float,
) -> list[str]:
    """Longest chain of critical tasks joined by tight edges.

    Chains are compared by cumulative expected duration; equal chains are
    resolved in favour of predecessors earlier in topological order, and a
    tight predecessor always extends the chain.
    """
    position = {nid: i for i, nid in enumerate(graph.topological_order)}
    critical = {nid for nid, s in slack.items() if s <= epsilon}

    best: dict[str, float] = {}
    back: dict[str, Optional[str]] = {}

    for nid in graph.topological_order:
        if nid not in critical:
            continue
        d = durations[nid]
        length: Optional[float] = None
        prev: Optional[str] = None
        incoming = sorted(graph.predecessors[nid], key=lambda dep: position[dep.source_id])
        for dep in incoming:
            u = dep.source_id
            if u not in best or not _is_tight(dep, early[u], early[nid], epsilon):
                continue
            cand = best[u] + d
            if length is None or cand > length + epsilon:
                length = cand
                prev = u
        best[nid] = d if length is None else length
        back[nid] = prev

    if not best:
        return []

    # a chain may only end where no critical successor extends it
    extended = {prev for prev in back.values() if prev is not None}

    end: Optional[str] = None
    for nid in graph.topological_order:
        if nid not in best or nid in extended:
            continue
        if end is None or best[nid] > best[end] + epsilon:
            end = nid

    path: list[str] = []
    cur = end
    while cur is not None:
        path.append(cur)
        cur = back[cur]
    path.reverse()
    return path


def _is_tight(
    dep: Dependency,
    pred: tuple[float, float],
    succ: tuple[float, float],
    epsilon: float,
) -> bool:
    p_es, p_ef = pred
    s_es, s_ef = succ
    t = dep.dependency_type
    if t is DependencyType.FINISH_TO_START:
        gap = s_es - (p_ef + dep.lag)
    elif t is DependencyType.START_TO_START:
        gap = s_es - (p_es + dep.lag)
    elif t is DependencyType.FINISH_TO_FINISH:
        gap = s_ef - (p_ef + dep.lag)
    elif t is DependencyType.START_TO_FINISH:
        gap = s_ef - (p_es + dep.lag)
    else:
        raise ValueError(f"unknown dependency type: {t!r}")
    return abs(gap) <= epsilon
