from __future__ import annotations

import heapq
import logging
import math
from typing import Iterable, Optional, Sequence

from pert_scheduler.core.errors import (
    CyclicDependency,
    DanglingEdgeReference,
    DuplicateTaskId,
    InvalidLag,
)
from pert_scheduler.core.model import Dependency, DependencyGraph, Task


logger = logging.getLogger(__name__)


def build_graph(tasks: Sequence[Task], dependencies: Iterable[Dependency]) -> DependencyGraph:
    """Assemble tasks and typed edges into a validated DAG.

    Raises DuplicateTaskId, DanglingEdgeReference, InvalidLag or
    CyclicDependency; no partial graph is ever returned. Input order of
    ``tasks`` is the tie-break for the topological order.
    """
    tasks_by_id: dict[str, Task] = {}
    input_order: list[str] = []
    for i, task in enumerate(tasks):
        if task.id in tasks_by_id:
            raise DuplicateTaskId(
                message=f"duplicate task id: {task.id}",
                path=f"tasks[{i}].id",
                node_id=task.id,
            )
        tasks_by_id[task.id] = task
        input_order.append(task.id)

    deps = list(dependencies)
    predecessors: dict[str, list[Dependency]] = {nid: [] for nid in input_order}
    successors: dict[str, list[Dependency]] = {nid: [] for nid in input_order}

    for i, dep in enumerate(deps):
        for end, ref in (("sourceId", dep.source_id), ("targetId", dep.target_id)):
            if ref not in tasks_by_id:
                raise DanglingEdgeReference(
                    message=f"dependency {dep.id} references unknown task id: {ref}",
                    path=f"dependencies[{i}].{end}",
                    edge_id=dep.id,
                    missing_id=ref,
                )
        if not math.isfinite(dep.lag) or dep.lag < 0:
            raise InvalidLag(
                message=f"dependency {dep.id} lag must be a finite non-negative number, got {dep.lag}",
                path=f"dependencies[{i}].lag",
                edge_id=dep.id,
            )
        successors[dep.source_id].append(dep)
        predecessors[dep.target_id].append(dep)

    cycle = find_cycle(input_order, successors)
    if cycle is not None:
        raise CyclicDependency(
            message="dependency cycle detected: " + " -> ".join(cycle),
            path=f"tasks[{cycle[0]}]",
            cycle=tuple(cycle),
        )

    in_degree = {nid: len(predecessors[nid]) for nid in input_order}
    out_degree = {nid: len(successors[nid]) for nid in input_order}
    order = topological_order(input_order, successors, in_degree)

    logger.debug("built graph: %d tasks, %d dependencies", len(input_order), len(deps))
    return DependencyGraph(
        tasks_by_id=tasks_by_id,
        input_order=input_order,
        dependencies=deps,
        predecessors=predecessors,
        successors=successors,
        in_degree=in_degree,
        out_degree=out_degree,
        topological_order=order,
    )


def find_cycle(
    node_ids: Sequence[str], successors: dict[str, list[Dependency]]
) -> Optional[list[str]]:
    """Depth-first search with a recursion-stack marker.

    Uses an explicit stack so deep chains don't hit the interpreter's
    recursion limit. Returns the first cycle as ``[v, ..., u, v]`` or None.
    """
    WHITE, GRAY, BLACK = 0, 1, 2
    state: dict[str, int] = {nid: WHITE for nid in node_ids}

    for root in node_ids:
        if state[root] != WHITE:
            continue

        path: list[str] = [root]
        frames: list[tuple[str, int]] = [(root, 0)]
        state[root] = GRAY

        while frames:
            u, next_edge = frames[-1]
            out = successors.get(u, [])
            if next_edge >= len(out):
                frames.pop()
                path.pop()
                state[u] = BLACK
                continue

            frames[-1] = (u, next_edge + 1)
            v = out[next_edge].target_id
            if state[v] == GRAY:
                # cycle: v ... u -> v
                idx = path.index(v)
                return path[idx:] + [v]
            if state[v] == WHITE:
                state[v] = GRAY
                path.append(v)
                frames.append((v, 0))

    return None


def topological_order(
    node_ids: Sequence[str],
    successors: dict[str, list[Dependency]],
    in_degree: dict[str, int],
) -> list[str]:
    """Kahn's algorithm; ready nodes are released in ``node_ids`` order."""
    rank = {nid: i for i, nid in enumerate(node_ids)}
    remaining = dict(in_degree)

    ready: list[tuple[int, str]] = [(rank[nid], nid) for nid in node_ids if remaining[nid] == 0]
    heapq.heapify(ready)

    out: list[str] = []
    while ready:
        _, u = heapq.heappop(ready)
        out.append(u)
        for dep in successors.get(u, []):
            v = dep.target_id
            remaining[v] -= 1
            if remaining[v] == 0:
                heapq.heappush(ready, (rank[v], v))

    if len(out) != len(node_ids):
        # find_cycle runs first, so this only trips on inconsistent input.
        stuck = [nid for nid in node_ids if remaining[nid] > 0]
        raise CyclicDependency(
            message="graph is not acyclic; unresolved tasks: " + ", ".join(stuck),
            cycle=tuple(stuck),
        )
    return out
