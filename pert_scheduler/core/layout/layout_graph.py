from __future__ import annotations

import logging
from typing import Sequence

from pert_scheduler.core.model import (
    PROJECT_END_ID,
    PROJECT_START_ID,
    DependencyGraph,
    LayoutResult,
    NodeLayout,
)


logger = logging.getLogger(__name__)

DEFAULT_PASSES = 4


def layout_graph(graph: DependencyGraph, *, passes: int = DEFAULT_PASSES) -> LayoutResult:
    """Layered left-to-right layout of the task graph.

    Timing is ignored. Project Start feeds every source task and every sink
    task feeds Project End. Layers are longest paths (in hops) from Project
    Start; in-layer order comes from alternating median sweeps, keeping the
    ordering with the fewest crossings seen. Edges spanning several layers
    are routed through virtual nodes while ordering and counting crossings;
    those nodes are dropped from the result.
    """
    nodes, preds, succs = _boundary_adjacency(graph)
    layer_of = assign_layers(nodes, preds)
    real = set(nodes)
    nodes, preds, succs = _split_long_edges(nodes, preds, succs, layer_of)

    depth = max(layer_of.values()) + 1
    layers: list[list[str]] = [[] for _ in range(depth)]
    for nid in nodes:
        layers[layer_of[nid]].append(nid)

    layers = order_layers(layers, preds, succs, passes=passes)
    crossings = count_crossings(layers, succs)
    layers = [[nid for nid in layer if nid in real] for layer in layers]

    placed: dict[str, NodeLayout] = {}
    for li, layer in enumerate(layers):
        for oi, nid in enumerate(layer):
            placed[nid] = NodeLayout(node_id=nid, layer=li, order=oi)

    logger.debug("layout: %d layers, %d crossings", len(layers), crossings)
    return LayoutResult(nodes=placed, layers=layers, crossings=crossings)


def assign_layers(nodes: Sequence[str], preds: dict[str, list[str]]) -> dict[str, int]:
    """Longest-path layering; ``nodes`` must be in topological order."""
    layer_of: dict[str, int] = {}
    for nid in nodes:
        layer_of[nid] = max((layer_of[p] + 1 for p in preds[nid]), default=0)
    return layer_of


def order_layers(
    layers: list[list[str]],
    preds: dict[str, list[str]],
    succs: dict[str, list[str]],
    *,
    passes: int = DEFAULT_PASSES,
) -> list[list[str]]:
    current = [list(layer) for layer in layers]
    best = [list(layer) for layer in current]
    best_crossings = count_crossings(best, succs)

    for i in range(passes):
        if i % 2 == 0:
            for k in range(1, len(current)):
                current[k] = _reorder(current[k], current[k - 1], preds)
        else:
            for k in range(len(current) - 2, -1, -1):
                current[k] = _reorder(current[k], current[k + 1], succs)

        c = count_crossings(current, succs)
        if c < best_crossings:
            best = [list(layer) for layer in current]
            best_crossings = c

    return best


def count_crossings(layers: list[list[str]], succs: dict[str, list[str]]) -> int:
    """Crossings among edges that join adjacent layers."""
    total = 0
    for k in range(len(layers) - 1):
        upper = {nid: i for i, nid in enumerate(layers[k])}
        lower = {nid: i for i, nid in enumerate(layers[k + 1])}
        edges = [
            (upper[u], lower[v]) for u in layers[k] for v in succs.get(u, []) if v in lower
        ]
        for a in range(len(edges)):
            for b in range(a + 1, len(edges)):
                (u1, v1), (u2, v2) = edges[a], edges[b]
                if (u1 - u2) * (v1 - v2) < 0:
                    total += 1
    return total


def _reorder(layer: list[str], fixed: list[str], neighbours: dict[str, list[str]]) -> list[str]:
    pos = {nid: i for i, nid in enumerate(fixed)}

    def key(item: tuple[int, str]) -> tuple[float, int]:
        i, nid = item
        ranks = sorted(pos[n] for n in neighbours.get(nid, []) if n in pos)
        if not ranks:
            return (float(i), i)
        return (_median(ranks), i)

    return [nid for _, nid in sorted(enumerate(layer), key=key)]


def _median(values: list[int]) -> float:
    mid = len(values) // 2
    if len(values) % 2:
        return float(values[mid])
    return (values[mid - 1] + values[mid]) / 2


def _boundary_adjacency(
    graph: DependencyGraph,
) -> tuple[list[str], dict[str, list[str]], dict[str, list[str]]]:
    nodes = [PROJECT_START_ID] + list(graph.topological_order) + [PROJECT_END_ID]
    preds: dict[str, list[str]] = {nid: [] for nid in nodes}
    succs: dict[str, list[str]] = {nid: [] for nid in nodes}

    def link(u: str, v: str) -> None:
        # parallel edges (e.g. SS and FF between the same pair) collapse
        if v not in succs[u]:
            succs[u].append(v)
            preds[v].append(u)

    for nid in graph.topological_order:
        if graph.in_degree[nid] == 0:
            link(PROJECT_START_ID, nid)
        for dep in graph.successors[nid]:
            link(nid, dep.target_id)
        if graph.out_degree[nid] == 0:
            link(nid, PROJECT_END_ID)

    if not graph.topological_order:
        link(PROJECT_START_ID, PROJECT_END_ID)

    return nodes, preds, succs


def _split_long_edges(
    nodes: list[str],
    preds: dict[str, list[str]],
    succs: dict[str, list[str]],
    layer_of: dict[str, int],
) -> tuple[list[str], dict[str, list[str]], dict[str, list[str]]]:
    """Replace every edge spanning k > 1 layers with a chain of k - 1 virtual nodes.

    ``layer_of`` gains an entry per virtual node. Neighbour list positions
    are kept, so the rewritten graph orders the same way the original would.
    """
    out_nodes = list(nodes)
    out_preds = {nid: list(ps) for nid, ps in preds.items()}
    out_succs = {nid: list(ss) for nid, ss in succs.items()}
    taken = set(nodes)

    for u in nodes:
        for v in succs[u]:
            span = layer_of[v] - layer_of[u]
            if span <= 1:
                continue

            chain = [u]
            for k in range(1, span):
                vid = f"\0{u}\0{v}\0{k}"
                while vid in taken:
                    vid += "\0"
                taken.add(vid)
                layer_of[vid] = layer_of[u] + k
                out_nodes.append(vid)
                chain.append(vid)
            chain.append(v)

            for i in range(1, len(chain) - 1):
                out_preds[chain[i]] = [chain[i - 1]]
                out_succs[chain[i]] = [chain[i + 1]]
            out_succs[u][out_succs[u].index(v)] = chain[1]
            out_preds[v][out_preds[v].index(u)] = chain[-2]

    return out_nodes, out_preds, out_succs
