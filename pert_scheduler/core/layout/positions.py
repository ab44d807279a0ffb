"""Map (layer, order) assignments onto diagram coordinates.

The engine only ranks and orders nodes; these helpers turn that into
top-left positions for callers that want a ready-made grid.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Literal

from pert_scheduler.core.model import RESERVED_IDS, LayoutResult


LayoutDirection = Literal["LR", "TB"]


@dataclass(frozen=True)
class LayoutOptions:
    direction: LayoutDirection = "LR"
    node_width: float = 200
    node_height: float = 120
    event_size: float = 80  # Project Start / Project End
    rank_separation: float = 100
    node_separation: float = 50


def node_size(node_id: str, options: LayoutOptions) -> tuple[float, float]:
    if node_id in RESERVED_IDS:
        return (options.event_size, options.event_size)
    return (options.node_width, options.node_height)


def layout_positions(
    layout: LayoutResult, options: LayoutOptions | None = None
) -> dict[str, tuple[float, float]]:
    """Top-left (x, y) per node. Event nodes are centred in their slot."""
    opts = options or LayoutOptions()
    rank_step_lr = opts.node_width + opts.rank_separation
    order_step_lr = opts.node_height + opts.node_separation
    rank_step_tb = opts.node_height + opts.rank_separation
    order_step_tb = opts.node_width + opts.node_separation

    out: dict[str, tuple[float, float]] = {}
    for nid, n in layout.nodes.items():
        w, h = node_size(nid, opts)
        dx = (opts.node_width - w) / 2
        dy = (opts.node_height - h) / 2
        if opts.direction == "LR":
            out[nid] = (n.layer * rank_step_lr + dx, n.order * order_step_lr + dy)
        else:
            out[nid] = (n.order * order_step_tb + dx, n.layer * rank_step_tb + dy)
    return out


def layout_bounds(
    positions: dict[str, tuple[float, float]], options: LayoutOptions | None = None
) -> dict[str, float]:
    opts = options or LayoutOptions()
    if not positions:
        return {"minX": 0, "minY": 0, "maxX": 0, "maxY": 0, "width": 0, "height": 0}

    min_x = min(x for x, _ in positions.values())
    min_y = min(y for _, y in positions.values())
    max_x = max(x + node_size(nid, opts)[0] for nid, (x, _) in positions.items())
    max_y = max(y + node_size(nid, opts)[1] for nid, (_, y) in positions.items())
    return {
        "minX": min_x,
        "minY": min_y,
        "maxX": max_x,
        "maxY": max_y,
        "width": max_x - min_x,
        "height": max_y - min_y,
    }
