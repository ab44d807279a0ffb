from __future__ import annotations

import logging
import math
from typing import Iterable, Optional

from pert_scheduler.core.errors import (
    EstimateError,
    EstimateNonPositive,
    EstimateNotFinite,
    EstimateOutOfOrder,
    MissingDurationInformation,
)
from pert_scheduler.core.model import Task


logger = logging.getLogger(__name__)


def validate_estimates(
    optimistic: float,
    most_likely: float,
    pessimistic: float,
    *,
    node_id: Optional[str] = None,
) -> None:
    """Raise if the three-point estimate is unusable.

    Non-finite values are reported first, then non-positive values, then
    ordering problems.
    """
    labelled = (
        ("optimistic", optimistic),
        ("most likely", most_likely),
        ("pessimistic", pessimistic),
    )
    for label, value in labelled:
        if not math.isfinite(value):
            raise EstimateNotFinite(
                message=f"{label} time must be a finite number, got {value}",
                path=_task_path(node_id),
                node_id=node_id,
            )
    for label, value in labelled:
        if value <= 0:
            raise EstimateNonPositive(
                message=f"{label} time must be greater than 0, got {value}",
                path=_task_path(node_id),
                node_id=node_id,
            )

    if optimistic > most_likely:
        raise EstimateOutOfOrder(
            message=f"optimistic time {optimistic} is greater than most likely time {most_likely}",
            path=_task_path(node_id),
            node_id=node_id,
        )
    if most_likely > pessimistic:
        raise EstimateOutOfOrder(
            message=f"most likely time {most_likely} is greater than pessimistic time {pessimistic}",
            path=_task_path(node_id),
            node_id=node_id,
        )


def expected_duration(optimistic: float, most_likely: float, pessimistic: float) -> float:
    """PERT beta approximation: (O + 4M + P) / 6."""
    validate_estimates(optimistic, most_likely, pessimistic)
    return (optimistic + 4 * most_likely + pessimistic) / 6


def estimate_variance(optimistic: float, pessimistic: float) -> float:
    # Not used by the deterministic passes.
    return ((pessimistic - optimistic) / 6) ** 2


def estimate_std_dev(optimistic: float, pessimistic: float) -> float:
    return math.sqrt(estimate_variance(optimistic, pessimistic))


def resolve_duration(task: Task) -> float:
    """Expected duration of a task.

    A full three-point estimate wins; otherwise the flat ``duration`` is used
    (zero marks a milestone). Raises an EstimateError when neither is usable.
    """
    estimates = task.estimates
    if estimates is not None:
        validate_estimates(*estimates, node_id=task.id)
        o, m, p = estimates
        return (o + 4 * m + p) / 6

    if task.duration is not None:
        if not math.isfinite(task.duration):
            raise EstimateNotFinite(
                message=f"duration must be a finite number, got {task.duration}",
                path=_task_path(task.id),
                node_id=task.id,
            )
        if task.duration < 0:
            raise EstimateNonPositive(
                message=f"duration must not be negative, got {task.duration}",
                path=_task_path(task.id),
                node_id=task.id,
            )
        return float(task.duration)

    raise MissingDurationInformation(
        message="task has neither a three-point estimate nor a duration",
        path=_task_path(task.id),
        node_id=task.id,
    )


def resolve_durations(tasks: Iterable[Task]) -> tuple[dict[str, float], list[EstimateError]]:
    """Resolve every task independently; a bad task does not stop the others."""
    durations: dict[str, float] = {}
    errors: list[EstimateError] = []
    for task in tasks:
        try:
            durations[task.id] = resolve_duration(task)
        except EstimateError as e:
            logger.debug("excluding task %s from timing: %s", task.id, e)
            errors.append(e)
    return durations, errors


def _task_path(node_id: Optional[str]) -> Optional[str]:
    return f"tasks[{node_id}]" if node_id is not None else None
