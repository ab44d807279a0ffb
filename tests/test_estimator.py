import math

import pytest

from pert_scheduler.core.errors import (
    EstimateNonPositive,
    EstimateNotFinite,
    EstimateOutOfOrder,
    MissingDurationInformation,
)
from pert_scheduler.core.estimate.estimator import (
    estimate_std_dev,
    estimate_variance,
    expected_duration,
    resolve_duration,
    resolve_durations,
)
from pert_scheduler.core.model import Task


def test_expected_duration_is_exact():
    assert expected_duration(2, 4, 6) == 4.0


def test_expected_duration_weights_most_likely():
    assert expected_duration(1, 2, 9) == pytest.approx(3.0)


def test_optimistic_above_most_likely_is_out_of_order():
    with pytest.raises(EstimateOutOfOrder) as exc:
        expected_duration(5, 3, 8)
    assert exc.value.code == "E_ESTIMATE_OUT_OF_ORDER"


def test_most_likely_above_pessimistic_is_out_of_order():
    with pytest.raises(EstimateOutOfOrder):
        expected_duration(1, 5, 4)


@pytest.mark.parametrize("o,m,p", [(0, 1, 2), (-1, 2, 3), (1, 2, 0)])
def test_non_positive_values_rejected(o, m, p):
    with pytest.raises(EstimateNonPositive) as exc:
        expected_duration(o, m, p)
    assert exc.value.code == "E_ESTIMATE_NON_POSITIVE"


def test_non_positive_reported_before_ordering():
    with pytest.raises(EstimateNonPositive):
        expected_duration(5, 3, -1)


def test_variance_and_std_dev():
    assert estimate_variance(2, 8) == 1.0
    assert estimate_variance(1, 4) == 0.25
    assert estimate_std_dev(2, 14) == 2.0
    assert math.isclose(estimate_std_dev(1, 4), 0.5)


def test_resolve_prefers_three_point_estimate():
    t = Task(id="A", optimistic_time=2, most_likely_time=4, pessimistic_time=6, duration=10)
    assert resolve_duration(t) == 4.0


def test_resolve_falls_back_to_flat_duration():
    assert resolve_duration(Task(id="A", duration=7)) == 7.0


def test_partial_estimate_counts_as_missing():
    t = Task(id="A", optimistic_time=2, most_likely_time=4, duration=3)
    assert resolve_duration(t) == 3.0


def test_zero_duration_is_a_milestone():
    assert resolve_duration(Task(id="M", duration=0)) == 0.0


def test_negative_duration_rejected():
    with pytest.raises(EstimateNonPositive) as exc:
        resolve_duration(Task(id="A", duration=-1))
    assert exc.value.node_id == "A"


def test_missing_duration_information():
    with pytest.raises(MissingDurationInformation) as exc:
        resolve_duration(Task(id="X"))
    assert exc.value.node_id == "X"
    assert exc.value.code == "E_MISSING_DURATION"
    assert str(exc.value).startswith("tasks[X]: E_MISSING_DURATION:")


def test_bad_estimate_carries_task_id():
    t = Task(id="B", optimistic_time=5, most_likely_time=3, pessimistic_time=8)
    with pytest.raises(EstimateOutOfOrder) as exc:
        resolve_duration(t)
    assert exc.value.node_id == "B"
    assert exc.value.path == "tasks[B]"


def test_resolve_durations_collects_errors_per_task():
    tasks = [
        Task(id="A", duration=2),
        Task(id="B", optimistic_time=5, most_likely_time=3, pessimistic_time=8),
        Task(id="C"),
        Task(id="D", optimistic_time=1, most_likely_time=1, pessimistic_time=1),
    ]
    durations, errors = resolve_durations(tasks)
    assert durations == {"A": 2.0, "D": 1.0}
    assert [(e.node_id, e.code) for e in errors] == [
        ("B", "E_ESTIMATE_OUT_OF_ORDER"),
        ("C", "E_MISSING_DURATION"),
    ]


@pytest.mark.parametrize(
    "o,m,p",
    [(float("nan"), 2, 3), (1, float("nan"), 3), (1, 2, float("inf")), (float("-inf"), 2, 3)],
)
def test_non_finite_estimates_rejected(o, m, p):
    with pytest.raises(EstimateNotFinite) as exc:
        expected_duration(o, m, p)
    assert exc.value.code == "E_ESTIMATE_NOT_FINITE"


@pytest.mark.parametrize("d", [float("nan"), float("inf")])
def test_non_finite_flat_duration_rejected(d):
    with pytest.raises(EstimateNotFinite) as exc:
        resolve_duration(Task(id="A", duration=d))
    assert exc.value.node_id == "A"
