import pytest

from pert_scheduler.core.graph.build_graph import build_graph
from pert_scheduler.core.io.load_project import load_project
from pert_scheduler.core.model import Dependency, DependencyType, Task
from pert_scheduler.core.schedule.passes import backward_pass, compute_schedule, forward_pass
from pert_scheduler.core.validate.validate_project import validate_project


EPS = 1e-6


def _task(tid: str, d: float | None) -> Task:
    return Task(id=tid, duration=d)


def _dep(src: str, dst: str, kind: str = "FS", lag: float = 0.0) -> Dependency:
    return Dependency(
        id=f"{src}-{dst}",
        source_id=src,
        target_id=dst,
        dependency_type=DependencyType(kind),
        lag=lag,
    )


def _chain(lag_ab: float = 0.0):
    tasks = [_task("A", 3), _task("B", 5), _task("C", 2)]
    deps = [_dep("A", "B", lag=lag_ab), _dep("B", "C")]
    return tasks, deps


def _times(result, tid):
    ts = result.tasks[tid]
    return (ts.early_start, ts.early_finish, ts.late_start, ts.late_finish)


def test_three_task_chain():
    tasks, deps = _chain()
    r = compute_schedule(build_graph(tasks, deps))
    assert _times(r, "A") == (0, 3, 0, 3)
    assert _times(r, "B") == (3, 8, 3, 8)
    assert _times(r, "C") == (8, 10, 8, 10)
    assert r.project_duration == 10
    assert all(ts.slack == 0 and ts.is_critical for ts in r.tasks.values())
    assert r.critical_path == ["A", "B", "C"]


def test_lag_delays_successor():
    tasks, deps = _chain(lag_ab=2)
    r = compute_schedule(build_graph(tasks, deps))
    assert r.tasks["B"].early_start == 5
    assert r.tasks["B"].early_finish == 10
    assert r.tasks["C"].early_start == 10
    assert r.tasks["C"].early_finish == 12
    assert r.project_duration == 12
    assert r.critical_path == ["A", "B", "C"]


def test_parallel_branch_has_slack():
    tasks, deps = _chain()
    tasks.append(_task("D", 1))
    deps.append(_dep("A", "D"))
    r = compute_schedule(build_graph(tasks, deps))
    d = r.tasks["D"]
    assert (d.early_start, d.early_finish) == (3, 4)
    assert d.late_finish == 10
    assert d.late_start == 9
    assert d.slack == 6
    assert d.is_critical is False
    assert r.critical_path == ["A", "B", "C"]


def test_start_to_start_with_lag():
    r = compute_schedule(build_graph([_task("A", 4), _task("B", 2)], [_dep("A", "B", "SS", 1)]))
    assert _times(r, "B") == (1, 3, 2, 4)
    assert r.tasks["B"].slack == 1
    assert r.tasks["A"].slack == 0
    assert r.project_duration == 4
    assert r.critical_path == ["A"]


def test_finish_to_finish_with_lag():
    r = compute_schedule(build_graph([_task("A", 4), _task("B", 3)], [_dep("A", "B", "FF", 2)]))
    assert _times(r, "B") == (3, 6, 3, 6)
    assert _times(r, "A") == (0, 4, 0, 4)
    assert r.project_duration == 6
    assert r.critical_path == ["A", "B"]


def test_start_to_finish_with_lag():
    r = compute_schedule(build_graph([_task("A", 4), _task("B", 3)], [_dep("A", "B", "SF", 5)]))
    assert _times(r, "B") == (2, 5, 2, 5)
    assert _times(r, "A") == (0, 4, 0, 4)
    assert r.project_duration == 5
    assert r.critical_path == ["A", "B"]


def test_derived_start_never_precedes_project_start():
    r = compute_schedule(build_graph([_task("A", 1), _task("B", 5)], [_dep("A", "B", "FF")]))
    assert _times(r, "B") == (0, 5, 0, 5)
    assert r.tasks["A"].slack == 4
    assert r.critical_path == ["B"]


def test_milestone_takes_no_time_but_keeps_order():
    tasks = [_task("A", 2), _task("M", 0), _task("B", 3)]
    r = compute_schedule(build_graph(tasks, [_dep("A", "M"), _dep("M", "B")]))
    assert _times(r, "M") == (2, 2, 2, 2)
    assert r.tasks["M"].is_critical
    assert r.project_duration == 5
    assert r.critical_path == ["A", "M", "B"]


def test_most_restrictive_predecessor_wins():
    tasks = [_task("A", 2), _task("B", 6), _task("C", 1)]
    r = compute_schedule(build_graph(tasks, [_dep("A", "C"), _dep("B", "C")]))
    assert r.tasks["C"].early_start == 6
    assert r.tasks["A"].late_finish == 6
    assert r.tasks["A"].slack == 4
    assert r.critical_path == ["B", "C"]


def test_mixed_dependency_types_from_file():
    graph, errors = validate_project(load_project("examples/estimates-project.yaml"))
    assert errors == []
    r = compute_schedule(graph)

    assert r.tasks["design"].expected_duration == 4.0
    assert r.tasks["backend"].expected_duration == 7.0
    assert _times(r, "backend") == (4, 11, 4, 11)
    assert _times(r, "frontend") == (1, 5, 6, 10)
    assert _times(r, "qa") == (10, 12, 10, 12)
    assert _times(r, "release") == (12, 12, 12, 12)
    assert r.tasks["frontend"].slack == 5
    assert r.project_duration == 12
    assert r.critical_path == ["design", "backend", "qa", "release"]


def test_invariants_hold_for_every_task():
    graph, _ = validate_project(load_project("examples/estimates-project.yaml"))
    r = compute_schedule(graph)
    for ts in r.tasks.values():
        assert ts.early_start <= ts.late_start + EPS
        assert ts.early_finish <= ts.late_finish + EPS
        assert ts.slack >= 0
        assert (ts.late_start - ts.early_start) == pytest.approx(ts.late_finish - ts.early_finish)
        assert ts.early_finish <= r.project_duration + EPS


def test_critical_path_duration_matches_project_for_finish_to_start():
    tasks = [_task("A", 2), _task("B", 4), _task("C", 3), _task("D", 1), _task("E", 2)]
    deps = [_dep("A", "B"), _dep("A", "C"), _dep("B", "D"), _dep("C", "D"), _dep("D", "E")]
    r = compute_schedule(build_graph(tasks, deps))
    total = sum(r.tasks[t].expected_duration for t in r.critical_path)
    assert total == pytest.approx(r.project_duration)
    assert r.critical_path == ["A", "B", "D", "E"]


def test_idempotent_and_input_untouched():
    tasks, deps = _chain(lag_ab=1.5)
    before = (list(tasks), list(deps))
    g = build_graph(tasks, deps)
    assert compute_schedule(g) == compute_schedule(g)
    assert compute_schedule(build_graph(tasks, deps)) == compute_schedule(g)
    assert (tasks, deps) == before


def test_missing_duration_leaves_dependents_unscheduled():
    graph, errors = validate_project(load_project("examples/missing-duration.yaml"))
    assert errors == []
    r = compute_schedule(graph)

    assert r.unscheduled == ["X", "Y"]
    assert sorted(r.tasks) == ["A", "Z"]
    assert [(e.node_id, e.code) for e in r.issues] == [
        ("X", "E_MISSING_DURATION"),
        ("Y", "E_MISSING_DURATION"),
    ]
    assert r.project_duration == 3
    assert r.critical_path == ["A", "Z"]


def test_bad_estimate_excludes_only_that_task():
    tasks = [
        _task("A", 2),
        Task(id="B", optimistic_time=5, most_likely_time=3, pessimistic_time=8),
        _task("C", 1),
    ]
    r = compute_schedule(build_graph(tasks, [_dep("A", "B"), _dep("A", "C")]))
    assert r.unscheduled == ["B"]
    assert r.issues[0].code == "E_ESTIMATE_OUT_OF_ORDER"
    assert r.issues[0].node_id == "B"
    assert _times(r, "C") == (2, 3, 2, 3)


def test_task_with_some_scheduled_predecessors_is_still_scheduled():
    tasks = [_task("A", 2), _task("X", None), _task("Y", 1)]
    r = compute_schedule(build_graph(tasks, [_dep("A", "Y"), _dep("X", "Y")]))
    assert r.unscheduled == ["X"]
    assert _times(r, "Y") == (2, 3, 2, 3)


def test_empty_graph():
    r = compute_schedule(build_graph([], []))
    assert r.tasks == {}
    assert r.project_duration == 0
    assert r.critical_path == []


def test_passes_can_run_on_their_own():
    tasks, deps = _chain()
    g = build_graph(tasks, deps)
    durations = {"A": 3.0, "B": 5.0, "C": 2.0}
    early = forward_pass(g, durations)
    assert early == {"A": (0, 3), "B": (3, 8), "C": (8, 10)}
    late = backward_pass(g, durations, 12.0)
    assert late == {"A": (2, 5), "B": (5, 10), "C": (10, 12)}


@pytest.mark.parametrize("d", [float("inf"), float("nan")])
def test_non_finite_duration_is_excluded_not_scheduled(d):
    tasks = [_task("A", d), _task("B", 2), _task("C", 1)]
    r = compute_schedule(build_graph(tasks, [_dep("A", "B"), _dep("C", "B")]))
    assert r.unscheduled == ["A"]
    assert r.issues[0].code == "E_ESTIMATE_NOT_FINITE"
    assert r.project_duration == 3
    assert _times(r, "B") == (1, 3, 1, 3)
    assert r.critical_path == ["C", "B"]
