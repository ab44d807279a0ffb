from __future__ import annotations

import json
import logging
from typing import Any, NoReturn, Optional

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from pert_scheduler.core.config.engine_config import ConfigError, EngineConfig, load_and_merge
from pert_scheduler.core.errors import ProjectLoadError, ProjectValidationError, ScheduleError
from pert_scheduler.core.io.load_project import load_project
from pert_scheduler.core.layout.layout_graph import layout_graph
from pert_scheduler.core.layout.positions import layout_bounds, layout_positions
from pert_scheduler.core.lint.lint_project import lint_project
from pert_scheduler.core.model import DependencyGraph
from pert_scheduler.core.schedule.passes import compute_schedule
from pert_scheduler.core.validate.validate_project import summarize_project, validate_project

app = typer.Typer(add_completion=False, no_args_is_help=True)
console = Console()


@app.callback()
def _callback(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Log engine details to stderr"),
) -> None:
    """PERT/CPM scheduling CLI."""
    if verbose:
        logging.basicConfig(
            level=logging.DEBUG,
            format="%(message)s",
            handlers=[RichHandler(console=Console(stderr=True), show_path=False)],
            force=True,
        )


@app.command("validate")
def validate(
    path: str = typer.Argument(..., help="Path to a project file (.yaml/.yml/.json)"),
    format: str = typer.Option("text", "--format", help="Output format: text|json"),
) -> None:
    """Validate a project file: shape, references and acyclicity."""
    _check_format(format, "validate")

    graph = _load_graph(path, format, "validate")

    if format == "text":
        typer.echo(summarize_project(graph))
        return

    _emit_json(
        "validate",
        ok=True,
        exit_code=0,
        errors=[],
        extra={
            "summary": {
                "task_count": len(graph.tasks_by_id),
                "dependency_count": len(graph.dependencies),
                "sources": graph.sources,
                "sinks": graph.sinks,
                "topological_order": list(graph.topological_order),
            }
        },
    )


@app.command("lint")
def lint(
    path: str = typer.Argument(..., help="Path to a project file (.yaml/.yml/.json)"),
    format: str = typer.Option("text", "--format", help="Output format: text|json"),
) -> None:
    """Lint a project file (estimate sanity checks beyond validation)."""
    _check_format(format, "lint")

    try:
        project = load_project(path)
    except ProjectLoadError as e:
        _fail(format, "lint", [e], 1)

    lint_errors = lint_project(project)
    _, validation_errors = validate_project(project)
    errors: list[ScheduleError] = lint_errors + validation_errors

    if format == "text":
        if errors:
            _print_errors(errors)
            raise typer.Exit(code=2)
        typer.echo("OK: lint passed")
        return

    if errors:
        _emit_json("lint", ok=False, exit_code=2, errors=errors)
    _emit_json("lint", ok=True, exit_code=0, errors=[])


@app.command("schedule")
def schedule(
    path: str = typer.Argument(..., help="Path to a project file (.yaml/.yml/.json)"),
    format: str = typer.Option("text", "--format", help="Output format: text|json"),
    config_file: Optional[str] = typer.Option(None, "--config", help="Optional YAML engine config"),
) -> None:
    """Compute expected durations, CPM timings, slack and the critical path."""
    _check_format(format, "schedule")
    cfg = _load_config(config_file, format, "schedule")
    graph = _load_graph(path, format, "schedule")

    result = compute_schedule(graph, epsilon=cfg.slack_epsilon)
    issues: list[ScheduleError] = list(result.issues)

    if format == "json":
        _emit_json(
            "schedule",
            ok=True,
            exit_code=0,
            errors=issues,
            extra=result.to_dict(),
            severity="warning",
        )

    table = Table(title="schedule")
    for col in ("Task", "Dur", "ES", "EF", "LS", "LF", "Slack", "Critical"):
        table.add_column(col)
    for tid, ts in result.tasks.items():
        table.add_row(
            tid,
            f"{ts.expected_duration:g}",
            f"{ts.early_start:g}",
            f"{ts.early_finish:g}",
            f"{ts.late_start:g}",
            f"{ts.late_finish:g}",
            f"{ts.slack:g}",
            "yes" if ts.is_critical else "no",
        )
    console.print(table)

    typer.echo(f"Project duration: {result.project_duration:g}")
    typer.echo("Critical path: " + " -> ".join(result.critical_path))
    if result.unscheduled:
        typer.echo("Unscheduled: " + ", ".join(result.unscheduled))
    if issues:
        typer.echo("WARN: tasks excluded from timing:", err=True)
        _print_errors(issues)


@app.command("layout")
def layout(
    path: str = typer.Argument(..., help="Path to a project file (.yaml/.yml/.json)"),
    format: str = typer.Option("text", "--format", help="Output format: text|json"),
    positions: bool = typer.Option(False, "--positions", help="Also compute x/y coordinates"),
    config_file: Optional[str] = typer.Option(None, "--config", help="Optional YAML engine config"),
) -> None:
    """Assign diagram layers and in-layer order (Project Start/End included)."""
    _check_format(format, "layout")
    cfg = _load_config(config_file, format, "layout")
    graph = _load_graph(path, format, "layout")

    result = layout_graph(graph, passes=cfg.layout_passes)
    coords = layout_positions(result, cfg.layout_options()) if positions else None

    if format == "json":
        payload = result.to_dict()
        if coords is not None:
            for nid, (x, y) in coords.items():
                payload["nodes"][nid]["x"] = x
                payload["nodes"][nid]["y"] = y
            payload["bounds"] = layout_bounds(coords, cfg.layout_options())
        _emit_json("layout", ok=True, exit_code=0, errors=[], extra=payload)

    for li, nodes in enumerate(result.layers):
        typer.echo(f"L{li}: " + ", ".join(nodes))
    typer.echo(f"Crossings: {result.crossings}")
    if coords is not None:
        for nid, (x, y) in coords.items():
            typer.echo(f"{nid}: x={x:g} y={y:g}")


def _load_graph(path: str, format: str, command: str) -> DependencyGraph:
    try:
        project = load_project(path)
    except ProjectLoadError as e:
        _fail(format, command, [e], 1)

    graph, errors = validate_project(project)
    if errors or graph is None:
        _fail(format, command, errors, 2)
    return graph


def _load_config(config_file: Optional[str], format: str, command: str) -> EngineConfig:
    try:
        return load_and_merge(config_file)
    except FileNotFoundError:
        _fail(
            format,
            command,
            [
                ProjectLoadError(
                    code="E_CONFIG_FILE_NOT_FOUND",
                    message=f"config file not found: {config_file}",
                    path="config",
                )
            ],
            1,
        )
    except ConfigError as e:
        _fail(
            format,
            command,
            [ProjectValidationError(code="E_CONFIG_INVALID", message=str(e), path="config")],
            2,
        )


def _check_format(format: str, command: str) -> None:
    if format not in ("text", "json"):
        err = ProjectValidationError(
            code=f"E_{command.upper()}_UNKNOWN_FORMAT",
            message=f"unknown format: {format} (choose one of: text, json)",
            file=None,
            path="format",
        )
        _print_errors([err])
        raise typer.Exit(code=2)


def _fail(format: str, command: str, errors: list[ScheduleError], exit_code: int) -> NoReturn:
    if format == "json":
        _emit_json(command, ok=False, exit_code=exit_code, errors=errors)
    _print_errors(errors)
    raise typer.Exit(code=exit_code)


def _to_item(e: ScheduleError, severity: str = "error") -> dict[str, Any]:
    if isinstance(e, ProjectLoadError):
        source = "load"
    elif e.code.startswith("L_"):
        source = "lint"
    else:
        source = "validate"
    item: dict[str, Any] = {
        "code": e.code,
        "message": e.message,
        "file": e.file,
        "path": e.path,
        "severity": severity,
        "source": source,
    }
    node_id = getattr(e, "node_id", None)
    if node_id is not None:
        item["node_id"] = node_id
    cycle = getattr(e, "cycle", None)
    if cycle:
        item["cycle"] = list(cycle)
    return item


def _emit_json(
    command: str,
    *,
    ok: bool,
    exit_code: int,
    errors: list[ScheduleError],
    extra: Optional[dict[str, Any]] = None,
    severity: str = "error",
) -> NoReturn:
    payload: dict[str, Any] = {
        "tool": "pert",
        "command": command,
        "ok": ok,
        "error_count": len(errors),
        "errors": [_to_item(e, severity) for e in errors],
    }
    if extra:
        payload.update(extra)
    typer.echo(json.dumps(payload, indent=2, sort_keys=True))
    raise typer.Exit(code=exit_code)


def _print_errors(errors: list[ScheduleError]) -> None:
    errors_sorted = sorted(errors, key=lambda e: (e.file or "", e.path or "", e.code))
    for e in errors_sorted:
        typer.echo(str(e), err=True)


def main() -> None:
    app(prog_name="pert")


cli = typer.main.get_command(app)

if __name__ == "__main__":
    main()
