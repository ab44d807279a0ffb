from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Callable

import yaml

from pert_scheduler.core.errors import ProjectLoadError


PROJECT_KEYS = ("tasks", "dependencies")

# suffix -> (parser, parse error code)
_PARSERS: dict[str, tuple[Callable[[str], Any], str]] = {
    ".yaml": (yaml.safe_load, "E_YAML_PARSE"),
    ".yml": (yaml.safe_load, "E_YAML_PARSE"),
    ".json": (json.loads, "E_JSON_PARSE"),
}


def load_project(path: str) -> dict[str, Any]:
    """Read a project file into ``{"tasks", ["dependencies"], "__file__"}``.

    Only the top-level document is checked here: it must be a mapping whose
    keys are drawn from PROJECT_KEYS. Task and dependency records are left
    as loaded for the validator.
    """
    p = Path(path)
    if not p.exists():
        raise ProjectLoadError(code="E_FILE_NOT_FOUND", message="file does not exist", file=str(p))

    parser = _PARSERS.get(p.suffix.lower())
    if parser is None:
        supported = ", ".join(sorted(_PARSERS))
        raise ProjectLoadError(
            code="E_UNSUPPORTED_FORMAT",
            message=f"unsupported file extension '{p.suffix}' (choose from: {supported})",
            file=str(p),
        )
    parse, parse_code = parser

    try:
        text = p.read_text(encoding="utf-8")
    except OSError as e:  # pragma: no cover
        raise ProjectLoadError(code="E_FILE_READ", message=str(e), file=str(p)) from e

    try:
        document = parse(text)
    except (yaml.YAMLError, ValueError) as e:
        raise ProjectLoadError(code=parse_code, message=str(e), file=str(p)) from e

    return _project_document(document, str(p))


def _project_document(document: Any, file: str) -> dict[str, Any]:
    if not isinstance(document, dict):
        raise ProjectLoadError(
            code="E_INVALID_TOP_LEVEL",
            message="project must be a mapping with a 'tasks' list",
            file=file,
        )

    unknown = sorted(str(k) for k in document if k not in PROJECT_KEYS)
    if unknown:
        raise ProjectLoadError(
            code="E_UNKNOWN_TOP_LEVEL_KEY",
            message=f"unknown top-level key(s): {', '.join(unknown)} (allowed: {', '.join(PROJECT_KEYS)})",
            file=file,
            path=unknown[0],
        )

    project: dict[str, Any] = {"tasks": document.get("tasks")}
    if "dependencies" in document:
        project["dependencies"] = document["dependencies"]
    project["__file__"] = file
    return project
