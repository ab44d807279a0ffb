from __future__ import annotations

import math
import os
from dataclasses import dataclass, fields, replace
from pathlib import Path
from typing import Any

import yaml

from pert_scheduler.core.layout.positions import LayoutOptions


ENV_SLACK_EPSILON = "PERT_SLACK_EPSILON"
ENV_LAYOUT_PASSES = "PERT_LAYOUT_PASSES"


@dataclass(frozen=True)
class EngineConfig:
    slack_epsilon: float = 1e-6
    layout_passes: int = 4

    direction: str = "LR"
    node_width: float = 200
    node_height: float = 120
    event_size: float = 80
    rank_separation: float = 100
    node_separation: float = 50

    def layout_options(self) -> LayoutOptions:
        return LayoutOptions(
            direction="TB" if self.direction == "TB" else "LR",
            node_width=self.node_width,
            node_height=self.node_height,
            event_size=self.event_size,
            rank_separation=self.rank_separation,
            node_separation=self.node_separation,
        )


class ConfigError(ValueError):
    pass


_NUMERIC = {
    "slack_epsilon",
    "node_width",
    "node_height",
    "event_size",
    "rank_separation",
    "node_separation",
}


def load_config_file(path: str | Path) -> dict[str, Any]:
    """Load engine overrides from a YAML file.

    Format:
      <field>: <value>    # any EngineConfig field

    Unknown keys and wrong types raise ConfigError.
    """
    p = Path(path)
    try:
        raw = yaml.safe_load(p.read_text(encoding="utf-8"))
    except yaml.YAMLError as e:
        raise ConfigError(f"invalid YAML in config file: {e}") from e
    if raw is None:
        return {}
    if not isinstance(raw, dict):
        raise ConfigError("config file must be a mapping of field -> value")

    known = {f.name for f in fields(EngineConfig)}
    out: dict[str, Any] = {}
    for k, v in raw.items():
        if k not in known:
            raise ConfigError(f"unknown config key '{k}' (choose from: {', '.join(sorted(known))})")
        out[k] = _check_value(k, v)
    return out


def merged_config(overrides: dict[str, Any] | None = None) -> EngineConfig:
    cfg = EngineConfig()
    if overrides:
        cfg = replace(cfg, **overrides)
    return cfg


def env_overrides() -> dict[str, Any]:
    """Overrides from PERT_SLACK_EPSILON / PERT_LAYOUT_PASSES, when set."""
    out: dict[str, Any] = {}
    eps = (os.getenv(ENV_SLACK_EPSILON, "") or "").strip()
    if eps:
        try:
            out["slack_epsilon"] = _check_value("slack_epsilon", float(eps))
        except ValueError as e:
            raise ConfigError(f"{ENV_SLACK_EPSILON}: {e}") from e
    passes = (os.getenv(ENV_LAYOUT_PASSES, "") or "").strip()
    if passes:
        try:
            out["layout_passes"] = _check_value("layout_passes", int(passes))
        except ValueError as e:
            raise ConfigError(f"{ENV_LAYOUT_PASSES}: {e}") from e
    return out


def load_and_merge(config_file: str | None) -> EngineConfig:
    """Resolution order: defaults, then the config file, then the environment."""
    overrides: dict[str, Any] = {}
    if config_file:
        overrides.update(load_config_file(config_file))
    overrides.update(env_overrides())
    return merged_config(overrides)


def _check_value(key: str, v: Any) -> Any:
    if key in _NUMERIC:
        if isinstance(v, bool) or not isinstance(v, (int, float)):
            raise ConfigError(f"'{key}' must be a number")
        if not math.isfinite(v):
            raise ConfigError(f"'{key}' must be finite")
        if v < 0:
            raise ConfigError(f"'{key}' must not be negative")
        return float(v)
    if key == "layout_passes":
        if isinstance(v, bool) or not isinstance(v, int) or v < 0:
            raise ConfigError("'layout_passes' must be a non-negative integer")
        return v
    if key == "direction":
        if v not in ("LR", "TB"):
            raise ConfigError("'direction' must be one of: LR, TB")
        return v
    return v  # pragma: no cover
