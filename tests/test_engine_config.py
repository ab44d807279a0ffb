import pytest

from pert_scheduler.core.config.engine_config import (
    ENV_LAYOUT_PASSES,
    ENV_SLACK_EPSILON,
    ConfigError,
    EngineConfig,
    load_and_merge,
    load_config_file,
)


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch):
    monkeypatch.delenv(ENV_SLACK_EPSILON, raising=False)
    monkeypatch.delenv(ENV_LAYOUT_PASSES, raising=False)


def test_defaults():
    cfg = load_and_merge(None)
    assert cfg == EngineConfig()
    assert cfg.slack_epsilon == 1e-6
    assert cfg.layout_passes == 4
    assert cfg.layout_options().direction == "LR"


def test_example_config_file():
    cfg = load_and_merge("examples/engine-config.yaml")
    assert cfg.slack_epsilon == 0.001
    assert cfg.layout_passes == 2
    assert cfg.layout_options().direction == "TB"
    assert cfg.node_width == 200


def test_environment_overrides_file(monkeypatch):
    monkeypatch.setenv(ENV_SLACK_EPSILON, "0.5")
    monkeypatch.setenv(ENV_LAYOUT_PASSES, "0")
    cfg = load_and_merge("examples/engine-config.yaml")
    assert cfg.slack_epsilon == 0.5
    assert cfg.layout_passes == 0
    assert cfg.direction == "TB"


def test_empty_file_means_defaults(tmp_path):
    p = tmp_path / "empty.yaml"
    p.write_text("", encoding="utf-8")
    assert load_config_file(p) == {}


def test_unknown_key_rejected(tmp_path):
    p = tmp_path / "cfg.yaml"
    p.write_text("slack: 0.1\n", encoding="utf-8")
    with pytest.raises(ConfigError, match="unknown config key 'slack'"):
        load_config_file(p)


@pytest.mark.parametrize(
    "body",
    [
        "slack_epsilon: tiny\n",
        "slack_epsilon: -1\n",
        "slack_epsilon: .nan\n",
        "node_width: .inf\n",
        "layout_passes: 1.5\n",
        "direction: RL\n",
        "- slack_epsilon\n",
    ],
)
def test_bad_values_rejected(tmp_path, body):
    p = tmp_path / "cfg.yaml"
    p.write_text(body, encoding="utf-8")
    with pytest.raises(ConfigError):
        load_config_file(p)


def test_bad_environment_value(monkeypatch):
    monkeypatch.setenv(ENV_LAYOUT_PASSES, "many")
    with pytest.raises(ConfigError, match=ENV_LAYOUT_PASSES):
        load_and_merge(None)
