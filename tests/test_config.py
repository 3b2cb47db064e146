import pytest

from brick.common.config import BrickConfig

_VARS = (
    "BRICK_STORE_DIR", "BRICK_KNOWLEDGE_PATH", "BRICK_PROCESS_PROBE_SEC", "BRICK_SERVICE_PROBE_SEC",
    "BRICK_GUI_PROBE_SEC", "BRICK_OPTIMAL_ACTION_MS", "BRICK_MIN_EFFICIENCY", "BRICK_MIN_CLEANLINESS",
    "BRICK_SYNTH_SPACING_MS", "BRICK_MERGE_SPACING_MS", "BRICK_VARIATION_SEED", "BRICK_CAPTURE_OS_INPUT",
)


@pytest.fixture
def clean_env(monkeypatch):
    for name in _VARS:
        monkeypatch.delenv(name, raising=False)
    return monkeypatch


def test_defaults(clean_env):
    config = BrickConfig.from_env()
    assert config.store_dir.endswith("recordings")
    assert config.knowledge_path == ""
    assert config.process_probe_sec == 1.0
    assert config.service_probe_sec == 5.0
    assert config.optimal_action_ms == 50.0
    assert config.min_efficiency == 0.7
    assert config.min_cleanliness == 0.8
    assert config.synth_spacing_ms == 75.0
    assert config.merge_spacing_ms == 100.0
    assert config.variation_seed is None
    assert config.capture_os_input is False


def test_environment_overrides(clean_env, tmp_path):
    clean_env.setenv("BRICK_STORE_DIR", str(tmp_path))
    clean_env.setenv("BRICK_MIN_EFFICIENCY", "0.5")
    clean_env.setenv("BRICK_VARIATION_SEED", "42")
    clean_env.setenv("BRICK_CAPTURE_OS_INPUT", "Yes")

    config = BrickConfig.from_env()
    assert config.store_dir == str(tmp_path)
    assert config.min_efficiency == 0.5
    assert config.variation_seed == 42
    assert config.capture_os_input is True


def test_explicit_construction_keeps_store_dir():
    assert BrickConfig(store_dir="/tmp/brick").store_dir == "/tmp/brick"
