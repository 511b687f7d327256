import logging

from pathlib import Path

import pytest

from pydantic import ValidationError

from arrakis.core.config import (
    DEFAULT_EWMA_ALPHA,
    DEFAULT_IDLE_WAIT_SECONDS,
    PollingConfig,
    load_polling_config,
)


def test_defaults():
    cfg = PollingConfig()
    assert cfg.wait_times() == {
        "idle_wait_seconds": 20,
        "low_volume_wait_seconds": 15,
        "medium_volume_wait_seconds": 10,
        "high_volume_wait_seconds": 5,
        "very_high_volume_wait_seconds": 1,
    }
    assert cfg.visibility_timeout_seconds == 30
    assert (cfg.low_volume_threshold, cfg.medium_volume_threshold, cfg.high_volume_threshold) == (2.0, 5.0, 10.0)
    assert cfg.ewma_alpha == pytest.approx(0.3)
    assert cfg.drop_detection_threshold == 10
    assert cfg.decay_half_life_seconds == 30.0
    assert cfg.enable_adaptive_polling is True
    assert cfg.disabled_wait_seconds == 0
    assert cfg.max_wait_seconds == 20


@pytest.mark.parametrize("field", ["idle_wait_seconds", "ewma_alpha", "drop_detection_threshold"])
def test_zero_and_none_fall_back_to_default(field):
    assert getattr(PollingConfig(**{field: 0}), field) == getattr(PollingConfig(), field)
    assert getattr(PollingConfig(**{field: None}), field) == getattr(PollingConfig(), field)


def test_disabled_wait_zero_is_kept():
    assert PollingConfig(disabled_wait_seconds=0).disabled_wait_seconds == 0
    assert PollingConfig(disabled_wait_seconds=3).disabled_wait_seconds == 3


@pytest.mark.parametrize("kwargs", [
    {"ewma_alpha": 1.5},
    {"ewma_alpha": -0.1},
    {"idle_wait_seconds": -5},
    {"visibility_timeout_seconds": -1},
    {"decay_half_life_seconds": -30},
    {"disabled_wait_seconds": -1},
    {"low_volume_threshold": 6.0},
    {"medium_volume_threshold": 12.0},
    {"max_wait_seconds": 30},
    {"max_wait_seconds": -1},
    {"unknown_option": 1},
])
def test_invalid_values_raise(kwargs):
    with pytest.raises(ValidationError):
        PollingConfig(**kwargs)


def test_alpha_of_one_is_allowed():
    assert PollingConfig(ewma_alpha=1.0).ewma_alpha == 1.0


def test_config_is_frozen():
    cfg = PollingConfig()
    with pytest.raises(ValidationError):
        cfg.ewma_alpha = 0.9


def test_increasing_wait_times_only_warn(caplog):
    with caplog.at_level(logging.WARNING, logger="arrakis.core.config"):
        cfg = PollingConfig(very_high_volume_wait_seconds=18)
    assert cfg.very_high_volume_wait_seconds == 18
    assert "not non-increasing" in caplog.text


def test_load_polling_config_section(tmp_path):
    path = tmp_path / "polling.toml"
    path.write_text(
        "[adaptive_polling]\n"
        "ewma_alpha = 0.5\n"
        "idle_wait_seconds = 0\n"
        "medium_volume_wait_seconds = 8\n"
        "enable_adaptive_polling = false\n"
    )
    cfg = load_polling_config(path)
    assert cfg.ewma_alpha == 0.5
    assert cfg.idle_wait_seconds == DEFAULT_IDLE_WAIT_SECONDS
    assert cfg.medium_volume_wait_seconds == 8
    assert cfg.enable_adaptive_polling is False


def test_load_polling_config_top_level(tmp_path):
    path = tmp_path / "polling.toml"
    path.write_text("drop_detection_threshold = 4\n")
    cfg = load_polling_config(path)
    assert cfg.drop_detection_threshold == 4
    assert cfg.ewma_alpha == pytest.approx(DEFAULT_EWMA_ALPHA)


def test_load_polling_config_missing_file(tmp_path):
    with pytest.raises(FileNotFoundError):
        load_polling_config(tmp_path / "missing.toml")


def test_load_polling_config_invalid_values(tmp_path):
    path = tmp_path / "polling.toml"
    path.write_text("[adaptive_polling]\newma_alpha = 2.0\n")
    with pytest.raises(ValidationError):
        load_polling_config(path)


def test_shipped_config_matches_defaults():
    path = Path(__file__).resolve().parents[1] / "src" / "arrakis" / "core" / "adaptive_polling.toml"
    assert load_polling_config(path) == PollingConfig()


def test_max_wait_bounded_by_queue_limit():
    assert PollingConfig(max_wait_seconds=20).max_wait_seconds == 20
    cfg = PollingConfig(idle_wait_seconds=25, max_wait_seconds=15)
    assert cfg.max_wait_seconds == 15
