from __future__ import annotations

import pytest

from shiptwin.config import DEFAULT_HISTORY_SIZE, EngineConfig
from shiptwin.exceptions import TwinConfigError
from shiptwin.models.thresholds import AlertThresholds

_ENV_KEYS = (
    "SHIPTWIN_HISTORY_SIZE",
    "SHIPTWIN_TEMPERATURE_MIN",
    "SHIPTWIN_TEMPERATURE_MAX",
    "SHIPTWIN_HUMIDITY_MAX",
    "SHIPTWIN_VIBRATION_MAX",
    "SHIPTWIN_SHOCK_MAX",
    "SHIPTWIN_BATTERY_MIN",
    "SHIPTWIN_BATTERY_CRITICAL",
    "SHIPTWIN_WEBHOOK_URL",
    "SHIPTWIN_WEBHOOK_TIMEOUT",
)


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    for key in _ENV_KEYS:
        monkeypatch.delenv(key, raising=False)


def test_defaults() -> None:
    config = EngineConfig.from_env()
    assert config.history_size == DEFAULT_HISTORY_SIZE
    assert config.thresholds == AlertThresholds()
    assert config.webhook_url is None
    assert config.webhook_timeout == 5.0


def test_reads_environment(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("SHIPTWIN_HISTORY_SIZE", "50")
    monkeypatch.setenv("SHIPTWIN_TEMPERATURE_MAX", "8")
    monkeypatch.setenv("SHIPTWIN_TEMPERATURE_MIN", "2")
    monkeypatch.setenv("SHIPTWIN_WEBHOOK_URL", " https://hooks.example.com/twin ")
    monkeypatch.setenv("SHIPTWIN_WEBHOOK_TIMEOUT", "2.5")

    config = EngineConfig.from_env()

    assert config.history_size == 50
    assert (config.thresholds.temperature_min, config.thresholds.temperature_max) == (2, 8)
    assert config.thresholds.humidity_max == 80
    assert config.webhook_url == "https://hooks.example.com/twin"
    assert config.webhook_timeout == 2.5


def test_overrides_win_over_environment(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("SHIPTWIN_HISTORY_SIZE", "50")
    monkeypatch.setenv("SHIPTWIN_SHOCK_MAX", "3")

    thresholds = AlertThresholds(shock_max=20)
    config = EngineConfig.from_env(history_size=7, thresholds=thresholds)

    assert config.history_size == 7
    assert config.thresholds is thresholds


@pytest.mark.parametrize(
    "key,value",
    [
        ("SHIPTWIN_HISTORY_SIZE", "many"),
        ("SHIPTWIN_HISTORY_SIZE", "0"),
        ("SHIPTWIN_WEBHOOK_TIMEOUT", "soon"),
        ("SHIPTWIN_WEBHOOK_TIMEOUT", "-1"),
        ("SHIPTWIN_HUMIDITY_MAX", "150"),
        ("SHIPTWIN_TEMPERATURE_MIN", "70"),
    ],
)
def test_invalid_environment(monkeypatch: pytest.MonkeyPatch, key: str, value: str) -> None:
    monkeypatch.setenv(key, value)
    with pytest.raises(TwinConfigError):
        EngineConfig.from_env()


def test_direct_construction_validates() -> None:
    with pytest.raises(TwinConfigError):
        EngineConfig(history_size=0)


def test_battery_minimum_below_critical_cutoff_accepted(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("SHIPTWIN_BATTERY_MIN", "5")
    config = EngineConfig.from_env()
    assert (config.thresholds.battery_min, config.thresholds.battery_critical) == (5, 10)
