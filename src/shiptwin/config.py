"""Engine configuration for shiptwin."""

from __future__ import annotations

import dataclasses
import os
from typing import Any

from pydantic import ValidationError

from shiptwin.exceptions import TwinConfigError
from shiptwin.models.thresholds import AlertThresholds

#: Default capacity of the per-twin location history.
DEFAULT_HISTORY_SIZE: int = 1000


@dataclasses.dataclass(frozen=True)
class EngineConfig:
    """Tracking engine configuration.

    Parameters
    ----------
    history_size : int
        Number of past locations kept per twin.  Oldest entries are
        evicted first.  Must be at least 1.
    thresholds : AlertThresholds
        Threshold table copied onto every newly created twin.
    webhook_url : str or None
        Downstream endpoint for :class:`shiptwin.webhook.WebhookForwarder`.
    webhook_timeout : float
        Total timeout in seconds for one webhook POST.
    """

    history_size: int = DEFAULT_HISTORY_SIZE
    thresholds: AlertThresholds = dataclasses.field(default_factory=AlertThresholds)
    webhook_url: str | None = None
    webhook_timeout: float = 5.0

    def __post_init__(self) -> None:
        if self.history_size < 1:
            raise TwinConfigError(f"history_size must be >= 1, got {self.history_size}")
        if self.webhook_timeout <= 0:
            raise TwinConfigError(f"webhook_timeout must be positive, got {self.webhook_timeout}")

    @classmethod
    def from_env(cls, **overrides: Any) -> EngineConfig:
        """Create configuration from environment variables.

        Reads ``SHIPTWIN_HISTORY_SIZE`` and the threshold variables
        ``SHIPTWIN_TEMPERATURE_MIN``, ``SHIPTWIN_TEMPERATURE_MAX``,
        ``SHIPTWIN_HUMIDITY_MAX``, ``SHIPTWIN_VIBRATION_MAX``,
        ``SHIPTWIN_SHOCK_MAX``, ``SHIPTWIN_BATTERY_MIN`` and
        ``SHIPTWIN_BATTERY_CRITICAL``.  ``SHIPTWIN_WEBHOOK_URL`` and
        ``SHIPTWIN_WEBHOOK_TIMEOUT`` configure the webhook forwarder.
        Explicit keyword arguments override environment values.
        """
        env = os.environ

        _ENV_THRESHOLD_MAP = {
            "SHIPTWIN_TEMPERATURE_MIN": "temperature_min",
            "SHIPTWIN_TEMPERATURE_MAX": "temperature_max",
            "SHIPTWIN_HUMIDITY_MAX": "humidity_max",
            "SHIPTWIN_VIBRATION_MAX": "vibration_max",
            "SHIPTWIN_SHOCK_MAX": "shock_max",
            "SHIPTWIN_BATTERY_MIN": "battery_min",
            "SHIPTWIN_BATTERY_CRITICAL": "battery_critical",
        }
        config_kwargs: dict[str, Any] = {}

        if "thresholds" not in overrides:
            threshold_kwargs: dict[str, str] = {}
            for env_key, field_name in _ENV_THRESHOLD_MAP.items():
                val = env.get(env_key)
                if val is not None:
                    threshold_kwargs[field_name] = val
            if threshold_kwargs:
                try:
                    config_kwargs["thresholds"] = AlertThresholds.model_validate(threshold_kwargs)
                except ValidationError as exc:
                    raise TwinConfigError(f"Invalid threshold environment: {exc}") from exc

        size_env = env.get("SHIPTWIN_HISTORY_SIZE")
        if size_env is not None and "history_size" not in overrides:
            try:
                config_kwargs["history_size"] = int(size_env)
            except ValueError as exc:
                raise TwinConfigError(f"SHIPTWIN_HISTORY_SIZE is not an integer: {size_env!r}") from exc

        url_env = env.get("SHIPTWIN_WEBHOOK_URL")
        if url_env and "webhook_url" not in overrides:
            config_kwargs["webhook_url"] = url_env.strip()

        timeout_env = env.get("SHIPTWIN_WEBHOOK_TIMEOUT")
        if timeout_env is not None and "webhook_timeout" not in overrides:
            try:
                config_kwargs["webhook_timeout"] = float(timeout_env)
            except ValueError as exc:
                raise TwinConfigError(f"SHIPTWIN_WEBHOOK_TIMEOUT is not a number: {timeout_env!r}") from exc

        config_kwargs.update(overrides)

        return cls(**config_kwargs)
