"""Custom exception hierarchy for shiptwin."""

from __future__ import annotations

from typing import Any


class TwinError(Exception):
    """Base exception for all shiptwin errors."""


class TwinConfigError(TwinError):
    """Invalid or missing configuration."""


class TwinValidationError(TwinError, ValueError):
    """Structurally or numerically invalid input.

    The twin the input was aimed at is left unmodified.  ``errors`` holds
    the pydantic error list when the failure came from model validation.
    """

    def __init__(
        self,
        message: str,
        *,
        errors: list[dict[str, Any]] | None = None,
    ) -> None:
        self.errors = errors or []
        super().__init__(message)


class TwinNotFoundError(TwinError, LookupError):
    """Operation references an unknown shipment or alert."""

    def __init__(
        self,
        message: str,
        *,
        shipment_id: str = "",
        alert_id: str | None = None,
    ) -> None:
        self.shipment_id = shipment_id
        self.alert_id = alert_id
        super().__init__(message)
