"""Base model and timestamp helpers shared by every shiptwin model.

Every model inherits from :class:`TwinBaseModel` which provides:

* ``alias_generator=to_camel`` so the camelCase keys used on the wire
  (``shipmentId``, ``allowedZones``) map to snake_case fields, and
  ``model_dump(by_alias=True)`` renders them back.
* ``allow_inf_nan=False`` so NaN/inf readings are rejected at the
  boundary instead of poisoning threshold comparisons.
"""

from __future__ import annotations

from datetime import UTC, datetime
from typing import Annotated, Any, TypeVar

from pydantic import AfterValidator, BaseModel, ConfigDict, ValidationError
from pydantic.alias_generators import to_camel

from shiptwin.exceptions import TwinValidationError

_M = TypeVar("_M", bound=BaseModel)

# Threshold to distinguish seconds from milliseconds.
_MS_THRESHOLD = 1_000_000_000_000


def utcnow() -> datetime:
    return datetime.now(UTC)


def ensure_utc(value: datetime) -> datetime:
    """Attach UTC to naive datetimes; convert aware ones to UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)


def parse_epoch(value: Any) -> Any:
    """Accept epoch seconds or milliseconds in addition to ISO-8601 strings."""
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return value
    ts = float(value)
    if ts >= _MS_THRESHOLD:
        ts /= 1000.0
    return datetime.fromtimestamp(ts, tz=UTC)


UtcDatetime = Annotated[datetime, AfterValidator(ensure_utc)]
"""Annotated datetime that is always timezone-aware UTC."""


class TwinBaseModel(BaseModel):
    """Base for shiptwin models."""

    model_config = ConfigDict(
        extra="ignore",
        populate_by_name=True,
        alias_generator=to_camel,
        allow_inf_nan=False,
    )

    def to_json_dict(self) -> dict[str, Any]:
        """Render the camelCase JSON shape used by the HTTP layer."""
        return self.model_dump(by_alias=True, mode="json", exclude_none=True)


def validate_as(model_cls: type[_M], data: Any, what: str) -> _M:
    """Validate *data* into *model_cls*, raising :class:`TwinValidationError`.

    Model instances are dumped and re-validated: ``model_construct()`` can
    produce instances that never passed the field constraints.
    """
    if isinstance(data, BaseModel):
        data = data.model_dump()
    try:
        return model_cls.model_validate(data)
    except ValidationError as exc:
        details = "; ".join(
            f"{'.'.join(str(part) for part in err['loc']) or '<root>'}: {err['msg']}" for err in exc.errors()
        )
        raise TwinValidationError(
            f"Invalid {what}: {details}",
            errors=[dict(err) for err in exc.errors(include_url=False, include_context=False)],
        ) from exc
