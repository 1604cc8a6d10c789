"""Payload of the tasks reporting orphan resources."""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from inventory_odg.errors import PayloadError


class Payload(BaseModel):
    """Task payload as submitted by the scheduler.

    ``query`` is the SQL query fetching orphan resources, ``component_name``
    and ``component_version`` identify the OCM component the findings are
    associated with. Numeric scalars such as ``component_version: 1.2`` are
    read as strings.
    """

    model_config = ConfigDict(frozen=True, coerce_numbers_to_str=True)

    query: str = Field(default="")
    component_name: str = Field(default="")
    component_version: str = Field(default="")

    def validate_required(self) -> "Payload":
        if not self.query.strip():
            raise PayloadError("no query specified")
        if not self.component_name.strip():
            raise PayloadError("no component name specified")
        return self


def decode_payload(data: bytes | str | Mapping[str, Any] | None) -> Payload:
    """Decode a YAML or JSON payload and validate the required fields."""
    if data is None or (isinstance(data, (bytes, str)) and not data.strip()):
        raise PayloadError("no payload specified")

    if isinstance(data, Mapping):
        raw: Any = dict(data)
    else:
        try:
            raw = yaml.safe_load(data)
        except yaml.YAMLError as exc:
            raise PayloadError(f"cannot decode payload: {exc}") from exc

    if not isinstance(raw, dict):
        raise PayloadError("cannot decode payload: expected a mapping")

    try:
        payload = Payload.model_validate(raw)
    except ValidationError as exc:
        raise PayloadError(f"invalid payload: {exc}") from exc
    return payload.validate_required()
