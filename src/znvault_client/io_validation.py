"""Pydantic-based validation helpers for inbound IO payloads."""

from __future__ import annotations

from pydantic import TypeAdapter, ValidationError


class IncomingDataError(ValueError):
    """Raised when inbound data fails validation."""


def validate_json_as[SchemaT](schema: type[SchemaT], payload: str | bytes | bytearray) -> SchemaT:
    try:
        return TypeAdapter(schema).validate_json(payload)
    except ValidationError as exc:
        message = f"Invalid JSON payload for {schema}."
        raise IncomingDataError(message) from exc


def dump_json_payload(payload: object) -> object:
    """Return a JSON-ready representation of a request body.

    Pydantic models are dumped by alias with unset optionals omitted; other
    values are passed through `TypeAdapter` so dataclasses and dates serialise too.
    """
    if payload is None:
        return None
    return TypeAdapter(type(payload)).dump_python(
        payload, mode="json", by_alias=True, exclude_none=True
    )
