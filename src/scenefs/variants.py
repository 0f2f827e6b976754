"""Typed property values carried by scene instances."""

from __future__ import annotations

import base64
import binascii
import math
from typing import Any, Dict, Mapping, Union

Variant = Union[str, bool, int, float, bytes, Mapping[str, "Variant"]]

STRING = "String"
BOOL = "Bool"
INT64 = "Int64"
FLOAT64 = "Float64"
BINARY_STRING = "BinaryString"
STRUCT = "Struct"

VARIANT_KINDS = (STRING, BOOL, INT64, FLOAT64, BINARY_STRING, STRUCT)


def variant_kind(value: Any) -> str:
    """Return the kind tag for ``value``.

    Raises:
        TypeError: If ``value`` is not one of the supported property types.
    """

    # bool is checked before int because it is an int subclass.
    if isinstance(value, bool):
        return BOOL
    if isinstance(value, str):
        return STRING
    if isinstance(value, int):
        return INT64
    if isinstance(value, float):
        return FLOAT64
    if isinstance(value, (bytes, bytearray)):
        return BINARY_STRING
    if isinstance(value, Mapping):
        return STRUCT
    raise TypeError(f"Unsupported property value of type {type(value)!r}")


def normalise_properties(properties: Mapping[str, Any]) -> Dict[str, Variant]:
    """Return a validated copy of ``properties`` with nested structs copied."""

    if not isinstance(properties, Mapping):
        raise TypeError("properties must be a mapping")

    normalised: Dict[str, Variant] = {}
    for name, value in properties.items():
        if not isinstance(name, str) or not name:
            raise ValueError("Property names must be non-empty strings")
        kind = variant_kind(value)
        if kind == STRUCT:
            normalised[name] = normalise_properties(value)
        elif kind == BINARY_STRING:
            normalised[name] = bytes(value)
        else:
            normalised[name] = value
    return normalised


def variant_to_payload(value: Variant) -> Dict[str, Any]:
    """Return the JSON-friendly tagged form of ``value``."""

    kind = variant_kind(value)
    if kind == BINARY_STRING:
        return {kind: base64.b64encode(bytes(value)).decode("ascii")}
    if kind == STRUCT:
        return {kind: properties_to_payload(value)}  # type: ignore[arg-type]
    if kind == FLOAT64 and not math.isfinite(value):  # type: ignore[arg-type]
        return {kind: repr(value)}
    return {kind: value}


def variant_from_payload(payload: Any) -> Variant:
    """Rebuild a value from its tagged payload form.

    Raises:
        ValueError: If the payload is not a single-key object with a known tag
            and a value matching that tag.
    """

    if not isinstance(payload, Mapping) or len(payload) != 1:
        raise ValueError("Property payload must be an object with exactly one kind")

    ((kind, raw),) = payload.items()
    if kind == STRING and isinstance(raw, str):
        return raw
    if kind == BOOL and isinstance(raw, bool):
        return raw
    if kind == INT64 and isinstance(raw, int) and not isinstance(raw, bool):
        return raw
    if kind == FLOAT64:
        if isinstance(raw, (int, float)) and not isinstance(raw, bool):
            return float(raw)
        if isinstance(raw, str):
            try:
                return float(raw)
            except ValueError as exc:
                raise ValueError(f"Invalid Float64 payload: {raw!r}") from exc
    if kind == BINARY_STRING and isinstance(raw, str):
        try:
            return base64.b64decode(raw.encode("ascii"), validate=True)
        except (binascii.Error, UnicodeEncodeError) as exc:
            raise ValueError("BinaryString payload must be base64 encoded") from exc
    if kind == STRUCT and isinstance(raw, Mapping):
        return properties_from_payload(raw)

    if kind not in VARIANT_KINDS:
        raise ValueError(f"Unknown property kind '{kind}'")
    raise ValueError(f"Invalid value for property kind '{kind}': {raw!r}")


def properties_to_payload(properties: Mapping[str, Variant]) -> Dict[str, Any]:
    return {name: variant_to_payload(properties[name]) for name in sorted(properties)}


def properties_from_payload(payload: Mapping[str, Any]) -> Dict[str, Variant]:
    if not isinstance(payload, Mapping):
        raise ValueError("Properties payload must be an object")
    return {str(name): variant_from_payload(value) for name, value in payload.items()}


__all__ = [
    "BINARY_STRING",
    "BOOL",
    "FLOAT64",
    "INT64",
    "STRING",
    "STRUCT",
    "VARIANT_KINDS",
    "Variant",
    "normalise_properties",
    "properties_from_payload",
    "properties_to_payload",
    "variant_from_payload",
    "variant_kind",
    "variant_to_payload",
]
