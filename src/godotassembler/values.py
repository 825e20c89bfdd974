"""Typed property values carried by scene nodes and resources."""

from __future__ import annotations

from dataclasses import dataclass, field
from numbers import Real
from typing import Any, Mapping, Union


@dataclass(frozen=True)
class NullValue:
    """The engine's ``null``."""


@dataclass(frozen=True)
class StringValue:
    value: str


@dataclass(frozen=True)
class NumberValue:
    value: int | float


@dataclass(frozen=True)
class BoolValue:
    value: bool


@dataclass(frozen=True)
class SequenceValue:
    items: tuple["Value", ...] = ()


@dataclass(frozen=True)
class MapValue:
    """String-keyed dictionary; ``entries`` keeps declaration order."""

    entries: tuple[tuple[str, "Value"], ...] = ()

    def get(self, key: str) -> "Value | None":
        for entry_key, entry_value in self.entries:
            if entry_key == key:
                return entry_value
        return None

    def keys(self) -> tuple[str, ...]:
        return tuple(key for key, _ in self.entries)


@dataclass(frozen=True)
class Vector2Value:
    x: float
    y: float


@dataclass(frozen=True)
class Vector3Value:
    x: float
    y: float
    z: float


@dataclass(frozen=True)
class ColorValue:
    r: float
    g: float
    b: float
    a: float = field(default=1.0)


Value = Union[
    NullValue,
    StringValue,
    NumberValue,
    BoolValue,
    SequenceValue,
    MapValue,
    Vector2Value,
    Vector3Value,
    ColorValue,
]

VALUE_TYPES = (
    NullValue,
    StringValue,
    NumberValue,
    BoolValue,
    SequenceValue,
    MapValue,
    Vector2Value,
    Vector3Value,
    ColorValue,
)


def _is_number(value: Any) -> bool:
    return isinstance(value, Real) and not isinstance(value, bool)


def _numeric_record(raw: Mapping[Any, Any], keys: tuple[str, ...]) -> bool:
    return set(raw.keys()) == set(keys) and all(_is_number(raw[key]) for key in keys)


def coerce_value(raw: Any) -> Value:
    """Convert plain Python data into a typed :data:`Value`.

    Mappings whose keys are exactly ``x``/``y``, ``x``/``y``/``z`` or
    ``r``/``g``/``b``/``a`` with numeric entries become vectors and colours;
    any other mapping becomes a :class:`MapValue` with stringified keys.

    Raises:
        TypeError: If ``raw`` (or something nested inside it) has no
            corresponding value type.
    """

    if isinstance(raw, VALUE_TYPES):
        return raw
    if raw is None:
        return NullValue()
    if isinstance(raw, bool):
        return BoolValue(raw)
    if _is_number(raw):
        return NumberValue(raw)
    if isinstance(raw, str):
        return StringValue(raw)
    if isinstance(raw, Mapping):
        if _numeric_record(raw, ("x", "y")):
            return Vector2Value(raw["x"], raw["y"])
        if _numeric_record(raw, ("x", "y", "z")):
            return Vector3Value(raw["x"], raw["y"], raw["z"])
        if _numeric_record(raw, ("r", "g", "b", "a")):
            return ColorValue(raw["r"], raw["g"], raw["b"], raw["a"])
        return MapValue(
            tuple((str(key), coerce_value(item)) for key, item in raw.items())
        )
    if isinstance(raw, (list, tuple)):
        return SequenceValue(tuple(coerce_value(item) for item in raw))
    raise TypeError(f"Unsupported property value of type {type(raw)!r}")


def to_plain(value: Value) -> Any:
    """Return the plain Python shape of ``value`` (inverse of :func:`coerce_value`)."""

    if isinstance(value, NullValue):
        return None
    if isinstance(value, (StringValue, NumberValue, BoolValue)):
        return value.value
    if isinstance(value, SequenceValue):
        return [to_plain(item) for item in value.items]
    if isinstance(value, MapValue):
        return {key: to_plain(item) for key, item in value.entries}
    if isinstance(value, Vector2Value):
        return {"x": value.x, "y": value.y}
    if isinstance(value, Vector3Value):
        return {"x": value.x, "y": value.y, "z": value.z}
    if isinstance(value, ColorValue):
        return {"r": value.r, "g": value.g, "b": value.b, "a": value.a}
    raise TypeError(f"Unknown value type {type(value)!r}")


def to_tagged(value: Value) -> dict[str, Any]:
    """Return an unambiguous JSON-safe encoding of ``value``."""

    if isinstance(value, NullValue):
        return {"kind": "null"}
    if isinstance(value, StringValue):
        return {"kind": "string", "value": value.value}
    if isinstance(value, NumberValue):
        return {"kind": "number", "value": value.value}
    if isinstance(value, BoolValue):
        return {"kind": "bool", "value": value.value}
    if isinstance(value, SequenceValue):
        return {"kind": "sequence", "items": [to_tagged(item) for item in value.items]}
    if isinstance(value, MapValue):
        return {
            "kind": "map",
            "entries": [[key, to_tagged(item)] for key, item in value.entries],
        }
    if isinstance(value, Vector2Value):
        return {"kind": "vector2", "x": value.x, "y": value.y}
    if isinstance(value, Vector3Value):
        return {"kind": "vector3", "x": value.x, "y": value.y, "z": value.z}
    if isinstance(value, ColorValue):
        return {"kind": "color", "r": value.r, "g": value.g, "b": value.b, "a": value.a}
    raise TypeError(f"Unknown value type {type(value)!r}")


def from_tagged(payload: Mapping[str, Any]) -> Value:
    """Rebuild a value from :func:`to_tagged` output.

    Raises:
        ValueError: If the payload is not a recognised tagged value.
    """

    if not isinstance(payload, Mapping):
        raise ValueError("Tagged values must be objects")

    kind = payload.get("kind")
    try:
        if kind == "null":
            return NullValue()
        if kind == "string":
            return StringValue(str(payload["value"]))
        if kind == "number":
            number = payload["value"]
            if not _is_number(number):
                raise ValueError("Number values must be numeric")
            return NumberValue(number)
        if kind == "bool":
            return BoolValue(bool(payload["value"]))
        if kind == "sequence":
            return SequenceValue(tuple(from_tagged(item) for item in payload["items"]))
        if kind == "map":
            return MapValue(
                tuple((str(key), from_tagged(item)) for key, item in payload["entries"])
            )
        if kind == "vector2":
            return Vector2Value(payload["x"], payload["y"])
        if kind == "vector3":
            return Vector3Value(payload["x"], payload["y"], payload["z"])
        if kind == "color":
            return ColorValue(payload["r"], payload["g"], payload["b"], payload["a"])
    except (KeyError, TypeError) as exc:
        raise ValueError(f"Malformed tagged value of kind {kind!r}") from exc
    raise ValueError(f"Unknown tagged value kind {kind!r}")


__all__ = [
    "BoolValue",
    "ColorValue",
    "MapValue",
    "NullValue",
    "NumberValue",
    "SequenceValue",
    "StringValue",
    "VALUE_TYPES",
    "Value",
    "Vector2Value",
    "Vector3Value",
    "coerce_value",
    "from_tagged",
    "to_plain",
    "to_tagged",
]
