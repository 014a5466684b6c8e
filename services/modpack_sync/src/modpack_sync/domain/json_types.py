from __future__ import annotations

from typing import TypeAlias

JsonScalar: TypeAlias = str | int | float | bool | None
JsonValue: TypeAlias = JsonScalar | dict[str, "JsonValue"] | list["JsonValue"]
JsonDict: TypeAlias = dict[str, JsonValue]
JsonList: TypeAlias = list[JsonValue]


def coerce_json_value(value: object) -> JsonValue:
    """Turn decoded JSON (or YAML) into ``JsonValue``; unknown scalars become strings."""
    if isinstance(value, dict):
        return {str(k): coerce_json_value(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [coerce_json_value(item) for item in value]
    if value is None or isinstance(value, (str, int, float, bool)):
        return value
    return str(value)


def as_json_dict(value: object) -> JsonDict:
    coerced = coerce_json_value(value) if isinstance(value, dict) else None
    return coerced if isinstance(coerced, dict) else {}


def as_json_list(value: object) -> JsonList:
    coerced = coerce_json_value(value) if isinstance(value, (list, tuple)) else None
    return coerced if isinstance(coerced, list) else []


def as_str_map(value: object) -> dict[str, str]:
    """A flat string mapping such as index ``hashes``, ``env`` or ``dependencies``."""
    return {k: str(v) for k, v in as_json_dict(value).items() if v is not None}


def as_str_list(value: object) -> list[str]:
    return [str(item) for item in as_json_list(value) if item is not None]


def as_optional_str(value: object) -> str | None:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def as_optional_int(value: object) -> int | None:
    if isinstance(value, bool) or not isinstance(value, int):
        return None
    return value
