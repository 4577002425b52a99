"""Conversion between Python values and Firestore REST typed values.

Firestore's REST API wraps every value in a one-key object naming its type,
e.g. {"stringValue": "x"} or {"mapValue": {"fields": {...}}}.
"""

import re
from datetime import datetime, timezone
from enum import Enum

_NANOS = re.compile(r"(\.\d{6})\d+")


def encode_value(value) -> dict:
    if value is None:
        return {"nullValue": None}
    if isinstance(value, Enum):
        value = value.value
    # bool before int: bool is an int subclass
    if isinstance(value, bool):
        return {"booleanValue": value}
    if isinstance(value, int):
        return {"integerValue": str(value)}
    if isinstance(value, float):
        return {"doubleValue": value}
    if isinstance(value, str):
        return {"stringValue": value}
    if isinstance(value, datetime):
        if value.tzinfo is None:
            value = value.replace(tzinfo=timezone.utc)
        return {"timestampValue": value.astimezone(timezone.utc).isoformat().replace("+00:00", "Z")}
    if isinstance(value, dict):
        return {"mapValue": {"fields": encode_fields(value)}}
    if isinstance(value, (list, tuple)):
        return {"arrayValue": {"values": [encode_value(v) for v in value]}}
    raise TypeError(f"Cannot encode value of type {type(value).__name__} for Firestore.")


def encode_fields(data: dict) -> dict:
    return {key: encode_value(value) for key, value in data.items()}


def parse_timestamp(raw: str) -> datetime:
    """Parse an RFC 3339 timestamp; nanoseconds are truncated to microseconds."""
    raw = _NANOS.sub(r"\1", raw).replace("Z", "+00:00")
    return datetime.fromisoformat(raw)


def decode_value(value: dict):
    if "nullValue" in value:
        return None
    if "booleanValue" in value:
        return value["booleanValue"]
    if "integerValue" in value:
        return int(value["integerValue"])
    if "doubleValue" in value:
        return float(value["doubleValue"])
    if "stringValue" in value:
        return value["stringValue"]
    if "timestampValue" in value:
        return parse_timestamp(value["timestampValue"])
    if "mapValue" in value:
        return decode_fields(value["mapValue"].get("fields") or {})
    if "arrayValue" in value:
        return [decode_value(v) for v in value["arrayValue"].get("values") or []]
    if "referenceValue" in value:
        return value["referenceValue"]
    raise ValueError(f"Unsupported Firestore value: {list(value.keys())}")


def decode_fields(fields: dict) -> dict:
    return {key: decode_value(value) for key, value in fields.items()}
