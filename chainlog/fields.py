"""Encoding of loosely typed fields given as mappings or key/value lists."""

from __future__ import annotations

import ipaddress
from collections.abc import Mapping
from datetime import datetime, timedelta
from typing import Any, Sequence

from .encoding import (
    encode_binary,
    encode_bool,
    encode_bools,
    encode_duration,
    encode_durations,
    encode_float64,
    encode_floats64,
    encode_int,
    encode_interface,
    encode_ints,
    encode_ip,
    encode_ip_prefix,
    encode_key,
    encode_nil,
    encode_string,
    encode_strings,
    encode_time,
    encode_times,
)
from .event import LogObjectMarshaler, new_dict
from .settings import settings

_IP_TYPES = (ipaddress.IPv4Address, ipaddress.IPv6Address)
_NETWORK_TYPES = (ipaddress.IPv4Network, ipaddress.IPv6Network)


def _marshal_object(obj: Any) -> str:
    sub = new_dict()
    obj.marshal_object(sub)
    return str(sub)


def _encode_error(err: Any) -> str:
    marshalled = settings.error_marshal(err)
    if isinstance(marshalled, LogObjectMarshaler):
        return _marshal_object(marshalled)
    if marshalled is None:
        return encode_nil()
    if isinstance(marshalled, BaseException):
        return encode_string(str(marshalled))
    if isinstance(marshalled, str):
        return encode_string(marshalled)
    return encode_interface(marshalled)


def _encode_stack(err: Any) -> str | None:
    stack = settings.error_stack_marshaler(err)  # type: ignore[misc]
    if stack is None:
        return None
    if isinstance(stack, BaseException):
        return encode_string(str(stack))
    if isinstance(stack, str):
        return encode_string(stack)
    return encode_interface(stack)


def _all(values: Sequence[Any], kind: type | tuple[type, ...]) -> bool:
    return bool(values) and all(isinstance(v, kind) for v in values)


def _encode_sequence(values: Sequence[Any]) -> str:
    if _all(values, BaseException):
        return "[" + ",".join(_encode_error(v) for v in values) + "]"
    if _all(values, str):
        return encode_strings(values)
    if _all(values, bool):
        return encode_bools(values)
    if _all(values, int) and not any(isinstance(v, bool) for v in values):
        return encode_ints(values)
    if _all(values, float):
        return encode_floats64(values)
    if _all(values, datetime):
        return encode_times(values, settings.time_field_format)
    if _all(values, timedelta):
        return encode_durations(
            values, settings.duration_field_unit, settings.duration_field_integer
        )
    return encode_interface(list(values))


def _encode_value(value: Any) -> str:
    if isinstance(value, LogObjectMarshaler):
        return _marshal_object(value)
    if value is None:
        return encode_nil()
    if isinstance(value, str):
        return encode_string(value)
    if isinstance(value, (bytes, bytearray)):
        return encode_binary(value)
    if isinstance(value, bool):
        return encode_bool(value)
    if isinstance(value, int):
        return encode_int(value)
    if isinstance(value, float):
        return encode_float64(value)
    if isinstance(value, datetime):
        return encode_time(value, settings.time_field_format)
    if isinstance(value, timedelta):
        return encode_duration(
            value, settings.duration_field_unit, settings.duration_field_integer
        )
    if isinstance(value, _IP_TYPES):
        return encode_ip(value)
    if isinstance(value, _NETWORK_TYPES):
        return encode_ip_prefix(value)
    if isinstance(value, (list, tuple)):
        return _encode_sequence(value)
    return encode_interface(value)


def encode_field_list(pairs: Sequence[Any], stack: bool) -> list[str]:
    """Encode alternating keys and values as ``"key":value`` parts.

    Pairs whose key is not a string are skipped.  With ``stack`` set and an
    error stack marshaller configured, an error value also adds a stack field.
    """
    parts: list[str] = []
    for key, value in zip(pairs[::2], pairs[1::2]):
        if not isinstance(key, str):
            continue
        if isinstance(value, BaseException):
            parts.append(encode_key(key) + _encode_error(value))
            if stack and settings.error_stack_marshaler is not None:
                encoded = _encode_stack(value)
                if encoded is not None:
                    parts.append(encode_key(settings.error_stack_field_name) + encoded)
            continue
        parts.append(encode_key(key) + _encode_value(value))
    return parts


def append_fields(fields: Any, stack: bool) -> list[str]:
    """Encode fields given as a mapping (in key order) or a flat sequence.

    A trailing key without a value is ignored; other inputs give no fields.
    """
    if isinstance(fields, Mapping):
        flat: list[Any] = []
        for key in sorted(fields):
            flat.extend((key, fields[key]))
        return encode_field_list(flat, stack)
    if isinstance(fields, (list, tuple)):
        items = list(fields)
        if len(items) % 2:
            items.pop()
        return encode_field_list(items, stack)
    return []