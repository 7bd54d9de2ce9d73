"""Pre-built arrays of values that can be added to events."""

from __future__ import annotations

from datetime import datetime, timedelta
from typing import Any

from .encoding import (
    encode_binary,
    encode_bool,
    encode_duration,
    encode_float32,
    encode_float64,
    encode_hex,
    encode_int,
    encode_interface,
    encode_ip,
    encode_ip_prefix,
    encode_mac,
    encode_nil,
    encode_string,
    encode_time,
)
from .event import Event, LogObjectMarshaler, new_dict
from .settings import settings


def _marshal_object(obj: Any) -> str:
    sub = new_dict()
    obj.marshal_object(sub)
    return str(sub)


class Array:
    """An ordered list of encoded values; every adder returns the array."""

    __slots__ = ("_items",)

    def __init__(self) -> None:
        self._items: list[str] = []

    def __len__(self) -> int:
        return len(self._items)

    def __str__(self) -> str:
        return self.render()

    def _append(self, encoded: str) -> "Array":
        self._items.append(encoded)
        return self

    def marshal_array(self, array: "Array") -> None:
        """Copy this array's already encoded items into ``array``."""
        if array is not self:
            array._items.extend(self._items)

    def render(self) -> str:
        """Return the array as a JSON array literal."""
        return "[" + ",".join(self._items) + "]"

    def object(self, obj: Any) -> "Array":
        """Append a LogObjectMarshaler as a nested object."""
        return self._append(_marshal_object(obj))

    def text(self, value: str) -> "Array":
        return self._append(encode_string(value))

    def binary(self, value: bytes) -> "Array":
        return self._append(encode_binary(value))

    def hex(self, value: bytes) -> "Array":
        return self._append(encode_hex(value))

    def raw_json(self, value: bytes | str) -> "Array":
        """Append already encoded JSON; it is not checked."""
        if isinstance(value, (bytes, bytearray)):
            value = bytes(value).decode("utf-8")
        return self._append(value)

    def err(self, err: Any) -> "Array":
        """Append a serialised error; None becomes null."""
        marshalled = settings.error_marshal(err)
        if isinstance(marshalled, LogObjectMarshaler):
            return self._append(_marshal_object(marshalled))
        if marshalled is None:
            return self._append(encode_nil())
        if isinstance(marshalled, BaseException):
            return self._append(encode_string(str(marshalled)))
        if isinstance(marshalled, str):
            return self._append(encode_string(marshalled))
        return self._append(encode_interface(marshalled))

    def boolean(self, value: bool) -> "Array":
        return self._append(encode_bool(value))

    def integer(self, value: int) -> "Array":
        return self._append(encode_int(value))

    def float32(self, value: float) -> "Array":
        return self._append(encode_float32(value))

    def float64(self, value: float) -> "Array":
        return self._append(encode_float64(value))

    def time_value(self, value: datetime) -> "Array":
        return self._append(encode_time(value, settings.time_field_format))

    def dur(self, value: timedelta) -> "Array":
        return self._append(
            encode_duration(value, settings.duration_field_unit, settings.duration_field_integer)
        )

    def interface(self, value: Any) -> "Array":
        """Append ``value`` serialised by the interface marshaller."""
        if isinstance(value, LogObjectMarshaler):
            return self.object(value)
        return self._append(encode_interface(value))

    def ip_addr(self, value: Any) -> "Array":
        return self._append(encode_ip(value))

    def ip_prefix(self, value: Any) -> "Array":
        return self._append(encode_ip_prefix(value))

    def mac_addr(self, value: bytes) -> "Array":
        return self._append(encode_mac(value))

    def dict(self, sub: Event) -> "Array":
        """Append the fields of ``sub`` as a nested object."""
        return self._append(str(sub))


def arr() -> Array:
    """Create an empty array to add to an event."""
    return Array()