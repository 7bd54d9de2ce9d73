"""JSON fragment encoders for log field keys and values."""

from __future__ import annotations

import base64
import ipaddress
import math
import struct
from datetime import datetime, timedelta, timezone
from decimal import Decimal
from typing import Any, Iterable

from .settings import (
    TIME_FORMAT_RFC3339,
    TIME_FORMAT_UNIX,
    TIME_FORMAT_UNIX_MICRO,
    TIME_FORMAT_UNIX_MS,
    TIME_FORMAT_UNIX_NANO,
    settings,
)

_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)
_NS_PER_SECOND = 10**9

_ESCAPE_TABLE: dict[int, str] = {code: f"\\u{code:04x}" for code in range(0x20)}
_ESCAPE_TABLE.update(
    {
        ord('"'): '\\"',
        ord("\\"): "\\\\",
        ord("\b"): "\\b",
        ord("\f"): "\\f",
        ord("\n"): "\\n",
        ord("\r"): "\\r",
        ord("\t"): "\\t",
    }
)
# Lone surrogates (including undecodable bytes) become the replacement character.
_ESCAPE_TABLE.update({code: "\\ufffd" for code in range(0xD800, 0xE000)})


def encode_key(key: str) -> str:
    """Encode an object key, including the trailing colon."""
    return encode_string(key) + ":"


def encode_string(value: str) -> str:
    """Encode a string as a JSON string literal."""
    return '"' + value.translate(_ESCAPE_TABLE) + '"'


def encode_strings(values: Iterable[str]) -> str:
    return "[" + ",".join(encode_string(v) for v in values) + "]"


def encode_binary(value: bytes) -> str:
    """Encode bytes as a JSON string; invalid UTF-8 bytes become U+FFFD."""
    return encode_string(bytes(value).decode("utf-8", "surrogateescape"))


def encode_hex(value: bytes) -> str:
    return '"' + bytes(value).hex() + '"'


def encode_bool(value: bool) -> str:
    """Encode a truth value as a JSON literal."""
    return str(bool(value)).lower()


def encode_bools(values: Iterable[bool]) -> str:
    return "[" + ",".join(encode_bool(v) for v in values) + "]"


def encode_int(value: int) -> str:
    return str(int(value))


def encode_ints(values: Iterable[int]) -> str:
    return "[" + ",".join(encode_int(v) for v in values) + "]"


def _nonfinite(value: float) -> str | None:
    if math.isnan(value):
        return '"NaN"'
    if math.isinf(value):
        return '"+Inf"' if value > 0 else '"-Inf"'
    return None


def _render_float(digits: str, value: float) -> str:
    """Render the shortest digit string ``digits`` of ``value`` as a JSON number."""
    magnitude = abs(value)
    if magnitude != 0 and (magnitude < 1e-6 or magnitude >= 1e21):
        mantissa, _, exponent = f"{Decimal(digits):e}".partition("e")
        if "." in mantissa:
            mantissa = mantissa.rstrip("0").rstrip(".")
        exp = int(exponent)
        if exp < 0:
            return f"{mantissa}e-{abs(exp):02d}".replace("e-0", "e-")
        return f"{mantissa}e+{exp:02d}"
    text = format(Decimal(digits), "f")
    if "." in text:
        text = text.rstrip("0").rstrip(".")
    return text


def _to_float32(value: float) -> float:
    try:
        return struct.unpack("<f", struct.pack("<f", value))[0]
    except OverflowError:
        return math.copysign(math.inf, value)


def encode_float32(value: float) -> str:
    """Encode a number at single precision, using its shortest decimal form."""
    single = _to_float32(float(value))
    special = _nonfinite(single)
    if special is not None:
        return special
    digits = repr(single)
    for precision in range(1, 10):
        candidate = f"{single:.{precision}g}"
        if _to_float32(float(candidate)) == single:
            digits = candidate
            break
    return _render_float(digits, single)


def encode_floats32(values: Iterable[float]) -> str:
    return "[" + ",".join(encode_float32(v) for v in values) + "]"


def encode_float64(value: float) -> str:
    value = float(value)
    special = _nonfinite(value)
    if special is not None:
        return special
    return _render_float(repr(value), value)


def encode_floats64(values: Iterable[float]) -> str:
    return "[" + ",".join(encode_float64(v) for v in values) + "]"


def _aware(value: datetime) -> datetime:
    # Naive datetimes are taken to be UTC.
    return value if value.tzinfo is not None else value.replace(tzinfo=timezone.utc)


def _unix_nanos(value: datetime) -> int:
    delta = _aware(value) - _EPOCH
    return (delta.days * 86400 + delta.seconds) * _NS_PER_SECOND + delta.microseconds * 1000


def _rfc3339(value: datetime) -> str:
    value = _aware(value)
    offset = value.utcoffset() or timedelta(0)
    if offset == timedelta(0):
        zone = "Z"
    else:
        minutes = int(offset.total_seconds()) // 60
        sign = "+" if minutes >= 0 else "-"
        hours, minutes = divmod(abs(minutes), 60)
        zone = f"{sign}{hours:02d}:{minutes:02d}"
    return (
        f"{value.year:04d}-{value.month:02d}-{value.day:02d}"
        f"T{value.hour:02d}:{value.minute:02d}:{value.second:02d}{zone}"
    )


def encode_time(value: datetime, fmt: str) -> str:
    """Encode a datetime as a UNIX integer or as a formatted string."""
    if fmt == TIME_FORMAT_UNIX:
        return str(_unix_nanos(value) // _NS_PER_SECOND)
    if fmt == TIME_FORMAT_UNIX_MS:
        return str(_unix_nanos(value) // 10**6)
    if fmt == TIME_FORMAT_UNIX_MICRO:
        return str(_unix_nanos(value) // 10**3)
    if fmt == TIME_FORMAT_UNIX_NANO:
        return str(_unix_nanos(value))
    if fmt == TIME_FORMAT_RFC3339:
        return encode_string(_rfc3339(value))
    return encode_string(value.strftime(fmt))


def encode_times(values: Iterable[datetime], fmt: str) -> str:
    return "[" + ",".join(encode_time(v, fmt) for v in values) + "]"


def _duration_nanos(value: timedelta) -> int:
    return (value.days * 86400 + value.seconds) * _NS_PER_SECOND + value.microseconds * 1000


def encode_duration(value: timedelta, unit: timedelta, as_int: bool) -> str:
    """Encode a duration expressed in multiples of ``unit``."""
    nanos = _duration_nanos(value)
    unit_nanos = _duration_nanos(unit)
    if as_int:
        quotient = abs(nanos) // abs(unit_nanos)
        negative = (nanos < 0) != (unit_nanos < 0)
        return str(-quotient if negative else quotient)
    return encode_float64(nanos / unit_nanos)


def encode_durations(values: Iterable[timedelta], unit: timedelta, as_int: bool) -> str:
    return "[" + ",".join(encode_duration(v, unit, as_int) for v in values) + "]"


def encode_interface(value: Any) -> str:
    """Encode an arbitrary value with the configured interface marshaller."""
    try:
        return settings.interface_marshal(value)
    except Exception as exc:  # a failing marshaller must not break logging
        return encode_string(f"marshaling error: {exc}")


def encode_nil() -> str:
    return "null"


def encode_ip(value: Any) -> str:
    """Encode an IPv4 or IPv6 address (address object, text or packed bytes)."""
    if not isinstance(value, (ipaddress.IPv4Address, ipaddress.IPv6Address)):
        value = ipaddress.ip_address(value)
    return encode_string(str(value))


def encode_ip_prefix(value: Any) -> str:
    """Encode an IPv4 or IPv6 network prefix as ``address/length``."""
    if not isinstance(value, (ipaddress.IPv4Network, ipaddress.IPv6Network)):
        value = ipaddress.ip_network(value, strict=False)
    return encode_string(str(value))


def encode_mac(value: bytes) -> str:
    """Encode a hardware address as colon separated lowercase hex."""
    return encode_string(":".join(f"{b:02x}" for b in bytes(value)))


def encode_cbor(data: bytes) -> str:
    """Embed CBOR bytes as a base64 data URL string."""
    encoded = base64.b64encode(bytes(data)).decode("ascii")
    return '"data:application/cbor;base64,' + encoded + '"'