"""Human-friendly, optionally colourised rendering of JSON log events."""

from __future__ import annotations

import io
import json
import os
import re
import sys
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone, tzinfo
from typing import Any, Callable, Optional

from .settings import (
    TIME_FORMAT_RFC3339,
    TIME_FORMAT_UNIX,
    TIME_FORMAT_UNIX_MICRO,
    TIME_FORMAT_UNIX_MS,
    TIME_FORMAT_UNIX_NANO,
    parse_level,
    settings,
)

Formatter = Callable[[Any], str]

# strftime-style formats; "%-X" directives are rendered without zero padding.
TIME_FORMAT_KITCHEN = "%-I:%M%p"
TIME_FORMAT_RFC1123 = "%a, %d %b %Y %H:%M:%S %Z"
CONSOLE_DEFAULT_TIME_FORMAT = TIME_FORMAT_KITCHEN

_COLOR_RED = 31
_COLOR_CYAN = 36
_COLOR_BOLD = 1
_COLOR_DARK_GRAY = 90

_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)
_UNIX_FORMATS = (TIME_FORMAT_UNIX, TIME_FORMAT_UNIX_MS, TIME_FORMAT_UNIX_MICRO, TIME_FORMAT_UNIX_NANO)
_UNPADDED = re.compile(r"%-([A-Za-z])")
_RFC3339 = re.compile(
    r"^(\d{4}-\d{2}-\d{2}T\d{2}:\d{2}:\d{2})(?:\.(\d+))?(Z|z|[+-]\d{2}:\d{2})$"
)
_QUOTE_ESCAPES = {
    '"': '\\"',
    "\\": "\\\\",
    "\a": "\\a",
    "\b": "\\b",
    "\f": "\\f",
    "\n": "\\n",
    "\r": "\\r",
    "\t": "\\t",
    "\v": "\\v",
}


class _JsonNumber(str):
    """A JSON number kept as its literal text."""


def _reject_constant(name: str) -> Any:
    raise ValueError(f"invalid literal {name}")


def _plain(value: Any) -> Any:
    if isinstance(value, _JsonNumber):
        try:
            return int(value)
        except ValueError:
            return float(value)
    if isinstance(value, dict):
        return {key: _plain(item) for key, item in value.items()}
    if isinstance(value, list):
        return [_plain(item) for item in value]
    return value


def _to_text(value: Any) -> str:
    if value is None:
        return "<nil>"
    if isinstance(value, str):
        return str(value)
    if isinstance(value, bool):
        return "true" if value else "false"
    try:
        return settings.interface_marshal(_plain(value))
    except Exception:
        return repr(value)


def _is_text(value: Any) -> bool:
    return isinstance(value, str) and not isinstance(value, _JsonNumber)


def needs_quote(text: str) -> bool:
    """Report whether ``text`` must be quoted when printed as a field value."""
    return any(
        b < 0x20 or b > 0x7E or b in b' \\"'
        for b in text.encode("utf-8", "surrogatepass")
    )


def _quote(text: str) -> str:
    out = ['"']
    for ch in text:
        if ch in _QUOTE_ESCAPES:
            out.append(_QUOTE_ESCAPES[ch])
        elif ch.isprintable():
            out.append(ch)
        else:
            code = ord(ch)
            if code < 0x80:
                out.append(f"\\x{code:02x}")
            elif code < 0x10000:
                out.append(f"\\u{code:04x}")
            else:
                out.append(f"\\U{code:08x}")
    out.append('"')
    return "".join(out)


def colorize(value: Any, color: int, disabled: bool) -> str:
    """Wrap ``value`` in an ANSI colour code unless colours are disabled."""
    if os.environ.get("NO_COLOR") or color == 0:
        disabled = True
    if disabled:
        return _to_text(value)
    return f"\x1b[{color}m{_to_text(value)}\x1b[0m"


def _format_time(value: datetime, fmt: str) -> str:
    if fmt == TIME_FORMAT_RFC3339:
        text = value.isoformat(timespec="seconds")
        return text[:-6] + "Z" if text.endswith("+00:00") else text
    fmt = _UNPADDED.sub(
        lambda m: value.strftime("%" + m.group(1)).lstrip("0") or "0", fmt
    )
    return value.strftime(fmt)


def _parse_time(text: str, fmt: str, location: Optional[tzinfo]) -> datetime:
    if fmt == TIME_FORMAT_RFC3339:
        match = _RFC3339.match(text)
        if match is None:
            raise ValueError(f"not an RFC 3339 time: {text!r}")
        base, fraction, zone = match.groups()
        if zone in ("Z", "z"):
            zone = "+00:00"
        micros = "." + (fraction + "000000")[:6] if fraction else ""
        parsed = datetime.fromisoformat(base + micros + zone)
    elif fmt in _UNIX_FORMATS:
        raise ValueError("numeric time format")
    else:
        parsed = datetime.strptime(text, fmt)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=location) if location is not None else parsed.astimezone()
    return parsed


def _from_unix(number: int) -> datetime:
    fmt = settings.time_field_format
    if fmt == TIME_FORMAT_UNIX_NANO:
        delta = timedelta(microseconds=number // 1000)
    elif fmt == TIME_FORMAT_UNIX_MICRO:
        delta = timedelta(microseconds=number)
    elif fmt == TIME_FORMAT_UNIX_MS:
        delta = timedelta(milliseconds=number)
    else:
        delta = timedelta(seconds=number)
    return _EPOCH + delta


def _localize(value: datetime, location: Optional[tzinfo]) -> datetime:
    return value.astimezone(location) if location is not None else value.astimezone()


def _default_parts_order() -> list[str]:
    return [
        settings.timestamp_field_name,
        settings.level_field_name,
        settings.caller_field_name,
        settings.message_field_name,
    ]


def _default_format_timestamp(
    time_format: str, location: Optional[tzinfo], no_color: bool
) -> Formatter:
    time_format = time_format or CONSOLE_DEFAULT_TIME_FORMAT

    def format_timestamp(value: Any) -> str:
        text = "<nil>"
        if isinstance(value, _JsonNumber):
            try:
                number = int(value)
            except ValueError:
                text = str(value)
            else:
                text = _format_time(_localize(_from_unix(number), location), time_format)
        elif isinstance(value, str):
            try:
                parsed = _parse_time(value, settings.time_field_format, location)
            except ValueError:
                text = value
            else:
                text = _format_time(_localize(parsed, location), time_format)
        return colorize(text, _COLOR_DARK_GRAY, no_color)

    return format_timestamp


def _default_format_level(no_color: bool) -> Formatter:
    def format_level(value: Any) -> str:
        if _is_text(value):
            try:
                level = parse_level(value)
            except ValueError:
                level = None
            short = settings.formatted_levels.get(level) if level is not None else None
            if short is not None:
                return colorize(short, settings.level_colors.get(level, 0), no_color)
            return value.upper()[:3]
        if value is None:
            return "???"
        return _to_text(value).upper()[:3]

    return format_level


def _default_format_caller(no_color: bool) -> Formatter:
    def format_caller(value: Any) -> str:
        caller = value if _is_text(value) else ""
        if caller:
            try:
                caller = os.path.relpath(caller, os.getcwd())
            except (ValueError, OSError):
                pass
            caller = colorize(caller, _COLOR_BOLD, no_color) + colorize(" >", _COLOR_CYAN, no_color)
        return caller

    return format_caller


def _default_format_message(no_color: bool, level: Any) -> Formatter:
    def format_message(value: Any) -> str:
        if value is None or value == "":
            return ""
        bold_levels = (
            settings.level_info_value,
            settings.level_warn_value,
            settings.level_error_value,
            settings.level_fatal_value,
            settings.level_panic_value,
        )
        if _is_text(level) and level in bold_levels:
            return colorize(value, _COLOR_BOLD, no_color)
        return _to_text(value)

    return format_message


def _default_format_field_name(no_color: bool) -> Formatter:
    return lambda value: colorize(f"{_to_text(value)}=", _COLOR_CYAN, no_color)


def _default_format_field_value(value: Any) -> str:
    return _to_text(value)


def _default_format_err_field_value(no_color: bool) -> Formatter:
    return lambda value: colorize(
        colorize(value, _COLOR_BOLD, no_color), _COLOR_RED, no_color
    )


def _emit(out: Any, text: str) -> None:
    if isinstance(out, (io.RawIOBase, io.BufferedIOBase)):
        out.write(text.encode("utf-8"))
    else:
        out.write(text)


@dataclass
class ConsoleWriter:
    """Parses JSON events and writes them in a readable form to ``out``."""

    out: Any = None
    no_color: bool = False
    time_format: str = CONSOLE_DEFAULT_TIME_FORMAT
    time_location: Optional[tzinfo] = None
    parts_order: Optional[list[str]] = None
    parts_exclude: list[str] = field(default_factory=list)
    fields_exclude: list[str] = field(default_factory=list)
    format_timestamp: Optional[Formatter] = None
    format_level: Optional[Formatter] = None
    format_caller: Optional[Formatter] = None
    format_message: Optional[Formatter] = None
    format_field_name: Optional[Formatter] = None
    format_field_value: Optional[Formatter] = None
    format_err_field_name: Optional[Formatter] = None
    format_err_field_value: Optional[Formatter] = None
    format_extra: Optional[Callable[[dict, io.StringIO], None]] = None
    format_prepare: Optional[Callable[[dict], None]] = None

    def write(self, data: bytes | str) -> int:
        """Render one JSON event and write it, with a line break, to ``out``."""
        if isinstance(data, (bytes, bytearray, memoryview)):
            text = bytes(data).decode("utf-8", "replace")
        else:
            text = str(data)
        decoder = json.JSONDecoder(
            parse_float=_JsonNumber, parse_int=_JsonNumber, parse_constant=_reject_constant
        )
        try:
            evt, _ = decoder.raw_decode(text.lstrip(" \t\r\n"))
        except ValueError as exc:
            raise ValueError(f"cannot decode event: {exc}") from None
        if evt is None:
            evt = {}
        if not isinstance(evt, dict):
            raise ValueError(
                f"cannot decode event: expected a JSON object, got {type(evt).__name__}"
            )

        if self.format_prepare is not None:
            self.format_prepare(evt)

        buf = io.StringIO()
        parts = self.parts_order if self.parts_order is not None else _default_parts_order()
        for part in parts:
            self._write_part(buf, evt, part)
        self._write_fields(evt, buf)
        if self.format_extra is not None:
            self.format_extra(evt, buf)
        buf.write("\n")

        _emit(self.out if self.out is not None else sys.stdout, buf.getvalue())
        return len(data)

    def close(self) -> None:
        """Close ``out`` if it can be closed."""
        closer = getattr(self.out, "close", None)
        if callable(closer):
            closer()

    def _write_fields(self, evt: dict, buf: io.StringIO) -> None:
        special = {
            settings.level_field_name,
            settings.timestamp_field_name,
            settings.message_field_name,
            settings.caller_field_name,
        }
        names = sorted(
            name for name in evt if name not in self.fields_exclude and name not in special
        )
        if buf.tell() > 0 and names:
            buf.write(" ")

        error_name = settings.error_field_name
        if error_name in names:
            names.remove(error_name)
            names.insert(0, error_name)

        pieces = []
        for name in names:
            if name == error_name:
                fn = self.format_err_field_name or _default_format_field_name(self.no_color)
                fv = self.format_err_field_value or _default_format_err_field_value(self.no_color)
            else:
                fn = self.format_field_name or _default_format_field_name(self.no_color)
                fv = self.format_field_value or _default_format_field_value

            value = evt[name]
            if isinstance(value, _JsonNumber):
                rendered = fv(str(value))
            elif isinstance(value, str):
                rendered = fv(_quote(value) if needs_quote(value) else value)
            else:
                try:
                    encoded = settings.interface_marshal(_plain(value))
                except Exception as exc:
                    rendered = colorize(f"[error: {exc}]", _COLOR_RED, self.no_color)
                else:
                    rendered = fv(encoded)
            pieces.append(fn(name) + rendered)
        buf.write(" ".join(pieces))

    def _write_part(self, buf: io.StringIO, evt: dict, part: str) -> None:
        if part in self.parts_exclude:
            return
        if part == settings.level_field_name:
            formatter = self.format_level or _default_format_level(self.no_color)
        elif part == settings.timestamp_field_name:
            formatter = self.format_timestamp or _default_format_timestamp(
                self.time_format, self.time_location, self.no_color
            )
        elif part == settings.message_field_name:
            formatter = self.format_message or _default_format_message(
                self.no_color, evt.get(settings.level_field_name)
            )
        elif part == settings.caller_field_name:
            formatter = self.format_caller or _default_format_caller(self.no_color)
        else:
            formatter = self.format_field_value or _default_format_field_value

        text = formatter(evt.get(part))
        if text:
            if buf.tell() > 0:
                buf.write(" ")
            buf.write(text)


def new_console_writer(*args: Callable[[ConsoleWriter], Any]) -> ConsoleWriter:
    """Create a writer to standard output and apply each option to it."""
    writer = ConsoleWriter(
        out=sys.stdout,
        time_format=CONSOLE_DEFAULT_TIME_FORMAT,
        parts_order=_default_parts_order(),
    )
    for option in args:
        option(writer)
    return writer