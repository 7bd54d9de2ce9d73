"""Global configuration shared by loggers, events and writers."""

from __future__ import annotations

import dataclasses
import enum
import json
import threading
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Any, Callable, Optional

# Time formats that render time fields as integer UNIX timestamps.
TIME_FORMAT_UNIX = ""
TIME_FORMAT_UNIX_MS = "UNIXMS"
TIME_FORMAT_UNIX_MICRO = "UNIXMICRO"
TIME_FORMAT_UNIX_NANO = "UNIXNANO"

# Renders time fields as RFC 3339 strings (second precision).
TIME_FORMAT_RFC3339 = "RFC3339"

# Extra stack frames introduced by the hook machinery.
CONTEXT_CALLER_SKIP_FRAME_COUNT = 2

_COLOR_RED = 31
_COLOR_GREEN = 32
_COLOR_YELLOW = 33
_COLOR_BLUE = 34


class Level(enum.IntEnum):
    """Severity of a log event."""

    TRACE = -1
    DEBUG = 0
    INFO = 1
    WARN = 2
    ERROR = 3
    FATAL = 4
    PANIC = 5
    NO_LEVEL = 6
    DISABLED = 7

    def __str__(self) -> str:
        return _level_names()[self]

    def __format__(self, spec: str) -> str:
        return format(str(self), spec)


def _level_names() -> dict[Level, str]:
    return {
        Level.TRACE: settings.level_trace_value,
        Level.DEBUG: settings.level_debug_value,
        Level.INFO: settings.level_info_value,
        Level.WARN: settings.level_warn_value,
        Level.ERROR: settings.level_error_value,
        Level.FATAL: settings.level_fatal_value,
        Level.PANIC: settings.level_panic_value,
        Level.NO_LEVEL: "",
        Level.DISABLED: "disabled",
    }


def parse_level(text: str) -> Level:
    """Return the level named by ``text``, or given as its integer value."""
    lowered = text.lower()
    for level, name in _level_names().items():
        if name.lower() == lowered:
            return level
    try:
        return Level(int(text))
    except ValueError:
        raise ValueError(f"unknown level string: {text!r}") from None


def default_level_field_marshal(level: Level) -> str:
    """Render a level as the value of the level field."""
    return str(level)


def default_caller_marshal(file: str, line: int) -> str:
    """Render a caller location as ``file:line``."""
    return f"{file}:{line}"


def default_error_marshal(err: Any) -> Any:
    """Return the value to serialise for ``err``: None for no error, else the error."""
    if err is None:
        return None
    return err


def _json_fallback(value: Any) -> Any:
    if dataclasses.is_dataclass(value) and not isinstance(value, type):
        return dataclasses.asdict(value)
    if isinstance(value, (set, frozenset)):
        return sorted(value)
    raise TypeError(f"Object of type {type(value).__name__} is not JSON serializable")


def default_interface_marshal(value: Any) -> str:
    """Serialise ``value`` as compact JSON without HTML escaping."""
    return json.dumps(
        value,
        ensure_ascii=False,
        separators=(",", ":"),
        sort_keys=True,
        allow_nan=False,
        default=_json_fallback,
    )


def _local_now() -> datetime:
    return datetime.now().astimezone()


@dataclass
class Settings:
    """Mutable, process-wide settings read at the time each field is written."""

    timestamp_field_name: str = "time"
    level_field_name: str = "level"
    level_trace_value: str = "trace"
    level_debug_value: str = "debug"
    level_info_value: str = "info"
    level_warn_value: str = "warn"
    level_error_value: str = "error"
    level_fatal_value: str = "fatal"
    level_panic_value: str = "panic"
    level_field_marshal: Callable[[Level], str] = default_level_field_marshal
    message_field_name: str = "message"
    error_field_name: str = "error"
    caller_field_name: str = "caller"
    caller_skip_frame_count: int = 2
    caller_marshal: Callable[[str, int], str] = default_caller_marshal
    error_stack_field_name: str = "stack"
    error_stack_marshaler: Optional[Callable[[Any], Any]] = None
    error_marshal: Callable[[Any], Any] = default_error_marshal
    interface_marshal: Callable[[Any], str] = default_interface_marshal
    time_field_format: str = TIME_FORMAT_RFC3339
    timestamp_func: Callable[[], datetime] = _local_now
    duration_field_unit: timedelta = timedelta(milliseconds=1)
    duration_field_integer: bool = False
    error_handler: Optional[Callable[[BaseException], None]] = None
    level_colors: dict[Level, int] = field(
        default_factory=lambda: {
            Level.TRACE: _COLOR_BLUE,
            Level.DEBUG: 0,
            Level.INFO: _COLOR_GREEN,
            Level.WARN: _COLOR_YELLOW,
            Level.ERROR: _COLOR_RED,
            Level.FATAL: _COLOR_RED,
            Level.PANIC: _COLOR_RED,
        }
    )
    formatted_levels: dict[Level, str] = field(
        default_factory=lambda: {
            Level.TRACE: "TRC",
            Level.DEBUG: "DBG",
            Level.INFO: "INF",
            Level.WARN: "WRN",
            Level.ERROR: "ERR",
            Level.FATAL: "FTL",
            Level.PANIC: "PNC",
        }
    )
    trigger_level_writer_buffer_reuse_limit: int = 64 * 1024


settings = Settings()

_lock = threading.Lock()
_global_level = Level.TRACE
_sampling_disabled = False


def set_global_level(level: Level) -> None:
    """Set the minimum level every logger honours; DISABLED silences all."""
    global _global_level
    with _lock:
        _global_level = Level(level)


def global_level() -> Level:
    """Return the current global minimum level."""
    with _lock:
        return _global_level


def disable_sampling(value: bool) -> None:
    """Turn sampling off in every logger when ``value`` is true."""
    global _sampling_disabled
    with _lock:
        _sampling_disabled = bool(value)


def sampling_disabled() -> bool:
    """Report whether sampling is globally disabled."""
    with _lock:
        return _sampling_disabled