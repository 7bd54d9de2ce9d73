"""Log events: a chain of typed fields finished by a message."""

from __future__ import annotations

import contextvars
import functools
import io
import sys
from datetime import datetime, timedelta
from typing import Any, Callable, Iterable, Optional, Protocol, runtime_checkable

from .encoding import (
    encode_binary,
    encode_bool,
    encode_bools,
    encode_cbor,
    encode_duration,
    encode_durations,
    encode_float32,
    encode_float64,
    encode_floats32,
    encode_floats64,
    encode_hex,
    encode_int,
    encode_interface,
    encode_ints,
    encode_ip,
    encode_ip_prefix,
    encode_key,
    encode_mac,
    encode_nil,
    encode_string,
    encode_strings,
    encode_time,
    encode_times,
)
from .settings import Level, settings


@runtime_checkable
class LogObjectMarshaler(Protocol):
    """An object that knows how to write itself as event fields."""

    def marshal_object(self, event: "Event") -> None:
        """Add this object's fields to ``event``."""


@runtime_checkable
class LogArrayMarshaler(Protocol):
    """An object that knows how to write itself as array items."""

    def marshal_array(self, array: Any) -> None:
        """Add this object's items to ``array``."""


def _chain(method: Callable[..., None]) -> Callable[..., "Event"]:
    """Run ``method`` only on an enabled event and return the event."""

    @functools.wraps(method)
    def wrapper(self: "Event", *args: Any, **kwargs: Any) -> "Event":
        if self.enabled():
            method(self, *args, **kwargs)
        return self

    return wrapper


def _emit(writer: Any, level: Level, data: bytes) -> None:
    if hasattr(writer, "write_level"):
        writer.write_level(level, data)
    elif isinstance(writer, io.TextIOBase):
        writer.write(data.decode("utf-8"))
    else:
        writer.write(data)


class Event:
    """A log event under construction.

    Field methods return the event so calls can be chained; the event is
    finished by :meth:`msg`, :meth:`msgf`, :meth:`msg_func` or :meth:`send`.
    """

    def __init__(self, writer: Any, level: Level) -> None:
        self._parts: list[str] = []
        self._writer = writer
        self.level = Level(level)
        self.done: Optional[Callable[[str], None]] = None
        self.hooks: list[Any] = []
        self._stack = False
        self._skip_frame = 0
        self._ctx: Any = None

    def __str__(self) -> str:
        return "{" + ",".join(self._parts) + "}"

    def _add(self, key: str, encoded: str) -> None:
        self._parts.append(encode_key(key) + encoded)

    def enabled(self) -> bool:
        """Report whether the event will be written."""
        return self.level != Level.DISABLED

    def discard(self) -> "Event":
        """Disable the event so finishing it writes nothing."""
        self.level = Level.DISABLED
        return self

    def write(self) -> None:
        """Write the rendered event, with a line break, to the writer."""
        if self.level == Level.DISABLED or self._writer is None:
            return
        _emit(self._writer, self.level, (str(self) + "\n").encode("utf-8"))

    def msg(self, message: str) -> None:
        """Finish the event, adding ``message`` unless it is empty."""
        if not self.enabled():
            return
        for hook in self.hooks:
            hook.run(self, self.level, message)
        if message:
            self._add(settings.message_field_name, encode_string(message))
        try:
            self.write()
        except Exception as exc:
            if settings.error_handler is not None:
                settings.error_handler(exc)
            else:
                print(f"chainlog: could not write event: {exc}", file=sys.stderr)
        finally:
            if self.done is not None:
                self.done(message)

    def send(self) -> None:
        """Finish the event without a message."""
        self.msg("")

    def msgf(self, fmt: str, *args: Any) -> None:
        """Finish the event with a %-formatted message."""
        if not self.enabled():
            return
        self.msg(fmt % args if args else fmt)

    def msg_func(self, create: Callable[[], str]) -> None:
        """Finish the event with a message built only if it is enabled."""
        if not self.enabled():
            return
        self.msg(create())

    @_chain
    def fields(self, fields: Any) -> None:
        """Add fields from a mapping or from a flat key/value sequence."""
        from .fields import append_fields

        result = append_fields(fields, self._stack)
        if isinstance(result, str):
            if result:
                self._parts.append(result)
        else:
            self._parts.extend(result)

    @_chain
    def dict(self, key: str, sub: "Event") -> None:
        """Add the fields of ``sub`` as a nested object."""
        self._add(key, str(sub))

    @_chain
    def array(self, key: str, arr: Any) -> None:
        """Add an array built with ``arr()`` or by a LogArrayMarshaler."""
        from .array import Array, arr as new_array

        if isinstance(arr, Array):
            items = arr
        else:
            items = new_array()
            arr.marshal_array(items)
        self._add(key, items.render())

    def _nested(self, obj: Any) -> str:
        sub = new_dict()
        sub._stack = self._stack
        sub._ctx = self._ctx
        obj.marshal_object(sub)
        return str(sub)

    @_chain
    def object(self, key: str, obj: Any) -> None:
        """Add a LogObjectMarshaler as a nested object; None becomes null."""
        if obj is None:
            self._add(key, encode_nil())
        else:
            self._add(key, self._nested(obj))

    def func(self, fn: Callable[["Event"], Any]) -> "Event":
        """Call ``fn`` with the event only if it is enabled."""
        if self.enabled():
            fn(self)
        return self

    @_chain
    def embed_object(self, obj: Any) -> None:
        """Add the fields of a LogObjectMarshaler at the top level."""
        if obj is not None:
            obj.marshal_object(self)

    @_chain
    def text(self, key: str, value: str) -> None:
        self._add(key, encode_string(value))

    @_chain
    def texts(self, key: str, values: Iterable[str]) -> None:
        self._add(key, encode_strings(values))

    @_chain
    def stringer(self, key: str, value: Any) -> None:
        """Add ``str(value)``, or null when ``value`` is None."""
        self._add(key, encode_nil() if value is None else encode_string(str(value)))

    @_chain
    def stringers(self, key: str, values: Iterable[Any]) -> None:
        items = (encode_nil() if v is None else encode_string(str(v)) for v in values)
        self._add(key, "[" + ",".join(items) + "]")

    @_chain
    def binary(self, key: str, value: bytes) -> None:
        self._add(key, encode_binary(value))

    @_chain
    def hex(self, key: str, value: bytes) -> None:
        self._add(key, encode_hex(value))

    @_chain
    def raw_json(self, key: str, value: bytes | str) -> None:
        """Add already encoded JSON; it is not checked."""
        if isinstance(value, (bytes, bytearray)):
            value = bytes(value).decode("utf-8")
        self._add(key, value)

    @_chain
    def raw_cbor(self, key: str, value: bytes) -> None:
        self._add(key, encode_cbor(value))

    def _error_value(self, key: str, marshalled: Any) -> None:
        if isinstance(marshalled, LogObjectMarshaler):
            self.object(key, marshalled)
        elif isinstance(marshalled, BaseException):
            self.text(key, str(marshalled))
        elif isinstance(marshalled, str):
            self.text(key, marshalled)
        else:
            self.interface(key, marshalled)

    @_chain
    def an_err(self, key: str, err: Any) -> None:
        """Add a serialised error; nothing is added when it is None."""
        marshalled = settings.error_marshal(err)
        if marshalled is not None:
            self._error_value(key, marshalled)

    @_chain
    def errs(self, key: str, errs: Iterable[Any]) -> None:
        """Add an array of serialised errors."""
        from .array import arr as new_array

        items = new_array()
        for err in errs:
            marshalled = settings.error_marshal(err)
            if isinstance(marshalled, LogObjectMarshaler):
                items = items.object(marshalled)
            elif isinstance(marshalled, BaseException):
                items = items.err(marshalled)
            elif isinstance(marshalled, str):
                items = items.text(marshalled)
            else:
                items = items.interface(marshalled)
        self.array(key, items)

    @_chain
    def err(self, err: Any) -> None:
        """Add the error field, and its stack when stack() was called."""
        marshaler = settings.error_stack_marshaler
        if self._stack and marshaler is not None:
            stack = marshaler(err)
            if stack is not None:
                self._error_value(settings.error_stack_field_name, stack)
        self.an_err(settings.error_field_name, err)

    @_chain
    def stack(self) -> None:
        """Enable stack output for the error given to err()."""
        self._stack = True

    @_chain
    def ctx(self, ctx: Any) -> None:
        """Attach a context object for hooks; it is not rendered."""
        self._ctx = ctx

    def get_ctx(self) -> Any:
        """Return the attached context, or an empty context."""
        return self._ctx if self._ctx is not None else contextvars.Context()

    @_chain
    def boolean(self, key: str, value: bool) -> None:
        self._add(key, encode_bool(value))

    @_chain
    def booleans(self, key: str, values: Iterable[bool]) -> None:
        self._add(key, encode_bools(values))

    @_chain
    def integer(self, key: str, value: int) -> None:
        self._add(key, encode_int(value))

    @_chain
    def integers(self, key: str, values: Iterable[int]) -> None:
        self._add(key, encode_ints(values))

    @_chain
    def float32(self, key: str, value: float) -> None:
        self._add(key, encode_float32(value))

    @_chain
    def floats32(self, key: str, values: Iterable[float]) -> None:
        self._add(key, encode_floats32(values))

    @_chain
    def float64(self, key: str, value: float) -> None:
        self._add(key, encode_float64(value))

    @_chain
    def floats64(self, key: str, values: Iterable[float]) -> None:
        self._add(key, encode_floats64(values))

    @_chain
    def timestamp(self) -> None:
        """Add the current time under the timestamp field name."""
        self._add(
            settings.timestamp_field_name,
            encode_time(settings.timestamp_func(), settings.time_field_format),
        )

    @_chain
    def time_value(self, key: str, value: datetime) -> None:
        self._add(key, encode_time(value, settings.time_field_format))

    @_chain
    def times(self, key: str, values: Iterable[datetime]) -> None:
        self._add(key, encode_times(values, settings.time_field_format))

    @_chain
    def dur(self, key: str, value: timedelta) -> None:
        self._add(
            key,
            encode_duration(value, settings.duration_field_unit, settings.duration_field_integer),
        )

    @_chain
    def durs(self, key: str, values: Iterable[timedelta]) -> None:
        self._add(
            key,
            encode_durations(values, settings.duration_field_unit, settings.duration_field_integer),
        )

    @_chain
    def time_diff(self, key: str, t: datetime, start: datetime) -> None:
        """Add ``t - start``, or zero when ``t`` is not after ``start``."""
        delta = t - start if t > start else timedelta(0)
        self.dur(key, delta)

    def any(self, key: str, value: Any) -> "Event":
        return self.interface(key, value)

    @_chain
    def interface(self, key: str, value: Any) -> None:
        """Add ``value`` serialised by the interface marshaller."""
        if isinstance(value, LogObjectMarshaler):
            self.object(key, value)
        else:
            self._add(key, encode_interface(value))

    @_chain
    def type_name(self, key: str, value: Any) -> None:
        """Add the name of the type of ``value``."""
        name = "<nil>" if value is None else type(value).__qualname__
        self._add(key, encode_string(name))

    @_chain
    def caller_skip_frame(self, skip: int) -> None:
        """Skip ``skip`` more frames in later caller lookups."""
        self._skip_frame += skip

    def caller(self, skip: Optional[int] = None) -> "Event":
        """Add the file:line of the calling code."""
        count = settings.caller_skip_frame_count
        if skip is not None:
            count += skip
        return self._caller(count)

    def _caller(self, skip: int) -> "Event":
        if not self.enabled():
            return self
        try:
            frame = sys._getframe(skip + self._skip_frame)
        except ValueError:
            return self
        location = settings.caller_marshal(frame.f_code.co_filename, frame.f_lineno)
        self._add(settings.caller_field_name, encode_string(location))
        return self

    @_chain
    def ip_addr(self, key: str, value: Any) -> None:
        self._add(key, encode_ip(value))

    @_chain
    def ip_prefix(self, key: str, value: Any) -> None:
        self._add(key, encode_ip_prefix(value))

    @_chain
    def mac_addr(self, key: str, value: bytes) -> None:
        self._add(key, encode_mac(value))


def new_dict() -> Event:
    """Create an event to be nested with :meth:`Event.dict`."""
    return Event(None, Level.DEBUG)