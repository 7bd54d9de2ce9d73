# chainlog

Structured log events that render as one JSON object per line, built by
chaining typed field methods. Alongside the event encoder the package has:

- `chainlog.console.ConsoleWriter`, which turns JSON log lines into short,
  optionally colourised, human-readable lines;
- `chainlog.diode.DiodeWriter`, a ring-buffer writer that never blocks the
  code producing log lines and drops old lines when the output falls behind;
- the `chainlog-pretty` command for prettifying existing log files.

There are no third-party dependencies.

## Installing

```
pip install chainlog
```

To run the tests:

```
pip install "chainlog[test]"
pytest
```

## Building events

`chainlog.event.Event(writer, level)` collects fields and is finished with
`msg`, `msgf`, `msg_func` or `send`. Every field method returns the event, so
calls chain:

```python
import io
from chainlog.event import Event
from chainlog.settings import Level

out = io.StringIO()
(
    Event(out, Level.INFO)
    .text("user", "alice")
    .integer("attempt", 3)
    .boolean("cached", False)
    .msg("login")
)
# out now holds {"user":"alice","attempt":3,"cached":false,"message":"login"}
```

The event writes its fields exactly as added; the level given to `Event` is
not rendered as a field of its own. The writer may be a text stream, a binary
stream, or any object with a `write_level(level, data)` method, which is then
called with the level and the encoded bytes. An event at `Level.DISABLED`, or
one on which `discard()` was called, writes nothing.

Field methods include `text`, `texts`, `stringer`, `stringers`, `binary`,
`hex`, `raw_json`, `raw_cbor`, `boolean`, `booleans`, `integer`, `integers`,
`float32`, `floats32`, `float64`, `floats64`, `time_value`, `times`, `dur`,
`durs`, `time_diff`, `timestamp`, `interface` (alias `any`), `type_name`,
`ip_addr`, `ip_prefix`, `mac_addr` and `caller`. `fields` takes a mapping
(added in key order) or a flat `[key, value, ...]` list.

Nested values are built with `chainlog.event.new_dict()` for objects and
`chainlog.array.arr()` for arrays:

```python
from chainlog.array import arr
from chainlog.event import new_dict

items = arr().boolean(True).integer(1).text("a")
details = new_dict().text("bar", "baz").integer("n", 1)
Event(out, Level.INFO).array("items", items).dict("details", details).send()
```

Objects of your own take part by providing `marshal_object(event)`
(`LogObjectMarshaler`) or `marshal_array(array)` (`LogArrayMarshaler`).

Errors go in with `err`, `an_err` and `errs`; a `None` error adds nothing.
After `stack()`, `err` also records the result of
`settings.error_stack_marshaler` when one is set.

## Settings

`chainlog.settings.settings` is a `Settings` instance read whenever a field
is written: field names, level names, time format (`TIME_FORMAT_RFC3339` by
default, or `TIME_FORMAT_UNIX`, `TIME_FORMAT_UNIX_MS`,
`TIME_FORMAT_UNIX_MICRO`, `TIME_FORMAT_UNIX_NANO`, or any `strftime` format),
duration unit (milliseconds, as a float unless `duration_field_integer` is
set), and the error, caller and interface marshalling functions.

```python
from chainlog.settings import TIME_FORMAT_UNIX_MS, settings

settings.time_field_format = TIME_FORMAT_UNIX_MS
```

`parse_level` turns a level name or number into a `Level`.
`set_global_level`/`global_level` and `disable_sampling`/`sampling_disabled`
store process-wide values; nothing in this package filters events by them.

## Console output

`ConsoleWriter.write` accepts one JSON log line and prints it as

```
3:04PM INF Hello World foo=bar
```

with the timestamp, level, caller and message first, then the `error` field,
then the remaining fields sorted by name. Parts can be reordered with
`parts_order`, hidden with `parts_exclude` and `fields_exclude`, and every
part can be given its own formatter. Colours are off when `no_color` is set
or the `NO_COLOR` environment variable is non-empty. Input that is not a JSON
object raises `ValueError`. `new_console_writer(*options)` builds a writer to
standard output and calls each option function on it.

## Non-blocking writes

`DiodeWriter(out, size, poll_interval=0, alerter=None)` wraps a writer with a
fixed-size ring buffer drained by a background thread. Writes return at once;
if the buffer is lapped, the oldest lines are dropped and `alerter` is called
with how many were lost.

```python
from chainlog.diode import DiodeWriter

with open("app.log", "wb") as f, DiodeWriter(f, 1000) as out:
    out.write(b'{"level":"debug","message":"test"}\n')
```

A poll interval above zero polls for data; zero waits on a condition instead.
`close()` (or leaving the `with` block) drains the buffer, stops the thread
and closes the wrapped output if it has a `close` method. The ring buffers
(`OneToOne`, `ManyToOne`) and their readers (`Poller`, `Waiter`) are in
`chainlog.diodes`.

## Prettifying log files

```
your_app 2>&1 | chainlog-pretty
chainlog-pretty app.jsonl other.jsonl
chainlog-pretty --time-format full app.jsonl
```

Input is read from a pipe when there is one, otherwise from the files named.
`--time-format` is `default` (clock time, e.g. `3:04PM`) or `full`
(RFC 1123 style). Lines that cannot be rendered are printed as they are.

## What is not included

There is no logger object: no level filtering of events, sampling, hooks or
loggers carrying preset fields, and nothing attaches a logger to a request or
context. There is no HTTP middleware, and output is JSON only; CBOR data can
be embedded in a field with `raw_cbor`, but events are never written in a
binary format.