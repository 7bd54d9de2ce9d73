"""Command that pretty-prints JSON log lines from standard input or files."""

from __future__ import annotations

import argparse
import sys
from typing import Any, Iterable, Optional, Sequence

from .console import TIME_FORMAT_KITCHEN, TIME_FORMAT_RFC1123, new_console_writer

TIME_FORMATS = {
    "default": TIME_FORMAT_KITCHEN,
    "full": TIME_FORMAT_RFC1123,
}

_USAGE = (
    "Usage:",
    "  app_with_chainlog | 2> >(prettylog)",
    "  prettylog chainlog_output.jsonl",
)


def _is_input_from_pipe() -> bool:
    try:
        return not sys.stdin.isatty()
    except (AttributeError, ValueError, OSError):
        return False


def _strip_line(raw: Any) -> Any:
    if isinstance(raw, (bytes, bytearray)):
        line = bytes(raw).rstrip(b"\n")
        return line[:-1] if line.endswith(b"\r") else line
    line = raw.rstrip("\n")
    return line[:-1] if line.endswith("\r") else line


def process_input(reader: Iterable[Any], writer: Any) -> None:
    """Write each line of ``reader`` to ``writer``; echo lines it rejects."""
    for raw in reader:
        line = _strip_line(raw)
        try:
            writer.write(line)
        except EOFError:
            break
        except Exception:
            if isinstance(line, bytes):
                line = line.decode("utf-8", "replace")
            print(line)


def main(argv: Optional[Sequence[str]] = None) -> int:
    parser = argparse.ArgumentParser(prog="prettylog")
    parser.add_argument(
        "-time-format",
        "--time-format",
        dest="time_format",
        default="default",
        help="Time format, either 'default' or 'full'",
    )
    parser.add_argument("files", nargs="*")
    args = parser.parse_args(argv)

    time_format = TIME_FORMATS.get(args.time_format)
    if time_format is None:
        parser.error("Invalid time-format provided")

    writer = new_console_writer()
    writer.time_format = time_format

    if _is_input_from_pipe():
        process_input(sys.stdin, writer)
        return 0

    if args.files:
        for filename in args.files:
            try:
                reader = open(filename, encoding="utf-8", errors="replace")
            except OSError as exc:
                print(f"{filename} open: {exc}", end="")
                return 1
            with reader:
                try:
                    process_input(reader, writer)
                except OSError as exc:
                    print(f"{filename} scan: {exc}", end="")
                    return 1
        return 0

    for line in _USAGE:
        print(line)
    return 1


if __name__ == "__main__":
    sys.exit(main())