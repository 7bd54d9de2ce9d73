"""A non-blocking writer that hands log lines to a background thread."""

from __future__ import annotations

import io
import threading
from datetime import timedelta
from typing import Any, Optional

from .diodes import Alerter, ManyToOne, Poller, Waiter


def _seconds(interval: float | timedelta) -> float:
    if isinstance(interval, timedelta):
        return interval.total_seconds()
    return float(interval)


class DiodeWriter:
    """Wraps ``out`` so writes never block; lines are dropped if it falls behind.

    With a positive ``poll_interval`` the background thread polls for data,
    otherwise it waits to be woken by each write.  ``alerter`` is called with
    the number of dropped lines.
    """

    def __init__(
        self,
        out: Any,
        size: int,
        poll_interval: float | timedelta = 0,
        alerter: Optional[Alerter] = None,
    ) -> None:
        self._out = out
        self._cancelled = threading.Event()
        diode = ManyToOne(size, alerter)
        interval = _seconds(poll_interval)
        if interval > 0:
            self._diode: Poller | Waiter = Poller(diode, interval, self._cancelled)
        else:
            self._diode = Waiter(diode, self._cancelled)
        self._thread = threading.Thread(target=self._poll, daemon=True)
        self._thread.start()

    def write(self, data: bytes | bytearray | str) -> int:
        """Queue a copy of ``data`` and return its length."""
        if isinstance(data, str):
            payload = data.encode("utf-8")
        else:
            payload = bytes(data)
        self._diode.set(payload)
        return len(data)

    def close(self) -> None:
        """Flush queued lines, stop the thread and close ``out`` if possible."""
        self._cancelled.set()
        if isinstance(self._diode, Waiter):
            self._diode.cancel()
        self._thread.join()
        closer = getattr(self._out, "close", None)
        if callable(closer):
            closer()

    def __enter__(self) -> "DiodeWriter":
        return self

    def __exit__(self, *args: Any) -> None:
        self.close()

    def _poll(self) -> None:
        while True:
            data = self._diode.next()
            if data is None:
                return
            try:
                if isinstance(self._out, io.TextIOBase):
                    self._out.write(data.decode("utf-8", "replace"))
                else:
                    self._out.write(data)
            except Exception:
                # Write failures are ignored so the queue keeps draining.
                pass