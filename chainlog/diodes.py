"""Ring buffers that drop old values instead of blocking writers."""

from __future__ import annotations

import logging
import threading
import time
from datetime import timedelta
from typing import Any, Callable, NamedTuple, Optional, Protocol

Alerter = Callable[[int], None]

_log = logging.getLogger(__name__)
_COLLISION = "Diode set collision: consider using a larger diode"


class Diode(Protocol):
    """Anything values can be put into and taken from without blocking."""

    def set(self, data: Any) -> None: ...

    def try_next(self) -> tuple[Any, bool]: ...


class _Bucket(NamedTuple):
    data: Any
    seq: int


class _Ring:
    """Shared reading side of the diodes."""

    def __init__(self, size: int, alerter: Optional[Alerter]) -> None:
        if size <= 0:
            raise ValueError(f"diode size must be positive, got {size}")
        self._buffer: list[Optional[_Bucket]] = [None] * size
        self._alerter: Optional[Alerter] = alerter
        self._read_index = 0
        self._lock = threading.Lock()

    def _swap_out(self, idx: int) -> Optional[_Bucket]:
        with self._lock:
            bucket = self._buffer[idx]
            self._buffer[idx] = None
            return bucket

    def try_next(self) -> tuple[Any, bool]:
        """Read the next value; return ``(data, True)`` or ``(None, False)``.

        When the writer has lapped the reader, the reader skips ahead and the
        alerter is told how many values were dropped.
        """
        result = self._swap_out(self._read_index % len(self._buffer))
        if result is None:
            return None, False
        # A stale value that was already skipped over.
        if result.seq < self._read_index:
            return None, False
        if result.seq > self._read_index:
            dropped = result.seq - self._read_index
            self._read_index = result.seq
            if self._alerter is not None:
                self._alerter(dropped)
        self._read_index += 1
        return result.data, True


class OneToOne(_Ring):
    """Diode for exactly one writer and one reader."""

    def __init__(self, size: int, alerter: Optional[Alerter] = None) -> None:
        super().__init__(size, alerter)
        self._write_index = 0

    def set(self, data: Any) -> None:
        """Store ``data`` in the next slot, overwriting whatever is there."""
        idx = self._write_index % len(self._buffer)
        bucket = _Bucket(data, self._write_index)
        self._write_index += 1
        with self._lock:
            self._buffer[idx] = bucket

    def try_next(self) -> tuple[Any, bool]:
        return super().try_next()


class ManyToOne(_Ring):
    """Diode for any number of writers and a single reader."""

    def __init__(self, size: int, alerter: Optional[Alerter] = None) -> None:
        super().__init__(size, alerter)
        # The first write takes index 0.
        self._write_index = -1

    def set(self, data: Any) -> None:
        """Store ``data`` in the next slot, safely from several threads."""
        size = len(self._buffer)
        while True:
            with self._lock:
                self._write_index += 1
                write_index = self._write_index
                idx = write_index % size
                old = self._buffer[idx]
                if old is not None and write_index >= size and old.seq > write_index - size:
                    collided = True
                else:
                    collided = False
                    self._buffer[idx] = _Bucket(data, write_index)
            if collided:
                _log.warning(_COLLISION)
                continue
            return

    def try_next(self) -> tuple[Any, bool]:
        return super().try_next()


def _seconds(interval: float | timedelta) -> float:
    if isinstance(interval, timedelta):
        return interval.total_seconds()
    return float(interval)


class Poller:
    """Polls a diode at a fixed interval until a value is available."""

    def __init__(
        self,
        diode: Diode,
        interval: float | timedelta = 0.01,
        cancelled: Optional[threading.Event] = None,
    ) -> None:
        self.diode = diode
        self.interval = _seconds(interval)
        self.cancelled = cancelled if cancelled is not None else threading.Event()

    def set(self, data: Any) -> None:
        self.diode.set(data)

    def next(self) -> Any:
        """Return the next value, or None once cancelled and empty."""
        while True:
            data, ok = self.diode.try_next()
            if ok:
                return data
            if self.cancelled.is_set():
                return None
            time.sleep(self.interval)


class Waiter:
    """Blocks the reader on a condition until a value is set."""

    def __init__(self, diode: Diode, cancelled: Optional[threading.Event] = None) -> None:
        self.diode = diode
        self._cond = threading.Condition()
        if cancelled is None:
            self.cancelled = threading.Event()
        else:
            self.cancelled = cancelled
            threading.Thread(target=self._watch, daemon=True).start()

    def _watch(self) -> None:
        self.cancelled.wait()
        with self._cond:
            self._cond.notify_all()

    def set(self, data: Any) -> None:
        """Store ``data`` and wake any waiting reader."""
        self.diode.set(data)
        with self._cond:
            self._cond.notify_all()

    def next(self) -> Any:
        """Return the next value, waiting for one; None once cancelled and empty."""
        with self._cond:
            while True:
                data, ok = self.diode.try_next()
                if ok:
                    return data
                if self.cancelled.is_set():
                    return None
                self._cond.wait()

    def cancel(self) -> None:
        """Stop waiting: readers return None once the diode is empty."""
        self.cancelled.set()
        with self._cond:
            self._cond.notify_all()