import io
from datetime import timedelta

import pytest

from chainlog.diode import DiodeWriter
from chainlog.event import Event
from chainlog.settings import Level


class Sink:
    def __init__(self):
        self.chunks = []
        self.closed = False

    def write(self, data):
        self.chunks.append(data)
        return len(data)

    def close(self):
        self.closed = True

    @property
    def value(self):
        return b"".join(self.chunks)


class TextSink(io.StringIO):
    def __init__(self):
        super().__init__()
        self.close_calls = 0

    def close(self):
        self.close_calls += 1


def _log_test(writer):
    Event(writer, Level.DEBUG).text("level", "debug").msg("test")


@pytest.mark.parametrize("interval", [0, 0.005, timedelta(milliseconds=5)])
def test_new_writer(interval):
    sink = Sink()
    dropped = []
    w = DiodeWriter(sink, 1000, interval, dropped.append)
    _log_test(w)
    w.close()
    assert sink.value == b'{"level":"debug","message":"test"}\n'
    assert dropped == []


def test_close_closes_out():
    sink = Sink()
    w = DiodeWriter(sink, 1000, 0, lambda missed: None)
    _log_test(w)
    w.close()
    assert sink.closed is True
    assert sink.value == b'{"level":"debug","message":"test"}\n'


def test_context_manager_flushes_all_lines_in_order():
    sink = Sink()
    with DiodeWriter(sink, 1000) as w:
        for i in range(50):
            w.write(f"line {i}\n")
    assert sink.closed is True
    assert sink.value.decode().splitlines() == [f"line {i}" for i in range(50)]


def test_write_returns_length():
    sink = Sink()
    with DiodeWriter(sink, 10) as w:
        assert w.write(b"abc") == 3
        assert w.write("héllo") == 5
    assert sink.value == "abchéllo".encode("utf-8")


def test_write_copies_buffer():
    sink = Sink()
    buf = bytearray(b"original")
    with DiodeWriter(sink, 10) as w:
        w.write(buf)
        buf[:] = b"changed!"
    assert sink.value == b"original"


def test_text_output_is_decoded():
    sink = TextSink()
    with DiodeWriter(sink, 100, 0.005) as w:
        _log_test(w)
    assert sink.getvalue() == '{"level":"debug","message":"test"}\n'
    assert sink.close_calls == 1


def test_failing_out_does_not_stop_draining():
    class Flaky(Sink):
        def write(self, data):
            if data == b"bad":
                raise OSError("boom")
            return super().write(data)

    sink = Flaky()
    with DiodeWriter(sink, 10) as w:
        w.write(b"bad")
        w.write(b"good")
    assert sink.value == b"good"