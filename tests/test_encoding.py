import base64
import ipaddress
import json
import math
import struct
from datetime import datetime, timedelta, timezone

import pytest

from chainlog import encoding
from chainlog.settings import (
    TIME_FORMAT_RFC3339,
    TIME_FORMAT_UNIX,
    TIME_FORMAT_UNIX_MICRO,
    TIME_FORMAT_UNIX_MS,
    TIME_FORMAT_UNIX_NANO,
    settings,
)

MS = timedelta(milliseconds=1)
SECOND = timedelta(seconds=1)


def test_array_case_values():
    assert encoding.encode_bool(True) == "true"
    assert encoding.encode_int(1) == "1"
    assert encoding.encode_float32(11.98122) == "11.98122"
    assert encoding.encode_float64(12.987654321) == "12.987654321"
    assert encoding.encode_string("a") == '"a"'
    assert encoding.encode_binary(b"b") == '"b"'
    assert encoding.encode_hex(b"\x1f") == '"1f"'
    zero = datetime(1, 1, 1, tzinfo=timezone.utc)
    assert encoding.encode_time(zero, TIME_FORMAT_RFC3339) == '"0001-01-01T00:00:00Z"'
    assert encoding.encode_ip(bytes([192, 168, 0, 10])) == '"192.168.0.10"'
    assert encoding.encode_duration(timedelta(0), MS, False) == "0"


def test_key_is_string_followed_by_colon():
    assert encoding.encode_key("k") == encoding.encode_string("k") + ":"


@pytest.mark.parametrize(
    "text",
    ["", "plain", 'quote"inside', "back\\slash", "line\nbreak\r\t", "\x00\x01\x1f", "héllo ✓", "<html>&"],
)
def test_string_round_trip(text):
    encoded = encoding.encode_string(text)
    assert json.loads(encoded) == text
    assert all(ord(ch) >= 0x20 for ch in encoded)


def test_binary_replaces_invalid_utf8():
    assert json.loads(encoding.encode_binary(b"a\xffb")) == "a\ufffdb"


def test_binary_round_trips_valid_utf8():
    data = "zürich".encode()
    assert json.loads(encoding.encode_binary(data)) == data.decode()


def test_lists_round_trip():
    assert json.loads(encoding.encode_strings(["a", "b\n"])) == ["a", "b\n"]
    assert json.loads(encoding.encode_bools([True, False])) == [True, False]
    big = 1152921504606846976
    assert json.loads(encoding.encode_ints([1, -2, big])) == [1, -2, big]
    assert json.loads(encoding.encode_strings([])) == []


@pytest.mark.parametrize("value", [0.0, 1.23, -0.5, 1e-7, 2.5e-9, 1e16, 1e21, 123456.789, 1e300])
def test_float64_round_trip(value):
    encoded = encoding.encode_float64(value)
    assert float(json.loads(encoded)) == value


def test_float64_small_exponent_has_no_leading_zero():
    encoded = encoding.encode_float64(1e-7)
    assert "e-07" not in encoded
    assert float(encoded) == 1e-7


def test_float64_whole_number_has_no_fraction():
    assert encoding.encode_float64(5.0) == encoding.encode_int(5)


@pytest.mark.parametrize("value", [math.nan, math.inf, -math.inf])
def test_nonfinite_floats_are_strings(value):
    decoded = json.loads(encoding.encode_float64(value))
    parsed = float(decoded)
    if math.isnan(value):
        assert math.isnan(parsed)
    else:
        assert parsed == value


@pytest.mark.parametrize("value", [0.1, 11.98122, 3.4e38, 1e-8, -2.75])
def test_float32_shortest_round_trip(value):
    encoded = encoding.encode_float32(value)
    single = struct.pack("<f", value)
    assert struct.pack("<f", float(json.loads(encoded))) == single


def test_float32_uses_short_digits():
    assert encoding.encode_float32(0.1) == encoding.encode_float64(0.1)


def test_float_lists():
    assert json.loads(encoding.encode_floats64([1.5, -2.0])) == [1.5, -2.0]
    assert json.loads(encoding.encode_floats32([0.5])) == [0.5]


def test_unix_time_formats():
    moment = datetime(1970, 1, 1, tzinfo=timezone.utc) + timedelta(seconds=1234, microseconds=567891)
    assert encoding.encode_time(moment, TIME_FORMAT_UNIX) == "1234"
    assert encoding.encode_time(moment, TIME_FORMAT_UNIX_MS) == "1234567"
    assert encoding.encode_time(moment, TIME_FORMAT_UNIX_MICRO) == "1234567891"
    nano = int(encoding.encode_time(moment, TIME_FORMAT_UNIX_NANO))
    assert nano == int(encoding.encode_time(moment, TIME_FORMAT_UNIX_MICRO)) * 1000


def test_rfc3339_with_offset_round_trips():
    zone = timezone(timedelta(hours=2, minutes=30))
    moment = datetime(2001, 2, 3, 4, 5, 6, tzinfo=zone)
    decoded = json.loads(encoding.encode_time(moment, TIME_FORMAT_RFC3339))
    assert datetime.fromisoformat(decoded) == moment


def test_naive_time_is_utc():
    naive = datetime(2020, 5, 6, 7, 8, 9)
    aware = naive.replace(tzinfo=timezone.utc)
    assert encoding.encode_time(naive, TIME_FORMAT_RFC3339) == encoding.encode_time(aware, TIME_FORMAT_RFC3339)
    assert encoding.encode_time(naive, TIME_FORMAT_UNIX) == encoding.encode_time(aware, TIME_FORMAT_UNIX)


def test_custom_time_format():
    moment = datetime(2022, 10, 20, 20, 24, 50)
    assert json.loads(encoding.encode_time(moment, "%Y-%m-%d %H:%M:%S")) == "2022-10-20 20:24:50"


def test_times_list():
    moments = [datetime(1970, 1, 1, tzinfo=timezone.utc) + timedelta(seconds=s) for s in (1, 2)]
    assert json.loads(encoding.encode_times(moments, TIME_FORMAT_UNIX)) == [1, 2]


def test_duration_integer_truncates_toward_zero():
    assert encoding.encode_duration(timedelta(milliseconds=1500), SECOND, True) == "1"
    assert encoding.encode_duration(timedelta(milliseconds=-1500), SECOND, True) == "-1"


@pytest.mark.parametrize("value", [timedelta(milliseconds=1500), timedelta(microseconds=3), timedelta(days=2)])
def test_duration_float_matches_ratio(value):
    assert float(encoding.encode_duration(value, MS, False)) == value / MS


def test_durations_list():
    decoded = json.loads(encoding.encode_durations([SECOND, 2 * SECOND], MS, True))
    assert decoded == [SECOND // MS, (2 * SECOND) // MS]


def test_interface_round_trip():
    value = {"b": 1, "a": [1, 2, None]}
    assert json.loads(encoding.encode_interface(value)) == value


def test_interface_uses_configured_marshal(monkeypatch):
    monkeypatch.setattr(settings, "interface_marshal", lambda v: encoding.encode_string("custom"))
    assert json.loads(encoding.encode_interface(object())) == "custom"


def test_interface_marshal_error_becomes_string(monkeypatch):
    def failing(value):
        raise ValueError("boom")

    monkeypatch.setattr(settings, "interface_marshal", failing)
    decoded = json.loads(encoding.encode_interface(1))
    assert "boom" in decoded


def test_nil():
    assert json.loads(encoding.encode_nil()) is None


@pytest.mark.parametrize("address", ["10.0.0.1", "2001:db8::1"])
def test_ip_round_trip(address):
    decoded = json.loads(encoding.encode_ip(address))
    assert ipaddress.ip_address(decoded) == ipaddress.ip_address(address)


@pytest.mark.parametrize("prefix", ["192.168.0.0/24", "2001:db8::/32"])
def test_ip_prefix_round_trip(prefix):
    decoded = json.loads(encoding.encode_ip_prefix(prefix))
    assert ipaddress.ip_network(decoded) == ipaddress.ip_network(prefix)


def test_mac_round_trip():
    mac = b"\x02\x00\x00\x00\x00\x01"
    parts = json.loads(encoding.encode_mac(mac)).split(":")
    assert all(len(part) == 2 and part == part.lower() for part in parts)
    assert bytes.fromhex("".join(parts)) == mac


def test_cbor_data_url_round_trip():
    data = bytes(range(20))
    decoded = json.loads(encoding.encode_cbor(data))
    prefix = "data:application/cbor;base64,"
    assert decoded.startswith(prefix)
    assert base64.b64decode(decoded[len(prefix):]) == data