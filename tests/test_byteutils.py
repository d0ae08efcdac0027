import struct

import pytest

from airmirror import byteutils
from airmirror.byteutils import SECONDS_FROM_1900_TO_1970


def test_put_get_int_round_trip():
    buf = bytearray(8)
    byteutils.put_int(buf, 2, 0xDEADBEEF)
    assert byteutils.get_int(buf, 2) == 0xDEADBEEF


def test_put_int_truncates_to_32_bits():
    buf = bytearray(4)
    byteutils.put_int(buf, 0, (1 << 32) + 5)
    assert byteutils.get_int(buf, 0) == 5


def test_short_endianness_mirror():
    data = bytes([0x12, 0x34])
    assert byteutils.get_short(data, 0) == byteutils.get_short_be(data[::-1], 0)
    assert byteutils.get_short_be(data, 0) == 0x1234


def test_int_endianness_mirror():
    data = bytes([1, 2, 3, 4, 5])
    assert byteutils.get_int(data, 1) == byteutils.get_int_be(data[1:][::-1], 0)


def test_long_endianness_mirror():
    data = bytes(range(1, 9))
    assert byteutils.get_long(data, 0) == byteutils.get_long_be(data[::-1], 0)


def test_long_le_round_trip_via_put_int():
    buf = bytearray(8)
    byteutils.put_int(buf, 0, 0x89ABCDEF)
    byteutils.put_int(buf, 4, 0x01234567)
    assert byteutils.get_long(buf, 0) == 0x0123456789ABCDEF


def test_get_float_reads_little_endian():
    data = struct.pack("<f", 1.5)
    assert byteutils.get_float(data, 0) == 1.5


def test_short_buffer_raises():
    with pytest.raises(struct.error):
        byteutils.get_int(b"\x00\x01", 0)


def test_ntp_epoch_reads_zero():
    data = struct.pack(">II", SECONDS_FROM_1900_TO_1970, 0)
    assert byteutils.get_ntp_timestamp(data, 0) == 0


def test_put_ntp_writes_epoch_seconds():
    buf = bytearray(8)
    byteutils.put_ntp_timestamp(buf, 0, 0)
    assert byteutils.get_int_be(buf, 0) == SECONDS_FROM_1900_TO_1970
    assert byteutils.get_int_be(buf, 4) == 0


@pytest.mark.parametrize(
    "us", [0, 1_000_000, 1_600_000_000_000_000, 1_600_000_000_123_456]
)
def test_ntp_round_trip_within_a_microsecond(us):
    buf = bytearray(12)
    byteutils.put_ntp_timestamp(buf, 4, us)
    assert us - 1 <= byteutils.get_ntp_timestamp(buf, 4) <= us


def test_ntp_round_trip_whole_seconds_exact():
    buf = bytearray(8)
    byteutils.put_ntp_timestamp(buf, 0, 1_700_000_000_000_000)
    assert byteutils.get_ntp_timestamp(buf, 0) == 1_700_000_000_000_000