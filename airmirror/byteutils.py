"""Reading and writing integers, floats and NTP timestamps in byte buffers."""

from __future__ import annotations

import struct

SECONDS_FROM_1900_TO_1970 = 2208988800

_U32 = 0xFFFFFFFF
_U64 = 0xFFFFFFFFFFFFFFFF

_SHORT = struct.Struct("<H")
_INT = struct.Struct("<I")
_LONG = struct.Struct("<Q")
_SHORT_BE = struct.Struct(">H")
_INT_BE = struct.Struct(">I")
_LONG_BE = struct.Struct(">Q")
_FLOAT = struct.Struct("<f")


def get_short(b, offset: int) -> int:
    """Little-endian unsigned 16-bit integer at ``offset``."""
    return _SHORT.unpack_from(b, offset)[0]


def get_int(b, offset: int) -> int:
    """Little-endian unsigned 32-bit integer at ``offset``."""
    return _INT.unpack_from(b, offset)[0]


def get_long(b, offset: int) -> int:
    """Little-endian unsigned 64-bit integer at ``offset``."""
    return _LONG.unpack_from(b, offset)[0]


def get_short_be(b, offset: int) -> int:
    """Big-endian unsigned 16-bit integer at ``offset``."""
    return _SHORT_BE.unpack_from(b, offset)[0]


def get_int_be(b, offset: int) -> int:
    """Big-endian unsigned 32-bit integer at ``offset``."""
    return _INT_BE.unpack_from(b, offset)[0]


def get_long_be(b, offset: int) -> int:
    """Big-endian unsigned 64-bit integer at ``offset``."""
    return _LONG_BE.unpack_from(b, offset)[0]


def get_float(b, offset: int) -> float:
    """Little-endian 32-bit float at ``offset``."""
    return _FLOAT.unpack_from(b, offset)[0]


def put_int(b: bytearray, offset: int, value: int) -> None:
    """Write ``value`` as a little-endian unsigned 32-bit integer."""
    _INT.pack_into(b, offset, value & _U32)


def get_ntp_timestamp(b, offset: int) -> int:
    """Read an NTP timestamp and return microseconds since the Unix epoch."""
    seconds = (get_int_be(b, offset) - SECONDS_FROM_1900_TO_1970) & _U64
    fraction = get_int_be(b, offset + 4)
    return (seconds * 1_000_000 + ((fraction * 1_000_000) >> 32)) & _U64


def put_ntp_timestamp(b: bytearray, offset: int, us_since_1970: int) -> None:
    """Write microseconds since the Unix epoch as an NTP timestamp."""
    seconds, microseconds = divmod(us_since_1970 & _U64, 1_000_000)
    seconds += SECONDS_FROM_1900_TO_1970
    fraction = (microseconds << 32) // 1_000_000
    _INT_BE.pack_into(b, offset, seconds & _U32)
    _INT_BE.pack_into(b, offset + 4, fraction & _U32)