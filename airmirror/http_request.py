"""Incremental parsing of HTTP and RTSP requests."""

from __future__ import annotations

import re
from enum import Enum, auto
from typing import List, Optional, Tuple

from .http_semantics import (
    HTTP_METHODS,
    RTSP_METHODS,
    BodyMode,
    Errno,
    Flags,
    LenientFlags,
    MessageState,
    Method,
    ParserType,
    after_headers_complete,
    after_message_complete,
    before_headers_complete,
    errno_name,
    method_name,
)

_U64 = 0xFFFFFFFFFFFFFFFF

_TOKEN_CHARS = frozenset(
    b"!#$%&'*+-.^_`|~0123456789"
    b"ABCDEFGHIJKLMNOPQRSTUVWXYZabcdefghijklmnopqrstuvwxyz"
)
_HEX_CHARS = frozenset(b"0123456789abcdefABCDEF")
_METHODS_BY_NAME = {m.wire_name.encode("ascii"): m for m in Method}
_VERSION = re.compile(rb"(\d)\.(\d)")


def _decode(raw: bytes) -> str:
    return raw.decode("utf-8", "surrogateescape")


class HttpParseError(Exception):
    """The request data does not form a valid message."""

    def __init__(self, errno: Errno, reason: str) -> None:
        self.errno = Errno(errno)
        self.reason = reason
        super().__init__(f"{errno_name(self.errno)}: {reason}")

    @property
    def name(self) -> str:
        """Symbolic name of the error, such as ``HPE_INVALID_METHOD``."""
        return errno_name(self.errno)


class _Stage(Enum):
    REQUEST_LINE = auto()
    HEADERS = auto()
    BODY = auto()
    BODY_EOF = auto()
    CHUNK_SIZE = auto()
    CHUNK_DATA = auto()
    CHUNK_END = auto()
    TRAILERS = auto()
    DONE = auto()


class HttpRequest:
    """One request, fed with data as it arrives from the connection.

    ``add_data`` raises HttpParseError on malformed input; once an error has
    been raised every later call raises it again.
    """

    def __init__(self) -> None:
        self._state = MessageState(type=ParserType.REQUEST)
        self._stage = _Stage.REQUEST_LINE
        self._buffer = bytearray()
        self._url: Optional[str] = None
        self._method: Optional[str] = None
        self._headers: List[List[str]] = []
        self._body = bytearray()
        self._body_remaining = 0
        self._complete = False
        self._keep_alive = False
        self._remaining = bytearray()
        self._error: Optional[HttpParseError] = None

    # Feeding data

    def add_data(self, data: bytes) -> None:
        """Parse more bytes of the request."""
        if self._error is not None:
            raise self._error
        self._buffer += data
        try:
            self._run()
        except HttpParseError as exc:
            self._error = exc
            self._buffer.clear()
            raise

    def set_lenient(self, flag: LenientFlags, enabled: bool) -> None:
        """Switch one of the lenient parsing relaxations on or off."""
        flag = LenientFlags(flag)
        current = int(self._state.lenient_flags)
        if enabled:
            current |= int(flag)
        else:
            current &= ~int(flag)
        self._state.lenient_flags = LenientFlags(current)

    # Results

    @property
    def complete(self) -> bool:
        return self._complete

    @property
    def method(self) -> Optional[str]:
        """The request method, known once the request is complete."""
        return self._method

    @property
    def url(self) -> Optional[str]:
        return self._url

    @property
    def version(self) -> Tuple[int, int]:
        return (self._state.http_major, self._state.http_minor)

    @property
    def headers(self) -> Tuple[Tuple[str, str], ...]:
        return tuple((name, value) for name, value in self._headers)

    @property
    def data(self) -> bytes:
        """The body received so far."""
        return bytes(self._body)

    @property
    def remaining(self) -> bytes:
        """Bytes received after the end of the request."""
        return bytes(self._remaining)

    @property
    def keep_alive(self) -> bool:
        """Whether the connection may carry another request after this one."""
        return self._keep_alive

    @property
    def lenient_flags(self) -> LenientFlags:
        return self._state.lenient_flags

    @property
    def error(self) -> Optional[HttpParseError]:
        return self._error

    @property
    def has_error(self) -> bool:
        return self._error is not None

    @property
    def error_name(self) -> str:
        return self._error.name if self._error else errno_name(Errno.OK)

    @property
    def error_description(self) -> Optional[str]:
        return self._error.reason if self._error else None

    def header(self, name: str) -> Optional[str]:
        """Value of the first header named exactly ``name``, or None."""
        for field, value in self._headers:
            if field == name:
                return value
        return None

    def header_string(self) -> str:
        """All headers as ``name: value`` lines, each ending in a newline."""
        return "".join(f"{field}: {value}\n" for field, value in self._headers)

    # Parsing

    def _take_line(self) -> Optional[bytes]:
        index = self._buffer.find(b"\n")
        if index < 0:
            return None
        line = bytes(self._buffer[:index])
        del self._buffer[: index + 1]
        if line.endswith(b"\r"):
            line = line[:-1]
        if b"\r" in line:
            raise HttpParseError(Errno.LF_EXPECTED, "Expected LF after CR")
        return line

    def _take_body(self) -> bool:
        """Move body bytes in; return True once the expected length is read."""
        count = min(self._body_remaining, len(self._buffer))
        self._body += self._buffer[:count]
        del self._buffer[:count]
        self._body_remaining -= count
        return self._body_remaining == 0

    def _run(self) -> None:
        while True:
            stage = self._stage
            if stage is _Stage.DONE:
                self._remaining += self._buffer
                self._buffer.clear()
                return
            if stage is _Stage.BODY_EOF:
                self._body += self._buffer
                self._buffer.clear()
                return
            if stage in (_Stage.BODY, _Stage.CHUNK_DATA):
                if not self._take_body():
                    return
                if stage is _Stage.BODY:
                    self._message_complete()
                else:
                    self._stage = _Stage.CHUNK_END
                continue

            line = self._take_line()
            if line is None:
                return
            if stage is _Stage.REQUEST_LINE:
                if line:
                    self._parse_request_line(line)
                    self._stage = _Stage.HEADERS
            elif stage in (_Stage.HEADERS, _Stage.TRAILERS):
                if not line:
                    if stage is _Stage.HEADERS:
                        self._headers_complete()
                    else:
                        self._message_complete()
                elif line[0] in b" \t":
                    self._continue_header(line)
                else:
                    self._parse_header(line, special=stage is _Stage.HEADERS)
            elif stage is _Stage.CHUNK_SIZE:
                self._parse_chunk_size(line)
            elif stage is _Stage.CHUNK_END:
                if line:
                    raise HttpParseError(
                        Errno.LF_EXPECTED, "Expected LF after chunk data"
                    )
                self._stage = _Stage.CHUNK_SIZE

    def _parse_request_line(self, line: bytes) -> None:
        parts = line.split(b" ")
        method = _METHODS_BY_NAME.get(parts[0])
        if method is None:
            raise HttpParseError(Errno.INVALID_METHOD, "Invalid method encountered")
        if len(parts) < 2 or not parts[1]:
            raise HttpParseError(Errno.INVALID_URL, "Unexpected start char in url")
        url = parts[1]
        if any(c < 0x21 or c == 0x7F for c in url):
            raise HttpParseError(Errno.INVALID_URL, "Invalid characters in url")
        if len(parts) < 3:
            raise HttpParseError(Errno.INVALID_CONSTANT, "Expected HTTP/")
        if len(parts) > 3:
            raise HttpParseError(Errno.INVALID_VERSION, "Expected CRLF after version")

        protocol, slash, version = parts[2].partition(b"/")
        if not slash or protocol not in (b"HTTP", b"RTSP"):
            raise HttpParseError(Errno.INVALID_CONSTANT, "Expected HTTP/")
        if protocol == b"HTTP":
            allowed = method in HTTP_METHODS or method is Method.PRI
        else:
            allowed = method in RTSP_METHODS
        if not allowed:
            raise HttpParseError(
                Errno.INVALID_CONSTANT,
                f"Invalid method for {protocol.decode('ascii')}/x.x request",
            )
        match = _VERSION.fullmatch(version)
        if match is None:
            raise HttpParseError(Errno.INVALID_VERSION, "Invalid HTTP version")

        self._url = _decode(url)
        self._state.method = method
        self._state.http_major = int(match.group(1))
        self._state.http_minor = int(match.group(2))

    def _check_value(self, value: bytes) -> None:
        if LenientFlags.HEADERS in self._state.lenient_flags:
            return
        if any((c < 0x20 and c != 0x09) or c == 0x7F for c in value):
            raise HttpParseError(
                Errno.INVALID_HEADER_TOKEN, "Invalid header value char"
            )

    def _parse_header(self, line: bytes, special: bool) -> None:
        name, colon, value = line.partition(b":")
        if not colon or not name or any(c not in _TOKEN_CHARS for c in name):
            raise HttpParseError(
                Errno.INVALID_HEADER_TOKEN, "Invalid header field char"
            )
        value = value.strip(b" \t")
        self._check_value(value)
        self._headers.append([_decode(name), _decode(value)])
        if special:
            self._special_header(name.lower(), value)

    def _continue_header(self, line: bytes) -> None:
        if not self._headers:
            raise HttpParseError(
                Errno.INVALID_HEADER_TOKEN, "Invalid header field char"
            )
        value = line.strip(b" \t")
        self._check_value(value)
        if value:
            self._headers[-1][1] += " " + _decode(value)

    def _set_flag(self, flag: Flags) -> None:
        self._state.flags = Flags(int(self._state.flags) | int(flag))

    def _clear_flag(self, flag: Flags) -> None:
        self._state.flags = Flags(int(self._state.flags) & ~int(flag))

    def _special_header(self, name: bytes, value: bytes) -> None:
        state = self._state
        lenient = state.lenient_flags
        if name == b"content-length":
            if not value.isdigit():
                raise HttpParseError(
                    Errno.INVALID_CONTENT_LENGTH,
                    "Invalid character in Content-Length",
                )
            if Flags.CONTENT_LENGTH in state.flags:
                raise HttpParseError(
                    Errno.UNEXPECTED_CONTENT_LENGTH, "Duplicate Content-Length"
                )
            if (
                Flags.TRANSFER_ENCODING in state.flags
                and LenientFlags.CHUNKED_LENGTH not in lenient
            ):
                raise HttpParseError(
                    Errno.UNEXPECTED_CONTENT_LENGTH,
                    "Content-Length can't be present with Transfer-Encoding",
                )
            length = int(value)
            if length > _U64:
                raise HttpParseError(
                    Errno.INVALID_CONTENT_LENGTH, "Content-Length overflow"
                )
            state.content_length = length
            self._set_flag(Flags.CONTENT_LENGTH)
        elif name == b"transfer-encoding":
            if (
                Flags.CONTENT_LENGTH in state.flags
                and LenientFlags.CHUNKED_LENGTH not in lenient
            ):
                raise HttpParseError(
                    Errno.UNEXPECTED_CONTENT_LENGTH,
                    "Transfer-Encoding can't be present with Content-Length",
                )
            self._set_flag(Flags.TRANSFER_ENCODING)
            for token in value.split(b","):
                coding = token.strip(b" \t").lower()
                if not coding:
                    continue
                if Flags.CHUNKED in state.flags:
                    if LenientFlags.TRANSFER_ENCODING not in lenient:
                        raise HttpParseError(
                            Errno.INVALID_TRANSFER_ENCODING,
                            "Invalid `Transfer-Encoding` header value",
                        )
                    self._clear_flag(Flags.CHUNKED)
                if coding == b"chunked":
                    self._set_flag(Flags.CHUNKED)
        elif name == b"connection":
            for token in value.split(b","):
                option = token.strip(b" \t").lower()
                if option == b"close":
                    self._set_flag(Flags.CONNECTION_CLOSE)
                elif option == b"keep-alive":
                    self._set_flag(Flags.CONNECTION_KEEP_ALIVE)
                elif option == b"upgrade":
                    self._set_flag(Flags.CONNECTION_UPGRADE)
        elif name == b"upgrade":
            self._set_flag(Flags.UPGRADE)

    def _headers_complete(self) -> None:
        before_headers_complete(self._state)
        mode = after_headers_complete(self._state)
        if mode is BodyMode.UPGRADE:
            self._message_complete()
            self._remaining += self._buffer
            self._buffer.clear()
            raise HttpParseError(Errno.PAUSED_UPGRADE, "Pause on CONNECT/Upgrade")
        if mode is BodyMode.INVALID_TRANSFER_ENCODING:
            raise HttpParseError(
                Errno.INVALID_TRANSFER_ENCODING,
                "Request has invalid `Transfer-Encoding`",
            )
        if mode is BodyMode.NONE:
            self._message_complete()
        elif mode is BodyMode.CHUNKED:
            self._stage = _Stage.CHUNK_SIZE
        elif mode is BodyMode.IDENTITY:
            self._body_remaining = self._state.content_length
            self._stage = _Stage.BODY
        else:
            self._stage = _Stage.BODY_EOF

    def _parse_chunk_size(self, line: bytes) -> None:
        size = line.split(b";", 1)[0].strip(b" \t")
        if not size or any(c not in _HEX_CHARS for c in size):
            raise HttpParseError(
                Errno.INVALID_CHUNK_SIZE, "Invalid character in chunk size"
            )
        length = int(size, 16)
        if length > _U64:
            raise HttpParseError(Errno.INVALID_CHUNK_SIZE, "Chunk size overflow")
        self._state.content_length = length
        if length == 0:
            self._stage = _Stage.TRAILERS
        else:
            self._body_remaining = length
            self._stage = _Stage.CHUNK_DATA

    def _message_complete(self) -> None:
        self._method = method_name(self._state.method)
        self._complete = True
        self._keep_alive = after_message_complete(self._state)
        self._stage = _Stage.DONE