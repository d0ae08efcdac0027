"""Building HTTP/RTSP response messages."""

from __future__ import annotations

from typing import Optional, Union

Text = Union[str, bytes]


def _as_bytes(value: Text) -> bytes:
    return value.encode("utf-8") if isinstance(value, str) else bytes(value)


class HttpResponse:
    """An HTTP-style response built up header by header.

    The wire bytes are available through ``data`` once ``finish`` is called.
    """

    def __init__(self, protocol: Text, code: int, message: Text) -> None:
        if not 100 <= code < 1000:
            raise ValueError(f"status code out of range: {code}")
        self._buffer = bytearray()
        self._complete = False
        self._disconnect = False
        self._buffer += _as_bytes(protocol) + b" " + str(code).encode("ascii")
        self._buffer += b" " + _as_bytes(message) + b"\r\n"

    def add_header(self, name: Text, value: Text) -> None:
        self._buffer += _as_bytes(name) + b": " + _as_bytes(value) + b"\r\n"

    def finish(self, data: Optional[bytes] = None) -> None:
        """End the headers and append ``data`` as the body, if any."""
        if data:
            body = bytes(data)
            self._buffer += b"Content-Length: " + str(len(body)).encode("ascii")
            self._buffer += b"\r\n\r\n" + body
        else:
            self._buffer += b"\r\n"
        self._complete = True

    @property
    def complete(self) -> bool:
        return self._complete

    @property
    def disconnect(self) -> bool:
        """Whether the connection is to be closed after sending."""
        return self._disconnect

    @disconnect.setter
    def disconnect(self, value) -> None:
        self._disconnect = bool(value)

    @property
    def data(self) -> bytes:
        if not self._complete:
            raise RuntimeError("response is not finished")
        return bytes(self._buffer)