"""Socket helpers: listening sockets and raw address extraction."""

from __future__ import annotations

import socket
from typing import Optional, Tuple, Union

_IPV4_MAPPED_PREFIX = bytes(10) + b"\xff\xff"

Address = Union[str, Tuple]


def get_address(address: Address) -> Optional[bytes]:
    """Return the raw bytes of an IP address, or None if it is not one.

    ``address`` may be a socket address tuple or a bare host string.
    IPv4 addresses mapped into IPv6 come back as their four IPv4 bytes.
    """
    host = address[0] if isinstance(address, tuple) else address
    if not isinstance(host, str):
        return None
    try:
        return socket.inet_pton(socket.AF_INET, host)
    except OSError:
        pass
    try:
        raw = socket.inet_pton(socket.AF_INET6, host.split("%", 1)[0])
    except OSError:
        return None
    if raw.startswith(_IPV4_MAPPED_PREFIX):
        return raw[len(_IPV4_MAPPED_PREFIX):]
    return raw


def init_socket(
    port: int = 0, use_ipv6: bool = False, use_udp: bool = False
) -> Tuple[socket.socket, int]:
    """Create a socket bound to all interfaces on ``port``.

    Returns the socket and the port it was actually bound to. Raises
    OSError if the socket cannot be set up.
    """
    family = socket.AF_INET6 if use_ipv6 else socket.AF_INET
    kind = socket.SOCK_DGRAM if use_udp else socket.SOCK_STREAM
    proto = socket.IPPROTO_UDP if use_udp else socket.IPPROTO_TCP

    sock = socket.socket(family, kind, proto)
    try:
        sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
        if use_ipv6:
            try:
                sock.setsockopt(socket.IPPROTO_IPV6, socket.IPV6_V6ONLY, 1)
            except (OSError, AttributeError):
                pass
            sock.bind(("::", port))
        else:
            sock.bind(("0.0.0.0", port))
        bound_port = sock.getsockname()[1]
    except BaseException:
        sock.close()
        raise
    return sock, bound_port


def parse_address(family: int, src: str) -> Tuple:
    """Parse a numeric address of ``family`` into a socket address tuple.

    Raises ValueError for an unsupported family or an unparsable address.
    """
    if family not in (socket.AF_INET, socket.AF_INET6):
        raise ValueError(f"unsupported address family: {family}")
    if not src:
        raise ValueError("no address given")
    try:
        results = socket.getaddrinfo(
            src, None, family, 0, 0, socket.AI_PASSIVE | socket.AI_NUMERICHOST
        )
    except socket.gaierror as exc:
        raise ValueError(f"cannot parse address {src!r}: {exc}") from exc
    for result_family, _, _, _, sockaddr in results:
        if result_family == family:
            return sockaddr
    raise ValueError(f"no address of the requested family for {src!r}")