"""HTTP message semantics: error and method names, body framing, keep-alive."""

from __future__ import annotations

from dataclasses import dataclass
from enum import IntEnum, IntFlag


class Errno(IntEnum):
    """Parser error codes."""

    OK = 0
    INTERNAL = 1
    STRICT = 2
    CR_EXPECTED = 25
    LF_EXPECTED = 3
    UNEXPECTED_CONTENT_LENGTH = 4
    CLOSED_CONNECTION = 5
    INVALID_METHOD = 6
    INVALID_URL = 7
    INVALID_CONSTANT = 8
    INVALID_VERSION = 9
    INVALID_HEADER_TOKEN = 10
    INVALID_CONTENT_LENGTH = 11
    INVALID_CHUNK_SIZE = 12
    INVALID_STATUS = 13
    INVALID_EOF_STATE = 14
    INVALID_TRANSFER_ENCODING = 15
    CB_MESSAGE_BEGIN = 16
    CB_HEADERS_COMPLETE = 17
    CB_MESSAGE_COMPLETE = 18
    CB_CHUNK_HEADER = 19
    CB_CHUNK_COMPLETE = 20
    PAUSED = 21
    PAUSED_UPGRADE = 22
    PAUSED_H2_UPGRADE = 23
    USER = 24


class Flags(IntFlag):
    """What the headers of a message have announced."""

    CONNECTION_KEEP_ALIVE = 0x1
    CONNECTION_CLOSE = 0x2
    CONNECTION_UPGRADE = 0x4
    CHUNKED = 0x8
    UPGRADE = 0x10
    CONTENT_LENGTH = 0x20
    SKIPBODY = 0x40
    TRAILING = 0x80
    TRANSFER_ENCODING = 0x200


class LenientFlags(IntFlag):
    """Relaxations of strict protocol checking."""

    HEADERS = 0x1
    CHUNKED_LENGTH = 0x2
    KEEP_ALIVE = 0x4
    TRANSFER_ENCODING = 0x8


class ParserType(IntEnum):
    BOTH = 0
    REQUEST = 1
    RESPONSE = 2


class Finish(IntEnum):
    """Whether the connection may end at the current point of the message."""

    SAFE = 0
    SAFE_WITH_CB = 1
    UNSAFE = 2


class Method(IntEnum):
    """HTTP and RTSP request methods."""

    DELETE = 0
    GET = 1
    HEAD = 2
    POST = 3
    PUT = 4
    CONNECT = 5
    OPTIONS = 6
    TRACE = 7
    COPY = 8
    LOCK = 9
    MKCOL = 10
    MOVE = 11
    PROPFIND = 12
    PROPPATCH = 13
    SEARCH = 14
    UNLOCK = 15
    BIND = 16
    REBIND = 17
    UNBIND = 18
    ACL = 19
    REPORT = 20
    MKACTIVITY = 21
    CHECKOUT = 22
    MERGE = 23
    MSEARCH = 24
    NOTIFY = 25
    SUBSCRIBE = 26
    UNSUBSCRIBE = 27
    PATCH = 28
    PURGE = 29
    MKCALENDAR = 30
    LINK = 31
    UNLINK = 32
    SOURCE = 33
    PRI = 34
    DESCRIBE = 35
    ANNOUNCE = 36
    SETUP = 37
    PLAY = 38
    PAUSE = 39
    TEARDOWN = 40
    GET_PARAMETER = 41
    SET_PARAMETER = 42
    REDIRECT = 43
    RECORD = 44
    FLUSH = 45

    @property
    def wire_name(self) -> str:
        """The method as it appears on the request line."""
        return "M-SEARCH" if self is Method.MSEARCH else self.name


HTTP_METHODS = frozenset(m for m in Method if m <= Method.SOURCE)

RTSP_METHODS = frozenset(
    {Method.GET, Method.POST, Method.OPTIONS}
    | {m for m in Method if Method.DESCRIBE <= m <= Method.FLUSH}
)


class BodyMode(IntEnum):
    """How the body following the headers is delimited."""

    NONE = 0
    UPGRADE = 1
    CHUNKED = 2
    IDENTITY = 3
    IDENTITY_EOF = 4
    INVALID_TRANSFER_ENCODING = 5


@dataclass
class MessageState:
    """What is known about the message being parsed."""

    type: ParserType = ParserType.REQUEST
    method: Method = Method.GET
    http_major: int = 1
    http_minor: int = 1
    flags: Flags = Flags(0)
    lenient_flags: LenientFlags = LenientFlags(0)
    upgrade: bool = False
    finish: Finish = Finish.SAFE
    content_length: int = 0
    status_code: int = 0


def errno_name(err: int) -> str:
    """The symbolic name of an error code, such as ``HPE_OK``."""
    try:
        return "HPE_" + Errno(err).name
    except ValueError:
        raise ValueError(f"unknown error code: {err}") from None


def method_name(method: int) -> str:
    """The request-line spelling of a method."""
    try:
        return Method(method).wire_name
    except ValueError:
        raise ValueError(f"unknown method: {method}") from None


def before_headers_complete(state: MessageState) -> bool:
    """Decide whether the message is a protocol upgrade; store and return it."""
    if Flags.UPGRADE in state.flags and Flags.CONNECTION_UPGRADE in state.flags:
        # Responses only switch protocols with 101; otherwise it is informational.
        state.upgrade = (
            state.type == ParserType.REQUEST or state.status_code == 101
        )
    else:
        state.upgrade = state.method == Method.CONNECT
    return state.upgrade


def after_headers_complete(state: MessageState) -> BodyMode:
    """Decide how the message body is delimited once headers are parsed."""
    flags = state.flags
    has_body = Flags.CHUNKED in flags or state.content_length > 0
    if state.upgrade and (
        state.method == Method.CONNECT or Flags.SKIPBODY in flags or not has_body
    ):
        return BodyMode.UPGRADE

    if Flags.SKIPBODY in flags:
        return BodyMode.NONE
    if Flags.CHUNKED in flags:
        return BodyMode.CHUNKED
    if Flags.TRANSFER_ENCODING in flags:
        lenient = state.lenient_flags
        if (
            state.type == ParserType.REQUEST
            and LenientFlags.CHUNKED_LENGTH not in lenient
            and LenientFlags.TRANSFER_ENCODING not in lenient
        ):
            return BodyMode.INVALID_TRANSFER_ENCODING
        return BodyMode.IDENTITY_EOF
    if Flags.CONTENT_LENGTH not in flags:
        return BodyMode.IDENTITY_EOF if message_needs_eof(state) else BodyMode.NONE
    if state.content_length == 0:
        return BodyMode.NONE
    return BodyMode.IDENTITY


def after_message_complete(state: MessageState) -> bool:
    """Reset per-message state; return whether the connection may be reused."""
    keep_alive = should_keep_alive(state)
    state.finish = Finish.SAFE
    state.flags = Flags(0)
    return keep_alive


def message_needs_eof(state: MessageState) -> bool:
    """Whether the message body runs until the connection closes."""
    if state.type == ParserType.REQUEST:
        return False
    flags = state.flags
    if (
        state.status_code // 100 == 1
        or state.status_code in (204, 304)
        or Flags.SKIPBODY in flags
    ):
        return False
    if Flags.TRANSFER_ENCODING in flags and Flags.CHUNKED not in flags:
        return True
    if flags & (Flags.CHUNKED | Flags.CONTENT_LENGTH):
        return False
    return True


def should_keep_alive(state: MessageState) -> bool:
    """Whether another message may follow on the same connection."""
    if state.http_major > 0 and state.http_minor > 0:
        if Flags.CONNECTION_CLOSE in state.flags:
            return False
    elif Flags.CONNECTION_KEEP_ALIVE not in state.flags:
        return False
    return not message_needs_eof(state)