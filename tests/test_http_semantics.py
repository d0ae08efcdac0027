import pytest

from airmirror.http_semantics import (
    BodyMode,
    Errno,
    Finish,
    Flags,
    LenientFlags,
    MessageState,
    Method,
    ParserType,
    after_headers_complete,
    after_message_complete,
    before_headers_complete,
    errno_name,
    message_needs_eof,
    method_name,
    should_keep_alive,
)


def response(**kwargs):
    return MessageState(type=ParserType.RESPONSE, **kwargs)


@pytest.mark.parametrize(
    "err, name",
    [
        (Errno.OK, "HPE_OK"),
        (Errno.INVALID_EOF_STATE, "HPE_INVALID_EOF_STATE"),
        (25, "HPE_CR_EXPECTED"),
        (Errno.USER, "HPE_USER"),
    ],
)
def test_errno_name(err, name):
    assert errno_name(err) == name


def test_errno_name_unknown():
    with pytest.raises(ValueError):
        errno_name(99)


@pytest.mark.parametrize(
    "method, name",
    [
        (Method.MSEARCH, "M-SEARCH"),
        (Method.GET_PARAMETER, "GET_PARAMETER"),
        (Method.SETUP, "SETUP"),
        (1, "GET"),
    ],
)
def test_method_name(method, name):
    assert method_name(method) == name


def test_method_name_unknown():
    with pytest.raises(ValueError):
        method_name(46)


def test_method_names_are_unique():
    names = [method_name(m) for m in Method]
    assert len(set(names)) == len(names)


def test_upgrade_request():
    state = MessageState(flags=Flags.UPGRADE | Flags.CONNECTION_UPGRADE)
    assert before_headers_complete(state) is True
    assert state.upgrade is True


@pytest.mark.parametrize("status, expected", [(101, True), (200, False)])
def test_upgrade_response_depends_on_status(status, expected):
    state = response(
        status_code=status, flags=Flags.UPGRADE | Flags.CONNECTION_UPGRADE
    )
    assert before_headers_complete(state) is expected


def test_connect_is_upgrade():
    state = MessageState(method=Method.CONNECT)
    assert before_headers_complete(state) is True
    state = MessageState(method=Method.GET)
    assert before_headers_complete(state) is False


def test_upgrade_without_body_exits():
    state = MessageState(upgrade=True)
    assert after_headers_complete(state) is BodyMode.UPGRADE


def test_skipbody():
    state = response(status_code=200, flags=Flags.SKIPBODY | Flags.CONTENT_LENGTH,
                     content_length=10)
    assert after_headers_complete(state) is BodyMode.NONE


def test_chunked_ignores_content_length():
    state = MessageState(flags=Flags.CHUNKED | Flags.CONTENT_LENGTH, content_length=5)
    assert after_headers_complete(state) is BodyMode.CHUNKED


def test_transfer_encoding_request_is_invalid():
    state = MessageState(flags=Flags.TRANSFER_ENCODING)
    assert after_headers_complete(state) is BodyMode.INVALID_TRANSFER_ENCODING


@pytest.mark.parametrize(
    "lenient", [LenientFlags.CHUNKED_LENGTH, LenientFlags.TRANSFER_ENCODING]
)
def test_transfer_encoding_request_lenient(lenient):
    state = MessageState(flags=Flags.TRANSFER_ENCODING, lenient_flags=lenient)
    assert after_headers_complete(state) is BodyMode.IDENTITY_EOF


def test_transfer_encoding_response_reads_to_eof():
    state = response(status_code=200, flags=Flags.TRANSFER_ENCODING)
    assert after_headers_complete(state) is BodyMode.IDENTITY_EOF


def test_content_length_modes():
    state = MessageState(flags=Flags.CONTENT_LENGTH, content_length=0)
    assert after_headers_complete(state) is BodyMode.NONE
    state = MessageState(flags=Flags.CONTENT_LENGTH, content_length=12)
    assert after_headers_complete(state) is BodyMode.IDENTITY


def test_no_length_request_has_no_body():
    assert after_headers_complete(MessageState()) is BodyMode.NONE


def test_no_length_response_reads_to_eof():
    state = response(status_code=200)
    assert after_headers_complete(state) is BodyMode.IDENTITY_EOF


def test_message_needs_eof():
    assert message_needs_eof(MessageState()) is False
    assert message_needs_eof(response(status_code=204)) is False
    assert message_needs_eof(response(status_code=304)) is False
    assert message_needs_eof(response(status_code=100)) is False
    assert message_needs_eof(response(status_code=200)) is True
    assert message_needs_eof(response(status_code=200, flags=Flags.CHUNKED)) is False
    assert message_needs_eof(
        response(status_code=200, flags=Flags.TRANSFER_ENCODING)
    ) is True


def test_should_keep_alive_http11():
    assert should_keep_alive(MessageState()) is True
    assert should_keep_alive(MessageState(flags=Flags.CONNECTION_CLOSE)) is False


def test_should_keep_alive_http10():
    assert should_keep_alive(MessageState(http_minor=0)) is False
    state = MessageState(http_minor=0, flags=Flags.CONNECTION_KEEP_ALIVE)
    assert should_keep_alive(state) is True


def test_keep_alive_false_when_response_needs_eof():
    assert should_keep_alive(response(status_code=200)) is False


def test_after_message_complete_resets_state():
    state = MessageState(flags=Flags.CONNECTION_CLOSE, finish=Finish.UNSAFE)
    assert after_message_complete(state) is False
    assert state.flags == Flags(0)
    assert state.finish is Finish.SAFE
    assert after_message_complete(state) is True