import socket
import threading

import pytest

from airmirror.http_response import HttpResponse
from airmirror.httpd import HttpCallbacks, HttpServer
from airmirror.logger import Logger, LogLevel

TIMEOUT = 5.0


class Recorder:
    def __init__(self, accept=True, disconnect=False, reply=True):
        self.accept = accept
        self.disconnect = disconnect
        self.reply = reply
        self.inits = []
        self.requests = []
        self.destroyed = []
        self.responses = []
        self.init_event = threading.Event()
        self.request_event = threading.Event()
        self.destroy_event = threading.Event()
        self._counter = 0

    def conn_init(self, local, remote):
        self.inits.append((local, remote))
        self.init_event.set()
        if not self.accept:
            return None
        self._counter += 1
        return f"conn-{self._counter}"

    def conn_request(self, user_data, request):
        self.requests.append((user_data, request))
        self.request_event.set()
        if not self.reply:
            return None
        response = HttpResponse("RTSP/1.0", 200, "OK")
        cseq = request.header("CSeq")
        if cseq is not None:
            response.add_header("CSeq", cseq)
        response.finish(b"hello")
        response.disconnect = self.disconnect
        self.responses.append(response)
        return response

    def conn_destroy(self, user_data):
        self.destroyed.append(user_data)
        self.destroy_event.set()

    def callbacks(self):
        return HttpCallbacks(self.conn_init, self.conn_request, self.conn_destroy)


@pytest.fixture
def messages():
    return []


@pytest.fixture
def logger(messages):
    return Logger(LogLevel.DEBUG, lambda level, text: messages.append((level, text)))


def make_server(logger, recorder, max_connections=4):
    return HttpServer(logger, recorder.callbacks(), max_connections)


def connect(port):
    client = socket.create_connection(("127.0.0.1", port), timeout=TIMEOUT)
    client.settimeout(TIMEOUT)
    return client


def recv_until_eof(client):
    chunks = []
    while True:
        try:
            chunk = client.recv(4096)
        except ConnectionResetError:
            break
        if not chunk:
            break
        chunks.append(chunk)
    return b"".join(chunks)


def recv_exact(client, length):
    data = b""
    while len(data) < length:
        chunk = client.recv(length - len(data))
        if not chunk:
            break
        data += chunk
    return data


REQUEST = b"OPTIONS * RTSP/1.0\r\nCSeq: 3\r\n\r\n"


def test_rejects_non_positive_max_connections(logger):
    recorder = Recorder()
    with pytest.raises(ValueError):
        HttpServer(logger, recorder.callbacks(), 0)


def test_start_and_stop_change_running_state(logger):
    server = make_server(logger, Recorder())
    assert server.is_running() is False
    port = server.start(0)
    try:
        assert port > 0
        assert server.is_running() is True
        assert server.port == port
    finally:
        server.stop()
    assert server.is_running() is False


def test_second_start_keeps_the_same_port(logger):
    with make_server(logger, Recorder()) as server:
        first = server.start(0)
        assert server.start(0) == first


def test_request_round_trip(logger):
    recorder = Recorder()
    with make_server(logger, recorder) as server:
        port = server.start(0)
        with connect(port) as client:
            client.sendall(REQUEST)
            assert recorder.request_event.wait(TIMEOUT)
            expected = recorder.responses[0].data
            assert recv_exact(client, len(expected)) == expected

    user_data, request = recorder.requests[0]
    assert user_data == "conn-1"
    assert request.method == "OPTIONS"
    assert request.url == "*"
    assert request.header("CSeq") == "3"
    assert expected.startswith(b"RTSP/1.0 200 OK\r\nCSeq: 3\r\n")
    assert expected.endswith(b"\r\n\r\nhello")


def test_conn_init_receives_raw_loopback_addresses(logger):
    recorder = Recorder()
    with make_server(logger, recorder) as server:
        port = server.start(0)
        with connect(port):
            assert recorder.init_event.wait(TIMEOUT)
    local, remote = recorder.inits[0]
    assert local == socket.inet_aton("127.0.0.1")
    assert remote == socket.inet_aton("127.0.0.1")


def test_request_split_over_several_sends(logger):
    recorder = Recorder()
    with make_server(logger, recorder) as server:
        port = server.start(0)
        with connect(port) as client:
            client.sendall(REQUEST[:10])
            assert not recorder.request_event.wait(0.2)
            client.sendall(REQUEST[10:])
            assert recorder.request_event.wait(TIMEOUT)
            expected = recorder.responses[0].data
            assert recv_exact(client, len(expected)) == expected
    assert len(recorder.requests) == 1


def test_disconnect_response_closes_connection(logger):
    recorder = Recorder(disconnect=True)
    with make_server(logger, recorder) as server:
        port = server.start(0)
        with connect(port) as client:
            client.sendall(REQUEST)
            received = recv_until_eof(client)
            assert recorder.destroy_event.wait(TIMEOUT)
    assert received == recorder.responses[0].data
    assert recorder.destroyed == ["conn-1"]


def test_refused_connection_is_closed_without_destroy(logger, messages):
    recorder = Recorder(accept=False)
    with make_server(logger, recorder) as server:
        port = server.start(0)
        with connect(port) as client:
            assert recv_until_eof(client) == b""
        assert server.open_connections == 0
    assert recorder.destroyed == []
    assert any(
        "Error initializing HTTP request handler" in text for _, text in messages
    )


def test_parse_error_removes_connection(logger, messages):
    recorder = Recorder()
    with make_server(logger, recorder) as server:
        port = server.start(0)
        with connect(port) as client:
            client.sendall(b"BOGUS / HTTP/1.1\r\n\r\n")
            assert recorder.destroy_event.wait(TIMEOUT)
            assert recv_until_eof(client) == b""
    assert recorder.requests == []
    assert recorder.destroyed == ["conn-1"]
    assert any("HPE_INVALID_METHOD" in text for _, text in messages)


def test_missing_response_is_logged_and_connection_kept(logger, messages):
    recorder = Recorder(reply=False)
    with make_server(logger, recorder) as server:
        port = server.start(0)
        with connect(port) as client:
            client.sendall(REQUEST)
            assert recorder.request_event.wait(TIMEOUT)
            assert not recorder.destroy_event.wait(0.2)
            assert server.open_connections == 1
    assert any("didn't get response" in text for _, text in messages)


def test_client_close_destroys_connection(logger):
    recorder = Recorder()
    with make_server(logger, recorder) as server:
        port = server.start(0)
        client = connect(port)
        assert recorder.init_event.wait(TIMEOUT)
        client.close()
        assert recorder.destroy_event.wait(TIMEOUT)
        assert server.is_running() is True
    assert recorder.destroyed == ["conn-1"]


def test_stop_removes_open_connections(logger):
    recorder = Recorder()
    server = make_server(logger, recorder)
    port = server.start(0)
    with connect(port) as client:
        assert recorder.init_event.wait(TIMEOUT)
        server.stop()
        assert recv_until_eof(client) == b""
    assert recorder.destroyed == ["conn-1"]
    assert server.open_connections == 0


def test_server_can_restart_after_stop(logger):
    recorder = Recorder()
    server = make_server(logger, recorder)
    server.start(0)
    server.stop()
    port = server.start(0)
    try:
        with connect(port) as client:
            client.sendall(REQUEST)
            assert recorder.request_event.wait(TIMEOUT)
            expected = recorder.responses[0].data
            assert recv_exact(client, len(expected)) == expected
    finally:
        server.close()
    assert server.is_running() is False