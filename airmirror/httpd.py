"""A small threaded server that feeds HTTP/RTSP requests to callbacks."""

from __future__ import annotations

import select
import socket
import threading
from dataclasses import dataclass, field
from typing import Any, Callable, List, Optional

from .http_request import HttpParseError, HttpRequest
from .http_response import HttpResponse
from .logger import Logger, LogLevel
from .netutils import get_address, init_socket

_BACKLOG = 5
_RECV_SIZE = 1024
_SELECT_TIMEOUT = 1.005

ConnInit = Callable[[Optional[bytes], Optional[bytes]], Any]
ConnRequest = Callable[[Any, HttpRequest], Optional[HttpResponse]]
ConnDestroy = Callable[[Any], None]


@dataclass
class HttpCallbacks:
    """Hooks the server calls for each connection.

    ``conn_init`` receives the raw local and remote addresses and returns the
    per-connection handler state, or None to refuse the connection.
    ``conn_request`` receives that state and a complete request and returns
    the response to send, or None. ``conn_destroy`` is called when an
    accepted connection goes away.
    """

    conn_init: ConnInit
    conn_request: ConnRequest
    conn_destroy: ConnDestroy


@dataclass
class _Connection:
    sock: socket.socket
    user_data: Any
    request: Optional[HttpRequest] = field(default=None)


class HttpServer:
    """Accepts TCP connections and parses requests on a background thread."""

    def __init__(
        self, logger: Logger, callbacks: HttpCallbacks, max_connections: int
    ) -> None:
        if logger is None:
            raise ValueError("a logger is required")
        if callbacks is None:
            raise ValueError("callbacks are required")
        if max_connections <= 0:
            raise ValueError(f"max_connections must be positive: {max_connections}")
        self._logger = logger
        self._callbacks = callbacks
        self._max_connections = max_connections
        self._connections: List[_Connection] = []
        self._lock = threading.Lock()
        self._running = False
        self._joined = True
        self._thread: Optional[threading.Thread] = None
        self._server: Optional[socket.socket] = None
        self._wake_r: Optional[socket.socket] = None
        self._wake_w: Optional[socket.socket] = None
        self._port: Optional[int] = None

    @property
    def max_connections(self) -> int:
        return self._max_connections

    @property
    def open_connections(self) -> int:
        return len(self._connections)

    @property
    def port(self) -> Optional[int]:
        """The port listened on since the last start, if any."""
        return self._port

    def start(self, port: int = 0) -> int:
        """Listen on ``port`` (0 for any) and return the port actually bound.

        If the server is already running, the current port is returned.
        Raises OSError if the listening socket cannot be set up.
        """
        with self._lock:
            if self._running or not self._joined:
                return self._port
            try:
                server, bound = init_socket(port, False, False)
            except OSError as exc:
                self._logger.log(
                    LogLevel.ERR, "Error initialising socket %d", exc.errno or 0
                )
                raise
            try:
                server.listen(_BACKLOG)
            except OSError:
                self._logger.log(LogLevel.ERR, "Error listening to IPv4 socket")
                server.close()
                raise
            self._logger.log(LogLevel.INFO, "Initialized server socket(s)")

            self._server = server
            self._port = bound
            self._wake_r, self._wake_w = socket.socketpair()
            self._running = True
            self._joined = False
            self._thread = threading.Thread(
                target=self._serve_forever, name="httpd", daemon=True
            )
            self._thread.start()
            return bound

    def is_running(self) -> bool:
        with self._lock:
            return self._running or not self._joined

    def stop(self) -> None:
        """Stop serving, close every connection and wait for the thread."""
        with self._lock:
            if self._joined:
                return
            self._running = False
            thread = self._thread
        self._wake()
        if thread is not None:
            thread.join()
        with self._lock:
            self._joined = True
            self._thread = None

    def close(self) -> None:
        self.stop()

    def __enter__(self) -> "HttpServer":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    # Background thread

    def _wake(self) -> None:
        wake = self._wake_w
        if wake is None:
            return
        try:
            wake.send(b"\0")
        except OSError:
            pass

    def _serve_forever(self) -> None:
        try:
            self._loop()
        finally:
            self._shutdown()

    def _loop(self) -> None:
        while True:
            with self._lock:
                if not self._running:
                    break

            readers: List[socket.socket] = [self._wake_r]
            accepting = (
                self._server is not None
                and len(self._connections) < self._max_connections
            )
            if accepting:
                readers.append(self._server)
            readers.extend(conn.sock for conn in self._connections)

            try:
                ready, _, _ = select.select(readers, [], [], _SELECT_TIMEOUT)
            except (OSError, ValueError):
                self._logger.log(LogLevel.ERR, "httpd error in select")
                break
            if not ready:
                continue
            ready_set = set(ready)

            if self._wake_r in ready_set:
                try:
                    self._wake_r.recv(64)
                except OSError:
                    pass
                continue

            if accepting and self._server in ready_set:
                try:
                    accepted = self._accept()
                except OSError:
                    self._logger.log(LogLevel.ERR, "httpd error in accept ipv4")
                    break
                if not accepted:
                    continue

            for conn in list(self._connections):
                if conn.sock in ready_set:
                    self._receive(conn)

    def _accept(self) -> bool:
        """Accept one client; return False if it was refused."""
        sock, remote_addr = self._server.accept()
        try:
            local_addr = sock.getsockname()
        except OSError:
            self._close_socket(sock, socket.SHUT_RDWR)
            return False

        self._logger.log(
            LogLevel.INFO, "Accepted %s client on socket %d", "IPv4", sock.fileno()
        )
        local = get_address(local_addr)
        remote = get_address(remote_addr)

        if len(self._connections) >= self._max_connections:
            self._logger.log(LogLevel.INFO, "Max connections reached")
            self._close_socket(sock, socket.SHUT_RDWR)
            return False
        user_data = self._callbacks.conn_init(local, remote)
        if user_data is None:
            self._logger.log(LogLevel.ERR, "Error initializing HTTP request handler")
            self._close_socket(sock, socket.SHUT_RDWR)
            return False

        self._connections.append(_Connection(sock, user_data))
        return True

    def _receive(self, conn: _Connection) -> None:
        if conn.request is None:
            conn.request = HttpRequest()

        fd = conn.sock.fileno()
        self._logger.log(LogLevel.DEBUG, "httpd receiving on socket %d", fd)
        try:
            data = conn.sock.recv(_RECV_SIZE)
        except OSError:
            data = b""
        if not data:
            self._logger.log(LogLevel.INFO, "Connection closed for socket %d", fd)
            self._remove(conn)
            return

        try:
            conn.request.add_data(data)
        except HttpParseError as exc:
            self._logger.log(LogLevel.ERR, "httpd error in parsing: %s", exc.name)
            self._remove(conn)
            return

        if not conn.request.complete:
            self._logger.log(
                LogLevel.DEBUG, "Request not complete, waiting for more data..."
            )
            return

        request, conn.request = conn.request, None
        response = self._callbacks.conn_request(conn.user_data, request)
        if response is None:
            self._logger.log(LogLevel.WARNING, "httpd didn't get response")
            return

        try:
            conn.sock.sendall(response.data)
        except OSError:
            self._logger.log(LogLevel.ERR, "httpd error in sending data")
        if response.disconnect:
            self._logger.log(LogLevel.INFO, "Disconnecting on software request")
            self._remove(conn)

    def _remove(self, conn: _Connection) -> None:
        conn.request = None
        if conn in self._connections:
            self._connections.remove(conn)
        self._callbacks.conn_destroy(conn.user_data)
        self._close_socket(conn.sock, socket.SHUT_WR)

    @staticmethod
    def _close_socket(sock: socket.socket, how: int) -> None:
        try:
            sock.shutdown(how)
        except OSError:
            pass
        sock.close()

    def _shutdown(self) -> None:
        for conn in list(self._connections):
            self._logger.log(
                LogLevel.INFO, "Removing connection for socket %d", conn.sock.fileno()
            )
            self._remove(conn)

        if self._server is not None:
            self._close_socket(self._server, socket.SHUT_RDWR)
            self._server = None

        with self._lock:
            self._running = False
            wake_r, wake_w = self._wake_r, self._wake_w
            self._wake_r = self._wake_w = None
        for sock in (wake_r, wake_w):
            if sock is not None:
                sock.close()

        self._logger.log(LogLevel.DEBUG, "Exiting HTTP thread")