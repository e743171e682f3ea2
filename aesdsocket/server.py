# server.py

import signal
import socket
import threading
from typing import Optional

from loguru import logger

from aesdsocket.append_store import AppendStore
from aesdsocket.config import ServerConfig
from aesdsocket.connection import ConnectionHandler, close_socket


class SetupError(Exception):
    """A fatal failure while bringing the server up."""


class SignalController:
    """Turns SIGINT/SIGTERM into a termination request for the accept loop."""

    SIGNALS = (signal.SIGINT, signal.SIGTERM)

    def __init__(self):
        self._terminate = threading.Event()
        self.received: Optional[int] = None
        self._previous = {}

    def _handle(self, signum, frame):
        # Only record and flag; the accept loop does the logging
        self.received = signum
        self._terminate.set()

    def install(self) -> None:
        try:
            for signum in self.SIGNALS:
                self._previous[signum] = signal.signal(signum, self._handle)
        except (OSError, ValueError) as e:
            raise SetupError(f"Failed to set up signal handler: {e}") from e

    def restore(self) -> None:
        for signum, handler in self._previous.items():
            signal.signal(signum, handler)
        self._previous.clear()

    def request_termination(self) -> None:
        self._terminate.set()

    @property
    def terminated(self) -> bool:
        return self._terminate.is_set()


def create_listener(config: ServerConfig) -> socket.socket:
    """Create a loopback stream socket, bound and listening."""
    try:
        sock = socket.socket(config.family, socket.SOCK_STREAM)
    except OSError as e:
        raise SetupError(f"Server socket create failed: {e}") from e

    steps = (
        ("Socket option setting failed",
         lambda: sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)),
        ("Server socket bind failed", lambda: sock.bind((config.host, config.port))),
        ("Server socket listen failed", lambda: sock.listen(config.backlog)),
    )
    for message, step in steps:
        try:
            step()
        except OSError as e:
            sock.close()
            raise SetupError(f"{message}: {e}") from e
    return sock


class SocketServer:
    def __init__(
        self,
        config: ServerConfig,
        store: Optional[AppendStore] = None,
        controller: Optional[SignalController] = None,
    ):
        self.config = config
        self.store = store or AppendStore(config.data_file, config.buffer_size)
        self.controller = controller or SignalController()
        self.handler = ConnectionHandler(self.store, config.buffer_size)
        self.socket: Optional[socket.socket] = None

    @property
    def address(self):
        return self.socket.getsockname()

    def listen(self) -> None:
        self.socket = create_listener(self.config)
        host, port = self.address[:2]
        logger.info(f"Listening at {host}:{port}")

    def adopt_listener(self, fd: int) -> None:
        """Take over a listening socket inherited from the launching process."""
        try:
            self.socket = socket.socket(fileno=fd)
        except OSError as e:
            raise SetupError(f"Inherited socket is unusable: {e}") from e
        logger.info(f"Serving inherited socket at {self.address[0]}:{self.address[1]}")

    def install_signal_handlers(self) -> None:
        self.controller.install()

    def _accept(self) -> Optional[socket.socket]:
        try:
            conn, _ = self.socket.accept()
        except socket.timeout:
            return None
        except OSError as e:
            if not self.controller.terminated:
                logger.error(f"Failed to accept client connection: {e}")
            return None
        # No timeouts on client I/O
        conn.settimeout(None)
        return conn

    def serve(self) -> None:
        """
        Accept and handle connections one at a time until termination is
        requested, then shut down.

        The listening socket times out every `accept_poll_interval` seconds so
        a signal that arrives while accept is blocked is noticed promptly.
        """
        self.socket.settimeout(self.config.accept_poll_interval)
        while not self.controller.terminated:
            conn = self._accept()
            if conn is not None:
                self.handler.converse(conn)

        if self.controller.received is not None:
            logger.info(f"Caught {signal.Signals(self.controller.received).name}, exiting")
        else:
            logger.info("Termination requested, exiting")
        self.shutdown()

    def release(self) -> None:
        """Drop this process's handle without shutting down the shared socket."""
        if self.socket is not None:
            self.socket.close()
            self.socket = None

    def close(self) -> None:
        if self.socket is not None:
            close_socket(self.socket)
            self.socket = None

    def shutdown(self) -> None:
        self.close()
        self.store.delete()
