"""
Shared fixtures for the aesdsocket tests.
"""
import socket
import threading

import pytest
from loguru import logger

from aesdsocket.append_store import AppendStore
from aesdsocket.config import ServerConfig
from aesdsocket.server import SocketServer


@pytest.fixture
def data_file(tmp_path):
    return str(tmp_path / "aesdsocketdata")


@pytest.fixture
def store(data_file):
    return AppendStore(data_file, chunk_size=64)


@pytest.fixture
def config(data_file):
    return ServerConfig(port=0, data_file=data_file, accept_poll_interval=0.05)


@pytest.fixture
def log_messages():
    """Capture loguru messages emitted during a test."""
    messages = []
    handler_id = logger.add(lambda m: messages.append(m.record["message"]), level="DEBUG")
    yield messages
    logger.remove(handler_id)


class ServerThread:
    """Runs SocketServer.serve in a background thread."""

    def __init__(self, server: SocketServer):
        self.server = server
        self.address = server.address[:2]
        self.thread = threading.Thread(target=server.serve, daemon=True)

    def start(self):
        self.thread.start()

    def stop(self, timeout: float = 5):
        self.server.controller.request_termination()
        self.thread.join(timeout)


@pytest.fixture
def running_server(config):
    server = SocketServer(config)
    server.listen()
    # Signal handlers can only be installed from the main thread
    server.install_signal_handlers()
    runner = ServerThread(server)
    runner.start()
    yield runner
    runner.stop()
    server.controller.restore()


def exchange(address, payload: bytes, timeout: float = 5) -> bytes:
    """Send one payload and read the response until the server closes."""
    with socket.create_connection(address, timeout=timeout) as sock:
        sock.sendall(payload)
        return read_until_closed(sock)


def read_until_closed(sock: socket.socket) -> bytes:
    chunks = []
    while True:
        data = sock.recv(4096)
        if not data:
            break
        chunks.append(data)
    return b"".join(chunks)
