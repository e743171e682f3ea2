# connection.py

import socket
from dataclasses import dataclass
from typing import Optional

from loguru import logger

from aesdsocket.append_store import AppendStore

DELIMITER = b"\n"


class ExchangeError(Exception):
    """Aborts the current exchange; the connection is closed without a response."""


class ProtocolViolation(ExchangeError):
    """The delimiter showed up somewhere other than the end of a chunk."""


@dataclass
class ConnectionContext:
    sock: socket.socket
    peer: Optional[str] = None

    @classmethod
    def accept(cls, sock: socket.socket) -> "ConnectionContext":
        try:
            address = sock.getpeername()
        except OSError as e:
            logger.error(f"Failed to get peer info: {e}")
            return cls(sock=sock)
        # Unix socket peers have no (host, port) tuple
        peer = address[0] if isinstance(address, tuple) else str(address)
        return cls(sock=sock, peer=peer)


class ConnectionHandler:
    """Runs one receive-then-respond exchange per accepted connection."""

    def __init__(self, store: AppendStore, buffer_size: int = 64):
        self.store = store
        self.buffer_size = buffer_size

    def _read_chunk(self, sock: socket.socket) -> bytes:
        try:
            chunk = sock.recv(self.buffer_size)
        except OSError as e:
            raise ExchangeError(f"Failed to read data from client: {e}") from e
        if not chunk:
            raise ExchangeError("No data received from client")
        return chunk

    @staticmethod
    def _is_final_chunk(chunk: bytes) -> bool:
        """
        True if the chunk ends the message.

        A delimiter anywhere but the last byte means the client sent data past
        the end of its message, which is rejected outright.
        """
        pos = chunk.find(DELIMITER)
        if pos == -1:
            return False
        if pos != len(chunk) - 1:
            raise ProtocolViolation("Unexpected data after new-line")
        return True

    def receive(self, sock: socket.socket) -> bool:
        """
        Read one message and append it to the store.

        Chunks are collected until one ends in the delimiter, then the whole
        message goes to the store in one write, so an aborted exchange leaves
        nothing behind. The price is that a client which never sends the
        delimiter keeps growing the in-memory buffer until it disconnects.
        Returns True once the message has been stored.
        """
        try:
            with self.store.open_for_append() as out:
                message = bytearray()
                while True:
                    chunk = self._read_chunk(sock)
                    final = self._is_final_chunk(chunk)
                    message += chunk
                    if final:
                        break
                try:
                    self.store.append(out, bytes(message))
                except OSError as e:
                    raise ExchangeError(f"Error writing to out file: {e}") from e
                return True
        except ExchangeError as e:
            logger.error(str(e))
            return False
        except OSError as e:
            logger.error(f"Could not open out file: {e}")
            return False

    def dispatch(self, sock: socket.socket) -> bool:
        """Stream the full store content back to the client."""
        try:
            for chunk in self.store.iter_chunks():
                sent = sock.send(chunk)
                if sent != len(chunk):
                    logger.error("Failed to send complete data")
                    return False
        except OSError as e:
            logger.error(f"Failed to send store content: {e}")
            return False
        return True

    def converse(self, sock: socket.socket) -> None:
        """Handle a full exchange and always close the connection afterwards."""
        conn = ConnectionContext.accept(sock)
        if conn.peer is not None:
            logger.info(f"Accepted connection from {conn.peer}")

        try:
            if self.receive(conn.sock):
                self.dispatch(conn.sock)
        finally:
            close_socket(conn.sock)
            logger.info(f"Closed connection from {conn.peer or ''}")


def close_socket(sock: socket.socket) -> None:
    """Shut down both directions and close, logging failures."""
    try:
        sock.shutdown(socket.SHUT_RDWR)
    except OSError as e:
        logger.error(f"Socket shutdown failed: {e}")
    try:
        sock.close()
    except OSError as e:
        logger.error(f"Socket close failed: {e}")
