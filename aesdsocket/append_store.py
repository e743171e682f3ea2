# append_store.py

import os
from contextlib import contextmanager
from typing import BinaryIO, Iterator

from loguru import logger


class StoreWriteError(OSError):
    """Raised when fewer bytes than requested reach the store."""


class AppendStore:
    """
    Append-only file holding every fully received message, in arrival order.

    The backing file is created on the first append and only ever removed
    as a whole by `delete`.
    """

    def __init__(self, path: str, chunk_size: int = 64):
        self.path = path
        self.chunk_size = chunk_size

    @contextmanager
    def open_for_append(self) -> Iterator[BinaryIO]:
        """Open (creating if needed) the store for appending raw bytes."""
        fd = os.open(self.path, os.O_CREAT | os.O_WRONLY | os.O_APPEND, 0o644)
        with os.fdopen(fd, "ab", buffering=0) as f:
            yield f

    @staticmethod
    def append(f: BinaryIO, data: bytes) -> None:
        written = f.write(data)
        if written != len(data):
            raise StoreWriteError(f"Short write to store: {written} of {len(data)} bytes")

    def iter_chunks(self) -> Iterator[bytes]:
        """Yield the whole current content from the start, chunk by chunk."""
        with open(self.path, "rb") as f:
            while True:
                chunk = f.read(self.chunk_size)
                if not chunk:
                    break
                yield chunk

    def read_all(self) -> bytes:
        if not self.exists():
            return b""
        return b"".join(self.iter_chunks())

    def exists(self) -> bool:
        return os.path.exists(self.path)

    def delete(self) -> bool:
        """Remove the backing file. Returns False (and logs) on failure."""
        try:
            os.remove(self.path)
        except FileNotFoundError:
            logger.debug(f"{self.path} was never created")
            return True
        except OSError as e:
            logger.error(f"Could not delete out file: {e}")
            return False
        logger.info(f"Deleted {self.path}")
        return True
