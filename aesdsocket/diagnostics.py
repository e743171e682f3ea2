# diagnostics.py

import logging.handlers
import os
import sys
from typing import Optional, Tuple, Union

from loguru import logger

from aesdsocket.config import SYSLOG_ADDRESS

CONSOLE_FORMAT = "{time:YYYY-MM-DD HH:mm:ss} | {level: <8} | {message}"

_syslog_handler: Optional[logging.handlers.SysLogHandler] = None


def parse_syslog_address(address: str) -> Union[str, Tuple[str, int]]:
    """A path is a unix socket, anything else is "host:port" for UDP."""
    if address.startswith("/"):
        return address
    host, _, port = address.rpartition(":")
    return host or "localhost", int(port or logging.handlers.SYSLOG_UDP_PORT)


def open_log(ident: str, daemon: bool, address: str = SYSLOG_ADDRESS) -> None:
    """
    Route loguru output to the console (unless daemonized) and the system log.

    Messages reaching the system log are tagged with `ident`, the program's
    invocation name. Raises OSError if the system log cannot be reached.
    """
    global _syslog_handler

    close_log()
    if not daemon:
        logger.add(sys.stderr, format=CONSOLE_FORMAT, level="INFO")

    handler = logging.handlers.SysLogHandler(
        address=parse_syslog_address(address),
        facility=logging.handlers.SysLogHandler.LOG_USER,
    )
    # Newer Pythons swallow connection errors on unix sockets and leave a
    # closed socket behind
    sock = getattr(handler, "socket", None)
    if sock is None or sock.fileno() == -1:
        handler.close()
        raise OSError(f"Cannot connect to system log at {address}")
    handler.ident = f"{os.path.basename(ident)}: "
    logger.add(handler, format="{message}", level="INFO")
    _syslog_handler = handler


def close_log() -> None:
    global _syslog_handler

    logger.remove()
    if _syslog_handler is not None:
        try:
            _syslog_handler.close()
        except OSError as e:
            # Console sinks are gone by now
            print(f"Failed to close system log: {e}", file=sys.stderr)
        _syslog_handler = None
