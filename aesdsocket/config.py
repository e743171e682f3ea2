# config.py

import os
import socket
from dataclasses import dataclass

IP_VERSION = int(os.getenv("AESDSOCKET_IP_VERSION", "4"))
HOST = os.getenv("AESDSOCKET_HOST", "::1" if IP_VERSION == 6 else "127.0.0.1")
PORT = int(os.getenv("AESDSOCKET_PORT", "9000"))
BACKLOG = int(os.getenv("AESDSOCKET_BACKLOG", "10"))
DATA_FILE = os.getenv("AESDSOCKET_DATA_FILE", "/var/tmp/aesdsocketdata")
BUFFER_SIZE = int(os.getenv("AESDSOCKET_BUFFER_SIZE", "64"))
ACCEPT_POLL_INTERVAL = float(os.getenv("AESDSOCKET_ACCEPT_POLL_INTERVAL", "1.0"))
SYSLOG_ADDRESS = os.getenv("AESDSOCKET_SYSLOG_ADDRESS", "/dev/log")

# Set in the environment of the background server spawned by `-d`:
# the inherited listening socket's descriptor and the launcher's program name
DAEMON_MARKER = "AESDSOCKET_LISTEN_FD"
IDENT_MARKER = "AESDSOCKET_IDENT"


@dataclass
class ServerConfig:
    """Configuration for the socket server."""
    host: str = HOST
    port: int = PORT
    backlog: int = BACKLOG
    data_file: str = DATA_FILE
    buffer_size: int = BUFFER_SIZE
    family: int = socket.AF_INET6 if IP_VERSION == 6 else socket.AF_INET
    accept_poll_interval: float = ACCEPT_POLL_INTERVAL
    daemon: bool = False

    def __post_init__(self):
        if not self.host:
            raise ValueError("Host cannot be empty")
        # 0 lets the OS pick an ephemeral port
        if not (0 <= self.port <= 65535):
            raise ValueError("Port must be between 0 and 65535")
        if self.backlog < 1:
            raise ValueError("Backlog must be at least 1")
        if not self.data_file:
            raise ValueError("Data file path cannot be empty")
        if self.buffer_size < 1:
            raise ValueError("Buffer size must be at least 1")
        if self.family not in (socket.AF_INET, socket.AF_INET6):
            raise ValueError("Family must be AF_INET or AF_INET6")
        if self.accept_poll_interval <= 0:
            raise ValueError("Accept poll interval must be positive")

    @classmethod
    def from_env(cls, daemon: bool = False) -> "ServerConfig":
        return cls(daemon=daemon)
