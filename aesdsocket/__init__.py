"""
Line-oriented TCP log server: every newline-terminated message is appended to
a shared file and the whole file is sent back to the client.
"""
from aesdsocket.append_store import AppendStore
from aesdsocket.config import ServerConfig
from aesdsocket.connection import ConnectionHandler
from aesdsocket.server import SignalController, SocketServer

__all__ = ['AppendStore', 'ServerConfig', 'ConnectionHandler', 'SignalController', 'SocketServer']
