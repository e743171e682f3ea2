import argparse
import os
import subprocess
import sys
from typing import List, Optional

from loguru import logger

from aesdsocket.config import DAEMON_MARKER, IDENT_MARKER, ServerConfig
from aesdsocket.diagnostics import close_log, open_log
from aesdsocket.server import SetupError, SocketServer


def create_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Append newline-terminated messages to a shared log and "
        "echo the whole log back to each client."
    )
    parser.add_argument("-d", dest="daemon", action="store_true",
                        help="Run in the background as a daemon")
    return parser


def spawn_background(server: SocketServer, ident: str) -> int:
    """
    Start a detached copy of the server that inherits the bound listener.

    Returns the pid of the background process.
    """
    fd = server.socket.fileno()
    env = dict(os.environ, **{DAEMON_MARKER: str(fd), IDENT_MARKER: ident})
    try:
        process = subprocess.Popen(
            [sys.executable, "-m", "aesdsocket"],
            stdin=subprocess.DEVNULL,
            stdout=subprocess.DEVNULL,
            stderr=subprocess.DEVNULL,
            pass_fds=(fd,),
            start_new_session=True,
            env=env,
        )
    except OSError as e:
        raise SetupError(f"Failed to create child process: {e}") from e
    return process.pid


def main(argv: Optional[List[str]] = None) -> None:
    args = create_parser().parse_args(argv)
    inherited_fd = os.environ.get(DAEMON_MARKER)
    is_background = inherited_fd is not None
    ident = os.environ.get(IDENT_MARKER) or os.path.basename(sys.argv[0])

    config = ServerConfig.from_env(daemon=args.daemon or is_background)
    try:
        open_log(ident, config.daemon)
    except OSError as e:
        # Loguru sinks may already be gone, so report directly
        print(f"Failed to open system log: {e}", file=sys.stderr)
        sys.exit(1)

    server = SocketServer(config)
    try:
        if is_background:
            server.adopt_listener(int(inherited_fd))
        else:
            server.listen()

        if config.daemon and not is_background:
            pid = spawn_background(server, ident)
            print(f"Created server process with pid {pid}")
            server.release()
            close_log()
            return

        server.install_signal_handlers()
    except SetupError as e:
        logger.error(str(e))
        server.close()
        close_log()
        sys.exit(1)

    server.serve()
    close_log()


if __name__ == "__main__":
    main()
