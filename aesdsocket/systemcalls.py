# systemcalls.py

import subprocess

from loguru import logger


def do_system(cmd: str) -> bool:
    """Run `cmd` through the shell. True only if it exits with status 0."""
    try:
        result = subprocess.run(cmd, shell=True)
    except OSError as e:
        logger.error(f"Error running '{cmd}': {e}")
        return False
    return result.returncode == 0


def do_exec(*command: str) -> bool:
    """
    Run a command directly, without a shell.

    The first element is the full path of the program, the rest are its
    arguments. True only if the program ran and exited with status 0.
    """
    return _run(list(command))


def do_exec_redirect(outputfile: str, *command: str) -> bool:
    """Same as `do_exec`, with the command's stdout written to `outputfile`."""
    try:
        with open(outputfile, "wb") as out:
            return _run(list(command), stdout=out)
    except OSError as e:
        logger.error(f"Could not open {outputfile}: {e}")
        return False


def _run(command, stdout=None) -> bool:
    if not command:
        logger.error("No command given")
        return False
    try:
        result = subprocess.run(command, stdout=stdout)
    except OSError as e:
        logger.error(f"Failed to execute {command[0]}: {e}")
        return False
    if result.returncode != 0:
        logger.error(f"{command[0]} exited with status {result.returncode}")
        return False
    return True
