import os
import sys
from typing import Callable, Optional

from .errors import ResolutionError


def executable_path() -> str:
    """
    Ask the OS where the running program lives.

    A frozen application is its own interpreter, so ``sys.executable`` is the
    binary. Otherwise the program is the file named by ``sys.argv[0]``.
    """
    if getattr(sys, "frozen", False):
        return sys.executable

    program = sys.argv[0] if sys.argv else ""
    if not program or program == "-c":
        raise OSError("no program file (interactive session or -c)")
    path = os.path.realpath(program)
    if not os.path.isfile(path):
        raise FileNotFoundError(f"no such file: {path!r}")
    return path


def self_path(argv0: Optional[str] = None, query: Optional[Callable[[], str]] = None) -> str:
    """Absolute path to the running program; absolute argv[0] is used as-is."""
    if argv0 is None:
        argv0 = sys.argv[0] if sys.argv else ""
    if os.path.isabs(argv0):
        return argv0

    query = query or executable_path
    try:
        return query()
    except OSError as e:
        raise ResolutionError(
            f"cannot get path to binary {argv0!r} (launch with absolute path): {e}"
        ) from e


def relpath(path: str, cwd: Optional[str] = None) -> str:
    """Path relative to the working directory, for display."""
    if cwd is None:
        try:
            cwd = os.getcwd()
        except OSError:
            return path

    if path.startswith(cwd):
        return "./" + path[len(cwd):].lstrip("/")
    return path
