import os
import subprocess
import sys
from typing import List, Optional

from .errors import ReplacementError, ResolutionError
from .logs import slog
from .resolver import self_path
from .state import STATE, ProcessState

_PY_SUFFIXES = (".py", ".pyw")

# Exit status for an unrecoverable restart failure.
FATAL_EXIT = 2

# Replaced in tests; the real thing never returns.
_abort = os._exit


def _main_module() -> Optional[str]:
    """Module name when the program was started with ``python -m``."""
    main = sys.modules.get("__main__")
    spec = getattr(main, "__spec__", None)
    if spec is None or not spec.name:
        return None
    if spec.name.endswith(".__main__"):
        return spec.parent
    return spec.name


def _runs_directly(exe: str) -> bool:
    if getattr(sys, "frozen", False):
        return True
    if exe.endswith(_PY_SUFFIXES):
        return False
    return os.path.isfile(exe) and os.access(exe, os.X_OK)


def build_argv(exe: str, argv: Optional[List[str]] = None, main_module: Optional[str] = None) -> List[str]:
    """
    Command line for the replacement process: the same program, the same
    trailing arguments. Python sources are run through the interpreter.
    """
    if argv is None:
        argv = sys.argv
    rest = list(argv[1:])

    if _runs_directly(exe):
        return [exe] + rest
    if main_module:
        return [sys.executable, "-m", main_module] + rest
    return [sys.executable, exe] + rest


def fatal(message: str) -> None:
    """Terminate the process abnormally. Raises if the exit hook returns."""
    slog.error("reload.replace.fatal", detail=message)
    try:
        sys.stderr.write(message + "\n")
        sys.stderr.flush()
    except (OSError, ValueError):
        pass
    _abort(FATAL_EXIT)
    raise ReplacementError(message)


def _replace(argv: List[str], env) -> None:
    if sys.platform == "win32":
        # No exec on Windows: start the new process and leave. The PID changes.
        subprocess.Popen(argv, env=env)
        _abort(0)
        return
    os.execve(argv[0], argv, env)


def exec_self(state: Optional[ProcessState] = None) -> None:
    """Replace the current process with a new copy of itself."""
    state = state or STATE

    exe = state.self_path
    if not exe:
        try:
            exe = self_path()
        except ResolutionError as e:
            fatal(f"cannot restart: cannot find self: {e}")
            return

    state.close()

    argv = build_argv(exe, main_module=_main_module())
    slog.info("reload.replace.exec", executable=argv[0], argv=argv)
    try:
        _replace(argv, dict(os.environ))
    except OSError as e:
        fatal(f"cannot restart: {e}")
