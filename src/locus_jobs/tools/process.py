"""External process execution helpers shared by every analyzer.

Commands are always executed as an argument vector (never through a shell).
A non-zero exit status is returned to the caller as data: linters, test
runners and package managers all use it to report findings.  Only an
unresolvable executable or an expired timeout raise :class:`ExecutionError`.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Mapping, Protocol, Sequence

import logging
import os
import shutil
import subprocess

LOGGER = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 120.0
TEST_TIMEOUT = 300.0
GIT_TIMEOUT = 60.0


class ExecutionError(RuntimeError):
    """Raised when a command cannot be started or exceeds its timeout."""


@dataclass(frozen=True, slots=True)
class CommandOutput:
    """Captured result of an external command."""

    command: tuple[str, ...]
    stdout: str
    stderr: str
    exit_code: int

    @property
    def ok(self) -> bool:
        return self.exit_code == 0

    @property
    def combined(self) -> str:
        return f"{self.stdout}\n{self.stderr}"


class CommandExecutor(Protocol):
    """Callable signature shared by :func:`run_command` and test doubles."""

    def __call__(
        self,
        command: Sequence[str],
        *,
        cwd: Path | str,
        timeout: float = DEFAULT_TIMEOUT,
        env: Mapping[str, str] | None = None,
    ) -> CommandOutput: ...


def _decode(payload: bytes | None) -> str:
    return payload.decode("utf-8", errors="replace") if payload else ""


def _merge_env(extra: Mapping[str, str] | None) -> dict[str, str]:
    """Merge provided environment overrides with the current process state."""
    env = os.environ.copy()
    if extra:
        env.update({str(key): str(value) for key, value in extra.items()})
    return env


def run_command(
    command: Sequence[str],
    *,
    cwd: Path | str,
    timeout: float = DEFAULT_TIMEOUT,
    env: Mapping[str, str] | None = None,
) -> CommandOutput:
    """Run ``command`` in ``cwd`` and capture stdout/stderr separately.

    Raises
    ------
    ExecutionError
        When the executable cannot be resolved on ``PATH`` or the process does
        not finish within ``timeout`` seconds.  A timed out process is killed
        before the error is raised.
    """

    argv = tuple(str(part) for part in command)
    if not argv:
        raise ExecutionError("Empty command")

    env_vars = _merge_env(env)
    executable = argv[0]
    if shutil.which(executable, path=env_vars.get("PATH")) is None:
        raise ExecutionError(f"Executable not available: {executable}")

    LOGGER.debug("Running %s in %s (timeout %ss)", " ".join(argv), cwd, timeout)
    try:
        process = subprocess.run(  # noqa: S603  # argv is never shell-interpolated
            argv,
            cwd=str(cwd),
            env=env_vars,
            capture_output=True,
            text=False,
            check=False,
            timeout=timeout,
        )
    except subprocess.TimeoutExpired as error:
        raise ExecutionError(f"{' '.join(argv)} timed out after {timeout:g}s") from error
    except (FileNotFoundError, PermissionError) as error:
        raise ExecutionError(f"Unable to execute {executable}: {error}") from error

    return CommandOutput(
        command=argv,
        stdout=_decode(process.stdout),
        stderr=_decode(process.stderr),
        exit_code=process.returncode,
    )


__all__ = [
    "CommandExecutor",
    "CommandOutput",
    "DEFAULT_TIMEOUT",
    "ExecutionError",
    "GIT_TIMEOUT",
    "TEST_TIMEOUT",
    "run_command",
]
