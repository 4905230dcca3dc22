"""Subprocess helpers for external analysis tools."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from subprocess import TimeoutExpired, run

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT_SECONDS = 60.0


class ToolError(RuntimeError):
    """Raised when an external tool cannot be executed or times out."""


@dataclass(frozen=True, slots=True)
class CommandResult:
    """Captured output of one tool invocation.

    A non-zero exit code is not an error here: linters and auditors report
    findings through their exit status, so callers inspect ``returncode``.
    """

    args: tuple[str, ...]
    returncode: int
    stdout: str
    stderr: str

    @property
    def success(self) -> bool:
        return self.returncode == 0

    @property
    def output(self) -> str:
        return self.stdout or self.stderr


def run_command(
    args: list[str],
    *,
    cwd: Path,
    timeout: float = DEFAULT_TIMEOUT_SECONDS,
    env: dict[str, str] | None = None,
) -> CommandResult:
    """Run ``args`` in ``cwd`` and capture text output within ``timeout`` seconds."""
    if not args:
        raise ToolError("no command configured")

    merged_env: dict[str, str] | None = None
    if env:
        merged_env = os.environ.copy()
        merged_env.update(env)

    logger.debug("running %s in %s (timeout=%ss)", " ".join(args), cwd, timeout)
    try:
        completed = run(
            args,
            cwd=cwd,
            check=False,
            capture_output=True,
            text=True,
            env=merged_env,
            timeout=timeout,
        )
    except FileNotFoundError as exc:
        raise ToolError(f"command not found: {args[0]}") from exc
    except TimeoutExpired as exc:
        raise ToolError(f"{' '.join(args)} timed out after {timeout:g}s") from exc
    except OSError as exc:
        raise ToolError(f"{' '.join(args)} failed: {exc}") from exc

    return CommandResult(
        args=tuple(args),
        returncode=completed.returncode,
        stdout=completed.stdout or "",
        stderr=completed.stderr or "",
    )
