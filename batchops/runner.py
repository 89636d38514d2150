"""
Run one control-plane command as a subprocess.
"""

from __future__ import annotations

import logging
import os
import subprocess
import time
from dataclasses import dataclass, field
from typing import Dict, Tuple

log = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 30 * 60.0
LAUNCH_FAILURE_EXIT_CODE = -1


@dataclass
class ExecutionContext:
    env: Dict[str, str] = field(default_factory=lambda: dict(os.environ))
    timeout: float = DEFAULT_TIMEOUT
    format_args: Tuple[str, ...] = ("--format", "json")


@dataclass
class CommandResult:
    output: str = ""
    error: str = ""
    exit_code: int = 0
    duration: float = 0.0


def terminate_process(proc: subprocess.Popen) -> None:
    if proc.poll() is not None:
        return
    proc.kill()
    proc.wait()


def run_command(command: str, context: ExecutionContext) -> CommandResult:
    """
    Execute ``command`` with the forced output format appended.

    Launch failures and timeouts are reported in the result rather than
    raised. Interrupts kill the child and propagate.
    """
    args = command.split() + list(context.format_args)
    result = CommandResult()

    started = time.monotonic()
    try:
        proc = subprocess.Popen(
            args,
            stdout=subprocess.PIPE,
            stderr=subprocess.PIPE,
            text=True,
            encoding="utf-8",
            errors="replace",
            env=context.env,
        )
    except OSError as exc:
        result.error = str(exc)
        result.exit_code = LAUNCH_FAILURE_EXIT_CODE
        result.duration = time.monotonic() - started
        return result

    try:
        stdout, stderr = proc.communicate(timeout=context.timeout)
    except subprocess.TimeoutExpired:
        terminate_process(proc)
        stdout, stderr = proc.communicate()
        stderr = (stderr or "") + f"command timed out after {context.timeout:g}s"
        log.warning("Killed %r after %gs", args[0], context.timeout)
    except BaseException:
        terminate_process(proc)
        raise
    result.duration = time.monotonic() - started

    result.output = stdout or ""
    result.error = stderr or ""
    result.exit_code = proc.returncode
    return result
