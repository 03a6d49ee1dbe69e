"""External command execution with consistent logging."""

import os
import shlex
import subprocess
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING, List, Mapping, Optional, Sequence, Union

from .errors import CommandError

if TYPE_CHECKING:
    from .runlog import RunLog

OPERATION_TIMEOUT = 1800  # seconds


@dataclass(frozen=True)
class CommandResult:
    cmd: List[str]
    returncode: int
    stdout: str = ""
    stderr: str = ""

    @property
    def ok(self) -> bool:
        return self.returncode == 0


def format_cmd(cmd: Sequence[str]) -> str:
    return " ".join(shlex.quote(str(part)) for part in cmd)


class CommandRunner:
    """
    Run commands for probes and applies.

    Non-zero exits raise ``CommandError`` when ``check`` is set, carrying the
    exit status and the tool's stderr (or stdout) verbatim. A missing
    executable is reported as exit status 127 and a timeout as 124.
    """

    def __init__(
        self,
        log: Optional["RunLog"] = None,
        sudo: str = "sudo",
        timeout: int = OPERATION_TIMEOUT,
    ) -> None:
        self.log = log
        self.sudo = sudo
        self.timeout = timeout

    def _debug(self, message: str) -> None:
        if self.log is not None:
            self.log.debug(message)

    def run(
        self,
        cmd: Sequence[Union[str, Path]],
        *,
        check: bool = True,
        sudo: bool = False,
        cwd: Optional[Union[str, Path]] = None,
        env: Optional[Mapping[str, str]] = None,
        capture_output: bool = True,
        timeout: Optional[int] = None,
    ) -> CommandResult:
        argv = [str(part) for part in cmd]
        if sudo and self.sudo:
            argv = shlex.split(self.sudo) + argv
        self._debug(f"Executing: {format_cmd(argv)}")

        try:
            proc = subprocess.run(
                argv,
                check=False,
                text=True,
                capture_output=capture_output,
                cwd=str(cwd) if cwd else None,
                env=dict(os.environ, **env) if env else None,
                timeout=timeout or self.timeout,
            )
        except FileNotFoundError as e:
            result = CommandResult(argv, 127, "", str(e))
        except subprocess.TimeoutExpired:
            result = CommandResult(
                argv, 124, "", f"timed out after {timeout or self.timeout} seconds"
            )
        else:
            result = CommandResult(argv, proc.returncode, proc.stdout or "", proc.stderr or "")

        if result.stdout.strip():
            self._debug(f"Stdout: {result.stdout.strip()}")
        if result.stderr.strip():
            self._debug(f"Stderr: {result.stderr.strip()}")

        if check and not result.ok:
            diagnostic = (result.stderr or result.stdout).strip()
            raise CommandError(argv, result.returncode, diagnostic)
        return result

    __call__ = run
