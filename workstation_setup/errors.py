"""Exception types raised while probing, backing up and applying steps."""

from pathlib import Path
from typing import List, Optional, Sequence, Union


class WorkstationSetupError(Exception):
    """Base class for every error raised by workstation_setup."""


class PlanError(WorkstationSetupError):
    """A provisioning plan was declared incorrectly."""


class ProbeIndeterminate(WorkstationSetupError):
    """The mechanism used to query a resource is itself unavailable."""

    def __init__(self, resource: str, reason: str) -> None:
        super().__init__(f"Cannot determine state of {resource}: {reason}")
        self.resource = resource
        self.reason = reason


class BackupFailed(WorkstationSetupError):
    """A resource existed but could not be copied to the backup directory."""

    def __init__(self, path: Union[str, Path], reason: str) -> None:
        super().__init__(f"Backup of {path} failed: {reason}")
        self.path = Path(path)
        self.reason = reason


class ApplyFailed(WorkstationSetupError):
    """The mutating action of a step did not complete."""

    def __init__(
        self, message: str, exit_status: Optional[int] = None, diagnostic: str = ""
    ) -> None:
        super().__init__(message)
        self.exit_status = exit_status
        self.diagnostic = diagnostic


class CommandError(ApplyFailed):
    """An external command exited non-zero, timed out or was not found."""

    def __init__(self, cmd: Sequence[str], exit_status: int, diagnostic: str = "") -> None:
        self.cmd: List[str] = list(cmd)
        super().__init__(
            f"Command failed ({exit_status}): {' '.join(self.cmd)}",
            exit_status=exit_status,
            diagnostic=diagnostic,
        )
