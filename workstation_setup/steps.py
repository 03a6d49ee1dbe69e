"""Provisioning step declaration and the context handed to probes and applies."""

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import TYPE_CHECKING, Callable, Optional, Sequence, Tuple

from .config import RunConfig, Settings
from .probe import ProbeState

if TYPE_CHECKING:
    from .backup import BackupManager
    from .commands import CommandRunner
    from .packages import PackageManager
    from .runlog import RunLog


class Category(str, Enum):
    PACKAGE_INSTALL = "package-install"
    FILE_MUTATION = "file-mutation"
    SERVICE_CONFIG = "service-config"
    SHELL_CONFIG = "shell-config"
    VERSION_MANAGER = "version-manager"


class StepOutcome(str, Enum):
    APPLIED = "applied"
    SATISFIED = "satisfied"  # skipped: already in the desired state
    DECLINED = "declined"  # skipped: operator said no
    FAILED = "failed"
    PLANNED = "planned"  # dry run: would apply

    @property
    def skipped(self) -> bool:
        return self in (StepOutcome.SATISFIED, StepOutcome.DECLINED)


@dataclass
class StepContext:
    settings: Settings
    config: RunConfig
    log: "RunLog"
    runner: "CommandRunner"
    packages: "PackageManager"
    backups: "BackupManager"

    @property
    def home(self) -> Path:
        return Path(self.settings.HOME)


ProbeFn = Callable[[StepContext], ProbeState]
ApplyFn = Callable[[StepContext], None]
PathsFn = Callable[[StepContext], Sequence[Path]]


def _no_paths(ctx: StepContext) -> Sequence[Path]:
    return ()


@dataclass(frozen=True)
class ProvisioningStep:
    """
    One named, independently skippable unit of provisioning work.

    ``overwrites`` returns the paths the apply will replace or modify; the
    executor backs up each one that exists before calling ``apply``.
    ``notice`` is reported at the end of the run when the step was applied.
    ``requires`` names earlier steps whose result the probe depends on; in a
    dry run those may only be planned, so the probe cannot answer yet.
    """

    step_id: str
    description: str
    probe: ProbeFn
    apply: ApplyFn
    category: Category = Category.PACKAGE_INSTALL
    critical: bool = False
    prompt: Optional[str] = None
    prompt_default: bool = True
    overwrites: PathsFn = field(default=_no_paths)
    notice: Optional[str] = None
    requires: Tuple[str, ...] = ()


def home_paths(*relative: str) -> PathsFn:
    """Build an ``overwrites`` callable for paths relative to the user's home."""

    def paths(ctx: StepContext) -> Sequence[Path]:
        return [ctx.home / rel for rel in relative]

    return paths
