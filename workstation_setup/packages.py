"""
Package manager seam.

Presence checks only read the local package database; nothing here touches
the network except ``install`` and ``upgrade``.
"""

from typing import List, Optional, Sequence, TYPE_CHECKING

from .commands import CommandRunner
from .errors import ApplyFailed, ProbeIndeterminate
from .probe import ProbeState, combine
from .steps import Category, ProvisioningStep, StepContext

if TYPE_CHECKING:
    from .runlog import RunLog


class PackageManager:
    """Interface the provisioning steps rely on."""

    name = "package manager"

    def query(self, package: str) -> ProbeState:
        raise NotImplementedError

    def install(self, packages: Sequence[str]) -> None:
        raise NotImplementedError

    def is_up_to_date(self) -> ProbeState:
        raise NotImplementedError

    def upgrade(self) -> None:
        raise NotImplementedError


class Pacman(PackageManager):
    name = "pacman"

    # Messages are translated; the ones parsed below are matched in English.
    QUERY_ENV = {"LC_ALL": "C"}

    def __init__(self, runner: CommandRunner) -> None:
        self.runner = runner

    def query(self, package: str) -> ProbeState:
        result = self.runner.run(
            ["pacman", "-Q", package], check=False, env=self.QUERY_ENV
        )
        if result.returncode == 0:
            return ProbeState.PRESENT
        if result.returncode == 1 and "was not found" in result.stderr:
            return ProbeState.ABSENT
        return ProbeState.UNKNOWN

    def install(self, packages: Sequence[str]) -> None:
        if not packages:
            return
        self.runner.run(
            ["pacman", "-S", "--needed", "--noconfirm", *packages], sudo=True
        )

    def is_up_to_date(self) -> ProbeState:
        # -Qu reads the local sync database; exit 1 with no output means nothing to upgrade.
        result = self.runner.run(["pacman", "-Qu"], check=False, env=self.QUERY_ENV)
        if result.returncode == 0 and result.stdout.strip():
            return ProbeState.ABSENT
        if result.returncode == 1 and not result.stdout.strip():
            return ProbeState.PRESENT
        return ProbeState.UNKNOWN

    def upgrade(self) -> None:
        self.runner.run(["pacman", "-Syu", "--noconfirm"], sudo=True)


def query_packages(manager: PackageManager, packages: Sequence[str]) -> ProbeState:
    return combine(manager.query(package) for package in packages)


def install_packages(
    manager: PackageManager,
    packages: Sequence[str],
    log: Optional["RunLog"] = None,
) -> List[str]:
    """Install whichever of ``packages`` are missing in one batch; return them."""
    wanted = list(dict.fromkeys(packages))
    states = {package: manager.query(package) for package in wanted}
    unknown = [p for p, state in states.items() if state is ProbeState.UNKNOWN]
    if unknown:
        raise ProbeIndeterminate(", ".join(unknown), f"{manager.name} query failed")

    missing = [p for p, state in states.items() if state is ProbeState.ABSENT]
    if not missing:
        if log is not None:
            log.debug(f"All packages already installed: {' '.join(wanted)}")
        return []

    if log is not None:
        log.info(f"Installing missing packages: {' '.join(missing)}")
    manager.install(missing)

    still_missing = [p for p in missing if manager.query(p) is not ProbeState.PRESENT]
    if still_missing:
        raise ApplyFailed(
            f"Packages not present after install: {' '.join(still_missing)}"
        )
    return missing


def package_step(
    step_id: str,
    description: str,
    packages: Sequence[str],
    *,
    critical: bool = False,
    prompt: Optional[str] = None,
    notice: Optional[str] = None,
) -> ProvisioningStep:
    """Declare a step that ensures ``packages`` are installed."""
    packages = tuple(packages)

    def probe(ctx: StepContext) -> ProbeState:
        return query_packages(ctx.packages, packages)

    def apply(ctx: StepContext) -> None:
        install_packages(ctx.packages, packages, log=ctx.log)

    return ProvisioningStep(
        step_id=step_id,
        description=description,
        probe=probe,
        apply=apply,
        category=Category.PACKAGE_INSTALL,
        critical=critical,
        prompt=prompt,
        notice=notice,
    )
