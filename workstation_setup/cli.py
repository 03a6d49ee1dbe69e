"""
Workstation Setup command line
------------------------------
Refuses to run as root, checks the host is Arch Linux (or that the operator
wants to go ahead anyway), then runs the selected plan. The run report is
printed exactly once: on normal completion, on an early exit, or when a
termination signal arrives.

Usage:
  workstation-setup [--plan all|workstation|ruby] [--dry-run] [--yes]
"""

import atexit
import os
import signal
import sys
from enum import Enum
from pathlib import Path
from typing import List, Optional

import typer

from . import APP_NAME, VERSION
from .config import RunConfig, Settings
from .errors import PlanError
from .executor import StepExecutor, build_context
from .plan import Plan
from .prompt import confirm
from .runlog import RunLog, RunReport
from .tasks import build_plan
from .ui import NordColors, create_table, make_console, print_header

EXIT_OK = 0
EXIT_CRITICAL_FAILURE = 1
EXIT_PRIVILEGED = 2
EXIT_UNSUPPORTED_HOST = 3

OS_RELEASE = Path("/etc/os-release")
ARCH_RELEASE = Path("/etc/arch-release")

app = typer.Typer(
    help="Provision an Arch Linux workstation: packages, Zsh, LazyVim, dotfiles and Ruby.",
    add_completion=False,
)


class PlanChoice(str, Enum):
    all = "all"
    workstation = "workstation"
    ruby = "ruby"


# ==============================
# Host checks
# ==============================
def is_privileged() -> bool:
    return os.geteuid() == 0


def is_arch_linux(
    os_release: Path = OS_RELEASE, arch_release: Path = ARCH_RELEASE
) -> bool:
    if arch_release.exists():
        return True
    try:
        content = os_release.read_text(encoding="utf-8")
    except OSError:
        return False
    fields = {}
    for line in content.splitlines():
        if "=" in line:
            key, value = line.split("=", 1)
            fields[key.strip()] = value.strip().strip('"').strip("'")
    ids = [fields.get("ID", "")] + fields.get("ID_LIKE", "").split()
    return "arch" in ids


# ==============================
# Signal Handling & Cleanup
# ==============================
class TerminationHandler:
    """Finalizes the run log once, whether the process exits or is signalled."""

    SIGNALS = (signal.SIGINT, signal.SIGTERM, signal.SIGHUP)

    def __init__(self, log: RunLog) -> None:
        self.log = log
        self._previous = {}

    def install(self) -> None:
        atexit.register(self.finalize)
        for sig in self.SIGNALS:
            self._previous[sig] = signal.signal(sig, self.handle)

    def uninstall(self) -> None:
        for sig, previous in self._previous.items():
            signal.signal(sig, previous)
        self._previous.clear()
        atexit.unregister(self.finalize)

    def handle(self, signum, frame) -> None:
        sig_name = signal.Signals(signum).name
        self.log.error(f"Script interrupted by {sig_name}. Initiating cleanup.")
        self.log.mark_signal(signum, sig_name)
        self.finalize()
        sys.exit(128 + signum)

    def finalize(self) -> RunReport:
        return self.log.finalize()


# ==============================
# Command
# ==============================
def _version_callback(value: bool) -> None:
    if value:
        typer.echo(f"{APP_NAME} {VERSION}")
        raise typer.Exit()


def _plan_table(plan: Plan):
    return create_table(
        f"Plan: {plan.name}",
        [
            ("#", NordColors.NORD9),
            ("Step", f"bold {NordColors.NORD8}"),
            ("Description", NordColors.NORD4),
            ("Category", NordColors.NORD7),
            ("Critical", NordColors.NORD13),
            ("Asks", NordColors.NORD15),
        ],
        [
            (
                str(index),
                step.step_id,
                step.description,
                step.category.value,
                "yes" if step.critical else "",
                "yes" if step.prompt else "",
            )
            for index, step in enumerate(plan, start=1)
        ],
    )


@app.command()
def main(
    plan: PlanChoice = typer.Option(
        PlanChoice.all, "--plan", "-p", help="Which group of steps to run."
    ),
    dry_run: bool = typer.Option(
        False, "--dry-run", help="Probe every step and report what would change, without changing anything."
    ),
    yes: bool = typer.Option(
        False, "--yes", "-y", help="Answer yes to every confirmation prompt."
    ),
    only: Optional[List[str]] = typer.Option(
        None, "--only", help="Run only this step (repeatable)."
    ),
    skip: Optional[List[str]] = typer.Option(
        None, "--skip", help="Leave this step out (repeatable)."
    ),
    list_steps: bool = typer.Option(
        False, "--list", help="Show the plan and exit."
    ),
    log_dir: Optional[Path] = typer.Option(None, "--log-dir", help="Directory for run logs."),
    backup_dir: Optional[Path] = typer.Option(
        None, "--backup-dir", help="Directory for per-run backups."
    ),
    quiet: bool = typer.Option(False, "--quiet", "-q", help="Hide DEBUG messages on the console."),
    version: bool = typer.Option(
        False, "--version", callback=_version_callback, is_eager=True, help="Show the version and exit."
    ),
) -> None:
    console = make_console()
    settings = Settings()
    if log_dir is not None:
        settings.LOG_DIR = log_dir
    if backup_dir is not None:
        settings.BACKUP_DIR = backup_dir

    try:
        selected = build_plan(plan.value).select(only, skip)
    except (KeyError, PlanError) as e:
        raise typer.BadParameter(str(e))

    if list_steps:
        console.print(_plan_table(selected))
        raise typer.Exit(EXIT_OK)

    print_header(console, "Workstation Setup")

    if is_privileged():
        console.print(
            "[error]Do not run this as root. Run it as your own user; "
            "privileged commands are run through sudo.[/]"
        )
        raise typer.Exit(EXIT_PRIVILEGED)

    if not is_arch_linux():
        console.print("[warning]This host does not look like Arch Linux.[/]")
        if not yes and not confirm("Continue anyway?", default=False, console=console):
            console.print("[info]Nothing was changed.[/]")
            raise typer.Exit(EXIT_UNSUPPORTED_HOST)

    config = RunConfig.from_settings(
        settings, dry_run=dry_run, assume_yes=yes, quiet=quiet, console=console
    )
    log = RunLog(config)
    handler = TerminationHandler(log)
    handler.install()
    try:
        log.info(f"{APP_NAME} {VERSION} starting; logging to {config.log_file}")
        executor = StepExecutor(build_context(settings, log))
        executor.run(selected)
    finally:
        report = handler.finalize()
        handler.uninstall()
    raise typer.Exit(report.exit_code)


def run() -> None:
    app()
