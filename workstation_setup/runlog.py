"""
Run log and end-of-run report.

Every entry goes to the rich console first and the run's log file second,
through a dedicated non-propagating logger. ``logging.FileHandler`` flushes
after each record, so an interrupted run keeps everything logged so far.
"""

import itertools
import logging
import os
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import TYPE_CHECKING, Dict, List, Optional, Union

from rich.logging import RichHandler
from rich.panel import Panel

from .config import RunConfig
from .steps import StepOutcome
from .ui import NordColors, create_table, outcome_label, print_section

if TYPE_CHECKING:
    from .backup import BackupRecord
    from .steps import ProvisioningStep

SUCCESS = 25
logging.addLevelName(SUCCESS, "SUCCESS")

LEVELS: Dict[str, int] = {
    "DEBUG": logging.DEBUG,
    "INFO": logging.INFO,
    "SUCCESS": SUCCESS,
    "WARN": logging.WARNING,
    "WARNING": logging.WARNING,
    "ERROR": logging.ERROR,
}

FILE_FORMAT = "[%(asctime)s] [%(levelname)s] %(message)s"
FILE_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

_RUN_COUNTER = itertools.count(1)


@dataclass(frozen=True)
class LogEntry:
    timestamp: datetime
    level: str
    message: str


@dataclass(frozen=True)
class StepRecord:
    step_id: str
    description: str
    outcome: StepOutcome
    critical: bool = False


@dataclass
class RunReport:
    """Aggregate of one invocation, built up while the run progresses."""

    process_name: str
    run_id: str
    started_at: datetime
    log_file: Path
    backup_root: Path
    finished_at: Optional[datetime] = None
    steps: List[StepRecord] = field(default_factory=list)
    entries: List[LogEntry] = field(default_factory=list)
    backups: List["BackupRecord"] = field(default_factory=list)
    notices: List[str] = field(default_factory=list)
    aborted_by: Optional[str] = None
    signal_name: Optional[str] = None
    signal_number: Optional[int] = None

    def count(self, outcome: StepOutcome) -> int:
        return sum(1 for record in self.steps if record.outcome is outcome)

    @property
    def counts(self) -> Dict[str, int]:
        return {outcome.value: self.count(outcome) for outcome in StepOutcome}

    @property
    def applied(self) -> int:
        return self.count(StepOutcome.APPLIED)

    @property
    def satisfied(self) -> int:
        return self.count(StepOutcome.SATISFIED)

    @property
    def declined(self) -> int:
        return self.count(StepOutcome.DECLINED)

    @property
    def failed(self) -> int:
        return self.count(StepOutcome.FAILED)

    @property
    def planned(self) -> int:
        return self.count(StepOutcome.PLANNED)

    @property
    def backup_dir(self) -> Optional[Path]:
        return self.backup_root if self.backups else None

    def outcome_of(self, step_id: str) -> Optional[StepOutcome]:
        for record in self.steps:
            if record.step_id == step_id:
                return record.outcome
        return None

    @property
    def exit_code(self) -> int:
        if self.signal_number is not None:
            return 128 + self.signal_number
        if self.aborted_by is not None:
            return 1
        return 0


class RunLog:
    """Console + file log for one run, plus the report it accumulates."""

    def __init__(self, config: RunConfig) -> None:
        self.config = config
        self.console = config.console
        self.report = RunReport(
            process_name=config.process_name,
            run_id=config.run_id,
            started_at=config.started_at,
            log_file=config.log_file,
            backup_root=config.backup_root,
        )
        self._finalized = False
        self.logger = self._setup_logger()

    def _setup_logger(self) -> logging.Logger:
        log_file = Path(self.config.log_file)
        log_file.parent.mkdir(parents=True, exist_ok=True)
        logger = logging.getLogger(
            f"workstation_setup.run.{self.config.run_id}.{next(_RUN_COUNTER)}"
        )
        logger.setLevel(logging.DEBUG)
        logger.propagate = False
        for handler in list(logger.handlers):
            logger.removeHandler(handler)

        console_handler = RichHandler(
            console=self.console,
            show_path=False,
            markup=False,
            rich_tracebacks=True,
        )
        console_handler.setLevel(self.config.console_level)
        logger.addHandler(console_handler)

        file_handler = logging.FileHandler(str(log_file), encoding="utf-8")
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(logging.Formatter(FILE_FORMAT, FILE_DATE_FORMAT))
        logger.addHandler(file_handler)
        self._file_handler = file_handler

        try:
            os.chmod(str(log_file), 0o600)
        except OSError as e:
            logger.warning(f"Could not set permissions on log file {log_file}: {e}")
        return logger

    # ------------------------------------------------------------------
    # Entries
    # ------------------------------------------------------------------
    def log(self, level: Union[str, int], message: str) -> LogEntry:
        if isinstance(level, int):
            levelno = level
            name = logging.getLevelName(level)
        else:
            name = level.upper()
            if name not in LEVELS:
                raise ValueError(f"Unknown log level: {level}")
            levelno = LEVELS[name]
        if name == "WARNING":
            name = "WARN"
        entry = LogEntry(timestamp=datetime.now(), level=name, message=message)
        self.report.entries.append(entry)
        self.logger.log(levelno, message)
        return entry

    def debug(self, message: str) -> LogEntry:
        return self.log("DEBUG", message)

    def info(self, message: str) -> LogEntry:
        return self.log("INFO", message)

    def success(self, message: str) -> LogEntry:
        return self.log("SUCCESS", message)

    def warn(self, message: str) -> LogEntry:
        return self.log("WARN", message)

    def error(self, message: str) -> LogEntry:
        return self.log("ERROR", message)

    # ------------------------------------------------------------------
    # Report accumulation
    # ------------------------------------------------------------------
    def record_step(self, step: "ProvisioningStep", outcome: StepOutcome) -> None:
        self.report.steps.append(
            StepRecord(
                step_id=step.step_id,
                description=step.description,
                outcome=outcome,
                critical=step.critical,
            )
        )

    def record_backup(self, record: "BackupRecord") -> None:
        self.report.backups.append(record)

    def add_notice(self, notice: str) -> None:
        if notice not in self.report.notices:
            self.report.notices.append(notice)

    def mark_aborted(self, step_id: str) -> None:
        self.report.aborted_by = step_id

    def mark_signal(self, signum: int, name: str) -> None:
        self.report.signal_number = signum
        self.report.signal_name = name

    @property
    def finalized(self) -> bool:
        return self._finalized

    # ------------------------------------------------------------------
    # Finalize
    # ------------------------------------------------------------------
    def finalize(self) -> RunReport:
        """Close the run and print the summary. Only the first call does anything."""
        if self._finalized:
            return self.report
        self._finalized = True
        report = self.report
        report.finished_at = datetime.now()
        elapsed = (report.finished_at - report.started_at).total_seconds()

        print_section(self.console, "Run Summary")
        if report.steps:
            self.console.print(
                create_table(
                    "Provisioning Steps",
                    [
                        ("Step", f"bold {NordColors.NORD9}"),
                        ("Description", NordColors.NORD4),
                        ("Outcome", ""),
                    ],
                    [
                        (
                            r.step_id + (" *" if r.critical else ""),
                            r.description,
                            outcome_label(r.outcome.value),
                        )
                        for r in report.steps
                    ],
                )
            )

        self.info(
            "Steps: {applied} applied, {satisfied} already satisfied, "
            "{declined} declined, {failed} failed, {planned} planned "
            "({elapsed:.1f}s)".format(elapsed=elapsed, **report.counts)
        )
        if report.signal_name:
            self.error(f"Run terminated by {report.signal_name}.")
        elif report.aborted_by:
            self.error(f"Run aborted after critical step '{report.aborted_by}' failed.")
        elif report.failed:
            self.warn("Run completed with failed optional steps; see the log for details.")
        else:
            self.success("Run completed.")

        self.info(f"Log file: {report.log_file}")
        if report.backup_dir is not None:
            self.info(
                f"Backups ({len(report.backups)}) kept for manual recovery in: "
                f"{report.backup_dir}"
            )
        if report.notices:
            for notice in report.notices:
                self.warn(f"Action required: {notice}")
            self.console.print(
                Panel(
                    "\n".join(f"• {notice}" for notice in report.notices),
                    title="Next Steps",
                    border_style=f"bold {NordColors.NORD13}",
                    expand=False,
                )
            )
        self._file_handler.close()
        return report
