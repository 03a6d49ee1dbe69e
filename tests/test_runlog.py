import logging
import stat
from datetime import datetime

import pytest

from workstation_setup.probe import ProbeState
from workstation_setup.runlog import RunLog
from workstation_setup.steps import ProvisioningStep, StepOutcome

from .conftest import read_console


def _step(step_id, critical=False):
    return ProvisioningStep(
        step_id=step_id,
        description=f"Do {step_id}",
        probe=lambda ctx: ProbeState.ABSENT,
        apply=lambda ctx: None,
        critical=critical,
    )


@pytest.fixture
def run_log(make_config, console):
    log = RunLog(make_config(console=console))
    yield log
    log.finalize()


def test_entries_go_to_console_and_file_in_order(run_log, console):
    run_log.info("Installing missing packages: tree")
    run_log.success("[tree] Install tree completed.")
    run_log.warn("rbenv bash extension did not build")
    run_log.error("[git] Cannot determine current state")

    lines = run_log.config.log_file.read_text().splitlines()
    assert [line.split("] ", 2)[1] for line in lines] == ["[INFO", "[SUCCESS", "[WARNING", "[ERROR"]
    assert lines[0].endswith("Installing missing packages: tree")
    assert [e.level for e in run_log.report.entries] == ["INFO", "SUCCESS", "WARN", "ERROR"]
    assert "Installing missing packages: tree" in read_console(console)


def test_debug_reaches_console_and_file_by_default(run_log, console):
    run_log.debug("[tree] Already satisfied")

    assert "[tree] Already satisfied" in run_log.config.log_file.read_text()
    assert "[tree] Already satisfied" in read_console(console)


def test_quiet_console_hides_debug_but_file_keeps_it(make_config, console):
    log = RunLog(make_config(console=console, quiet=True))
    log.debug("Executing: pacman -Q tree")
    log.info("Installing missing packages: tree")
    log.finalize()

    assert "Executing: pacman -Q tree" in log.config.log_file.read_text()
    assert "Executing: pacman -Q tree" not in read_console(console)
    assert "Installing missing packages: tree" in read_console(console)


def test_log_file_is_private(run_log):
    mode = stat.S_IMODE(run_log.config.log_file.stat().st_mode)
    assert mode == 0o600


def test_logger_does_not_propagate(run_log, caplog):
    with caplog.at_level(logging.DEBUG):
        run_log.info("only in this run's handlers")
    assert "only in this run's handlers" not in caplog.text


def test_unknown_level_is_rejected(run_log):
    with pytest.raises(ValueError):
        run_log.log("LOUD", "nope")


def test_finalize_runs_once(make_config, console):
    log = RunLog(make_config(console=console))
    log.record_step(_step("a"), StepOutcome.APPLIED)
    log.record_step(_step("b"), StepOutcome.SATISFIED)
    log.record_step(_step("c"), StepOutcome.DECLINED)
    log.add_notice("Restart your terminal")
    log.add_notice("Restart your terminal")

    report = log.finalize()
    again = log.finalize()

    assert again is report
    assert log.finalized
    output = read_console(console)
    assert output.count("Run Summary") == 1
    assert output.count("Next Steps") == 1
    assert report.counts == {"applied": 1, "satisfied": 1, "declined": 1, "failed": 0, "planned": 0}
    assert report.notices == ["Restart your terminal"]
    assert report.backup_dir is None
    assert report.exit_code == 0
    text = log.config.log_file.read_text()
    assert "1 applied, 1 already satisfied, 1 declined, 0 failed, 0 planned" in text
    assert "Action required: Restart your terminal" in text


def test_report_exit_codes(make_config, console):
    log = RunLog(make_config(console=console))
    assert log.report.exit_code == 0

    log.mark_aborted("base-packages")
    assert log.report.exit_code == 1

    log.mark_signal(15, "SIGTERM")
    assert log.report.exit_code == 143
    log.finalize()


def test_separate_runs_do_not_share_handlers(make_config, console):
    first = RunLog(make_config(console=console, now=datetime(2026, 3, 1, 8, 0, 0)))
    second = RunLog(make_config(console=console, now=datetime(2026, 3, 1, 8, 0, 1)))

    first.info("first run only")

    assert first.logger is not second.logger
    assert first.config.log_file != second.config.log_file
    assert "first run only" not in second.config.log_file.read_text()
    first.finalize()
    second.finalize()
