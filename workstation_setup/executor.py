"""
Step Executor
-------------
Runs a plan strictly in order. For each step: ask (if gated), probe, back up
what will be overwritten, apply. Every outcome is logged before the executor
decides whether the run continues; a failed critical step ends the run.
"""

from typing import Optional, Set, TextIO

from .backup import BackupManager
from .commands import CommandRunner
from .config import RunConfig, Settings
from .errors import ApplyFailed, BackupFailed
from .packages import PackageManager, Pacman
from .plan import Plan
from .probe import ProbeState
from .prompt import ConfirmationGate
from .runlog import RunLog
from .steps import ProvisioningStep, StepContext, StepOutcome
from .ui import print_section


def build_context(
    settings: Settings,
    log: RunLog,
    runner: Optional[CommandRunner] = None,
    packages: Optional[PackageManager] = None,
) -> StepContext:
    """Wire the default collaborators for a run."""
    runner = runner or CommandRunner(
        log=log, sudo=settings.SUDO, timeout=settings.COMMAND_TIMEOUT
    )
    return StepContext(
        settings=settings,
        config=log.config,
        log=log,
        runner=runner,
        packages=packages or Pacman(runner),
        backups=BackupManager(log.config.backup_root, log=log, home=settings.HOME),
    )


class StepExecutor:
    def __init__(
        self,
        context: StepContext,
        gate: Optional[ConfirmationGate] = None,
        stream: Optional[TextIO] = None,
    ) -> None:
        self.context = context
        self.log = context.log
        self.config: RunConfig = context.config
        self.gate = gate or ConfirmationGate(
            self.config.console,
            log=self.log,
            assume_yes=self.config.assume_yes,
            stream=stream,
        )
        self._planned: Set[str] = set()

    def execute(self, step: ProvisioningStep) -> StepOutcome:
        outcome = self._execute(step)
        if outcome is StepOutcome.PLANNED:
            self._planned.add(step.step_id)
        self.log.record_step(step, outcome)
        return outcome

    def _probe(self, step: ProvisioningStep):
        try:
            return step.probe(self.context), ""
        except Exception as e:
            return ProbeState.UNKNOWN, str(e)

    def _execute(self, step: ProvisioningStep) -> StepOutcome:
        log = self.log
        sid = step.step_id

        if step.prompt and not self.gate.confirm(step.prompt, step.prompt_default):
            log.info(f"[{sid}] Skipped by operator: {step.description}")
            return StepOutcome.DECLINED

        state, reason = self._probe(step)
        if state is ProbeState.PRESENT:
            log.debug(f"[{sid}] Already satisfied: {step.description}")
            return StepOutcome.SATISFIED
        if state is ProbeState.UNKNOWN:
            pending = [req for req in step.requires if req in self._planned]
            if self.config.dry_run and pending:
                log.info(
                    f"[{sid}] Would apply after {', '.join(pending)}: {step.description}"
                )
                return StepOutcome.PLANNED
            detail = f": {reason}" if reason else ""
            log.error(f"[{sid}] Cannot determine current state{detail}. Not applying.")
            return StepOutcome.FAILED

        if self.config.dry_run:
            log.info(f"[{sid}] Would apply: {step.description}")
            return StepOutcome.PLANNED

        try:
            for path in step.overwrites(self.context):
                self.context.backups.backup(path)
        except BackupFailed as e:
            log.error(f"[{sid}] {e}. Not applying.")
            return StepOutcome.FAILED
        except Exception as e:
            log.error(f"[{sid}] Could not prepare backups: {e}. Not applying.")
            return StepOutcome.FAILED

        log.info(f"[{sid}] Applying: {step.description}")
        try:
            step.apply(self.context)
        except ApplyFailed as e:
            status = e.exit_status if e.exit_status is not None else "n/a"
            log.error(f"[{sid}] Failed (exit status {status}): {e}")
            if e.diagnostic:
                log.error(f"[{sid}] {e.diagnostic}")
            return StepOutcome.FAILED
        except Exception as e:
            log.error(f"[{sid}] Failed: {e}")
            return StepOutcome.FAILED

        log.success(f"[{sid}] {step.description} completed.")
        if step.notice:
            log.add_notice(step.notice)
        return StepOutcome.APPLIED

    def run(self, plan: Plan) -> bool:
        """Execute every step in order. False if a critical step failed."""
        total = len(plan)
        mode = " (dry run)" if self.config.dry_run else ""
        self.log.info(f"Running plan '{plan.name}' with {total} steps{mode}.")
        for index, step in enumerate(plan, start=1):
            print_section(self.config.console, f"Step {index}/{total}: {step.description}")
            outcome = self.execute(step)
            if outcome is StepOutcome.FAILED and step.critical:
                remaining = plan.step_ids[index:]
                message = f"Critical step '{step.step_id}' failed; aborting run."
                if remaining:
                    message += f" Not run: {', '.join(remaining)}"
                self.log.error(message)
                self.log.mark_aborted(step.step_id)
                return False
        return True
