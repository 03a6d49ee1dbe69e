"""Zsh, Oh My Zsh, the login shell and ls aliases."""

import tempfile
from dataclasses import replace
from pathlib import Path
from typing import Sequence

from ..errors import ApplyFailed
from ..fsutil import remove_path
from ..packages import package_step
from ..probe import ProbeState, probe_login_shell, probe_path
from ..profile import profile_block_step
from ..steps import Category, ProvisioningStep, StepContext, home_paths

LSD_ALIAS = "alias ls='lsd --group-dirs=first'"


def zsh_step() -> ProvisioningStep:
    return package_step("zsh", "Install Zsh", ["zsh"], critical=True)


def oh_my_zsh_step() -> ProvisioningStep:
    def probe(ctx: StepContext) -> ProbeState:
        return probe_path(ctx.home / ".oh-my-zsh" / "oh-my-zsh.sh")

    def apply(ctx: StepContext) -> None:
        # The installer refuses to run over an existing (broken) checkout.
        remove_path(ctx.home / ".oh-my-zsh")
        with tempfile.TemporaryDirectory(prefix="workstation_setup_") as tmp:
            installer = Path(tmp) / "install.sh"
            ctx.runner.run(
                ["curl", "-fsSL", ctx.settings.OH_MY_ZSH_INSTALLER_URL, "-o", installer]
            )
            ctx.runner.run(
                ["sh", installer],
                env={"RUNZSH": "no", "CHSH": "no", "ZSH": str(ctx.home / ".oh-my-zsh")},
            )

    return ProvisioningStep(
        step_id="oh-my-zsh",
        description="Install Oh My Zsh",
        probe=probe,
        apply=apply,
        category=Category.SHELL_CONFIG,
        overwrites=home_paths(".zshrc", ".oh-my-zsh"),
    )


def default_shell_step() -> ProvisioningStep:
    def probe(ctx: StepContext) -> ProbeState:
        return probe_login_shell(ctx.settings.USERNAME, ctx.settings.ZSH_PATH)

    def apply(ctx: StepContext) -> None:
        ctx.runner.run(
            ["chsh", "-s", ctx.settings.ZSH_PATH, ctx.settings.USERNAME], sudo=True
        )

    return ProvisioningStep(
        step_id="default-shell",
        description="Make Zsh the default shell",
        probe=probe,
        apply=apply,
        category=Category.SHELL_CONFIG,
        notice="Log out and back in for Zsh to become your login shell.",
    )


def _alias_files(ctx: StepContext) -> Sequence[Path]:
    return [ctx.home / name for name in ctx.settings.ALIAS_PROFILE_FILES]


def _alias_lines(path: Path) -> Sequence[str]:
    return ["# Alias for lsd (modern, colourful ls)", LSD_ALIAS]


def lsd_alias_step() -> ProvisioningStep:
    step = profile_block_step(
        "lsd-aliases",
        "Replace ls with lsd in shell profiles",
        "lsd-aliases",
        _alias_files,
        _alias_lines,
        prompt="Replace ls with the enhanced lsd command?",
    )
    append = step.apply

    def apply(ctx: StepContext) -> None:
        if ctx.packages.query("lsd") is not ProbeState.PRESENT:
            raise ApplyFailed("lsd is not installed; refusing to alias ls to it")
        append(ctx)

    return replace(step, apply=apply)
