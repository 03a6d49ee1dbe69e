"""Fetching the dotfiles checkout and copying its ``.config`` into place."""

import shutil
from pathlib import Path
from typing import List

from ..errors import ApplyFailed, ProbeIndeterminate
from ..fsutil import tree_contains
from ..probe import ProbeState, probe_path
from ..steps import Category, ProvisioningStep, StepContext


def _source(ctx: StepContext) -> Path:
    return Path(ctx.settings.DOTFILES_DIR) / ".config"


def _entries(ctx: StepContext) -> List[Path]:
    source = _source(ctx)
    if not source.is_dir():
        raise ProbeIndeterminate(str(source), "dotfiles source directory not found")
    return sorted(source.iterdir())


def dotfiles_fetch_step() -> ProvisioningStep:
    def probe(ctx: StepContext) -> ProbeState:
        return probe_path(ctx.settings.DOTFILES_DIR)

    def apply(ctx: StepContext) -> None:
        repo = ctx.settings.DOTFILES_REPO
        if not repo:
            raise ApplyFailed(
                f"{ctx.settings.DOTFILES_DIR} does not exist and no dotfiles "
                "repository is configured (WORKSTATION_SETUP_DOTFILES_REPO)"
            )
        ctx.runner.run(["git", "clone", repo, ctx.settings.DOTFILES_DIR])

    return ProvisioningStep(
        step_id="dotfiles-fetch",
        description="Fetch the dotfiles repository",
        probe=probe,
        apply=apply,
        category=Category.FILE_MUTATION,
    )


def dotfiles_step() -> ProvisioningStep:
    def probe(ctx: StepContext) -> ProbeState:
        dest = ctx.settings.config_home
        if all(tree_contains(entry, dest / entry.name) for entry in _entries(ctx)):
            return ProbeState.PRESENT
        return ProbeState.ABSENT

    def overwrites(ctx: StepContext) -> List[Path]:
        dest = ctx.settings.config_home
        return [
            dest / entry.name
            for entry in _entries(ctx)
            if (dest / entry.name).exists() and not tree_contains(entry, dest / entry.name)
        ]

    def apply(ctx: StepContext) -> None:
        dest = ctx.settings.config_home
        dest.mkdir(parents=True, exist_ok=True)
        for entry in _entries(ctx):
            target = dest / entry.name
            if entry.is_dir():
                shutil.copytree(entry, target, symlinks=True, dirs_exist_ok=True)
            else:
                shutil.copy2(entry, target)
            ctx.log.debug(f"Copied {entry} to {target}")

    return ProvisioningStep(
        step_id="dotfiles",
        description="Copy dotfiles into ~/.config",
        probe=probe,
        apply=apply,
        category=Category.FILE_MUTATION,
        overwrites=overwrites,
        requires=("dotfiles-fetch",),
    )
