"""Vim, Neovim and the LazyVim starter configuration."""

from ..fsutil import remove_path
from ..packages import package_step
from ..probe import ProbeState, probe_marker
from ..steps import Category, ProvisioningStep, StepContext, home_paths

EDITOR_PACKAGES = ["vim", "neovim"]

# The starter's init.lua hands off to this module; its presence means LazyVim is in place.
LAZYVIM_MARKER = 'require("config.lazy")'

NVIM_PATHS = (
    ".config/nvim",
    ".local/share/nvim",
    ".local/state/nvim",
    ".cache/nvim",
)


def editors_step() -> ProvisioningStep:
    return package_step("editors", "Install Vim and Neovim", EDITOR_PACKAGES)


def lazyvim_step() -> ProvisioningStep:
    def probe(ctx: StepContext) -> ProbeState:
        return probe_marker(ctx.home / ".config" / "nvim" / "init.lua", LAZYVIM_MARKER)

    def apply(ctx: StepContext) -> None:
        for rel in NVIM_PATHS:
            if remove_path(ctx.home / rel):
                ctx.log.debug(f"Removed {ctx.home / rel}")
        nvim_dir = ctx.home / ".config" / "nvim"
        nvim_dir.parent.mkdir(parents=True, exist_ok=True)
        ctx.runner.run(["git", "clone", ctx.settings.LAZYVIM_STARTER_URL, nvim_dir])
        # Drop the starter's history so the config can live in the user's own repo.
        remove_path(nvim_dir / ".git")

    return ProvisioningStep(
        step_id="lazyvim",
        description="Bootstrap Neovim with LazyVim",
        probe=probe,
        apply=apply,
        category=Category.FILE_MUTATION,
        prompt="Set up LazyVim? Existing Neovim config and data will be backed up and replaced.",
        overwrites=home_paths(*NVIM_PATHS),
    )
