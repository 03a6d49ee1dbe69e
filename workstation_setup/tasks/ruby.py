"""
Ruby environment via rbenv
--------------------------
Build dependencies, rbenv and its ruby-build plugin, shell integration, a
Ruby runtime selected globally, and a handful of gems. The rbenv checkout is
driven through its own binary with RBENV_ROOT set, so none of this depends on
the operator's current shell having picked up the integration yet.
"""

from pathlib import Path
from typing import Dict, List, Sequence

from ..commands import CommandResult
from ..errors import ProbeIndeterminate
from ..fsutil import remove_path
from ..packages import package_step
from ..probe import ProbeState, combine, probe_path
from ..profile import profile_block_step
from ..steps import Category, ProvisioningStep, StepContext

RUBY_BUILD_DEPS = [
    "base-devel",
    "git",
    "curl",
    "zlib",
    "libffi",
    "openssl",
    "readline",
    "libyaml",
]

RESTART_NOTICE = "Restart your terminal or run: source ~/.bashrc (or ~/.zshrc)"


def _rbenv_bin(ctx: StepContext) -> Path:
    return ctx.settings.rbenv_root / "bin" / "rbenv"


def _ruby_build_dir(ctx: StepContext) -> Path:
    return ctx.settings.rbenv_root / "plugins" / "ruby-build"


def _rbenv(ctx: StepContext, *args: str, check: bool = True) -> CommandResult:
    env: Dict[str, str] = {"RBENV_ROOT": str(ctx.settings.rbenv_root)}
    return ctx.runner.run([_rbenv_bin(ctx), *args], check=check, env=env)


def _require_rbenv(ctx: StepContext) -> None:
    if probe_path(_rbenv_bin(ctx)) is not ProbeState.PRESENT:
        raise ProbeIndeterminate("rbenv", f"{_rbenv_bin(ctx)} not found")


def latest_stable(listing: str) -> str:
    """Pick the newest plain MRI version from ``rbenv install --list`` output."""
    versions = [
        line.strip()
        for line in listing.splitlines()
        if line.strip() and line.strip()[0].isdigit() and "-" not in line
    ]
    if not versions:
        raise ProbeIndeterminate("ruby", "ruby-build lists no stable versions")
    return versions[-1]


def target_version(ctx: StepContext) -> str:
    if ctx.settings.RUBY_VERSION:
        return ctx.settings.RUBY_VERSION
    return latest_stable(_rbenv(ctx, "install", "--list").stdout)


def ruby_build_deps_step() -> ProvisioningStep:
    return package_step(
        "ruby-build-deps",
        "Install Ruby build dependencies",
        RUBY_BUILD_DEPS,
        critical=True,
    )


def rbenv_step() -> ProvisioningStep:
    def probe(ctx: StepContext) -> ProbeState:
        return probe_path(_rbenv_bin(ctx))

    def overwrites(ctx: StepContext) -> Sequence[Path]:
        return [ctx.settings.rbenv_root]

    def apply(ctx: StepContext) -> None:
        root = ctx.settings.rbenv_root
        remove_path(root)
        ctx.runner.run(["git", "clone", ctx.settings.RBENV_URL, root])
        # Optional bash extension; older checkouts ship it, newer ones do not.
        if (root / "src" / "configure").exists():
            result = ctx.runner.run(["src/configure"], cwd=root, check=False)
            if result.ok:
                result = ctx.runner.run(["make", "-C", "src"], cwd=root, check=False)
            if not result.ok:
                ctx.log.warn("rbenv bash extension did not build; rbenv still works without it.")

    return ProvisioningStep(
        step_id="rbenv",
        description="Install rbenv",
        probe=probe,
        apply=apply,
        category=Category.VERSION_MANAGER,
        critical=True,
        overwrites=overwrites,
    )


def ruby_build_step() -> ProvisioningStep:
    def probe(ctx: StepContext) -> ProbeState:
        return probe_path(_ruby_build_dir(ctx) / "bin" / "ruby-build")

    def overwrites(ctx: StepContext) -> Sequence[Path]:
        return [_ruby_build_dir(ctx)]

    def apply(ctx: StepContext) -> None:
        target = _ruby_build_dir(ctx)
        remove_path(target)
        target.parent.mkdir(parents=True, exist_ok=True)
        ctx.runner.run(["git", "clone", ctx.settings.RUBY_BUILD_URL, target])

    return ProvisioningStep(
        step_id="ruby-build",
        description="Install ruby-build as an rbenv plugin",
        probe=probe,
        apply=apply,
        category=Category.VERSION_MANAGER,
        critical=True,
        overwrites=overwrites,
    )


def _profile_files(ctx: StepContext) -> List[Path]:
    return [ctx.home / name for name in ctx.settings.PROFILE_FILES]


def rbenv_init_lines(path: Path) -> List[str]:
    shell = "zsh" if path.name == ".zshrc" else "bash"
    return [
        "# rbenv configuration",
        'export PATH="$HOME/.rbenv/bin:$PATH"',
        f'eval "$(rbenv init - {shell})"',
    ]


def rbenv_shell_integration_step() -> ProvisioningStep:
    return profile_block_step(
        "rbenv-shell-integration",
        "Add rbenv to shell startup files",
        "rbenv",
        _profile_files,
        rbenv_init_lines,
        notice=RESTART_NOTICE,
    )


def ruby_step() -> ProvisioningStep:
    def probe(ctx: StepContext) -> ProbeState:
        _require_rbenv(ctx)
        version = target_version(ctx)
        installed = _rbenv(ctx, "versions", "--bare", check=False)
        if not installed.ok:
            return ProbeState.UNKNOWN
        if version not in installed.stdout.split():
            return ProbeState.ABSENT
        selected = _rbenv(ctx, "global", check=False)
        if selected.stdout.strip() != version:
            return ProbeState.ABSENT
        return ProbeState.PRESENT

    def apply(ctx: StepContext) -> None:
        version = target_version(ctx)
        ctx.log.info(f"Installing Ruby {version} (this compiles from source and can take a while)")
        _rbenv(ctx, "install", "-s", version)
        _rbenv(ctx, "global", version)
        _rbenv(ctx, "rehash")

    return ProvisioningStep(
        step_id="ruby",
        description="Install the latest stable Ruby and make it the global default",
        probe=probe,
        apply=apply,
        category=Category.VERSION_MANAGER,
        notice=RESTART_NOTICE,
        requires=("rbenv", "ruby-build"),
    )


def _gem_installed(ctx: StepContext, gem: str) -> ProbeState:
    result = _rbenv(ctx, "exec", "gem", "list", "-i", f"^{gem}$", check=False)
    if result.returncode == 0:
        return ProbeState.PRESENT
    if result.returncode == 1:
        return ProbeState.ABSENT
    return ProbeState.UNKNOWN


def ruby_gems_step() -> ProvisioningStep:
    def probe(ctx: StepContext) -> ProbeState:
        _require_rbenv(ctx)
        return combine(_gem_installed(ctx, gem) for gem in ctx.settings.RUBY_GEMS)

    def apply(ctx: StepContext) -> None:
        missing = [
            gem
            for gem in ctx.settings.RUBY_GEMS
            if _gem_installed(ctx, gem) is not ProbeState.PRESENT
        ]
        _rbenv(ctx, "exec", "gem", "install", *missing)
        _rbenv(ctx, "rehash")

    return ProvisioningStep(
        step_id="ruby-gems",
        description="Install Ruby gems (Bundler, Rails)",
        probe=probe,
        apply=apply,
        category=Category.PACKAGE_INSTALL,
        requires=("rbenv", "ruby"),
    )
