"""System update, package groups, GUI applications and Docker."""

from typing import List

from ..packages import package_step
from ..probe import ProbeState
from ..steps import Category, ProvisioningStep, StepContext

BASE_PACKAGES = ["git", "docker", "curl", "bat", "btop", "fastfetch"]
TERMINAL_UTILITIES = [
    "ranger",
    "fzf",
    "lsd",
    "bat",
    "ripgrep",
    "fd",
    "httpie",
    "whois",
    "duf",
]
NERD_FONTS = ["ttf-nerd-fonts-symbols"]
GUI_APPS = [
    ("ghostty", "Install the Ghostty terminal", ["ghostty"]),
    ("bitwarden", "Install the Bitwarden password manager", ["bitwarden"]),
]


def system_update_step() -> ProvisioningStep:
    def probe(ctx: StepContext) -> ProbeState:
        return ctx.packages.is_up_to_date()

    def apply(ctx: StepContext) -> None:
        ctx.packages.upgrade()

    return ProvisioningStep(
        step_id="system-update",
        description="Update the system",
        probe=probe,
        apply=apply,
        category=Category.PACKAGE_INSTALL,
        critical=True,
    )


def base_packages_step() -> ProvisioningStep:
    return package_step(
        "base-packages", "Install essential packages", BASE_PACKAGES, critical=True
    )


def terminal_utilities_step() -> ProvisioningStep:
    return package_step(
        "terminal-utilities",
        "Install terminal utilities",
        TERMINAL_UTILITIES,
        prompt="Install terminal utilities such as ranger, fzf, lsd, etc.?",
    )


def nerd_fonts_step() -> ProvisioningStep:
    return package_step("nerd-fonts", "Install Nerd Fonts", NERD_FONTS)


def gui_app_steps() -> List[ProvisioningStep]:
    return [
        package_step(step_id, description, packages)
        for step_id, description, packages in GUI_APPS
    ]


def docker_service_step() -> ProvisioningStep:
    def probe(ctx: StepContext) -> ProbeState:
        enabled = ctx.runner.run(["systemctl", "is-enabled", "docker"], check=False)
        active = ctx.runner.run(["systemctl", "is-active", "docker"], check=False)
        if 127 in (enabled.returncode, active.returncode):
            return ProbeState.UNKNOWN
        if enabled.ok and active.ok:
            return ProbeState.PRESENT
        return ProbeState.ABSENT

    def apply(ctx: StepContext) -> None:
        ctx.runner.run(["systemctl", "enable", "--now", "docker"], sudo=True)

    return ProvisioningStep(
        step_id="docker-service",
        description="Enable and start the Docker service",
        probe=probe,
        apply=apply,
        category=Category.SERVICE_CONFIG,
    )


def docker_group_step() -> ProvisioningStep:
    def probe(ctx: StepContext) -> ProbeState:
        result = ctx.runner.run(["id", "-nG", ctx.settings.USERNAME], check=False)
        if not result.ok:
            return ProbeState.UNKNOWN
        if "docker" in result.stdout.split():
            return ProbeState.PRESENT
        return ProbeState.ABSENT

    def apply(ctx: StepContext) -> None:
        ctx.runner.run(["usermod", "-aG", "docker", ctx.settings.USERNAME], sudo=True)

    return ProvisioningStep(
        step_id="docker-group",
        description="Add the user to the docker group",
        probe=probe,
        apply=apply,
        category=Category.SERVICE_CONFIG,
        notice="Reopen your shell session (or log out and back in) to pick up the new docker group membership.",
    )
