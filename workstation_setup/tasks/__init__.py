"""Named provisioning plans, in the order their steps must run."""

from typing import Callable, Dict, List

from ..plan import Plan, PlanBuilder
from ..steps import ProvisioningStep
from . import dotfiles, editor, ruby, shell, system


def workstation_steps() -> List[ProvisioningStep]:
    return [
        system.system_update_step(),
        system.base_packages_step(),
        system.terminal_utilities_step(),
        system.nerd_fonts_step(),
        shell.zsh_step(),
        shell.oh_my_zsh_step(),
        # After Oh My Zsh, whose installer replaces ~/.zshrc.
        shell.lsd_alias_step(),
        editor.editors_step(),
        editor.lazyvim_step(),
        *system.gui_app_steps(),
        dotfiles.dotfiles_fetch_step(),
        dotfiles.dotfiles_step(),
        shell.default_shell_step(),
        system.docker_service_step(),
        system.docker_group_step(),
    ]


def ruby_steps() -> List[ProvisioningStep]:
    return [
        system.system_update_step(),
        ruby.ruby_build_deps_step(),
        ruby.rbenv_step(),
        ruby.ruby_build_step(),
        ruby.rbenv_shell_integration_step(),
        ruby.ruby_step(),
        ruby.ruby_gems_step(),
    ]


PLANS: Dict[str, List[Callable[[], List[ProvisioningStep]]]] = {
    "workstation": [workstation_steps],
    "ruby": [ruby_steps],
    "all": [workstation_steps, ruby_steps],
}


def build_plan(name: str = "all") -> Plan:
    if name not in PLANS:
        raise KeyError(f"Unknown plan '{name}'. Choose from: {', '.join(PLANS)}")
    builder = PlanBuilder(name)
    for group in PLANS[name]:
        builder.extend(group())
    return builder.build()
