"""
Settings and per-run configuration.

``Settings`` is loaded once from the environment (prefix ``WORKSTATION_SETUP_``)
or a ``.env`` file. ``RunConfig`` is derived from it for each run and handed to
the run log and the executor, so several simulated runs can share a process.
"""

import getpass
import logging
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import List, Optional

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict
from rich.console import Console

from .ui import make_console

PROCESS_NAME = "workstation-setup"
RUN_ID_FORMAT = "%Y%m%d_%H%M%S"


def _state_dir() -> Path:
    return Path.home() / ".local" / "state" / PROCESS_NAME


class Settings(BaseSettings):
    """
    Operator-level settings loaded from environment variables.

    Every field can be overridden with ``WORKSTATION_SETUP_<FIELD>``, e.g.
    ``WORKSTATION_SETUP_RUBY_VERSION=3.3.5``.
    """

    model_config = SettingsConfigDict(
        env_prefix="WORKSTATION_SETUP_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    HOME: Path = Field(default_factory=Path.home)
    USERNAME: str = Field(default_factory=getpass.getuser)
    LOG_DIR: Path = Field(default_factory=lambda: _state_dir() / "logs")
    BACKUP_DIR: Path = Field(default_factory=lambda: _state_dir() / "backups")
    LOG_LEVEL: str = Field("DEBUG", description="Console log level; the log file always keeps DEBUG.")
    SUDO: str = "sudo"
    COMMAND_TIMEOUT: int = 1800
    ZSH_PATH: Path = Path("/usr/bin/zsh")

    DOTFILES_DIR: Optional[Path] = None
    DOTFILES_REPO: Optional[str] = None

    RUBY_VERSION: Optional[str] = Field(
        None, description="Ruby to install; latest stable known to ruby-build when unset."
    )
    RUBY_GEMS: List[str] = Field(default_factory=lambda: ["bundler", "rails"])

    OH_MY_ZSH_INSTALLER_URL: str = (
        "https://raw.githubusercontent.com/ohmyzsh/ohmyzsh/master/tools/install.sh"
    )
    LAZYVIM_STARTER_URL: str = "https://github.com/LazyVim/starter"
    RBENV_URL: str = "https://github.com/rbenv/rbenv.git"
    RUBY_BUILD_URL: str = "https://github.com/rbenv/ruby-build.git"

    PROFILE_FILES: List[str] = Field(
        default_factory=lambda: [".bashrc", ".zshrc", ".profile"]
    )
    ALIAS_PROFILE_FILES: List[str] = Field(default_factory=lambda: [".bashrc", ".zshrc"])

    @model_validator(mode="after")
    def _derive_paths(self) -> "Settings":
        if self.DOTFILES_DIR is None:
            self.DOTFILES_DIR = self.HOME / "dotfiles"
        return self

    @property
    def rbenv_root(self) -> Path:
        return self.HOME / ".rbenv"

    @property
    def config_home(self) -> Path:
        return self.HOME / ".config"


@dataclass
class RunConfig:
    """Everything a single run needs to know about where and how to record itself."""

    process_name: str
    run_id: str
    log_file: Path
    backup_root: Path
    console: Console = field(default_factory=make_console)
    console_level: int = logging.INFO
    dry_run: bool = False
    assume_yes: bool = False
    started_at: datetime = field(default_factory=datetime.now)

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        *,
        process_name: str = PROCESS_NAME,
        dry_run: bool = False,
        assume_yes: bool = False,
        quiet: bool = False,
        console: Optional[Console] = None,
        now: Optional[datetime] = None,
    ) -> "RunConfig":
        started = now or datetime.now()
        run_id = started.strftime(RUN_ID_FORMAT)
        level_name = "INFO" if quiet else settings.LOG_LEVEL.upper()
        level = logging.getLevelName(level_name)
        if not isinstance(level, int):
            level = logging.INFO
        return cls(
            process_name=process_name,
            run_id=run_id,
            log_file=Path(settings.LOG_DIR) / f"{process_name}_{run_id}.log",
            backup_root=Path(settings.BACKUP_DIR) / f"{process_name}_{run_id}",
            console=console or make_console(),
            console_level=level,
            dry_run=dry_run,
            assume_yes=assume_yes,
            started_at=started,
        )
