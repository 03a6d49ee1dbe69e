import io
from datetime import datetime
from pathlib import Path
from typing import Dict, List, Mapping, Optional, Tuple

import pytest
from rich.console import Console

from workstation_setup.commands import CommandResult, CommandRunner
from workstation_setup.config import RunConfig, Settings
from workstation_setup.errors import CommandError
from workstation_setup.executor import StepExecutor, build_context
from workstation_setup.runlog import RunLog
from workstation_setup.ui import NORD_THEME

RUBY_LISTING = "3.2.5\n3.3.5\njruby-9.4.8.0\ntruffleruby-24.1.0\n"


class FakeSystem(CommandRunner):
    """
    Stands in for the host: a pacman database, systemd, user groups, git
    remotes and an rbenv install, all held in memory (files land under the
    test's home directory).
    """

    def __init__(self, settings: Settings) -> None:
        super().__init__(log=None)
        self.settings = settings
        self.home = Path(settings.HOME)
        self.installed = set()
        self.install_batches: List[List[str]] = []
        self.upgrades: List[str] = []
        self.pacman_available = True
        # Host locale; commands see it unless they override LC_ALL.
        self.locale = "pt_BR.UTF-8"
        self.services = set()
        self.groups: Dict[str, set] = {settings.USERNAME: {settings.USERNAME, "wheel"}}
        self.login_shell = "/bin/bash"
        self.rubies: List[str] = []
        self.global_ruby = "system"
        self.gems = set()
        self.calls: List[List[str]] = []
        self.sudo_calls: List[List[str]] = []
        self.failures: Dict[Tuple[str, ...], Tuple[int, str]] = {}
        self.repos: Dict[str, Dict[str, str]] = {
            settings.LAZYVIM_STARTER_URL: {
                "init.lua": '-- bootstrap lazy.nvim, LazyVim and your plugins\nrequire("config.lazy")\n',
                "lua/config/lazy.lua": "-- lazy.nvim setup\n",
            },
            settings.RBENV_URL: {"bin/rbenv": "#!/usr/bin/env bash\n"},
            settings.RUBY_BUILD_URL: {"bin/ruby-build": "#!/usr/bin/env bash\n"},
        }

    def fail(self, *prefix: str, returncode: int = 1, stderr: str = "boom") -> None:
        """Make every command starting with ``prefix`` exit with ``returncode``."""
        self.failures[tuple(prefix)] = (returncode, stderr)

    def commands(self, name: str) -> List[List[str]]:
        return [call for call in self.calls if Path(call[0]).name == name]

    def run(
        self,
        cmd,
        *,
        check: bool = True,
        sudo: bool = False,
        cwd=None,
        env: Optional[Mapping[str, str]] = None,
        capture_output: bool = True,
        timeout: Optional[int] = None,
    ) -> CommandResult:
        argv = [str(part) for part in cmd]
        self.calls.append(argv)
        if sudo:
            self.sudo_calls.append(argv)
        result = self._dispatch(argv, env or {})
        if check and not result.ok:
            raise CommandError(argv, result.returncode, (result.stderr or result.stdout).strip())
        return result

    __call__ = run

    def _dispatch(self, argv: List[str], env: Mapping[str, str]) -> CommandResult:
        for prefix, (returncode, stderr) in self.failures.items():
            if tuple(argv[: len(prefix)]) == prefix:
                return CommandResult(argv, returncode, "", stderr)
        name = Path(argv[0]).name
        handler = getattr(self, "_cmd_" + name.replace("-", "_"), None)
        if handler is None:
            return CommandResult(argv, 127, "", f"{name}: command not found")
        return handler(argv, env)

    def _ok(self, argv, stdout: str = "") -> CommandResult:
        return CommandResult(argv, 0, stdout, "")

    # pacman ------------------------------------------------------------
    def _cmd_pacman(self, argv, env):
        if not self.pacman_available:
            return CommandResult(argv, 127, "", "pacman: command not found")
        flag = argv[1]
        if flag == "-Q":
            package = argv[2]
            if package in self.installed:
                return self._ok(argv, f"{package} 1.0-1\n")
            if env.get("LC_ALL", self.locale) == "C":
                message = f"error: package '{package}' was not found\n"
            else:
                message = f"erro: pacote '{package}' não foi encontrado\n"
            return CommandResult(argv, 1, "", message)
        if flag == "-Qu":
            if self.upgrades:
                return self._ok(argv, "\n".join(self.upgrades) + "\n")
            return CommandResult(argv, 1, "", "")
        if flag == "-S":
            packages = [arg for arg in argv[2:] if not arg.startswith("--")]
            self.install_batches.append(packages)
            self.installed.update(packages)
            return self._ok(argv)
        if flag == "-Syu":
            self.upgrades.clear()
            return self._ok(argv)
        return CommandResult(argv, 1, "", f"error: invalid option '{flag}'")

    # services and users -------------------------------------------------
    def _cmd_systemctl(self, argv, env):
        action, unit = argv[1], argv[-1]
        if action in ("is-enabled", "is-active"):
            if unit in self.services:
                return self._ok(argv, "enabled\n" if action == "is-enabled" else "active\n")
            return CommandResult(argv, 1, "disabled\n" if action == "is-enabled" else "inactive\n", "")
        if action == "enable":
            self.services.add(unit)
            return self._ok(argv)
        return CommandResult(argv, 1, "", f"Unknown command verb {action}.")

    def _cmd_id(self, argv, env):
        user = argv[-1]
        if user not in self.groups:
            return CommandResult(argv, 1, "", f"id: '{user}': no such user")
        return self._ok(argv, " ".join(sorted(self.groups[user])) + "\n")

    def _cmd_usermod(self, argv, env):
        group, user = argv[2], argv[3]
        self.groups.setdefault(user, set()).add(group)
        return self._ok(argv)

    def _cmd_chsh(self, argv, env):
        self.login_shell = argv[2]
        return self._ok(argv)

    # downloads ----------------------------------------------------------
    def _cmd_git(self, argv, env):
        url, dest = argv[2], Path(argv[3])
        if dest.exists() and any(dest.iterdir()):
            return CommandResult(
                argv, 128, "", f"fatal: destination path '{dest}' already exists and is not an empty directory."
            )
        if url not in self.repos:
            return CommandResult(argv, 128, "", f"fatal: repository '{url}' not found")
        for rel, content in self.repos[url].items():
            target = dest / rel
            target.parent.mkdir(parents=True, exist_ok=True)
            target.write_text(content)
        (dest / ".git").mkdir(parents=True, exist_ok=True)
        (dest / ".git" / "HEAD").write_text("ref: refs/heads/main\n")
        return self._ok(argv)

    def _cmd_curl(self, argv, env):
        Path(argv[argv.index("-o") + 1]).write_text("#!/bin/sh\n# installer\n")
        return self._ok(argv)

    def _cmd_sh(self, argv, env):
        zsh_dir = Path(env.get("ZSH", self.home / ".oh-my-zsh"))
        zsh_dir.mkdir(parents=True, exist_ok=True)
        (zsh_dir / "oh-my-zsh.sh").write_text("# oh-my-zsh\n")
        (self.home / ".zshrc").write_text('export ZSH="$HOME/.oh-my-zsh"\nsource $ZSH/oh-my-zsh.sh\n')
        return self._ok(argv)

    # rbenv --------------------------------------------------------------
    def _cmd_rbenv(self, argv, env):
        sub, args = argv[1], argv[2:]
        if sub == "install":
            if args == ["--list"]:
                return self._ok(argv, RUBY_LISTING)
            version = args[-1]
            if version not in self.rubies:
                self.rubies.append(version)
            return self._ok(argv)
        if sub == "versions":
            return self._ok(argv, "".join(f"{v}\n" for v in self.rubies))
        if sub == "global":
            if args:
                self.global_ruby = args[0]
                return self._ok(argv)
            return self._ok(argv, f"{self.global_ruby}\n")
        if sub == "rehash":
            return self._ok(argv)
        if sub == "exec" and args[:2] == ["gem", "list"]:
            gem = args[-1].strip("^$")
            if gem in self.gems:
                return self._ok(argv, "true\n")
            return CommandResult(argv, 1, "false\n", "")
        if sub == "exec" and args[:2] == ["gem", "install"]:
            self.gems.update(args[2:])
            return self._ok(argv)
        return CommandResult(argv, 1, "", f"rbenv: no such command `{sub}'")


def read_console(console: Console) -> str:
    return console.file.getvalue()


@pytest.fixture
def home(tmp_path) -> Path:
    path = tmp_path / "home"
    path.mkdir()
    return path


@pytest.fixture
def settings(tmp_path, home) -> Settings:
    return Settings(
        _env_file=None,
        HOME=home,
        USERNAME="tester",
        LOG_DIR=tmp_path / "logs",
        BACKUP_DIR=tmp_path / "backups",
        RUBY_GEMS=["bundler", "rails"],
    )


@pytest.fixture
def system(settings) -> FakeSystem:
    return FakeSystem(settings)


@pytest.fixture
def console() -> Console:
    return Console(file=io.StringIO(), theme=NORD_THEME, width=120, color_system=None)


@pytest.fixture
def make_config(settings):
    def factory(console: Optional[Console] = None, now: Optional[datetime] = None, **options) -> RunConfig:
        console = console or Console(
            file=io.StringIO(), theme=NORD_THEME, width=120, color_system=None
        )
        return RunConfig.from_settings(settings, console=console, now=now, **options)

    return factory


@pytest.fixture
def make_executor(settings, system, make_config):
    """Build a fresh run (log, context, executor) against the shared fake host."""

    def factory(answers: str = "", **options) -> StepExecutor:
        config = make_config(**options)
        log = RunLog(config)
        context = build_context(settings, log, runner=system)
        return StepExecutor(context, stream=io.StringIO(answers))

    return factory
