import os

import pytest

from workstation_setup.commands import CommandResult, CommandRunner
from workstation_setup.errors import ApplyFailed, ProbeIndeterminate
from workstation_setup.packages import Pacman, install_packages, query_packages
from workstation_setup.probe import ProbeState


@pytest.fixture
def pacman(system):
    return Pacman(system)


def test_query_reads_the_local_database(pacman, system):
    system.installed.add("git")
    assert pacman.query("git") is ProbeState.PRESENT
    assert pacman.query("tree") is ProbeState.ABSENT


def test_query_without_pacman_is_unknown(pacman, system):
    system.pacman_available = False
    assert pacman.query("git") is ProbeState.UNKNOWN


def test_query_on_a_translated_host(pacman, system):
    assert system.locale == "pt_BR.UTF-8"
    assert pacman.query("tree") is ProbeState.ABSENT


PACMAN_SCRIPT = """#!/bin/sh
if [ "$2" = git ]; then echo "git 2.46.0-1"; exit 0; fi
if [ "$LC_ALL" = C ]; then
  echo "error: package '$2' was not found" >&2
else
  echo "erro: pacote '$2' não foi encontrado" >&2
fi
exit 1
"""


def test_query_forces_english_messages_from_real_pacman(tmp_path, monkeypatch):
    bin_dir = tmp_path / "bin"
    bin_dir.mkdir()
    script = bin_dir / "pacman"
    script.write_text(PACMAN_SCRIPT, encoding="utf-8")
    script.chmod(0o755)
    monkeypatch.setenv("PATH", f"{bin_dir}:{os.environ.get('PATH', '')}")
    monkeypatch.setenv("LANG", "pt_BR.UTF-8")
    monkeypatch.delenv("LC_ALL", raising=False)
    monkeypatch.delenv("LC_MESSAGES", raising=False)

    pacman = Pacman(CommandRunner())

    assert pacman.query("tree") is ProbeState.ABSENT
    assert pacman.query("git") is ProbeState.PRESENT


def test_query_with_unexpected_error_is_unknown(pacman, system):
    system.fail("pacman", "-Q", returncode=1, stderr="error: could not open database")
    assert pacman.query("git") is ProbeState.UNKNOWN


def test_missing_package_is_installed_once(pacman, system):
    assert query_packages(pacman, ["tree"]) is ProbeState.ABSENT

    installed = install_packages(pacman, ["tree"])

    assert installed == ["tree"]
    assert system.install_batches == [["tree"]]
    assert query_packages(pacman, ["tree"]) is ProbeState.PRESENT
    assert system.sudo_calls == [["pacman", "-S", "--needed", "--noconfirm", "tree"]]


def test_only_missing_packages_are_installed_in_one_batch(pacman, system):
    system.installed.update({"git", "curl"})

    installed = install_packages(pacman, ["git", "bat", "curl", "btop", "bat"])

    assert installed == ["bat", "btop"]
    assert system.install_batches == [["bat", "btop"]]


def test_nothing_to_install(pacman, system):
    system.installed.update({"git", "curl"})

    assert install_packages(pacman, ["git", "curl"]) == []
    assert system.install_batches == []


def test_unknown_state_blocks_install(pacman, system):
    system.pacman_available = False

    with pytest.raises(ProbeIndeterminate):
        install_packages(pacman, ["tree"])
    assert system.install_batches == []


def test_install_that_leaves_package_missing_fails(pacman, system, monkeypatch):
    monkeypatch.setattr(system, "_cmd_pacman", _noop_install(system._cmd_pacman))

    with pytest.raises(ApplyFailed, match="not present after install"):
        install_packages(pacman, ["tree"])


def _noop_install(real):
    """pacman -S that reports success without installing anything."""

    def handler(argv, env):
        if argv[1] == "-S":
            return CommandResult(argv, 0, "", "")
        return real(argv, env)

    return handler


def test_install_error_carries_exit_status_and_diagnostic(pacman, system):
    system.fail("pacman", "-S", returncode=1, stderr="error: target not found: tree")

    with pytest.raises(ApplyFailed) as excinfo:
        install_packages(pacman, ["tree"])
    assert excinfo.value.exit_status == 1
    assert excinfo.value.diagnostic == "error: target not found: tree"


def test_system_up_to_date_probe(pacman, system):
    assert pacman.is_up_to_date() is ProbeState.PRESENT

    system.upgrades.append("linux 6.10.1-1 -> 6.10.2-1")
    assert pacman.is_up_to_date() is ProbeState.ABSENT

    pacman.upgrade()
    assert pacman.is_up_to_date() is ProbeState.PRESENT
