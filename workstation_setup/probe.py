"""
Read-only state probes.

A probe answers whether a resource already matches the desired state. When
the query mechanism itself is unusable the answer is ``UNKNOWN``, never
``ABSENT``, so callers can refuse to apply on a guess.
"""

import pwd
from enum import Enum
from pathlib import Path
from typing import Iterable, Union


class ProbeState(str, Enum):
    PRESENT = "present"
    ABSENT = "absent"
    UNKNOWN = "unknown"


def combine(states: Iterable[ProbeState]) -> ProbeState:
    """Fold several probe results: any UNKNOWN wins, then any ABSENT."""
    result = ProbeState.PRESENT
    for state in states:
        if state is ProbeState.UNKNOWN:
            return ProbeState.UNKNOWN
        if state is ProbeState.ABSENT:
            result = ProbeState.ABSENT
    return result


def probe_path(path: Union[str, Path]) -> ProbeState:
    path = Path(path)
    try:
        exists = path.exists() or path.is_symlink()
    except OSError:
        return ProbeState.UNKNOWN
    return ProbeState.PRESENT if exists else ProbeState.ABSENT


def probe_marker(path: Union[str, Path], marker: str) -> ProbeState:
    """PRESENT if ``path`` is a file containing ``marker`` on a line of its own."""
    path = Path(path)
    if not path.exists():
        return ProbeState.ABSENT
    try:
        lines = path.read_text(encoding="utf-8", errors="replace").splitlines()
    except OSError:
        return ProbeState.UNKNOWN
    if any(line.strip() == marker for line in lines):
        return ProbeState.PRESENT
    return ProbeState.ABSENT


def probe_login_shell(username: str, shell: Union[str, Path]) -> ProbeState:
    try:
        entry = pwd.getpwnam(username)
    except KeyError:
        return ProbeState.UNKNOWN
    return ProbeState.PRESENT if entry.pw_shell == str(shell) else ProbeState.ABSENT
