"""
Shell profile blocks.

Configuration is appended to profile files as blocks that open with a unique
marker line. Existing lines are never edited or removed, and a block whose
marker is already present is not written again.
"""

from pathlib import Path
from typing import Callable, List, Optional, Sequence, Union

from .config import PROCESS_NAME
from .errors import ProbeIndeterminate
from .probe import ProbeState, combine, probe_marker
from .steps import Category, ProvisioningStep, StepContext

LinesFn = Callable[[Path], Sequence[str]]


def block_marker(name: str) -> str:
    return f"# >>> {PROCESS_NAME}: {name} >>>"


def block_end(name: str) -> str:
    return f"# <<< {PROCESS_NAME}: {name} <<<"


def append_block(path: Union[str, Path], name: str, lines: Sequence[str]) -> bool:
    """Append the ``name`` block to ``path`` unless present. Returns True if written."""
    path = Path(path)
    marker = block_marker(name)
    state = probe_marker(path, marker)
    if state is ProbeState.UNKNOWN:
        raise ProbeIndeterminate(str(path), "profile file is not readable")
    if state is ProbeState.PRESENT:
        return False

    existing = path.read_text(encoding="utf-8") if path.exists() else ""
    chunk: List[str] = []
    if existing and not existing.endswith("\n"):
        chunk.append("")
    if existing:
        chunk.append("")
    chunk.extend([marker, *lines, block_end(name)])

    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "a", encoding="utf-8") as fh:
        fh.write("\n".join(chunk) + "\n")
    return True


def profile_block_step(
    step_id: str,
    description: str,
    block: str,
    files: Callable[[StepContext], Sequence[Path]],
    lines: LinesFn,
    *,
    critical: bool = False,
    prompt: Optional[str] = None,
    notice: Optional[str] = None,
) -> ProvisioningStep:
    """Declare a step that makes sure every profile in ``files`` carries ``block``."""
    marker = block_marker(block)

    def probe(ctx: StepContext) -> ProbeState:
        return combine(probe_marker(path, marker) for path in files(ctx))

    def apply(ctx: StepContext) -> None:
        for path in files(ctx):
            if append_block(path, block, lines(path)):
                ctx.log.info(f"Added {block} block to {path}")
            else:
                ctx.log.debug(f"{path} already has the {block} block")

    def overwrites(ctx: StepContext) -> Sequence[Path]:
        return [path for path in files(ctx) if probe_marker(path, marker) is not ProbeState.PRESENT]

    return ProvisioningStep(
        step_id=step_id,
        description=description,
        probe=probe,
        apply=apply,
        category=Category.SHELL_CONFIG,
        critical=critical,
        prompt=prompt,
        overwrites=overwrites,
        notice=notice,
    )
