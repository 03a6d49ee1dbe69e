"""Filesystem comparison and removal helpers shared by backups and file steps."""

import filecmp
import shutil
from pathlib import Path
from typing import Union


def same_tree(left: Path, right: Path) -> bool:
    """True if two directory trees hold the same names and file contents."""
    cmp = filecmp.dircmp(str(left), str(right))
    if cmp.left_only or cmp.right_only:
        return False
    _, mismatch, errors = filecmp.cmpfiles(
        str(left), str(right), cmp.common_files, shallow=False
    )
    if mismatch or errors:
        return False
    return all(same_tree(left / name, right / name) for name in cmp.common_dirs)


def tree_contains(source: Path, target: Path) -> bool:
    """True if every file under ``source`` exists with identical content under ``target``."""
    source, target = Path(source), Path(target)
    if source.is_dir():
        if not target.is_dir():
            return False
        return all(tree_contains(child, target / child.name) for child in source.iterdir())
    if not target.is_file():
        return False
    return filecmp.cmp(str(source), str(target), shallow=False)


def remove_path(path: Union[str, Path]) -> bool:
    """Delete a file, symlink or directory tree. Returns False if nothing was there."""
    path = Path(path)
    if path.is_symlink() or path.is_file():
        path.unlink()
        return True
    if path.is_dir():
        shutil.rmtree(path)
        return True
    return False
