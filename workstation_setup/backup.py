"""
Backup Manager
--------------
Snapshots a file or directory into the run's backup directory before it is
overwritten. The directory is created on first use only. A resource that
exists is never handed back to the caller unless an identical copy is on disk;
anything short of that raises ``BackupFailed``.
"""

import filecmp
import os
import shutil
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import TYPE_CHECKING, List, Optional, Union

from .errors import BackupFailed
from .fsutil import same_tree

if TYPE_CHECKING:
    from .runlog import RunLog

TIMESTAMP_FORMAT = "%Y%m%d%H%M%S"


@dataclass(frozen=True)
class BackupRecord:
    original: Path
    backup: Path
    timestamp: datetime


class BackupManager:
    def __init__(
        self,
        root: Union[str, Path],
        log: Optional["RunLog"] = None,
        home: Optional[Path] = None,
    ) -> None:
        self.root = Path(root)
        self.log = log
        self.home = Path(home) if home else Path.home()
        self.records: List[BackupRecord] = []

    @property
    def backup_dir(self) -> Optional[Path]:
        return self.root if self.records else None

    def _entry_name(self, path: Path, timestamp: datetime) -> str:
        try:
            rel = path.relative_to(self.home)
            parts = rel.parts
        except ValueError:
            parts = path.parts[1:] if path.is_absolute() else path.parts
        flat = "__".join(parts) or path.name
        return f"{flat}.{timestamp.strftime(TIMESTAMP_FORMAT)}"

    def _destination(self, path: Path, timestamp: datetime) -> Path:
        dest = self.root / self._entry_name(path, timestamp)
        counter = 1
        while dest.exists() or dest.is_symlink():
            dest = self.root / f"{self._entry_name(path, timestamp)}-{counter}"
            counter += 1
        return dest

    def backup(self, path: Union[str, Path]) -> Optional[BackupRecord]:
        """Copy ``path`` into the backup directory; ``None`` if it does not exist."""
        path = Path(path).expanduser()
        if not (path.exists() or path.is_symlink()):
            return None

        timestamp = datetime.now()
        try:
            self.root.mkdir(parents=True, exist_ok=True)
            dest = self._destination(path, timestamp)
            if path.is_symlink():
                dest.symlink_to(os.readlink(path))
                verified = dest.is_symlink()
            elif path.is_dir():
                shutil.copytree(path, dest, symlinks=True)
                verified = same_tree(path, dest)
            else:
                shutil.copy2(path, dest)
                verified = filecmp.cmp(str(path), str(dest), shallow=False)
        except OSError as e:
            raise BackupFailed(path, str(e)) from e
        if not verified:
            raise BackupFailed(path, f"copy at {dest} does not match the original")

        record = BackupRecord(original=path, backup=dest, timestamp=timestamp)
        self.records.append(record)
        if self.log is not None:
            self.log.record_backup(record)
            self.log.info(f"Backed up {path} to {dest}")
        return record
