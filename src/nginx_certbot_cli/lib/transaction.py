"""
Snapshot/restore of configuration paths around a mutation
"""
import logging
import os
import shutil
import tempfile
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, List, Optional

from .proxy.base import ProxyError

logger = logging.getLogger(__name__)


@dataclass
class PathSnapshot:
    """State of one path before a transaction"""
    path: Path
    kind: str  # "missing", "symlink" or "file"
    link_target: Optional[str] = None
    backup: Optional[Path] = None


class ConfigTransaction:
    """
    Context manager restoring a set of paths unless committed

    Regular files are copied into a private temporary directory, symlinks
    and missing paths are recorded. Backups never land next to the config
    files, where an nginx include glob could pick them up. Leaving the block
    without commit() (including by an exception) restores every path to its
    recorded state.

        with ConfigTransaction([conf, link]) as txn:
            conf.write_text(new_content)
            proxy.validate_config()
            txn.commit()
    """

    def __init__(self, paths: Iterable[Path], backup_suffix: str = ".bak"):
        self.paths = list(dict.fromkeys(Path(p) for p in paths))
        self.backup_suffix = backup_suffix
        self.backup_dir: Optional[Path] = None
        self.snapshots: List[PathSnapshot] = []
        self.committed = False
        self.rolled_back = False

    def __enter__(self) -> 'ConfigTransaction':
        self.backup_dir = Path(tempfile.mkdtemp(prefix="nginx-certbot-"))
        for index, path in enumerate(self.paths):
            self.snapshots.append(self._snapshot(index, path))
        return self

    def __exit__(self, exc_type, exc, tb) -> bool:
        if not self.committed and not self.rolled_back:
            if exc is not None:
                logger.warning(f"Rolling back after error: {exc}")
            self.rollback()
        return False

    def _snapshot(self, index: int, path: Path) -> PathSnapshot:
        if path.is_symlink():
            return PathSnapshot(path, "symlink", link_target=os.readlink(path))
        if path.is_file():
            backup = self.backup_dir / f"{index}-{path.name}{self.backup_suffix}"
            shutil.copy2(path, backup)
            logger.debug(f"Backed up {path} to {backup}")
            return PathSnapshot(path, "file", backup=backup)
        return PathSnapshot(path, "missing")

    @staticmethod
    def _remove(path: Path) -> None:
        if path.is_symlink() or path.is_file():
            path.unlink()

    def _discard_backups(self) -> None:
        if self.backup_dir is not None:
            shutil.rmtree(self.backup_dir, ignore_errors=True)
            self.backup_dir = None

    def commit(self) -> None:
        """Keep the new state and discard the backups"""
        self._discard_backups()
        self.committed = True

    def rollback(self) -> None:
        """
        Restore every path to its recorded state

        The backup directory is kept when a path cannot be restored so the
        copies are still there for manual recovery.

        Raises:
            ProxyError: If a path cannot be restored; manual intervention is needed
        """
        failed = []
        for snapshot in self.snapshots:
            path = snapshot.path
            try:
                if snapshot.kind == "file":
                    if path.is_symlink():
                        path.unlink()
                    shutil.copy2(snapshot.backup, path)
                elif snapshot.kind == "symlink":
                    self._remove(path)
                    os.symlink(snapshot.link_target, path)
                else:
                    self._remove(path)
            except OSError as e:
                logger.error(f"Failed to restore {path}: {e}")
                failed.append(f"{path}: {e}")

        self.rolled_back = True
        if failed:
            if self.backup_dir is not None:
                failed.append(f"Backups kept in {self.backup_dir}")
            raise ProxyError(
                "Rollback incomplete, manual intervention is needed",
                "\n".join(failed)
            )
        self._discard_backups()
        logger.info("Configuration changes rolled back")
