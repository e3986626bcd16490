"""Physical storage for file content.

Layout is directory-addressed and one level deep::

    <storage_root>/<directory_id>/<file_id>

Every directory, roots included, owns exactly one top-level folder named by
its id; subdirectories are not nested on disk. Moving a directory therefore
never touches the disk, while moving a file is a rename between two parent
folders.
"""

import logging
import os
import shutil
from pathlib import Path
from typing import Iterable, List, Tuple

from ..core.config import settings

logger = logging.getLogger(__name__)


class StorageError(OSError):
    """One or more disk operations in a batch failed."""

    def __init__(self, action: str, failed: List[Tuple[str, OSError]]):
        self.action = action
        self.failed = failed
        names = ", ".join(name for name, _ in failed)
        super().__init__(f"{action} failed for: {names}")


class DiskStorage:
    """Filesystem operations over the storage root.

    Batch methods attempt every item, then raise one StorageError naming the
    items that failed, so a single bad folder never hides the rest.
    """

    def __init__(self, root: str):
        self.root = Path(root)

    # -- paths ---------------------------------------------------------------

    def directory_path(self, directory_id: str) -> Path:
        return self.root / _segment(directory_id)

    def file_path(self, directory_id: str, file_id: str) -> Path:
        return self.directory_path(directory_id) / _segment(file_id)

    # -- directories ---------------------------------------------------------

    def make_directory(self, directory_id: str) -> Path:
        path = self.directory_path(directory_id)
        path.mkdir(mode=0o700, parents=True, exist_ok=True)
        return path

    def make_directories(self, directory_ids: Iterable[str]) -> int:
        return self._batch("mkdir", directory_ids, self.make_directory)

    def remove_directories(self, directory_ids: Iterable[str]) -> int:
        """Recursively remove each directory folder. Missing folders count as removed."""
        def _remove(directory_id: str) -> None:
            path = self.directory_path(directory_id)
            if path.exists():
                shutil.rmtree(path)

        return self._batch("rmtree", directory_ids, _remove)

    def copy_directories(self, pairs: Iterable[Tuple[str, str]]) -> int:
        """Duplicate each ``(old_id, new_id)`` folder. A missing source yields an empty copy."""
        def _copy(pair: Tuple[str, str]) -> None:
            old_id, new_id = pair
            source = self.directory_path(old_id)
            target = self.directory_path(new_id)
            if not source.exists():
                logger.warning(
                    "Source folder missing, creating empty copy",
                    extra={"directory_id": old_id, "copy_id": new_id},
                )
                target.mkdir(mode=0o700, parents=True, exist_ok=True)
                return
            shutil.copytree(source, target, dirs_exist_ok=True)

        return self._batch("copytree", pairs, _copy, label=lambda p: p[0])

    # -- files ---------------------------------------------------------------

    def move_files(self, moves: Iterable[Tuple[str, str, str]]) -> int:
        """Move content for each ``(file_id, from_directory, to_directory)``."""
        def _move(move: Tuple[str, str, str]) -> None:
            file_id, source_dir, target_dir = move
            if source_dir == target_dir:
                return
            target = self.file_path(target_dir, file_id)
            target.parent.mkdir(mode=0o700, parents=True, exist_ok=True)
            os.replace(self.file_path(source_dir, file_id), target)

        return self._batch("move", moves, _move, label=lambda m: m[0])

    def rename_files(self, renames: Iterable[Tuple[str, str, str]]) -> int:
        """Rename content inside one folder for each ``(directory_id, old_id, new_id)``."""
        def _rename(rename: Tuple[str, str, str]) -> None:
            directory_id, old_id, new_id = rename
            os.replace(
                self.file_path(directory_id, old_id),
                self.file_path(directory_id, new_id),
            )

        return self._batch("rename", renames, _rename, label=lambda r: r[1])

    def copy_files(self, copies: Iterable[Tuple[str, str, str, str]]) -> int:
        """Copy content for each ``(old_id, from_directory, new_id, to_directory)``."""
        def _copy(copy: Tuple[str, str, str, str]) -> None:
            old_id, source_dir, new_id, target_dir = copy
            target = self.file_path(target_dir, new_id)
            target.parent.mkdir(mode=0o700, parents=True, exist_ok=True)
            shutil.copy2(self.file_path(source_dir, old_id), target)

        return self._batch("copy", copies, _copy, label=lambda c: c[0])

    def remove_files(self, removals: Iterable[Tuple[str, str]]) -> int:
        """Remove content for each ``(directory_id, file_id)``. Missing content is fine."""
        def _remove(removal: Tuple[str, str]) -> None:
            directory_id, file_id = removal
            self.file_path(directory_id, file_id).unlink(missing_ok=True)

        return self._batch("unlink", removals, _remove, label=lambda r: r[1])

    # -- helpers -------------------------------------------------------------

    @staticmethod
    def _batch(action, items, fn, label=lambda item: item) -> int:
        done = 0
        failed: List[Tuple[str, OSError]] = []
        for item in items:
            try:
                fn(item)
            except OSError as exc:
                failed.append((str(label(item)), exc))
                continue
            done += 1
        if failed:
            raise StorageError(action, failed)
        return done


def _segment(value: str) -> str:
    """Refuse ids that could escape the storage root."""
    if not value or value in (".", "..") or "/" in value or "\\" in value or "\0" in value:
        raise ValueError(f"Invalid storage path segment: {value!r}")
    return value


def get_storage() -> DiskStorage:
    """Storage rooted at the configured upload directory. FastAPI dependency."""
    return DiskStorage(settings.storage_root)
