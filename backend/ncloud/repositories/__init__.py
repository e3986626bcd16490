"""Data access repositories."""

from .base import BaseRepository
from .directory_repository import DirectoryRepository, MAIN_ROOT, TRASH_ROOT
from .file_repository import FileRepository

__all__ = [
    "BaseRepository",
    "DirectoryRepository",
    "FileRepository",
    "MAIN_ROOT",
    "TRASH_ROOT",
]
