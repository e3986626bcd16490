"""Database models."""

from .directory import Directory
from .file import File

__all__ = ["Directory", "File"]
