"""Pydantic schemas for API validation."""

from .namespace import (
    CopyDirectoriesRequest,
    CopyFilesRequest,
    DirectoryCreate,
    DirectoryListingResponse,
    DirectoryResponse,
    FileCreate,
    FileResponse,
    KeyedItem,
    MoveItemRequest,
    MoveRequest,
    ReindexResponse,
    RestoreDirectoriesRequest,
    RestoreFilesRequest,
    RootsResponse,
    SearchResponse,
    UpdatedResponse,
)

__all__ = [
    "CopyDirectoriesRequest",
    "CopyFilesRequest",
    "DirectoryCreate",
    "DirectoryListingResponse",
    "DirectoryResponse",
    "FileCreate",
    "FileResponse",
    "KeyedItem",
    "MoveItemRequest",
    "MoveRequest",
    "ReindexResponse",
    "RestoreDirectoriesRequest",
    "RestoreFilesRequest",
    "RootsResponse",
    "SearchResponse",
    "UpdatedResponse",
]
