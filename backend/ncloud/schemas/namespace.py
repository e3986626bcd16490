"""Directory, file and batch-operation schemas.

Wire names follow the client contract (``parent_directory``, ``user``),
while the ORM columns are ``parent_id`` and ``owner``; the response models
read the columns through validation aliases.
"""

from datetime import datetime
from typing import List, Optional

from pydantic import AliasChoices, BaseModel, Field, field_validator


def _normalize_name(v: str) -> str:
    v = v.strip()
    if not v:
        raise ValueError("Name cannot be empty")
    if "/" in v:
        raise ValueError("Name cannot contain '/'")
    return v


# -- Responses -------------------------------------------------------------

class DirectoryResponse(BaseModel):
    """Directory as returned to its owner, access key included."""
    id: str
    name: str
    parent_directory: Optional[str] = Field(
        default=None, validation_alias=AliasChoices("parent_id", "parent_directory")
    )
    previous_parent_directory: Optional[str] = Field(
        default=None, validation_alias=AliasChoices("previous_parent_id", "previous_parent_directory")
    )
    user: str = Field(validation_alias=AliasChoices("owner", "user"))
    access_key: str
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class FileResponse(BaseModel):
    """File metadata record."""
    id: str
    name: str
    type: str = ""
    size: int = 0
    parent_directory: str = Field(validation_alias=AliasChoices("parent_id", "parent_directory"))
    previous_parent_directory: Optional[str] = Field(
        default=None, validation_alias=AliasChoices("previous_parent_id", "previous_parent_directory")
    )
    user: str = Field(validation_alias=AliasChoices("owner", "user"))
    access_key: str
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class DirectoryListingResponse(BaseModel):
    directory: DirectoryResponse
    directories: List[DirectoryResponse]
    files: List[FileResponse]


class RootsResponse(BaseModel):
    main: DirectoryResponse
    trash: DirectoryResponse


class UpdatedResponse(BaseModel):
    """Number of items actually changed by a move or restore."""
    updated: int


class SearchResponse(BaseModel):
    directories: List[dict]
    files: List[dict]


class ReindexResponse(BaseModel):
    indexed: int


# -- Requests --------------------------------------------------------------

class DirectoryCreate(BaseModel):
    name: str = Field(..., max_length=255)

    @field_validator("name")
    @classmethod
    def validate_name(cls, v: str) -> str:
        return _normalize_name(v)


class FileCreate(BaseModel):
    name: str = Field(..., max_length=255)
    type: str = Field("", max_length=255)
    size: int = Field(0, ge=0)

    @field_validator("name")
    @classmethod
    def validate_name(cls, v: str) -> str:
        return _normalize_name(v)


class KeyedItem(BaseModel):
    """An entity id plus the access key that authorizes it."""
    id: str = Field(..., min_length=1)
    access_key: str


class MoveItemRequest(KeyedItem):
    """``parent_directory`` is the caller's view of the current parent.

    When present the move is undo-able and only applies if the stored
    parent still matches.
    """
    parent_directory: Optional[str] = None


class MoveRequest(BaseModel):
    """Destination id and key, plus the items to move into it."""
    id: str = Field(..., min_length=1)
    access_key: str
    items: List[MoveItemRequest] = Field(..., min_length=1)


class CopyDirectoriesRequest(BaseModel):
    destination: str = Field(..., min_length=1)
    directories: List[str] = Field(..., min_length=1)


class CopyFilesRequest(BaseModel):
    """Destination id and key, plus the ids of the files to copy."""
    id: str = Field(..., min_length=1)
    access_key: str
    files: List[str] = Field(..., min_length=1)


class RestoreDirectoriesRequest(BaseModel):
    directories: List[str] = Field(..., min_length=1)


class RestoreFilesRequest(BaseModel):
    files: List[str] = Field(..., min_length=1)
