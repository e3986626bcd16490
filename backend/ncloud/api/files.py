"""File API: registration, move, delete, copy and restore."""

import logging
from typing import List

from fastapi import APIRouter, Depends, Header, Response

from ..core.auth import AuthContext, require_auth
from ..schemas.namespace import (
    CopyFilesRequest,
    FileCreate,
    FileResponse,
    KeyedItem,
    MoveRequest,
    RestoreFilesRequest,
    UpdatedResponse,
)
from ..services.namespace_service import KeyedId, MoveItem, NamespaceService
from .dependencies import get_namespace_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/files", tags=["files"])


@router.post("/move", response_model=UpdatedResponse)
def move_files(
    request: MoveRequest,
    auth: AuthContext = Depends(require_auth),
    service: NamespaceService = Depends(get_namespace_service),
):
    """Move files into the keyed destination. Moved files get new access keys."""
    result = service.move_files(
        auth.user_id,
        request.id,
        request.access_key,
        [MoveItem(i.id, i.access_key, i.parent_directory) for i in request.items],
    )
    return UpdatedResponse(updated=result.updated)


@router.post("/copy", response_model=List[FileResponse])
def copy_files(
    request: CopyFilesRequest,
    auth: AuthContext = Depends(require_auth),
    service: NamespaceService = Depends(get_namespace_service),
):
    result = service.copy_files(auth.user_id, request.id, request.access_key, request.files)
    return result.files


@router.post("/restore", response_model=UpdatedResponse)
def restore_files(
    request: RestoreFilesRequest,
    auth: AuthContext = Depends(require_auth),
    service: NamespaceService = Depends(get_namespace_service),
):
    result = service.restore_files(auth.user_id, request.files)
    return UpdatedResponse(updated=result.updated)


@router.delete("", status_code=204)
def delete_files(
    items: List[KeyedItem],
    auth: AuthContext = Depends(require_auth),
    service: NamespaceService = Depends(get_namespace_service),
):
    service.delete_files(auth.user_id, [KeyedId(i.id, i.access_key) for i in items])
    return Response(status_code=204)


@router.post("/{parent_id}", response_model=FileResponse, status_code=201)
def register_file(
    parent_id: str,
    data: FileCreate,
    access_key: str = Header(..., alias="DirectoryAccessKey"),
    auth: AuthContext = Depends(require_auth),
    service: NamespaceService = Depends(get_namespace_service),
):
    """Record a file's metadata under *parent_id*; content is written by the upload handler."""
    return service.register_file(
        auth.user_id, parent_id, access_key, data.name, type=data.type, size=data.size
    )
