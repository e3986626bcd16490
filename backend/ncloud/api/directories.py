"""Directory API: listing, creation, move, delete, copy and restore.

Thin layer over NamespaceService. Fixed-path routes (move, copy, restore) are
declared before ``/{parent_id}`` so they are matched first.
"""

import logging
from typing import List

from fastapi import APIRouter, Depends, Header, Response

from ..core.auth import AuthContext, require_auth
from ..schemas.namespace import (
    CopyDirectoriesRequest,
    DirectoryCreate,
    DirectoryListingResponse,
    DirectoryResponse,
    FileResponse,
    KeyedItem,
    MoveRequest,
    RestoreDirectoriesRequest,
    UpdatedResponse,
)
from ..services.namespace_service import KeyedId, MoveItem, NamespaceService
from .dependencies import get_namespace_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/directories", tags=["directories"])


def _listing(listing) -> DirectoryListingResponse:
    return DirectoryListingResponse(
        directory=DirectoryResponse.model_validate(listing.directory),
        directories=[DirectoryResponse.model_validate(d) for d in listing.directories],
        files=[FileResponse.model_validate(f) for f in listing.files],
    )


# -- Listing ----------------------------------------------------------------

@router.get("/", response_model=DirectoryListingResponse)
def list_main(
    auth: AuthContext = Depends(require_auth),
    service: NamespaceService = Depends(get_namespace_service),
):
    """List the caller's Main root."""
    return _listing(service.list_directory(auth.user_id))


@router.get("/{directory_id}", response_model=DirectoryListingResponse)
def list_directory(
    directory_id: str,
    auth: AuthContext = Depends(require_auth),
    service: NamespaceService = Depends(get_namespace_service),
):
    return _listing(service.list_directory(auth.user_id, directory_id))


# -- Batch operations -------------------------------------------------------

@router.post("/move", response_model=UpdatedResponse)
def move_directories(
    request: MoveRequest,
    auth: AuthContext = Depends(require_auth),
    service: NamespaceService = Depends(get_namespace_service),
):
    """Move directories into the keyed destination.

    Items carrying ``parent_directory`` are undo-able and only move if still
    under that parent.
    """
    result = service.move_directories(
        auth.user_id,
        request.id,
        request.access_key,
        [MoveItem(i.id, i.access_key, i.parent_directory) for i in request.items],
    )
    return UpdatedResponse(updated=result.updated)


@router.post("/copy", response_model=List[DirectoryResponse])
def copy_directories(
    request: CopyDirectoriesRequest,
    auth: AuthContext = Depends(require_auth),
    service: NamespaceService = Depends(get_namespace_service),
):
    """Deep-copy directories into *destination*; returns the new top-level copies."""
    result = service.copy_directories(auth.user_id, request.destination, request.directories)
    return result.directories


@router.post("/restore", response_model=UpdatedResponse)
def restore_directories(
    request: RestoreDirectoriesRequest,
    auth: AuthContext = Depends(require_auth),
    service: NamespaceService = Depends(get_namespace_service),
):
    result = service.restore_directories(auth.user_id, request.directories)
    return UpdatedResponse(updated=result.updated)


@router.delete("", status_code=204)
def delete_directories(
    items: List[KeyedItem],
    auth: AuthContext = Depends(require_auth),
    service: NamespaceService = Depends(get_namespace_service),
):
    """Delete directories with everything beneath them."""
    service.delete_directories(auth.user_id, [KeyedId(i.id, i.access_key) for i in items])
    return Response(status_code=204)


# -- Creation ---------------------------------------------------------------

@router.post("/{parent_id}", response_model=DirectoryResponse, status_code=201)
def create_directory(
    parent_id: str,
    data: DirectoryCreate,
    access_key: str = Header(..., alias="DirectoryAccessKey"),
    auth: AuthContext = Depends(require_auth),
    service: NamespaceService = Depends(get_namespace_service),
):
    return service.create_directory(auth.user_id, parent_id, access_key, data.name)
