"""Search API over the directories and files indexes."""

from typing import Optional

from fastapi import APIRouter, Depends, Query

from ..core.auth import AuthContext, require_auth
from ..schemas.namespace import ReindexResponse, SearchResponse
from ..services.namespace_service import NamespaceService
from .dependencies import get_namespace_service

router = APIRouter(prefix="/api/search", tags=["search"])


@router.get("", response_model=SearchResponse)
def search(
    name: str = Query("", max_length=255),
    parent_directory: Optional[str] = Query(None),
    auth: AuthContext = Depends(require_auth),
    service: NamespaceService = Depends(get_namespace_service),
):
    """Search the caller's directories and files by name."""
    return service.search(auth.user_id, name, parent_directory)


@router.post("/reindex", response_model=ReindexResponse)
def reindex(
    auth: AuthContext = Depends(require_auth),
    service: NamespaceService = Depends(get_namespace_service),
):
    """Rebuild the caller's index documents from the metadata store."""
    return ReindexResponse(indexed=service.reindex(auth.user_id))
