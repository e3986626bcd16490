"""User provisioning API."""

from fastapi import APIRouter, Depends

from ..core.auth import AuthContext, require_auth
from ..repositories.directory_repository import MAIN_ROOT, TRASH_ROOT
from ..schemas.namespace import DirectoryResponse, RootsResponse
from ..services.namespace_service import NamespaceService
from .dependencies import get_namespace_service

router = APIRouter(prefix="/api/users", tags=["users"])


@router.post("/roots", response_model=RootsResponse, status_code=201)
def provision_roots(
    auth: AuthContext = Depends(require_auth),
    service: NamespaceService = Depends(get_namespace_service),
):
    """Create the caller's Main and Trash directories. Safe to call again."""
    roots = service.provision_user_roots(auth.user_id)
    return RootsResponse(
        main=DirectoryResponse.model_validate(roots[MAIN_ROOT]),
        trash=DirectoryResponse.model_validate(roots[TRASH_ROOT]),
    )
