"""Shared FastAPI dependencies for the namespace routers."""

from fastapi import Depends
from sqlalchemy.orm import Session

from ..core.capability import CapabilityCodec, get_codec
from ..database import get_db
from ..services.namespace_service import NamespaceService
from ..services.search_index import SearchIndex, get_search_index
from ..services.storage import DiskStorage, get_storage


def get_namespace_service(
    db: Session = Depends(get_db),
    codec: CapabilityCodec = Depends(get_codec),
    search_index: SearchIndex = Depends(get_search_index),
    storage: DiskStorage = Depends(get_storage),
) -> NamespaceService:
    """One NamespaceService per request, bound to the request's session."""
    return NamespaceService(db, codec, search_index, storage)
