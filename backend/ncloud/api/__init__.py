"""API routes."""

from .directories import router as directories_router
from .files import router as files_router
from .search import router as search_router
from .users import router as users_router

__all__ = [
    "directories_router",
    "files_router",
    "search_router",
    "users_router",
]
