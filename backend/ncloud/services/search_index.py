"""Search index collaborator: a denormalized projection of the metadata store.

Two indexes, ``directories`` and ``files``, hold documents shaped
``{_id, name, parent_directory, user, type}``. The index is eventually
consistent: it is written after the metadata commit and may lag or fail
independently (see pipeline.py).

``MeiliSearchIndex`` speaks the Meilisearch REST API over httpx.
``NullSearchIndex`` is used when no search URL is configured; writes are
dropped and searches return nothing, mirroring how optional integrations are
disabled by empty configuration elsewhere in the service.
"""

import logging
import time
from typing import Any, Dict, Iterable, List, Optional, Protocol

import httpx

from ..core.config import settings

logger = logging.getLogger(__name__)

DIRECTORIES_INDEX = "directories"
FILES_INDEX = "files"

# Retry configuration for transient failures (connection errors, 5xx).
MAX_RETRIES = 3
RETRY_BASE_DELAY = 0.5  # seconds; exponential: 0.5s, 1s, 2s


class SearchIndex(Protocol):
    """What the namespace service needs from a search index."""

    def upsert(self, index: str, documents: List[Dict[str, Any]]) -> None: ...

    def delete(self, index: str, ids: List[str]) -> None: ...

    def delete_by_parents(self, index: str, parent_ids: List[str]) -> None: ...

    def search(self, index: str, query: str, filters: Dict[str, str]) -> List[Dict[str, Any]]: ...


def directory_document(directory) -> Dict[str, Any]:
    return {
        "_id": directory.id,
        "name": directory.name,
        "parent_directory": directory.parent_id or "",
        "user": directory.owner,
    }


def file_document(file) -> Dict[str, Any]:
    return {
        "_id": file.id,
        "name": file.name,
        "parent_directory": file.parent_id,
        "user": file.owner,
        "type": file.type or "",
    }


def parent_update(entity_id: str, parent_id: str) -> Dict[str, Any]:
    """Partial document: only the parent changes on move/restore."""
    return {"_id": entity_id, "parent_directory": parent_id}


class NullSearchIndex:
    """Search disabled. Writes are no-ops, searches are empty."""

    def upsert(self, index: str, documents: List[Dict[str, Any]]) -> None:
        return None

    def delete(self, index: str, ids: List[str]) -> None:
        return None

    def delete_by_parents(self, index: str, parent_ids: List[str]) -> None:
        return None

    def search(self, index: str, query: str, filters: Dict[str, str]) -> List[Dict[str, Any]]:
        return []


class MeiliSearchIndex:
    """Synchronous Meilisearch client.

    Document writes use ``PUT /indexes/{uid}/documents`` (add or update), so
    partial documents only touch the fields they carry.
    """

    def __init__(
        self,
        base_url: str,
        api_key: str = "",
        timeout: float = 10.0,
        transport: Optional[httpx.BaseTransport] = None,
        retry_base_delay: float = RETRY_BASE_DELAY,
    ):
        headers: Dict[str, str] = {}
        if api_key:
            headers["Authorization"] = f"Bearer {api_key}"
        self._client = httpx.Client(
            base_url=base_url.rstrip("/"),
            headers=headers,
            timeout=timeout,
            transport=transport,
        )
        self._retry_base_delay = retry_base_delay

    def close(self) -> None:
        self._client.close()

    # -- writes ---------------------------------------------------------------

    def upsert(self, index: str, documents: List[Dict[str, Any]]) -> None:
        if not documents:
            return
        self._request("PUT", f"/indexes/{index}/documents", json=documents)

    def delete(self, index: str, ids: List[str]) -> None:
        if not ids:
            return
        self._request("POST", f"/indexes/{index}/documents/delete-batch", json=list(ids))

    def delete_by_parents(self, index: str, parent_ids: List[str]) -> None:
        if not parent_ids:
            return
        self._request(
            "POST",
            f"/indexes/{index}/documents/delete",
            json={"filter": _in_filter("parent_directory", parent_ids)},
        )

    # -- reads ----------------------------------------------------------------

    def search(self, index: str, query: str, filters: Dict[str, str]) -> List[Dict[str, Any]]:
        body: Dict[str, Any] = {"q": query or ""}
        clauses = [_eq_filter(key, value) for key, value in filters.items() if value]
        if clauses:
            body["filter"] = clauses
        resp = self._request("POST", f"/indexes/{index}/search", json=body)
        return resp.json().get("hits", [])

    # -- transport ------------------------------------------------------------

    def _request(self, method: str, path: str, **kwargs: Any) -> httpx.Response:
        """Execute a request with retry on transient failures.

        Retries connection errors, timeouts and 5xx responses with exponential
        backoff. 4xx responses raise immediately.
        """
        last_exc: Optional[Exception] = None

        for attempt in range(MAX_RETRIES):
            try:
                resp = self._client.request(method, path, **kwargs)
                if resp.status_code < 500:
                    resp.raise_for_status()
                    return resp
                last_exc = httpx.HTTPStatusError(
                    f"Server error {resp.status_code}",
                    request=resp.request,
                    response=resp,
                )
            except (httpx.ConnectError, httpx.TimeoutException) as exc:
                last_exc = exc

            if attempt < MAX_RETRIES - 1:
                delay = self._retry_base_delay * (2 ** attempt)
                logger.warning(
                    "Search index %s %s failed (attempt %d/%d), retrying in %.1fs: %s",
                    method, path, attempt + 1, MAX_RETRIES, delay, last_exc,
                )
                time.sleep(delay)

        raise last_exc  # type: ignore[misc]


def _quote(value: str) -> str:
    return "'" + value.replace("\\", "\\\\").replace("'", "\\'") + "'"


def _eq_filter(field: str, value: str) -> str:
    return f"{field} = {_quote(value)}"


def _in_filter(field: str, values: Iterable[str]) -> str:
    return f"{field} IN [{', '.join(_quote(v) for v in values)}]"


_index: Optional[SearchIndex] = None


def get_search_index() -> SearchIndex:
    """Process-wide search index built from settings. FastAPI dependency."""
    global _index
    if _index is None:
        if settings.search_url:
            _index = MeiliSearchIndex(
                settings.search_url,
                api_key=settings.search_api_key,
                timeout=settings.search_timeout,
            )
            logger.info("Search index enabled", extra={"search_url": settings.search_url})
        else:
            _index = NullSearchIndex()
            logger.info("Search index disabled (SEARCH_URL is empty)")
    return _index
