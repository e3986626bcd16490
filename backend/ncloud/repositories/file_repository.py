"""Repository for file records in the metadata store."""

from typing import Iterable, List, Optional

from ..models import File
from .base import BaseRepository


class FileRepository(BaseRepository[File]):
    """Data access layer for files."""

    model_class = File
    entity_kind = "file"

    def create(
        self,
        file_id: str,
        name: str,
        owner: str,
        parent_id: str,
        access_key: str,
        type: str = "",
        size: int = 0,
    ) -> File:
        return self.add(File(
            id=file_id,
            name=name,
            type=type,
            size=size,
            owner=owner,
            parent_id=parent_id,
            previous_parent_id=None,
            access_key=access_key,
        ))

    def list_by_parents(self, parent_ids: Iterable[str], owner: Optional[str] = None) -> List[File]:
        ids = list(parent_ids)
        if not ids:
            return []
        return (
            self._base_query(owner)
            .filter(File.parent_id.in_(ids))
            .order_by(File.created_at, File.id)
            .all()
        )

    def list_children(self, parent_id: str, owner: str) -> List[File]:
        return (
            self._base_query(owner)
            .filter(File.parent_id == parent_id)
            .order_by(File.name, File.id)
            .all()
        )

    def list_by_owner(self, owner: str) -> List[File]:
        return self._base_query(owner).order_by(File.created_at, File.id).all()

    def move(
        self,
        file_id: str,
        owner: str,
        destination_id: str,
        access_key: str,
        origin_id: Optional[str] = None,
    ) -> int:
        """Re-parent one file and store its freshly bound access key.

        With *origin_id* the update is conditional on the stored parent still
        being the origin, and the origin is kept as previous parent. Without
        it any previous parent is dropped.
        """
        query = self._base_query(owner).filter(File.id == file_id)
        values = {
            File.parent_id: destination_id,
            File.previous_parent_id: None,
            File.access_key: access_key,
        }
        if origin_id is not None:
            query = query.filter(File.parent_id == origin_id)
            values[File.previous_parent_id] = origin_id
        return query.update(values, synchronize_session=False)

    def restore(self, file_id: str, owner: str, previous_parent_id: str, access_key: str) -> int:
        return (
            self._base_query(owner)
            .filter(File.id == file_id, File.previous_parent_id == previous_parent_id)
            .update(
                {
                    File.parent_id: previous_parent_id,
                    File.previous_parent_id: None,
                    File.access_key: access_key,
                },
                synchronize_session=False,
            )
        )

    def delete_by_parents(self, parent_ids: Iterable[str]) -> int:
        ids = list(parent_ids)
        if not ids:
            return 0
        return (
            self.db.query(File)
            .filter(File.parent_id.in_(ids))
            .delete(synchronize_session=False)
        )

    def delete_many(self, file_ids: Iterable[str], owner: str) -> int:
        ids = list(file_ids)
        if not ids:
            return 0
        return (
            self._base_query(owner)
            .filter(File.id.in_(ids))
            .delete(synchronize_session=False)
        )
