"""Repository for directory records in the metadata store."""

from typing import Dict, Iterable, List, Optional, Tuple

from ..models import Directory
from .base import BaseRepository

MAIN_ROOT = "Main"
TRASH_ROOT = "Trash"


class DirectoryRepository(BaseRepository[Directory]):
    """Data access layer for directories."""

    model_class = Directory
    entity_kind = "directory"

    def create(
        self,
        directory_id: str,
        name: str,
        owner: str,
        parent_id: Optional[str],
        access_key: str,
    ) -> Directory:
        return self.add(Directory(
            id=directory_id,
            name=name,
            owner=owner,
            parent_id=parent_id,
            previous_parent_id=None,
            access_key=access_key,
        ))

    def get_roots(self, owner: str) -> Dict[str, Directory]:
        """The user's parentless directories keyed by name (Main, Trash)."""
        rows = self._base_query(owner).filter(Directory.parent_id.is_(None)).all()
        return {row.name: row for row in rows}

    def list_by_owner(self, owner: str) -> List[Directory]:
        return (
            self._base_query(owner)
            .order_by(Directory.created_at, Directory.id)
            .all()
        )

    def list_tree_edges(self, owner: str) -> List[Tuple[str, str]]:
        """``(id, parent_id)`` for every non-root directory of *owner*.

        Ordered by creation so child order in the adjacency map is stable.
        """
        rows = (
            self.db.query(Directory.id, Directory.parent_id)
            .filter(Directory.owner == owner)
            .filter(Directory.parent_id.isnot(None))
            .order_by(Directory.created_at, Directory.id)
            .all()
        )
        return [(row[0], row[1]) for row in rows]

    def list_children(self, parent_id: str, owner: str) -> List[Directory]:
        return (
            self._base_query(owner)
            .filter(Directory.parent_id == parent_id)
            .order_by(Directory.name, Directory.id)
            .all()
        )

    def bulk_set_parent(self, directory_ids: Iterable[str], owner: str, destination_id: str) -> int:
        """Unconditional ``parent := destination`` for many rows in one statement.

        A plain move drops any previous parent, so restore no longer applies.
        """
        ids = list(directory_ids)
        if not ids:
            return 0
        return (
            self._base_query(owner)
            .filter(Directory.id.in_(ids))
            .update(
                {Directory.parent_id: destination_id, Directory.previous_parent_id: None},
                synchronize_session=False,
            )
        )

    def move_from(self, directory_id: str, owner: str, origin_id: str, destination_id: str) -> int:
        """Conditional move: only applies while the stored parent is still *origin_id*.

        Records the origin as previous parent. Returns the matched row count
        (0 when a concurrent writer moved the directory first).
        """
        return (
            self._base_query(owner)
            .filter(Directory.id == directory_id, Directory.parent_id == origin_id)
            .update(
                {
                    Directory.parent_id: destination_id,
                    Directory.previous_parent_id: origin_id,
                },
                synchronize_session=False,
            )
        )

    def restore(self, directory_id: str, owner: str, previous_parent_id: str) -> int:
        """``parent := previous_parent``; conditional on previous parent being unchanged."""
        return (
            self._base_query(owner)
            .filter(
                Directory.id == directory_id,
                Directory.previous_parent_id == previous_parent_id,
            )
            .update(
                {
                    Directory.parent_id: previous_parent_id,
                    Directory.previous_parent_id: None,
                },
                synchronize_session=False,
            )
        )

    def delete_many(self, directory_ids: Iterable[str], owner: str) -> int:
        ids = list(directory_ids)
        if not ids:
            return 0
        return (
            self._base_query(owner)
            .filter(Directory.id.in_(ids))
            .delete(synchronize_session=False)
        )
