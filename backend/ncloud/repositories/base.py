"""Base repository with shared get-by-ID and ownership-scoped lookups.

Subclasses specify model_class, id_column and entity_kind; the base provides
the common implementations. Every lookup here is scoped to an owner: the
namespace is multi-tenant and no caller should ever see another user's row
by accident.

Repositories never commit. The service that drives an operation flushes
and commits once so that each mutation lands as a single batch.
"""

from typing import Generic, Iterable, List, Optional, Type, TypeVar

from sqlalchemy.orm import Query, Session

from ..database import Base
from ..exceptions import EntityNotFoundError

ModelT = TypeVar("ModelT", bound=Base)


class BaseRepository(Generic[ModelT]):
    """Shared repository logic for SQLAlchemy models.

    Class variables to set in subclasses:
        model_class: The SQLAlchemy model (e.g., Directory)
        id_column:   Name of the primary-key column (default "id")
        entity_kind: Label used in EntityNotFoundError ("directory", "file")
    """

    model_class: Type[ModelT]
    id_column: str = "id"
    entity_kind: str = "entity"

    def __init__(self, db: Session):
        self.db = db

    def _base_query(self, owner: Optional[str] = None) -> Query:
        query = self.db.query(self.model_class)
        if owner is not None:
            query = query.filter(self.model_class.owner == owner)
        return query

    def get_by_id_optional(self, entity_id: str, owner: Optional[str] = None) -> Optional[ModelT]:
        """Get entity by primary key (optionally scoped to *owner*), or None."""
        col = getattr(self.model_class, self.id_column)
        return self._base_query(owner).filter(col == entity_id).first()

    def get_owned(self, entity_id: str, owner: str) -> ModelT:
        """Get an entity owned by *owner*. Raises EntityNotFoundError otherwise.

        Absent and foreign rows are indistinguishable to the caller.
        """
        entity = self.get_by_id_optional(entity_id, owner)
        if entity is None:
            raise EntityNotFoundError(entity_id, self.entity_kind)
        return entity

    def get_many_owned(self, entity_ids: Iterable[str], owner: str) -> List[ModelT]:
        """Load every listed entity owned by *owner*. Missing ids are simply absent."""
        ids = list(dict.fromkeys(entity_ids))
        if not ids:
            return []
        col = getattr(self.model_class, self.id_column)
        return self._base_query(owner).filter(col.in_(ids)).all()

    def require_many_owned(self, entity_ids: Iterable[str], owner: str) -> List[ModelT]:
        """Like get_many_owned but raises for the first id that is missing.

        Result order follows *entity_ids* (duplicates collapsed).
        """
        ids = list(dict.fromkeys(entity_ids))
        found = {getattr(e, self.id_column): e for e in self.get_many_owned(ids, owner)}
        for entity_id in ids:
            if entity_id not in found:
                raise EntityNotFoundError(entity_id, self.entity_kind)
        return [found[entity_id] for entity_id in ids]

    def add(self, entity: ModelT) -> ModelT:
        self.db.add(entity)
        return entity
