"""Directory model."""

from sqlalchemy import Column, Index, String, Text, DateTime
from sqlalchemy.sql import func
from ..database import Base


class Directory(Base):
    """A directory node in a user's namespace.

    ``parent_id`` is NULL only for the user's two roots (Main and Trash).
    There is deliberately no foreign key to the parent: deletes walk the
    subtree explicitly so the search index and disk can follow in order.
    """

    __tablename__ = "directories"
    __table_args__ = (
        Index("ix_directories_owner_parent", "owner", "parent_id"),
        Index("ix_directories_parent_id", "parent_id"),
    )

    id = Column(String(36), primary_key=True)
    name = Column(String(255), nullable=False)
    owner = Column(String(50), nullable=False)
    parent_id = Column(String(36), nullable=True)

    # Set while the directory sits in trash; where restore puts it back.
    previous_parent_id = Column(String(36), nullable=True)

    # Access key with all directory permissions, id-scoped.
    access_key = Column(Text, nullable=False, default="")

    created_at = Column(DateTime(timezone=True), server_default=func.now())

    @property
    def is_root(self) -> bool:
        return self.parent_id is None
