"""File model."""

from sqlalchemy import BigInteger, Column, Index, String, Text, DateTime
from sqlalchemy.sql import func
from ..database import Base


class File(Base):
    """File metadata. Content lives on disk at ``<storage_root>/<parent_id>/<id>``."""

    __tablename__ = "files"
    __table_args__ = (
        Index("ix_files_owner_parent", "owner", "parent_id"),
        Index("ix_files_parent_id", "parent_id"),
    )

    id = Column(String(36), primary_key=True)
    name = Column(String(255), nullable=False)
    type = Column(String(255), nullable=False, default="")
    size = Column(BigInteger, nullable=False, default=0)
    owner = Column(String(50), nullable=False)
    parent_id = Column(String(36), nullable=False)
    previous_parent_id = Column(String(36), nullable=True)

    # Bound to parent_id: reissued on every move.
    access_key = Column(Text, nullable=False, default="")

    created_at = Column(DateTime(timezone=True), server_default=func.now())
