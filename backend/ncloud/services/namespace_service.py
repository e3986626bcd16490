"""Deep module for every namespace mutation: move, copy, delete, restore.

Callers hand over ids and access keys; this module owns authorization,
cycle detection, subtree enumeration, and the ordered write to the three
stores (metadata -> search index -> disk, see pipeline.py).

Every public operation follows the same shape:

    1. validate   access keys / ownership / cycles. Nothing is written yet;
                  the first failure rejects the whole batch.
    2. plan       compute the affected id set from a fresh adjacency snapshot.
    3. execute    one MutationPipeline run. The metadata step commits once;
                  search and disk steps are logged on failure, never raised.

A referenced id that is missing (or owned by someone else) is always a hard
EntityNotFoundError raised during validation.
"""

import logging
import uuid
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional, Sequence, Tuple, TypeVar

import httpx
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..core.capability import CapabilityCodec, DecodedCapability, Permission
from ..exceptions import (
    CycleDetectedError,
    DatabaseError,
    EntityNotFoundError,
    InvalidCapabilityError,
    SearchUnavailableError,
    ValidationError,
)
from ..models import Directory, File
from ..repositories.directory_repository import DirectoryRepository, MAIN_ROOT, TRASH_ROOT
from ..repositories.file_repository import FileRepository
from .permission_service import require_capability, require_owner
from .pipeline import MutationPipeline, PipelineReport, Store
from .search_index import (
    DIRECTORIES_INDEX,
    FILES_INDEX,
    SearchIndex,
    directory_document,
    file_document,
    parent_update,
)
from .storage import DiskStorage
from .tree_index import (
    build_adjacency,
    build_user_adjacency,
    is_within,
    subtree_with_roots,
)

logger = logging.getLogger(__name__)

MAX_NAME_LENGTH = 255

T = TypeVar("T")


# ---------------------------------------------------------------------------
# Inputs and results
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class KeyedId:
    """An entity id with the access key that should authorize it."""
    id: str
    access_key: str


@dataclass(frozen=True)
class MoveItem:
    """One item of a move batch.

    ``origin`` is the parent the caller believes the item is in. When set,
    the move is undo-able (previous parent is recorded) and only applies if
    the stored parent still equals it.
    """
    id: str
    access_key: str
    origin: Optional[str] = None


@dataclass
class DeleteResult:
    directories: int
    files: int
    report: PipelineReport


@dataclass
class UpdateResult:
    updated: int
    report: PipelineReport
    skipped: List[str] = field(default_factory=list)


@dataclass
class CopyResult:
    directories: List[Directory]
    all_directories: List[Directory]
    files: List[File]
    report: PipelineReport


@dataclass
class DirectoryListing:
    directory: Directory
    directories: List[Directory]
    files: List[File]


class NamespaceService:
    """Namespace operations for one request.

    Public methods:
        provision_user_roots -- create Main and Trash; idempotent
        create_directory     -- new child directory under a keyed parent
        register_file        -- metadata record for uploaded content
        list_directory       -- ownership-checked listing
        delete_directories   -- delete subtrees (files included)
        delete_files         -- delete individual files
        move_directories     -- re-parent directories, cycle-checked
        move_files           -- re-parent files, keys reissued
        copy_directories     -- deep copy subtrees with fresh ids and keys
        copy_files           -- copy files into a keyed destination
        restore_directories  -- move trashed directories back
        restore_files        -- move trashed files back
        search               -- query the search index for the user
        reindex              -- push the user's metadata into the search index
    """

    def __init__(
        self,
        db: Session,
        codec: CapabilityCodec,
        search_index: SearchIndex,
        storage: DiskStorage,
    ):
        self.db = db
        self.codec = codec
        self.search_index = search_index
        self.storage = storage
        self.dir_repo = DirectoryRepository(db)
        self.file_repo = FileRepository(db)

    # ------------------------------------------------------------------
    # Creation and listing
    # ------------------------------------------------------------------

    def provision_user_roots(self, user_id: str) -> Dict[str, Directory]:
        """Create the user's Main and Trash roots if they do not exist yet."""
        roots = self.dir_repo.get_roots(user_id)
        missing = [name for name in (MAIN_ROOT, TRASH_ROOT) if name not in roots]
        if not missing:
            return roots

        created: List[Directory] = []

        def write() -> int:
            for name in missing:
                directory_id = _new_id()
                created.append(self.dir_repo.create(
                    directory_id, name, user_id, None,
                    self.codec.issue_directory_key(directory_id),
                ))
            return len(created)

        pipeline = MutationPipeline("provision_user_roots")
        pipeline.add("insert_roots", Store.METADATA, self._metadata(write))
        pipeline.add("index_roots", Store.SEARCH,
                     lambda: self.search_index.upsert(
                         DIRECTORIES_INDEX, [directory_document(d) for d in created]))
        pipeline.add("mkdir_roots", Store.DISK,
                     lambda: self.storage.make_directories([d.id for d in created]))
        pipeline.run()

        logger.info("Provisioned roots", extra={"user": user_id, "roots_created": missing})
        return self.dir_repo.get_roots(user_id)

    def create_directory(self, user_id: str, parent_id: str, parent_key: str, name: str) -> Directory:
        """Create *name* under *parent_id*; the parent key must carry ``modify``."""
        name = _validate_name(name)
        require_capability(self.codec, parent_key, Permission.MODIFY, parent_id)
        self.dir_repo.get_owned(parent_id, user_id)

        directory_id = _new_id()
        created: List[Directory] = []

        def write() -> Directory:
            created.append(self.dir_repo.create(
                directory_id, name, user_id, parent_id,
                self.codec.issue_directory_key(directory_id),
            ))
            return created[0]

        pipeline = MutationPipeline("create_directory")
        pipeline.add("insert_directory", Store.METADATA, self._metadata(write))
        pipeline.add("index_directory", Store.SEARCH,
                     lambda: self.search_index.upsert(DIRECTORIES_INDEX, [directory_document(created[0])]))
        pipeline.add("mkdir", Store.DISK, lambda: self.storage.make_directory(directory_id))
        return pipeline.run().results["insert_directory"]

    def register_file(
        self,
        user_id: str,
        parent_id: str,
        parent_key: str,
        name: str,
        type: str = "",
        size: int = 0,
    ) -> File:
        """Record an uploaded file under *parent_id*; the parent key must carry ``upload``.

        Writing the bytes to ``storage.file_path(parent_id, file.id)`` is the
        upload handler's job.
        """
        name = _validate_name(name)
        if size < 0:
            raise ValidationError("File size cannot be negative", field="size")
        require_capability(self.codec, parent_key, Permission.UPLOAD, parent_id)
        self.dir_repo.get_owned(parent_id, user_id)

        file_id = _new_id()
        created: List[File] = []

        def write() -> File:
            created.append(self.file_repo.create(
                file_id, name, user_id, parent_id,
                self.codec.issue_file_key(file_id, parent_id),
                type=type, size=size,
            ))
            return created[0]

        pipeline = MutationPipeline("register_file")
        pipeline.add("insert_file", Store.METADATA, self._metadata(write))
        pipeline.add("index_file", Store.SEARCH,
                     lambda: self.search_index.upsert(FILES_INDEX, [file_document(created[0])]))
        return pipeline.run().results["insert_file"]

    def list_directory(self, user_id: str, directory_id: Optional[str] = None) -> DirectoryListing:
        """Directory with its children. Ownership strategy, no access key.

        ``None`` lists the user's Main root.
        """
        if directory_id is None:
            directory = self.dir_repo.get_roots(user_id).get(MAIN_ROOT)
            if directory is None:
                raise EntityNotFoundError(MAIN_ROOT, "directory")
        else:
            directory = require_owner(
                self.dir_repo.get_by_id_optional(directory_id), user_id, directory_id, "directory"
            )
        return DirectoryListing(
            directory=directory,
            directories=self.dir_repo.list_children(directory.id, user_id),
            files=self.file_repo.list_children(directory.id, user_id),
        )

    # ------------------------------------------------------------------
    # Delete
    # ------------------------------------------------------------------

    def delete_directories(self, user_id: str, items: Sequence[KeyedId]) -> DeleteResult:
        """Delete directories with everything beneath them.

        Metadata first (files, then directories, one commit), then the search
        index, then the disk folders.
        """
        for item in items:
            require_capability(self.codec, item.access_key, Permission.DELETE, item.id)

        targets = self.dir_repo.require_many_owned([i.id for i in items], user_id)
        for directory in targets:
            if directory.is_root:
                raise ValidationError(f"Cannot delete root directory: {directory.name}", field="id")

        adjacency = build_user_adjacency(self.db, user_id)
        target_ids = [d.id for d in targets]
        affected = subtree_with_roots(target_ids, adjacency)

        def write() -> Tuple[int, int]:
            files = self.file_repo.delete_by_parents(affected)
            directories = self.dir_repo.delete_many(affected, user_id)
            return directories, files

        pipeline = MutationPipeline("delete_directories")
        pipeline.add("delete_records", Store.METADATA, self._metadata(write))
        pipeline.add("unindex_directories", Store.SEARCH,
                     lambda: self.search_index.delete(DIRECTORIES_INDEX, affected))
        pipeline.add("unindex_files", Store.SEARCH,
                     lambda: self.search_index.delete_by_parents(FILES_INDEX, affected))
        pipeline.add("remove_folders", Store.DISK,
                     lambda: self.storage.remove_directories(affected))
        report = pipeline.run()

        directories, files = report.results["delete_records"]
        logger.info(
            "Deleted %d directories and %d files", directories, files,
            extra={"user": user_id, "targets": target_ids},
        )
        return DeleteResult(directories=directories, files=files, report=report)

    def delete_files(self, user_id: str, items: Sequence[KeyedId]) -> DeleteResult:
        """Delete individual files. Each key must be bound to the file's current parent."""
        files = self._authorize_files(user_id, items, Permission.DELETE)
        ids = [f.id for f in files]
        locations = [(f.parent_id, f.id) for f in files]

        pipeline = MutationPipeline("delete_files")
        pipeline.add("delete_records", Store.METADATA,
                     self._metadata(lambda: self.file_repo.delete_many(ids, user_id)))
        pipeline.add("unindex_files", Store.SEARCH,
                     lambda: self.search_index.delete(FILES_INDEX, ids))
        pipeline.add("remove_content", Store.DISK,
                     lambda: self.storage.remove_files(locations))
        report = pipeline.run()

        return DeleteResult(directories=0, files=report.results["delete_records"], report=report)

    # ------------------------------------------------------------------
    # Move
    # ------------------------------------------------------------------

    def move_directories(
        self,
        user_id: str,
        destination_id: str,
        destination_key: str,
        items: Sequence[MoveItem],
    ) -> UpdateResult:
        """Re-parent directories under *destination_id*.

        Items without an origin go into one bulk update. Items with an origin
        are conditional per-item updates that also record the origin as
        previous parent (moving into Trash). A conditional update matching
        zero rows means a concurrent writer got there first; it is skipped,
        not counted.

        Directory folders on disk are addressed by id only, so nothing moves
        on disk.
        """
        self._authorize_destination(user_id, destination_id, destination_key)

        for item in items:
            require_capability(self.codec, item.access_key, Permission.MODIFY, item.id)
        directories = self.dir_repo.require_many_owned([i.id for i in items], user_id)
        for directory in directories:
            if directory.is_root:
                raise ValidationError(f"Cannot move root directory: {directory.name}", field="id")

        adjacency = build_user_adjacency(self.db, user_id)
        for item in items:
            if is_within(destination_id, item.id, adjacency):
                raise CycleDetectedError(item.id, destination_id)

        bulk, conditional = _partition(items, destination_id)
        moved: List[str] = []
        skipped: List[str] = []

        def write() -> int:
            if bulk:
                self.dir_repo.bulk_set_parent(bulk, user_id, destination_id)
                moved.extend(bulk)
            for item in conditional:
                if self.dir_repo.move_from(item.id, user_id, item.origin, destination_id):
                    moved.append(item.id)
                else:
                    skipped.append(item.id)
            return len(moved)

        pipeline = MutationPipeline("move_directories")
        pipeline.add("update_parents", Store.METADATA, self._metadata(write))
        pipeline.add("index_parents", Store.SEARCH,
                     lambda: self.search_index.upsert(
                         DIRECTORIES_INDEX, [parent_update(i, destination_id) for i in moved]))
        report = pipeline.run()

        _log_skipped("move_directories", user_id, skipped)
        return UpdateResult(updated=len(moved), skipped=skipped, report=report)

    def move_files(
        self,
        user_id: str,
        destination_id: str,
        destination_key: str,
        items: Sequence[MoveItem],
    ) -> UpdateResult:
        """Re-parent files under *destination_id* and reissue their access keys.

        The old key stops working as soon as the commit lands, because its
        parent binding no longer matches.
        """
        self._authorize_destination(user_id, destination_id, destination_key)
        files = self._authorize_files(user_id, items, Permission.MODIFY)
        old_parents = {f.id: f.parent_id for f in files}

        bulk, conditional = _partition(items, destination_id)
        origins: Dict[str, Optional[str]] = {i: None for i in bulk}
        origins.update({item.id: item.origin for item in conditional})
        moved: List[str] = []
        skipped: List[str] = []

        def write() -> int:
            for file_id, origin in origins.items():
                new_key = self.codec.issue_file_key(file_id, destination_id)
                if self.file_repo.move(file_id, user_id, destination_id, new_key, origin):
                    moved.append(file_id)
                else:
                    skipped.append(file_id)
            return len(moved)

        pipeline = MutationPipeline("move_files")
        pipeline.add("update_parents", Store.METADATA, self._metadata(write))
        pipeline.add("index_parents", Store.SEARCH,
                     lambda: self.search_index.upsert(
                         FILES_INDEX, [parent_update(i, destination_id) for i in moved]))
        pipeline.add("move_content", Store.DISK,
                     lambda: self.storage.move_files(
                         [(i, origins[i] or old_parents[i], destination_id) for i in moved]))
        report = pipeline.run()

        _log_skipped("move_files", user_id, skipped)
        return UpdateResult(updated=len(moved), skipped=skipped, report=report)

    # ------------------------------------------------------------------
    # Copy
    # ------------------------------------------------------------------

    def copy_directories(self, user_id: str, destination_id: str, source_ids: Sequence[str]) -> CopyResult:
        """Deep-copy directories (and their files) under *destination_id*.

        Ownership strategy: destination and sources must belong to the user.
        Requested sources nested inside other requested sources are copied
        once, as part of their ancestor.
        """
        if not source_ids:
            raise ValidationError("No directories to copy", field="directories")

        self.dir_repo.get_owned(destination_id, user_id)
        all_directories = self.dir_repo.list_by_owner(user_id)
        by_id = {d.id: d for d in all_directories}

        requested = list(dict.fromkeys(source_ids))
        for source_id in requested:
            source = by_id.get(source_id)
            if source is None:
                raise EntityNotFoundError(source_id, "directory")
            if source.is_root:
                raise ValidationError(f"Cannot copy root directory: {source.name}", field="directories")

        adjacency = build_adjacency((d.id, d.parent_id) for d in all_directories)
        for source_id in requested:
            if is_within(destination_id, source_id, adjacency):
                raise CycleDetectedError(source_id, destination_id)

        top_level = _top_level(requested, by_id)
        to_copy = subtree_with_roots(top_level, adjacency)

        # Bidirectional id map: old -> new for rewriting, new -> old for disk copies.
        old_to_new = {old_id: _new_id() for old_id in to_copy}
        new_to_old = {new_id: old_id for old_id, new_id in old_to_new.items()}
        top_level_set = set(top_level)

        new_directories = []
        for old_id in to_copy:
            original = by_id[old_id]
            new_id = old_to_new[old_id]
            parent = destination_id if old_id in top_level_set else old_to_new[original.parent_id]
            new_directories.append(Directory(
                id=new_id,
                name=original.name,
                owner=user_id,
                parent_id=parent,
                previous_parent_id=None,
                access_key=self.codec.issue_directory_key(new_id),
            ))

        file_renames: List[Tuple[str, str, str]] = []
        new_files = []
        for original in self.file_repo.list_by_parents(to_copy, owner=user_id):
            new_id = _new_id()
            new_parent = old_to_new[original.parent_id]
            new_files.append(File(
                id=new_id,
                name=original.name,
                type=original.type,
                size=original.size,
                owner=user_id,
                parent_id=new_parent,
                previous_parent_id=None,
                access_key=self.codec.issue_file_key(new_id, new_parent),
            ))
            file_renames.append((new_parent, original.id, new_id))

        def write() -> int:
            for directory in new_directories:
                self.dir_repo.add(directory)
            # Directories land before files.
            self.db.flush()
            for file in new_files:
                self.file_repo.add(file)
            return len(new_directories) + len(new_files)

        pipeline = MutationPipeline("copy_directories")
        pipeline.add("insert_copies", Store.METADATA, self._metadata(write))
        pipeline.add("index_directories", Store.SEARCH,
                     lambda: self.search_index.upsert(
                         DIRECTORIES_INDEX, [directory_document(d) for d in new_directories]))
        pipeline.add("index_files", Store.SEARCH,
                     lambda: self.search_index.upsert(FILES_INDEX, [file_document(f) for f in new_files]))
        # Folders first: file renames happen inside the copied folders.
        pipeline.add("copy_folders", Store.DISK,
                     lambda: self.storage.copy_directories(
                         [(new_to_old[d.id], d.id) for d in new_directories]))
        pipeline.add("rename_content", Store.DISK,
                     lambda: self.storage.rename_files(file_renames))
        report = pipeline.run()

        logger.info(
            "Copied %d directories and %d files", len(new_directories), len(new_files),
            extra={"user": user_id, "destination": destination_id},
        )
        return CopyResult(
            directories=[d for d in new_directories if new_to_old[d.id] in top_level_set],
            all_directories=new_directories,
            files=new_files,
            report=report,
        )

    def copy_files(
        self,
        user_id: str,
        destination_id: str,
        destination_key: str,
        file_ids: Sequence[str],
    ) -> CopyResult:
        """Copy files into *destination_id*; the destination key must carry ``upload``."""
        if not file_ids:
            raise ValidationError("No files to copy", field="files")
        require_capability(self.codec, destination_key, Permission.UPLOAD, destination_id)
        self.dir_repo.get_owned(destination_id, user_id)
        originals = self.file_repo.require_many_owned(file_ids, user_id)

        copies: List[Tuple[str, str, str, str]] = []
        new_files = []
        for original in originals:
            new_id = _new_id()
            new_files.append(File(
                id=new_id,
                name=original.name,
                type=original.type,
                size=original.size,
                owner=user_id,
                parent_id=destination_id,
                previous_parent_id=None,
                access_key=self.codec.issue_file_key(new_id, destination_id),
            ))
            copies.append((original.id, original.parent_id, new_id, destination_id))

        def write() -> int:
            for file in new_files:
                self.file_repo.add(file)
            return len(new_files)

        pipeline = MutationPipeline("copy_files")
        pipeline.add("insert_copies", Store.METADATA, self._metadata(write))
        pipeline.add("index_files", Store.SEARCH,
                     lambda: self.search_index.upsert(FILES_INDEX, [file_document(f) for f in new_files]))
        pipeline.add("copy_content", Store.DISK, lambda: self.storage.copy_files(copies))
        report = pipeline.run()

        return CopyResult(directories=[], all_directories=[], files=new_files, report=report)

    # ------------------------------------------------------------------
    # Restore
    # ------------------------------------------------------------------

    def restore_directories(self, user_id: str, directory_ids: Sequence[str]) -> UpdateResult:
        """Move directories back to their previous parent. Idempotent.

        Directories without a previous parent are no-ops. A previous parent
        that was deleted in the meantime is skipped; one that has since been
        moved inside the directory itself is rejected as a cycle.
        """
        directories = self.dir_repo.require_many_owned(directory_ids, user_id)
        candidates = [d for d in directories if d.previous_parent_id]
        if not candidates:
            return UpdateResult(updated=0, report=PipelineReport(operation="restore_directories"))

        existing = {
            d.id for d in self.dir_repo.get_many_owned({c.previous_parent_id for c in candidates}, user_id)
        }
        adjacency = build_user_adjacency(self.db, user_id)

        plan: List[Tuple[str, str]] = []
        skipped: List[str] = []
        for directory in candidates:
            target = directory.previous_parent_id
            if target not in existing:
                skipped.append(directory.id)
                continue
            if is_within(target, directory.id, adjacency):
                raise CycleDetectedError(directory.id, target)
            plan.append((directory.id, target))

        restored: List[Tuple[str, str]] = []

        def write() -> int:
            for directory_id, target in plan:
                if self.dir_repo.restore(directory_id, user_id, target):
                    restored.append((directory_id, target))
                else:
                    skipped.append(directory_id)
            return len(restored)

        pipeline = MutationPipeline("restore_directories")
        pipeline.add("restore_parents", Store.METADATA, self._metadata(write))
        pipeline.add("index_parents", Store.SEARCH,
                     lambda: self.search_index.upsert(
                         DIRECTORIES_INDEX, [parent_update(i, p) for i, p in restored]))
        report = pipeline.run()

        _log_skipped("restore_directories", user_id, skipped)
        return UpdateResult(updated=len(restored), skipped=skipped, report=report)

    def restore_files(self, user_id: str, file_ids: Sequence[str]) -> UpdateResult:
        """Move files back to their previous parent and reissue their keys. Idempotent."""
        files = self.file_repo.require_many_owned(file_ids, user_id)
        candidates = [f for f in files if f.previous_parent_id]
        if not candidates:
            return UpdateResult(updated=0, report=PipelineReport(operation="restore_files"))

        existing = {
            d.id for d in self.dir_repo.get_many_owned({c.previous_parent_id for c in candidates}, user_id)
        }
        skipped = [f.id for f in candidates if f.previous_parent_id not in existing]
        plan = [
            (f.id, f.parent_id, f.previous_parent_id)
            for f in candidates if f.previous_parent_id in existing
        ]
        restored: List[Tuple[str, str, str]] = []

        def write() -> int:
            for file_id, current, target in plan:
                new_key = self.codec.issue_file_key(file_id, target)
                if self.file_repo.restore(file_id, user_id, target, new_key):
                    restored.append((file_id, current, target))
                else:
                    skipped.append(file_id)
            return len(restored)

        pipeline = MutationPipeline("restore_files")
        pipeline.add("restore_parents", Store.METADATA, self._metadata(write))
        pipeline.add("index_parents", Store.SEARCH,
                     lambda: self.search_index.upsert(
                         FILES_INDEX, [parent_update(i, target) for i, _, target in restored]))
        pipeline.add("move_content", Store.DISK, lambda: self.storage.move_files(restored))
        report = pipeline.run()

        _log_skipped("restore_files", user_id, skipped)
        return UpdateResult(updated=len(restored), skipped=skipped, report=report)

    # ------------------------------------------------------------------
    # Search
    # ------------------------------------------------------------------

    def search(self, user_id: str, name: str, parent_id: Optional[str] = None) -> Dict[str, list]:
        """Search both indexes, always filtered to the acting user."""
        filters = {"user": user_id}
        if parent_id:
            filters["parent_directory"] = parent_id
        try:
            return {
                "directories": self.search_index.search(DIRECTORIES_INDEX, name, filters),
                "files": self.search_index.search(FILES_INDEX, name, filters),
            }
        except httpx.HTTPError as exc:
            logger.error("Search failed: %s", exc, extra={"user": user_id})
            raise SearchUnavailableError(exc) from exc

    def reindex(self, user_id: str) -> int:
        """Push every directory and file of the user into the search index."""
        directories = self.dir_repo.list_by_owner(user_id)
        files = self.file_repo.list_by_owner(user_id)
        try:
            self.search_index.upsert(DIRECTORIES_INDEX, [directory_document(d) for d in directories])
            self.search_index.upsert(FILES_INDEX, [file_document(f) for f in files])
        except httpx.HTTPError as exc:
            logger.error("Reindex failed: %s", exc, extra={"user": user_id})
            raise SearchUnavailableError(exc) from exc
        logger.info("Reindexed user", extra={"user": user_id, "count": len(directories) + len(files)})
        return len(directories) + len(files)

    # ------------------------------------------------------------------
    # Private helpers
    # ------------------------------------------------------------------

    def _metadata(self, write: Callable[[], T]) -> Callable[[], T]:
        """Wrap a metadata write so it commits once or rolls back and raises DatabaseError."""
        def step() -> T:
            try:
                result = write()
                self.db.commit()
                return result
            except SQLAlchemyError as exc:
                self.db.rollback()
                logger.error("Metadata store write failed: %s", exc)
                raise DatabaseError("Metadata store write failed", exc) from exc
        return step

    def _authorize_destination(self, user_id: str, destination_id: str, destination_key: str) -> Directory:
        """You must hold a key for the place you are moving into, and own it."""
        require_capability(self.codec, destination_key, None, destination_id)
        return self.dir_repo.get_owned(destination_id, user_id)

    def _authorize_files(self, user_id: str, items: Sequence, permission: Permission) -> List[File]:
        """Check file keys: permission and id first, then the parent binding against the stored row."""
        decoded: Dict[str, DecodedCapability] = {}
        for item in items:
            decoded[item.id] = require_capability(self.codec, item.access_key, permission, item.id)

        files = self.file_repo.require_many_owned([i.id for i in items], user_id)
        for file in files:
            if decoded[file.id].parent != file.parent_id:
                raise InvalidCapabilityError(
                    file.id, f"Access key for {file.id} is bound to a different directory"
                )
        return files


# ---------------------------------------------------------------------------
# Module helpers
# ---------------------------------------------------------------------------

def _new_id() -> str:
    return str(uuid.uuid4())


def _validate_name(name: str) -> str:
    name = (name or "").strip()
    if not name:
        raise ValidationError("Name cannot be empty", field="name")
    if len(name) > MAX_NAME_LENGTH:
        raise ValidationError(f"Name longer than {MAX_NAME_LENGTH} characters", field="name")
    if "/" in name:
        raise ValidationError("Name cannot contain '/'", field="name")
    return name


def _partition(items: Sequence[MoveItem], destination_id: str) -> Tuple[List[str], List[MoveItem]]:
    """Split a move batch into bulk ids and conditional (origin-carrying) items.

    An origin equal to the destination is a move onto the current parent:
    legal, and recorded without history.
    """
    bulk: List[str] = []
    conditional: List[MoveItem] = []
    seen = set()
    for item in items:
        if item.id in seen:
            continue
        seen.add(item.id)
        if item.origin and item.origin != destination_id:
            conditional.append(item)
        else:
            bulk.append(item.id)
    return bulk, conditional


def _top_level(requested: Sequence[str], by_id: Dict[str, Directory]) -> List[str]:
    """Requested ids that have no requested ancestor."""
    requested_set = set(requested)
    top = []
    for directory_id in requested:
        parent = by_id[directory_id].parent_id
        nested = False
        while parent:
            if parent in requested_set:
                nested = True
                break
            ancestor = by_id.get(parent)
            parent = ancestor.parent_id if ancestor else None
        if not nested:
            top.append(directory_id)
    return top


def _log_skipped(operation: str, user_id: str, skipped: List[str]) -> None:
    if skipped:
        logger.warning(
            "%s: %d item(s) unchanged (parent changed concurrently or target gone)",
            operation, len(skipped),
            extra={"user": user_id, "skipped": skipped},
        )
