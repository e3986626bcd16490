"""Tests for restoring trashed directories and files."""

import pytest

from ncloud.exceptions import CycleDetectedError, EntityNotFoundError
from ncloud.services.namespace_service import KeyedId, MoveItem

USER = "alice"


@pytest.fixture()
def trashed_dir(service, main, trash, make_dir):
    docs = make_dir(main, "docs")
    service.move_directories(USER, trash.id, trash.access_key, [MoveItem(docs.id, docs.access_key, main.id)])
    return docs


@pytest.fixture()
def trashed_file(service, main, trash, make_file):
    file = make_file(main, "a.txt", b"keep me")
    service.move_files(USER, trash.id, trash.access_key, [MoveItem(file.id, file.access_key, main.id)])
    return file


class TestRestoreDirectories:

    def test_restore_puts_it_back(self, service, trashed_dir, main, find_dir, search_index):
        docs_id = trashed_dir.id
        result = service.restore_directories(USER, [docs_id])
        assert result.updated == 1
        restored = find_dir(docs_id)
        assert restored.parent_id == main.id
        assert restored.previous_parent_id is None
        assert search_index.documents["directories"][docs_id]["parent_directory"] == main.id

    def test_restore_twice_is_safe(self, service, trashed_dir):
        assert service.restore_directories(USER, [trashed_dir.id]).updated == 1
        assert service.restore_directories(USER, [trashed_dir.id]).updated == 0

    def test_never_moved_is_noop(self, service, main, make_dir):
        docs = make_dir(main, "docs")
        assert service.restore_directories(USER, [docs.id]).updated == 0

    def test_deleted_previous_parent_is_skipped(self, service, main, trash, make_dir, find_dir):
        parent = make_dir(main, "parent")
        child = make_dir(parent, "child")
        child_id = child.id
        service.move_directories(USER, trash.id, trash.access_key, [MoveItem(child_id, child.access_key, parent.id)])
        service.delete_directories(USER, [KeyedId(parent.id, parent.access_key)])

        result = service.restore_directories(USER, [child_id])

        assert result.updated == 0
        assert result.skipped == [child_id]
        assert find_dir(child_id).parent_id == trash.id

    def test_restore_into_own_subtree_rejected(self, service, main, trash, make_dir, find_dir):
        p = make_dir(main, "P")
        x = make_dir(p, "X")
        x_id = x.id
        # X goes to trash remembering P, then P is moved inside X.
        service.move_directories(USER, trash.id, trash.access_key, [MoveItem(x_id, x.access_key, p.id)])
        service.move_directories(USER, x_id, x.access_key, [MoveItem(p.id, p.access_key)])

        with pytest.raises(CycleDetectedError):
            service.restore_directories(USER, [x_id])
        assert find_dir(x_id).parent_id == trash.id

    def test_unknown_id_rejected(self, service, trashed_dir):
        with pytest.raises(EntityNotFoundError):
            service.restore_directories(USER, [trashed_dir.id, "ghost"])

    def test_foreign_user_cannot_restore(self, service, trashed_dir):
        with pytest.raises(EntityNotFoundError):
            service.restore_directories("mallory", [trashed_dir.id])


class TestRestoreFiles:

    def test_restore_moves_content_back(self, service, trashed_file, main, trash, storage, find_file, codec):
        file_id = trashed_file.id
        assert storage.file_path(trash.id, file_id).exists()

        result = service.restore_files(USER, [file_id])

        assert result.updated == 1
        restored = find_file(file_id)
        assert restored.parent_id == main.id
        assert restored.previous_parent_id is None
        assert codec.decode(restored.access_key).parent == main.id
        assert storage.file_path(main.id, file_id).read_bytes() == b"keep me"

    def test_restore_twice_is_safe(self, service, trashed_file):
        assert service.restore_files(USER, [trashed_file.id]).updated == 1
        assert service.restore_files(USER, [trashed_file.id]).updated == 0
