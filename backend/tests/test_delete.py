"""Tests for deleting directories (subtree closure) and files."""

import pytest

from ncloud.core.capability import Permission
from ncloud.exceptions import (
    EntityNotFoundError,
    InvalidCapabilityError,
    PermissionDeniedError,
    ValidationError,
)
from ncloud.models import Directory, File
from ncloud.services.namespace_service import KeyedId

USER = "alice"


@pytest.fixture()
def tree(main, make_dir, make_file):
    """A > B > C under Main, with one file in each, plus sibling S."""
    a = make_dir(main, "A")
    b = make_dir(a, "B")
    c = make_dir(b, "C")
    s = make_dir(main, "S")
    files = [make_file(a, "a.txt"), make_file(b, "b.txt"), make_file(c, "c.txt"), make_file(s, "s.txt")]
    return {"A": a, "B": b, "C": c, "S": s, "files": files}


def _key(entity):
    return KeyedId(entity.id, entity.access_key)


class TestDeleteDirectories:

    def test_delete_removes_whole_subtree(self, service, tree, db, storage):
        ids = {name: tree[name].id for name in ("A", "B", "C", "S")}
        result = service.delete_directories(USER, [_key(tree["A"])])

        assert result.directories == 3
        assert result.files == 3
        remaining = {d.id for d in db.query(Directory).all()}
        assert not remaining & {ids["A"], ids["B"], ids["C"]}
        assert ids["S"] in remaining
        orphans = db.query(File).filter(File.parent_id.in_([ids["A"], ids["B"], ids["C"]])).count()
        assert orphans == 0
        for name in ("A", "B", "C"):
            assert not storage.directory_path(ids[name]).exists()
        assert storage.directory_path(ids["S"]).exists()

    def test_search_index_follows(self, service, tree, search_index):
        a_id, s_file = tree["A"].id, tree["files"][3].id
        service.delete_directories(USER, [_key(tree["A"])])
        assert a_id not in search_index.documents["directories"]
        assert list(search_index.documents["files"]) == [s_file]
        assert search_index.calls_for("delete_by_parents", "files")

    def test_nested_targets_are_fine(self, service, tree, db):
        result = service.delete_directories(USER, [_key(tree["A"]), _key(tree["B"])])
        assert result.directories == 3

    def test_invalid_key_rejects_whole_batch(self, service, tree, find_dir):
        s_id = tree["S"].id
        items = [_key(tree["S"]), KeyedId(tree["A"].id, tree["B"].access_key)]
        with pytest.raises(InvalidCapabilityError):
            service.delete_directories(USER, items)
        assert find_dir(s_id) is not None

    def test_key_without_delete_is_denied(self, service, tree, codec):
        key = codec.issue(tree["A"].id, [Permission.READ, Permission.MODIFY])
        with pytest.raises(PermissionDeniedError):
            service.delete_directories(USER, [KeyedId(tree["A"].id, key)])

    def test_ownership_is_rechecked(self, service, tree, find_dir):
        a_id = tree["A"].id
        with pytest.raises(EntityNotFoundError):
            service.delete_directories("mallory", [_key(tree["A"])])
        assert find_dir(a_id) is not None

    def test_missing_id_rejects_batch(self, service, tree, codec, find_dir):
        s_id = tree["S"].id
        ghost = KeyedId("ghost", codec.issue_directory_key("ghost"))
        with pytest.raises(EntityNotFoundError):
            service.delete_directories(USER, [_key(tree["S"]), ghost])
        assert find_dir(s_id) is not None

    def test_roots_cannot_be_deleted(self, service, main):
        with pytest.raises(ValidationError):
            service.delete_directories(USER, [_key(main)])

    def test_disk_failure_does_not_undo_metadata(self, service, tree, storage, monkeypatch, caplog):
        a_id = tree["A"].id

        def _fail(ids):
            raise OSError("disk gone")

        monkeypatch.setattr(storage, "remove_directories", _fail)
        result = service.delete_directories(USER, [_key(tree["A"])])
        assert result.report.failed_steps == ["remove_folders"]
        assert service.dir_repo.get_by_id_optional(a_id) is None

    def test_search_failure_is_logged_not_raised(self, service, tree, search_index, storage):
        a_id = tree["A"].id
        search_index.fail.update({"delete", "delete_by_parents"})
        result = service.delete_directories(USER, [_key(tree["A"])])
        assert result.report.failed_steps == ["unindex_directories", "unindex_files"]
        # Disk still cleaned up after the index failed.
        assert not storage.directory_path(a_id).exists()


class TestDeleteFiles:

    def test_delete_file(self, service, tree, storage, find_file, search_index):
        file = tree["files"][0]
        file_id, parent_id = file.id, file.parent_id
        result = service.delete_files(USER, [_key(file)])
        assert result.files == 1
        assert find_file(file_id) is None
        assert not storage.file_path(parent_id, file_id).exists()
        assert file_id not in search_index.documents["files"]

    def test_stale_parent_binding_rejected(self, service, tree, codec, find_file):
        file = tree["files"][0]
        file_id = file.id
        stale = codec.issue_file_key(file_id, tree["S"].id)
        with pytest.raises(InvalidCapabilityError):
            service.delete_files(USER, [KeyedId(file_id, stale)])
        assert find_file(file_id) is not None

    def test_directory_key_cannot_delete_file(self, service, tree):
        file = tree["files"][0]
        with pytest.raises(InvalidCapabilityError):
            service.delete_files(USER, [KeyedId(file.id, tree["A"].access_key)])
