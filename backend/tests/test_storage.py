"""Tests for the directory-addressed disk layout."""

import pytest

from ncloud.services.storage import DiskStorage, StorageError


@pytest.fixture()
def disk(tmp_path):
    return DiskStorage(str(tmp_path))


def _write(disk, directory_id, file_id, content=b"x"):
    path = disk.file_path(directory_id, file_id)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(content)
    return path


class TestLayout:

    def test_file_lives_in_its_directory_folder(self, disk, tmp_path):
        assert disk.file_path("d1", "f1") == tmp_path / "d1" / "f1"

    @pytest.mark.parametrize("bad", ["", ".", "..", "a/b", "..\\x"])
    def test_path_escape_refused(self, disk, bad):
        with pytest.raises(ValueError):
            disk.directory_path(bad)


class TestDirectories:

    def test_make_and_remove(self, disk):
        disk.make_directories(["d1", "d2"])
        assert disk.directory_path("d1").is_dir()
        assert disk.remove_directories(["d1", "d2", "missing"]) == 3
        assert not disk.directory_path("d1").exists()

    def test_copy_duplicates_content(self, disk):
        _write(disk, "old", "f1", b"hello")
        disk.copy_directories([("old", "new")])
        assert disk.file_path("new", "f1").read_bytes() == b"hello"
        assert disk.file_path("old", "f1").exists()

    def test_copy_of_missing_source_is_empty(self, disk):
        disk.copy_directories([("ghost", "new")])
        assert disk.directory_path("new").is_dir()
        assert list(disk.directory_path("new").iterdir()) == []


class TestFiles:

    def test_move_between_folders(self, disk):
        _write(disk, "d1", "f1", b"abc")
        disk.move_files([("f1", "d1", "d2")])
        assert not disk.file_path("d1", "f1").exists()
        assert disk.file_path("d2", "f1").read_bytes() == b"abc"

    def test_move_within_same_folder_is_noop(self, disk):
        _write(disk, "d1", "f1")
        assert disk.move_files([("f1", "d1", "d1")]) == 1
        assert disk.file_path("d1", "f1").exists()

    def test_rename_and_copy(self, disk):
        _write(disk, "d1", "f1", b"abc")
        disk.rename_files([("d1", "f1", "f2")])
        assert disk.file_path("d1", "f2").exists()
        disk.copy_files([("f2", "d1", "f3", "d2")])
        assert disk.file_path("d2", "f3").read_bytes() == b"abc"

    def test_remove_missing_is_fine(self, disk):
        assert disk.remove_files([("d1", "nope")]) == 1

    def test_batch_reports_every_failure(self, disk):
        _write(disk, "d1", "ok")
        with pytest.raises(StorageError) as exc:
            disk.move_files([("gone1", "d1", "d2"), ("ok", "d1", "d2"), ("gone2", "d1", "d2")])
        assert [name for name, _ in exc.value.failed] == ["gone1", "gone2"]
        # The good item still moved.
        assert disk.file_path("d2", "ok").exists()
