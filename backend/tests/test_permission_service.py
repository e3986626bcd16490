"""Tests for the permission gate: capability and ownership strategies."""

import pytest

from ncloud.core.capability import CapabilityCodec, Permission
from ncloud.exceptions import (
    EntityNotFoundError,
    InvalidCapabilityError,
    PermissionDeniedError,
)
from ncloud.services.namespace_service import KeyedId, MoveItem
from ncloud.services.permission_service import (
    authorize,
    require_capability,
    require_owner,
)


@pytest.fixture()
def codec():
    return CapabilityCodec("gate-secret")


class _Record:
    def __init__(self, owner):
        self.owner = owner


class TestAuthorize:

    def test_directory_key_authorizes_its_directory(self, codec):
        key = codec.issue_directory_key("d1")
        assert authorize(codec, key, Permission.DELETE, expected_id="d1")

    def test_wrong_id_fails(self, codec):
        key = codec.issue_directory_key("d1")
        assert not authorize(codec, key, Permission.READ, expected_id="d2")

    def test_missing_permission_fails(self, codec):
        key = codec.issue("d1", [Permission.READ])
        assert not authorize(codec, key, Permission.MODIFY, expected_id="d1")

    def test_parent_binding_checked(self, codec):
        key = codec.issue_file_key("f1", "d1")
        assert authorize(codec, key, Permission.READ, "f1", expected_parent="d1")
        assert not authorize(codec, key, Permission.READ, "f1", expected_parent="d2")

    def test_undecodable_fails(self, codec):
        assert not authorize(codec, "nope", Permission.READ, "d1")
        assert not authorize(codec, None, Permission.READ, "d1")


class TestRequireCapability:

    def test_returns_decoded_key(self, codec):
        decoded = require_capability(codec, codec.issue_file_key("f1", "d1"), Permission.DELETE, "f1")
        assert decoded.parent == "d1"

    def test_missing_bit_is_permission_denied(self, codec):
        key = codec.issue("d1", [Permission.READ])
        with pytest.raises(PermissionDeniedError) as exc:
            require_capability(codec, key, Permission.DELETE, "d1")
        assert exc.value.status_code == 403

    def test_id_mismatch_is_invalid_capability(self, codec):
        with pytest.raises(InvalidCapabilityError):
            require_capability(codec, codec.issue_directory_key("d1"), Permission.READ, "d2")

    def test_possession_only(self, codec):
        key = codec.issue("d1", [])
        assert require_capability(codec, key, None, "d1").entity_id == "d1"


class TestRequireOwner:

    def test_owner_passes(self):
        record = _Record("alice")
        assert require_owner(record, "alice", "x") is record

    def test_foreign_and_missing_look_the_same(self):
        with pytest.raises(EntityNotFoundError):
            require_owner(_Record("mallory"), "alice", "x")
        with pytest.raises(EntityNotFoundError):
            require_owner(None, "alice", "x")


class TestServiceStrategies:

    def test_copy_directories_needs_no_key(self, service, main, make_dir, find_dir):
        docs = make_dir(main, "docs")
        result = service.copy_directories("alice", main.id, [docs.id])
        assert len(result.directories) == 1
        assert find_dir(result.directories[0].id).owner == "alice"

    def test_copy_directories_of_foreign_tree_is_not_found(self, service, main, make_dir):
        docs = make_dir(main, "docs")
        mallory_main = service.provision_user_roots("mallory")["Main"]
        with pytest.raises(EntityNotFoundError):
            service.copy_directories("mallory", mallory_main.id, [docs.id])

    def test_valid_key_does_not_bypass_ownership_on_delete(self, service, main, make_dir, find_dir):
        docs = make_dir(main, "docs")
        docs_id = docs.id
        with pytest.raises(EntityNotFoundError):
            service.delete_directories("mallory", [KeyedId(docs_id, docs.access_key)])
        assert find_dir(docs_id) is not None

    def test_valid_key_does_not_bypass_ownership_on_move(self, service, main, make_dir, find_dir):
        docs = make_dir(main, "docs")
        docs_id, main_id = docs.id, main.id
        mallory_main = service.provision_user_roots("mallory")["Main"]
        with pytest.raises(EntityNotFoundError):
            service.move_directories(
                "mallory", mallory_main.id, mallory_main.access_key,
                [MoveItem(docs_id, docs.access_key)],
            )
        assert find_dir(docs_id).parent_id == main_id

    def test_restore_is_ownership_only(self, service, main, trash, make_dir):
        docs = make_dir(main, "docs")
        service.move_directories("alice", trash.id, trash.access_key, [MoveItem(docs.id, docs.access_key, main.id)])
        with pytest.raises(EntityNotFoundError):
            service.restore_directories("mallory", [docs.id])
        assert service.restore_directories("alice", [docs.id]).updated == 1
