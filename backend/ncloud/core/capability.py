"""Capability token codec: signed, self-contained access keys for entities.

An access key names one entity id, the permissions it grants on that entity
and, for files, the id of the directory the file lived in when the key was
issued. Verification needs nothing but the signing key, so there is no
revocation list: a file key dies the moment the file moves because its
parent binding no longer matches the stored parent.

Keys do not expire. They are persisted on the entity and reissued whenever
the facts they encode change.
"""

from dataclasses import dataclass
from enum import Enum
from typing import FrozenSet, Iterable, Optional

from .token_factory import decode_signed, encode_signed

_KIND = "capability"


class Permission(str, Enum):
    """Permission bits carried by an access key."""
    READ = "read"
    MODIFY = "modify"
    DELETE = "delete"
    UPLOAD = "upload"  # directories only: register files inside


ALL_DIRECTORY_PERMISSIONS: FrozenSet[Permission] = frozenset(Permission)
ALL_FILE_PERMISSIONS: FrozenSet[Permission] = frozenset(
    {Permission.READ, Permission.MODIFY, Permission.DELETE}
)


@dataclass(frozen=True)
class DecodedCapability:
    """Result of decoding an access key. Check ``valid`` before trusting any field."""
    entity_id: str
    permissions: FrozenSet[Permission]
    parent: Optional[str]
    valid: bool

    def allows(self, permission: Permission) -> bool:
        return self.valid and permission in self.permissions


_INVALID = DecodedCapability(entity_id="", permissions=frozenset(), parent=None, valid=False)


class CapabilityCodec:
    """Issues and decodes access keys with one immutable signing key.

    The key is injected at construction (``get_codec()`` wires it from
    settings) so tests and tools can hold their own codec.
    """

    __slots__ = ("_secret",)

    def __init__(self, secret: str):
        if not secret:
            raise ValueError("Capability signing key must not be empty")
        object.__setattr__(self, "_secret", secret)

    def __setattr__(self, name, value):
        raise AttributeError("CapabilityCodec is immutable")

    def issue(
        self,
        entity_id: str,
        permissions: Iterable[Permission],
        parent: Optional[str] = None,
    ) -> str:
        """Sign an access key for *entity_id*.

        Args:
            entity_id: Directory or file id the key authorizes.
            permissions: Granted permission bits.
            parent: Parent directory binding (files only).
        """
        if not entity_id:
            raise ValueError("entity_id is required")

        payload = {
            "kind": _KIND,
            "id": entity_id,
            # Sorted so identical grants always produce identical keys.
            "permissions": sorted(Permission(p).value for p in permissions),
        }
        if parent:
            payload["parent"] = parent
        return encode_signed(payload, self._secret)

    def decode(self, token: Optional[str]) -> DecodedCapability:
        """Decode *token*. Never raises; returns an invalid result instead."""
        payload = decode_signed(token, self._secret) if token else None
        if payload is None or payload.get("kind") != _KIND:
            return _INVALID

        entity_id = payload.get("id")
        raw_permissions = payload.get("permissions")
        parent = payload.get("parent")
        if not isinstance(entity_id, str) or not entity_id:
            return _INVALID
        if not isinstance(raw_permissions, list):
            return _INVALID
        if parent is not None and not isinstance(parent, str):
            return _INVALID

        try:
            permissions = frozenset(Permission(p) for p in raw_permissions)
        except (ValueError, TypeError):
            return _INVALID

        return DecodedCapability(
            entity_id=entity_id,
            permissions=permissions,
            parent=parent or None,
            valid=True,
        )

    # -- convenience issuers ------------------------------------------------

    def issue_directory_key(self, directory_id: str) -> str:
        return self.issue(directory_id, ALL_DIRECTORY_PERMISSIONS)

    def issue_file_key(self, file_id: str, parent_id: str) -> str:
        return self.issue(file_id, ALL_FILE_PERMISSIONS, parent=parent_id)


_codec: Optional[CapabilityCodec] = None


def get_codec() -> CapabilityCodec:
    """Process-wide codec built from ``settings.capability_secret_key``.

    Also usable as a FastAPI dependency; tests override it.
    """
    global _codec
    if _codec is None:
        from .config import settings
        _codec = CapabilityCodec(settings.capability_secret_key)
    return _codec
