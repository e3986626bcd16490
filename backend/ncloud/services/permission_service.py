"""Authorization: the two strategies and nothing else.

This is the ONE place where access rules live. Two mechanisms exist and are
kept apart on purpose:

    CAPABILITY  the caller presents an access key for the entity. Verified
                with the signing key alone: decode, id match, optional parent
                binding match, permission bit. No database lookup.
    OWNERSHIP   the caller's authenticated user id must equal the ``owner``
                column of the record, found by scanning the metadata store.

Strategies applied by ``NamespaceService``, capability first where both run:

    list_directory, copy_directories, restore_*, search   OWNERSHIP
    create_directory, register_file, delete_*, move_*,    CAPABILITY, OWNERSHIP
    copy_files

A valid key never substitutes for ownership; a foreign record is reported as
missing either way.
"""

from __future__ import annotations

from typing import Optional

from ..core.capability import CapabilityCodec, DecodedCapability, Permission
from ..exceptions import EntityNotFoundError, InvalidCapabilityError, PermissionDeniedError


def authorize(
    codec: CapabilityCodec,
    token: Optional[str],
    required: Permission,
    expected_id: Optional[str] = None,
    expected_parent: Optional[str] = None,
) -> bool:
    """Check whether *token* grants *required* on the expected entity.

    Fails closed: returns False when the token does not decode, when
    *expected_id* differs from the decoded id, when *expected_parent* differs
    from the decoded parent binding, or when the permission bit is absent.
    """
    decoded = codec.decode(token)
    return _failure(decoded, required, expected_id, expected_parent) is None


def require_capability(
    codec: CapabilityCodec,
    token: Optional[str],
    required: Optional[Permission],
    expected_id: str,
    expected_parent: Optional[str] = None,
) -> DecodedCapability:
    """Raising form of :func:`authorize` used before any store mutation.

    *required* may be None when only possession of a matching key is needed
    (the destination of a move).

    Raises:
        InvalidCapabilityError: decode failure or id / parent mismatch.
        PermissionDeniedError: valid key without the permission bit.
    """
    decoded = codec.decode(token)
    failure = _failure(decoded, required, expected_id, expected_parent)
    if failure == "permission":
        raise PermissionDeniedError(expected_id, required.value)
    if failure is not None:
        raise InvalidCapabilityError(expected_id)
    return decoded


def require_owner(entity, user_id: str, entity_id: str, kind: str = "entity"):
    """Ownership strategy: the record must exist and belong to *user_id*.

    Foreign and missing records are reported identically so ids owned by
    other users cannot be probed.
    """
    if entity is None or entity.owner != user_id:
        raise EntityNotFoundError(entity_id, kind)
    return entity


def _failure(
    decoded: DecodedCapability,
    required: Optional[Permission],
    expected_id: Optional[str],
    expected_parent: Optional[str],
) -> Optional[str]:
    if not decoded.valid:
        return "decode"
    if expected_id is not None and decoded.entity_id != expected_id:
        return "id"
    if expected_parent is not None and decoded.parent != expected_parent:
        return "parent"
    if required is not None and required not in decoded.permissions:
        return "permission"
    return None
