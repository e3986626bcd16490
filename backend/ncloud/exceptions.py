"""Custom exception hierarchy for ncloud."""

from enum import Enum
from typing import Optional, Dict, Any


class ErrorCode(str, Enum):
    """Standardized error codes for API responses."""

    # Authorization
    UNAUTHORIZED = "UNAUTHORIZED"
    INVALID_CAPABILITY = "INVALID_CAPABILITY"
    PERMISSION_DENIED = "PERMISSION_DENIED"

    # Namespace structure
    ENTITY_NOT_FOUND = "ENTITY_NOT_FOUND"
    CYCLE_DETECTED = "CYCLE_DETECTED"

    # Validation errors
    VALIDATION_ERROR = "VALIDATION_ERROR"

    # Store errors
    DATABASE_ERROR = "DATABASE_ERROR"
    STORE_SYNC_FAILED = "STORE_SYNC_FAILED"
    SEARCH_UNAVAILABLE = "SEARCH_UNAVAILABLE"

    # Generic errors
    INTERNAL_ERROR = "INTERNAL_ERROR"


class NcloudException(Exception):
    """
    Base exception for all ncloud errors.

    Provides structured error responses with:
    - Human-readable message
    - Machine-readable error code
    - HTTP status code
    - Optional additional details
    """

    def __init__(
        self,
        message: str,
        error_code: ErrorCode,
        status_code: int = 500,
        details: Optional[Dict[str, Any]] = None
    ):
        super().__init__(message)
        self.message = message
        self.error_code = error_code
        self.status_code = status_code
        self.details = details or {}

    def to_dict(self) -> Dict[str, Any]:
        """
        Convert exception to dictionary for JSON response.

        Returns:
            Dictionary with error, message, and details fields
        """
        return {
            "error": self.error_code.value,
            "message": self.message,
            "details": self.details
        }


class AuthenticationError(NcloudException):
    """Request lacks a valid bearer identity token."""

    def __init__(self, message: str = "Invalid or missing authentication token"):
        super().__init__(
            message,
            ErrorCode.UNAUTHORIZED,
            status_code=401,
        )


class InvalidCapabilityError(NcloudException):
    """Access key failed to decode, or its id/parent binding does not match."""

    def __init__(self, entity_id: str, message: Optional[str] = None):
        super().__init__(
            message or f"Invalid access key for: {entity_id}",
            ErrorCode.INVALID_CAPABILITY,
            status_code=403,
            details={"id": entity_id}
        )


class PermissionDeniedError(NcloudException):
    """Access key is valid but lacks the required permission bit."""

    def __init__(self, entity_id: str, permission: str):
        super().__init__(
            f"No {permission} permission for: {entity_id}",
            ErrorCode.PERMISSION_DENIED,
            status_code=403,
            details={"id": entity_id, "permission": permission}
        )


class EntityNotFoundError(NcloudException):
    """Referenced id is absent for the acting user."""

    def __init__(self, entity_id: str, kind: str = "entity"):
        super().__init__(
            f"{kind.capitalize()} not found: {entity_id}",
            ErrorCode.ENTITY_NOT_FOUND,
            status_code=404,
            details={"id": entity_id, "kind": kind}
        )


class CycleDetectedError(NcloudException):
    """Destination equals the source or lies inside the source's subtree."""

    def __init__(self, source_id: str, destination_id: str):
        super().__init__(
            f"Cannot place {source_id} inside its own subtree ({destination_id})",
            ErrorCode.CYCLE_DETECTED,
            status_code=400,
            details={"id": source_id, "destination": destination_id}
        )


class ValidationError(NcloudException):
    """Validation failed for user input."""

    def __init__(self, message: str, field: Optional[str] = None):
        details = {"field": field} if field else {}
        super().__init__(
            message,
            ErrorCode.VALIDATION_ERROR,
            status_code=400,
            details=details
        )


class DatabaseError(NcloudException):
    """Metadata store operation failed; nothing was committed."""

    def __init__(self, message: str, original_error: Optional[Exception] = None):
        details = {}
        if original_error:
            details["original_error"] = str(original_error)

        super().__init__(
            message,
            ErrorCode.DATABASE_ERROR,
            status_code=500,
            details=details
        )


class StoreSyncError(NcloudException):
    """A secondary store (search index, disk) failed after the metadata commit.

    Never surfaced to callers; the pipeline logs it and records it in the
    operation report.
    """

    def __init__(self, step: str, original_error: Exception):
        super().__init__(
            f"Store step '{step}' failed after metadata commit",
            ErrorCode.STORE_SYNC_FAILED,
            status_code=500,
            details={"step": step, "original_error": str(original_error)}
        )


class SearchUnavailableError(NcloudException):
    """The search index could not answer a read (search or reindex)."""

    def __init__(self, original_error: Optional[Exception] = None):
        details = {}
        if original_error:
            details["original_error"] = str(original_error)

        super().__init__(
            "Search index unavailable",
            ErrorCode.SEARCH_UNAVAILABLE,
            status_code=503,
            details=details
        )
