"""Authentication: the FastAPI dependency resolving the acting user.

Public interface:
    ``require_auth``: returns AuthContext or raises 401.

Identity tokens are issued by the account service; this service only
verifies them. The ``sub`` claim is the user id every ownership check
compares against. Refresh tokens are rejected here: they may only be
exchanged for a new access token, never used to call the API.
"""

import logging
from dataclasses import dataclass
from typing import Optional

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from .config import settings
from .token_factory import decode_token
from ..exceptions import AuthenticationError

logger = logging.getLogger(__name__)

_bearer_scheme = HTTPBearer(auto_error=False)


@dataclass(frozen=True)
class AuthContext:
    """Resolved authentication context available to every endpoint."""

    user_id: str


def require_auth(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(_bearer_scheme),
) -> AuthContext:
    """Require a valid access token and return the caller's AuthContext."""
    if credentials is None:
        raise AuthenticationError("Missing authentication token")

    payload = decode_token(credentials.credentials, settings.jwt_secret_key)
    if payload is None:
        raise AuthenticationError("Invalid or expired token")
    if payload.is_refresh:
        logger.info("Refresh token presented as access token", extra={"user": payload.sub})
        raise AuthenticationError("Refresh tokens cannot be used for API access")

    return AuthContext(user_id=payload.sub)
