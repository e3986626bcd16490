"""Pure functions for encoding and verifying HS512-signed tokens.

No classes with state, just encode/decode. Two token families share the
signing helpers here: bearer identity tokens (``create_token`` /
``decode_token``) and capability access keys (see ``capability.py``).
Identity tokens are issued by the user service; this process only needs to
verify them, ``create_token`` exists for management scripts and tests.
"""

import hashlib
import hmac
import base64
import json
import time
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Dict, Optional

ACCESS_TOKEN = "access"
REFRESH_TOKEN = "refresh"

_HEADER = {"alg": "HS512", "typ": "JWT"}


@dataclass(frozen=True)
class TokenPayload:
    """Decoded identity token payload. Immutable."""
    sub: str
    token_type: str
    exp: datetime

    @property
    def is_refresh(self) -> bool:
        return self.token_type == REFRESH_TOKEN


def encode_signed(payload: Dict[str, Any], secret: str) -> str:
    """Serialize *payload* as ``header.payload.signature`` signed with HMAC-SHA512."""
    segments = [
        _b64encode(json.dumps(_HEADER, separators=(",", ":")).encode()),
        _b64encode(json.dumps(payload, separators=(",", ":")).encode()),
    ]
    signing_input = b".".join(segments)
    signature = hmac.new(secret.encode(), signing_input, hashlib.sha512).digest()
    segments.append(_b64encode(signature))
    return b".".join(segments).decode()


def decode_signed(token: str, secret: str) -> Optional[Dict[str, Any]]:
    """Verify the signature of *token* and return its payload dict.

    Returns ``None`` for anything that is not a well-formed, correctly signed
    token. Never raises.
    """
    if not isinstance(token, str) or not token:
        return None
    try:
        parts = token.encode().split(b".")
        if len(parts) != 3:
            return None

        signing_input = parts[0] + b"." + parts[1]
        expected_sig = hmac.new(secret.encode(), signing_input, hashlib.sha512).digest()
        actual_sig = _b64decode(parts[2])

        if not hmac.compare_digest(expected_sig, actual_sig):
            return None

        header = json.loads(_b64decode(parts[0]))
        if not isinstance(header, dict) or header.get("alg") != _HEADER["alg"]:
            return None

        payload = json.loads(_b64decode(parts[1]))
        if not isinstance(payload, dict):
            return None
        return payload
    except (json.JSONDecodeError, UnicodeError, ValueError, TypeError):
        return None


def create_token(
    subject: str,
    secret: str,
    token_type: str = ACCESS_TOKEN,
    expires_minutes: int = 20,
) -> str:
    """Create a signed identity token.

    Args:
        subject: User id the token speaks for.
        secret: HMAC signing key.
        token_type: ``"access"`` or ``"refresh"``.
        expires_minutes: Minutes until expiry.

    Returns:
        Encoded token string.
    """
    if token_type not in (ACCESS_TOKEN, REFRESH_TOKEN):
        raise ValueError(f"Unsupported token type: {token_type}")

    now = time.time()
    payload = {
        "sub": subject,
        "token": token_type,
        "iat": int(now),
        "exp": int(now + expires_minutes * 60),
        "iss": "ncloud",
    }
    return encode_signed(payload, secret)


def decode_token(token: str, secret: str) -> Optional[TokenPayload]:
    """Decode and validate an identity token.

    Returns ``None`` on any validation failure (bad signature, expired,
    malformed, empty subject) rather than raising.
    """
    payload = decode_signed(token, secret)
    if payload is None:
        return None

    try:
        exp = int(payload.get("exp", 0))
    except (TypeError, ValueError):
        return None
    if time.time() > exp:
        return None

    sub = payload.get("sub")
    if not isinstance(sub, str) or not sub:
        return None

    return TokenPayload(
        sub=sub,
        token_type=str(payload.get("token", ACCESS_TOKEN)),
        exp=datetime.fromtimestamp(exp, tz=timezone.utc),
    )


# --- base64url helpers (no padding, URL-safe) ---

def _b64encode(data: bytes) -> bytes:
    return base64.urlsafe_b64encode(data).rstrip(b"=")


def _b64decode(data: bytes) -> bytes:
    padding = 4 - len(data) % 4
    if padding != 4:
        data += b"=" * padding
    return base64.urlsafe_b64decode(data)
