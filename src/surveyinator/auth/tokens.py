"""Signed survey session tokens.

A token is ``<body>.<signature>`` where body is the base64url-encoded JSON
payload and signature is base64url(HMAC-SHA256(secret, body)). Padding is
stripped from both parts. ``exp`` in the payload is epoch milliseconds.
"""

import base64
import hashlib
import hmac
import json
import time
from typing import Any, Dict, Optional

from ..errors import TokenError

DEFAULT_TOKEN_TTL_HOURS = 12


def _now_ms() -> int:
    return int(time.time() * 1000)


def hash_access_code(code: str) -> str:
    """Return the lowercase hex SHA-256 digest of an access code.

    Only the digest is ever stored; the plaintext code stays with the participant.
    """
    return hashlib.sha256(code.encode('utf-8')).hexdigest()


def b64url_encode(data: bytes) -> str:
    """Base64url-encode without trailing '=' padding."""
    return base64.urlsafe_b64encode(data).decode('ascii').rstrip('=')


def b64url_decode(data: str) -> bytes:
    """Decode unpadded base64url, restoring padding as needed."""
    return base64.urlsafe_b64decode(data + '=' * (-len(data) % 4))


def sign(secret: str, data: str) -> str:
    """HMAC-SHA256 sign data with secret, base64url-encoded."""
    digest = hmac.new(secret.encode('utf-8'), data.encode('utf-8'), hashlib.sha256).digest()
    return b64url_encode(digest)


def make_token(secret: str, payload: Dict[str, Any]) -> str:
    """Serialize and sign a payload into a session token.

    Args:
        secret: Server-side signing secret
        payload: JSON-serializable dict

    Returns:
        Token string "<body>.<signature>"
    """
    body = b64url_encode(json.dumps(payload, separators=(',', ':')).encode('utf-8'))
    return f"{body}.{sign(secret, body)}"


def issue_session_token(
    secret: str,
    code_hash: str,
    ttl_hours: float = DEFAULT_TOKEN_TTL_HOURS,
    now_ms: Optional[int] = None,
) -> str:
    """Issue a session token for a redeemed access code.

    Args:
        secret: Server-side signing secret
        code_hash: Hash of the redeemed access code
        ttl_hours: Token lifetime in hours (default 12)
        now_ms: Current time in epoch milliseconds (default: wall clock)

    Returns:
        Signed token whose payload is {"codeHash": ..., "exp": ...}
    """
    if now_ms is None:
        now_ms = _now_ms()
    exp = now_ms + int(ttl_hours * 60 * 60 * 1000)
    return make_token(secret, {"codeHash": code_hash, "exp": exp})


def verify_token(secret: str, token: str, now_ms: Optional[int] = None) -> Dict[str, Any]:
    """Verify a token's signature and expiry and return its payload.

    Args:
        secret: Server-side signing secret
        token: Token string from the client
        now_ms: Current time in epoch milliseconds (default: wall clock)

    Returns:
        Decoded payload dict

    Raises:
        TokenError: On bad format, bad signature, undecodable payload or expiry
    """
    parts = (token or "").split(".")
    body = parts[0]
    sig = parts[1] if len(parts) > 1 else ""
    if not body or not sig:
        raise TokenError("Bad token format")

    expected = sign(secret, body)
    if not hmac.compare_digest(expected.encode('ascii'), sig.encode('utf-8', 'surrogatepass')):
        raise TokenError("Bad token signature")

    try:
        payload = json.loads(b64url_decode(body).decode('utf-8'))
    except (ValueError, UnicodeDecodeError):
        raise TokenError("Bad token payload")
    if not isinstance(payload, dict):
        raise TokenError("Bad token payload")

    if now_ms is None:
        now_ms = _now_ms()
    exp = payload.get("exp")
    if exp is not None and (isinstance(exp, bool) or not isinstance(exp, (int, float))):
        raise TokenError("Bad token payload")
    if exp and now_ms > exp:
        raise TokenError("Token expired")

    return payload
