"""Signed, self-expiring admin session tokens.

Wire format: ``<payload>.<signature>`` where ``payload`` is the base64url
encoding of the compact JSON ``{"u": <subject>, "exp": <expires_at_ms>}``
and ``signature`` is the base64url HMAC-SHA256 of the encoded payload text.
Tokens are bearer credentials: there is no server-side session record and
no revocation list.
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Any

from linkshelf.core.clock import now_ms as _now_ms
from linkshelf.core.security import b64url_decode, b64url_encode, sign, verify

TOKEN_SEPARATOR = "."


@dataclass(frozen=True)
class SessionPayload:
    """Claims carried by a session token."""

    subject: str
    expires_at_ms: int | float

    def to_wire(self) -> dict[str, Any]:
        return {"u": self.subject, "exp": self.expires_at_ms}


def _is_payload_dict(value: Any) -> bool:
    if not isinstance(value, dict):
        return False
    subject = value.get("u")
    expires = value.get("exp")
    if not isinstance(subject, str):
        return False
    # bool is an int subclass and never a valid expiry.
    return isinstance(expires, (int, float)) and not isinstance(expires, bool)


def _encode_payload(payload: SessionPayload) -> str:
    text = json.dumps(payload.to_wire(), separators=(",", ":"), ensure_ascii=False)
    return b64url_encode(text.encode("utf-8"))


def _decode_payload(encoded: str) -> SessionPayload | None:
    try:
        parsed = json.loads(b64url_decode(encoded).decode("utf-8"))
    except (ValueError, UnicodeDecodeError):
        return None
    if not _is_payload_dict(parsed):
        return None
    return SessionPayload(subject=parsed["u"], expires_at_ms=parsed["exp"])


def issue(secret: str, subject: str, ttl_seconds: int, *, now_ms: int | None = None) -> str:
    """Create a signed session token for `subject` valid for `ttl_seconds`."""
    issued_at = _now_ms() if now_ms is None else now_ms
    payload = SessionPayload(subject=subject, expires_at_ms=issued_at + ttl_seconds * 1000)
    body = _encode_payload(payload)
    return f"{body}{TOKEN_SEPARATOR}{sign(secret, body)}"


def verify_token(secret: str, token: str, *, now_ms: int | None = None) -> SessionPayload | None:
    """Return the token's claims if it is authentic and unexpired, else None.

    Never raises for malformed input.
    """
    if not isinstance(token, str) or token.count(TOKEN_SEPARATOR) != 1:
        return None
    body, signature = token.split(TOKEN_SEPARATOR)
    if not body or not signature:
        return None
    if not verify(secret, body, signature):
        return None

    payload = _decode_payload(body)
    if payload is None:
        return None

    current = _now_ms() if now_ms is None else now_ms
    if current >= payload.expires_at_ms:
        return None
    return payload
