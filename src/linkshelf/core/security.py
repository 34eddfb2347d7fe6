"""Signing and hashing primitives built on HMAC-SHA256."""
from __future__ import annotations

import base64
import binascii
import hashlib
import hmac
import re

_B64URL_ALPHABET = re.compile(r"^[A-Za-z0-9_-]*$")


def hash_text(text: str) -> str:
    """Return the SHA-256 hex digest of the UTF-8 encoding of `text`."""
    return hashlib.sha256(text.encode("utf-8")).hexdigest()


def b64url_encode(data: bytes) -> str:
    """Encode bytes as URL-safe base64 without padding."""
    return base64.urlsafe_b64encode(data).decode("ascii").rstrip("=")


def b64url_decode(text: str) -> bytes:
    """Decode unpadded URL-safe base64.

    Raises:
        ValueError: If `text` contains characters outside the URL-safe
            alphabet or is not the canonical encoding of its bytes.
    """
    if not _B64URL_ALPHABET.match(text):
        raise ValueError("Invalid base64url alphabet")
    padding = "=" * (-len(text) % 4)
    try:
        decoded = base64.urlsafe_b64decode(text + padding)
    except binascii.Error as err:
        raise ValueError(f"Invalid base64url encoding: {err}") from err
    # Trailing bits must be zero so that each byte string has exactly one encoding.
    if b64url_encode(decoded) != text:
        raise ValueError("Non-canonical base64url encoding")
    return decoded


def _mac(secret: str, message: str) -> bytes:
    return hmac.new(secret.encode("utf-8"), message.encode("utf-8"), hashlib.sha256).digest()


def sign(secret: str, message: str) -> str:
    """Return the base64url HMAC-SHA256 signature of `message` under `secret`."""
    return b64url_encode(_mac(secret, message))


def verify(secret: str, message: str, signature: str) -> bool:
    """Verify an HMAC-SHA256 signature.

    Args:
        secret: Shared signing secret.
        message: Exact text that was signed.
        signature: Base64url signature supplied by the caller.

    Returns:
        True if the signature is valid for `message` under `secret`; False otherwise,
        including when the signature is malformed.
    """
    try:
        supplied = b64url_decode(signature)
        expected = _mac(secret, message)
    except (ValueError, TypeError, AttributeError):
        return False
    return hmac.compare_digest(expected, supplied)


def constant_time_equal(a: bytes, b: bytes) -> bool:
    """Compare two byte strings in time independent of their contents.

    Lengths are not secret, so a length mismatch returns immediately.
    """
    if len(a) != len(b):
        return False
    return hmac.compare_digest(a, b)


def padded_equal(a: bytes, b: bytes) -> bool:
    """Compare two byte strings without an early exit on differing lengths."""
    width = max(len(a), len(b))
    same_content = constant_time_equal(a.ljust(width, b"\0"), b.ljust(width, b"\0"))
    return same_content & (len(a) == len(b))
