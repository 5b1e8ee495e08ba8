"""
Random token generation and constant-time comparison.

Share tokens are hex-encoded and end up in URL path segments; anti-forgery
tokens are base64-encoded and travel in headers. Both draw 32 bytes from the
OS entropy source.
"""

import base64
import hmac
import secrets
from typing import Optional

SHARE_TOKEN_BYTES = 32
CSRF_TOKEN_BYTES = 32


def generate_share_token() -> str:
    """Return a 64-character hex token for a share link."""
    return secrets.token_hex(SHARE_TOKEN_BYTES)


def generate_csrf_token() -> str:
    """Return a base64-encoded anti-forgery token (44 characters)."""
    return base64.b64encode(secrets.token_bytes(CSRF_TOKEN_BYTES)).decode("ascii")


def constant_time_equal(a: Optional[str], b: Optional[str]) -> bool:
    """
    Compare two secrets without leaking where they first differ.

    Empty values never match. Strings of different lengths are rejected
    before any content is compared.
    """
    if not a or not b:
        return False

    a_bytes = a.encode("utf-8")
    b_bytes = b.encode("utf-8")
    if len(a_bytes) != len(b_bytes):
        return False

    return hmac.compare_digest(a_bytes, b_bytes)
