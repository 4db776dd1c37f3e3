"""Recording webhook signature verification.

Signatures arrive as ``v1,<sig> [<sig> ...]``: a version tag followed by one
or more space-separated base64 HMAC-SHA256 digests of the raw request body.
Several digests are allowed so the sender can rotate secrets.
"""

from __future__ import annotations

import base64
import hashlib
import hmac
from collections.abc import Mapping

import structlog

logger = structlog.get_logger(__name__)

SIGNATURE_VERSION = "v1"

# Header names seen in the wild, checked in order
SIGNATURE_HEADERS = ("webhook-signature", "x-fathom-signature", "x-webhook-signature")


def find_signature(headers: Mapping[str, str]) -> str | None:
    """Return the first signature header present, if any."""
    for name in SIGNATURE_HEADERS:
        value = headers.get(name)
        if value:
            return value
    return None


def compute_signature(secret: str, body: bytes) -> str:
    """Base64 HMAC-SHA256 digest of a body."""
    digest = hmac.new(secret.encode(), body, hashlib.sha256).digest()
    return base64.b64encode(digest).decode()


def sign_body(secret: str, body: bytes) -> str:
    """Full signature header value for a body."""
    return f"{SIGNATURE_VERSION},{compute_signature(secret, body)}"


def verify_webhook_signature(secret: str, signature: str, body: bytes) -> bool:
    """Check a webhook signature header against the raw body.

    Args:
        secret: Shared webhook secret.
        signature: Signature header value.
        body: Raw request body.

    Returns:
        True if any of the listed digests matches.
    """
    if not secret or not signature:
        return False

    version, sep, block = signature.partition(",")
    if not sep or version.strip() != SIGNATURE_VERSION:
        logger.warning("webhook_signature_bad_version", version=version[:10])
        return False

    expected = compute_signature(secret, body)
    candidates = [s.strip() for s in block.split(" ") if s.strip()]
    valid = any(hmac.compare_digest(expected, candidate) for candidate in candidates)
    if not valid:
        logger.warning("webhook_signature_mismatch", candidates=len(candidates))
    return valid
