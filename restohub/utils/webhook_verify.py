"""
Webhook Signature Verification

HMAC-SHA256 over the raw request body with a shared secret. Providers
send the digest either hex- or base64-encoded, so both are accepted.
"""

import base64
import hashlib
import hmac
from typing import Optional


def verify_hmac(raw: bytes, signature: Optional[str], secret: str) -> bool:
    """
    Check `signature` against HMAC-SHA256(secret, raw).

    Returns False when the signature or the secret is missing.
    """
    if not signature or not secret:
        return False

    digest = hmac.new(secret.encode("utf-8"), raw, hashlib.sha256).digest()
    expected_hex = digest.hex()
    expected_b64 = base64.b64encode(digest).decode("ascii")

    provided = signature.strip()
    hex_ok = hmac.compare_digest(provided.encode("utf-8"), expected_hex.encode("ascii"))
    b64_ok = hmac.compare_digest(provided.encode("utf-8"), expected_b64.encode("ascii"))
    return hex_ok or b64_ok


def sign_hex(raw: bytes, secret: str) -> str:
    """Hex signature for `raw`; used by scripts and tests to build requests."""
    return hmac.new(secret.encode("utf-8"), raw, hashlib.sha256).hexdigest()
