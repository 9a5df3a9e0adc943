import hashlib
import hmac
from typing import Optional

SIGNATURE_PREFIX = "sha256="


def compute_signature(raw_body: bytes, secret: str) -> str:
    return hmac.new(secret.encode("utf-8"), raw_body, hashlib.sha256).hexdigest()


def verify_signature(raw_body: bytes, signature_header: Optional[str], secret: Optional[str]) -> bool:
    """Check an ``X-Hub-Signature-256`` header against the raw request body."""
    if not secret or not signature_header:
        return False

    received = signature_header.strip()
    if received.startswith(SIGNATURE_PREFIX):
        received = received[len(SIGNATURE_PREFIX) :]

    expected = compute_signature(raw_body, secret)
    if len(received) != len(expected):
        return False
    return hmac.compare_digest(expected.encode("ascii"), received.encode("utf-8"))
