"""SHA-256 content hashing for checksums and change detection"""

import hashlib


def sha256(content: str | bytes) -> str:
    """Return hex-encoded SHA-256 hash of content (64 lowercase hex chars)."""
    if isinstance(content, str):
        content = content.encode("utf-8")
    return hashlib.sha256(content).hexdigest()


def fingerprint(text: str) -> str:
    """Fingerprint of transformed output; equal only when the rendered text is identical."""
    return sha256(text)
