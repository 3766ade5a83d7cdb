"""Hashing utilities for schemalog."""

import hashlib


def sha256_hash(content: str) -> str:
    """Calculate SHA256 hash of content.

    Line endings are normalized to LF first so a checkout with CRLF endings
    hashes the same as the original.

    Args:
        content: Text content to hash.

    Returns:
        Hexadecimal SHA256 hash string.
    """
    normalized = content.replace("\r\n", "\n")
    return hashlib.sha256(normalized.encode("utf-8")).hexdigest()
