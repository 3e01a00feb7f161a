"""Content hashing for documents and cache keys."""

from __future__ import annotations

import hashlib


def content_hash(data: bytes) -> str:
    """Return the SHA-256 hex digest of ``data``.

    Identical bytes always produce the same digest, regardless of the file
    name or location they came from, so the digest doubles as the image cache
    key for a document.
    """

    return hashlib.sha256(data).hexdigest()


def short_hash(digest: str, length: int = 12) -> str:
    """Shorten a digest for log output."""

    return digest[:length]
