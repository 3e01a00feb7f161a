from __future__ import annotations

import hashlib

from brochure_pipeline.hashing import content_hash, short_hash


def test_content_hash_depends_only_on_bytes() -> None:
    assert content_hash(b"brochure") == content_hash(bytes(b"brochure"))
    assert content_hash(b"brochure") == hashlib.sha256(b"brochure").hexdigest()
    assert content_hash(b"brochure") != content_hash(b"brochure ")


def test_short_hash() -> None:
    digest = content_hash(b"x")

    assert short_hash(digest) == digest[:12]
    assert len(short_hash(digest, 8)) == 8
