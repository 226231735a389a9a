from __future__ import annotations

import hashlib


def fingerprint_definition(content: bytes) -> str:
    digest = hashlib.blake2b(digest_size=16)
    digest.update(content)
    return digest.hexdigest()
