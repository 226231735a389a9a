from __future__ import annotations

import hashlib
import re
import unicodedata

_NON_SLUG = re.compile(r"[^a-z0-9]+")


def slugify(title: str) -> str:
    """Build the URL slug used to identify dashboards and folders by title.

    Titles without any ASCII letter or digit get a stable hashed slug, so
    distinct titles never collapse into the same empty slug.
    """
    text = str(title or "").strip()
    raw = unicodedata.normalize("NFKD", text)
    ascii_only = raw.encode("ascii", "ignore").decode("ascii").lower()
    slug = _NON_SLUG.sub("-", ascii_only).strip("-")
    if slug or not text:
        return slug
    return hashlib.blake2b(text.encode("utf-8"), digest_size=8).hexdigest()
