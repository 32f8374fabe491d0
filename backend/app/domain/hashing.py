"""Content hashing over the canonical JSON form of a document."""

import hashlib
import json
from typing import Any


def canonical_json(document: Any) -> str:
    """Serialize with sorted keys and no insignificant whitespace.

    Key order from upstream parsing never affects the output. List order does,
    which is why documents are normalized before hashing.
    """
    return json.dumps(document, sort_keys=True, separators=(",", ":"), ensure_ascii=False)


def content_hash(document: Any) -> str:
    """SHA-256 hex digest of ``canonical_json(document)``."""
    return hashlib.sha256(canonical_json(document).encode("utf-8")).hexdigest()
