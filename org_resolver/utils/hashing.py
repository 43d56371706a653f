"""
Hashing utilities for org_resolver.

Provides the cache key derivation shared by the resolver caches.
"""

import hashlib
import json


def make_cache_key(*parts) -> str:
    """
    Build a stable SHA256 key from heterogeneous parts.

    Strings are used as-is; anything else is dumped as sorted JSON so that
    equal mappings produce equal keys regardless of insertion order.

    Example:
        >>> make_cache_key("text", "generic", {"b": 1, "a": 2}) == \\
        ...     make_cache_key("text", "generic", {"a": 2, "b": 1})
        True
    """
    digest = hashlib.sha256()
    for part in parts:
        if isinstance(part, str):
            encoded = part
        else:
            encoded = json.dumps(part, sort_keys=True, default=str)
        digest.update(encoded.encode("utf-8"))
        # Separator keeps ("ab", "c") distinct from ("a", "bc")
        digest.update(b"\x1f")
    return digest.hexdigest()
