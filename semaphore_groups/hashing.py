"""Two-input compression function used for every internal tree node.

A parent digest is ``H(left || right)`` where ``H`` is a hashlib
algorithm (SHA-256 unless configured otherwise).  Concatenation order
matters: ``hash_node(a, b) != hash_node(b, a)`` for ``a != b``, which is
what gives the left/right tags of a proof their meaning.
"""

from __future__ import annotations

import hashlib
from functools import lru_cache

DEFAULT_HASH = "sha256"


@lru_cache(maxsize=None)
def _resolve(hash_name: str):
    try:
        hashlib.new(hash_name)
    except (ValueError, TypeError) as exc:
        raise ValueError(f"unsupported hash algorithm: {hash_name!r}") from exc
    if hashlib.new(hash_name).digest_size == 0:
        # shake_* need an explicit length and cannot produce fixed-width digests
        raise ValueError(f"hash algorithm {hash_name!r} has no fixed digest size")
    return lambda data: hashlib.new(hash_name, data).digest()


def digest_size(hash_name: str = DEFAULT_HASH) -> int:
    """Width in bytes of a node digest for *hash_name*."""
    _resolve(hash_name)
    return hashlib.new(hash_name).digest_size


def hash_node(left: bytes, right: bytes, hash_name: str = DEFAULT_HASH) -> bytes:
    return _resolve(hash_name)(left + right)
