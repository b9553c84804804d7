"""Encode identity commitments as BLS12-381 G1 points.

Identity commitments are opaque byte strings of any length.  Before they
enter a group tree they are hashed to the G1 curve with the
``expand_message_xmd`` / SHA-256 / SSWU suite and a fixed
domain-separation tag, then serialized in the 48-byte compressed form.
The encoding is deterministic, so every process that shares the tag
derives the same leaf (and the same root) for the same members.
"""

from __future__ import annotations

import hashlib
import logging

from py_ecc.bls.g2_primitives import G1_to_pubkey, pubkey_to_G1, subgroup_check
from py_ecc.bls.hash_to_curve import hash_to_G1
from py_ecc.optimized_bls12_381 import is_inf

from semaphore_groups.config import settings

logger = logging.getLogger(__name__)

ENCODED_LEAF_SIZE = 48
MAX_DST_LENGTH = 255


class LeafEncodingError(ValueError):
    """Raised when bytes do not decode to a valid G1 point."""


class LeafEncoder:
    """Hash-to-curve encoder bound to one domain-separation tag."""

    def __init__(self, dst: bytes | None = None) -> None:
        dst = settings.leaf_dst if dst is None else dst
        if not isinstance(dst, bytes) or not dst:
            raise ValueError("domain-separation tag must be non-empty bytes")
        if len(dst) > MAX_DST_LENGTH:
            raise ValueError(f"domain-separation tag longer than {MAX_DST_LENGTH} bytes")
        self._dst = dst

    @property
    def dst(self) -> bytes:
        return self._dst

    def encode(self, identity_commitment: bytes) -> bytes:
        if not isinstance(identity_commitment, (bytes, bytearray)):
            raise TypeError(
                f"identity commitment must be bytes, got {type(identity_commitment).__name__}"
            )
        point = hash_to_G1(bytes(identity_commitment), self._dst, hashlib.sha256)
        return bytes(G1_to_pubkey(point))

    def decode(self, leaf: bytes):
        """Parse a compressed leaf back into a G1 point.

        Raises:
            LeafEncodingError: wrong length, not on the curve, or not in the
                prime-order subgroup.
        """
        if not isinstance(leaf, bytes) or len(leaf) != ENCODED_LEAF_SIZE:
            raise LeafEncodingError(f"encoded leaf must be {ENCODED_LEAF_SIZE} bytes")
        try:
            point = pubkey_to_G1(leaf)
        except ValueError as exc:
            raise LeafEncodingError(f"invalid G1 encoding: {exc}") from exc
        if is_inf(point):
            raise LeafEncodingError("point at infinity is not a valid leaf")
        if not subgroup_check(point):
            raise LeafEncodingError("point is not in the G1 subgroup")
        return point


_default_encoder: LeafEncoder | None = None


def encode_identity_commitment(identity_commitment: bytes) -> bytes:
    """Encode with an encoder built from the configured tag."""
    global _default_encoder
    if _default_encoder is None:
        _default_encoder = LeafEncoder()
    return _default_encoder.encode(identity_commitment)
