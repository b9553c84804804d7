"""Configuration for the Semaphore group trees.

All settings are driven by environment variables with sensible defaults.
Every process that builds or verifies a group tree must agree on the
depth, hash algorithm, default leaf and leaf-encoding tag, otherwise the
roots they compute will not match.
"""

from __future__ import annotations

import os


def _get_int(name: str, default: int) -> int:
    val = os.getenv(name)
    if val is None or val == "":
        return default
    return int(val)


def _get_hex(name: str, default: bytes) -> bytes:
    val = os.getenv(name)
    if val is None or val == "":
        return default
    return bytes.fromhex(val.strip().removeprefix("0x"))


class SemaphoreSettings:
    # --- Merkle tree ---
    # Depth of every group tree; capacity is 2**depth members.
    tree_depth: int = _get_int("SEMAPHORE_TREE_DEPTH", 10)
    # Any algorithm name accepted by hashlib.new().
    hash_algorithm: str = os.getenv("SEMAPHORE_HASH_ALGORITHM", "sha256")
    # Value held by every unpopulated leaf.
    default_leaf: bytes = _get_hex("SEMAPHORE_DEFAULT_LEAF_HEX", b"\x00" * 32)

    # --- Leaf encoding ---
    # Domain-separation tag for hashing identity commitments to BLS12-381 G1.
    leaf_dst: bytes = os.getenv(
        "SEMAPHORE_LEAF_DST", "SEMAPHORE_IDENTITY_BLS12381G1_XMD:SHA-256_SSWU_RO_"
    ).encode("utf-8")

    # --- Logging ---
    log_level: str = os.getenv("SEMAPHORE_LOG_LEVEL", "INFO")


settings = SemaphoreSettings()
