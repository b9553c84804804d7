"""Merkle inclusion proofs.

A proof is the ordered list of siblings met while walking from a leaf to
the root (bottom to top).  Each step is tagged with the side the sibling
occupies:

- ``Side.LEFT``:  sibling sits to the left, the path node is a right child
- ``Side.RIGHT``: sibling sits to the right, the path node is a left child

A proof does not carry its leaf index or the identity of the tree it came
from; the caller binds those externally.
"""

from __future__ import annotations

from collections.abc import Iterator
from dataclasses import dataclass
from enum import Enum

from semaphore_groups.config import settings
from semaphore_groups.hashing import hash_node


class MalformedProof(ValueError):
    """Raised when a proof cannot possibly belong to the tree it is checked against."""


class Side(str, Enum):
    """Which side of the path node the sibling occupies."""

    LEFT = "left"
    RIGHT = "right"


@dataclass(frozen=True)
class Branch:
    side: Side
    sibling: bytes

    @classmethod
    def left(cls, sibling: bytes) -> Branch:
        return cls(Side.LEFT, sibling)

    @classmethod
    def right(cls, sibling: bytes) -> Branch:
        return cls(Side.RIGHT, sibling)


@dataclass(frozen=True)
class Proof:
    """Sibling path from a leaf up to the root."""

    path: tuple[Branch, ...]

    def __len__(self) -> int:
        return len(self.path)

    def __iter__(self) -> Iterator[Branch]:
        return iter(self.path)

    def root(self, leaf_hash: bytes, hash_name: str | None = None) -> bytes:
        """Fold the path over *leaf_hash* and return the candidate root.

        *hash_name* defaults to the configured algorithm, the same one a
        ``MerkleTree`` built without an explicit ``hash_name`` uses.
        """
        hash_name = hash_name or settings.hash_algorithm
        current = leaf_hash
        for branch in self.path:
            if branch.side is Side.LEFT:
                current = hash_node(branch.sibling, current, hash_name)
            else:
                current = hash_node(current, branch.sibling, hash_name)
        return current

    def leaf_index(self) -> int:
        """Reconstruct the zero-based index of the leaf this proof was built for."""
        index = 0
        for branch in reversed(self.path):
            index = (index << 1) | (1 if branch.side is Side.LEFT else 0)
        return index
