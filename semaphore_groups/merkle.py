"""Fixed-depth, array-backed incremental Merkle tree for group membership.

Layout (for third-party verifiers)
==================================

**Hash algorithm:** configurable hashlib algorithm, SHA-256 by default.
Internal nodes are ``H(left || right)``; leaves are stored as given.

**Tree structure:** complete binary tree of ``depth`` levels below the
root, packed into a flat array of ``2**(depth + 1)`` slots:

- index 0 is unused filler (holds the raw default leaf)
- index 1 is the root
- node ``i`` has children ``2i`` and ``2i + 1`` and parent ``i >> 1``
- leaf ``k`` lives at index ``2**depth + k``

For depth 2::

            1
        2       3
      4   5   6   7      <- leaves 0..3

**Empty subtrees:** ``empty[0]`` is the default leaf and
``empty[k] = H(empty[k-1] || empty[k-1])``, so ``empty[depth]`` is the
root of a tree in which no leaf was ever set.

**Updates:** ``add_leaf`` rewrites one leaf and the ``depth`` ancestors
above it, never anything else.

**Thread safety:** none.  The owner of a tree serializes mutations
(see ``semaphore_groups.groups``).
"""

from __future__ import annotations

import logging

from semaphore_groups.config import settings
from semaphore_groups.hashing import digest_size, hash_node
from semaphore_groups.proof import Branch, MalformedProof, Proof
from semaphore_groups.schemas import TreeSnapshot

logger = logging.getLogger(__name__)

MAX_DEPTH = 32


class LeafIndexOutOfRange(IndexError):
    """Raised when a leaf index falls outside ``[0, 2**depth)``."""


def build_empty_table(depth: int, default_leaf: bytes, hash_name: str = "sha256") -> list[bytes]:
    """Return the roots of all-default subtrees for heights ``0..depth``."""
    empty = [default_leaf]
    for _ in range(depth):
        empty.append(hash_node(empty[-1], empty[-1], hash_name))
    return empty


def _parent(index: int) -> int | None:
    if index <= 1:
        return None
    return index >> 1


class MerkleTree:
    """Incremental Merkle tree with a fixed number of leaves.

    Every leaf always holds a value: unpopulated leaves hold the default
    leaf, and the ancestors of unpopulated subtrees hold the matching
    entry of the empty-subtree table.
    """

    def __init__(
        self,
        depth: int | None = None,
        default_leaf: bytes | None = None,
        hash_name: str | None = None,
    ) -> None:
        depth = settings.tree_depth if depth is None else depth
        default_leaf = settings.default_leaf if default_leaf is None else default_leaf
        hash_name = hash_name or settings.hash_algorithm

        if isinstance(depth, bool) or not isinstance(depth, int) or not 1 <= depth <= MAX_DEPTH:
            raise ValueError(f"depth must be an integer in [1, {MAX_DEPTH}], got {depth!r}")
        if not isinstance(default_leaf, bytes) or not default_leaf:
            raise ValueError("default_leaf must be non-empty bytes")

        self._depth = depth
        self._default_leaf = default_leaf
        self._hash_name = hash_name
        self._digest_size = digest_size(hash_name)
        self._empty = build_empty_table(depth, default_leaf, hash_name)

        # Level d (root is d = 0) holds 2**d copies of empty[depth - d].
        nodes = [default_leaf]
        for d in range(depth + 1):
            nodes.extend([self._empty[depth - d]] * (1 << d))
        self._nodes = nodes

    # ------------------------------------------------------------------
    # Read-only views
    # ------------------------------------------------------------------

    @property
    def depth(self) -> int:
        return self._depth

    @property
    def default_leaf(self) -> bytes:
        return self._default_leaf

    @property
    def hash_name(self) -> str:
        return self._hash_name

    @property
    def empty(self) -> tuple[bytes, ...]:
        return tuple(self._empty)

    @property
    def nodes(self) -> tuple[bytes, ...]:
        return tuple(self._nodes)

    def get_root(self) -> bytes:
        return self._nodes[1]

    def num_leaves(self) -> int:
        return 1 << self._depth

    def leaf(self, leaf_index: int) -> bytes:
        return self._nodes[self._leaf_position(leaf_index)]

    # ------------------------------------------------------------------
    # Mutation
    # ------------------------------------------------------------------

    def add_leaf(self, leaf_index: int, value: bytes) -> bytes:
        """Set leaf *leaf_index* to *value* and recompute its ancestors.

        Occupancy is not checked; callers own the policy of which slots
        may be overwritten.

        Returns:
            The new root.
        """
        if not isinstance(value, bytes) or not value:
            raise ValueError("leaf value must be non-empty bytes")
        pos = self._leaf_position(leaf_index)

        self._nodes[pos] = value
        current = pos
        while (parent := _parent(current)) is not None:
            left = self._nodes[parent << 1]
            right = self._nodes[(parent << 1) + 1]
            self._nodes[parent] = hash_node(left, right, self._hash_name)
            current = parent

        logger.debug("Leaf %d set, root=%s", leaf_index, self._nodes[1].hex())
        return self._nodes[1]

    # ------------------------------------------------------------------
    # Proofs
    # ------------------------------------------------------------------

    def proof(self, leaf_index: int) -> Proof:
        """Generate an inclusion proof for the leaf at *leaf_index*.

        Raises:
            LeafIndexOutOfRange: if *leaf_index* is not in ``[0, 2**depth)``.
        """
        index = self._leaf_position(leaf_index)
        path: list[Branch] = []
        while _parent(index) is not None:
            if index & 1:
                path.append(Branch.left(self._nodes[index - 1]))
            else:
                path.append(Branch.right(self._nodes[index + 1]))
            index >>= 1
        return Proof(tuple(path))

    def verify_proof(self, leaf_hash: bytes, proof: Proof) -> bool:
        """Check that *proof* folds *leaf_hash* into this tree's current root.

        Raises:
            MalformedProof: if the proof cannot belong to a tree of this shape.
        """
        self._check_proof_shape(leaf_hash, proof)
        return proof.root(leaf_hash, self._hash_name) == self.get_root()

    def _check_proof_shape(self, leaf_hash: bytes, proof: Proof) -> None:
        if not isinstance(leaf_hash, bytes) or not leaf_hash:
            raise MalformedProof("leaf hash must be non-empty bytes")
        if len(proof) != self._depth:
            raise MalformedProof(
                f"proof has {len(proof)} branches, tree depth is {self._depth}"
            )
        for level, branch in enumerate(proof):
            sibling = branch.sibling
            if not isinstance(sibling, bytes) or not sibling:
                raise MalformedProof(f"sibling at level {level} is not non-empty bytes")
            # Level 0 siblings are leaves and may be any width.
            if level > 0 and len(sibling) != self._digest_size:
                raise MalformedProof(
                    f"sibling at level {level} is {len(sibling)} bytes, "
                    f"expected {self._digest_size}"
                )

    # ------------------------------------------------------------------
    # Integrity and persistence
    # ------------------------------------------------------------------

    def check_invariants(self) -> bool:
        """Recompute every internal node and report whether all of them match."""
        for i in range(1, self.num_leaves()):
            expected = hash_node(self._nodes[2 * i], self._nodes[2 * i + 1], self._hash_name)
            if self._nodes[i] != expected:
                return False
        return True

    def snapshot(self) -> TreeSnapshot:
        return TreeSnapshot(
            depth=self._depth,
            hash_name=self._hash_name,
            default_leaf=self._default_leaf.hex(),
            nodes=[n.hex() for n in self._nodes],
        )

    @classmethod
    def from_snapshot(cls, snapshot: TreeSnapshot) -> MerkleTree:
        """Rebuild a tree from a stored snapshot, rejecting inconsistent ones."""
        tree = cls(
            depth=snapshot.depth,
            default_leaf=bytes.fromhex(snapshot.default_leaf),
            hash_name=snapshot.hash_name,
        )
        expected_len = 1 << (snapshot.depth + 1)
        if len(snapshot.nodes) != expected_len:
            raise ValueError(
                f"snapshot has {len(snapshot.nodes)} nodes, expected {expected_len}"
            )
        tree._nodes = [bytes.fromhex(n) for n in snapshot.nodes]
        if not tree.check_invariants():
            raise ValueError("snapshot nodes do not form a consistent Merkle tree")
        return tree

    # ------------------------------------------------------------------
    # Internal
    # ------------------------------------------------------------------

    def _leaf_position(self, leaf_index: int) -> int:
        n = self.num_leaves()
        if isinstance(leaf_index, bool) or not isinstance(leaf_index, int):
            raise TypeError(f"leaf index must be an int, got {type(leaf_index).__name__}")
        if leaf_index < 0 or leaf_index >= n:
            raise LeafIndexOutOfRange(f"leaf index {leaf_index} out of range [0, {n})")
        return n + leaf_index
