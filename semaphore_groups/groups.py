"""In-memory registry of Semaphore groups and their member trees.

Each group owns one ``MerkleTree``.  Adding a member encodes its
identity commitment to a G1 point and writes it to the next free leaf;
removing a member resets that leaf to the default value so the slot can
no longer be proven.  Leaf indices are never reused.

All registry operations run under a single reentrant lock, so at most
one mutation is in flight per tree and readers never observe a
half-updated root path.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, field

from semaphore_groups.config import settings
from semaphore_groups.leaf_encoding import LeafEncoder
from semaphore_groups.merkle import MerkleTree
from semaphore_groups.proof import Proof
from semaphore_groups.schemas import Member, TreeSnapshot

logger = logging.getLogger(__name__)


class GroupError(Exception):
    """Base class for registry errors."""


class GroupDoesNotExist(GroupError):
    pass


class GroupAlreadyExists(GroupError):
    pass


class MemberAlreadyExists(GroupError):
    pass


class MemberDoesNotExist(GroupError):
    pass


class InvalidIdentityCommitment(GroupError):
    pass


class GroupIsFull(GroupError):
    pass


@dataclass
class _Group:
    group_id: int
    tree: MerkleTree
    members: dict[bytes, Member] = field(default_factory=dict)
    next_index: int = 0


class GroupRegistry:
    """Owns every group tree and serializes access to them."""

    def __init__(
        self,
        depth: int | None = None,
        default_leaf: bytes | None = None,
        encoder: LeafEncoder | None = None,
        hash_name: str | None = None,
    ) -> None:
        self._depth = settings.tree_depth if depth is None else depth
        self._default_leaf = settings.default_leaf if default_leaf is None else default_leaf
        self._hash_name = hash_name or settings.hash_algorithm
        self._encoder = encoder or LeafEncoder()
        self._groups: dict[int, _Group] = {}
        self._lock = threading.RLock()

    # ------------------------------------------------------------------
    # Groups
    # ------------------------------------------------------------------

    def create_group(self, group_id: int) -> bytes:
        """Create an empty group and return its initial root."""
        with self._lock:
            if group_id in self._groups:
                raise GroupAlreadyExists(f"group {group_id} already exists")
            tree = MerkleTree(self._depth, self._default_leaf, self._hash_name)
            self._groups[group_id] = _Group(group_id=group_id, tree=tree)
            logger.info("Group %s created (depth=%d)", group_id, self._depth)
            return tree.get_root()

    def get_tree(self, group_id: int) -> TreeSnapshot:
        with self._lock:
            return self._group(group_id).tree.snapshot()

    def get_merkle_root(self, group_id: int) -> bytes:
        with self._lock:
            return self._group(group_id).tree.get_root()

    def get_member_count(self, group_id: int) -> int:
        with self._lock:
            return len(self._group(group_id).members)

    # ------------------------------------------------------------------
    # Members
    # ------------------------------------------------------------------

    def add_member(self, group_id: int, identity_commitment: bytes) -> Member:
        with self._lock:
            group = self._group(group_id)
            self._check_new_commitment(group, identity_commitment)
            if group.next_index >= group.tree.num_leaves():
                raise GroupIsFull(
                    f"group {group_id} has no free leaves ({group.tree.num_leaves()} total)"
                )
            return self._insert(group, identity_commitment)

    def add_members(self, group_id: int, identity_commitments: list[bytes]) -> list[Member]:
        """Add a batch of members; nothing is added if any entry is rejected."""
        with self._lock:
            group = self._group(group_id)
            seen: set[bytes] = set()
            for commitment in identity_commitments:
                self._check_new_commitment(group, commitment)
                if commitment in seen:
                    raise MemberAlreadyExists(
                        f"commitment {commitment.hex()} appears twice in the batch"
                    )
                seen.add(commitment)
            free = group.tree.num_leaves() - group.next_index
            if len(identity_commitments) > free:
                raise GroupIsFull(
                    f"group {group_id} has {free} free leaves, "
                    f"{len(identity_commitments)} requested"
                )
            return [self._insert(group, c) for c in identity_commitments]

    def update_member(
        self,
        group_id: int,
        old_identity_commitment: bytes,
        new_identity_commitment: bytes,
    ) -> Member:
        """Replace a member's commitment, keeping its leaf index."""
        with self._lock:
            group = self._group(group_id)
            old = self._member(group, old_identity_commitment)
            self._check_new_commitment(group, new_identity_commitment)

            leaf = self._encoder.encode(new_identity_commitment)
            group.tree.add_leaf(old.index, leaf)
            member = Member(
                group_id=group_id,
                identity_commitment=new_identity_commitment.hex(),
                index=old.index,
                leaf=leaf.hex(),
            )
            del group.members[old_identity_commitment]
            group.members[new_identity_commitment] = member
            logger.info("Group %s member %d updated", group_id, old.index)
            return member

    def remove_member(self, group_id: int, identity_commitment: bytes) -> None:
        with self._lock:
            group = self._group(group_id)
            member = self._member(group, identity_commitment)
            group.tree.add_leaf(member.index, group.tree.default_leaf)
            del group.members[identity_commitment]
            logger.info("Group %s member %d removed", group_id, member.index)

    def get_member(self, group_id: int, identity_commitment: bytes) -> Member:
        with self._lock:
            return self._member(self._group(group_id), identity_commitment)

    def is_member(self, group_id: int, identity_commitment: bytes) -> bool:
        with self._lock:
            return identity_commitment in self._group(group_id).members

    # ------------------------------------------------------------------
    # Proofs
    # ------------------------------------------------------------------

    def get_proof(self, group_id: int, leaf_index: int) -> Proof:
        with self._lock:
            return self._group(group_id).tree.proof(leaf_index)

    def verify_proof(self, group_id: int, identity_commitment: bytes, proof: Proof) -> bool:
        """Check that *identity_commitment* is included in the group's current tree."""
        leaf = self._encoder.encode(identity_commitment)
        with self._lock:
            return self._group(group_id).tree.verify_proof(leaf, proof)

    # ------------------------------------------------------------------
    # Internal
    # ------------------------------------------------------------------

    def _group(self, group_id: int) -> _Group:
        group = self._groups.get(group_id)
        if group is None:
            raise GroupDoesNotExist(f"group {group_id} does not exist")
        return group

    @staticmethod
    def _member(group: _Group, identity_commitment: bytes) -> Member:
        member = group.members.get(identity_commitment)
        if member is None:
            raise MemberDoesNotExist(
                f"commitment {identity_commitment.hex()} is not in group {group.group_id}"
            )
        return member

    @staticmethod
    def _check_new_commitment(group: _Group, identity_commitment: bytes) -> None:
        if not isinstance(identity_commitment, bytes) or not identity_commitment:
            raise InvalidIdentityCommitment("identity commitment must be non-empty bytes")
        if identity_commitment in group.members:
            raise MemberAlreadyExists(
                f"commitment {identity_commitment.hex()} is already in group {group.group_id}"
            )

    def _insert(self, group: _Group, identity_commitment: bytes) -> Member:
        index = group.next_index
        leaf = self._encoder.encode(identity_commitment)
        root = group.tree.add_leaf(index, leaf)
        group.next_index += 1
        member = Member(
            group_id=group.group_id,
            identity_commitment=identity_commitment.hex(),
            index=index,
            leaf=leaf.hex(),
        )
        group.members[identity_commitment] = member
        logger.info(
            "Group %s member added: index=%d root=%s", group.group_id, index, root.hex()[:16]
        )
        return member
