"""Semaphore groups: incremental Merkle trees of encoded identity commitments."""

from semaphore_groups.config import SemaphoreSettings, settings
from semaphore_groups.groups import (
    GroupAlreadyExists,
    GroupDoesNotExist,
    GroupError,
    GroupIsFull,
    GroupRegistry,
    InvalidIdentityCommitment,
    MemberAlreadyExists,
    MemberDoesNotExist,
)
from semaphore_groups.hashing import digest_size, hash_node
from semaphore_groups.leaf_encoding import (
    LeafEncoder,
    LeafEncodingError,
    encode_identity_commitment,
)
from semaphore_groups.merkle import LeafIndexOutOfRange, MerkleTree, build_empty_table
from semaphore_groups.proof import Branch, MalformedProof, Proof, Side
from semaphore_groups.schemas import (
    BranchPayload,
    Member,
    ProofPayload,
    TreeSnapshot,
    export_json_schemas,
)

__all__ = [
    "settings",
    "SemaphoreSettings",
    # Tree core
    "hash_node",
    "digest_size",
    "build_empty_table",
    "MerkleTree",
    "LeafIndexOutOfRange",
    "Proof",
    "Branch",
    "Side",
    "MalformedProof",
    # Leaf encoding
    "LeafEncoder",
    "LeafEncodingError",
    "encode_identity_commitment",
    # Registry
    "GroupRegistry",
    "GroupError",
    "GroupDoesNotExist",
    "GroupAlreadyExists",
    "GroupIsFull",
    "MemberAlreadyExists",
    "MemberDoesNotExist",
    "InvalidIdentityCommitment",
    # Wire models
    "BranchPayload",
    "ProofPayload",
    "TreeSnapshot",
    "Member",
    "export_json_schemas",
]

__version__ = "0.1.0"
