"""Example: Managing a group and proving membership from Python.

This example shows how to use the registry as a library: create a
group, add members, hand a proof to a verifier, and persist the tree
between mutations as a JSON snapshot.

Usage:
    python examples/programmatic_membership.py alice bob carol
"""

from __future__ import annotations

import json
import sys

from semaphore_groups import GroupRegistry, MerkleTree, ProofPayload, TreeSnapshot


def main() -> None:
    if len(sys.argv) < 2:
        print("Usage: python examples/programmatic_membership.py <commitment> [...]")
        sys.exit(1)

    commitments = [c.encode("utf-8") for c in sys.argv[1:]]

    # Step 1: Create a group and add members
    registry = GroupRegistry(depth=4)
    registry.create_group(1)
    members = registry.add_members(1, commitments)
    root = registry.get_merkle_root(1)

    print("=" * 60)
    print(f"Group 1: {len(members)} members, root {root.hex()}")
    print("=" * 60)
    for m in members:
        print(f"  [{m.index}] {bytes.fromhex(m.identity_commitment).decode()} -> {m.leaf[:16]}...")
    print()

    # Step 2: Prove the last member's inclusion
    last = members[-1]
    proof = registry.get_proof(1, last.index)
    payload = ProofPayload.from_proof(proof, leaf=bytes.fromhex(last.leaf), root=root)
    print("Inclusion proof:")
    print(json.dumps(payload.model_dump(mode="json"), indent=2))
    print(f"\nVerified: {registry.verify_proof(1, commitments[-1], proof)}")

    # Step 3: Store and reload the tree
    stored = registry.get_tree(1).model_dump_json()
    reloaded = MerkleTree.from_snapshot(TreeSnapshot.model_validate_json(stored))
    print(f"Reloaded root matches: {reloaded.get_root() == root}")


if __name__ == "__main__":
    main()
