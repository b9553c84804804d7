"""CLI entrypoint for Semaphore group trees.

Usage:
    semaphore-groups encode alice bob          # Print encoded leaves
    semaphore-groups root alice bob carol      # Build a group, print its root
    semaphore-groups prove --index 1 alice bob # Print an inclusion proof
    semaphore-groups verify --root R proof.json bob  # Check a proof against a trusted root
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path

from semaphore_groups.config import settings
from semaphore_groups.groups import GroupError, GroupRegistry
from semaphore_groups.leaf_encoding import LeafEncoder
from semaphore_groups.merkle import LeafIndexOutOfRange
from semaphore_groups.proof import MalformedProof
from semaphore_groups.schemas import ProofPayload


def _commitments(args: argparse.Namespace) -> list[bytes]:
    if args.hex:
        return [bytes.fromhex(c) for c in args.commitments]
    return [c.encode("utf-8") for c in args.commitments]


def _build_registry(args: argparse.Namespace) -> GroupRegistry:
    registry = GroupRegistry(depth=args.depth, encoder=LeafEncoder())
    registry.create_group(0)
    registry.add_members(0, _commitments(args))
    return registry


def _cmd_encode(args: argparse.Namespace) -> int:
    encoder = LeafEncoder()
    out = [
        {"identity_commitment": c.hex(), "leaf": encoder.encode(c).hex()}
        for c in _commitments(args)
    ]
    print(json.dumps(out, indent=2))
    return 0


def _cmd_root(args: argparse.Namespace) -> int:
    registry = _build_registry(args)
    members = [
        registry.get_member(0, c).model_dump(mode="json") for c in _commitments(args)
    ]
    print(
        json.dumps(
            {"depth": args.depth, "root": registry.get_merkle_root(0).hex(), "members": members},
            indent=2,
        )
    )
    return 0


def _cmd_prove(args: argparse.Namespace) -> int:
    registry = _build_registry(args)
    tree = registry.get_tree(0)
    proof = registry.get_proof(0, args.index)
    payload = ProofPayload.from_proof(
        proof,
        leaf=bytes.fromhex(tree.nodes[(1 << args.depth) + args.index]),
        root=registry.get_merkle_root(0),
    )
    print(json.dumps(payload.model_dump(mode="json"), indent=2))
    return 0


def _cmd_verify(args: argparse.Namespace) -> int:
    payload = ProofPayload.model_validate_json(Path(args.proof).read_text())
    # The root and shape come from the caller, never from the proof file.
    if payload.depth != args.depth or len(payload.path) != args.depth:
        raise MalformedProof(
            f"proof has {len(payload.path)} branches, expected depth {args.depth}"
        )
    if payload.hash_name != settings.hash_algorithm:
        raise MalformedProof(
            f"proof uses {payload.hash_name!r}, configured hash is {settings.hash_algorithm!r}"
        )
    expected_root = bytes.fromhex(args.root)
    leaf = LeafEncoder().encode(_commitments(args)[0])
    candidate = payload.to_proof().root(leaf, settings.hash_algorithm)
    ok = candidate == expected_root
    print(json.dumps({"valid": ok, "root": candidate.hex()}, indent=2))
    return 0 if ok else 1


def main() -> None:
    logging.basicConfig(
        level=settings.log_level,
        format="%(asctime)s %(name)s %(levelname)s %(message)s",
    )

    parser = argparse.ArgumentParser(description="Semaphore group Merkle trees")
    parser.add_argument(
        "--depth",
        type=int,
        default=settings.tree_depth,
        help=f"Tree depth (default: {settings.tree_depth})",
    )
    parser.add_argument(
        "--hex",
        action="store_true",
        help="Treat identity commitments as hex instead of UTF-8 text",
    )
    sub = parser.add_subparsers(dest="command", required=True)

    p_encode = sub.add_parser("encode", help="Encode identity commitments as leaves")
    p_encode.add_argument("commitments", nargs="+")
    p_encode.set_defaults(func=_cmd_encode)

    p_root = sub.add_parser("root", help="Build a group and print its Merkle root")
    p_root.add_argument("commitments", nargs="+")
    p_root.set_defaults(func=_cmd_root)

    p_prove = sub.add_parser("prove", help="Print the inclusion proof of one member")
    p_prove.add_argument("--index", type=int, required=True, help="Leaf index to prove")
    p_prove.add_argument("commitments", nargs="+")
    p_prove.set_defaults(func=_cmd_prove)

    p_verify = sub.add_parser("verify", help="Verify a proof file against a commitment")
    p_verify.add_argument("proof", help="Path to a ProofPayload JSON file")
    p_verify.add_argument("commitments", nargs=1, metavar="commitment")
    p_verify.add_argument("--root", required=True, help="Trusted group root (hex) to verify against")
    p_verify.set_defaults(func=_cmd_verify)

    args = parser.parse_args()

    try:
        code = args.func(args)
    except (GroupError, LeafIndexOutOfRange, ValueError, OSError) as exc:
        print(f"ERROR: {exc}", file=sys.stderr)
        sys.exit(1)
    sys.exit(code)


if __name__ == "__main__":
    main()
