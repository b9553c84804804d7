"""Tests for the group registry that drives the member trees."""

from __future__ import annotations

import threading
from unittest.mock import MagicMock

import pytest

from semaphore_groups.groups import (
    GroupAlreadyExists,
    GroupDoesNotExist,
    GroupIsFull,
    GroupRegistry,
    InvalidIdentityCommitment,
    MemberAlreadyExists,
    MemberDoesNotExist,
)
from semaphore_groups.leaf_encoding import LeafEncoder
from semaphore_groups.merkle import LeafIndexOutOfRange, MerkleTree

DEFAULT_LEAF = b"\x00" * 32


@pytest.fixture(scope="module")
def encoder():
    return LeafEncoder(b"SEMAPHORE_IDENTITY")


@pytest.fixture
def registry(encoder):
    reg = GroupRegistry(depth=2, default_leaf=DEFAULT_LEAF, encoder=encoder)
    reg.create_group(1)
    return reg


class TestGroups:
    def test_new_group_has_empty_root(self, encoder):
        reg = GroupRegistry(depth=2, default_leaf=DEFAULT_LEAF, encoder=encoder)
        root = reg.create_group(7)
        assert root == MerkleTree(2, DEFAULT_LEAF).get_root()
        assert reg.get_member_count(7) == 0

    def test_duplicate_group(self, registry):
        with pytest.raises(GroupAlreadyExists):
            registry.create_group(1)

    def test_unknown_group(self, registry):
        with pytest.raises(GroupDoesNotExist):
            registry.get_merkle_root(99)
        with pytest.raises(GroupDoesNotExist):
            registry.add_member(99, b"alice")

    def test_groups_are_independent(self, registry):
        registry.create_group(2)
        registry.add_member(1, b"alice")
        assert registry.get_merkle_root(1) != registry.get_merkle_root(2)
        assert not registry.is_member(2, b"alice")


class TestMembers:
    def test_add_member_assigns_sequential_indices(self, registry, encoder):
        alice = registry.add_member(1, b"alice")
        bob = registry.add_member(1, b"bob")
        assert (alice.index, bob.index) == (0, 1)
        assert alice.leaf == encoder.encode(b"alice").hex()
        assert alice.identity_commitment == b"alice".hex()
        assert registry.get_member_count(1) == 2
        assert registry.is_member(1, b"alice")

    def test_root_matches_direct_tree(self, registry, encoder):
        registry.add_member(1, b"alice")
        registry.add_member(1, b"bob")
        tree = MerkleTree(2, DEFAULT_LEAF)
        tree.add_leaf(0, encoder.encode(b"alice"))
        tree.add_leaf(1, encoder.encode(b"bob"))
        assert registry.get_merkle_root(1) == tree.get_root()

    def test_empty_commitment_rejected(self, registry):
        with pytest.raises(InvalidIdentityCommitment):
            registry.add_member(1, b"")

    def test_duplicate_member(self, registry):
        registry.add_member(1, b"alice")
        with pytest.raises(MemberAlreadyExists):
            registry.add_member(1, b"alice")

    def test_group_full(self, registry):
        registry.add_members(1, [b"a", b"b", b"c", b"d"])
        with pytest.raises(GroupIsFull):
            registry.add_member(1, b"e")

    def test_add_members_is_all_or_nothing(self, registry):
        root = registry.get_merkle_root(1)
        with pytest.raises(InvalidIdentityCommitment):
            registry.add_members(1, [b"alice", b""])
        with pytest.raises(MemberAlreadyExists):
            registry.add_members(1, [b"alice", b"alice"])
        with pytest.raises(GroupIsFull):
            registry.add_members(1, [b"a", b"b", b"c", b"d", b"e"])
        assert registry.get_merkle_root(1) == root
        assert registry.get_member_count(1) == 0

    def test_update_member_keeps_index(self, registry, encoder):
        registry.add_member(1, b"alice")
        registry.add_member(1, b"bob")
        updated = registry.update_member(1, b"alice", b"alice-v2")
        assert updated.index == 0
        assert not registry.is_member(1, b"alice")
        assert registry.get_member(1, b"alice-v2") == updated
        assert registry.get_member_count(1) == 2

        proof = registry.get_proof(1, 0)
        assert registry.verify_proof(1, b"alice-v2", proof)
        assert not registry.verify_proof(1, b"alice", proof)

    def test_update_unknown_member(self, registry):
        with pytest.raises(MemberDoesNotExist):
            registry.update_member(1, b"ghost", b"new")

    def test_update_to_existing_member(self, registry):
        registry.add_members(1, [b"alice", b"bob"])
        with pytest.raises(MemberAlreadyExists):
            registry.update_member(1, b"alice", b"bob")

    def test_remove_member_resets_leaf(self, registry):
        empty_root = registry.get_merkle_root(1)
        registry.add_member(1, b"alice")
        registry.remove_member(1, b"alice")
        assert registry.get_merkle_root(1) == empty_root
        assert registry.get_member_count(1) == 0
        with pytest.raises(MemberDoesNotExist):
            registry.get_member(1, b"alice")

    def test_removed_index_not_reused(self, registry):
        registry.add_member(1, b"alice")
        registry.remove_member(1, b"alice")
        assert registry.add_member(1, b"bob").index == 1

    def test_remove_unknown_member(self, registry):
        with pytest.raises(MemberDoesNotExist):
            registry.remove_member(1, b"ghost")


class TestProofs:
    def test_member_proof_verifies(self, registry):
        registry.add_members(1, [b"alice", b"bob", b"carol"])
        bob = registry.get_member(1, b"bob")
        proof = registry.get_proof(1, bob.index)
        assert proof.leaf_index() == bob.index
        assert registry.verify_proof(1, b"bob", proof)
        assert not registry.verify_proof(1, b"carol", proof)

    def test_proof_out_of_range(self, registry):
        with pytest.raises(LeafIndexOutOfRange):
            registry.get_proof(1, 4)

    def test_snapshot_round_trip(self, registry):
        registry.add_members(1, [b"alice", b"bob"])
        tree = MerkleTree.from_snapshot(registry.get_tree(1))
        assert tree.get_root() == registry.get_merkle_root(1)

    def test_encoder_is_used_for_leaves(self):
        encoder = MagicMock(spec=LeafEncoder)
        encoder.encode.return_value = b"\x11" * 48
        reg = GroupRegistry(depth=2, default_leaf=DEFAULT_LEAF, encoder=encoder)
        reg.create_group(1)
        member = reg.add_member(1, b"alice")
        encoder.encode.assert_called_once_with(b"alice")
        assert member.leaf == "11" * 48


class TestConcurrency:
    def test_parallel_adds_keep_tree_consistent(self):
        encoder = MagicMock(spec=LeafEncoder)
        encoder.encode.side_effect = lambda c: c.rjust(32, b"\x00")
        reg = GroupRegistry(depth=5, default_leaf=DEFAULT_LEAF, encoder=encoder)
        reg.create_group(1)

        def worker(start: int) -> None:
            for i in range(start, start + 8):
                reg.add_member(1, f"m{i}".encode())

        threads = [threading.Thread(target=worker, args=(n * 8,)) for n in range(4)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert reg.get_member_count(1) == 32
        tree = MerkleTree.from_snapshot(reg.get_tree(1))
        assert tree.check_invariants()
        indices = sorted(reg.get_member(1, f"m{i}".encode()).index for i in range(32))
        assert indices == list(range(32))
